"""CLI command for scanning a single text."""

import json
import sys

import click

from piiscout.cli.analyze import patterns_option, resolve_catalog
from piiscout.engine import detect, to_text
from piiscout.models import DetectResponse


@click.command('detect')
@click.argument('text')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@patterns_option
def detect_command(text: str, json_output: bool, no_color: bool, patterns_file: str | None):
    """Scan TEXT for PII, secrets and hashes. Use - to read from stdin.

    \b
    Examples:
        piiscout detect "contact: alice@example.com"
        echo '{"password": "hunter2"}' | piiscout detect -
    """
    if text == '-':
        text = sys.stdin.read()

    catalog = resolve_catalog(patterns_file)
    response = DetectResponse(text=to_text(text), detections=detect(text, catalog))

    if json_output:
        click.echo(json.dumps(response.model_dump(mode='json', by_alias=True), indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(response.to_cli(colorize=colorize))
