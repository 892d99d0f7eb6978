"""CLI commands for analyzing proxy log files."""

import json
import sys

import click

from piiscout.analyzer import analyze_path
from piiscout.catalog import PatternCatalog, PatternConfigError, get_store, load_catalog
from piiscout.summary import FILTER_MODES, summarize


def resolve_catalog(patterns_file: str | None) -> PatternCatalog:
    """Catalog for a CLI run: an explicit file must be valid, the default file falls back to built-ins."""
    if patterns_file:
        try:
            return load_catalog(patterns_file)
        except PatternConfigError as e:
            click.echo(f'Error: {e}', err=True)
            sys.exit(1)
    return get_store().load_from()


patterns_option = click.option(
    '--patterns',
    'patterns_file',
    type=click.Path(dir_okay=False),
    default=None,
    help='Pattern catalog JSON (default: the saved catalog)',
)


@click.command('analyze')
@click.argument('logfile', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '--filter',
    'filter_mode',
    type=click.Choice(FILTER_MODES),
    default='all',
    show_default=True,
    help='Which records to show',
)
@click.option('--limit', '-n', type=click.IntRange(min=1), default=None, help='Maximum records to show')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@click.option('--max-workers', type=int, default=None, help='Parallel analysis threads (default: SCOUT_MAX_WORKERS)')
@patterns_option
def analyze_command(
    logfile: str,
    filter_mode: str,
    limit: int | None,
    json_output: bool,
    no_color: bool,
    max_workers: int | None,
    patterns_file: str | None,
):
    """Detect PII, secrets and hashes in a proxy access log.

    Scans the request body, response body, URL and user agent of every
    record and lists the detections.

    \b
    Examples:
        piiscout analyze proxy-access.log
        piiscout analyze proxy-access.log --filter all --limit 20
        piiscout analyze proxy-access.log --json
        piiscout analyze proxy-access.log --patterns my-patterns.json
    """
    catalog = resolve_catalog(patterns_file)
    response, _ = analyze_path(logfile, catalog, filter_mode=filter_mode, limit=limit, max_workers=max_workers)

    if json_output:
        click.echo(json.dumps(response.model_dump(mode='json', by_alias=True), indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(response.to_cli(colorize=colorize))


@click.command('summary')
@click.argument('logfile', type=click.Path(exists=True, dir_okay=False))
@click.option('--limit', '-n', type=click.IntRange(min=1), default=10, show_default=True, help='Entries per list')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@patterns_option
def summary_command(logfile: str, limit: int, json_output: bool, no_color: bool, patterns_file: str | None):
    """Summarize flagged traffic by endpoint, detection type and day.

    \b
    Examples:
        piiscout summary proxy-access.log
        piiscout summary proxy-access.log --limit 5 --json
    """
    catalog = resolve_catalog(patterns_file)
    _, analyzed = analyze_path(logfile, catalog)
    result = summarize(analyzed, limit)

    if json_output:
        click.echo(json.dumps(result.model_dump(mode='json'), indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(result.to_cli(colorize=colorize))
