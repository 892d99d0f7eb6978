"""CLI commands for managing the detection pattern catalog."""

import json
import sys

import click

from piiscout.catalog import (
    DEFAULT_PATTERNS,
    PatternCatalog,
    PatternConfigError,
    add_pattern,
    default_catalog,
    load_catalog,
    remove_pattern,
    save_catalog,
    update_pattern,
)
from piiscout.models import BOLD, GREY, RESET
from piiscout.utils import get_patterns_file


def _patterns_path(patterns_file: str | None):
    return patterns_file if patterns_file else get_patterns_file()


def _load(path) -> PatternCatalog:
    try:
        return load_catalog(path)
    except PatternConfigError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)


def _save(catalog: PatternCatalog, path, message: str):
    save_catalog(catalog, path)
    click.echo(message)


def format_catalog(catalog: PatternCatalog, colorize: bool = False) -> str:
    lines = []
    for key, pattern in catalog.items():
        state = 'on ' if pattern.enabled else 'off'
        origin = 'built-in' if key in DEFAULT_PATTERNS else 'user'
        label = f'{BOLD}{key}{RESET}' if colorize else key
        line = f'[{state}] {label:<14} {pattern.name} ({origin}, {pattern.color})'
        lines.append(line)
        regex = f'    /{pattern.regex}/' + ('i' if pattern.ignore_case else '')
        lines.append(f'{GREY}{regex}{RESET}' if colorize else regex)
    return '\n'.join(lines)


patterns_file_option = click.option(
    '--file',
    'patterns_file',
    type=click.Path(dir_okay=False),
    default=None,
    help='Catalog JSON to manage (default: SCOUT_PATTERNS_FILE or the config directory)',
)


@click.group('patterns')
def patterns_command():
    """Show and edit the detection pattern catalog.

    Built-in patterns can be enabled, disabled and recolored but not removed.
    User patterns are stored next to them in the same JSON file.

    \b
    Examples:
        piiscout patterns list
        piiscout patterns disable phone
        piiscout patterns add "Credit Card" "\\b\\d{4}-\\d{4}-\\d{4}-\\d{4}\\b"
        piiscout patterns remove credit_card
        piiscout patterns reset
    """


@patterns_command.command('list')
@click.option('--json', 'json_output', is_flag=True, help='Output in JSON format')
@click.option('--no-color', is_flag=True, help='Disable colored output')
@patterns_file_option
def list_patterns(json_output: bool, no_color: bool, patterns_file: str | None):
    """List all patterns with their state."""
    catalog = _load(_patterns_path(patterns_file))
    if json_output:
        click.echo(json.dumps(catalog.to_json(), indent=2))
    else:
        colorize = not no_color and sys.stdout.isatty()
        click.echo(format_catalog(catalog, colorize=colorize))


def _set_enabled(key: str, enabled: bool, patterns_file: str | None):
    path = _patterns_path(patterns_file)
    catalog = _load(path)
    try:
        catalog = update_pattern(catalog, key, enabled=enabled)
    except KeyError:
        click.echo(f'Error: Unknown pattern: {key}', err=True)
        sys.exit(1)
    _save(catalog, path, f"{'Enabled' if enabled else 'Disabled'} pattern '{key}'")


@patterns_command.command('enable')
@click.argument('key')
@patterns_file_option
def enable_pattern(key: str, patterns_file: str | None):
    """Enable the pattern KEY."""
    _set_enabled(key, True, patterns_file)


@patterns_command.command('disable')
@click.argument('key')
@patterns_file_option
def disable_pattern(key: str, patterns_file: str | None):
    """Disable the pattern KEY."""
    _set_enabled(key, False, patterns_file)


@patterns_command.command('add')
@click.argument('name')
@click.argument('regex')
@click.option('--color', default='#4ecdc4', show_default=True, help='Highlight color')
@click.option('--ignore-case', '-i', is_flag=True, help='Case-insensitive matching')
@click.option('--disabled', is_flag=True, help='Add the pattern disabled')
@patterns_file_option
def add_user_pattern(
    name: str,
    regex: str,
    color: str,
    ignore_case: bool,
    disabled: bool,
    patterns_file: str | None,
):
    """Add a user pattern NAME matching REGEX.

    The catalog key is derived from the name, e.g. "Credit Card" becomes
    credit_card.
    """
    path = _patterns_path(patterns_file)
    catalog = _load(path)
    try:
        catalog = add_pattern(catalog, name, regex, color=color, enabled=not disabled, ignore_case=ignore_case)
    except PatternConfigError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    _save(catalog, path, f"Added pattern '{name}'")


@patterns_command.command('remove')
@click.argument('key')
@patterns_file_option
def remove_user_pattern(key: str, patterns_file: str | None):
    """Remove the user pattern KEY."""
    path = _patterns_path(patterns_file)
    catalog = _load(path)
    try:
        catalog = remove_pattern(catalog, key)
    except PatternConfigError as e:
        click.echo(f'Error: {e}', err=True)
        sys.exit(1)
    except KeyError:
        click.echo(f'Error: Unknown pattern: {key}', err=True)
        sys.exit(1)
    _save(catalog, path, f"Removed pattern '{key}'")


@patterns_command.command('reset')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
@patterns_file_option
def reset_patterns(yes: bool, patterns_file: str | None):
    """Restore the built-in catalog, dropping all user changes."""
    if not yes:
        click.confirm('Discard all pattern changes?', abort=True)
    _save(default_catalog(), _patterns_path(patterns_file), 'Pattern catalog reset to defaults')
