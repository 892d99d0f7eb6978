"""CLI command for running the web API server."""

import os
from pathlib import Path

import click

from piiscout.utils import setup_shutdown_filter


@click.command('serve')
@click.option('--host', default='127.0.0.1', show_default=True, help='Host to bind')
@click.option('--port', default=8000, show_default=True, type=int, help='Port to bind')
@click.option(
    '--log-file',
    type=click.Path(dir_okay=False),
    default=None,
    help='Proxy log file to analyze (default: SCOUT_LOG_FILE or ./proxy-access.log)',
)
def serve_command(host: str, port: int, log_file: str | None):
    """Start the web API server.

    \b
    Examples:
        piiscout serve
        piiscout serve --port 8080 --log-file /var/log/proxy-access.log
    """
    import uvicorn

    if log_file:
        os.environ['SCOUT_LOG_FILE'] = str(Path(log_file).resolve())

    setup_shutdown_filter()
    click.echo(f'Starting PII Scout server on http://{host}:{port}')
    click.echo(f'API docs at http://{host}:{port}/docs')

    try:
        uvicorn.run('piiscout.web:app', host=host, port=port, log_level='info')
    except KeyboardInterrupt:
        click.echo('\nServer stopped')
