"""Main CLI entry point with command groups"""

import click

from piiscout.__version__ import __version__
from piiscout.cli.analyze import analyze_command, summary_command
from piiscout.cli.detect import detect_command
from piiscout.cli.patterns import patterns_command
from piiscout.cli.serve import serve_command
from piiscout.utils import get_log_level, setup_logging


class DefaultCommandGroup(click.Group):
    """Custom Click Group that runs `analyze` when the first argument is not a command"""

    def parse_args(self, ctx, args):
        # During shell completion, don't redirect to default command
        if ctx.resilient_parsing:
            return super().parse_args(ctx, args)

        if not args or args[0] in ('--help', '-h', '--version'):
            return super().parse_args(ctx, args)

        if args[0] in self.commands:
            return super().parse_args(ctx, args)

        return super().parse_args(ctx, ['analyze'] + args)


@click.group(cls=DefaultCommandGroup, invoke_without_command=True)
@click.version_option(version=__version__, prog_name='PII Scout')
@click.pass_context
def cli(ctx):
    """
    PII Scout - find PII, secrets and hashes in logging-proxy traffic.

    \b
    Commands:
      piiscout analyze <logfile>      Analyze a proxy access log (default command)
      piiscout summary <logfile>      Flagged traffic by endpoint, type and day
      piiscout detect <text>          Scan a single text
      piiscout patterns list          Show and edit the pattern catalog
      piiscout serve                  Start web API server

    \b
    Examples:
      piiscout proxy-access.log --filter flagged
      piiscout summary proxy-access.log --json
      piiscout detect "contact: alice@example.com"
      piiscout patterns disable phone
      piiscout serve --port 8000
    """
    setup_logging(get_log_level())
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        ctx.exit(0)


# Register subcommands (analyze is the default command)
cli.add_command(analyze_command, name='analyze')
cli.add_command(summary_command, name='summary')
cli.add_command(detect_command, name='detect')
cli.add_command(patterns_command, name='patterns')
cli.add_command(serve_command, name='serve')


def main():
    """Entry point for the CLI"""
    cli()


if __name__ == '__main__':
    main()
