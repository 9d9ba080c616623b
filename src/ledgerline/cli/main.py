"""Main CLI entry point."""

import click
from ledgerline.config import PipelineSettings
from ledgerline.database.factories import create_sqlite_database
from ledgerline.domain.errors import ValidationError
from ledgerline.logging import setup_logging

# Import and register all commands at module level
from ledgerline.cli.commands import (
    account,
    batch,
    category,
    import_cmd,
    payee,
    rule,
    transaction,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERLINE_DB_PATH environment variable)",
    envvar="LEDGERLINE_DB_PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Log level (overrides LEDGERLINE_LOG_LEVEL, default WARNING)",
)
@click.pass_context
def cli(ctx, db_path: str | None, log_level: str | None):
    """Ledgerline - bank statement ingestion for bookkeeping.

    Import CSV exports from your banks, skip what was already imported,
    flag likely duplicates, and categorize new transactions with rules.
    """
    ctx.ensure_object(dict)

    try:
        settings = PipelineSettings.from_env()
    except ValidationError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(1)

    setup_logging(log_level or settings.log_level, json_output=settings.log_json)
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
category.register_commands(cli)
payee.register_commands(cli)
rule.register_commands(cli)
import_cmd.register_commands(cli)
batch.register_commands(cli)
transaction.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
