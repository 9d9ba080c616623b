"""Import batch commands."""

import click
from ledgerline.cli.account_resolution import resolve_account_or_exit
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.account import AccountService
from ledgerline.domain.csv_import import ImportService
from ledgerline.domain.errors import DomainError, StorageError


@click.group()
def batch_group():
    """Inspect and undo import batches."""
    pass


@batch_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--limit", type=int, default=20, show_default=True, help="Number of batches to show")
@click.pass_context
def list_batches(ctx, account: str | None, limit: int):
    """List recent import batches."""
    db = ctx.obj["db"]
    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        batches = ImportService(db).list_batches(account_id=account_id, limit=limit)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    if not batches:
        click.echo("No import batches found.")
        return

    click.echo("\nImport batches:")
    click.echo("-" * 80)
    for batch in batches:
        status = "undone" if batch.is_undone else "active"
        click.echo(
            f"ID: {batch.id:3d} | {batch.imported_at:%Y-%m-%d %H:%M} | {batch.file_name:24s} | "
            f"{batch.imported_count} imported, {batch.duplicate_count} dup, "
            f"{batch.error_count} err | {status}"
        )


@batch_group.command("undo")
@click.argument("batch_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def undo_batch(ctx, batch_id: int, yes: bool):
    """Undo an import batch, archiving its transactions.

    Refused when any of the batch's transactions has been reconciled.
    Undoing a batch twice is harmless.
    """
    db = ctx.obj["db"]
    if not yes and not click.confirm(f"Undo import batch {batch_id}?"):
        click.echo("Undo cancelled.")
        return

    try:
        result = ImportService(db).undo_batch(batch_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    if result.already_undone:
        click.echo(f"Batch {batch_id} was already undone.")
    else:
        click.echo(f"Undid batch {batch_id}: archived {result.archived_count} transactions")


def register_commands(cli):
    """Register batch commands with main CLI."""
    cli.add_command(batch_group, name="batch")
