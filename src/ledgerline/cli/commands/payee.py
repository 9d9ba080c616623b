"""Payee management commands."""

import click
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.category import CategoryService
from ledgerline.domain.errors import DomainError, StorageError
from ledgerline.domain.payee import PayeeService


@click.group()
def payee_group():
    """Manage known payees."""
    pass


@payee_group.command("create")
@click.argument("name")
@click.option("--alias", "aliases", multiple=True, help="Alternative spelling (repeatable)")
@click.option("--category", help="Default category path")
@click.pass_context
def create_payee(ctx, name: str, aliases: tuple[str, ...], category: str | None):
    """Create a payee.

    Examples:
        ledgerline payee create "Starbucks" --alias "SBUX" --category "Food & Dining > Coffee"
    """
    db = ctx.obj["db"]
    service = PayeeService(db)

    try:
        category_id = CategoryService(db).require_category(category).id if category else None
        payee_id = service.create_payee(name, aliases=aliases, default_category_id=category_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created payee '{name}' (ID: {payee_id})")


@payee_group.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived payees")
@click.pass_context
def list_payees(ctx, include_archived: bool):
    """List payees."""
    db = ctx.obj["db"]
    payees = PayeeService(db).list_payees(include_archived=include_archived)
    if not payees:
        click.echo("No payees found.")
        return

    click.echo("\nPayees:")
    for payee in payees:
        aliases = f" (aliases: {', '.join(payee.aliases)})" if payee.aliases else ""
        flag = " (archived)" if payee.is_archived else ""
        click.echo(f"ID: {payee.id:3d} | {payee.name}{aliases}{flag}")


@payee_group.command("archive")
@click.argument("payee_id", type=int)
@click.pass_context
def archive_payee(ctx, payee_id: int):
    """Archive a payee."""
    db = ctx.obj["db"]
    try:
        PayeeService(db).archive_payee(payee_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived payee {payee_id}")


@payee_group.command("guess")
@click.argument("description")
@click.pass_context
def guess(ctx, description: str):
    """Show which payee a bank description would resolve to."""
    db = ctx.obj["db"]
    result = PayeeService(db).guess(description)
    if result.payee is not None:
        click.echo(f"{result.payee.name} (known payee, confidence {result.confidence})")
    elif result.suggested_name:
        click.echo(f"{result.suggested_name} (suggested, confidence {result.confidence})")
    else:
        click.echo("No payee could be inferred.")


def register_commands(cli):
    """Register payee commands with main CLI."""
    cli.add_command(payee_group, name="payee")
