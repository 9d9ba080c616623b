"""Account management commands."""

import json

import click
from ledgerline.cli.account_resolution import resolve_account_or_exit
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.account import AccountService
from ledgerline.domain.csv_mapping import CsvMappingService
from ledgerline.domain.errors import DomainError, StorageError


@click.group()
def account_group():
    """Manage accounts."""
    pass


@account_group.command("create")
@click.argument("name", metavar="ACCOUNT_NAME")
@click.option("--bank", help="Bank name (defaults to account name if not provided)")
@click.option("--profile", help="Built-in bank profile to use as the account's CSV mapping")
@click.pass_context
def create_account(ctx, name: str, bank: str | None, profile: str | None):
    """Create a new account.

    If --bank is not provided, the bank name will be set to the account name.

    Examples:
        ledgerline account create "Chase"
        ledgerline account create "My Checking" --bank "Chase" --profile CHASE_CHECKING
    """
    db = ctx.obj["db"]
    service = AccountService(db)

    # If bank not provided, use account name as bank name
    bank_name = bank if bank is not None else name

    try:
        mapping = CsvMappingService(db).get_profile(profile) if profile else None
        account_id = service.create_account(name=name, bank_name=bank_name, csv_mapping=mapping)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Created account '{name}' (ID: {account_id})")
    if bank is None:
        click.echo(f"Bank name set to '{bank_name}'")


@account_group.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived accounts")
@click.pass_context
def list_accounts(ctx, include_archived: bool):
    """List accounts."""
    db = ctx.obj["db"]
    service = AccountService(db)

    accounts = service.list_accounts(include_archived=include_archived)
    if not accounts:
        click.echo("No accounts found.")
        return

    click.echo("\nAccounts:")
    click.echo("-" * 60)
    for acc in accounts:
        flag = " (archived)" if acc.is_archived else ""
        click.echo(f"ID: {acc.id:3d} | {acc.name:20s} | Bank: {acc.bank_name}{flag}")


@account_group.command("archive")
@click.argument("account", metavar="ACCOUNT")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def archive_account(ctx, account: str, yes: bool) -> None:
    """Archive an account.

    ACCOUNT can be an account name or ID. Transactions and import history
    are kept; the account just stops accepting imports.
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    if not yes and not click.confirm(f"Archive account {account_id}?"):
        click.echo("Archive cancelled.")
        return

    try:
        service.archive_account(account_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived account {account_id}")


@account_group.command("mapping")
@click.argument("account", metavar="ACCOUNT")
@click.option("--profile", help="Replace the saved mapping with a built-in bank profile")
@click.pass_context
def show_mapping(ctx, account: str, profile: str | None) -> None:
    """Show (or set from a profile) the CSV mapping saved on an account.

    Examples:
        ledgerline account mapping "Chase"
        ledgerline account mapping "Amex" --profile AMEX
    """
    db = ctx.obj["db"]
    service = AccountService(db)
    account_id = resolve_account_or_exit(ctx, service, account)

    try:
        if profile:
            service.save_mapping(account_id, CsvMappingService(db).get_profile(profile))
            click.echo(f"Saved profile {profile.upper()} as the mapping of account {account_id}")
        mapping = service.get_mapping(account_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    if mapping is None:
        click.echo("No CSV mapping saved for this account.")
        return
    click.echo(json.dumps(mapping.to_dict(), indent=2))


def register_commands(cli):
    """Register account commands with main CLI."""
    cli.add_command(account_group, name="account")
