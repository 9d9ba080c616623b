"""Transaction management commands."""

import click
from ledgerline.cli.account_resolution import resolve_account_or_exit
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.account import AccountService
from ledgerline.domain.category import CategoryService
from ledgerline.domain.entities import SplitLine
from ledgerline.domain.errors import DomainError, StorageError
from ledgerline.domain.transaction import TransactionService
from ledgerline.utils.amount_parser import format_cents, parse_amount_cents
from ledgerline.utils.date_parser import parse_date


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


@transaction_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD, 'today' or 'yesterday')")
@click.option("--end-date", help="End date (YYYY-MM-DD, 'today' or 'yesterday')")
@click.option("--category", help="Category path (e.g., 'Food & Dining > Groceries')")
@click.option("--account", help="Account name or ID")
@click.option("--batch", "batch_id", type=int, help="Only transactions from this import batch")
@click.option("--unreviewed", is_flag=True, help="Show only transactions not yet reviewed")
@click.option("--all", "include_archived", is_flag=True, help="Include archived (undone) transactions")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    category: str | None,
    account: str | None,
    batch_id: int | None,
    unreviewed: bool,
    include_archived: bool,
):
    """View transactions with optional filters."""
    db = ctx.obj["db"]
    service = TransactionService(db)
    category_service = CategoryService(db)
    account_service = AccountService(db)

    start = None
    if start_date:
        try:
            start = parse_date(start_date)
        except ValueError as e:
            click.echo(f"Error: Invalid start date: {e}", err=True)
            ctx.exit(1)

    end = None
    if end_date:
        try:
            end = parse_date(end_date)
        except ValueError as e:
            click.echo(f"Error: Invalid end date: {e}", err=True)
            ctx.exit(1)

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, account_service, account)

    transactions = service.list_transactions(
        start_date=start,
        end_date=end,
        category_path=category,
        account_id=account_id,
        batch_id=batch_id,
        unreviewed_only=unreviewed,
        include_archived=include_archived,
    )

    if not transactions:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc.name for acc in account_service.list_accounts(include_archived=True)}

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 110)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':>12} {'Account':<16} {'Category':<26} {'Payee / Description':<30} Flags"
    )
    click.echo("-" * 110)

    for txn in transactions:
        if txn.is_split:
            category_name = f"Split ({len(txn.lines)})"
        elif txn.primary_category_id is not None:
            category_name = category_service.format_category_path(txn.primary_category_id)
        else:
            category_name = ""

        flags = "".join(
            flag
            for flag, on in (("R", txn.is_reviewed), ("C", txn.reconciled), ("A", txn.is_archived))
            if on
        )
        label = (txn.payee or txn.description)[:30]
        click.echo(
            f"{txn.id:<6} {str(txn.date):<12} {format_cents(txn.amount):>12} "
            f"{accounts.get(txn.account_id, 'Unknown')[:16]:<16} {category_name[:26]:<26} {label:<30} {flags}"
        )

    total_expenses = sum(txn.amount for txn in transactions if txn.amount < 0)
    total_income = sum(txn.amount for txn in transactions if txn.amount > 0)
    click.echo("-" * 110)
    click.echo(
        f"Expenses: {format_cents(-total_expenses)} | Income: {format_cents(total_income)} | "
        f"Count: {len(transactions)}"
    )


@transaction_group.command("categorize")
@click.argument("transaction_id", type=int)
@click.argument("category")
@click.pass_context
def categorize(ctx, transaction_id: int, category: str):
    """Assign a category to a transaction and mark it reviewed.

    Examples:
        ledgerline transaction categorize 12 "Food & Dining > Groceries"
    """
    db = ctx.obj["db"]
    try:
        category_obj = CategoryService(db).require_category(category)
        TransactionService(db).set_category(transaction_id, category_obj.id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Categorized transaction {transaction_id} as '{category}'")


def _parse_split_line(category_service: CategoryService, value: str) -> SplitLine:
    path, sep, amount = value.rpartition("=")
    if not sep or not path.strip():
        raise click.BadParameter(f"expected CATEGORY=AMOUNT, got '{value}'", param_hint="LINES")
    try:
        cents = parse_amount_cents(amount)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="LINES")
    return SplitLine(amount=cents, category_id=category_service.require_category(path.strip()).id)


@transaction_group.command("split")
@click.argument("transaction_id", type=int)
@click.argument("lines", nargs=-1, required=True)
@click.pass_context
def split(ctx, transaction_id: int, lines: tuple[str, ...]):
    """Split a transaction across categories.

    Each line is CATEGORY=AMOUNT, signed like the transaction. The lines
    must add up to the transaction amount.

    Examples:
        ledgerline transaction split 12 "Groceries=-40.00" "Household=-15.50"
    """
    db = ctx.obj["db"]
    category_service = CategoryService(db)
    try:
        split_lines = [_parse_split_line(category_service, value) for value in lines]
        TransactionService(db).split_transaction(transaction_id, split_lines)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Split transaction {transaction_id} into {len(split_lines)} lines")


@transaction_group.command("review")
@click.argument("transaction_id", type=int)
@click.option("--undo", is_flag=True, help="Clear the reviewed flag instead")
@click.pass_context
def review(ctx, transaction_id: int, undo: bool):
    """Mark a transaction as reviewed."""
    db = ctx.obj["db"]
    try:
        TransactionService(db).set_reviewed(transaction_id, reviewed=not undo)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transaction {transaction_id} marked {'unreviewed' if undo else 'reviewed'}")


@transaction_group.command("reconcile")
@click.argument("transaction_id", type=int)
@click.option("--undo", is_flag=True, help="Clear the reconciled flag instead")
@click.pass_context
def reconcile(ctx, transaction_id: int, undo: bool):
    """Mark a transaction as reconciled with the bank statement.

    Reconciled transactions are no longer changed by rules or batch undo.
    """
    db = ctx.obj["db"]
    try:
        TransactionService(db).mark_reconciled(transaction_id, reconciled=not undo)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Transaction {transaction_id} marked {'unreconciled' if undo else 'reconciled'}")


@transaction_group.command("payee")
@click.argument("transaction_id", type=int)
@click.argument("payee")
@click.pass_context
def set_payee(ctx, transaction_id: int, payee: str):
    """Set the payee of a transaction."""
    db = ctx.obj["db"]
    try:
        TransactionService(db).set_payee(transaction_id, payee)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Set payee of transaction {transaction_id} to '{payee.strip()}'")


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool) -> None:
    """Delete (archive) a transaction.

    Examples:
        ledgerline transaction delete 1
    """
    db = ctx.obj["db"]
    if not yes and not click.confirm(f"Are you sure you want to delete transaction {transaction_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        TransactionService(db).delete_transaction(transaction_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted transaction {transaction_id}")


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
