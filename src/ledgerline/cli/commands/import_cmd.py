"""CSV import command."""

import click
from ledgerline.cli.account_resolution import resolve_account_or_exit
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.account import AccountService
from ledgerline.domain.csv_import import ImportService
from ledgerline.domain.csv_mapping import CsvMappingService
from ledgerline.domain.entities import DATE_FORMATS
from ledgerline.domain.errors import DomainError, StorageError
from ledgerline.utils.amount_parser import format_cents


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--account", required=True, help="Account name or ID")
@click.option("--profile", help="Built-in bank profile (e.g. CHASE_CHECKING, AMEX)")
@click.option("--date-column", help="Column holding the transaction date")
@click.option("--description-column", help="Column holding the description")
@click.option("--amount-column", help="Column holding the signed amount")
@click.option("--inflow-column", help="Column holding money in (separate mode)")
@click.option("--outflow-column", help="Column holding money out (separate mode)")
@click.option("--date-format", type=click.Choice(DATE_FORMATS), default="MM/dd/yyyy", show_default=True)
@click.option("--no-header", is_flag=True, help="The file has no header row; columns are 0, 1, 2, ...")
@click.option("--dry-run", is_flag=True, help="Classify rows without importing anything")
@click.option("--no-rules", is_flag=True, help="Do not apply categorization rules after import")
@click.option("--show-rows", is_flag=True, help="List duplicate, fuzzy and invalid rows")
@click.option(
    "--accept-fuzzy",
    "accept_rows",
    type=click.IntRange(min=1),
    multiple=True,
    help="Import a possible duplicate anyway (row number as shown by --show-rows; repeatable)",
)
@click.pass_context
def import_csv(
    ctx,
    csv_file: str,
    account: str,
    profile: str | None,
    date_column: str | None,
    description_column: str | None,
    amount_column: str | None,
    inflow_column: str | None,
    outflow_column: str | None,
    date_format: str,
    no_header: bool,
    dry_run: bool,
    no_rules: bool,
    show_rows: bool,
    accept_rows: tuple[int, ...],
):
    """Import transactions from a CSV file.

    The column mapping comes from the options, a bank profile, or the
    mapping saved on the account by its previous import.

    Examples:
        ledgerline import statement.csv --account "Chase" --profile CHASE_CHECKING
        ledgerline import export.csv --account 2 --date-column Date \\
            --description-column Memo --amount-column Amount --date-format yyyy-MM-dd
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    service = ImportService(db, settings=ctx.obj.get("settings"))

    try:
        mapping = None
        if date_column or description_column:
            if not (date_column and description_column):
                raise click.UsageError("--date-column and --description-column go together")
            mapping = CsvMappingService(db).build_mapping(
                date_column=date_column,
                description_column=description_column,
                amount_column=amount_column,
                date_format=date_format,
                has_header_row=not no_header,
                inflow_column=inflow_column,
                outflow_column=outflow_column,
            )

        preview = service.preview_file(account_id, csv_file, mapping=mapping, profile=profile)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    stats = preview.stats
    click.echo(f"\nStaged {stats.total_rows} rows from {preview.file_name}:")
    click.echo(f"  New: {stats.new_count}")
    click.echo(f"  Duplicates: {stats.duplicate_count}")
    click.echo(f"  Possible duplicates: {stats.fuzzy_duplicate_count}")
    click.echo(f"  Invalid: {stats.error_count}")

    if show_rows:
        for txn in preview.processed:
            if txn.status == "duplicate":
                click.echo(f"  row {txn.row_index + 1}: duplicate of {txn.duplicate_of_id or 'an earlier row'}")
            elif txn.status == "fuzzy_duplicate":
                click.echo(
                    f"  row {txn.row_index + 1}: {txn.date} {format_cents(txn.amount)} '{txn.description}'"
                    f" looks like transaction {txn.duplicate_of_id} ({txn.similarity}% similar)"
                )
        for staged in preview.invalid_rows:
            click.echo(f"  row {staged.row_index + 1}: {'; '.join(staged.errors)}", err=True)

    flagged = {txn.row_index + 1 for txn in preview.with_status("fuzzy_duplicate")}
    for row in accept_rows:
        if row not in flagged:
            click.echo(f"Warning: row {row} is not a possible duplicate; --accept-fuzzy ignored", err=True)

    if dry_run:
        click.echo("\nDry run: nothing was imported.")
        return

    try:
        result = service.commit(
            preview,
            apply_rules=False if no_rules else None,
            accept_fuzzy=[row - 1 for row in accept_rows],
        )
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    click.echo("\nImport complete:")
    if result.batch_id is None:
        click.echo("  Nothing new to import.")
        return
    click.echo(f"  Imported: {result.imported_count} transactions (batch {result.batch_id})")
    click.echo(f"  Skipped: {result.duplicate_count} duplicates")
    if result.rule_result is not None:
        click.echo(f"  Categorized by rules: {result.rule_result.applied_count}")
    if result.payee_report is not None:
        click.echo(
            f"  Payees: {result.payee_report.auto_applied} matched, "
            f"{result.payee_report.suggested} suggested"
        )
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
