"""Categorization rule commands."""

import click
from ledgerline.cli.account_resolution import resolve_account_or_exit
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.account import AccountService
from ledgerline.domain.category import CategoryService
from ledgerline.domain.entities import MATCH_TYPES
from ledgerline.domain.errors import DomainError, StorageError
from ledgerline.domain.rule import DEFAULT_PRIORITY, RuleService
from ledgerline.utils.amount_parser import format_cents, parse_amount_cents


def _parse_range(value: str, option: str) -> tuple[int, int]:
    """Parse "START-END" (or a single number) into an inclusive pair."""
    start, _, end = value.partition("-")
    try:
        low = int(start)
        high = int(end) if end else low
    except ValueError:
        raise click.BadParameter(f"expected N or N-M, got '{value}'", param_hint=option)
    return low, high


def build_conditions(
    min_amount: str | None,
    max_amount: str | None,
    months: str | None,
    days: str | None,
    description_regex: str | None,
) -> list[dict]:
    """Turn CLI options into tagged condition dictionaries."""
    conditions = []
    if min_amount is not None or max_amount is not None:
        try:
            conditions.append(
                {
                    "type": "amount_range",
                    "min_cents": abs(parse_amount_cents(min_amount)) if min_amount else None,
                    "max_cents": abs(parse_amount_cents(max_amount)) if max_amount else None,
                }
            )
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--min-amount/--max-amount")
    if months:
        start, end = _parse_range(months, "--months")
        conditions.append({"type": "month_range", "start_month": start, "end_month": end})
    if days:
        start, end = _parse_range(days, "--days")
        conditions.append({"type": "day_range", "start_day": start, "end_day": end})
    if description_regex:
        conditions.append({"type": "description_regex", "pattern": description_regex})
    return conditions


def describe_condition(condition) -> str:
    data = condition.to_dict()
    kind = data.pop("type")
    if kind == "amount_range":
        low = format_cents(data["min_cents"]) if data["min_cents"] is not None else "*"
        high = format_cents(data["max_cents"]) if data["max_cents"] is not None else "*"
        return f"amount {low}..{high}"
    parts = ", ".join(f"{k}={v}" for k, v in data.items() if v is not None)
    return f"{kind}({parts})"


@click.group()
def rule_group():
    """Manage categorization rules."""
    pass


@rule_group.command("create")
@click.argument("keyword")
@click.option("--category", required=True, help="Target category path")
@click.option(
    "--match-type",
    type=click.Choice(MATCH_TYPES),
    default="contains",
    show_default=True,
    help="How the keyword is matched",
)
@click.option("--priority", type=int, default=DEFAULT_PRIORITY, show_default=True, help="1-100, higher wins")
@click.option("--case-sensitive", is_flag=True, help="Match case exactly")
@click.option("--payee", help="Payee to set when the rule applies")
@click.option("--min-amount", help="Minimum absolute amount (e.g. 10.00)")
@click.option("--max-amount", help="Maximum absolute amount (e.g. 250.00)")
@click.option("--months", help="Month range, e.g. 11-12")
@click.option("--days", help="Day-of-month range, e.g. 1-5")
@click.option("--description-regex", help="Extra regex the description must match")
@click.option("--disabled", is_flag=True, help="Create the rule disabled")
@click.pass_context
def create_rule(
    ctx,
    keyword: str,
    category: str,
    match_type: str,
    priority: int,
    case_sensitive: bool,
    payee: str | None,
    min_amount: str | None,
    max_amount: str | None,
    months: str | None,
    days: str | None,
    description_regex: str | None,
    disabled: bool,
):
    """Create a categorization rule.

    Examples:
        ledgerline rule create "starbucks" --category "Food & Dining > Coffee"
        ledgerline rule create "^AMZN" --match-type regex --category "Shopping" --priority 80
        ledgerline rule create "insurance" --category "Bills" --min-amount 100 --days 1-5
    """
    db = ctx.obj["db"]
    service = RuleService(db)
    conditions = build_conditions(min_amount, max_amount, months, days, description_regex)

    try:
        target = CategoryService(db).require_category(category)
        rule_id = service.create_rule(
            keyword=keyword,
            target_category_id=target.id,
            match_type=match_type,
            priority=priority,
            case_sensitive=case_sensitive,
            suggested_payee=payee,
            conditions=conditions,
            is_enabled=not disabled,
        )
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Created rule {rule_id}: {match_type} '{keyword}' -> {category} (priority {priority})")


@rule_group.command("list")
@click.option("--enabled-only", is_flag=True, help="Only show enabled rules")
@click.pass_context
def list_rules(ctx, enabled_only: bool):
    """List rules, highest priority first."""
    db = ctx.obj["db"]
    rules = RuleService(db).list_rules(enabled_only=enabled_only)
    if not rules:
        click.echo("No rules found.")
        return

    category_service = CategoryService(db)
    click.echo("\nRules:")
    click.echo("-" * 80)
    for rule in rules:
        status = "on " if rule.is_enabled else "off"
        target = category_service.format_category_path(rule.target_category_id)
        click.echo(
            f"ID: {rule.id:3d} | [{status}] p{rule.priority:<3d} | {rule.match_type} '{rule.keyword}'"
            f" -> {target} | used {rule.use_count}x"
        )
        for condition in rule.conditions:
            click.echo(f"       and {describe_condition(condition)}")


def _set_enabled(ctx, rule_id: int, enabled: bool) -> None:
    db = ctx.obj["db"]
    try:
        RuleService(db).set_enabled(rule_id, enabled)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Rule {rule_id} {'enabled' if enabled else 'disabled'}")


@rule_group.command("enable")
@click.argument("rule_id", type=int)
@click.pass_context
def enable_rule(ctx, rule_id: int):
    """Enable a rule."""
    _set_enabled(ctx, rule_id, True)


@rule_group.command("disable")
@click.argument("rule_id", type=int)
@click.pass_context
def disable_rule(ctx, rule_id: int):
    """Disable a rule."""
    _set_enabled(ctx, rule_id, False)


@rule_group.command("delete")
@click.argument("rule_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def delete_rule(ctx, rule_id: int, yes: bool):
    """Delete a rule permanently."""
    db = ctx.obj["db"]
    if not yes and not click.confirm(f"Delete rule {rule_id}?"):
        click.echo("Deletion cancelled.")
        return
    try:
        RuleService(db).delete_rule(rule_id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deleted rule {rule_id}")


@rule_group.command("apply")
@click.option("--account", help="Account name or ID (default: all accounts)")
@click.option("--override-reviewed", is_flag=True, help="Also re-categorize reviewed transactions")
@click.pass_context
def apply_rules(ctx, account: str | None, override_reviewed: bool):
    """Apply enabled rules to stored transactions.

    Only unreviewed transactions are considered unless --override-reviewed
    is given. Reconciled transactions are never changed.
    """
    db = ctx.obj["db"]
    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        result = RuleService(db).apply_rules(account_id=account_id, override_reviewed=override_reviewed)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    click.echo(f"Processed {result.total_transactions} transactions:")
    click.echo(f"  Categorized: {result.applied_count}")
    click.echo(f"  Skipped: {result.skipped_count}")
    click.echo(f"  Errors: {result.error_count}")
    for item in result.results:
        if item.conflict:
            click.echo(f"  Transaction {item.transaction_id}: {item.reason}, reload and retry", err=True)


def register_commands(cli):
    """Register rule commands with main CLI."""
    cli.add_command(rule_group, name="rule")
