"""Category management commands."""

import click
from ledgerline.cli.error_handling import handle_domain_error
from ledgerline.domain.category import CategoryService
from ledgerline.domain.errors import DomainError, StorageError


@click.group()
def category_group():
    """Manage categories."""
    pass


@category_group.command("list")
@click.option("--all", "include_archived", is_flag=True, help="Include archived categories")
@click.pass_context
def list_categories(ctx, include_archived: bool):
    """List categories with their full paths."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    categories = service.list_categories(include_archived=include_archived)
    if not categories:
        click.echo("No categories found. Use 'category create' to add one.")
        return

    click.echo("\nCategories:")
    paths = sorted((service.format_category_path(cat.id), cat) for cat in categories)
    for path, cat in paths:
        flag = " (archived)" if cat.is_archived else ""
        click.echo(f"{path} (ID: {cat.id}){flag}")


@category_group.command("create")
@click.argument("name")
@click.option("--parent", help="Parent category path (e.g., 'Food & Dining')")
@click.pass_context
def create_category(ctx, name: str, parent: str | None):
    """Create a new category."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        category_id = service.create_category(name=name, parent_path=parent)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)

    parent_str = f" under '{parent}'" if parent else ""
    click.echo(f"Created category '{name}'{parent_str} (ID: {category_id})")


@category_group.command("archive")
@click.argument("path")
@click.pass_context
def archive_category(ctx, path: str):
    """Archive a category by path."""
    db = ctx.obj["db"]
    service = CategoryService(db)

    try:
        category = service.require_category(path)
        service.archive_category(category.id)
    except (DomainError, StorageError) as e:
        handle_domain_error(ctx, e)
    click.echo(f"Archived category '{path}'")


def register_commands(cli):
    """Register category commands with main CLI."""
    cli.add_command(category_group, name="category")
