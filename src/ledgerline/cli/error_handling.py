"""CLI error handling helpers."""

import click

from ledgerline.domain.errors import ConcurrentEditError, DomainError, StorageError


def handle_domain_error(ctx: click.Context, error: DomainError | StorageError | ValueError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    if isinstance(error, ConcurrentEditError):
        click.echo("Reload the record and try again.", err=True)
    ctx.exit(1)
