"""Utility for resolving account names to IDs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ledgerline.domain.errors import NotFoundError

if TYPE_CHECKING:
    from ledgerline.domain.account import AccountService


def resolve_account(account_service: AccountService, account: str | int) -> int:
    """Resolve account name or ID to account ID.

    Args:
        account_service: AccountService instance
        account: Account name (str) or ID (int or string representation of int)

    Returns:
        Account ID

    Raises:
        NotFoundError: If account is not found or is archived
    """
    if isinstance(account, int):
        account_id = account
    else:
        try:
            account_id = int(account)
        except (ValueError, TypeError):
            account_id = None

    if account_id is not None:
        account_obj = account_service.get_account(account_id)
        if account_obj is None or account_obj.is_archived:
            raise NotFoundError(f"Account ID {account_id} not found")
        return account_id

    for acc in account_service.list_accounts():
        if acc.name == account:
            return acc.id

    raise NotFoundError(f"Account '{account}' not found")
