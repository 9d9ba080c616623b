"""Per-entity deletion policy.

Entities referenced by history are archived rather than removed, so old
transactions keep their account, category and payee. Rules carry no history
of their own (transactions keep the category a rule set) and are removed
outright.
"""

from enum import Enum

from ledgerline.database.models import Account, Category, Payee, Rule, Transaction


class DeletionPolicy(Enum):
    """How a delete request is carried out."""

    SOFT = "soft"
    HARD = "hard"


DELETION_POLICIES = {
    Account: DeletionPolicy.SOFT,
    Category: DeletionPolicy.SOFT,
    Payee: DeletionPolicy.SOFT,
    Transaction: DeletionPolicy.SOFT,
    Rule: DeletionPolicy.HARD,
}


def deletion_policy(model: type) -> DeletionPolicy:
    """Return the policy for an ORM model class."""
    try:
        return DELETION_POLICIES[model]
    except KeyError:
        raise ValueError(f"No deletion policy for {model.__name__}")
