"""Recording transfers and keeping the two legs of a transfer linked.

A linked pair is two transactions in different accounts whose
``linked_transaction_id`` fields point at each other and whose amounts
cancel out. Every helper here either keeps both sides in that state or
clears the link on both sides.
"""

from __future__ import annotations

import enum
import logging
from datetime import date
from typing import List, Optional

from .ledger import Ledger
from .models import Transaction

logger = logging.getLogger(__name__)

# Fields copied to the partner when an edit is propagated.
SHARED_FIELDS = ("date", "description", "notes", "tax_deductible")


class LinkError(ValueError):
    """Raised when two transactions cannot be linked or are not linked."""


class LinkMode(enum.Enum):
    CREATE_PAIR = "create"
    LINK_EXISTING = "link"
    NONE = "none"


def _cancels(a: float, b: float) -> bool:
    return round(a + b, 2) == 0


def link_candidates(ledger: Ledger, account_id: str, amount: float) -> List[Transaction]:
    """Unlinked transactions in ``account_id`` that could pair with ``amount``."""

    return [
        tx
        for tx in ledger.filter_transactions(account_id=account_id)
        if not tx.linked_transaction_id and _cancels(tx.amount, amount)
    ]


def link_transactions(ledger: Ledger, first_id: str, second_id: str) -> tuple[Transaction, Transaction]:
    first = ledger.get_transaction(first_id)
    second = ledger.get_transaction(second_id)
    if first.id == second.id:
        raise LinkError("A transaction cannot be linked to itself")
    for tx in (first, second):
        if tx.linked_transaction_id:
            raise LinkError(f"Transaction {tx.id} is already linked to {tx.linked_transaction_id}")
    if not _cancels(first.amount, second.amount):
        raise LinkError(
            f"Linked amounts must cancel out: {first.amount:,.2f} and {second.amount:,.2f}"
        )
    return ledger.set_link(first.id, second.id), ledger.set_link(second.id, first.id)


def record_transfer(
    ledger: Ledger,
    transaction_date: date,
    description: str,
    amount: float,
    account_id: str,
    to_account_id: str,
    mode: LinkMode = LinkMode.CREATE_PAIR,
    existing_id: Optional[str] = None,
    **extra,
) -> tuple[Transaction, Optional[Transaction]]:
    """Record a transfer out of ``account_id`` into ``to_account_id``.

    ``mode`` decides what happens on the destination side: a paired
    transaction with the negated amount is created, an existing unlinked
    transaction (``existing_id``) is linked, or nothing is done. Returns
    the source leg and the destination leg, if any.
    """

    if account_id == to_account_id:
        raise ValueError("A transfer needs two different accounts")
    origin = ledger.get_account(account_id)
    destination = ledger.get_account(to_account_id)
    budget_type = extra.get("budget_type") or origin.budget_type
    if not extra.get("category_id"):
        extra["category_id"] = ledger.transfer_category(budget_type)
    if mode is LinkMode.LINK_EXISTING:
        if not existing_id:
            raise LinkError("An existing transaction id is required to link a transfer")
        target = ledger.get_transaction(existing_id)
        if target.account_id != to_account_id:
            raise LinkError(f"Transaction {existing_id} is not in the destination account")
        if target.linked_transaction_id or not _cancels(target.amount, amount):
            raise LinkError(f"Transaction {existing_id} cannot pair with this transfer")

    source = ledger.add_transaction(
        transaction_date, description, amount, account_id, to_account_id=to_account_id, **extra
    )
    if mode is LinkMode.NONE:
        return source, None

    if mode is LinkMode.CREATE_PAIR:
        counterpart = ledger.add_transaction(
            transaction_date,
            description,
            -source.amount,
            destination.id,
            category_id=source.category_id
            if destination.budget_type == source.budget_type
            else ledger.transfer_category(destination.budget_type),
            notes=source.notes,
            tax_deductible=source.tax_deductible,
        )
        existing_id = counterpart.id

    source, counterpart = link_transactions(ledger, source.id, existing_id)
    logger.info("Linked transfer %s with %s", source.id, counterpart.id)
    return source, counterpart


def unlink(ledger: Ledger, transaction_id: str) -> Optional[Transaction]:
    """Clear the link on both sides. Returns the former partner."""

    tx = ledger.get_transaction(transaction_id)
    partner = ledger.partner_of(transaction_id)
    ledger.set_link(tx.id, None)
    if partner is not None and partner.linked_transaction_id == tx.id:
        partner = ledger.set_link(partner.id, None)
    return partner


def update_linked(
    ledger: Ledger, transaction_id: str, changes: dict, propagate: bool
) -> tuple[Transaction, Optional[Transaction]]:
    """Edit one leg of a linked pair.

    With ``propagate`` the shared fields are copied to the partner and its
    amount is set to the negated new amount, so the pair stays linked.
    Without it only this transaction changes and the link is severed.
    """

    partner = ledger.partner_of(transaction_id)
    if partner is None:
        return ledger.update_transaction(transaction_id, **changes), None

    if not propagate:
        unlink(ledger, transaction_id)
        updated = ledger.update_transaction(transaction_id, **changes)
        return updated, ledger.get_transaction(partner.id)

    updated = ledger.update_transaction(transaction_id, **changes)
    partner_changes = {name: changes[name] for name in SHARED_FIELDS if name in changes}
    if "amount" in changes:
        partner_changes["amount"] = -updated.amount
    if partner_changes:
        partner = ledger.update_transaction(partner.id, **partner_changes)
    return updated, partner


def delete_linked(
    ledger: Ledger, transaction_id: str, delete_partner: bool
) -> List[Transaction]:
    """Delete a transaction and, when ``delete_partner`` is set, its partner.

    Otherwise the surviving partner keeps its data with the link cleared.
    """

    partner = ledger.partner_of(transaction_id)
    removed = [ledger.delete_transaction(transaction_id)]
    if partner is not None and delete_partner:
        removed.append(ledger.delete_transaction(partner.id))
    return removed
