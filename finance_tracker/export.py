"""CSV export of ledger records."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Iterable, List, Mapping, Sequence

from .models import Account, Transaction

TRANSACTION_HEADERS = [
    "Date",
    "Description",
    "Amount",
    "Account",
    "Category",
    "Budget",
    "Tax Deductible",
    "Linked",
    "Notes",
]

ACCOUNT_HEADERS = [
    "Name",
    "Budget",
    "Type",
    "Balance",
    "Credit Limit",
    "Interest Rate",
    "Due Day",
    "Minimum Payment",
    "Website",
]


def transaction_rows(
    transactions: Iterable[Transaction], account_names: Mapping[str, str]
) -> List[list]:
    return [
        [
            tx.date,
            tx.description,
            tx.amount,
            account_names.get(tx.account_id, ""),
            tx.category_id,
            tx.budget_type,
            "Yes" if tx.tax_deductible else "No",
            "Yes" if tx.linked_transaction_id else "No",
            tx.notes or "",
        ]
        for tx in transactions
    ]


def account_rows(accounts: Iterable[Account]) -> List[list]:
    return [
        [
            account.name,
            account.budget_type,
            account.account_type,
            account.balance,
            account.credit_limit,
            account.interest_rate,
            account.payment_due_date,
            account.minimum_payment,
            account.website_url or "",
        ]
        for account in accounts
    ]


def export_csv(rows: Iterable[Sequence[object]], path: Path, headers: Sequence[str]) -> int:
    """Write ``rows`` under ``headers``. Returns the number of data rows."""

    rows = list(rows)
    if not rows:
        raise ValueError("No data to export")
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(headers)
        for row in rows:
            writer.writerow(["" if value is None else value for value in row])
    return len(rows)
