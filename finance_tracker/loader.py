"""Helpers for importing transactions from bank CSV exports."""

from __future__ import annotations

import csv
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .ledger import Ledger
from .models import UNCATEGORIZED, Account, Transaction
from .vendors import SIMILARITY_THRESHOLD, find_similar_vendors, normalize_vendor_name

logger = logging.getLogger(__name__)

FIELDS = ("date", "description", "amount", "category", "account", "notes")
REQUIRED_FIELDS = ("date", "description", "amount")

_US_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_NON_NUMERIC = re.compile(r"[^\d.\-]")


@dataclass(frozen=True)
class ColumnMapping:
    """Column index for each imported field; ``None`` when unmapped."""

    date: int
    description: int
    amount: int
    category: Optional[int] = None
    account: Optional[int] = None
    notes: Optional[int] = None

    @classmethod
    def from_header(cls, header: Sequence[str], names: Dict[str, str]) -> "ColumnMapping":
        """Build a mapping from ``{field: header name}``."""

        lookup = {name.strip().lower(): index for index, name in enumerate(header)}
        indices: Dict[str, Optional[int]] = {}
        for name in FIELDS:
            column = names.get(name)
            if column is None:
                if name in REQUIRED_FIELDS:
                    raise ValueError(f"No column mapped for {name}")
                indices[name] = None
                continue
            key = column.strip().lower()
            if key not in lookup:
                raise ValueError(f"Column {column!r} not found in CSV header")
            indices[name] = lookup[key]
        return cls(**indices)

    def value(self, row: Sequence[str], name: str) -> str:
        index = getattr(self, name)
        if index is None or index >= len(row):
            return ""
        return row[index].strip()


@dataclass(frozen=True)
class RowError:
    row_number: int
    message: str


@dataclass
class ImportResult:
    imported: List[Transaction] = field(default_factory=list)
    errors: List[RowError] = field(default_factory=list)
    # Cleaned vendor name -> existing descriptions that look like it.
    similar_vendors: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def parse_date(value: str) -> date:
    """Parse ``YYYY-MM-DD`` or ``MM/DD/YYYY``."""

    text = (value or "").strip()
    match = _US_DATE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        return date(year, month, day)
    return datetime.strptime(text, "%Y-%m-%d").date()


def parse_amount(value: str) -> float:
    """Parse an amount such as ``"$1,234.50"`` or ``"(20.00)"``."""

    text = (value or "").strip()
    negative = text.startswith("(") and text.endswith(")")
    cleaned = _NON_NUMERIC.sub("", text)
    if cleaned in ("", "-", ".", "-."):
        raise ValueError(f"Not an amount: {value!r}")
    amount = float(cleaned)
    return -abs(amount) if negative else amount


def _iter_clean_rows(path: Path) -> Iterator[List[str]]:
    with path.open(newline="", encoding="utf-8-sig") as csvfile:
        reader = csv.reader(csvfile)
        for row in reader:
            if not any(field.strip() for field in row):
                continue
            yield row


def read_rows(path: str | Path) -> List[List[str]]:
    return list(_iter_clean_rows(Path(path)))


def _resolve_account(
    ledger: Ledger, name: str, fallback: Account
) -> Account:
    if name:
        account = ledger.find_account(name)
        if account is not None:
            return account
        logger.debug("Unknown account %r, using %s", name, fallback.name)
    return fallback


def _resolve_category(ledger: Ledger, value: str, budget_type: str) -> str:
    if not value:
        return UNCATEGORIZED
    key = value.strip().lower()
    for category in ledger.categories:
        if category.budget_type != budget_type or not category.is_active:
            continue
        if category.id == value or category.name.lower() == key:
            return category.id
    return UNCATEGORIZED


def import_rows(
    ledger: Ledger,
    rows: Iterable[Sequence[str]],
    mapping: ColumnMapping,
    budget_type: Optional[str] = None,
    default_account_id: Optional[str] = None,
    clean_vendors: bool = True,
    first_row_number: int = 2,
) -> ImportResult:
    """Add each row as a transaction, collecting the rows that fail.

    Rows with an unreadable date or amount are skipped and reported in
    :attr:`ImportResult.errors`; every other row is imported.
    """

    candidates = ledger.accounts_for(budget_type) or ledger.accounts
    if default_account_id:
        fallback = ledger.get_account(default_account_id)
    elif candidates:
        fallback = candidates[0]
    else:
        raise ValueError("Add an account before importing transactions")

    existing = ledger.distinct_descriptions()
    threshold = ledger.settings.similarity_threshold or SIMILARITY_THRESHOLD
    result = ImportResult()

    for row_number, row in enumerate(rows, start=first_row_number):
        try:
            tx_date = parse_date(mapping.value(row, "date"))
        except ValueError:
            result.errors.append(RowError(row_number, f"Invalid date: {mapping.value(row, 'date')!r}"))
            continue
        try:
            amount = parse_amount(mapping.value(row, "amount"))
        except ValueError:
            result.errors.append(RowError(row_number, f"Invalid amount: {mapping.value(row, 'amount')!r}"))
            continue

        description = mapping.value(row, "description")
        if clean_vendors:
            description = normalize_vendor_name(description) or description
        account = _resolve_account(ledger, mapping.value(row, "account"), fallback)
        tx_budget_type = budget_type or account.budget_type
        tx = ledger.add_transaction(
            tx_date,
            description,
            amount,
            account.id,
            category_id=_resolve_category(ledger, mapping.value(row, "category"), tx_budget_type),
            budget_type=tx_budget_type,
            notes=mapping.value(row, "notes") or None,
        )
        result.imported.append(tx)

        if description not in result.similar_vendors:
            similar = find_similar_vendors(description, existing, threshold)
            if similar:
                result.similar_vendors[description] = similar

    for error in result.errors:
        logger.warning("Row %d skipped: %s", error.row_number, error.message)
    logger.info("Imported %d transactions, %d rows failed", len(result.imported), len(result.errors))
    return result


def import_transactions(
    ledger: Ledger,
    path: str | Path,
    mapping: ColumnMapping | Dict[str, str],
    **options,
) -> ImportResult:
    """Import a CSV file whose first non-empty row is the header.

    ``mapping`` is either a :class:`ColumnMapping` or ``{field: header name}``.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")
    rows = read_rows(path)
    if not rows:
        return ImportResult()
    header, *data_rows = rows
    if not isinstance(mapping, ColumnMapping):
        mapping = ColumnMapping.from_header(header, mapping)
    return import_rows(ledger, data_rows, mapping, **options)
