"""Saving and loading the ledger as a JSON document."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, fields
from datetime import date
from pathlib import Path
from typing import Any, Dict

from .ledger import Ledger, default_categories
from .models import Account, Category, IncomeSource, MonthlyBudget, TrackerSettings, Transaction
from .rules import AutoCategorizationRule

logger = logging.getLogger(__name__)

VERSION = "1"


def _known(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    # Ignore keys written by newer versions.
    names = {f.name for f in fields(cls)}
    return {key: value for key, value in data.items() if key in names}


def ledger_to_dict(ledger: Ledger) -> Dict[str, Any]:
    transactions = []
    for tx in ledger.transactions:
        record = asdict(tx)
        record["date"] = tx.date.isoformat()
        transactions.append(record)
    categories = []
    for category in ledger.categories:
        record = asdict(category)
        record["auto_categorization"] = list(category.auto_categorization)
        categories.append(record)
    income_sources = []
    for source in ledger.income_sources:
        record = asdict(source)
        if source.next_expected_date:
            record["next_expected_date"] = source.next_expected_date.isoformat()
        income_sources.append(record)
    return {
        "version": VERSION,
        "settings": asdict(ledger.settings),
        "accounts": [asdict(account) for account in ledger.accounts],
        "transactions": transactions,
        "categories": categories,
        "rules": [asdict(rule) for rule in ledger.rules],
        "monthly_budgets": [asdict(budget) for budget in ledger.monthly_budgets],
        "income_sources": income_sources,
    }


def ledger_from_dict(data: Dict[str, Any]) -> Ledger:
    transactions = []
    for record in data.get("transactions", []):
        record = _known(Transaction, record)
        record["date"] = date.fromisoformat(record["date"])
        transactions.append(Transaction(**record))
    categories = []
    for record in data.get("categories", []):
        record = _known(Category, record)
        record["auto_categorization"] = tuple(record.get("auto_categorization") or ())
        categories.append(Category(**record))
    income_sources = []
    for record in data.get("income_sources", []):
        record = _known(IncomeSource, record)
        if record.get("next_expected_date"):
            record["next_expected_date"] = date.fromisoformat(record["next_expected_date"])
        income_sources.append(IncomeSource(**record))
    return Ledger(
        accounts=[Account(**_known(Account, record)) for record in data.get("accounts", [])],
        transactions=transactions,
        categories=categories,
        rules=[
            AutoCategorizationRule(**_known(AutoCategorizationRule, record))
            for record in data.get("rules", [])
        ],
        settings=TrackerSettings(**_known(TrackerSettings, data.get("settings") or {})),
        monthly_budgets=[
            MonthlyBudget(**_known(MonthlyBudget, record)) for record in data.get("monthly_budgets", [])
        ],
        income_sources=income_sources,
    )


def load_ledger(path: str | Path) -> Ledger:
    """Load the ledger stored at ``path``.

    A missing file gives a fresh ledger with the default categories.
    """

    path = Path(path)
    if not path.exists():
        logger.info("No data file at %s, starting a new ledger", path)
        return Ledger(categories=default_categories())
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Data file {path} is not valid JSON: {exc}") from exc
    if data.get("version") != VERSION:
        logger.warning("Data file %s has version %r, expected %r", path, data.get("version"), VERSION)
    return ledger_from_dict(data)


def save_ledger(ledger: Ledger, path: str | Path) -> None:
    path = Path(path)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(ledger_to_dict(ledger), indent=2), encoding="utf-8")
    tmp_path.replace(path)
    logger.debug("Saved ledger to %s", path)
