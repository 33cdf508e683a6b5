"""Auto-categorization rules for incoming transactions."""

from __future__ import annotations

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from .models import BUDGET_TYPES, UNCATEGORIZED, Category

BOTH = "both"


@dataclass(frozen=True)
class AutoCategorizationRule:
    id: str
    vendor_pattern: str
    category_id: str
    budget_type: str = BOTH
    case_sensitive: bool = False
    is_active: bool = True

    def matches(self, description: str, budget_type: str) -> bool:
        if not self.is_active or not self.vendor_pattern:
            return False
        if self.budget_type not in (budget_type, BOTH):
            return False
        if self.case_sensitive:
            return self.vendor_pattern in (description or "")
        return self.vendor_pattern.lower() in (description or "").lower()


def _category_matches(category: Category, description: str, budget_type: str) -> bool:
    if category.budget_type != budget_type or not category.is_active:
        return False
    lowered = (description or "").lower()
    return any(pattern and pattern.lower() in lowered for pattern in category.auto_categorization)


def categorize(
    description: str,
    budget_type: str,
    rules: Iterable[AutoCategorizationRule],
    categories: Iterable[Category],
) -> str:
    """Pick a category id for ``description``.

    Explicit rules win over the patterns attached to categories. When
    nothing matches the transaction stays uncategorized.
    """

    for rule in rules:
        if rule.matches(description, budget_type):
            return rule.category_id
    for category in categories:
        if _category_matches(category, description, budget_type):
            return category.id
    return UNCATEGORIZED


def _to_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "y"}


def load_rules(path: Path) -> List[AutoCategorizationRule]:
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found: {path}")
    rules: List[AutoCategorizationRule] = []
    with path.open(newline="", encoding="utf-8-sig") as handle:
        reader = csv.DictReader(handle)
        for index, row in enumerate(reader, start=1):
            pattern = (row.get("vendor_pattern") or "").strip()
            category_id = (row.get("category_id") or "").strip()
            if not pattern or not category_id:
                continue
            budget_type = (row.get("budget_type") or BOTH).strip().lower() or BOTH
            if budget_type not in BUDGET_TYPES + (BOTH,):
                raise ValueError(f"Row {index}: unknown budget type {budget_type!r}")
            rules.append(
                AutoCategorizationRule(
                    id=f"rule-{index}",
                    vendor_pattern=pattern,
                    category_id=category_id,
                    budget_type=budget_type,
                    case_sensitive=_to_bool(row.get("case_sensitive")),
                )
            )
    return rules
