"""Data models used by the finance tracker."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Optional, Tuple


HOUSEHOLD = "household"
BUSINESS = "business"
BUDGET_TYPES = (HOUSEHOLD, BUSINESS)

ACCOUNT_TYPES = ("checking", "savings", "credit_card", "loan", "investment", "other")
LIABILITY_TYPES = ("credit_card", "loan")

UNCATEGORIZED = "uncategorized"

# Percent of monthly income aimed at each bucket.
HOUSEHOLD_TARGETS = {"needs": 50.0, "wants": 30.0, "savings": 20.0}
BUSINESS_TARGETS = {
    "operating": 50.0,
    "growth": 20.0,
    "compensation": 20.0,
    "tax_reserve": 5.0,
    "business_savings": 5.0,
}

INCOME_FREQUENCIES = ("weekly", "biweekly", "monthly", "quarterly", "annual", "irregular")
INCOME_TYPES = {
    HOUSEHOLD: ("salary", "freelance", "investment", "other"),
    BUSINESS: ("client_revenue", "product_sales", "services", "other"),
}


def check_budget_type(value: str) -> str:
    if value not in BUDGET_TYPES:
        raise ValueError(f"Unknown budget type: {value!r}")
    return value


def check_targets(targets: Dict[str, float]) -> Dict[str, float]:
    total = round(sum(targets.values()), 2)
    if total != 100:
        raise ValueError(f"Budget targets must add up to 100%, got {total:g}%")
    if any(value < 0 for value in targets.values()):
        raise ValueError("Budget targets cannot be negative")
    return targets


@dataclass(frozen=True)
class Account:
    id: str
    name: str
    budget_type: str
    balance: float
    account_type: str = "checking"
    credit_limit: Optional[float] = None
    interest_rate: Optional[float] = None
    payment_due_date: Optional[int] = None
    minimum_payment: Optional[float] = None
    website_url: Optional[str] = None
    notes: Optional[str] = None
    last_payment_month: Optional[str] = None

    @property
    def is_liability(self) -> bool:
        return self.account_type in LIABILITY_TYPES


@dataclass(frozen=True)
class Transaction:
    """A single ledger entry. Positive amounts are inflows."""

    id: str
    date: date
    description: str
    amount: float
    account_id: str
    category_id: str = UNCATEGORIZED
    budget_type: str = HOUSEHOLD
    to_account_id: Optional[str] = None
    linked_transaction_id: Optional[str] = None
    tax_deductible: bool = False
    reconciled: bool = False
    notes: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    @property
    def is_expense(self) -> bool:
        return self.amount < 0

    @property
    def is_transfer(self) -> bool:
        return self.to_account_id is not None or self.linked_transaction_id is not None


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    budget_type: str
    bucket_id: str
    category_group: Optional[str] = None
    is_income_category: bool = False
    is_active: bool = True
    monthly_budget: float = 0.0
    exclude_from_budget: bool = False
    # Substrings of a vendor name that select this category.
    auto_categorization: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TrackerSettings:
    currency_symbol: str = "$"
    due_soon_days: int = 30
    similarity_threshold: float = 0.6
    household_targets: Dict[str, float] = field(default_factory=lambda: dict(HOUSEHOLD_TARGETS))
    business_targets: Dict[str, float] = field(default_factory=lambda: dict(BUSINESS_TARGETS))

    def targets_for(self, budget_type: str) -> Dict[str, float]:
        return self.household_targets if budget_type == HOUSEHOLD else self.business_targets


@dataclass(frozen=True)
class MonthlyBudget:
    """Budgeted amount for one category in one month (`YYYY-MM`)."""

    id: str
    month: str
    budget_type: str
    category_id: str
    amount: float


@dataclass(frozen=True)
class IncomeSource:
    id: str
    name: str
    budget_type: str
    income_type: str
    expected_amount: float
    frequency: str = "monthly"
    category_id: Optional[str] = None
    next_expected_date: Optional[date] = None
    client_source: Optional[str] = None
    is_active: bool = True


@dataclass(frozen=True)
class DueStatus:
    account: Account
    due_date: date
    days_until_due: int
    state: str

    @property
    def is_overdue(self) -> bool:
        return self.state == "overdue"

