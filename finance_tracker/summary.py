"""Budget and net worth summaries."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from .models import BUSINESS_TARGETS, HOUSEHOLD, HOUSEHOLD_TARGETS, Account, Category, Transaction
from .periods import month_range


@dataclass(frozen=True)
class AccountSummary:
    total_assets: float
    total_liabilities: float
    accounts_by_type: Dict[str, Sequence[Account]]

    @property
    def net_worth(self) -> float:
        return round(self.total_assets - self.total_liabilities, 2)


@dataclass(frozen=True)
class CategoryBreakdown:
    category_id: str
    category_name: str
    budgeted: float
    actual: float
    transaction_count: int

    @property
    def over_under(self) -> float:
        return round(self.budgeted - self.actual, 2)

    @property
    def percent_used(self) -> float:
        return self.actual / self.budgeted * 100 if self.budgeted > 0 else 0.0


@dataclass(frozen=True)
class BucketBreakdown:
    bucket_id: str
    target_amount: float
    actual_amount: float
    percent_of_income: float
    categories: Sequence[CategoryBreakdown]

    @property
    def over_under(self) -> float:
        return round(self.target_amount - self.actual_amount, 2)


@dataclass(frozen=True)
class BudgetSummary:
    budget_type: str
    period_start: date
    period_end: date
    total_income: float
    total_expenses: float
    buckets: Sequence[BucketBreakdown]

    @property
    def remaining(self) -> float:
        return round(self.total_income - self.total_expenses, 2)


@dataclass(frozen=True)
class CategorySpending:
    category: Category
    amount: float
    transaction_count: int


def credit_utilization(balance: float, credit_limit: float) -> float:
    if credit_limit <= 0:
        return 0.0
    return abs(balance) / credit_limit * 100


def build_account_summary(
    accounts: Iterable[Account], budget_type: Optional[str] = None
) -> AccountSummary:
    assets = 0.0
    liabilities = 0.0
    by_type: Dict[str, List[Account]] = defaultdict(list)
    for account in accounts:
        if budget_type and account.budget_type != budget_type:
            continue
        # Credit cards and loans count as liabilities whatever their sign.
        if account.is_liability or account.balance < 0:
            liabilities += abs(account.balance)
        else:
            assets += account.balance
        by_type[account.account_type].append(account)
    return AccountSummary(
        total_assets=round(assets, 2),
        total_liabilities=round(liabilities, 2),
        accounts_by_type={key: tuple(value) for key, value in by_type.items()},
    )


def _month_transactions(
    transactions: Iterable[Transaction], budget_type: str, start: date, end: date
) -> List[Transaction]:
    return [
        tx
        for tx in transactions
        if tx.budget_type == budget_type and start <= tx.date <= end
    ]


def build_budget_summary(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    budget_type: str,
    month: date | None = None,
    targets: Optional[Mapping[str, float]] = None,
    monthly_budgets: Optional[Mapping[str, float]] = None,
) -> BudgetSummary:
    """Income, spending and per-bucket breakdown for one calendar month.

    Expenses in categories excluded from the budget (transfers, card
    payments) are left out, as are transfer inflows filed under them.
    Other income always counts. ``targets`` maps bucket ids to a percent
    of income; ``monthly_budgets`` maps category ids to this month's
    budgeted amount and falls back to the category's own amount.
    """

    start, end = month_range(month)
    by_id = {category.id: category for category in categories}
    excluded = {c.id for c in categories if c.exclude_from_budget}
    included = [
        tx
        for tx in _month_transactions(transactions, budget_type, start, end)
        if tx.category_id not in excluded or (tx.is_income and not tx.is_transfer)
    ]
    income = sum(tx.amount for tx in included if tx.is_income)
    expenses = sum(-tx.amount for tx in included if tx.is_expense)

    if targets is None:
        targets = HOUSEHOLD_TARGETS if budget_type == HOUSEHOLD else BUSINESS_TARGETS
    monthly_budgets = monthly_budgets or {}

    spent: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for tx in included:
        counts[tx.category_id] += 1
        if tx.is_expense:
            spent[tx.category_id] += -tx.amount

    bucket_categories: Dict[str, List[Category]] = defaultdict(list)
    for category in categories:
        if category.budget_type != budget_type or category.exclude_from_budget:
            continue
        if category.is_income_category:
            continue
        bucket_categories[category.bucket_id].append(category)

    buckets = []
    for bucket_id, members in bucket_categories.items():
        rows = [
            CategoryBreakdown(
                category_id=category.id,
                category_name=category.name,
                budgeted=monthly_budgets.get(category.id, category.monthly_budget),
                actual=round(spent.get(category.id, 0.0), 2),
                transaction_count=counts.get(category.id, 0),
            )
            for category in members
        ]
        actual = round(sum(row.actual for row in rows), 2)
        target = round(targets.get(bucket_id, 0.0) / 100 * income, 2)
        buckets.append(
            BucketBreakdown(
                bucket_id=bucket_id,
                target_amount=target,
                actual_amount=actual,
                percent_of_income=actual / income * 100 if income > 0 else 0.0,
                categories=tuple(rows),
            )
        )

    uncategorized = [tx for tx in included if tx.is_expense and tx.category_id not in by_id]
    if uncategorized:
        actual = round(sum(-tx.amount for tx in uncategorized), 2)
        buckets.append(
            BucketBreakdown(
                bucket_id="uncategorized",
                target_amount=0.0,
                actual_amount=actual,
                percent_of_income=actual / income * 100 if income > 0 else 0.0,
                categories=(),
            )
        )

    return BudgetSummary(
        budget_type=budget_type,
        period_start=start,
        period_end=end,
        total_income=round(income, 2),
        total_expenses=round(expenses, 2),
        buckets=tuple(buckets),
    )


def top_spending_categories(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    budget_type: str,
    month: date | None = None,
    limit: int = 5,
) -> List[CategorySpending]:
    start, end = month_range(month)
    by_id = {category.id: category for category in categories}
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for tx in _month_transactions(transactions, budget_type, start, end):
        if not tx.is_expense or tx.category_id not in by_id:
            continue
        totals[tx.category_id] += -tx.amount
        counts[tx.category_id] += 1
    rows = [
        CategorySpending(by_id[category_id], round(amount, 2), counts[category_id])
        for category_id, amount in totals.items()
    ]
    rows.sort(key=lambda row: row.amount, reverse=True)
    return rows[:limit]
