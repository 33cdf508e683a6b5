"""Utility helpers for turning ledger data into text tables."""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .loader import ImportResult
from .models import Account, DueStatus, IncomeSource, Transaction
from .rules import AutoCategorizationRule
from .summary import AccountSummary, BudgetSummary, credit_utilization


def format_currency(amount: float, symbol: str = "$") -> str:
    return f"{symbol}{abs(amount):,.2f}"


def format_signed(amount: float, symbol: str = "$") -> str:
    sign = "+" if amount >= 0 else "-"
    return f"{sign}{symbol}{abs(amount):,.2f}"


def _column_widths(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> Sequence[int]:
    widths = [len(h) for h in headers]
    for row in rows:
        for idx, cell in enumerate(row):
            widths[idx] = max(widths[idx], len(cell))
    return widths


def _format_table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> str:
    widths = _column_widths(headers, rows)

    def format_row(row: Sequence[str]) -> str:
        return " | ".join(cell.ljust(widths[idx]) for idx, cell in enumerate(row))

    header_line = format_row(headers)
    separator = "-+-".join("-" * w for w in widths)
    body = "\n".join(format_row(row) for row in rows)
    return "\n".join([header_line, separator, body]) if body else "\n".join(
        [header_line, separator]
    )


def format_accounts(accounts: Iterable[Account], symbol: str = "$") -> str:
    rows = [
        [
            account.id[:8],
            account.name,
            account.budget_type,
            account.account_type.replace("_", " "),
            format_signed(account.balance, symbol),
            str(account.payment_due_date or ""),
            account.last_payment_month or "",
            f"{credit_utilization(account.balance, account.credit_limit):.0f}%"
            if account.credit_limit
            else "",
        ]
        for account in accounts
    ]
    headers = ["Id", "Account", "Budget", "Type", "Balance", "Due Day", "Paid", "Utilization"]
    return _format_table(headers, rows)


def format_transactions(
    transactions: Iterable[Transaction],
    account_names: Mapping[str, str],
    symbol: str = "$",
) -> str:
    rows = []
    for tx in transactions:
        flags = []
        if tx.linked_transaction_id:
            flags.append("linked")
        elif tx.is_transfer:
            flags.append("transfer")
        if tx.reconciled:
            flags.append("reconciled")
        if tx.tax_deductible:
            flags.append("tax")
        rows.append(
            [
                tx.id[:8],
                f"{tx.date:%Y-%m-%d}",
                tx.description,
                account_names.get(tx.account_id, "Unspecified"),
                tx.category_id,
                format_signed(tx.amount, symbol),
                ",".join(flags),
            ]
        )
    return _format_table(["Id", "Date", "Description", "Account", "Category", "Amount", "Flags"], rows)


def format_due_dates(statuses: Iterable[DueStatus], symbol: str = "$") -> str:
    rows = []
    for status in statuses:
        days = status.days_until_due
        if status.state == "overdue":
            when = f"{-days} days overdue"
        elif days == 0:
            when = "today"
        else:
            when = f"in {days} days"
        minimum = status.account.minimum_payment
        rows.append(
            [
                status.account.name,
                f"{status.due_date:%Y-%m-%d}",
                when,
                status.state.replace("_", " "),
                format_currency(minimum, symbol) if minimum else "",
            ]
        )
    return _format_table(["Account", "Due", "When", "Status", "Minimum"], rows)


def format_account_summary(summary: AccountSummary, symbol: str = "$") -> str:
    return "\n".join(
        [
            f"Total Assets: {format_currency(summary.total_assets, symbol)}",
            f"Total Liabilities: {format_currency(summary.total_liabilities, symbol)}",
            f"Net Worth: {format_signed(summary.net_worth, symbol)}",
        ]
    )


def format_budget_summary(summary: BudgetSummary, symbol: str = "$") -> str:
    header_lines = [
        f"{summary.budget_type.title()} Budget",
        f"Period: {summary.period_start:%Y-%m-%d} to {summary.period_end:%Y-%m-%d}",
        f"Income: {format_currency(summary.total_income, symbol)}",
        f"Expenses: {format_currency(summary.total_expenses, symbol)}",
        f"Remaining: {format_signed(summary.remaining, symbol)}",
    ]
    rows = []
    for bucket in summary.buckets:
        rows.append(
            [
                bucket.bucket_id.replace("_", " ").title(),
                "",
                format_currency(bucket.target_amount, symbol),
                format_currency(bucket.actual_amount, symbol),
                format_signed(bucket.over_under, symbol),
            ]
        )
        for category in bucket.categories:
            rows.append(
                [
                    "",
                    category.category_name,
                    format_currency(category.budgeted, symbol),
                    format_currency(category.actual, symbol),
                    format_signed(category.over_under, symbol),
                ]
            )
    table = _format_table(["Bucket", "Category", "Target", "Actual", "Over/Under"], rows)
    return "\n".join(header_lines + ["", table])


def format_rules(rules: Iterable[AutoCategorizationRule], category_names: Mapping[str, str]) -> str:
    rows = [
        [
            rule.id[:8],
            rule.vendor_pattern,
            category_names.get(rule.category_id, rule.category_id),
            rule.budget_type,
            "yes" if rule.case_sensitive else "no",
            "" if rule.is_active else "inactive",
        ]
        for rule in rules
    ]
    return _format_table(["Id", "Pattern", "Category", "Budget", "Case", "Status"], rows)


def format_income_sources(sources: Iterable[IncomeSource], symbol: str = "$") -> str:
    rows = [
        [
            source.id[:8],
            source.name,
            source.budget_type,
            source.income_type.replace("_", " "),
            format_currency(source.expected_amount, symbol),
            source.frequency,
            f"{source.next_expected_date:%Y-%m-%d}" if source.next_expected_date else "",
        ]
        for source in sources
    ]
    return _format_table(["Id", "Source", "Budget", "Type", "Expected", "Frequency", "Next"], rows)


def format_import_result(result: ImportResult) -> str:
    lines = [f"Imported {len(result.imported)} transactions."]
    if result.errors:
        lines.append(f"{len(result.errors)} rows could not be imported:")
        lines.extend(f"  - row {error.row_number}: {error.message}" for error in result.errors)
    for name, similar in sorted(result.similar_vendors.items()):
        lines.append(f"{name!r} looks like: {', '.join(similar)}")
    return "\n".join(lines)
