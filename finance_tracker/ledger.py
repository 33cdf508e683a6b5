"""In-memory store for accounts, transactions and categories."""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    BUSINESS,
    HOUSEHOLD,
    INCOME_FREQUENCIES,
    INCOME_TYPES,
    LIABILITY_TYPES,
    UNCATEGORIZED,
    Account,
    Category,
    IncomeSource,
    MonthlyBudget,
    TrackerSettings,
    Transaction,
    check_budget_type,
    check_targets,
)
from .periods import mark_paid, mark_unpaid, month_key
from .rules import BOTH, AutoCategorizationRule, categorize
from .vendors import distinct_names

logger = logging.getLogger(__name__)


class RecordNotFound(KeyError):
    """Raised when an id does not name a record in the ledger."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id

    def __str__(self) -> str:
        return self.args[0]


def new_id() -> str:
    return uuid.uuid4().hex


def _check_month(month: str) -> str:
    try:
        date.fromisoformat(f"{month}-01")
    except ValueError:
        raise ValueError(f"Month must look like YYYY-MM: {month!r}") from None
    return month


def _money(value: float) -> float:
    return round(float(value), 2)


def _signed_balance(account_type: str, balance: float) -> float:
    # Liabilities are stored as negative balances.
    if account_type in LIABILITY_TYPES and balance > 0:
        return -balance
    return balance


def default_categories() -> List[Category]:
    household = [
        ("housing", "Housing", "needs", ()),
        ("groceries", "Groceries", "needs", ("grocery", "market", "safeway", "kroger")),
        ("utilities", "Utilities", "needs", ("electric", "water", "internet")),
        ("transportation", "Transportation", "needs", ("shell", "chevron", "uber", "lyft")),
        ("dining", "Dining Out", "wants", ("coffee", "restaurant", "pizza")),
        ("entertainment", "Entertainment", "wants", ("netflix", "spotify")),
        ("shopping", "Shopping", "wants", ("amazon", "target")),
        ("savings", "Savings", "savings", ()),
    ]
    business = [
        ("travel", "Travel", "operating", "Travel & Performance", ("airlines", "hotel")),
        ("supplies", "Supplies", "operating", "Craft Business", ()),
        ("software", "Software", "operating", "Administrative", ("adobe", "github")),
        ("professional", "Professional Services", "operating", "Professional Services", ()),
        ("advertising", "Advertising", "growth", "Online Marketing", ("facebook", "google ads")),
        ("owner-pay", "Owner Pay", "compensation", "Compensation", ()),
        ("taxes", "Estimated Taxes", "tax_reserve", "Tax Reserve", ()),
        ("savings", "Business Savings", "business_savings", "Savings", ()),
    ]
    categories = [
        Category(
            id=f"household-{key}",
            name=name,
            budget_type=HOUSEHOLD,
            bucket_id=bucket,
            auto_categorization=patterns,
        )
        for key, name, bucket, patterns in household
    ]
    categories.extend(
        Category(
            id=f"business-{key}",
            name=name,
            budget_type=BUSINESS,
            bucket_id=bucket,
            category_group=group,
            auto_categorization=patterns,
        )
        for key, name, bucket, group, patterns in business
    )
    for budget_type in (HOUSEHOLD, BUSINESS):
        categories.append(
            Category(
                id=f"{budget_type}-income",
                name="Income",
                budget_type=budget_type,
                bucket_id="income",
                is_income_category=True,
            )
        )
        categories.append(
            Category(
                id=f"{budget_type}-transfer",
                name="Transfer/Payment",
                budget_type=budget_type,
                bucket_id="transfer",
                exclude_from_budget=True,
            )
        )
    return categories


class Ledger:
    """Accounts, transactions, categories and rules held in memory.

    Records are immutable; every change replaces the stored record. Account
    balances follow the transactions added, edited and deleted through
    this class.
    """

    def __init__(
        self,
        accounts: Iterable[Account] = (),
        transactions: Iterable[Transaction] = (),
        categories: Iterable[Category] = (),
        rules: Iterable[AutoCategorizationRule] = (),
        settings: Optional[TrackerSettings] = None,
        monthly_budgets: Iterable[MonthlyBudget] = (),
        income_sources: Iterable[IncomeSource] = (),
    ):
        self._accounts: Dict[str, Account] = {a.id: a for a in accounts}
        self._transactions: Dict[str, Transaction] = {t.id: t for t in transactions}
        self._categories: Dict[str, Category] = {c.id: c for c in categories}
        self._rules: Dict[str, AutoCategorizationRule] = {r.id: r for r in rules}
        self._monthly_budgets: Dict[Tuple[str, str], MonthlyBudget] = {
            (b.month, b.category_id): b for b in monthly_budgets
        }
        self._income_sources: Dict[str, IncomeSource] = {s.id: s for s in income_sources}
        self.settings = settings or TrackerSettings()

    @property
    def accounts(self) -> List[Account]:
        return list(self._accounts.values())

    @property
    def transactions(self) -> List[Transaction]:
        return list(self._transactions.values())

    @property
    def categories(self) -> List[Category]:
        return list(self._categories.values())

    @property
    def rules(self) -> List[AutoCategorizationRule]:
        return list(self._rules.values())

    @property
    def monthly_budgets(self) -> List[MonthlyBudget]:
        return sorted(self._monthly_budgets.values(), key=lambda b: (b.month, b.category_id))

    @property
    def income_sources(self) -> List[IncomeSource]:
        return list(self._income_sources.values())

    # Accounts -----------------------------------------------------------

    def get_account(self, account_id: str) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError:
            raise RecordNotFound("Account", account_id) from None

    def find_account(self, name: str) -> Optional[Account]:
        key = (name or "").strip().lower()
        for account in self._accounts.values():
            if account.name.strip().lower() == key or account.id == name:
                return account
        return None

    def add_account(
        self,
        name: str,
        budget_type: str = HOUSEHOLD,
        balance: float = 0.0,
        account_type: str = "checking",
        **details,
    ) -> Account:
        check_budget_type(budget_type)
        account = Account(
            id=new_id(),
            name=name,
            budget_type=budget_type,
            balance=_money(_signed_balance(account_type, balance)),
            account_type=account_type,
            **details,
        )
        self._accounts[account.id] = account
        logger.debug("Added account %s (%s)", account.name, account.id)
        return account

    def update_account(self, account_id: str, **changes) -> Account:
        account = self.get_account(account_id)
        if "budget_type" in changes:
            check_budget_type(changes["budget_type"])
        updated = replace(account, **changes)
        if "balance" in changes or "account_type" in changes:
            updated = replace(
                updated, balance=_money(_signed_balance(updated.account_type, updated.balance))
            )
        self._accounts[account_id] = updated
        return updated

    def delete_account(self, account_id: str) -> List[Transaction]:
        """Delete an account together with its transactions.

        Transfer partners in other accounts survive with their link cleared.
        """

        self.get_account(account_id)
        removed = [t for t in self._transactions.values() if t.account_id == account_id]
        for tx in removed:
            del self._transactions[tx.id]
        for tx in removed:
            self._clear_partner(tx)
        del self._accounts[account_id]
        logger.info("Deleted account %s with %d transactions", account_id, len(removed))
        return removed

    def mark_paid(self, account_id: str, today: date | None = None) -> Account:
        account = mark_paid(self.get_account(account_id), today)
        self._accounts[account_id] = account
        return account

    def mark_unpaid(self, account_id: str) -> Account:
        account = mark_unpaid(self.get_account(account_id))
        self._accounts[account_id] = account
        return account

    def _adjust_balance(self, account_id: str, delta: float) -> None:
        account = self._accounts.get(account_id)
        if account is None or not delta:
            return
        self._accounts[account_id] = replace(account, balance=_money(account.balance + delta))

    # Transactions -------------------------------------------------------

    def get_transaction(self, transaction_id: str) -> Transaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise RecordNotFound("Transaction", transaction_id) from None

    def add_transaction(
        self,
        date: date,
        description: str,
        amount: float,
        account_id: str,
        category_id: Optional[str] = None,
        budget_type: Optional[str] = None,
        **extra,
    ) -> Transaction:
        account = self.get_account(account_id)
        budget_type = check_budget_type(budget_type or account.budget_type)
        if not category_id or category_id == UNCATEGORIZED:
            category_id = self.categorize(description, budget_type)
        tx = Transaction(
            id=extra.pop("id", None) or new_id(),
            date=date,
            description=description,
            amount=_money(amount),
            account_id=account_id,
            category_id=category_id,
            budget_type=budget_type,
            **extra,
        )
        self._transactions[tx.id] = tx
        self._adjust_balance(account_id, tx.amount)
        return tx

    def update_transaction(self, transaction_id: str, **changes) -> Transaction:
        tx = self.get_transaction(transaction_id)
        if "amount" in changes:
            changes["amount"] = _money(changes["amount"])
        if "budget_type" in changes:
            check_budget_type(changes["budget_type"])
        if "account_id" in changes:
            self.get_account(changes["account_id"])
        updated = replace(tx, **changes)
        self._transactions[transaction_id] = updated
        if updated.account_id != tx.account_id:
            self._adjust_balance(tx.account_id, -tx.amount)
            self._adjust_balance(updated.account_id, updated.amount)
        else:
            self._adjust_balance(tx.account_id, _money(updated.amount - tx.amount))
        return updated

    def delete_transaction(self, transaction_id: str) -> Transaction:
        """Remove one transaction and reverse it from its account balance.

        A linked partner is kept, with its link cleared.
        """

        tx = self.get_transaction(transaction_id)
        del self._transactions[transaction_id]
        self._adjust_balance(tx.account_id, -tx.amount)
        self._clear_partner(tx)
        return tx

    def delete_transactions(self, transaction_ids: Iterable[str]) -> List[Transaction]:
        ids = list(dict.fromkeys(transaction_ids))
        for transaction_id in ids:
            self.get_transaction(transaction_id)
        removed = [self.delete_transaction(i) for i in ids if i in self._transactions]
        logger.info("Deleted %d transactions", len(removed))
        return removed

    def _clear_partner(self, tx: Transaction) -> None:
        partner_id = tx.linked_transaction_id
        partner = self._transactions.get(partner_id) if partner_id else None
        if partner is not None and partner.linked_transaction_id == tx.id:
            self._transactions[partner.id] = replace(partner, linked_transaction_id=None)

    def partner_of(self, transaction_id: str) -> Optional[Transaction]:
        tx = self.get_transaction(transaction_id)
        if not tx.linked_transaction_id:
            return None
        return self._transactions.get(tx.linked_transaction_id)

    def filter_transactions(
        self,
        budget_type: Optional[str] = None,
        account_id: Optional[str] = None,
        category_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        search: Optional[str] = None,
        tax_deductible: Optional[bool] = None,
        reconciled: Optional[bool] = None,
        transfers: Optional[bool] = None,
    ) -> List[Transaction]:
        """Transactions matching every given filter, newest first."""

        needle = search.lower() if search else None
        result = []
        for tx in self._transactions.values():
            if budget_type and tx.budget_type != budget_type:
                continue
            if account_id and tx.account_id != account_id:
                continue
            if category_id and tx.category_id != category_id:
                continue
            if start and tx.date < start:
                continue
            if end and tx.date > end:
                continue
            if min_amount is not None and tx.amount < min_amount:
                continue
            if max_amount is not None and tx.amount > max_amount:
                continue
            if tax_deductible is not None and tx.tax_deductible != tax_deductible:
                continue
            if reconciled is not None and tx.reconciled != reconciled:
                continue
            if transfers is not None and tx.is_transfer != transfers:
                continue
            if needle and needle not in tx.description.lower() and needle not in (tx.notes or "").lower():
                continue
            result.append(tx)
        return sorted(result, key=lambda t: t.date, reverse=True)

    def distinct_descriptions(self) -> List[str]:
        return distinct_names([t.description for t in self._transactions.values()])

    def rename_description(self, old: str, new: str) -> int:
        """Rewrite every description equal to ``old`` (ignoring case)."""

        key = old.strip().lower()
        count = 0
        for tx in list(self._transactions.values()):
            if tx.description.strip().lower() == key:
                self._transactions[tx.id] = replace(tx, description=new)
                count += 1
        logger.info("Renamed %d transactions from %r to %r", count, old, new)
        return count

    # Categories and rules ---------------------------------------------

    def get_category(self, category_id: str) -> Category:
        try:
            return self._categories[category_id]
        except KeyError:
            raise RecordNotFound("Category", category_id) from None

    def add_category(self, name: str, budget_type: str, bucket_id: str, **details) -> Category:
        check_budget_type(budget_type)
        category = Category(id=new_id(), name=name, budget_type=budget_type, bucket_id=bucket_id, **details)
        self._categories[category.id] = category
        return category

    def update_category(self, category_id: str, **changes) -> Category:
        category = replace(self.get_category(category_id), **changes)
        self._categories[category_id] = category
        return category

    def delete_category(self, category_id: str) -> bool:
        """Delete a category, or deactivate it while transactions still use it.

        Returns ``True`` when the category was removed.
        """

        category = self.get_category(category_id)
        if any(t.category_id == category_id for t in self._transactions.values()):
            self._categories[category_id] = replace(category, is_active=False)
            return False
        del self._categories[category_id]
        for key in [k for k in self._monthly_budgets if k[1] == category_id]:
            del self._monthly_budgets[key]
        return True

    def add_rule(
        self,
        vendor_pattern: str,
        category_id: str,
        budget_type: str = BOTH,
        case_sensitive: bool = False,
    ) -> AutoCategorizationRule:
        self._check_rule(category_id, budget_type)
        rule = AutoCategorizationRule(
            id=new_id(),
            vendor_pattern=vendor_pattern,
            category_id=category_id,
            budget_type=budget_type,
            case_sensitive=case_sensitive,
        )
        self._rules[rule.id] = rule
        return rule

    def get_rule(self, rule_id: str) -> AutoCategorizationRule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise RecordNotFound("Rule", rule_id) from None

    def update_rule(self, rule_id: str, **changes) -> AutoCategorizationRule:
        rule = replace(self.get_rule(rule_id), **changes)
        self._check_rule(rule.category_id, rule.budget_type)
        self._rules[rule_id] = rule
        return rule

    def delete_rule(self, rule_id: str) -> AutoCategorizationRule:
        rule = self.get_rule(rule_id)
        del self._rules[rule_id]
        return rule

    def _check_rule(self, category_id: str, budget_type: str) -> None:
        self.get_category(category_id)
        if budget_type != BOTH:
            check_budget_type(budget_type)

    # Monthly budgets and income -----------------------------------------

    def set_monthly_budget(self, category_id: str, month: str, amount: float) -> MonthlyBudget:
        """Budget ``amount`` for a category in one month, replacing any earlier amount."""

        category = self.get_category(category_id)
        _check_month(month)
        if amount < 0:
            raise ValueError("A budgeted amount cannot be negative")
        existing = self._monthly_budgets.get((month, category_id))
        budget = MonthlyBudget(
            id=existing.id if existing else new_id(),
            month=month,
            budget_type=category.budget_type,
            category_id=category_id,
            amount=_money(amount),
        )
        self._monthly_budgets[(month, category_id)] = budget
        return budget

    def clear_monthly_budget(self, category_id: str, month: str) -> bool:
        return self._monthly_budgets.pop((month, category_id), None) is not None

    def budgets_for_month(self, month: date | str, budget_type: Optional[str] = None) -> Dict[str, float]:
        key = month if isinstance(month, str) else month_key(month)
        return {
            budget.category_id: budget.amount
            for budget in self._monthly_budgets.values()
            if budget.month == key and budget_type in (None, budget.budget_type)
        }

    def set_targets(self, budget_type: str, targets: Dict[str, float]) -> TrackerSettings:
        check_budget_type(budget_type)
        targets = check_targets({bucket: float(value) for bucket, value in targets.items()})
        self.settings = replace(self.settings, **{f"{budget_type}_targets": targets})
        return self.settings

    def get_income_source(self, source_id: str) -> IncomeSource:
        try:
            return self._income_sources[source_id]
        except KeyError:
            raise RecordNotFound("Income source", source_id) from None

    def add_income_source(
        self,
        name: str,
        budget_type: str,
        income_type: str,
        expected_amount: float,
        frequency: str = "monthly",
        **details,
    ) -> IncomeSource:
        source = IncomeSource(
            id=new_id(),
            name=name,
            budget_type=budget_type,
            income_type=income_type,
            expected_amount=_money(expected_amount),
            frequency=frequency,
            **details,
        )
        self._check_income_source(source)
        self._income_sources[source.id] = source
        return source

    def update_income_source(self, source_id: str, **changes) -> IncomeSource:
        source = replace(self.get_income_source(source_id), **changes)
        self._check_income_source(source)
        self._income_sources[source_id] = source
        return source

    def delete_income_source(self, source_id: str) -> IncomeSource:
        source = self.get_income_source(source_id)
        del self._income_sources[source_id]
        return source

    def _check_income_source(self, source: IncomeSource) -> None:
        check_budget_type(source.budget_type)
        if source.income_type not in INCOME_TYPES[source.budget_type]:
            raise ValueError(f"Unknown {source.budget_type} income type: {source.income_type!r}")
        if source.frequency not in INCOME_FREQUENCIES:
            raise ValueError(f"Unknown income frequency: {source.frequency!r}")
        if source.category_id:
            self.get_category(source.category_id)

    def categorize(self, description: str, budget_type: str) -> str:
        return categorize(description, budget_type, self._rules.values(), self._categories.values())

    def transfer_category(self, budget_type: str) -> Optional[str]:
        """Id of the active category that keeps transfers out of the budget."""

        for category in self._categories.values():
            if category.budget_type == budget_type and category.exclude_from_budget and category.is_active:
                return category.id
        return None

    def set_link(self, transaction_id: str, partner_id: Optional[str]) -> Transaction:
        """Point a transaction at its partner without touching balances."""

        tx = replace(self.get_transaction(transaction_id), linked_transaction_id=partner_id)
        self._transactions[transaction_id] = tx
        return tx

    def accounts_for(self, budget_type: Optional[str] = None) -> Sequence[Account]:
        if budget_type is None:
            return self.accounts
        return [a for a in self._accounts.values() if a.budget_type == budget_type]
