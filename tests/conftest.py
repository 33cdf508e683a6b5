from datetime import date

import pytest

from finance_tracker.ledger import Ledger, default_categories


@pytest.fixture
def ledger():
    return Ledger(categories=default_categories())


@pytest.fixture
def accounts(ledger):
    checking = ledger.add_account("Checking", balance=1000.0)
    card = ledger.add_account("Visa", balance=200.0, account_type="credit_card", payment_due_date=20)
    business = ledger.add_account("Business Checking", budget_type="business", balance=500.0)
    return checking, card, business


@pytest.fixture
def today():
    return date(2025, 3, 10)
