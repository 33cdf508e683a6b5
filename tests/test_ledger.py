from datetime import date

import pytest

from finance_tracker.ledger import RecordNotFound


def test_liability_balances_are_stored_negative(ledger, accounts):
    checking, card, _ = accounts
    assert checking.balance == 1000.0
    assert card.balance == -200.0
    assert card.is_liability


def test_add_transaction_updates_balance_and_categorizes(ledger, accounts):
    checking, _, _ = accounts
    tx = ledger.add_transaction(date(2025, 3, 1), "Safeway Store", -45.5, checking.id)
    assert tx.category_id == "household-groceries"
    assert tx.budget_type == "household"
    assert ledger.get_account(checking.id).balance == 954.5


def test_rules_win_over_category_patterns(ledger, accounts):
    checking, _, _ = accounts
    ledger.add_rule("safeway", "household-dining")
    tx = ledger.add_transaction(date(2025, 3, 1), "Safeway Store", -10, checking.id)
    assert tx.category_id == "household-dining"


def test_update_transaction_adjusts_balance_by_difference(ledger, accounts):
    checking, _, _ = accounts
    tx = ledger.add_transaction(date(2025, 3, 1), "Rent", -800, checking.id, category_id="household-housing")
    ledger.update_transaction(tx.id, amount=-750)
    assert ledger.get_account(checking.id).balance == 250.0


def test_moving_transaction_between_accounts(ledger, accounts):
    checking, card, _ = accounts
    tx = ledger.add_transaction(date(2025, 3, 1), "Dinner", -60, checking.id)
    ledger.update_transaction(tx.id, account_id=card.id)
    assert ledger.get_account(checking.id).balance == 1000.0
    assert ledger.get_account(card.id).balance == -260.0


def test_delete_transaction_reverses_balance(ledger, accounts):
    checking, _, _ = accounts
    tx = ledger.add_transaction(date(2025, 3, 1), "Paycheck", 2000, checking.id)
    ledger.delete_transaction(tx.id)
    assert ledger.get_account(checking.id).balance == 1000.0
    with pytest.raises(RecordNotFound):
        ledger.get_transaction(tx.id)


def test_bulk_delete_checks_every_id_first(ledger, accounts):
    checking, _, _ = accounts
    first = ledger.add_transaction(date(2025, 3, 1), "A", -1, checking.id)
    with pytest.raises(RecordNotFound):
        ledger.delete_transactions([first.id, "missing"])
    assert len(ledger.transactions) == 1
    second = ledger.add_transaction(date(2025, 3, 2), "B", -2, checking.id)
    removed = ledger.delete_transactions([first.id, second.id])
    assert len(removed) == 2
    assert ledger.transactions == []


def test_delete_account_cascades(ledger, accounts):
    checking, card, _ = accounts
    ledger.add_transaction(date(2025, 3, 1), "Coffee", -4, checking.id)
    ledger.add_transaction(date(2025, 3, 1), "Book", -20, card.id)
    removed = ledger.delete_account(checking.id)
    assert len(removed) == 1
    assert [t.account_id for t in ledger.transactions] == [card.id]


def test_delete_category_in_use_is_deactivated(ledger, accounts):
    checking, _, _ = accounts
    ledger.add_transaction(date(2025, 3, 1), "Rent", -800, checking.id, category_id="household-housing")
    assert ledger.delete_category("household-housing") is False
    assert ledger.get_category("household-housing").is_active is False
    assert ledger.delete_category("household-savings") is True


def test_filter_transactions(ledger, accounts):
    checking, card, business = accounts
    ledger.add_transaction(date(2025, 3, 1), "Coffee", -4, checking.id, notes="morning")
    ledger.add_transaction(date(2025, 3, 5), "Book", -20, card.id)
    ledger.add_transaction(date(2025, 3, 7), "Adobe", -50, business.id, tax_deductible=True)

    assert [t.description for t in ledger.filter_transactions()] == ["Adobe", "Book", "Coffee"]
    assert [t.description for t in ledger.filter_transactions(budget_type="business")] == ["Adobe"]
    assert [t.description for t in ledger.filter_transactions(search="MORNING")] == ["Coffee"]
    assert [t.description for t in ledger.filter_transactions(start=date(2025, 3, 2), end=date(2025, 3, 6))] == ["Book"]
    assert [t.description for t in ledger.filter_transactions(max_amount=-10, min_amount=-30)] == ["Book"]
    assert [t.description for t in ledger.filter_transactions(tax_deductible=True)] == ["Adobe"]


def test_mark_paid_and_unpaid(ledger, accounts, today):
    _, card, _ = accounts
    assert ledger.mark_paid(card.id, today).last_payment_month == "2025-03"
    assert ledger.mark_unpaid(card.id).last_payment_month is None


def test_rename_description(ledger, accounts):
    checking, _, _ = accounts
    ledger.add_transaction(date(2025, 3, 1), "Starbucks", -4, checking.id)
    ledger.add_transaction(date(2025, 3, 2), "STARBUCKS", -5, checking.id)
    assert ledger.rename_description("starbucks", "Starbucks Store") == 2
    assert ledger.distinct_descriptions() == ["Starbucks Store"]


def test_unknown_budget_type_is_rejected(ledger):
    with pytest.raises(ValueError):
        ledger.add_account("Odd", budget_type="personal")


def test_update_and_delete_rule(ledger, accounts):
    checking, _, _ = accounts
    rule = ledger.add_rule("safeway", "household-dining")
    ledger.update_rule(rule.id, category_id="household-shopping")
    assert ledger.add_transaction(date(2025, 3, 1), "Safeway", -5, checking.id).category_id == "household-shopping"
    ledger.delete_rule(rule.id)
    assert ledger.rules == []
    with pytest.raises(RecordNotFound):
        ledger.delete_rule(rule.id)


def test_rule_needs_a_known_category(ledger):
    with pytest.raises(RecordNotFound):
        ledger.add_rule("uber", "household-rides")
    with pytest.raises(ValueError):
        ledger.add_rule("uber", "household-transportation", budget_type="personal")


def test_monthly_budget_overrides_for_one_month(ledger):
    ledger.set_monthly_budget("household-dining", "2025-03", 120)
    budget = ledger.set_monthly_budget("household-dining", "2025-03", 150)
    ledger.set_monthly_budget("business-software", "2025-03", 80)

    assert len(ledger.monthly_budgets) == 2
    assert budget.budget_type == "household"
    assert ledger.budgets_for_month(date(2025, 3, 9), "household") == {"household-dining": 150.0}
    assert ledger.budgets_for_month("2025-04") == {}
    assert ledger.clear_monthly_budget("household-dining", "2025-03") is True
    assert ledger.clear_monthly_budget("household-dining", "2025-03") is False


def test_monthly_budget_validation(ledger):
    with pytest.raises(ValueError):
        ledger.set_monthly_budget("household-dining", "March", 100)
    with pytest.raises(ValueError):
        ledger.set_monthly_budget("household-dining", "2025-03", -1)
    with pytest.raises(RecordNotFound):
        ledger.set_monthly_budget("missing", "2025-03", 100)


def test_set_targets_must_add_up(ledger):
    settings = ledger.set_targets("household", {"needs": 60, "wants": 20, "savings": 20})
    assert settings.targets_for("household") == {"needs": 60.0, "wants": 20.0, "savings": 20.0}
    assert settings.targets_for("business")["operating"] == 50.0
    with pytest.raises(ValueError):
        ledger.set_targets("business", {"operating": 90, "growth": 20})


def test_income_sources(ledger):
    source = ledger.add_income_source(
        "Acme payroll", "household", "salary", 2500, frequency="biweekly", category_id="household-income"
    )
    assert ledger.income_sources == [source]
    updated = ledger.update_income_source(source.id, expected_amount=2600.0)
    assert updated.expected_amount == 2600.0
    with pytest.raises(ValueError):
        ledger.add_income_source("Gig", "household", "client_revenue", 100)
    with pytest.raises(ValueError):
        ledger.update_income_source(source.id, frequency="daily")
    ledger.delete_income_source(source.id)
    assert ledger.income_sources == []


def test_filter_reconciled_and_transfers(ledger, accounts):
    checking, card, _ = accounts
    coffee = ledger.add_transaction(date(2025, 3, 1), "Coffee", -4, checking.id)
    ledger.add_transaction(date(2025, 3, 2), "Payment", -50, checking.id, to_account_id=card.id)
    ledger.update_transaction(coffee.id, reconciled=True)

    assert [t.description for t in ledger.filter_transactions(reconciled=False)] == ["Payment"]
    assert [t.description for t in ledger.filter_transactions(transfers=False)] == ["Coffee"]
    assert [t.description for t in ledger.filter_transactions(transfers=True)] == ["Payment"]
