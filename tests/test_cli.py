import json
from datetime import date

import pytest

from finance_tracker.cli import run
from finance_tracker.storage import load_ledger, save_ledger


@pytest.fixture
def data_path(tmp_path):
    path = tmp_path / "ledger.json"
    run(["--data", str(path), "add-account", "Checking", "--balance", "1000"])
    run(["--data", str(path), "add-account", "Visa", "--type", "credit_card", "--balance", "300", "--due-day", "20", "--minimum", "35"])
    return path


def _transactions(path):
    return json.loads(path.read_text(encoding="utf-8"))["transactions"]


def test_due_lists_overdue_bill(data_path):
    output = run(["--data", str(data_path), "--as-of", "2025-03-25", "due"])
    assert "Visa" in output
    assert "5 days overdue" in output
    assert "$35.00" in output


def test_pay_marks_month(data_path):
    run(["--data", str(data_path), "--as-of", "2025-03-25", "pay", "visa"])
    output = run(["--data", str(data_path), "--as-of", "2025-03-25", "due"])
    assert "paid" in output
    assert "2025-04-20" in output


def test_transfer_creates_linked_pair(data_path):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--date", "2025-03-05"])
    transactions = _transactions(data_path)
    assert len(transactions) == 2
    first, second = transactions
    assert first["amount"] + second["amount"] == 0
    assert first["linked_transaction_id"] == second["id"]
    assert second["linked_transaction_id"] == first["id"]


def test_delete_linked_with_yes_removes_both(data_path):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--date", "2025-03-05"])
    first_id = _transactions(data_path)[0]["id"]
    output = run(["--data", str(data_path), "--yes", "delete", first_id[:8]])
    assert output == "Deleted 2 transaction(s)"
    assert _transactions(data_path) == []


def test_delete_declined_keeps_everything(data_path, monkeypatch):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--date", "2025-03-05"])
    first_id = _transactions(data_path)[0]["id"]
    monkeypatch.setattr("builtins.input", lambda prompt: "n")
    assert run(["--data", str(data_path), "delete", first_id]) == "Cancelled"
    assert len(_transactions(data_path)) == 2


def test_import_and_list(data_path, tmp_path):
    csv_path = tmp_path / "bank.csv"
    csv_path.write_text(
        "Date,Description,Amount\n"
        "03/01/2025,NETFLIX.COM,-15.99\n"
        "bad,Broken,1\n",
        encoding="utf-8",
    )
    output = run(["--data", str(data_path), "import", str(csv_path), "--account", "Checking"])
    assert "Imported 1 transactions." in output
    assert "row 3" in output
    listing = run(["--data", str(data_path), "transactions", "--search", "netflix"])
    assert "Netflix" in listing
    assert "household-entertainment" in listing


def test_unknown_account_exits(data_path):
    with pytest.raises(SystemExit) as excinfo:
        run(["--data", str(data_path), "pay", "Amex"])
    assert "Account not found: Amex" in str(excinfo.value)


def test_normalize_preview(tmp_path):
    output = run(["--data", str(tmp_path / "x.json"), "normalize", "PAYPAL *SPOTIFY"])
    assert output == "PAYPAL *SPOTIFY -> Spotify"


def test_export_csv(data_path, tmp_path):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "50", "--date", "2025-03-05"])
    out = tmp_path / "tx.csv"
    assert run(["--data", str(data_path), "export", str(out)]) == f"Wrote 2 rows to {out}"
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("Date,Description,Amount")
    assert len(lines) == 3


def _answers(monkeypatch, *replies):
    prompts = []
    replies = iter(replies)

    def fake_input(prompt):
        prompts.append(prompt)
        return next(replies)

    monkeypatch.setattr("builtins.input", fake_input)
    return prompts


def test_edit_linked_applies_change_to_partner_when_confirmed(data_path, monkeypatch):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--date", "2025-03-05"])
    first_id = _transactions(data_path)[0]["id"]
    prompts = _answers(monkeypatch, "y")
    output = run(["--data", str(data_path), "edit", first_id[:8], "--amount", "-120"])

    assert output == f"Updated {first_id[:8]} and its linked transaction"
    assert "linked transaction" in prompts[0]
    first, second = _transactions(data_path)
    assert (first["amount"], second["amount"]) == (-120, 120)
    assert second["linked_transaction_id"] == first["id"]


def test_edit_linked_declined_removes_link(data_path, monkeypatch):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--date", "2025-03-05"])
    first_id = _transactions(data_path)[0]["id"]
    _answers(monkeypatch, "n")
    output = run(["--data", str(data_path), "edit", first_id, "--amount", "-120"])

    assert output.endswith("; link removed")
    first, second = _transactions(data_path)
    assert (first["amount"], second["amount"]) == (-120, 100)
    assert first["linked_transaction_id"] is None
    assert second["linked_transaction_id"] is None


def test_delete_confirmed_but_partner_kept(data_path, monkeypatch):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--date", "2025-03-05"])
    first_id = _transactions(data_path)[0]["id"]
    prompts = _answers(monkeypatch, "y", "n")
    output = run(["--data", str(data_path), "delete", first_id])

    assert output == "Deleted 1 transaction(s)"
    assert "Delete both?" in prompts[1]
    (survivor,) = _transactions(data_path)
    assert survivor["id"] != first_id
    assert survivor["linked_transaction_id"] is None


def test_edit_rejects_unknown_category(data_path):
    run(["--data", str(data_path), "transfer", "Checking", "Visa", "100", "--no-link", "--date", "2025-03-05"])
    first_id = _transactions(data_path)[0]["id"]
    with pytest.raises(SystemExit) as excinfo:
        run(["--data", str(data_path), "edit", first_id, "--category", "household-nope"])
    assert "Category not found: household-nope" in str(excinfo.value)
    assert _transactions(data_path)[0]["category_id"] == "household-transfer"


def test_transfer_links_to_a_matching_transaction(data_path):
    ledger = load_ledger(data_path)
    visa = ledger.find_account("Visa")
    payment = ledger.add_transaction(date(2025, 3, 5), "Payment thank you", 100, visa.id)
    ledger.add_transaction(date(2025, 3, 5), "Refund", 25, visa.id)
    save_ledger(ledger, data_path)

    output = run(
        ["--data", str(data_path), "--yes", "transfer", "Checking", "Visa", "100", "--date", "2025-03-05", "--link-existing"]
    )
    assert output.endswith(f"linked with {payment.id[:8]}")
    by_id = {tx["id"]: tx for tx in _transactions(data_path)}
    assert len(by_id) == 3
    assert by_id[payment.id]["linked_transaction_id"] is not None


def test_transfer_link_existing_without_matches_exits(data_path):
    with pytest.raises(SystemExit) as excinfo:
        run(["--data", str(data_path), "--yes", "transfer", "Checking", "Visa", "40", "--link-existing"])
    assert "No unlinked transaction in Visa" in str(excinfo.value)


def test_rules_commands(data_path, tmp_path):
    run(["--data", str(data_path), "add-rule", "netflix", "household-entertainment"])
    rules_csv = tmp_path / "rules.csv"
    rules_csv.write_text(
        "vendor_pattern,category_id,budget_type,case_sensitive\nUber,household-transportation,household,no\n",
        encoding="utf-8",
    )
    assert run(["--data", str(data_path), "load-rules", str(rules_csv)]) == "Added 1 rule(s)"
    listing = run(["--data", str(data_path), "rules"])
    assert "netflix" in listing
    assert "Transportation" in listing

    with pytest.raises(SystemExit) as excinfo:
        run(["--data", str(data_path), "add-rule", "hulu", "nope"])
    assert "Category not found: nope" in str(excinfo.value)


def test_budget_targets_and_monthly_amounts_show_in_summary(data_path):
    output = run(["--data", str(data_path), "set-targets", "household", "needs=60", "wants=20", "savings=20"])
    assert output == "Household targets: needs 60%, wants 20%, savings 20%"
    output = run(["--data", str(data_path), "set-budget", "household-dining", "150", "--month", "2025-03"])
    assert output == "Budgeted $150.00 for household-dining in 2025-03"

    summary = run(["--data", str(data_path), "--as-of", "2025-04-10", "summary", "--budget", "household", "--last-month"])
    assert "Period: 2025-03-01 to 2025-03-31" in summary
    assert "$150.00" in summary


def test_targets_that_do_not_add_up_exit(data_path):
    with pytest.raises(SystemExit) as excinfo:
        run(["--data", str(data_path), "set-targets", "household", "needs=60", "wants=30", "savings=20"])
    assert "add up to 100%" in str(excinfo.value)


def test_income_sources_commands(data_path):
    output = run(["--data", str(data_path), "add-income", "Acme payroll", "2500", "--type", "salary"])
    assert output.startswith("Added income source Acme payroll")
    listing = run(["--data", str(data_path), "income"])
    assert "Acme payroll" in listing
    assert "$2,500.00" in listing
