from datetime import date

from openpyxl import load_workbook

from finance_tracker.excel import export_workbook


def test_export_workbook_writes_both_sheets(ledger, accounts, tmp_path):
    checking, card, _ = accounts
    ledger.add_transaction(date(2025, 3, 1), "Coffee", -4.5, checking.id)
    ledger.add_transaction(date(2025, 3, 2), "Book", -20, card.id, tax_deductible=True)
    path = tmp_path / "export.xlsx"

    export_workbook(path, ledger.transactions, ledger.accounts)

    wb = load_workbook(path)
    assert wb.sheetnames == ["Transactions", "Accounts"]
    tx_sheet = wb["Transactions"]
    assert tx_sheet.cell(row=1, column=1).value == "Date"
    assert tx_sheet.max_row == 3
    assert tx_sheet.cell(row=2, column=2).value == "Coffee"
    assert tx_sheet.cell(row=2, column=3).value == -4.5
    assert tx_sheet.cell(row=2, column=4).value == "Checking"
    assert tx_sheet.cell(row=3, column=7).value == "Yes"
    accounts_sheet = wb["Accounts"]
    assert [accounts_sheet.cell(row=r, column=1).value for r in range(2, 5)] == [
        "Checking",
        "Visa",
        "Business Checking",
    ]
