from __future__ import annotations

from pathlib import Path
from typing import Iterable, Mapping, Sequence

from .export import ACCOUNT_HEADERS, TRANSACTION_HEADERS, account_rows, transaction_rows
from .models import Account, Transaction

MONEY_FORMAT = "#,##0.00"


def _write_sheet(ws, headers: Sequence[str], rows: Iterable[Sequence[object]], money_cols: Sequence[int]) -> None:
    ws.append(list(headers))
    for row in rows:
        ws.append(list(row))
    for col_idx in money_cols:
        for row_idx in range(2, ws.max_row + 1):
            ws.cell(row=row_idx, column=col_idx).number_format = MONEY_FORMAT
    for col_idx, header in enumerate(headers, start=1):
        width = max(
            [len(header)]
            + [len(str(ws.cell(row=r, column=col_idx).value or "")) for r in range(2, ws.max_row + 1)]
        )
        ws.column_dimensions[ws.cell(row=1, column=col_idx).column_letter].width = min(width + 2, 60)
    ws.freeze_panes = "A2"


def export_workbook(
    output_path: Path,
    transactions: Sequence[Transaction],
    accounts: Sequence[Account],
    account_names: Mapping[str, str] | None = None,
) -> None:
    """
    Save transactions and accounts as two sheets of an ``.xlsx`` workbook
    at ``output_path``.
    """

    try:
        from openpyxl import Workbook
    except ImportError as exc:  # pragma: no cover - dependency guidance
        raise SystemExit(
            "openpyxl is required for Excel output. Install with: pip install openpyxl"
        ) from exc

    if account_names is None:
        account_names = {account.id: account.name for account in accounts}

    wb = Workbook()
    tx_sheet = wb.active
    tx_sheet.title = "Transactions"
    _write_sheet(tx_sheet, TRANSACTION_HEADERS, transaction_rows(transactions, account_names), money_cols=[3])
    for row_idx in range(2, tx_sheet.max_row + 1):
        tx_sheet.cell(row=row_idx, column=1).number_format = "yyyy-mm-dd"

    account_sheet = wb.create_sheet("Accounts")
    _write_sheet(account_sheet, ACCOUNT_HEADERS, account_rows(accounts), money_cols=[4, 5, 8])

    wb.save(str(output_path))
