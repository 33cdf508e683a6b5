"""Command line entry point for the finance tracker."""

from __future__ import annotations

import argparse
import logging
from datetime import date
from pathlib import Path
from typing import Callable, Iterable, List

from .excel import export_workbook
from .export import ACCOUNT_HEADERS, TRANSACTION_HEADERS, account_rows, export_csv, transaction_rows
from .formatting import (
    format_account_summary,
    format_accounts,
    format_budget_summary,
    format_due_dates,
    format_import_result,
    format_income_sources,
    format_currency,
    format_rules,
    format_signed,
    format_transactions,
)
from .ledger import Ledger, RecordNotFound
from .loader import import_transactions
from .models import ACCOUNT_TYPES, BUDGET_TYPES, INCOME_FREQUENCIES, Account, Transaction
from .periods import last_month_range, upcoming_due_dates
from .rules import BOTH, load_rules
from .storage import load_ledger, save_ledger
from .summary import build_account_summary, build_budget_summary
from .transfers import (
    LinkMode,
    delete_linked,
    link_candidates,
    link_transactions,
    record_transfer,
    unlink,
    update_linked,
)
from .vendors import normalize_vendor_name

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path("finance_tracker.json")


def confirm(question: str, assume_yes: bool = False) -> bool:
    if assume_yes:
        return True
    answer = input(f"{question} [y/N] ").strip().lower()
    return answer in {"y", "yes"}


def _target(value: str) -> tuple[str, float]:
    bucket, sep, percent = value.partition("=")
    try:
        if not sep or not bucket.strip():
            raise ValueError
        return bucket.strip(), float(percent)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected BUCKET=PERCENT, got {value!r}") from None


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Track household and business accounts, bills and transactions."
    )
    parser.add_argument(
        "--data",
        type=Path,
        default=DEFAULT_DATA_FILE,
        help="Path to the JSON data file (default: finance_tracker.json).",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        help="Override today's date for due dates and summaries.",
    )
    parser.add_argument(
        "--yes",
        action="store_true",
        help="Answer yes to every confirmation prompt.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("accounts", help="List accounts.")

    add = sub.add_parser("add-account", help="Create an account.")
    add.add_argument("name")
    add.add_argument("--budget", choices=BUDGET_TYPES, default="household")
    add.add_argument("--type", dest="account_type", choices=ACCOUNT_TYPES, default="checking")
    add.add_argument("--balance", type=float, default=0.0)
    add.add_argument("--due-day", type=int, choices=range(1, 32), metavar="1-31")
    add.add_argument("--minimum", type=float, help="Minimum payment.")
    add.add_argument("--credit-limit", type=float)
    add.add_argument("--rate", type=float, help="Interest rate (APR %%).")
    add.add_argument("--url", help="Bill pay website.")
    add.add_argument("--notes")

    listing = sub.add_parser("transactions", help="List transactions, newest first.")
    listing.add_argument("--budget", choices=BUDGET_TYPES)
    listing.add_argument("--account")
    listing.add_argument("--category")
    listing.add_argument("--since", type=date.fromisoformat)
    listing.add_argument("--until", type=date.fromisoformat)
    listing.add_argument("--search")
    listing.add_argument("--tax-deductible", action="store_true")
    listing.add_argument("--unreconciled", action="store_true")
    listing.add_argument("--hide-transfers", action="store_true")

    imp = sub.add_parser("import", help="Import transactions from a CSV export.")
    imp.add_argument("csv_path", type=Path)
    imp.add_argument("--date-col", default="Date")
    imp.add_argument("--description-col", default="Description")
    imp.add_argument("--amount-col", default="Amount")
    imp.add_argument("--category-col")
    imp.add_argument("--account-col")
    imp.add_argument("--notes-col")
    imp.add_argument("--account", help="Account for rows without a known account.")
    imp.add_argument("--budget", choices=BUDGET_TYPES)
    imp.add_argument(
        "--keep-descriptions",
        action="store_true",
        help="Import descriptions as-is instead of cleaning up vendor names.",
    )

    due = sub.add_parser("due", help="Show upcoming and overdue bills.")
    due.add_argument("--days-ahead", type=int)

    pay = sub.add_parser("pay", help="Mark an account's bill paid for this month.")
    pay.add_argument("account")
    unpay = sub.add_parser("unpay", help="Clear an account's payment for this month.")
    unpay.add_argument("account")

    transfer = sub.add_parser("transfer", help="Move money between two accounts.")
    transfer.add_argument("from_account")
    transfer.add_argument("to_account")
    transfer.add_argument("amount", type=float)
    transfer.add_argument("--description", default="Transfer")
    transfer.add_argument("--date", type=date.fromisoformat)
    transfer.add_argument("--notes")
    mode = transfer.add_mutually_exclusive_group()
    mode.add_argument(
        "--link-existing",
        nargs="?",
        const="",
        metavar="ID",
        help="Link to an existing destination transaction; without ID, choose from the matches.",
    )
    mode.add_argument("--no-link", action="store_true", help="Record only the source side.")

    link = sub.add_parser("link", help="Link two transactions as the legs of a transfer.")
    link.add_argument("first")
    link.add_argument("second")

    unl = sub.add_parser("unlink", help="Remove the link between two transactions.")
    unl.add_argument("transaction")

    edit = sub.add_parser("edit", help="Edit a transaction.")
    edit.add_argument("transaction")
    edit.add_argument("--date", type=date.fromisoformat)
    edit.add_argument("--description")
    edit.add_argument("--amount", type=float)
    edit.add_argument("--notes")
    edit.add_argument("--category")
    edit.add_argument("--tax-deductible", choices=["yes", "no"])
    edit.add_argument("--reconciled", choices=["yes", "no"])

    delete = sub.add_parser("delete", help="Delete one or more transactions.")
    delete.add_argument("transactions", nargs="+")

    summary = sub.add_parser("summary", help="Monthly budget and net worth summary.")
    summary.add_argument("--budget", choices=BUDGET_TYPES)
    summary.add_argument("--last-month", action="store_true", help="Summarize the previous month.")

    export = sub.add_parser("export", help="Export transactions and accounts.")
    export.add_argument("output", type=Path)
    export.add_argument("--accounts", action="store_true", help="Export accounts instead (CSV only).")

    normalize = sub.add_parser("normalize", help="Preview vendor name clean-up.")
    normalize.add_argument("descriptions", nargs="+")

    merge = sub.add_parser("merge-vendor", help="Rename every transaction from one vendor to another.")
    merge.add_argument("old")
    merge.add_argument("new")

    sub.add_parser("rules", help="List auto-categorization rules.")

    add_rule = sub.add_parser("add-rule", help="Categorize descriptions containing a pattern.")
    add_rule.add_argument("pattern")
    add_rule.add_argument("category")
    add_rule.add_argument("--budget", choices=BUDGET_TYPES + (BOTH,), default=BOTH)
    add_rule.add_argument("--case-sensitive", action="store_true")

    rules_file = sub.add_parser("load-rules", help="Add rules from a CSV file.")
    rules_file.add_argument("csv_path", type=Path)

    del_rule = sub.add_parser("delete-rule", help="Delete a rule.")
    del_rule.add_argument("rule")

    budget = sub.add_parser("set-budget", help="Set a category's monthly budget.")
    budget.add_argument("category")
    budget.add_argument("amount", type=float)
    budget.add_argument("--month", help="Only for this month (YYYY-MM).")

    targets = sub.add_parser("set-targets", help="Set bucket targets as percents of income.")
    targets.add_argument("budget", choices=BUDGET_TYPES)
    targets.add_argument("targets", nargs="+", type=_target, metavar="BUCKET=PERCENT")

    sub.add_parser("income", help="List income sources.")

    income = sub.add_parser("add-income", help="Record an expected income source.")
    income.add_argument("name")
    income.add_argument("amount", type=float)
    income.add_argument("--budget", choices=BUDGET_TYPES, default="household")
    income.add_argument("--type", dest="income_type", default="other")
    income.add_argument("--frequency", choices=INCOME_FREQUENCIES, default="monthly")
    income.add_argument("--next-date", type=date.fromisoformat)
    income.add_argument("--client")

    return parser.parse_args(argv)


def _resolve_account(ledger: Ledger, value: str) -> Account:
    account = ledger.find_account(value)
    if account is not None:
        return account
    matches = [a for a in ledger.accounts if a.id.startswith(value)]
    if len(matches) == 1:
        return matches[0]
    raise RecordNotFound("Account", value)


def _resolve_transaction(ledger: Ledger, value: str) -> Transaction:
    matches = [t for t in ledger.transactions if t.id.startswith(value)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise ValueError(f"Transaction id {value!r} is ambiguous")
    raise RecordNotFound("Transaction", value)


def _account_names(ledger: Ledger) -> dict:
    return {account.id: account.name for account in ledger.accounts}


def _cmd_accounts(ledger: Ledger, args: argparse.Namespace) -> str:
    return format_accounts(ledger.accounts, ledger.settings.currency_symbol)


def _cmd_add_account(ledger: Ledger, args: argparse.Namespace) -> str:
    account = ledger.add_account(
        args.name,
        budget_type=args.budget,
        balance=args.balance,
        account_type=args.account_type,
        payment_due_date=args.due_day,
        minimum_payment=args.minimum,
        credit_limit=args.credit_limit,
        interest_rate=args.rate,
        website_url=args.url,
        notes=args.notes,
    )
    return f"Added account {account.name} ({account.id[:8]})"


def _cmd_transactions(ledger: Ledger, args: argparse.Namespace) -> str:
    account_id = _resolve_account(ledger, args.account).id if args.account else None
    transactions = ledger.filter_transactions(
        budget_type=args.budget,
        account_id=account_id,
        category_id=args.category,
        start=args.since,
        end=args.until,
        search=args.search,
        tax_deductible=True if args.tax_deductible else None,
        reconciled=False if args.unreconciled else None,
        transfers=False if args.hide_transfers else None,
    )
    return format_transactions(transactions, _account_names(ledger), ledger.settings.currency_symbol)


def _cmd_import(ledger: Ledger, args: argparse.Namespace) -> str:
    names = {
        "date": args.date_col,
        "description": args.description_col,
        "amount": args.amount_col,
        "category": args.category_col,
        "account": args.account_col,
        "notes": args.notes_col,
    }
    result = import_transactions(
        ledger,
        args.csv_path,
        {key: value for key, value in names.items() if value},
        budget_type=args.budget,
        default_account_id=_resolve_account(ledger, args.account).id if args.account else None,
        clean_vendors=not args.keep_descriptions,
    )
    for name, similar in sorted(result.similar_vendors.items()):
        for candidate in similar:
            if confirm(f"Rename {candidate!r} to {name!r}?", args.yes):
                ledger.rename_description(candidate, name)
                break
    return format_import_result(result)


def _cmd_due(ledger: Ledger, args: argparse.Namespace) -> str:
    days_ahead = args.days_ahead if args.days_ahead is not None else ledger.settings.due_soon_days
    statuses = upcoming_due_dates(ledger.accounts, args.as_of, days_ahead)
    if not statuses:
        return "No bills due."
    return format_due_dates(statuses, ledger.settings.currency_symbol)


def _cmd_pay(ledger: Ledger, args: argparse.Namespace) -> str:
    account = ledger.mark_paid(_resolve_account(ledger, args.account).id, args.as_of)
    return f"Marked {account.name} paid for {account.last_payment_month}"


def _cmd_unpay(ledger: Ledger, args: argparse.Namespace) -> str:
    account = ledger.mark_unpaid(_resolve_account(ledger, args.account).id)
    return f"Marked {account.name} unpaid"


def _choose_candidate(ledger: Ledger, account: Account, amount: float, assume_yes: bool) -> str | None:
    candidates = link_candidates(ledger, account.id, -amount)
    if not candidates:
        raise ValueError(f"No unlinked transaction in {account.name} matches {format_signed(amount, ledger.settings.currency_symbol)}")
    for tx in candidates:
        label = f"{tx.date:%Y-%m-%d} {tx.description} {format_signed(tx.amount, ledger.settings.currency_symbol)}"
        if confirm(f"Link with {label}?", assume_yes):
            return tx.id
    return None


def _cmd_transfer(ledger: Ledger, args: argparse.Namespace) -> str:
    source_account = _resolve_account(ledger, args.from_account)
    destination = _resolve_account(ledger, args.to_account)
    mode = LinkMode.CREATE_PAIR
    existing_id = None
    if args.no_link:
        mode = LinkMode.NONE
    elif args.link_existing is not None:
        mode = LinkMode.LINK_EXISTING
        if args.link_existing:
            existing_id = _resolve_transaction(ledger, args.link_existing).id
        else:
            existing_id = _choose_candidate(ledger, destination, abs(args.amount), args.yes)
            if existing_id is None:
                return "Cancelled"
    source, counterpart = record_transfer(
        ledger,
        args.date or args.as_of or date.today(),
        args.description,
        -abs(args.amount),
        source_account.id,
        destination.id,
        mode=mode,
        existing_id=existing_id,
        notes=args.notes,
    )
    text = f"Recorded transfer {source.id[:8]} from {source_account.name} to {destination.name}"
    if counterpart is not None:
        text += f", linked with {counterpart.id[:8]}"
    return text


def _cmd_link(ledger: Ledger, args: argparse.Namespace) -> str:
    first = _resolve_transaction(ledger, args.first)
    second = _resolve_transaction(ledger, args.second)
    link_transactions(ledger, first.id, second.id)
    return f"Linked {first.id[:8]} with {second.id[:8]}"


def _cmd_unlink(ledger: Ledger, args: argparse.Namespace) -> str:
    tx = _resolve_transaction(ledger, args.transaction)
    if not tx.linked_transaction_id:
        return f"Transaction {tx.id[:8]} is not linked"
    if not confirm(f"Unlink {tx.description!r} from its paired transaction?", args.yes):
        return "Cancelled"
    unlink(ledger, tx.id)
    return f"Unlinked {tx.id[:8]}"


def _cmd_edit(ledger: Ledger, args: argparse.Namespace) -> str:
    tx = _resolve_transaction(ledger, args.transaction)
    changes = {
        name: getattr(args, name)
        for name in ("date", "description", "amount", "notes")
        if getattr(args, name) is not None
    }
    if args.category:
        changes["category_id"] = ledger.get_category(args.category).id
    if args.tax_deductible:
        changes["tax_deductible"] = args.tax_deductible == "yes"
    if args.reconciled:
        changes["reconciled"] = args.reconciled == "yes"
    if not changes:
        return "Nothing to change"
    propagate = False
    if tx.linked_transaction_id:
        propagate = confirm("Apply the change to the linked transaction as well?", args.yes)
    updated, partner = update_linked(ledger, tx.id, changes, propagate)
    text = f"Updated {updated.id[:8]}"
    if partner is not None:
        text += " and its linked transaction" if propagate else "; link removed"
    return text


def _cmd_delete(ledger: Ledger, args: argparse.Namespace) -> str:
    targets = [_resolve_transaction(ledger, value) for value in args.transactions]
    if not confirm(f"Delete {len(targets)} transaction(s)?", args.yes):
        return "Cancelled"
    removed = 0
    for tx in targets:
        if tx.id not in {t.id for t in ledger.transactions}:
            continue
        delete_partner = False
        if tx.linked_transaction_id and ledger.partner_of(tx.id) is not None:
            delete_partner = confirm(
                f"{tx.description!r} is linked to another transaction. Delete both?", args.yes
            )
        removed += len(delete_linked(ledger, tx.id, delete_partner))
    return f"Deleted {removed} transaction(s)"


def _cmd_summary(ledger: Ledger, args: argparse.Namespace) -> str:
    symbol = ledger.settings.currency_symbol
    budget_types = [args.budget] if args.budget else list(BUDGET_TYPES)
    month = args.as_of or date.today()
    if args.last_month:
        month = last_month_range(month)[0]
    sections = []
    for budget_type in budget_types:
        if not ledger.accounts_for(budget_type) and not args.budget:
            continue
        sections.append(format_account_summary(build_account_summary(ledger.accounts, budget_type), symbol))
        summary = build_budget_summary(
            ledger.transactions,
            ledger.categories,
            budget_type,
            month,
            targets=ledger.settings.targets_for(budget_type),
            monthly_budgets=ledger.budgets_for_month(month, budget_type),
        )
        sections.append(format_budget_summary(summary, symbol))
    return "\n\n".join(sections) or "No accounts yet."


def _cmd_export(ledger: Ledger, args: argparse.Namespace) -> str:
    if args.output.suffix.lower() == ".xlsx":
        transactions = sorted(ledger.transactions, key=lambda t: t.date)
        export_workbook(args.output, transactions, ledger.accounts, _account_names(ledger))
        return f"Wrote {args.output}"
    if args.accounts:
        count = export_csv(account_rows(ledger.accounts), args.output, ACCOUNT_HEADERS)
    else:
        transactions = sorted(ledger.transactions, key=lambda t: t.date)
        rows = transaction_rows(transactions, _account_names(ledger))
        count = export_csv(rows, args.output, TRANSACTION_HEADERS)
    return f"Wrote {count} rows to {args.output}"


def _cmd_normalize(ledger: Ledger, args: argparse.Namespace) -> str:
    return "\n".join(f"{raw} -> {normalize_vendor_name(raw)}" for raw in args.descriptions)


def _cmd_merge_vendor(ledger: Ledger, args: argparse.Namespace) -> str:
    if not confirm(f"Rename every {args.old!r} transaction to {args.new!r}?", args.yes):
        return "Cancelled"
    count = ledger.rename_description(args.old, args.new)
    return f"Renamed {count} transaction(s)"


def _cmd_rules(ledger: Ledger, args: argparse.Namespace) -> str:
    if not ledger.rules:
        return "No rules yet."
    return format_rules(ledger.rules, {c.id: c.name for c in ledger.categories})


def _cmd_add_rule(ledger: Ledger, args: argparse.Namespace) -> str:
    rule = ledger.add_rule(args.pattern, args.category, args.budget, args.case_sensitive)
    return f"Added rule {rule.id[:8]}: {rule.vendor_pattern!r} -> {rule.category_id}"


def _cmd_load_rules(ledger: Ledger, args: argparse.Namespace) -> str:
    rules = load_rules(args.csv_path)
    for rule in rules:
        ledger.add_rule(rule.vendor_pattern, rule.category_id, rule.budget_type, rule.case_sensitive)
    return f"Added {len(rules)} rule(s)"


def _cmd_delete_rule(ledger: Ledger, args: argparse.Namespace) -> str:
    matches = [rule for rule in ledger.rules if rule.id.startswith(args.rule)]
    if len(matches) != 1:
        raise RecordNotFound("Rule", args.rule)
    rule = matches[0]
    if not confirm(f"Delete the rule for {rule.vendor_pattern!r}?", args.yes):
        return "Cancelled"
    ledger.delete_rule(rule.id)
    return f"Deleted rule {rule.id[:8]}"


def _cmd_set_budget(ledger: Ledger, args: argparse.Namespace) -> str:
    symbol = ledger.settings.currency_symbol
    if args.month:
        budget = ledger.set_monthly_budget(args.category, args.month, args.amount)
        return f"Budgeted {format_currency(budget.amount, symbol)} for {budget.category_id} in {budget.month}"
    if args.amount < 0:
        raise ValueError("A budgeted amount cannot be negative")
    category = ledger.update_category(ledger.get_category(args.category).id, monthly_budget=args.amount)
    return f"Budgeted {format_currency(category.monthly_budget, symbol)} a month for {category.id}"


def _cmd_set_targets(ledger: Ledger, args: argparse.Namespace) -> str:
    settings = ledger.set_targets(args.budget, dict(args.targets))
    targets = settings.targets_for(args.budget)
    return f"{args.budget.title()} targets: " + ", ".join(f"{k} {v:g}%" for k, v in targets.items())


def _cmd_income(ledger: Ledger, args: argparse.Namespace) -> str:
    if not ledger.income_sources:
        return "No income sources yet."
    return format_income_sources(ledger.income_sources, ledger.settings.currency_symbol)


def _cmd_add_income(ledger: Ledger, args: argparse.Namespace) -> str:
    source = ledger.add_income_source(
        args.name,
        args.budget,
        args.income_type,
        args.amount,
        frequency=args.frequency,
        next_expected_date=args.next_date,
        client_source=args.client,
    )
    return f"Added income source {source.name} ({source.id[:8]})"


COMMANDS: dict[str, tuple[Callable[[Ledger, argparse.Namespace], str], bool]] = {
    "accounts": (_cmd_accounts, False),
    "add-account": (_cmd_add_account, True),
    "transactions": (_cmd_transactions, False),
    "import": (_cmd_import, True),
    "due": (_cmd_due, False),
    "pay": (_cmd_pay, True),
    "unpay": (_cmd_unpay, True),
    "transfer": (_cmd_transfer, True),
    "link": (_cmd_link, True),
    "unlink": (_cmd_unlink, True),
    "edit": (_cmd_edit, True),
    "delete": (_cmd_delete, True),
    "summary": (_cmd_summary, False),
    "export": (_cmd_export, False),
    "normalize": (_cmd_normalize, False),
    "merge-vendor": (_cmd_merge_vendor, True),
    "rules": (_cmd_rules, False),
    "add-rule": (_cmd_add_rule, True),
    "load-rules": (_cmd_load_rules, True),
    "delete-rule": (_cmd_delete_rule, True),
    "set-budget": (_cmd_set_budget, True),
    "set-targets": (_cmd_set_targets, True),
    "income": (_cmd_income, False),
    "add-income": (_cmd_add_income, True),
}


def run(argv: Iterable[str] | None = None) -> str:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    handler, writes = COMMANDS[args.command]
    logger.debug("Running %s against %s", args.command, args.data)
    try:
        ledger = load_ledger(args.data)
        output_text = handler(ledger, args)
    except (KeyError, ValueError, FileNotFoundError) as exc:
        raise SystemExit(str(exc))
    if writes:
        save_ledger(ledger, args.data)
    print(output_text)
    return output_text


def main(argv: List[str] | None = None) -> None:
    run(argv)


if __name__ == "__main__":
    main()
