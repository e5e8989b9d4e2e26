"""
CSV and JSON exports of a reconciliation session.

The CSV is the unified statement: one row per bank transaction, readable back
through the normal import path. The JSON state document carries the whole
session (records, accounts, rules, latest report) and can be reloaded.
"""

from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence
import json
import logging

import pandas as pd

from ..models.transaction import (
    GroupMatch,
    LedgerEntry,
    MatchStatus,
    MatchType,
    PairMatch,
    ReconciliationReport,
    ReportTotals,
    Rule,
    Transaction,
)
from ..store import ReconciliationStore
from ..utils.exceptions import MalformedFileError, ReportGenerationError

logger = logging.getLogger(__name__)

STATE_VERSION = 1
CSV_COLUMNS = [
    "date",
    "description",
    "amount",
    "account",
    "status",
    "match_type",
    "match_score",
]


def export_csv(transactions: Sequence[Transaction]) -> str:
    """
    Render transactions as the unified CSV statement.

    The text starts with a byte-order mark so spreadsheet tools pick up UTF-8.
    """
    rows = [
        {
            "date": txn.date.isoformat(),
            "description": txn.description,
            "amount": str(txn.amount),
            "account": txn.account,
            "status": txn.status.value,
            "match_type": txn.match_type.value,
            "match_score": "" if txn.match_score is None else f"{txn.match_score:.4f}",
        }
        for txn in transactions
    ]
    df = pd.DataFrame(rows, columns=CSV_COLUMNS)
    return "\ufeff" + df.to_csv(index=False, lineterminator="\n")


def write_csv(transactions: Sequence[Transaction], output_path: Path) -> Path:
    """Write the unified CSV statement to a file."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        output_path.write_text(export_csv(transactions), encoding="utf-8")
    except OSError as e:
        raise ReportGenerationError(f"Cannot write {output_path}: {e}") from e
    logger.info(f"CSV export saved: {output_path} ({len(transactions)} rows)")
    return output_path


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _money(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


def _transaction_to_dict(txn: Transaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "date": _iso(txn.date),
        "description": txn.description,
        "amount": _money(txn.amount),
        "status": txn.status.value,
        "account": txn.account,
        "match_type": txn.match_type.value,
        "match_score": txn.match_score,
        "matched_with": txn.matched_with,
        "reconciliation_id": txn.reconciliation_id,
        "balance": _money(txn.balance),
        "source": txn.source,
    }


def _entry_to_dict(entry: LedgerEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "date": _iso(entry.date),
        "description": entry.description,
        "value": _money(entry.value),
        "account": entry.account,
        "matched": entry.matched,
        "match_type": entry.match_type.value,
        "match_score": entry.match_score,
        "matched_with": entry.matched_with,
        "reconciliation_id": entry.reconciliation_id,
        "source": entry.source,
    }


def _pair_to_dict(match: PairMatch) -> dict[str, Any]:
    return {
        "reconciliation_id": match.reconciliation_id,
        "transaction_id": match.transaction_id,
        "ledger_id": match.ledger_id,
        "date_diff_days": match.date_diff_days,
        "value_diff": _money(match.value_diff),
        "score": match.score,
    }


def _group_to_dict(match: GroupMatch) -> dict[str, Any]:
    return {
        "reconciliation_id": match.reconciliation_id,
        "transaction_ids": list(match.transaction_ids),
        "ledger_ids": list(match.ledger_ids),
        "bank_key": match.bank_key,
        "ledger_key": match.ledger_key,
        "bank_total": _money(match.bank_total),
        "ledger_total": _money(match.ledger_total),
        "value_diff": _money(match.value_diff),
        "date_span_diff_days": match.date_span_diff_days,
        "score": match.score,
    }


def report_to_dict(report: ReconciliationReport) -> dict[str, Any]:
    totals = report.totals
    return {
        "generated_at": report.generated_at.isoformat(),
        "tolerance_days": report.tolerance_days,
        "tolerance_value": _money(report.tolerance_value),
        "totals": {
            "bank_count": totals.bank_count,
            "ledger_count": totals.ledger_count,
            "matched_count": totals.matched_count,
            "pending_count": totals.pending_count,
            "ledger_matched_count": totals.ledger_matched_count,
            "ledger_pending_count": totals.ledger_pending_count,
        },
        "exact": [_pair_to_dict(m) for m in report.exact],
        "tolerance": [_pair_to_dict(m) for m in report.tolerance],
        "fuzzy": [_pair_to_dict(m) for m in report.fuzzy],
        "group": [_group_to_dict(m) for m in report.group],
    }


def export_state(store: ReconciliationStore) -> dict[str, Any]:
    """Build the JSON-ready state document of a session."""
    return {
        "version": STATE_VERSION,
        "exported_at": datetime.now().isoformat(),
        "metadata": {
            "company": store.company,
            "bank": store.bank,
            "currency": store.currency,
            "notes": store.notes,
        },
        "transactions": [_transaction_to_dict(t) for t in store.transactions],
        "ledger_entries": [_entry_to_dict(e) for e in store.ledger_entries],
        "accounts": list(store.accounts),
        "rules": [
            {
                "pattern": rule.pattern,
                "account": rule.account,
                "usage_count": rule.usage_count,
                "created_at": rule.created_at.isoformat(),
            }
            for rule in store.rules
        ],
        "metrics": store.metrics(),
        "last_report": report_to_dict(store.last_report) if store.last_report else None,
    }


def write_state(store: ReconciliationStore, output_path: Path) -> Path:
    """Write the state document as indented UTF-8 JSON."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(export_state(store), f, ensure_ascii=False, indent=2)
    except OSError as e:
        raise ReportGenerationError(f"Cannot write {output_path}: {e}") from e
    logger.info(f"State saved: {output_path}")
    return output_path


def _date(value: Optional[str]) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _decimal(value: Optional[str]) -> Optional[Decimal]:
    return Decimal(value) if value is not None else None


def _report_from_dict(doc: dict[str, Any]) -> ReconciliationReport:
    def pair(item: dict[str, Any]) -> PairMatch:
        return PairMatch(
            reconciliation_id=item["reconciliation_id"],
            transaction_id=item["transaction_id"],
            ledger_id=item["ledger_id"],
            date_diff_days=item.get("date_diff_days"),
            value_diff=Decimal(item["value_diff"]),
            score=float(item["score"]),
        )

    def group(item: dict[str, Any]) -> GroupMatch:
        return GroupMatch(
            reconciliation_id=item["reconciliation_id"],
            transaction_ids=tuple(item["transaction_ids"]),
            ledger_ids=tuple(item["ledger_ids"]),
            bank_key=item["bank_key"],
            ledger_key=item["ledger_key"],
            bank_total=Decimal(item["bank_total"]),
            ledger_total=Decimal(item["ledger_total"]),
            value_diff=Decimal(item["value_diff"]),
            date_span_diff_days=int(item["date_span_diff_days"]),
            score=float(item["score"]),
        )

    return ReconciliationReport(
        generated_at=datetime.fromisoformat(doc["generated_at"]),
        tolerance_days=int(doc["tolerance_days"]),
        tolerance_value=Decimal(doc["tolerance_value"]),
        totals=ReportTotals(**doc["totals"]),
        exact=tuple(pair(m) for m in doc.get("exact", [])),
        tolerance=tuple(pair(m) for m in doc.get("tolerance", [])),
        fuzzy=tuple(pair(m) for m in doc.get("fuzzy", [])),
        group=tuple(group(m) for m in doc.get("group", [])),
    )


def load_state(doc: dict[str, Any], source: str = "state") -> ReconciliationStore:
    """
    Rebuild a session store from a state document.

    Args:
        doc: Parsed state document as produced by ``export_state``
        source: Name used in error messages

    Returns:
        A new store holding the document's records, accounts and rules

    Raises:
        MalformedFileError: If the document is not a valid state export
    """
    if not isinstance(doc, dict) or "transactions" not in doc:
        raise MalformedFileError(source, "not a reconciliation state document")
    version = doc.get("version")
    if version != STATE_VERSION:
        raise MalformedFileError(source, f"unsupported state version: {version}")

    metadata = doc.get("metadata") or {}
    try:
        store = ReconciliationStore(
            transactions=[
                Transaction(
                    id=item["id"],
                    date=date.fromisoformat(item["date"]),
                    description=item["description"],
                    amount=Decimal(item["amount"]),
                    status=MatchStatus(item.get("status", "pending")),
                    account=item.get("account", ""),
                    match_type=MatchType(item.get("match_type", "none")),
                    match_score=item.get("match_score"),
                    matched_with=item.get("matched_with"),
                    reconciliation_id=item.get("reconciliation_id"),
                    balance=_decimal(item.get("balance")),
                    source=item.get("source", ""),
                )
                for item in doc["transactions"]
            ],
            ledger_entries=[
                LedgerEntry(
                    id=item["id"],
                    date=_date(item.get("date")),
                    description=item["description"],
                    value=Decimal(item["value"]),
                    account=item.get("account", ""),
                    matched=bool(item.get("matched", False)),
                    match_type=MatchType(item.get("match_type", "none")),
                    match_score=item.get("match_score"),
                    matched_with=item.get("matched_with"),
                    reconciliation_id=item.get("reconciliation_id"),
                    source=item.get("source", ""),
                )
                for item in doc.get("ledger_entries", [])
            ],
            accounts=list(doc.get("accounts", [])),
            rules=[
                Rule(
                    pattern=item["pattern"],
                    account=item["account"],
                    usage_count=int(item.get("usage_count", 0)),
                    created_at=datetime.fromisoformat(item["created_at"]),
                )
                for item in doc.get("rules", [])
            ],
            company=metadata.get("company", ""),
            bank=metadata.get("bank", ""),
            currency=metadata.get("currency", "BRL"),
            notes=metadata.get("notes", ""),
        )
        if doc.get("last_report"):
            store.last_report = _report_from_dict(doc["last_report"])
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise MalformedFileError(source, f"invalid state document: {e}") from e

    logger.info(
        f"Loaded state from {source}: {len(store.transactions)} transactions, "
        f"{len(store.ledger_entries)} ledger entries, {len(store.rules)} rules"
    )
    return store


def read_state(path: Path) -> ReconciliationStore:
    """Load a state document from disk."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedFileError(str(path), f"invalid JSON: {e}") from e
    return load_state(doc, source=str(path))
