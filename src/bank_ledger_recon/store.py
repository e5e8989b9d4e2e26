"""In-memory reconciliation session state."""

from dataclasses import dataclass, field
from typing import Optional

from .models.transaction import (
    LedgerEntry,
    MatchStatus,
    ReconciliationReport,
    Rule,
    Transaction,
)


@dataclass
class ReconciliationStore:
    """
    Records, accounts and rules of one reconciliation session.

    The caller owns the store's lifetime and passes it to the normalizer,
    rule engine and matching engine. It is not thread-safe: a service exposing
    it must serialize imports and matching runs per store.
    """

    transactions: list[Transaction] = field(default_factory=list)
    ledger_entries: list[LedgerEntry] = field(default_factory=list)
    accounts: list[str] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)
    company: str = ""
    bank: str = ""
    currency: str = "BRL"
    notes: str = ""
    last_report: Optional[ReconciliationReport] = None

    def add_accounts(self, labels: list[str]) -> int:
        """Append account labels not already known; returns how many were new."""
        known = set(self.accounts)
        added = 0
        for label in labels:
            label = label.strip()
            if label and label not in known:
                self.accounts.append(label)
                known.add(label)
                added += 1
        return added

    def sort_transactions(self) -> None:
        self.transactions.sort(key=lambda t: t.date, reverse=True)

    def metrics(self) -> dict[str, int]:
        total = len(self.transactions)
        matched = sum(1 for t in self.transactions if t.status == MatchStatus.MATCHED)
        ledger_matched = sum(1 for e in self.ledger_entries if e.matched)
        return {
            "transactions": total,
            "matched": matched,
            "pending": total - matched,
            "ledger_entries": len(self.ledger_entries),
            "ledger_matched": ledger_matched,
            "ledger_pending": len(self.ledger_entries) - ledger_matched,
            "accounts": len(self.accounts),
            "rules": len(self.rules),
        }

    def clear(self) -> None:
        """Drop all records, accounts, rules and the latest report."""
        self.transactions.clear()
        self.ledger_entries.clear()
        self.accounts.clear()
        self.rules.clear()
        self.last_report = None
