"""Data models for reconciliation."""

from .transaction import (
    GroupMatch,
    ImportIssue,
    ImportResult,
    LedgerEntry,
    MatchStatus,
    MatchType,
    PairMatch,
    RawRecord,
    ReconciliationReport,
    ReportTotals,
    Rule,
    Transaction,
)

__all__ = [
    "GroupMatch",
    "ImportIssue",
    "ImportResult",
    "LedgerEntry",
    "MatchStatus",
    "MatchType",
    "PairMatch",
    "RawRecord",
    "ReconciliationReport",
    "ReportTotals",
    "Rule",
    "Transaction",
]
