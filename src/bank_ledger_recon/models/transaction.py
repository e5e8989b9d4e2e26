"""Data models for bank transactions, ledger entries, rules and reports."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
import re


class MatchStatus(Enum):
    """Reconciliation status of a bank transaction."""

    PENDING = "pending"
    MATCHED = "matched"


class MatchType(Enum):
    """Matching pass that claimed a record."""

    NONE = "none"
    EXACT = "exact"
    TOLERANCE = "tolerance"
    FUZZY = "fuzzy"
    GROUP = "group"


@dataclass
class RawRecord:
    """
    A decoded but not yet normalized statement line.

    Decoders (tabular, interchange, free text, JSON) all emit this shape so
    the normalizer handles every format the same way.
    """

    date: Optional[date]
    description: str
    amount: Decimal
    balance: Optional[Decimal] = None
    account: str = ""
    raw_date: str = ""


@dataclass
class Transaction:
    """
    Bank-side record.

    Only the status/match fields change after import; everything else is
    fixed at creation time.
    """

    id: str
    date: date
    description: str
    # Signed: positive = credit, negative = debit
    amount: Decimal
    status: MatchStatus = MatchStatus.PENDING
    account: str = ""
    match_type: MatchType = MatchType.NONE
    match_score: Optional[float] = None
    matched_with: Optional[str] = None
    reconciliation_id: Optional[str] = None
    balance: Optional[Decimal] = None
    source: str = ""

    @property
    def is_matched(self) -> bool:
        return self.status == MatchStatus.MATCHED

    @property
    def debit(self) -> Decimal:
        return -self.amount if self.amount < 0 else Decimal("0")

    @property
    def credit(self) -> Decimal:
        return self.amount if self.amount > 0 else Decimal("0")


@dataclass
class LedgerEntry:
    """Accounting-side record, same sign convention as Transaction.amount."""

    id: str
    date: Optional[date]
    description: str
    value: Decimal
    account: str = ""
    matched: bool = False
    match_type: MatchType = MatchType.NONE
    match_score: Optional[float] = None
    matched_with: Optional[str] = None
    reconciliation_id: Optional[str] = None
    source: str = ""


@dataclass
class Rule:
    """
    Description pattern mapped to a ledger account.

    The pattern is compiled once; an invalid regex leaves ``matcher`` unset so
    the rule only takes part in the substring fallback.
    """

    pattern: str
    account: str
    usage_count: int = 0
    created_at: datetime = field(default_factory=datetime.now)
    matcher: Optional[re.Pattern] = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            self.matcher = re.compile(self.pattern, re.IGNORECASE)
        except re.error:
            self.matcher = None

    @property
    def is_valid(self) -> bool:
        return self.matcher is not None

    def matches_regex(self, description: str) -> bool:
        if self.matcher is None:
            return False
        return self.matcher.search(description) is not None

    def matches_substring(self, description: str) -> bool:
        pattern = self.pattern.lower()
        text = description.lower()
        if not pattern or not text:
            return False
        return pattern in text or text in pattern


@dataclass(frozen=True)
class PairMatch:
    """One-to-one match produced by the exact, tolerance or fuzzy pass."""

    reconciliation_id: str
    transaction_id: str
    ledger_id: str
    date_diff_days: Optional[int]
    value_diff: Decimal
    score: float


@dataclass(frozen=True)
class GroupMatch:
    """N:N match between a bank cluster and a ledger cluster."""

    reconciliation_id: str
    transaction_ids: tuple[str, ...]
    ledger_ids: tuple[str, ...]
    bank_key: str
    ledger_key: str
    bank_total: Decimal
    ledger_total: Decimal
    value_diff: Decimal
    date_span_diff_days: int
    score: float


@dataclass(frozen=True)
class ReportTotals:
    """Aggregate counts for one matching run."""

    bank_count: int
    ledger_count: int
    matched_count: int
    pending_count: int
    ledger_matched_count: int
    ledger_pending_count: int

    @property
    def match_rate_bank(self) -> float:
        """Percentage of bank transactions matched."""
        if self.bank_count == 0:
            return 0.0
        return (self.matched_count / self.bank_count) * 100

    @property
    def match_rate_ledger(self) -> float:
        """Percentage of ledger entries matched."""
        if self.ledger_count == 0:
            return 0.0
        return (self.ledger_matched_count / self.ledger_count) * 100


@dataclass(frozen=True)
class ReconciliationReport:
    """Immutable snapshot of one matching run."""

    generated_at: datetime
    tolerance_days: int
    tolerance_value: Decimal
    totals: ReportTotals
    exact: tuple[PairMatch, ...] = ()
    tolerance: tuple[PairMatch, ...] = ()
    fuzzy: tuple[PairMatch, ...] = ()
    group: tuple[GroupMatch, ...] = ()

    @property
    def pair_matches(self) -> tuple[PairMatch, ...]:
        return self.exact + self.tolerance + self.fuzzy

    @property
    def matches_by_pass(self) -> dict[str, int]:
        return {
            MatchType.EXACT.value: len(self.exact),
            MatchType.TOLERANCE.value: len(self.tolerance),
            MatchType.FUZZY.value: len(self.fuzzy),
            MatchType.GROUP.value: len(self.group),
        }


@dataclass(frozen=True)
class ImportIssue:
    """Machine-readable problem found while importing a file."""

    source: str
    kind: str
    message: str
    count: int = 1


@dataclass
class ImportResult:
    """Outcome of an import batch."""

    imported: int = 0
    dropped: int = 0
    duplicates: int = 0
    ignored: int = 0
    issues: list[ImportIssue] = field(default_factory=list)
    opening_balance: Optional[Decimal] = None

    def add_issue(self, source: str, kind: str, message: str, count: int = 1) -> None:
        self.issues.append(ImportIssue(source=source, kind=kind, message=message, count=count))

    def merge(self, other: "ImportResult") -> None:
        self.imported += other.imported
        self.dropped += other.dropped
        self.duplicates += other.duplicates
        self.ignored += other.ignored
        self.issues.extend(other.issues)
        if other.opening_balance is not None:
            self.opening_balance = other.opening_balance
