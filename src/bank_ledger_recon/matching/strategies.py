"""
Matching strategies for transaction reconciliation.
Each strategy implements one matching pass.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..models.transaction import LedgerEntry, MatchType, Transaction
from .grouping import Cluster, build_clusters, cluster_span, cluster_total
from .similarity import DEFAULT_MAX_LENGTH, similarity


def value_diff(txn: Transaction, entry: LedgerEntry) -> Decimal:
    return abs(txn.amount - entry.value)


def day_diff(txn: Transaction, entry: LedgerEntry) -> Optional[int]:
    if txn.date is None or entry.date is None:
        return None
    return abs((txn.date - entry.date).days)


class MatchingStrategy(ABC):
    """Abstract base class for one-to-one matching passes."""

    match_type: MatchType

    def __init__(self, tolerance_value: Decimal):
        self.tolerance_value = tolerance_value

    def within_value(self, txn: Transaction, entry: LedgerEntry) -> bool:
        return value_diff(txn, entry) <= self.tolerance_value

    @abstractmethod
    def find_match(
        self, txn: Transaction, candidates: Sequence[LedgerEntry]
    ) -> Optional[LedgerEntry]:
        """
        Find the ledger entry this pass binds to a bank transaction.

        Args:
            txn: Pending bank transaction
            candidates: Ledger entries not yet claimed in this run

        Returns:
            The matching entry or None
        """
        pass

    @abstractmethod
    def calculate_match_score(self, txn: Transaction, entry: LedgerEntry) -> float:
        """Confidence score (0.0-1.0) of a match found by this pass."""
        pass


class ExactMatchStrategy(MatchingStrategy):
    """
    Same calendar day, amount within the value tolerance.
    Highest confidence pass.
    """

    match_type = MatchType.EXACT

    def find_match(
        self, txn: Transaction, candidates: Sequence[LedgerEntry]
    ) -> Optional[LedgerEntry]:
        for entry in candidates:
            if entry.date == txn.date and self.within_value(txn, entry):
                return entry
        return None

    def calculate_match_score(self, txn: Transaction, entry: LedgerEntry) -> float:
        return 1.0


class DateToleranceStrategy(MatchingStrategy):
    """Amount within the value tolerance, date within the day window."""

    match_type = MatchType.TOLERANCE

    def __init__(
        self, tolerance_value: Decimal, tolerance_days: int, score_floor: float = 0.7
    ):
        """
        Initialize with tolerances.

        Args:
            tolerance_value: Maximum absolute amount difference
            tolerance_days: Maximum days difference
            score_floor: Lowest score a tolerance match can get
        """
        super().__init__(tolerance_value)
        self.tolerance_days = tolerance_days
        self.score_floor = score_floor

    def find_match(
        self, txn: Transaction, candidates: Sequence[LedgerEntry]
    ) -> Optional[LedgerEntry]:
        for entry in candidates:
            days = day_diff(txn, entry)
            if days is None or days > self.tolerance_days:
                continue
            if self.within_value(txn, entry):
                return entry
        return None

    def calculate_match_score(self, txn: Transaction, entry: LedgerEntry) -> float:
        """Score decreases with date distance, never below the floor."""
        if self.tolerance_days == 0:
            return 1.0
        days = day_diff(txn, entry) or 0
        return max(self.score_floor, 1.0 - days / self.tolerance_days)


class FuzzyDescriptionStrategy(MatchingStrategy):
    """
    Amount within tolerance, best description similarity above a threshold.
    Lowest confidence one-to-one pass; dates are not compared.
    """

    match_type = MatchType.FUZZY

    def __init__(
        self,
        tolerance_value: Decimal,
        similarity_threshold: float = 0.6,
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        super().__init__(tolerance_value)
        self.similarity_threshold = similarity_threshold
        self.max_length = max_length

    def find_match(
        self, txn: Transaction, candidates: Sequence[LedgerEntry]
    ) -> Optional[LedgerEntry]:
        best_match: Optional[LedgerEntry] = None
        best_score = -1.0

        for entry in candidates:
            if not self.within_value(txn, entry):
                continue
            score = similarity(txn.description, entry.description, self.max_length)
            if score > best_score:
                best_match = entry
                best_score = score

        if best_match is None or best_score < self.similarity_threshold:
            return None
        return best_match

    def calculate_match_score(self, txn: Transaction, entry: LedgerEntry) -> float:
        return similarity(txn.description, entry.description, self.max_length)


@dataclass
class GroupCandidate:
    """A bank cluster paired with the ledger cluster it reconciles against."""

    bank: Cluster[Transaction]
    ledger: Cluster[LedgerEntry]
    score: float
    bank_total: Decimal
    ledger_total: Decimal
    date_span_diff_days: int

    @property
    def value_diff(self) -> Decimal:
        return abs(self.bank_total - self.ledger_total)


class GroupMatchingStrategy:
    """
    N:N matching of clusters of similarly described records.

    The amount tolerance scales with the larger cluster size, since each
    member may carry its own rounding difference.
    """

    match_type = MatchType.GROUP

    def __init__(
        self,
        tolerance_value: Decimal,
        tolerance_days: int,
        similarity_threshold: float = 0.65,
        stop_words: Iterable[str] = (),
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        self.tolerance_value = tolerance_value
        self.tolerance_days = tolerance_days
        self.similarity_threshold = similarity_threshold
        self.stop_words = list(stop_words)
        self.max_length = max_length

    def find_groups(
        self, transactions: Sequence[Transaction], entries: Sequence[LedgerEntry]
    ) -> list[GroupCandidate]:
        """
        Pair bank clusters with ledger clusters.

        Bank clusters are visited in first-seen order; each takes the
        most similar ledger cluster still available that satisfies the
        amount and date-span tolerances.
        """
        bank_clusters = build_clusters(transactions, lambda t: t.description, self.stop_words)
        ledger_clusters = build_clusters(entries, lambda e: e.description, self.stop_words)

        used: set[int] = set()
        groups: list[GroupCandidate] = []

        for bank in bank_clusters:
            bank_span = cluster_span(bank, lambda t: t.date)
            if bank_span is None:
                continue
            bank_total = cluster_total(bank, lambda t: t.amount)

            best: Optional[GroupCandidate] = None
            best_index = -1
            for index, ledger in enumerate(ledger_clusters):
                if index in used:
                    continue
                score = similarity(bank.key, ledger.key, self.max_length)
                if score < self.similarity_threshold:
                    continue

                ledger_total = cluster_total(ledger, lambda e: e.value)
                allowed = self.tolerance_value * max(len(bank), len(ledger))
                if abs(bank_total - ledger_total) > allowed:
                    continue

                ledger_span = cluster_span(ledger, lambda e: e.date)
                if ledger_span is None:
                    continue
                start_diff = abs((bank_span[0] - ledger_span[0]).days)
                end_diff = abs((bank_span[1] - ledger_span[1]).days)
                if start_diff > self.tolerance_days or end_diff > self.tolerance_days:
                    continue

                if best is None or score > best.score:
                    best = GroupCandidate(
                        bank=bank,
                        ledger=ledger,
                        score=score,
                        bank_total=bank_total,
                        ledger_total=ledger_total,
                        date_span_diff_days=max(start_diff, end_diff),
                    )
                    best_index = index

            if best is not None:
                used.add(best_index)
                groups.append(best)

        return groups
