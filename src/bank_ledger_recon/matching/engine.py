"""
Multi-pass matching engine for transaction reconciliation.

Passes run in a fixed order (exact, date tolerance, fuzzy description,
group) and each claims records greedily, first found wins. The result is
deterministic and every match can be explained by the pass that produced
it, but it is not a global optimum: neither the number of matches nor the
total discrepancy is maximised or minimised across passes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence
import logging

from ..config import MatchingConfig, ReconConfig
from ..models.transaction import (
    GroupMatch,
    LedgerEntry,
    MatchStatus,
    MatchType,
    PairMatch,
    ReconciliationReport,
    ReportTotals,
    Transaction,
)
from ..store import ReconciliationStore
from .strategies import (
    DateToleranceStrategy,
    ExactMatchStrategy,
    FuzzyDescriptionStrategy,
    GroupMatchingStrategy,
    MatchingStrategy,
    day_diff,
    value_diff,
)

logger = logging.getLogger(__name__)


@dataclass
class _Claim:
    """Proposed match fields for one record."""

    match_type: MatchType
    reconciliation_id: str
    partner_id: str
    score: Optional[float]
    account: str = ""


@dataclass
class _RunOverlay:
    """
    Match annotations proposed during one run.

    Nothing touches the records until ``commit``; a run that raises leaves
    the previous state intact.
    """

    transactions: dict[str, _Claim] = field(default_factory=dict)
    ledger: dict[str, _Claim] = field(default_factory=dict)
    counters: dict[MatchType, int] = field(default_factory=dict)

    def next_id(self, match_type: MatchType) -> str:
        sequence = self.counters.get(match_type, 0) + 1
        self.counters[match_type] = sequence
        return f"{match_type.value.upper()}-{sequence:04d}"

    def claim_pair(
        self,
        txn: Transaction,
        entry: LedgerEntry,
        match_type: MatchType,
        score: float,
        reconciliation_id: str,
    ) -> None:
        self.transactions[txn.id] = _Claim(
            match_type, reconciliation_id, entry.id, score, entry.account
        )
        self.ledger[entry.id] = _Claim(match_type, reconciliation_id, txn.id, score)

    def commit(
        self, transactions: Sequence[Transaction], entries: Sequence[LedgerEntry]
    ) -> None:
        for txn in transactions:
            claim = self.transactions.get(txn.id)
            if claim is None:
                txn.status = MatchStatus.PENDING
                txn.match_type = MatchType.NONE
                txn.match_score = None
                txn.matched_with = None
                txn.reconciliation_id = None
                continue
            txn.status = MatchStatus.MATCHED
            txn.match_type = claim.match_type
            txn.match_score = claim.score
            txn.matched_with = claim.partner_id
            txn.reconciliation_id = claim.reconciliation_id
            if not txn.account and claim.account:
                txn.account = claim.account

        for entry in entries:
            claim = self.ledger.get(entry.id)
            entry.matched = claim is not None
            entry.match_type = claim.match_type if claim else MatchType.NONE
            entry.match_score = claim.score if claim else None
            entry.matched_with = claim.partner_id if claim else None
            entry.reconciliation_id = claim.reconciliation_id if claim else None


class MatchingEngine:
    """
    Reconciles bank transactions against ledger entries.

    Every run starts as if all transactions were pending and all ledger
    entries unmatched, so running it twice with the same inputs yields the
    same report.
    """

    def __init__(
        self,
        config: Optional[ReconConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Initialize the matching engine.

        Args:
            config: Application configuration (thresholds, default tolerances)
            clock: Source of the report timestamp
        """
        self.config = config or ReconConfig()
        self.clock = clock

    @property
    def settings(self) -> MatchingConfig:
        return self.config.matching

    def run_store(
        self,
        store: ReconciliationStore,
        tolerance_days: Optional[int] = None,
        tolerance_value: Optional[Decimal] = None,
    ) -> ReconciliationReport:
        """Run against a session store and keep the report as its latest."""
        report = self.run(
            store.transactions, store.ledger_entries, tolerance_days, tolerance_value
        )
        store.last_report = report
        return report

    def run(
        self,
        transactions: Sequence[Transaction],
        ledger_entries: Sequence[LedgerEntry],
        tolerance_days: Optional[int] = None,
        tolerance_value: Optional[Decimal] = None,
    ) -> ReconciliationReport:
        """
        Perform one reconciliation run.

        Args:
            transactions: Bank transactions
            ledger_entries: Ledger entries
            tolerance_days: Date window in days (default from config)
            tolerance_value: Amount window in currency units (default from config)

        Returns:
            Report of this run; match fields on the records are updated once
            all passes have completed
        """
        days = self.settings.tolerance_days if tolerance_days is None else int(tolerance_days)
        value = (
            self.settings.tolerance_value
            if tolerance_value is None
            else Decimal(str(tolerance_value))
        )
        if days < 0 or value < 0:
            raise ValueError("Tolerances must be non-negative")

        start_time = datetime.now()
        logger.info(
            f"Starting reconciliation: {len(transactions)} bank txns, "
            f"{len(ledger_entries)} ledger entries "
            f"(tolerance {days} day(s), {value})"
        )

        overlay = _RunOverlay()
        pair_strategies: list[MatchingStrategy] = [
            ExactMatchStrategy(value),
            DateToleranceStrategy(value, days, self.settings.tolerance_score_floor),
            FuzzyDescriptionStrategy(
                value, self.settings.fuzzy_threshold, self.settings.similarity_max_length
            ),
        ]

        pass_results: dict[MatchType, tuple[PairMatch, ...]] = {}
        for strategy in pair_strategies:
            matches = self._run_pair_pass(strategy, transactions, ledger_entries, overlay)
            pass_results[strategy.match_type] = tuple(matches)
            logger.debug(f"Pass {strategy.match_type.value}: {len(matches)} matches")

        groups = self._run_group_pass(
            GroupMatchingStrategy(
                value,
                days,
                self.settings.group_threshold,
                self.settings.stop_words,
                self.settings.similarity_max_length,
            ),
            transactions,
            ledger_entries,
            overlay,
        )
        logger.debug(f"Pass group: {len(groups)} matches")

        matched = len(overlay.transactions)
        ledger_matched = len(overlay.ledger)
        report = ReconciliationReport(
            generated_at=self.clock(),
            tolerance_days=days,
            tolerance_value=value,
            totals=ReportTotals(
                bank_count=len(transactions),
                ledger_count=len(ledger_entries),
                matched_count=matched,
                pending_count=len(transactions) - matched,
                ledger_matched_count=ledger_matched,
                ledger_pending_count=len(ledger_entries) - ledger_matched,
            ),
            exact=pass_results[MatchType.EXACT],
            tolerance=pass_results[MatchType.TOLERANCE],
            fuzzy=pass_results[MatchType.FUZZY],
            group=tuple(groups),
        )

        overlay.commit(transactions, ledger_entries)

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.2f}s: {matched} bank and "
            f"{ledger_matched} ledger records matched, "
            f"{report.totals.pending_count} bank pending"
        )
        return report

    def _run_pair_pass(
        self,
        strategy: MatchingStrategy,
        transactions: Sequence[Transaction],
        entries: Sequence[LedgerEntry],
        overlay: _RunOverlay,
    ) -> list[PairMatch]:
        matches: list[PairMatch] = []

        for txn in transactions:
            if txn.id in overlay.transactions:
                continue
            candidates = [e for e in entries if e.id not in overlay.ledger]
            if not candidates:
                break

            entry = strategy.find_match(txn, candidates)
            if entry is None:
                continue

            score = strategy.calculate_match_score(txn, entry)
            reconciliation_id = overlay.next_id(strategy.match_type)
            overlay.claim_pair(txn, entry, strategy.match_type, score, reconciliation_id)
            matches.append(
                PairMatch(
                    reconciliation_id=reconciliation_id,
                    transaction_id=txn.id,
                    ledger_id=entry.id,
                    date_diff_days=day_diff(txn, entry),
                    value_diff=value_diff(txn, entry),
                    score=score,
                )
            )

        return matches

    def _run_group_pass(
        self,
        strategy: GroupMatchingStrategy,
        transactions: Sequence[Transaction],
        entries: Sequence[LedgerEntry],
        overlay: _RunOverlay,
    ) -> list[GroupMatch]:
        pending = [t for t in transactions if t.id not in overlay.transactions]
        available = [e for e in entries if e.id not in overlay.ledger]
        matches: list[GroupMatch] = []

        for candidate in strategy.find_groups(pending, available):
            reconciliation_id = overlay.next_id(MatchType.GROUP)
            ledger_members = candidate.ledger.members
            bank_members = candidate.bank.members
            account = next((e.account for e in ledger_members if e.account), "")

            for txn in bank_members:
                overlay.transactions[txn.id] = _Claim(
                    MatchType.GROUP,
                    reconciliation_id,
                    ledger_members[0].id,
                    candidate.score,
                    account,
                )
            for entry in ledger_members:
                overlay.ledger[entry.id] = _Claim(
                    MatchType.GROUP, reconciliation_id, bank_members[0].id, None
                )

            matches.append(
                GroupMatch(
                    reconciliation_id=reconciliation_id,
                    transaction_ids=tuple(t.id for t in bank_members),
                    ledger_ids=tuple(e.id for e in ledger_members),
                    bank_key=candidate.bank.key,
                    ledger_key=candidate.ledger.key,
                    bank_total=candidate.bank_total,
                    ledger_total=candidate.ledger_total,
                    value_diff=candidate.value_diff,
                    date_span_diff_days=candidate.date_span_diff_days,
                    score=candidate.score,
                )
            )

        return matches
