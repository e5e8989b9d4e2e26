"""
Account suggestion rules.

Rules map description patterns to ledger accounts. They are tried in
storage order, newest first, so a correction made by the user takes
precedence over older, broader patterns.
"""

from typing import Iterable
import logging

from .models.transaction import Rule, Transaction
from .store import ReconciliationStore

logger = logging.getLogger(__name__)


class RuleEngine:
    """Suggests accounts from the store's rules and learns from corrections."""

    def __init__(self, store: ReconciliationStore):
        self.store = store

    @property
    def rules(self) -> list[Rule]:
        return self.store.rules

    def suggest_account(self, description: str) -> str:
        """
        Return the account of the first matching rule, or "".

        Patterns are tried as case-insensitive regular expressions first.
        Learned rules are usually literal descriptions, so when no regex
        matches a case-insensitive containment check (either direction) is
        tried as well.
        """
        if not description:
            return ""

        for rule in self.rules:
            if rule.matches_regex(description):
                rule.usage_count += 1
                return rule.account

        for rule in self.rules:
            if rule.matches_substring(description):
                rule.usage_count += 1
                return rule.account

        return ""

    def create_rule(self, pattern: str, account: str) -> Rule:
        """
        Add a rule, or bump the usage of an identical one.

        Args:
            pattern: Regex or literal description
            account: Target account label

        Returns:
            The new or existing rule
        """
        pattern = pattern.strip()
        account = account.strip()
        if not pattern or not account:
            raise ValueError("Rule pattern and account are required")

        for rule in self.rules:
            if rule.pattern.lower() == pattern.lower() and rule.account == account:
                rule.usage_count += 1
                return rule

        rule = Rule(pattern=pattern, account=account)
        if not rule.is_valid:
            logger.warning(f"Rule pattern is not a valid regex, using substring matching: {pattern}")
        self.rules.insert(0, rule)
        logger.debug(f"Created rule {pattern!r} -> {account!r}")
        return rule

    def learn_correction(self, transaction: Transaction, account: str) -> Rule:
        """Apply a manual account correction and remember it as a rule."""
        transaction.account = account.strip()
        return self.create_rule(transaction.description, account)

    def apply_to_pending(self, transactions: Iterable[Transaction]) -> int:
        """Suggest accounts for transactions that have none; returns how many got one."""
        assigned = 0
        for txn in transactions:
            if txn.account:
                continue
            account = self.suggest_account(txn.description)
            if account:
                txn.account = account
                assigned += 1
        return assigned
