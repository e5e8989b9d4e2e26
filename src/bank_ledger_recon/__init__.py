"""Reconcile bank statement transactions against accounting ledger entries."""

__version__ = "0.1.0"
