"""Shared fixtures for the reconciliation test suite."""

from datetime import date, datetime
from decimal import Decimal
import itertools

import pytest

from bank_ledger_recon.config import ReconConfig
from bank_ledger_recon.models.transaction import LedgerEntry, Transaction
from bank_ledger_recon.normalizer import RecordNormalizer
from bank_ledger_recon.store import ReconciliationStore

FIXED_NOW = datetime(2026, 3, 10, 9, 30, 0)

BR_STATEMENT_CSV = (
    "Data;Descrição;Valor\n"
    "03/02/2026;PIX RECEBIDO CLIENTE A;1.250,50\n"
    "04/02/2026;ENERGIA ELETRICA;-320,75\n"
)

LEDGER_CSV = (
    "Data;Histórico;Valor;Conta\n"
    "03/02/2026;Recebimento cliente A;1.250,50;Receitas - Vendas\n"
    "05/02/2026;Energia elétrica fevereiro;-320,75;Despesas - Energia\n"
)


@pytest.fixture
def config():
    return ReconConfig()


@pytest.fixture
def store():
    return ReconciliationStore(company="ACME Ltda", bank="Banco Teste")


@pytest.fixture
def normalizer(store, config):
    return RecordNormalizer(store, config)


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def make_txn():
    """Factory for bank transactions with sequential ids."""
    counter = itertools.count(1)

    def _make(day, amount, description="Transaction", account=""):
        return Transaction(
            id=f"T{next(counter)}",
            date=day if isinstance(day, date) else date.fromisoformat(day),
            description=description,
            amount=Decimal(str(amount)),
            account=account,
        )

    return _make


@pytest.fixture
def make_entry():
    """Factory for ledger entries with sequential ids."""
    counter = itertools.count(1)

    def _make(day, value, description="Entry", account=""):
        return LedgerEntry(
            id=f"L{next(counter)}",
            date=day if isinstance(day, date) or day is None else date.fromisoformat(day),
            description=description,
            value=Decimal(str(value)),
            account=account,
        )

    return _make
