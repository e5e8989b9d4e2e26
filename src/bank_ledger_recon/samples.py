"""Sample session data for demos and smoke runs."""

from datetime import date
from decimal import Decimal
from typing import Optional
import uuid

from .models.transaction import ImportResult, LedgerEntry, RawRecord
from .normalizer import RecordNormalizer

SAMPLE_SOURCE = "sample"


def sample_records(today: date) -> list[RawRecord]:
    return [
        RawRecord(date=today, description="Recebimento PIX Cliente A", amount=Decimal("1250.50")),
        RawRecord(date=today, description="Pagamento Energia elétrica", amount=Decimal("-320.75")),
    ]


def sample_ledger(today: date) -> list[LedgerEntry]:
    return [
        LedgerEntry(
            id=str(uuid.uuid4()),
            date=today,
            description="Recebimento PIX Cliente A",
            value=Decimal("1250.50"),
            account="Receitas - Vendas",
            source=SAMPLE_SOURCE,
        ),
        LedgerEntry(
            id=str(uuid.uuid4()),
            date=today,
            description="Pagamento Energia elétrica",
            value=Decimal("-320.75"),
            account="Despesas - Energia",
            source=SAMPLE_SOURCE,
        ),
    ]


def load_sample_data(
    normalizer: RecordNormalizer, today: Optional[date] = None
) -> ImportResult:
    """
    Load two bank transactions and their ledger counterparts, dated today.

    Transactions go through the normal import path; the ledger is replaced
    and its accounts are added to the chart of accounts.
    """
    today = today or date.today()
    store = normalizer.store

    result = normalizer.import_raw_records(sample_records(today), SAMPLE_SOURCE)
    store.ledger_entries = sample_ledger(today)
    store.add_accounts([entry.account for entry in store.ledger_entries])
    return result
