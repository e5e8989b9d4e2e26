"""
Free-text statement decoder.

Works on text already extracted from a document (PDF text layer or OCR).
Looks for lines like:

    03/02/2026  PIX RECEBIDO CLIENTE A      1.250,50      10.480,90
    04/02/2026  ENERGIA ELETRICA            -320,75
"""

from decimal import Decimal
from typing import Optional
import logging
import re

from ..models.transaction import RawRecord
from .values import parse_amount, parse_date

logger = logging.getLogger(__name__)

_AMOUNT = r"\(?-?\s?(?:R\$\s?)?\d{1,3}(?:[.,\s]\d{3})*[.,]\d{2}\)?-?"

STATEMENT_LINE = re.compile(
    rf"^\s*(?P<date>\d{{1,2}}/\d{{1,2}}(?:/\d{{2,4}})?|\d{{4}}-\d{{2}}-\d{{2}})"
    rf"\s+(?P<description>.+?)"
    rf"\s+(?P<amount>{_AMOUNT})"
    rf"(?:\s+(?P<balance>{_AMOUNT}))?\s*$"
)


def decode_statement_text(
    text: str, reference_year: Optional[int] = None
) -> tuple[list[RawRecord], Optional[Decimal]]:
    """
    Recover transactions from statement text, one per matching line.

    Args:
        text: Pre-extracted document text
        reference_year: Year applied to "DD/MM" dates

    Returns:
        Tuple of (records, opening_balance). The opening balance is
        back-computed from the earliest-dated line carrying a running
        balance, so newest-first listings resolve the same way.
    """
    records: list[RawRecord] = []

    for line in text.splitlines():
        match = STATEMENT_LINE.match(line)
        if not match:
            continue

        txn_date = parse_date(match.group("date"), reference_year=reference_year)
        if txn_date is None:
            continue

        amount = parse_amount(match.group("amount"))
        balance: Optional[Decimal] = None
        if match.group("balance"):
            balance = parse_amount(match.group("balance"))

        description = re.sub(r"\s+", " ", match.group("description")).strip()
        records.append(
            RawRecord(
                date=txn_date,
                description=description,
                amount=amount,
                balance=balance,
                raw_date=match.group("date"),
            )
        )

    opening_balance: Optional[Decimal] = None
    with_balance = [record for record in records if record.balance is not None]
    if with_balance:
        # min() keeps the first line among same-day ties
        earliest = min(with_balance, key=lambda record: record.date)
        opening_balance = earliest.balance - earliest.amount

    logger.info(f"Parsed {len(records)} transactions from statement text")
    return records, opening_balance
