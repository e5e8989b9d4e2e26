"""
Column detection for delimited statements and ledgers.

Header names are matched against Portuguese and English vocabularies first;
columns still unresolved are then scored on the shape of their content, which
covers headerless exports.
"""

from dataclasses import dataclass
from typing import Optional, Sequence
import logging
import re
import unicodedata

from .values import is_amount_shaped, is_date_shaped, try_parse_amount

logger = logging.getLogger(__name__)

DATE_KEYWORDS = ("data", "date", "dia", "posted", "vencimento")
DESCRIPTION_KEYWORDS = (
    "descri",
    "histor",
    "memo",
    "detalhe",
    "details",
    "narrative",
    "lancamento",
    "payee",
    "favorecido",
)
AMOUNT_KEYWORDS = ("valor", "amount", "value", "montante", "quantia", "importe")
BALANCE_KEYWORDS = ("saldo", "balance")
ACCOUNT_KEYWORDS = ("conta", "account", "categoria", "category")
DEBIT_KEYWORDS = ("debito", "debit", "saida", "withdrawal")
CREDIT_KEYWORDS = ("credito", "credit", "entrada", "deposit")

_PUNCTUATION_ONLY = re.compile(r"^[\d\s.,\-+/()$%R]*$")


@dataclass
class ColumnMapping:
    """Resolved column positions for one file."""

    date_col: int
    amount_col: Optional[int]
    desc_col: Optional[int]
    has_header: bool = False
    balance_col: Optional[int] = None
    account_col: Optional[int] = None
    debit_col: Optional[int] = None
    credit_col: Optional[int] = None

    @property
    def data_start(self) -> int:
        return 1 if self.has_header else 0

    @property
    def uses_split_amount(self) -> bool:
        return self.amount_col is None and (
            self.debit_col is not None or self.credit_col is not None
        )


def _fold(text: str) -> str:
    """Lower-case and strip accents so "Histórico" matches "histor"."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def _find_keyword_column(
    header: Sequence[str],
    keywords: Sequence[str],
    taken: set[int],
    exclude: Sequence[str] = (),
) -> Optional[int]:
    for index, cell in enumerate(header):
        if index in taken:
            continue
        # "Data Valor" / "Value Date" name a date, not an amount
        if any(word in cell for word in exclude):
            continue
        if any(keyword in cell for keyword in keywords):
            return index
    return None


def _is_text_cell(value: str) -> bool:
    return len(value) > 5 and not _PUNCTUATION_ONLY.match(value)


def _score_columns(
    rows: Sequence[Sequence[str]], width: int, taken: set[int]
) -> dict[str, list[int]]:
    scores = {
        "date": [0] * width,
        "amount": [0] * width,
        "description": [0] * width,
    }
    for row in rows:
        for index in range(min(width, len(row))):
            if index in taken:
                continue
            cell = row[index]
            if not cell:
                continue
            if is_date_shaped(cell):
                scores["date"][index] += 2
            if is_amount_shaped(cell) and try_parse_amount(cell) is not None:
                scores["amount"][index] += 2
            if _is_text_cell(cell):
                scores["description"][index] += 1
    return scores


def _best_column(scores: list[int], taken: set[int]) -> Optional[int]:
    best: Optional[int] = None
    for index, score in enumerate(scores):
        if index in taken or score <= 0:
            continue
        if best is None or score > scores[best]:
            best = index
    return best


def detect_columns(
    rows: Sequence[Sequence[str]], sample_size: int = 15
) -> Optional[ColumnMapping]:
    """
    Infer which columns hold the date, description and amount.

    Args:
        rows: Decoded rows, header (if any) first
        sample_size: Data rows inspected for content scoring

    Returns:
        ColumnMapping, or None when no date or amount column can be found
    """
    if not rows:
        return None

    width = max(len(row) for row in rows)
    header = [_fold(cell) for cell in rows[0]]
    taken: set[int] = set()

    date_col = _find_keyword_column(header, DATE_KEYWORDS, taken)
    if date_col is not None:
        taken.add(date_col)
    desc_col = _find_keyword_column(header, DESCRIPTION_KEYWORDS, taken)
    if desc_col is not None:
        taken.add(desc_col)
    amount_col = _find_keyword_column(header, AMOUNT_KEYWORDS, taken, DATE_KEYWORDS)
    if amount_col is not None:
        taken.add(amount_col)
    balance_col = _find_keyword_column(header, BALANCE_KEYWORDS, taken, DATE_KEYWORDS)
    if balance_col is not None:
        taken.add(balance_col)
    account_col = _find_keyword_column(header, ACCOUNT_KEYWORDS, taken)
    if account_col is not None:
        taken.add(account_col)

    debit_col = credit_col = None
    if amount_col is None:
        debit_col = _find_keyword_column(header, DEBIT_KEYWORDS, taken, DATE_KEYWORDS)
        if debit_col is not None:
            taken.add(debit_col)
        credit_col = _find_keyword_column(header, CREDIT_KEYWORDS, taken, DATE_KEYWORDS)
        if credit_col is not None:
            taken.add(credit_col)

    # A first row holding a real date is data, whatever words it contains
    has_header = bool(taken) and not any(is_date_shaped(cell) for cell in rows[0])
    if not has_header:
        taken.clear()
        date_col = desc_col = amount_col = None
        balance_col = account_col = debit_col = credit_col = None

    has_amount = amount_col is not None or debit_col is not None or credit_col is not None
    if date_col is None or not has_amount or desc_col is None:
        data_rows = rows[1 : sample_size + 1] if has_header else rows[:sample_size]
        scores = _score_columns(data_rows, width, taken)

        if date_col is None:
            date_col = _best_column(scores["date"], taken)
            if date_col is not None:
                taken.add(date_col)
        if not has_amount:
            amount_col = _best_column(scores["amount"], taken)
            if amount_col is not None:
                taken.add(amount_col)
                has_amount = True
        if desc_col is None:
            desc_col = _best_column(scores["description"], taken)
            if desc_col is None:
                desc_col = next((i for i in range(width) if i not in taken), None)
            if desc_col is not None:
                taken.add(desc_col)

    if date_col is None or not has_amount:
        logger.debug(f"Column detection failed: date={date_col}, amount={amount_col}")
        return None

    mapping = ColumnMapping(
        date_col=date_col,
        amount_col=amount_col,
        desc_col=desc_col,
        has_header=has_header,
        balance_col=balance_col,
        account_col=account_col,
        debit_col=debit_col,
        credit_col=credit_col,
    )
    logger.debug(f"Detected columns: {mapping}")
    return mapping
