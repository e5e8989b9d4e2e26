"""Decoders for delimited, OFX, free-text and JSON statements."""

from .interchange import decode_interchange, looks_like_interchange
from .json_input import decode_json_transactions
from .schema import ColumnMapping, detect_columns
from .tabular import decode, detect_delimiter
from .text_statement import decode_statement_text
from .values import is_partial_date, parse_amount, parse_date, try_parse_amount

__all__ = [
    "ColumnMapping",
    "decode",
    "decode_interchange",
    "decode_json_transactions",
    "decode_statement_text",
    "detect_columns",
    "detect_delimiter",
    "is_partial_date",
    "looks_like_interchange",
    "parse_amount",
    "parse_date",
    "try_parse_amount",
]
