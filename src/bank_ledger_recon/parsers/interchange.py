"""
OFX statement decoder.

OFX exports from most banks are SGML rather than XML (closing tags are
optional), so transactions are located by tag lookup inside each
<STMTTRN> block instead of an XML parser.
"""

import logging
import re

from ..models.transaction import RawRecord
from .values import parse_date, try_parse_amount

logger = logging.getLogger(__name__)

BLOCK_TAG = "<STMTTRN>"
DEFAULT_DESCRIPTION = "No description"

_TAG_PATTERNS: dict[str, re.Pattern] = {}


def _tag_value(block: str, tag: str) -> str:
    pattern = _TAG_PATTERNS.get(tag)
    if pattern is None:
        pattern = re.compile(rf"<{tag}>([^<\r\n]+)", re.IGNORECASE)
        _TAG_PATTERNS[tag] = pattern
    match = pattern.search(block)
    return match.group(1).strip() if match else ""


def looks_like_interchange(content: str) -> bool:
    return BLOCK_TAG.lower() in content[:200_000].lower()


def decode_interchange(
    content: str, placeholder: str = DEFAULT_DESCRIPTION
) -> tuple[list[RawRecord], int]:
    """
    Extract transaction blocks from OFX text.

    Args:
        content: Decoded OFX document
        placeholder: Description used when a block has neither MEMO nor NAME

    Returns:
        Tuple of (records, dropped_count); blocks with an unparsable date or
        amount are dropped
    """
    blocks = re.split(re.escape(BLOCK_TAG), content, flags=re.IGNORECASE)[1:]
    records: list[RawRecord] = []
    dropped = 0

    for block in blocks:
        raw_date = _tag_value(block, "DTPOSTED")
        txn_date = parse_date(raw_date)
        amount = try_parse_amount(_tag_value(block, "TRNAMT"), interchange=True)

        if txn_date is None or amount is None:
            dropped += 1
            logger.debug(f"Dropping OFX block with date={raw_date!r}")
            continue

        description = _tag_value(block, "MEMO") or _tag_value(block, "NAME") or placeholder
        records.append(
            RawRecord(
                date=txn_date,
                description=description,
                amount=amount,
                raw_date=raw_date,
            )
        )

    logger.info(f"Extracted {len(records)} transactions from OFX ({dropped} dropped)")
    return records, dropped
