"""Byte decoding for exported statement files."""

from typing import Sequence
import logging

from .exceptions import MalformedFileError

logger = logging.getLogger(__name__)

DEFAULT_ENCODINGS = ("utf-8-sig", "utf-8", "cp1252", "latin-1")


def decode_text(
    data: bytes, source: str = "file", encodings: Sequence[str] = DEFAULT_ENCODINGS
) -> str:
    """
    Decode raw file bytes trying each encoding in order.

    Bank exports are frequently produced by Windows tooling, so cp1252 and
    latin-1 are tried after UTF-8.

    Raises:
        MalformedFileError: If the content is empty or no encoding fits
    """
    if not data or not data.strip():
        raise MalformedFileError(source, "empty content")

    for encoding in encodings:
        try:
            text = data.decode(encoding)
        except (UnicodeDecodeError, LookupError):
            continue
        logger.debug(f"Decoded {source} as {encoding}")
        return text.lstrip("\ufeff")

    raise MalformedFileError(
        source, f"could not decode content (tried {', '.join(encodings)})"
    )
