"""
Delimited-text decoder with delimiter sniffing.

Picks the delimiter from the first lines, then splits the content in one
quote-aware pass into trimmed rows.
"""

from typing import Iterable
import logging

logger = logging.getLogger(__name__)

CANDIDATE_DELIMITERS = (";", ",", "\t")
DEFAULT_DELIMITER = ";"


def detect_delimiter(sample_lines: Iterable[str], max_lines: int = 10) -> str:
    """
    Pick the delimiter with the most unquoted occurrences in the sample.

    Args:
        sample_lines: First lines of the file
        max_lines: Number of lines considered

    Returns:
        One of ";", "," or tab; ";" on ties or when none occurs
    """
    counts = {delimiter: 0 for delimiter in CANDIDATE_DELIMITERS}

    for index, line in enumerate(sample_lines):
        if index >= max_lines:
            break
        in_quotes = False
        for char in line:
            if char == '"':
                in_quotes = not in_quotes
            elif not in_quotes and char in counts:
                counts[char] += 1

    best = DEFAULT_DELIMITER
    for delimiter in CANDIDATE_DELIMITERS:
        if counts[delimiter] > counts[best]:
            best = delimiter
    return best


def decode(content: str, sample_lines: int = 10) -> list[list[str]]:
    """
    Split delimited text into rows of trimmed fields.

    Doubled quotes inside a quoted field become a literal quote; CRLF counts
    as one line break; rows whose fields are all empty are discarded.

    Args:
        content: Decoded file text
        sample_lines: Lines inspected for delimiter detection

    Returns:
        List of rows, each a list of field strings
    """
    if content.startswith("\ufeff"):
        content = content[1:]

    delimiter = detect_delimiter(content.splitlines()[:sample_lines], sample_lines)
    logger.debug(f"Detected delimiter {delimiter!r}")

    rows: list[list[str]] = []
    values: list[str] = []
    current: list[str] = []
    in_quotes = False
    i = 0
    length = len(content)

    while i < length:
        char = content[i]
        if char == '"':
            if in_quotes and i + 1 < length and content[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            values.append("".join(current))
            current = []
        elif char in "\r\n" and not in_quotes:
            if char == "\r" and i + 1 < length and content[i + 1] == "\n":
                i += 1
            values.append("".join(current))
            rows.append(values)
            values = []
            current = []
        else:
            current.append(char)
        i += 1

    if current or values:
        values.append("".join(current))
        rows.append(values)

    return [
        [field.strip() for field in row]
        for row in rows
        if any(field.strip() for field in row)
    ]
