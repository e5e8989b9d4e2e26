"""Normalized edit-distance text similarity."""

DEFAULT_MAX_LENGTH = 100
CONTAINMENT_SCORE = 0.8


def edit_distance(s1: str, s2: str) -> int:
    """
    Levenshtein distance with unit insert/delete/substitute costs.

    Uses the two-row dynamic programming table.
    """
    if s1 == s2:
        return 0
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)

    if len(s1) > len(s2):
        s1, s2 = s2, s1

    previous = list(range(len(s1) + 1))
    current = [0] * (len(s1) + 1)

    for j in range(1, len(s2) + 1):
        current[0] = j
        for i in range(1, len(s1) + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            current[i] = min(
                current[i - 1] + 1,
                previous[i] + 1,
                previous[i - 1] + cost,
            )
        previous, current = current, previous

    return previous[len(s1)]


def similarity(a: str, b: str, max_length: int = DEFAULT_MAX_LENGTH) -> float:
    """
    Similarity of two descriptions in [0, 1].

    1.0 for case-insensitive equality, 0.8 when one contains the other,
    otherwise 1 - distance / longer length. Inputs are truncated to
    ``max_length`` characters before the distance is computed.
    """
    a = (a or "").strip().lower()
    b = (b or "").strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return CONTAINMENT_SCORE

    a = a[:max_length]
    b = b[:max_length]
    longest = max(len(a), len(b))
    return 1.0 - edit_distance(a, b) / longest
