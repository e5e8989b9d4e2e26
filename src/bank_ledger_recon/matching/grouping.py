"""
Description keys and clustering for N:N group matching.

Installments and split payments show up as several lines with nearly the
same description ("PAGTO FORNECEDOR ACME 1/5", "PAGTO FORNECEDOR ACME 2/5").
Reducing each description to a key lets those lines be clustered.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar
import re
import unicodedata

T = TypeVar("T")

_NON_WORD = re.compile(r"[^a-z0-9\s]")


def description_key(description: str, stop_words: Iterable[str] = ()) -> str:
    """
    Reduce a description to its grouping key.

    Lower-cases, strips accents and punctuation, removes stop-words,
    single-letter tokens and purely numeric tokens (installment counters),
    and collapses whitespace.
    """
    decomposed = unicodedata.normalize("NFKD", (description or "").lower())
    text = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    text = _NON_WORD.sub(" ", text)

    stop = {word.lower() for word in stop_words}
    tokens = [
        token
        for token in text.split()
        if len(token) > 1 and not token.isdigit() and token not in stop
    ]
    return " ".join(tokens)


@dataclass
class Cluster(Generic[T]):
    """Records sharing a description key."""

    key: str
    members: list[T] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)


def build_clusters(
    records: Sequence[T],
    describe: Callable[[T], str],
    stop_words: Iterable[str] = (),
    min_size: int = 2,
) -> list[Cluster[T]]:
    """
    Cluster records by description key, keeping first-seen order.

    Records whose key is empty are left out; clusters smaller than
    ``min_size`` are discarded.
    """
    stop = list(stop_words)
    clusters: dict[str, Cluster[T]] = {}
    for record in records:
        key = description_key(describe(record), stop)
        if not key:
            continue
        clusters.setdefault(key, Cluster(key=key)).members.append(record)
    return [cluster for cluster in clusters.values() if len(cluster) >= min_size]


def cluster_total(cluster: Cluster[T], amount_of: Callable[[T], Decimal]) -> Decimal:
    return sum((amount_of(member) for member in cluster.members), Decimal("0"))


def cluster_span(
    cluster: Cluster[T], date_of: Callable[[T], Optional[date]]
) -> Optional[tuple[date, date]]:
    dates = [d for d in (date_of(member) for member in cluster.members) if d is not None]
    if not dates:
        return None
    return min(dates), max(dates)
