"""Watch list of process-name terms and the matching rule."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass


def parse_terms(value: str | Iterable[str] | None) -> list[str]:
    """
    Normalize watch terms.

    Accepts a comma-separated string (``"brave,firefox"``) or an iterable of
    strings, each of which may itself contain commas. Terms are stripped and
    empty ones are dropped; order and duplicates are kept.
    """
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]

    terms: list[str] = []
    for item in value:
        for part in str(item).split(","):
            part = part.strip()
            if part:
                terms.append(part)
    return terms


def matches(watch_list: Iterable[str], name: str) -> bool:
    """Return True if any watch term is a case-insensitive substring of name."""
    candidate = name.lower()
    return any(term.lower() in candidate for term in watch_list)


@dataclass(slots=True, frozen=True)
class WatchList:
    """Immutable, ordered collection of watch terms."""

    terms: tuple[str, ...] = ()

    @classmethod
    def parse(cls, value: str | Iterable[str] | None) -> "WatchList":
        """Build a WatchList from a comma-separated string or iterable."""
        return cls(tuple(parse_terms(value)))

    def matches(self, name: str) -> bool:
        """Return True if the process name is covered by this watch list."""
        return matches(self.terms, name)

    def __iter__(self) -> Iterator[str]:
        return iter(self.terms)

    def __len__(self) -> int:
        return len(self.terms)

    def __bool__(self) -> bool:
        return bool(self.terms)

    def __str__(self) -> str:
        return ", ".join(self.terms)
