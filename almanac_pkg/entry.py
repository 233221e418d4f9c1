"""
Entry record and calendar helpers shared by the parser, the aggregation
functions and the page templates.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Optional, Tuple


class EntryError(ValueError):
    """Raised when an entry cannot be built from its source data."""


class Month(IntEnum):
    JANUARY = 1
    FEBRUARY = 2
    MARCH = 3
    APRIL = 4
    MAY = 5
    JUNE = 6
    JULY = 7
    AUGUST = 8
    SEPTEMBER = 9
    OCTOBER = 10
    NOVEMBER = 11
    DECEMBER = 12

    @property
    def label(self) -> str:
        """Display name, e.g. 'January'."""
        return self.name.capitalize()


def _unique(values) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def to_naive_utc(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC; naive values pass through."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class Entry:
    """
    A single dated, tagged blog entry.

    Entries are validated when constructed so that everything handed to the
    aggregation functions has a real creation timestamp. Tags behave as a set:
    duplicates are dropped while the first-seen order is kept for display.
    """
    created: datetime
    title: str
    url: str
    tags: Tuple[str, ...] = ()
    updated: Optional[datetime] = None
    description: str = field(default='', compare=False)
    author: str = field(default='', compare=False)
    languages: Tuple[str, ...] = field(default=(), compare=False)
    content: str = field(default='', compare=False, repr=False)
    source: Optional[str] = field(default=None, compare=False, repr=False)

    def __post_init__(self):
        if not isinstance(self.created, datetime):
            raise EntryError(f"Entry {self.title!r} has no valid creation date: {self.created!r}")
        if self.updated is not None and not isinstance(self.updated, datetime):
            raise EntryError(f"Entry {self.title!r} has an invalid update date: {self.updated!r}")
        if not isinstance(self.title, str) or not self.title.strip():
            raise EntryError(f"Entry created {self.created:%Y-%m-%d} has no title")
        if not isinstance(self.url, str) or not self.url.strip():
            raise EntryError(f"Entry {self.title!r} has no url")
        for name in ('tags', 'languages'):
            if isinstance(getattr(self, name), str):
                raise EntryError(f"Entry {self.title!r}: {name} must be a sequence of strings, not a string")

        # Frozen dataclass, so normalise through object.__setattr__
        object.__setattr__(self, 'created', to_naive_utc(self.created))
        if self.updated is not None:
            object.__setattr__(self, 'updated', to_naive_utc(self.updated))
        object.__setattr__(self, 'tags', _unique(self.tags))
        object.__setattr__(self, 'languages', _unique(self.languages))

    @property
    def year(self) -> int:
        return self.created.year

    @property
    def month(self) -> Month:
        return Month(self.created.month)

    @property
    def was_updated(self) -> bool:
        """True when the entry changed after it was first published."""
        return self.updated is not None and self.updated > self.created
