"""
Aggregated views over a loaded set of entries.

Every function here is a pure transform of the entry collection it is given:
nothing is mutated and every returned structure is built from tuples, so the
renderers get read-only views that share the original Entry objects.

Entries must already be validated (see ``Entry``); the functions do not
re-check timestamps.
"""

from dataclasses import dataclass
from itertools import islice
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .entry import Entry, Month


def _created(entry: Entry):
    return entry.created


def sort_by_date(entries: Iterable[Entry]) -> List[Entry]:
    """
    Return the entries newest first.

    The sort is stable, so entries sharing a creation timestamp keep the
    order they had in ``entries``.
    """
    return sorted(entries, key=_created, reverse=True)


@dataclass(frozen=True)
class MonthGroup:
    month: Month
    entries: Tuple[Entry, ...]

    @property
    def name(self) -> str:
        return self.month.label

    def __len__(self):
        return len(self.entries)


@dataclass(frozen=True)
class YearGroup:
    year: int
    months: Tuple[MonthGroup, ...]

    @property
    def label(self) -> str:
        return str(self.year)

    def __len__(self):
        return sum(len(month) for month in self.months)


class TemporalIndex:
    """Entries grouped by year then month, newest first at every level."""

    def __init__(self, years: Tuple[YearGroup, ...] = ()):
        self._years = tuple(years)

    @property
    def years(self) -> Tuple[YearGroup, ...]:
        return self._years

    def __iter__(self) -> Iterator[YearGroup]:
        return iter(self._years)

    def __len__(self):
        return len(self._years)

    def __getitem__(self, position):
        return self._years[position]

    def __bool__(self):
        return bool(self._years)

    def __repr__(self):
        return f"TemporalIndex(years={[group.label for group in self._years]})"

    def entries(self) -> Iterator[Entry]:
        """Walk every entry year -> month -> entry in stored order."""
        return iter_entries(self)

    def entry_count(self) -> int:
        return sum(len(group) for group in self._years)


def build_archive(entries: Iterable[Entry]) -> TemporalIndex:
    """
    Group entries into a TemporalIndex.

    The input does not need to be sorted. Entries are bucketed on
    ``(year, month number)`` so months with the same name in different years
    never merge, and months are ordered by their calendar number.
    """
    buckets: Dict[Tuple[int, Month], List[Entry]] = {}
    for entry in entries:
        buckets.setdefault((entry.year, entry.month), []).append(entry)

    years: Dict[int, List[MonthGroup]] = {}
    for year, month in sorted(buckets, reverse=True):
        group = MonthGroup(month=month, entries=tuple(sort_by_date(buckets[(year, month)])))
        years.setdefault(year, []).append(group)

    return TemporalIndex(tuple(
        YearGroup(year=year, months=tuple(months))
        for year, months in years.items()
    ))


def iter_entries(index: TemporalIndex) -> Iterator[Entry]:
    for year_group in index:
        for month_group in year_group.months:
            yield from month_group.entries


@dataclass(frozen=True)
class Tag:
    name: str
    entries: Tuple[Entry, ...]

    def __len__(self):
        return len(self.entries)


class TagIndex:
    """
    Tags and the entries carrying them.

    Keyed access goes by tag name; iteration yields ``Tag`` objects sorted
    alphabetically (plain, case-sensitive string order).
    """

    def __init__(self, tags: Dict[str, Tag]):
        self._tags = dict(tags)
        self._ordered = tuple(self._tags[name] for name in sorted(self._tags))

    @property
    def tags(self) -> Tuple[Tag, ...]:
        return self._ordered

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(tag.name for tag in self._ordered)

    def get(self, name: str, default: Optional[Tag] = None) -> Optional[Tag]:
        return self._tags.get(name, default)

    def __getitem__(self, name: str) -> Tag:
        return self._tags[name]

    def __contains__(self, name):
        return name in self._tags

    def __iter__(self) -> Iterator[Tag]:
        return iter(self._ordered)

    def __len__(self):
        return len(self._ordered)

    def __repr__(self):
        return f"TagIndex(tags={list(self.names)})"


def build_tag_index(entries: Iterable[Entry]) -> TagIndex:
    """
    Group entries by tag.

    Each bucket keeps the order entries were scanned in. Pass a
    ``sort_by_date`` result to get newest-first buckets.
    """
    buckets: Dict[str, List[Entry]] = {}
    for entry in entries:
        for name in entry.tags:
            buckets.setdefault(name, []).append(entry)

    return TagIndex({
        name: Tag(name=name, entries=tuple(bucket))
        for name, bucket in buckets.items()
    })


def recent_entries(aggregate: Union[Iterable[Entry], TemporalIndex], limit: int) -> List[Entry]:
    """
    Return the first ``limit`` entries of an ordered aggregate.

    ``aggregate`` is either a newest-first sequence or a TemporalIndex, which
    is walked lazily so only the returned entries are visited.
    """
    if limit < 0:
        raise ValueError(f"limit must be zero or positive, got {limit}")

    if isinstance(aggregate, TemporalIndex):
        source = iter_entries(aggregate)
    else:
        source = iter(aggregate)
    return list(islice(source, limit))
