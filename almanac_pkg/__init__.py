"""
Almanac - a static blog generator.

Almanac reads dated, tagged Markdown entries and uses Jinja2 templates to
generate per-entry pages, a chronological archive, a tag index, a home page
with the most recent entries, and an RSS feed.
"""

__version__ = "1.0.0"

from .entry import Entry, EntryError, Month
from .aggregate import (
    MonthGroup, YearGroup, TemporalIndex, Tag, TagIndex,
    sort_by_date, build_archive, build_tag_index, recent_entries, iter_entries,
)
from .core import Almanac

__all__ = [
    'Almanac', 'Entry', 'EntryError', 'Month',
    'MonthGroup', 'YearGroup', 'TemporalIndex', 'Tag', 'TagIndex',
    'sort_by_date', 'build_archive', 'build_tag_index', 'recent_entries', 'iter_entries',
]
