"""Collection pipeline shared by every source.

Stages, in order: age filter, recency sort, limit, per-entry resolution,
kind ordering, render. Only the age window can fail the whole run; a bad
entry is dropped and the rest are still printed.
"""

from __future__ import annotations

import html
import logging
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum

from codep.core.remote import resolve_remote
from codep.core.result import ConfigurationError, Err, Ok
from codep.core.sources import EntryKind, RawEntry, SourceAdapter
from codep.core.uri import SchemeClass, SchemeFilters, classify, decode, sanitize

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400


class KindOrder(str, Enum):
    UNCHANGED = "unchanged"
    FILES_FIRST = "files-first"
    DIRS_FIRST = "dirs-first"


@dataclass(frozen=True, slots=True)
class DisplayEntry:
    kind: EntryKind
    raw_value: str
    display_value: str | None = None


@dataclass(frozen=True)
class CollectionOptions:
    filters: SchemeFilters = field(default_factory=SchemeFilters)
    max_age_days: int | None = None
    limit: int | None = None
    order: KindOrder = KindOrder.UNCHANGED
    display: bool = False
    markup: bool = False


def age_cutoff(max_age_days: int, now: datetime) -> datetime:
    """Return ``now - max_age_days``; raise instead of clamping when out of range."""
    try:
        return now - timedelta(seconds=max_age_days * SECONDS_PER_DAY)
    except OverflowError as exc:
        raise ConfigurationError(
            "max-age-days too big", context={"max_age_days": max_age_days}
        ) from exc


def filter_by_age(entries: Iterable[RawEntry], cutoff: datetime) -> list[RawEntry]:
    """Keep entries modified at or after ``cutoff``; untimed entries always pass."""
    return [e for e in entries if e.modified_at is None or e.modified_at >= cutoff]


def sort_by_recency(entries: Iterable[RawEntry]) -> list[RawEntry]:
    """Newest first; entries with equal times keep their source order."""
    return sorted(
        entries,
        key=lambda e: e.modified_at or datetime.min.replace(tzinfo=UTC),
        reverse=True,
    )


def apply_limit(entries: Sequence[RawEntry], limit: int | None) -> list[RawEntry]:
    return list(entries) if limit is None else list(entries[:limit])


def resolve_entry(entry: RawEntry, options: CollectionOptions) -> DisplayEntry | None:
    """Turn a raw URI into a printable entry, or ``None`` when it is dropped."""
    match decode(entry.uri):
        case Err(err):
            logger.warning("Skipping %r: %s", entry.uri, err)
            return None
        case Ok(decoded):
            pass

    classified = classify(decoded, options.filters)
    if classified is None:
        logger.debug("Filtered out %s", decoded)
        return None

    local = classified.scheme is SchemeClass.LOCAL
    if local and entry.path_only:
        raw_value = classified.payload.strip()
    else:
        raw_value = sanitize(decoded)
    if not options.display:
        return DisplayEntry(entry.kind, raw_value)

    if local:
        display_value = classified.payload.strip() if entry.path_only else classified.payload
        if options.markup:
            display_value = html.escape(display_value, quote=False)
        return DisplayEntry(entry.kind, raw_value, display_value)

    match resolve_remote(classified.payload):
        case Err(err):
            logger.warning("Couldn't parse vscode-remote folder %r: %s", decoded, err)
            return None
        case Ok(info):
            return DisplayEntry(entry.kind, raw_value, sanitize(info.render(options.markup)))


def order_by_kind(entries: Sequence[DisplayEntry], order: KindOrder) -> list[DisplayEntry]:
    """Stable partition putting the requested kind first."""
    if order is KindOrder.UNCHANGED:
        return list(entries)
    want_files = order is KindOrder.FILES_FIRST
    first = [e for e in entries if want_files == (e.kind is EntryKind.FILE)]
    second = [e for e in entries if want_files != (e.kind is EntryKind.FILE)]
    return first + second


def collect(
    source: SourceAdapter,
    options: CollectionOptions,
    now: datetime | None = None,
) -> list[DisplayEntry]:
    """Run every stage except rendering over one source."""
    entries: list[RawEntry] = list(source)
    logger.debug("Read %d raw entries from %s", len(entries), type(source).__name__)

    if source.timestamped:
        if options.max_age_days is not None:
            cutoff = age_cutoff(options.max_age_days, now or datetime.now(UTC))
            entries = filter_by_age(entries, cutoff)
        entries = sort_by_recency(entries)

    entries = apply_limit(entries, options.limit)

    resolved = [d for d in (resolve_entry(e, options) for e in entries) if d is not None]
    return order_by_kind(resolved, options.order)


def render_line(entry: DisplayEntry, display: bool = False) -> str:
    """Format one record without its terminator."""
    raw_value = sanitize(entry.raw_value)
    if not display:
        return raw_value
    display_value = sanitize(entry.display_value if entry.display_value is not None else raw_value)
    return f"{raw_value}\t{display_value}"


def render_lines(
    entries: Iterable[DisplayEntry], display: bool = False, null_terminated: bool = False
) -> Iterator[str]:
    """Yield output lines; ``typer.echo`` adds the newline after the optional NUL."""
    for entry in entries:
        line = render_line(entry, display)
        yield f"{line}\0" if null_terminated else line


__all__ = [
    "KindOrder",
    "DisplayEntry",
    "CollectionOptions",
    "age_cutoff",
    "filter_by_age",
    "sort_by_recency",
    "apply_limit",
    "resolve_entry",
    "order_by_kind",
    "collect",
    "render_line",
    "render_lines",
]
