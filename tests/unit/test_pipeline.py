"""Tests for the collection pipeline stages."""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from codep.core.pipeline import (
    CollectionOptions,
    DisplayEntry,
    KindOrder,
    age_cutoff,
    apply_limit,
    collect,
    filter_by_age,
    order_by_kind,
    render_line,
    render_lines,
    resolve_entry,
    sort_by_recency,
)
from codep.core.result import ConfigurationError
from codep.core.sources import EntryKind, RawEntry
from codep.core.uri import SchemeFilters

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
BOTH = SchemeFilters(include_local=True, include_remote=True)


def _at(ts: float) -> datetime:
    return datetime.fromtimestamp(ts, UTC)


def _dir(uri: str, ts: float | None = None) -> RawEntry:
    return RawEntry(EntryKind.DIR, uri, _at(ts) if ts is not None else None)


@dataclass
class ListSource:
    entries: list[RawEntry]
    timestamped: bool = True
    reads: int = field(default=0)

    def __iter__(self) -> Iterator[RawEntry]:
        self.reads += 1
        return iter(list(self.entries))


class TestAgeWindow:
    def test_cutoff(self) -> None:
        assert age_cutoff(7, NOW) == NOW - timedelta(days=7)

    def test_boundary_is_inclusive(self) -> None:
        cutoff = age_cutoff(7, NOW)
        exact = RawEntry(EntryKind.DIR, "file:///exact", cutoff)
        older = RawEntry(EntryKind.DIR, "file:///older", cutoff - timedelta(microseconds=1))
        newer = RawEntry(EntryKind.DIR, "file:///newer", NOW)
        assert filter_by_age([exact, older, newer], cutoff) == [exact, newer]

    def test_seven_days_in_seconds(self) -> None:
        now = _at(10_000_000)
        entries = [_dir("file:///in", 10_000_000 - 7 * 86400), _dir("file:///out", 10_000_000 - 7 * 86400 - 1)]
        assert [e.uri for e in filter_by_age(entries, age_cutoff(7, now))] == ["file:///in"]

    def test_underflow_fails_loudly(self) -> None:
        with pytest.raises(ConfigurationError, match="max-age-days too big"):
            age_cutoff(800_000, NOW)

    def test_huge_value_fails_loudly(self) -> None:
        with pytest.raises(ConfigurationError):
            age_cutoff(10**12, NOW)

    def test_untimed_entries_pass(self) -> None:
        entry = _dir("file:///x")
        assert filter_by_age([entry], NOW) == [entry]


class TestSortAndLimit:
    def test_descending(self) -> None:
        entries = [_dir("file:///10", 10), _dir("file:///30", 30), _dir("file:///20", 20)]
        assert [e.uri for e in sort_by_recency(entries)] == ["file:///30", "file:///20", "file:///10"]

    def test_ties_keep_source_order(self) -> None:
        entries = [_dir("file:///a", 5), _dir("file:///b", 9), _dir("file:///c", 5)]
        assert [e.uri for e in sort_by_recency(entries)] == ["file:///b", "file:///a", "file:///c"]

    def test_limit(self) -> None:
        entries = [_dir(f"file:///{i}") for i in range(5)]
        assert apply_limit(entries, 2) == entries[:2]
        assert apply_limit(entries, None) == entries
        assert apply_limit(entries, 0) == []


class TestResolveEntry:
    def test_raw_mode(self) -> None:
        entry = resolve_entry(_dir("file:///home/me/My%20Proj"), CollectionOptions())
        assert entry == DisplayEntry(EntryKind.DIR, "file:///home/me/My Proj")

    def test_local_display(self) -> None:
        entry = resolve_entry(_dir("file:///home/me/a"), CollectionOptions(display=True))
        assert entry == DisplayEntry(EntryKind.DIR, "file:///home/me/a", "/home/me/a")

    def test_remote_display(self) -> None:
        payload = json.dumps({"hostPath": "/home/x"}).encode().hex()
        options = CollectionOptions(filters=BOTH, display=True)
        entry = resolve_entry(_dir(f"vscode-remote://ssh-remote%2B{payload}/home/x"), options)
        assert entry is not None
        assert entry.raw_value == f"vscode-remote://ssh-remote+{payload}/home/x"
        assert entry.display_value == "/home/x (SSH Remote)"

    def test_remote_display_with_markup(self) -> None:
        payload = json.dumps({"volumeName": "data"}).encode().hex()
        options = CollectionOptions(filters=BOTH, display=True, markup=True)
        entry = resolve_entry(_dir(f"vscode-remote://dev-container+{payload}/w"), options)
        assert entry is not None
        assert entry.display_value == "data <i>(Dev Container|volume)</i>"

    def test_undecodable_payload_is_kept(self) -> None:
        options = CollectionOptions(filters=BOTH, display=True)
        entry = resolve_entry(_dir("vscode-remote://ssh-remote+my-box/srv"), options)
        assert entry is not None
        assert entry.display_value == "my-box (ssh-remote)"

    @pytest.mark.parametrize("text", ["9" * 5000, "[" * 200000])
    def test_payload_beyond_parser_limits_shows_decoded_text(self, text: str) -> None:
        options = CollectionOptions(filters=BOTH, display=True)
        entry = resolve_entry(_dir(f"vscode-remote://ssh-remote+{text.encode().hex()}/x"), options)
        assert entry is not None
        assert entry.display_value == f"{text} (SSH Remote)"

    def test_local_display_with_markup_is_escaped(self) -> None:
        options = CollectionOptions(display=True, markup=True)
        entry = resolve_entry(_dir("file:///a%26b/%3Cc%3E"), options)
        assert entry == DisplayEntry(EntryKind.DIR, "file:///a&b/<c>", "/a&amp;b/&lt;c&gt;")

    def test_menu_entry_prints_trimmed_path(self) -> None:
        raw = RawEntry(EntryKind.FILE, "file:///home/me/notes.md%20", path_only=True)
        assert resolve_entry(raw, CollectionOptions()) == DisplayEntry(
            EntryKind.FILE, "/home/me/notes.md"
        )
        shown = resolve_entry(raw, CollectionOptions(display=True))
        assert shown == DisplayEntry(EntryKind.FILE, "/home/me/notes.md", "/home/me/notes.md")

    def test_remote_menu_entry_keeps_full_uri(self) -> None:
        raw = RawEntry(EntryKind.DIR, "vscode-remote://ssh-remote+box/srv", path_only=True)
        entry = resolve_entry(raw, CollectionOptions(filters=BOTH))
        assert entry == DisplayEntry(EntryKind.DIR, "vscode-remote://ssh-remote+box/srv")

    def test_unparsable_remote_dropped_in_display_mode(self) -> None:
        options = CollectionOptions(filters=BOTH, display=True)
        assert resolve_entry(_dir("vscode-remote://codespaces"), options) is None

    def test_bad_escape_dropped(self) -> None:
        assert resolve_entry(_dir("file:///100%"), CollectionOptions()) is None

    def test_filtered_scheme_dropped(self) -> None:
        options = CollectionOptions(filters=SchemeFilters(include_local=False, include_remote=True))
        assert resolve_entry(_dir("file:///a"), options) is None

    def test_raw_value_sanitized(self) -> None:
        entry = resolve_entry(_dir("file:///a%09b%00c"), CollectionOptions(display=True))
        assert entry == DisplayEntry(EntryKind.DIR, "file:///abc", "/abc")


class TestOrderByKind:
    def _entries(self) -> list[DisplayEntry]:
        return [
            DisplayEntry(EntryKind.DIR, "d1"),
            DisplayEntry(EntryKind.FILE, "f1"),
            DisplayEntry(EntryKind.DIR, "d2"),
            DisplayEntry(EntryKind.FILE, "f2"),
        ]

    def test_files_first(self) -> None:
        ordered = order_by_kind(self._entries(), KindOrder.FILES_FIRST)
        assert [e.raw_value for e in ordered] == ["f1", "f2", "d1", "d2"]

    def test_dirs_first(self) -> None:
        ordered = order_by_kind(self._entries(), KindOrder.DIRS_FIRST)
        assert [e.raw_value for e in ordered] == ["d1", "d2", "f1", "f2"]

    def test_unchanged(self) -> None:
        assert order_by_kind(self._entries(), KindOrder.UNCHANGED) == self._entries()


class TestRender:
    def test_raw(self) -> None:
        assert render_line(DisplayEntry(EntryKind.DIR, "file:///a", "/a")) == "file:///a"

    def test_display(self) -> None:
        assert render_line(DisplayEntry(EntryKind.DIR, "file:///a", "/a"), display=True) == "file:///a\t/a"

    def test_display_defaults_to_raw(self) -> None:
        assert render_line(DisplayEntry(EntryKind.DIR, "x"), display=True) == "x\tx"

    def test_null_terminated(self) -> None:
        lines = list(render_lines([DisplayEntry(EntryKind.DIR, "a")], null_terminated=True))
        assert lines == ["a\0"]

    @pytest.mark.parametrize("display", [False, True])
    @pytest.mark.parametrize("null_terminated", [False, True])
    def test_embedded_separators_stripped(self, display: bool, null_terminated: bool) -> None:
        entry = DisplayEntry(EntryKind.FILE, "a\tb\0c", "d\te")
        (line,) = render_lines([entry], display=display, null_terminated=null_terminated)
        body = line[:-1] if null_terminated else line
        assert "\0" not in body
        assert body.split("\t")[0] == "abc"
        if display:
            assert body == "abc\tde"


class TestCollect:
    def test_full_pipeline(self) -> None:
        source = ListSource(
            [
                _dir("file:///old", NOW.timestamp() - 30 * 86400),
                _dir("file:///mid", NOW.timestamp() - 2 * 86400),
                _dir("file:///new", NOW.timestamp() - 60),
                _dir("file:///bad%zz", NOW.timestamp()),
                _dir("vscode-remote://ssh-remote+box/x", NOW.timestamp() - 120),
            ]
        )
        options = CollectionOptions(max_age_days=7, limit=3)
        result = collect(source, options, now=NOW)
        # limit applies before resolution, so the undecodable entry uses a slot
        assert [e.raw_value for e in result] == ["file:///new"]

    def test_untimed_source_keeps_order(self) -> None:
        source = ListSource([_dir("file:///b"), _dir("file:///a")], timestamped=False)
        result = collect(source, CollectionOptions(max_age_days=1), now=NOW)
        assert [e.raw_value for e in result] == ["file:///b", "file:///a"]

    def test_reads_source_once(self) -> None:
        source = ListSource([_dir("file:///a", 1)])
        collect(source, CollectionOptions())
        assert source.reads == 1

    def test_age_window_error_propagates(self) -> None:
        with pytest.raises(ConfigurationError):
            collect(ListSource([]), CollectionOptions(max_age_days=10**12), now=NOW)
