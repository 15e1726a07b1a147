"""Listing commands over the editor's recent locations.

Provides one command per state source:
    - recent: the File > Open Recent menu
    - workspaces: folders with workspace storage
    - history: files with local history
"""

from __future__ import annotations

import typer

from codep.core.decorators import handle_exceptions
from codep.core.pipeline import CollectionOptions, KindOrder, collect, render_lines
from codep.core.sources import (
    HistorySource,
    MenuRecentSource,
    SourceAdapter,
    WorkspaceStorageSource,
)
from codep.core.uri import SchemeFilters

LIMIT_OPTION = typer.Option(
    None, "--limit", "-l", min=0, help="Print at most this many entries."
)
MAX_AGE_OPTION = typer.Option(
    None,
    "--max-age-days",
    "-M",
    min=0,
    help="Skip entries last modified more than this many days ago.",
)
DISPLAY_OPTION = typer.Option(
    False,
    "--display",
    "--create-display-strings",
    "-D",
    help="Append a tab and a human-readable display string to every line.",
)
MARKUP_OPTION = typer.Option(
    False, "--markup", "-m", help="Wrap the remote-type hint in <i>...</i> markup."
)
WITH_REMOTES_OPTION = typer.Option(
    False, "--with-remotes", "-r", help="Include vscode-remote:// locations."
)
ALL_OPTION = typer.Option(False, "--all", "-a", help="Include every kind of entry.")


def _emit(ctx: typer.Context, source: SourceAdapter, options: CollectionOptions) -> None:
    state = ctx.obj
    if not (options.filters.include_local or options.filters.include_remote):
        state.logger.warning("Nothing selected; pass --all or one of the --with-* switches.")
    entries = collect(source, options)
    state.logger.debug("Printing %d entries", len(entries))
    for line in render_lines(entries, options.display, state.null_terminated):
        typer.echo(line)


def _options(
    ctx: typer.Context,
    filters: SchemeFilters,
    *,
    limit: int | None,
    max_age_days: int | None = None,
    order: KindOrder = KindOrder.UNCHANGED,
    display: bool,
    markup: bool,
) -> CollectionOptions:
    config = ctx.obj.config
    return CollectionOptions(
        filters=filters,
        max_age_days=max_age_days if max_age_days is not None else config.default_max_age_days,
        limit=limit if limit is not None else config.default_limit,
        order=order,
        display=display,
        markup=markup or config.markup,
    )


@handle_exceptions
def recent(
    ctx: typer.Context,
    with_files: bool = typer.Option(False, "--with-files", "-w", help="Include recent files."),
    with_dirs: bool = typer.Option(False, "--with-dirs", "-W", help="Include recent folders."),
    with_remotes: bool = WITH_REMOTES_OPTION,
    all_: bool = ALL_OPTION,
    order: KindOrder = typer.Option(
        KindOrder.UNCHANGED, "--order", "-d", help="Group files and folders."
    ),
    limit: int | None = LIMIT_OPTION,
    display: bool = DISPLAY_OPTION,
    markup: bool = MARKUP_OPTION,
) -> None:
    """List the File > Open Recent entries in menu order."""
    include_files = all_ or with_files
    include_dirs = all_ or with_dirs
    if with_remotes and not (include_files or include_dirs):
        ctx.obj.logger.warning(
            "No entry kind selected; pass --with-files or --with-dirs along with --with-remotes."
        )
    source = MenuRecentSource(
        ctx.obj.config_root, include_files=include_files, include_dirs=include_dirs
    )
    filters = SchemeFilters(
        include_local=include_files or include_dirs, include_remote=all_ or with_remotes
    )
    options = _options(ctx, filters, limit=limit, order=order, display=display, markup=markup)
    _emit(ctx, source, options)


@handle_exceptions
def workspaces(
    ctx: typer.Context,
    max_age_days: int | None = MAX_AGE_OPTION,
    limit: int | None = LIMIT_OPTION,
    with_dirs: bool = typer.Option(False, "--with-dirs", "-W", help="Include local folders."),
    with_remotes: bool = WITH_REMOTES_OPTION,
    all_: bool = ALL_OPTION,
    display: bool = DISPLAY_OPTION,
    markup: bool = MARKUP_OPTION,
) -> None:
    """List folders with workspace storage, most recently used first."""
    filters = SchemeFilters(include_local=all_ or with_dirs, include_remote=all_ or with_remotes)
    options = _options(
        ctx, filters, limit=limit, max_age_days=max_age_days, display=display, markup=markup
    )
    _emit(ctx, WorkspaceStorageSource(ctx.obj.config_root), options)


@handle_exceptions
def history(
    ctx: typer.Context,
    max_age_days: int | None = MAX_AGE_OPTION,
    limit: int | None = LIMIT_OPTION,
    with_files: bool = typer.Option(False, "--with-files", "-w", help="Include local files."),
    with_remotes: bool = WITH_REMOTES_OPTION,
    all_: bool = ALL_OPTION,
    display: bool = DISPLAY_OPTION,
    markup: bool = MARKUP_OPTION,
) -> None:
    """List files with local edit history, most recently used first."""
    filters = SchemeFilters(include_local=all_ or with_files, include_remote=all_ or with_remotes)
    options = _options(
        ctx, filters, limit=limit, max_age_days=max_age_days, display=display, markup=markup
    )
    _emit(ctx, HistorySource(ctx.obj.config_root), options)
