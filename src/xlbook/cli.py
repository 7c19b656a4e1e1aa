"""Typer CLI application: workbook, sheet, name, layout, view and page-break commands."""

from __future__ import annotations

import re
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, Any, Optional

import portalocker
import typer
from pydantic import ValidationError

import xlbook
from xlbook.config import EngineConfig
from xlbook.contracts.common import ChangeRecord, Target
from xlbook.contracts.errors import SheetNotFoundError, XlBookError
from xlbook.contracts.options import DefinedName, HeaderFooterOptions, PageLayoutOptions, PageMarginsOptions
from xlbook.engine.dispatcher import (
    envelope_for_error,
    error_envelope,
    exit_code_for,
    print_response,
    success_envelope,
)
from xlbook.observe.events import Timer

# ---------------------------------------------------------------------------
# App & subcommand groups
# ---------------------------------------------------------------------------

_MAIN_HELP = """\
Structural editor for .xlsx workbooks that leaves everything it does not touch byte-for-byte intact.

**Every command** returns a JSON `ResponseEnvelope`:
`{"ok": bool, "command": "...", "result": {...}, "errors": [...], "warnings": [...], "metrics": {"duration_ms": N, "parts_written": N}}`

**Safety rails:** mutating commands hold an exclusive `<file>.xlbook.lock`, write atomically,
and accept `--backup` (timestamped .bak copy) and `--dry-run`.

**Exit codes:** 0=success, 10=validation, 40=conflict, 50=io, 90=internal

Defaults can be set in an `xlbook.yaml` next to the workbook
(`default_sheet_name`, `emit_events`, `lock_timeout`, `backup`).
"""

_WB_EPILOG = """\
**Examples:**

`xlbook wb inspect -f data.xlsx`: sheets, defined names, active sheet, fingerprint

`xlbook wb create -f new.xlsx --sheets Revenue,Summary`

`xlbook wb lock-status -f data.xlsx`
"""

_SHEET_EPILOG = """\
**Examples:**

`xlbook sheet create -f data.xlsx -n Costs`: returns the existing index if the sheet is already there

`xlbook sheet rename -f data.xlsx -n Costs --to Expenses`: defined names follow the rename

`xlbook sheet delete -f data.xlsx -n Expenses`: scoped names go with the sheet

`xlbook sheet search -f data.xlsx -n Sheet1 --value "[0-9]+" --regex`
"""

_NAME_EPILOG = """\
**Examples:**

`xlbook name set -f data.xlsx -n Amount --refers-to "Sheet1!$A$2:$D$5" --scope Sheet1`

`xlbook name delete -f data.xlsx -n Amount`: without `--scope` the workbook-level name is deleted
"""

_LAYOUT_EPILOG = """\
**Examples:**

`xlbook layout set -f data.xlsx -s Sheet1 --orientation landscape --fit-to-width 1`

`xlbook layout header-footer -f data.xlsx -s Sheet1 --odd-header "&C&F" --odd-footer "&RPage &P"`
"""

_VIEW_EPILOG = """\
**Examples:**

`xlbook view panes -f data.xlsx -s Sheet1`: show the current pane configuration

`xlbook view panes -f data.xlsx -s Sheet1 --config '{"freeze":true,"y_split":1,"top_left_cell":"A2","active_pane":"bottomLeft"}'`
"""


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(xlbook.__version__)
        raise typer.Exit()


app = typer.Typer(
    name="xlbook",
    help=_MAIN_HELP,
    no_args_is_help=True,
    rich_markup_mode="markdown",
)

wb_app = typer.Typer(
    name="wb", help="Workbook-level inspection, creation and lock status.",
    epilog=_WB_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
sheet_app = typer.Typer(
    name="sheet", help="Sheet lifecycle: create, rename, delete, move, activate, group, search.",
    epilog=_SHEET_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
cell_app = typer.Typer(
    name="cell", help="Read and write individual cell values.",
    no_args_is_help=True, rich_markup_mode="markdown",
)
name_app = typer.Typer(
    name="name", help="Defined names: list, create, delete.",
    epilog=_NAME_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
layout_app = typer.Typer(
    name="layout", help="Page setup, margins and header/footer.",
    epilog=_LAYOUT_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
view_app = typer.Typer(
    name="view", help="Freeze and split panes.",
    epilog=_VIEW_EPILOG,
    no_args_is_help=True, rich_markup_mode="markdown",
)
page_break_app = typer.Typer(
    name="page-break", help="Insert and remove manual page breaks.",
    no_args_is_help=True, rich_markup_mode="markdown",
)

app.add_typer(wb_app)
app.add_typer(sheet_app)
app.add_typer(cell_app)
app.add_typer(name_app)
app.add_typer(layout_app)
app.add_typer(view_app)
app.add_typer(page_break_app)


@app.callback(invoke_without_command=True)
def _root(
    version: Annotated[
        bool, typer.Option("--version", "-V", help="Print version and exit.", is_eager=True)
    ] = False,
) -> None:
    if version:
        _version_callback(True)


# Type aliases for common options
FilePath = Annotated[str, typer.Option("--file", "-f", help="Path to .xlsx/.xlsm workbook file")]
SheetOpt = Annotated[str, typer.Option("--sheet", "-s", help="Sheet name (as shown by 'xlbook sheet ls')")]
NameOpt = Annotated[str, typer.Option("--name", "-n", help="Sheet name")]
BackupOpt = Annotated[bool, typer.Option("--backup", help="Create timestamped .bak copy before writing")]
DryRunOpt = Annotated[bool, typer.Option("--dry-run", help="Preview changes without writing to disk")]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _emit(envelope, code=None):
    print_response(envelope)
    raise typer.Exit(code if code is not None else exit_code_for(envelope))


def _load_config(file: str, cmd: str) -> EngineConfig:
    try:
        return EngineConfig.load_from_dir(Path(file).resolve().parent) or EngineConfig()
    except XlBookError as e:
        _emit(envelope_for_error(cmd, e, target=Target(file=file)))


def _open_or_emit(file: str, cmd: str, config: EngineConfig):
    """Open a Workbook, or emit an error envelope."""
    from xlbook.engine.context import Workbook

    try:
        return Workbook.open(file, config=config)
    except FileNotFoundError:
        _emit(error_envelope(cmd, "ERR_WORKBOOK_NOT_FOUND", f"File not found: {file}", target=Target(file=file)))
    except XlBookError as e:
        _emit(envelope_for_error(cmd, e, target=Target(file=file)))


def _read(file: str, cmd: str, action: Callable[[Any], Any], *, target: Target | None = None) -> None:
    """Run a read-only *action* against the workbook and emit its result."""
    target = target or Target(file=file)
    config = _load_config(file, cmd)
    with Timer() as t:
        book = _open_or_emit(file, cmd, config)
        try:
            result = action(book)
        except XlBookError as e:
            _emit(envelope_for_error(cmd, e, target=target))
        finally:
            book.close()
    _emit(success_envelope(cmd, result, target=target, duration_ms=t.elapsed_ms))


def _mutate(
    file: str,
    cmd: str,
    action: Callable[[Any], tuple[dict, list[ChangeRecord]]],
    *,
    backup: bool = False,
    dry_run: bool = False,
    target: Target | None = None,
) -> None:
    """Lock, open, apply *action*, then back up and save unless *dry_run*.

    *action* returns ``(result, changes)``.
    """
    from xlbook.io.fileops import WorkbookLock
    from xlbook.io.fileops import backup as make_backup

    target = target or Target(file=file)
    if not Path(file).exists():
        _emit(error_envelope(cmd, "ERR_WORKBOOK_NOT_FOUND", f"File not found: {file}", target=target))
    config = _load_config(file, cmd)

    backup_path = None
    parts_written = 0
    with Timer() as t:
        try:
            with WorkbookLock(file, timeout=config.lock_timeout):
                book = _open_or_emit(file, cmd, config)
                try:
                    result, changes = action(book)
                    if not dry_run and changes:
                        if backup or config.backup:
                            backup_path = make_backup(file)
                        book.save()
                        parts_written = book.parts_written
                finally:
                    book.close()
        except portalocker.LockException:
            _emit(error_envelope(
                cmd, "ERR_LOCK_HELD",
                f"Workbook is locked by another process: {file}",
                target=target,
            ))
        except XlBookError as e:
            _emit(envelope_for_error(cmd, e, target=target))

    result = {"dry_run": dry_run, "backup_path": backup_path, **result}
    _emit(success_envelope(
        cmd, result, target=target, changes=changes, duration_ms=t.elapsed_ms, parts_written=parts_written,
    ))


def _validation_error(cmd: str, file: str, exc: ValidationError) -> None:
    first = exc.errors()[0]
    where = ".".join(str(p) for p in first.get("loc", ()))
    _emit(error_envelope(cmd, "ERR_VALIDATION", f"{where}: {first['msg']}", target=Target(file=file)))


# ---------------------------------------------------------------------------
# xlbook version
# ---------------------------------------------------------------------------
@app.command()
def version():
    """Print the xlbook version.

    Example: `xlbook version`
    """
    env = success_envelope("version", {"version": xlbook.__version__})
    _emit(env)


# ---------------------------------------------------------------------------
# xlbook wb inspect
# ---------------------------------------------------------------------------
@wb_app.command("inspect")
def wb_inspect(file: FilePath):
    """Inspect workbook metadata: sheets, defined names, active sheet, fingerprint.

    Example: `xlbook wb inspect -f data.xlsx`
    """
    with Timer() as t:
        config = _load_config(file, "wb.inspect")
        book = _open_or_emit(file, "wb.inspect", config)
        try:
            meta = book.get_workbook_meta()
        except XlBookError as e:
            _emit(envelope_for_error("wb.inspect", e, target=Target(file=file)))
        finally:
            book.close()

    _emit(success_envelope(
        "wb.inspect", meta.model_dump(), target=Target(file=file), warnings=meta.warnings, duration_ms=t.elapsed_ms,
    ))


# ---------------------------------------------------------------------------
# xlbook wb create
# ---------------------------------------------------------------------------
@wb_app.command("create")
def wb_create(
    file: FilePath,
    sheets: Annotated[Optional[str], typer.Option("--sheets", help="Comma-separated sheet names (e.g. 'Revenue,Summary')")] = None,
    force: Annotated[bool, typer.Option("--force", help="Overwrite file if it already exists")] = False,
):
    """Create a new workbook file.

    Without `--sheets` the workbook has one sheet named after
    `default_sheet_name` (default `Sheet1`).

    Example: `xlbook wb create -f report.xlsx --sheets Revenue,Summary,Costs`
    """
    from xlbook.engine.context import Workbook
    from xlbook.io.fileops import fingerprint

    p = Path(file).resolve()
    sheet_list = [s.strip() for s in sheets.split(",") if s.strip()] if sheets else []

    with Timer() as t:
        if p.exists() and not force:
            _emit(error_envelope(
                "wb.create", "ERR_FILE_EXISTS",
                f"File already exists: {p}. Use --force to overwrite.",
                target=Target(file=file),
            ))
        config = _load_config(file, "wb.create")
        try:
            book = Workbook.new(config=config)
            if sheet_list:
                book.set_sheet_name(book.get_sheet_name(0), sheet_list[0])
                for name in sheet_list[1:]:
                    book.new_sheet(name)
            book.save_as(p)
            names = book.get_sheet_list()
            book.close()
        except XlBookError as e:
            _emit(envelope_for_error("wb.create", e, target=Target(file=file)))
        except OSError as e:
            _emit(error_envelope("wb.create", "ERR_IO", str(e), target=Target(file=file)))

    result = {"path": str(p), "fingerprint": fingerprint(p), "sheets": names}
    _emit(success_envelope("wb.create", result, target=Target(file=file), duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# xlbook wb lock-status
# ---------------------------------------------------------------------------
@wb_app.command("lock-status")
def wb_lock_status_cmd(file: FilePath):
    """Check whether another process holds the workbook's lock.

    Example: `xlbook wb lock-status -f data.xlsx`
    """
    from xlbook.io.fileops import check_lock

    with Timer() as t:
        result = check_lock(file)

    _emit(success_envelope("wb.lock_status", result, target=Target(file=file), duration_ms=t.elapsed_ms))


# ---------------------------------------------------------------------------
# xlbook sheet ...
# ---------------------------------------------------------------------------
@sheet_app.command("ls")
def sheet_ls(file: FilePath):
    """List sheets with index, sheet id, part path, visibility and selection state.

    Example: `xlbook sheet ls -f data.xlsx`
    """
    _read(file, "sheet.ls", lambda book: [s.model_dump() for s in book.list_sheets()])


@sheet_app.command("create")
def sheet_create(
    file: FilePath,
    name: NameOpt,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Append a sheet. An existing name is not an error: its index is returned.

    Example: `xlbook sheet create -f data.xlsx --name Costs`
    """
    def action(book):
        before = len(book.get_sheet_list())
        index = book.new_sheet(name)
        created = index == before
        changes = [ChangeRecord(type="sheet.create", target=name, after={"index": index})] if created else []
        return {"sheet": name, "index": index, "created": created}, changes

    _mutate(file, "sheet.create", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=name))


@sheet_app.command("rename")
def sheet_rename(
    file: FilePath,
    name: NameOpt,
    to: Annotated[str, typer.Option("--to", help="New sheet name")],
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Rename a sheet and rewrite defined-name formulas that reference it.

    Example: `xlbook sheet rename -f data.xlsx -n Sheet1 --to Revenue`
    """
    def action(book):
        book.set_sheet_name(name, to)
        changes = [] if name == to else [ChangeRecord(type="sheet.rename", target=name, before=name, after=to)]
        return {"sheet": to}, changes

    _mutate(file, "sheet.rename", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=name))


@sheet_app.command("delete")
def sheet_delete(
    file: FilePath,
    name: NameOpt,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Delete a sheet with its part, relationships and sheet-scoped names.

    The last remaining sheet cannot be deleted.

    Example: `xlbook sheet delete -f data.xlsx -n Scratch --backup`
    """
    def action(book):
        before = [n.name for n in _names(book)]
        book.delete_sheet(name)
        after = [n.name for n in _names(book)]
        removed = [n for n in before if n not in after]
        change = ChangeRecord(type="sheet.delete", target=name, before={"names": before}, after={"names": after})
        return {"sheet": name, "active_sheet": book.get_sheet_name(book.get_active_sheet_index()), "removed_names": removed}, [change]

    _mutate(file, "sheet.delete", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=name))


@sheet_app.command("move")
def sheet_move(
    file: FilePath,
    name: NameOpt,
    index: Annotated[int, typer.Option("--index", "-i", help="Zero-based destination position")],
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Move a sheet to another position. Out-of-range positions are ignored.

    Example: `xlbook sheet move -f data.xlsx -n Summary --index 0`
    """
    def action(book):
        before = book.get_sheet_list()
        book.move_sheet(name, index)
        after = book.get_sheet_list()
        changes = [ChangeRecord(type="sheet.move", target=name, before=before, after=after)] if before != after else []
        return {"sheets": after}, changes

    _mutate(file, "sheet.move", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=name))


@sheet_app.command("activate")
def sheet_activate(
    file: FilePath,
    name: NameOpt,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Make a sheet the active (and only selected) tab.

    Example: `xlbook sheet activate -f data.xlsx -n Summary`
    """
    def action(book):
        index = book.get_sheet_index(name)
        if index == -1:
            raise SheetNotFoundError(name)
        before = book.get_active_sheet_index()
        book.set_active_sheet(index)
        return {"active_sheet": index}, [ChangeRecord(type="sheet.activate", target=name, before=before, after=index)]

    _mutate(file, "sheet.activate", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=name))


@sheet_app.command("group")
def sheet_group(
    file: FilePath,
    sheets: Annotated[str, typer.Option("--sheets", help="Comma-separated sheet names; must include the active sheet")],
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Select several sheets together.

    Example: `xlbook sheet group -f data.xlsx --sheets Sheet1,Sheet2`
    """
    names = [s.strip() for s in sheets.split(",") if s.strip()]

    def action(book):
        book.group_sheets(names)
        return {"grouped": names}, [ChangeRecord(type="sheet.group", target=",".join(names), after=names)]

    _mutate(file, "sheet.group", action, backup=backup, dry_run=dry_run)


@sheet_app.command("ungroup")
def sheet_ungroup(
    file: FilePath,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Deselect every sheet except the active one.

    Example: `xlbook sheet ungroup -f data.xlsx`
    """
    def action(book):
        book.ungroup_sheets()
        active = book.get_sheet_name(book.get_active_sheet_index())
        return {"selected": [active]}, [ChangeRecord(type="sheet.ungroup", target=active)]

    _mutate(file, "sheet.ungroup", action, backup=backup, dry_run=dry_run)


@sheet_app.command("search")
def sheet_search(
    file: FilePath,
    name: NameOpt,
    value: Annotated[str, typer.Option("--value", help="Text to find (a regular expression with --regex)")],
    regex: Annotated[bool, typer.Option("--regex", help="Treat --value as a regular expression")] = False,
):
    """Find cells by value. Returns references in row order.

    Example: `xlbook sheet search -f data.xlsx -n Sheet1 --value Total`
    """
    from xlbook.engine.cells import search_sheet

    if regex:
        try:
            re.compile(value)
        except re.error as e:
            _emit(error_envelope("sheet.search", "ERR_PATTERN_INVALID", str(e), target=Target(file=file, sheet=name)))

    _read(
        file, "sheet.search",
        lambda book: {"matches": search_sheet(book, name, value, regex=regex)},
        target=Target(file=file, sheet=name),
    )


# ---------------------------------------------------------------------------
# xlbook cell ...
# ---------------------------------------------------------------------------
@cell_app.command("get")
def cell_get(file: FilePath, sheet: SheetOpt, ref: Annotated[str, typer.Option("--ref", "-r", help="Cell reference, e.g. B2")]):
    """Read a cell's text value (shared strings resolved).

    Example: `xlbook cell get -f data.xlsx -s Sheet1 -r B2`
    """
    from xlbook.engine.cells import get_cell_value

    _read(
        file, "cell.get",
        lambda book: {"ref": ref, "value": get_cell_value(book, sheet, ref)},
        target=Target(file=file, sheet=sheet, ref=ref),
    )


@cell_app.command("set")
def cell_set(
    file: FilePath,
    sheet: SheetOpt,
    ref: Annotated[str, typer.Option("--ref", "-r", help="Cell reference, e.g. B2")],
    value: Annotated[str, typer.Option("--value", "-v", help="Value to write")],
    value_type: Annotated[str, typer.Option("--type", "-t", help="number, text or bool")] = "text",
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Write one cell value. Any formula in the cell is dropped.

    Example: `xlbook cell set -f data.xlsx -s Sheet1 -r B2 -v 42 -t number`
    """
    from xlbook.engine.cells import get_cell_value, set_cell_value

    try:
        if value_type == "number":
            parsed: Any = float(value) if any(c in value for c in ".eE") else int(value)
        elif value_type == "bool":
            if value.lower() not in ("true", "false", "1", "0"):
                raise ValueError(f"not a boolean: {value!r}")
            parsed = value.lower() in ("true", "1")
        elif value_type == "text":
            parsed = value
        else:
            raise ValueError(f"unknown type {value_type!r}; expected number, text or bool")
    except ValueError as e:
        _emit(error_envelope("cell.set", "ERR_INVALID_ARGUMENT", str(e), target=Target(file=file, sheet=sheet, ref=ref)))

    def action(book):
        before = get_cell_value(book, sheet, ref)
        set_cell_value(book, sheet, ref, parsed)
        return {"ref": ref, "value": parsed}, [
            ChangeRecord(type="cell.set", target=f"{sheet}!{ref}", before=before, after=parsed)
        ]

    _mutate(file, "cell.set", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=sheet, ref=ref))


# ---------------------------------------------------------------------------
# xlbook name ...
# ---------------------------------------------------------------------------
def _names(book) -> list[DefinedName]:
    from xlbook.engine.names import get_defined_names

    return get_defined_names(book)


@name_app.command("ls")
def name_ls(file: FilePath):
    """List defined names in document order.

    Example: `xlbook name ls -f data.xlsx`
    """
    _read(file, "name.ls", lambda book: [n.model_dump() for n in _names(book)])


@name_app.command("set")
def name_set(
    file: FilePath,
    name: Annotated[str, typer.Option("--name", "-n", help="Defined name")],
    refers_to: Annotated[str, typer.Option("--refers-to", help="Formula, e.g. Sheet1!$A$1:$B$4")],
    scope: Annotated[Optional[str], typer.Option("--scope", help="Sheet name; omit for workbook scope")] = None,
    comment: Annotated[str, typer.Option("--comment", help="Comment")] = "",
    hidden: Annotated[bool, typer.Option("--hidden", help="Hide the name from the name manager")] = False,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Create a defined name. The same name may exist once per scope.

    Example: `xlbook name set -f data.xlsx -n Amount --refers-to "Sheet1!$A$2:$D$5" --scope Sheet1`
    """
    from xlbook.engine.names import set_defined_name

    try:
        definition = DefinedName(name=name, refers_to=refers_to, scope=scope, comment=comment, hidden=hidden)
    except ValidationError as e:
        _validation_error("name.set", file, e)

    def action(book):
        set_defined_name(book, definition)
        return definition.model_dump(), [ChangeRecord(type="name.set", target=name, after=definition.model_dump())]

    _mutate(file, "name.set", action, backup=backup, dry_run=dry_run, target=Target(file=file, name=name))


@name_app.command("delete")
def name_delete(
    file: FilePath,
    name: Annotated[str, typer.Option("--name", "-n", help="Defined name")],
    scope: Annotated[Optional[str], typer.Option("--scope", help="Sheet name; omit for workbook scope")] = None,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Delete a defined name from one scope.

    Example: `xlbook name delete -f data.xlsx -n Amount --scope Sheet1`
    """
    from xlbook.engine.names import delete_defined_name

    def action(book):
        delete_defined_name(book, name, scope)
        return {"name": name, "scope": scope}, [ChangeRecord(type="name.delete", target=name, before={"scope": scope})]

    _mutate(file, "name.delete", action, backup=backup, dry_run=dry_run, target=Target(file=file, name=name))


# ---------------------------------------------------------------------------
# xlbook layout ...
# ---------------------------------------------------------------------------
@layout_app.command("get")
def layout_get(file: FilePath, sheet: SheetOpt):
    """Show page setup, margins, header/footer and page breaks of a sheet.

    Example: `xlbook layout get -f data.xlsx -s Sheet1`
    """
    from xlbook.engine import layout

    def action(book):
        return {
            "page_layout": layout.get_page_layout(book, sheet).model_dump(),
            "margins": layout.get_page_margins(book, sheet).model_dump(),
            "header_footer": layout.get_header_footer(book, sheet).model_dump(),
            "page_breaks": layout.get_page_breaks(book, sheet),
        }

    _read(file, "layout.get", action, target=Target(file=file, sheet=sheet))


@layout_app.command("set")
def layout_set(
    file: FilePath,
    sheet: SheetOpt,
    size: Annotated[Optional[int], typer.Option("--size", help="Paper size code (1=Letter, 9=A4)")] = None,
    orientation: Annotated[Optional[str], typer.Option("--orientation", help="portrait or landscape")] = None,
    first_page_number: Annotated[Optional[int], typer.Option("--first-page-number")] = None,
    adjust_to: Annotated[Optional[int], typer.Option("--adjust-to", help="Scale in percent (10-400)")] = None,
    fit_to_height: Annotated[Optional[int], typer.Option("--fit-to-height")] = None,
    fit_to_width: Annotated[Optional[int], typer.Option("--fit-to-width")] = None,
    black_and_white: Annotated[Optional[bool], typer.Option("--black-and-white/--color")] = None,
    margin_left: Annotated[Optional[float], typer.Option("--margin-left")] = None,
    margin_right: Annotated[Optional[float], typer.Option("--margin-right")] = None,
    margin_top: Annotated[Optional[float], typer.Option("--margin-top")] = None,
    margin_bottom: Annotated[Optional[float], typer.Option("--margin-bottom")] = None,
    margin_header: Annotated[Optional[float], typer.Option("--margin-header")] = None,
    margin_footer: Annotated[Optional[float], typer.Option("--margin-footer")] = None,
    center_horizontally: Annotated[Optional[bool], typer.Option("--center-horizontally/--no-center-horizontally")] = None,
    center_vertically: Annotated[Optional[bool], typer.Option("--center-vertically/--no-center-vertically")] = None,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Change page setup and margins. Options left out stay as they are.

    Example: `xlbook layout set -f data.xlsx -s Sheet1 --orientation landscape --adjust-to 80`
    """
    from xlbook.engine import layout

    try:
        page = PageLayoutOptions(
            size=size, orientation=orientation, first_page_number=first_page_number,
            adjust_to=adjust_to, fit_to_height=fit_to_height, fit_to_width=fit_to_width,
            black_and_white=black_and_white,
        )
        margins = PageMarginsOptions(
            left=margin_left, right=margin_right, top=margin_top, bottom=margin_bottom,
            header=margin_header, footer=margin_footer,
            horizontally=center_horizontally, vertically=center_vertically,
        )
    except ValidationError as e:
        _validation_error("layout.set", file, e)

    def action(book):
        before = layout.get_page_layout(book, sheet).model_dump()
        layout.set_page_layout(book, sheet, page)
        layout.set_page_margins(book, sheet, margins)
        after = layout.get_page_layout(book, sheet).model_dump()
        result = {"page_layout": after, "margins": layout.get_page_margins(book, sheet).model_dump()}
        return result, [ChangeRecord(type="layout.set", target=sheet, before=before, after=after)]

    _mutate(file, "layout.set", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=sheet))


@layout_app.command("header-footer")
def layout_header_footer(
    file: FilePath,
    sheet: SheetOpt,
    odd_header: Annotated[str, typer.Option("--odd-header")] = "",
    odd_footer: Annotated[str, typer.Option("--odd-footer")] = "",
    even_header: Annotated[str, typer.Option("--even-header")] = "",
    even_footer: Annotated[str, typer.Option("--even-footer")] = "",
    first_header: Annotated[str, typer.Option("--first-header")] = "",
    first_footer: Annotated[str, typer.Option("--first-footer")] = "",
    different_first: Annotated[bool, typer.Option("--different-first")] = False,
    different_odd_even: Annotated[bool, typer.Option("--different-odd-even")] = False,
    clear: Annotated[bool, typer.Option("--clear", help="Remove the header/footer")] = False,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Replace a sheet's header and footer (each text at most 255 characters).

    Example: `xlbook layout header-footer -f data.xlsx -s Sheet1 --odd-header "&C&A" --odd-footer "&RPage &P of &N"`
    """
    from xlbook.engine import layout

    options = None if clear else HeaderFooterOptions(
        odd_header=odd_header, odd_footer=odd_footer,
        even_header=even_header, even_footer=even_footer,
        first_header=first_header, first_footer=first_footer,
        different_first=different_first, different_odd_even=different_odd_even,
    )

    def action(book):
        before = layout.get_header_footer(book, sheet).model_dump()
        layout.set_header_footer(book, sheet, options)
        after = layout.get_header_footer(book, sheet).model_dump()
        return {"header_footer": after}, [ChangeRecord(type="layout.header_footer", target=sheet, before=before, after=after)]

    _mutate(file, "layout.header_footer", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=sheet))


# ---------------------------------------------------------------------------
# xlbook view panes
# ---------------------------------------------------------------------------
@view_app.command("panes")
def view_panes(
    file: FilePath,
    sheet: SheetOpt,
    config: Annotated[Optional[str], typer.Option("--config", help="Pane configuration JSON; omit to show the current panes")] = None,
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Show or set freeze/split panes and selections.

    Example: `xlbook view panes -f data.xlsx -s Sheet1 --config '{"freeze":true,"x_split":1,"top_left_cell":"B1","active_pane":"topRight"}'`
    """
    from xlbook.engine.views import get_panes, set_panes

    target = Target(file=file, sheet=sheet)
    if config is None:
        _read(file, "view.panes", lambda book: get_panes(book, sheet).model_dump(), target=target)
        return

    def action(book):
        before = get_panes(book, sheet).model_dump()
        set_panes(book, sheet, config)
        after = get_panes(book, sheet).model_dump()
        return after, [ChangeRecord(type="view.panes", target=sheet, before=before, after=after)]

    _mutate(file, "view.panes", action, backup=backup, dry_run=dry_run, target=target)


# ---------------------------------------------------------------------------
# xlbook page-break ...
# ---------------------------------------------------------------------------
@page_break_app.command("insert")
def page_break_insert(
    file: FilePath,
    sheet: SheetOpt,
    cell: Annotated[str, typer.Option("--cell", "-c", help="Break above the row and left of the column of this cell")],
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Insert page breaks before the row and column of a cell. Duplicates are ignored.

    Example: `xlbook page-break insert -f data.xlsx -s Sheet1 -c C3`
    """
    from xlbook.engine.layout import get_page_breaks, insert_page_break

    def action(book):
        before = get_page_breaks(book, sheet)
        insert_page_break(book, sheet, cell)
        after = get_page_breaks(book, sheet)
        changes = [ChangeRecord(type="page_break.insert", target=f"{sheet}!{cell}", before=before, after=after)] if before != after else []
        return {"page_breaks": after}, changes

    _mutate(file, "page_break.insert", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=sheet, ref=cell))


@page_break_app.command("remove")
def page_break_remove(
    file: FilePath,
    sheet: SheetOpt,
    cell: Annotated[str, typer.Option("--cell", "-c", help="Cell whose row/column breaks are removed")],
    backup: BackupOpt = False,
    dry_run: DryRunOpt = False,
):
    """Remove the page breaks at a cell. Missing breaks are ignored.

    Example: `xlbook page-break remove -f data.xlsx -s Sheet1 -c C3`
    """
    from xlbook.engine.layout import get_page_breaks, remove_page_break

    def action(book):
        before = get_page_breaks(book, sheet)
        remove_page_break(book, sheet, cell)
        after = get_page_breaks(book, sheet)
        changes = [ChangeRecord(type="page_break.remove", target=f"{sheet}!{cell}", before=before, after=after)] if before != after else []
        return {"page_breaks": after}, changes

    _mutate(file, "page_break.remove", action, backup=backup, dry_run=dry_run, target=Target(file=file, sheet=sheet, ref=cell))


# ---------------------------------------------------------------------------
# Entrypoint (for `python -m xlbook`)
# ---------------------------------------------------------------------------
def main() -> None:
    try:
        app()
    except SystemExit:
        raise
    except Exception as exc:
        # Unhandled exceptions still produce a JSON envelope.
        env = error_envelope("unknown", "ERR_INTERNAL", str(exc))
        print_response(env)
        raise SystemExit(90) from exc


if __name__ == "__main__":
    main()
