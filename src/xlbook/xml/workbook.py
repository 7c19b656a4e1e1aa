"""Workbook part model (``xl/workbook.xml``)."""

from __future__ import annotations

from xlbook.xml.tree import Element, PartTree

REL_NS = "http://schemas.openxmlformats.org/officeDocument/2006/relationships"
STRICT_REL_NS = "http://purl.oclc.org/ooxml/officeDocument/relationships"

# CT_Workbook child order.
WORKBOOK_ORDER = (
    "fileVersion", "fileSharing", "workbookPr", "workbookProtection", "bookViews",
    "sheets", "functionGroups", "externalReferences", "definedNames", "calcPr",
    "oleSize", "customWorkbookViews", "pivotCaches", "smartTagPr", "smartTagTypes",
    "webPublishing", "fileRecoveryPr", "webPublishObjects", "extLst",
)


def _identity(element: Element) -> Element:
    return element


_FACTORIES = {"bookViews": _identity, "sheets": _identity, "definedNames": _identity}


class WorkbookPart:
    """Sheet list, book views and defined names; every other section stays opaque."""

    def __init__(self, tree: PartTree) -> None:
        self.tree = tree

    @classmethod
    def parse(cls, data: bytes) -> "WorkbookPart":
        return cls(PartTree.parse(data, _FACTORIES))

    def to_bytes(self) -> bytes:
        return self.tree.to_bytes()

    def check(self) -> None:
        pass

    # -- sections ------------------------------------------------------------
    def section(self, local: str) -> Element | None:
        node = self.tree.node(local)
        return None if node is None else node.value

    def edit(self, local: str) -> Element:
        node = self.tree.node(local)
        if node is None:
            node = self.tree.insert(local, Element(self.tree.prefix + local), WORKBOOK_ORDER)
        node.dirty = True
        return node.value

    def drop(self, local: str) -> None:
        node = self.tree.node(local)
        if node is not None:
            self.tree.remove(node)

    def rel_attr(self) -> str:
        """Qualified name of the relationship-id attribute, declared on the root when absent."""
        prefix = self.tree.namespace_prefix(REL_NS, STRICT_REL_NS)
        if prefix is None:
            self.tree.declare_namespace("r", REL_NS)
            prefix = "r"
        return f"{prefix}:id" if prefix else "id"

    @staticmethod
    def sheet_rid(sheet: Element) -> str:
        """Relationship id of a ``<sheet>``, whichever element declares its prefix."""
        for key, value in sheet.attrs.items():
            if key.endswith(":id"):
                return value
        return ""

    # -- sheets --------------------------------------------------------------
    def sheets(self) -> list[Element]:
        found = self.section("sheets")
        return [] if found is None else found.findall("sheet")

    def add_sheet(self, name: str, sheet_id: int, rid: str) -> Element:
        sheets = self.edit("sheets")
        return sheets.sub("sheet", {"name": name, "sheetId": sheet_id, self.rel_attr(): rid})

    def remove_sheet(self, index: int) -> Element:
        sheets = self.edit("sheets")
        element = sheets.findall("sheet")[index]
        sheets.remove(element)
        return element

    def rename_sheet(self, index: int, name: str) -> None:
        self.edit("sheets").findall("sheet")[index].set("name", name)

    def move_sheet(self, index: int, to: int) -> None:
        sheets = self.edit("sheets")
        items = sheets.findall("sheet")
        moving = items.pop(index)
        items.insert(to, moving)
        sheets.children = list(items)

    # -- book views ----------------------------------------------------------
    def workbook_view(self) -> Element | None:
        views = self.section("bookViews")
        if views is None:
            return None
        return views.find("workbookView")

    def ensure_workbook_view(self) -> Element:
        """Return the first ``<workbookView>``, creating ``<bookViews>`` content when empty."""
        found = self.workbook_view()
        if found is not None:
            return found
        views = self.edit("bookViews")
        return views.sub("workbookView", {})

    def active_tab(self) -> int:
        view = self.workbook_view()
        if view is None:
            return 0
        value = view.get("activeTab", "0") or "0"
        return int(value) if value.isdigit() else 0

    def set_active_tab(self, index: int) -> None:
        self.ensure_workbook_view()
        view = self.edit("bookViews").find("workbookView")
        view.set("activeTab", index)

    # -- defined names -------------------------------------------------------
    def defined_names(self) -> list[Element]:
        found = self.section("definedNames")
        return [] if found is None else found.findall("definedName")

    def replace_defined_names(self, entries: list[Element]) -> None:
        """Swap the whole ``<definedNames>`` collection; an empty list drops the section."""
        if not entries:
            self.drop("definedNames")
            return
        self.edit("definedNames").children = list(entries)
