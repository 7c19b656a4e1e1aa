"""Package-level parts: relationships, content types, and the blank-workbook template."""

from __future__ import annotations

import posixpath
from collections.abc import Iterator

from xlbook.xml.tree import XML_HEADER, Element, Node, PartTree, escape_attr

# ---------------------------------------------------------------------------
# Well-known names
# ---------------------------------------------------------------------------
CONTENT_TYPES_PATH = "[Content_Types].xml"
PACKAGE_RELS_PATH = "_rels/.rels"

PACKAGE_REL_NS = "http://schemas.openxmlformats.org/package/2006/relationships"
CONTENT_TYPES_NS = "http://schemas.openxmlformats.org/package/2006/content-types"

_OFFICE = "http://schemas.openxmlformats.org/officeDocument/2006/relationships/"
_STRICT = "http://purl.oclc.org/ooxml/officeDocument/relationships/"

REL_OFFICE_DOCUMENT = (_OFFICE + "officeDocument", _STRICT + "officeDocument")
REL_WORKSHEET = (_OFFICE + "worksheet", _STRICT + "worksheet")
REL_SHARED_STRINGS = (_OFFICE + "sharedStrings", _STRICT + "sharedStrings")
REL_STYLES = (_OFFICE + "styles", _STRICT + "styles")
REL_CORE_PROPERTIES = "http://schemas.openxmlformats.org/package/2006/relationships/metadata/core-properties"
REL_EXTENDED_PROPERTIES = _OFFICE + "extended-properties"

CT_RELS = "application/vnd.openxmlformats-package.relationships+xml"
CT_XML = "application/xml"
CT_WORKBOOK = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet.main+xml"
CT_WORKBOOK_MACRO = "application/vnd.ms-excel.sheet.macroEnabled.main+xml"
CT_WORKSHEET = "application/vnd.openxmlformats-officedocument.spreadsheetml.worksheet+xml"
CT_STYLES = "application/vnd.openxmlformats-officedocument.spreadsheetml.styles+xml"
CT_CORE = "application/vnd.openxmlformats-package.core-properties+xml"
CT_APP = "application/vnd.openxmlformats-officedocument.extended-properties+xml"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------
def rels_path_for(part: str) -> str:
    """``xl/workbook.xml`` -> ``xl/_rels/workbook.xml.rels``."""
    directory, name = posixpath.split(part.lstrip("/"))
    if not directory:
        return f"_rels/{name}.rels"
    return f"{directory}/_rels/{name}.rels"


def resolve_target(source: str, target: str) -> str:
    """Resolve a relationship *target* against the part that owns the relationship."""
    if target.startswith("/"):
        return posixpath.normpath(target).lstrip("/")
    base = posixpath.dirname(source)
    return posixpath.normpath(posixpath.join(base, target)).lstrip("/")


def relative_target(source: str, part: str) -> str:
    base = posixpath.dirname(source) or "."
    return posixpath.relpath(part, base)


def _node_element(element: Element) -> Element:
    return element


# ---------------------------------------------------------------------------
# Relationships
# ---------------------------------------------------------------------------
class Relationships:
    """A ``.rels`` part. Each ``<Relationship>`` is a separately re-rendered node."""

    def __init__(self, tree: PartTree) -> None:
        self.tree = tree

    @classmethod
    def parse(cls, data: bytes) -> "Relationships":
        return cls(PartTree.parse(data, {"Relationship": _node_element}))

    @classmethod
    def new(cls) -> "Relationships":
        return cls(PartTree.new("Relationships", {"xmlns": PACKAGE_REL_NS}))

    def __iter__(self) -> Iterator[Element]:
        return (node.value for node in self.tree.nodes("Relationship"))

    def get(self, rid: str) -> Element | None:
        for rel in self:
            if rel.get("Id") == rid:
                return rel
        return None

    def by_type(self, *types: str) -> list[Element]:
        return [rel for rel in self if rel.get("Type") in types]

    def next_id(self) -> str:
        highest = 0
        for rel in self:
            rid = rel.get("Id") or ""
            if rid.startswith("rId") and rid[3:].isdigit():
                highest = max(highest, int(rid[3:]))
        return f"rId{highest + 1}"

    def add(self, rel_type: str, target: str) -> str:
        rid = self.next_id()
        element = Element(
            self.tree.prefix + "Relationship",
            {"Id": rid, "Type": rel_type, "Target": target},
        )
        self.tree.insert("Relationship", element)
        return rid

    def remove(self, rid: str) -> bool:
        for node in self.tree.nodes("Relationship"):
            if node.value.get("Id") == rid:
                self.tree.remove(node)
                return True
        return False

    def check(self) -> None:
        pass

    def to_bytes(self) -> bytes:
        return self.tree.to_bytes()


# ---------------------------------------------------------------------------
# Content types
# ---------------------------------------------------------------------------
class ContentTypes:
    """``[Content_Types].xml``: extension defaults plus per-part overrides."""

    def __init__(self, tree: PartTree) -> None:
        self.tree = tree

    @classmethod
    def parse(cls, data: bytes) -> "ContentTypes":
        return cls(PartTree.parse(data, {"Default": _node_element, "Override": _node_element}))

    def _overrides(self) -> list[Node]:
        return self.tree.nodes("Override")

    def override(self, part: str) -> str | None:
        name = "/" + part.lstrip("/")
        for node in self._overrides():
            if node.value.get("PartName") == name:
                return node.value.get("ContentType")
        return None

    def content_type(self, part: str) -> str | None:
        found = self.override(part)
        if found is not None:
            return found
        ext = posixpath.splitext(part)[1].lstrip(".").lower()
        for node in self.tree.nodes("Default"):
            if (node.value.get("Extension") or "").lower() == ext:
                return node.value.get("ContentType")
        return None

    def add_override(self, part: str, content_type: str) -> None:
        name = "/" + part.lstrip("/")
        for node in self._overrides():
            if node.value.get("PartName") == name:
                if node.value.get("ContentType") != content_type:
                    node.value.set("ContentType", content_type)
                    node.dirty = True
                return
        element = Element(self.tree.prefix + "Override", {"PartName": name, "ContentType": content_type})
        self.tree.insert("Override", element, ("Default", "Override"))

    def remove_override(self, part: str) -> None:
        name = "/" + part.lstrip("/")
        for node in self._overrides():
            if node.value.get("PartName") == name:
                self.tree.remove(node)

    def check(self) -> None:
        pass

    def to_bytes(self) -> bytes:
        return self.tree.to_bytes()


# ---------------------------------------------------------------------------
# Blank workbook
# ---------------------------------------------------------------------------
_STYLES = (
    '<styleSheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">'
    '<fonts count="1"><font><sz val="11"/><color theme="1"/><name val="Calibri"/>'
    '<family val="2"/><scheme val="minor"/></font></fonts>'
    '<fills count="2"><fill><patternFill patternType="none"/></fill>'
    '<fill><patternFill patternType="gray125"/></fill></fills>'
    '<borders count="1"><border><left/><right/><top/><bottom/><diagonal/></border></borders>'
    '<cellStyleXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0"/></cellStyleXfs>'
    '<cellXfs count="1"><xf numFmtId="0" fontId="0" fillId="0" borderId="0" xfId="0"/></cellXfs>'
    '<cellStyles count="1"><cellStyle name="Normal" xfId="0" builtinId="0"/></cellStyles>'
    "</styleSheet>"
)

_CORE = (
    '<cp:coreProperties xmlns:cp="http://schemas.openxmlformats.org/package/2006/metadata/core-properties" '
    'xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:dcterms="http://purl.org/dc/terms/" '
    'xmlns:dcmitype="http://purl.org/dc/dcmitype/" xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance">'
    "<dc:creator>xlbook</dc:creator></cp:coreProperties>"
)

_APP = (
    '<Properties xmlns="http://schemas.openxmlformats.org/officeDocument/2006/extended-properties" '
    'xmlns:vt="http://schemas.openxmlformats.org/officeDocument/2006/docPropsVTypes">'
    "<Application>xlbook</Application></Properties>"
)


def blank_parts(sheet_name: str, worksheet: bytes) -> dict[str, bytes]:
    """Parts of a one-sheet workbook whose sheet part is *worksheet*."""
    content_types = (
        f'<Types xmlns="{CONTENT_TYPES_NS}">'
        f'<Default Extension="rels" ContentType="{CT_RELS}"/>'
        f'<Default Extension="xml" ContentType="{CT_XML}"/>'
        f'<Override PartName="/xl/workbook.xml" ContentType="{CT_WORKBOOK}"/>'
        f'<Override PartName="/xl/worksheets/sheet1.xml" ContentType="{CT_WORKSHEET}"/>'
        f'<Override PartName="/xl/styles.xml" ContentType="{CT_STYLES}"/>'
        f'<Override PartName="/docProps/core.xml" ContentType="{CT_CORE}"/>'
        f'<Override PartName="/docProps/app.xml" ContentType="{CT_APP}"/>'
        "</Types>"
    )
    package_rels = (
        f'<Relationships xmlns="{PACKAGE_REL_NS}">'
        f'<Relationship Id="rId1" Type="{REL_OFFICE_DOCUMENT[0]}" Target="xl/workbook.xml"/>'
        f'<Relationship Id="rId2" Type="{REL_CORE_PROPERTIES}" Target="docProps/core.xml"/>'
        f'<Relationship Id="rId3" Type="{REL_EXTENDED_PROPERTIES}" Target="docProps/app.xml"/>'
        "</Relationships>"
    )
    workbook = (
        '<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" '
        'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">'
        '<workbookPr/><bookViews><workbookView xWindow="0" yWindow="0" windowWidth="16384" windowHeight="8192"/></bookViews>'
        f'<sheets><sheet name="{escape_attr(sheet_name)}" sheetId="1" r:id="rId1"/></sheets>'
        '<calcPr calcId="191029"/>'
        "</workbook>"
    )
    workbook_rels = (
        f'<Relationships xmlns="{PACKAGE_REL_NS}">'
        f'<Relationship Id="rId1" Type="{REL_WORKSHEET[0]}" Target="worksheets/sheet1.xml"/>'
        f'<Relationship Id="rId2" Type="{REL_STYLES[0]}" Target="styles.xml"/>'
        "</Relationships>"
    )
    return {
        CONTENT_TYPES_PATH: XML_HEADER + content_types.encode(),
        PACKAGE_RELS_PATH: XML_HEADER + package_rels.encode(),
        "docProps/core.xml": XML_HEADER + _CORE.encode(),
        "docProps/app.xml": XML_HEADER + _APP.encode(),
        "xl/workbook.xml": XML_HEADER + workbook.encode(),
        "xl/_rels/workbook.xml.rels": XML_HEADER + workbook_rels.encode(),
        "xl/styles.xml": XML_HEADER + _STYLES.encode(),
        "xl/worksheets/sheet1.xml": worksheet,
    }
