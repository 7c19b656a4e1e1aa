"""Read-only view of the shared string table (``xl/sharedStrings.xml``)."""

from __future__ import annotations

from xlbook.xml.tree import Element, parse_element


def rich_text(element: Element) -> str:
    """Text of an ``<si>``/``<is>`` item: plain ``<t>`` plus rich-text runs, phonetic runs skipped."""
    parts: list[str] = []
    for child in element.elements():
        if child.local == "t":
            parts.append(child.text)
        elif child.local == "r":
            t = child.find("t")
            if t is not None:
                parts.append(t.text)
    return "".join(parts)


class SharedStrings:
    def __init__(self, items: list[str] | None = None) -> None:
        self.items = items or []

    @classmethod
    def from_bytes(cls, data: bytes) -> "SharedStrings":
        root = parse_element(data)
        return cls([rich_text(si) for si in root.findall("si")])

    def get(self, index: int) -> str:
        if 0 <= index < len(self.items):
            return self.items[index]
        return ""

    def __len__(self) -> int:
        return len(self.items)
