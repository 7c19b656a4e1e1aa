"""Part trees: XML parts split into modeled sections and opaque byte spans.

A part is tokenized once with expat (namespace processing off, so undeclared
prefixes inside vendor extensions do not make the part unreadable). The root
element's direct children become *segments*:

* ``Node``: a child whose local name the caller models. It keeps its original
  bytes and a parsed value; it is re-rendered only after it was touched.
* ``Opaque``: everything else, including whitespace between children, kept as
  the exact bytes it was read from.

Serializing an untouched tree therefore reproduces the input byte for byte,
and touching one section never changes the bytes of its neighbours.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from typing import Any
from xml.parsers import expat

XML_HEADER = b'<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'


def local_name(tag: str) -> str:
    return tag.rsplit(":", 1)[-1]


def prefix_of(tag: str) -> str:
    """Return the ``p:`` prefix of a qualified tag (empty when unprefixed)."""
    head, sep, _ = tag.rpartition(":")
    return head + sep


def escape_text(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("\r", "&#13;")
    )


def escape_attr(value: str) -> str:
    return (
        value.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("\n", "&#10;")
        .replace("\r", "&#13;")
        .replace("\t", "&#9;")
    )


def _tag_end(data: bytes, pos: int) -> int:
    """Return the offset just past the tag that starts at *pos*."""
    quote = 0
    for i in range(pos, len(data)):
        ch = data[i]
        if quote:
            if ch == quote:
                quote = 0
        elif ch in (0x22, 0x27):  # " '
            quote = ch
        elif ch == 0x3E:  # >
            return i + 1
    raise expat.ExpatError(f"unterminated tag at offset {pos}")


# ---------------------------------------------------------------------------
# Element: a plain modeled node
# ---------------------------------------------------------------------------
class Element:
    """A modeled XML element: qualified tag, ordered attributes, children."""

    __slots__ = ("tag", "attrs", "children")

    def __init__(
        self,
        tag: str,
        attrs: Mapping[str, Any] | None = None,
        children: list[Element | str] | None = None,
    ) -> None:
        self.tag = tag
        self.attrs: dict[str, str] = {}
        for key, value in (attrs or {}).items():
            if value is not None:
                self.attrs[key] = _attr_str(value)
        self.children: list[Element | str] = children if children is not None else []

    def __repr__(self) -> str:
        return f"<Element {self.tag} {self.attrs}>"

    @property
    def local(self) -> str:
        return local_name(self.tag)

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attrs.get(name, default)

    def set(self, name: str, value: Any) -> None:
        """Set an attribute; ``None`` removes it. Existing attributes keep their position."""
        if value is None:
            self.attrs.pop(name, None)
        else:
            self.attrs[name] = _attr_str(value)

    def elements(self) -> Iterator[Element]:
        for child in self.children:
            if isinstance(child, Element):
                yield child

    def find(self, local: str) -> Element | None:
        for child in self.elements():
            if child.local == local:
                return child
        return None

    def findall(self, local: str) -> list[Element]:
        return [child for child in self.elements() if child.local == local]

    def make(self, local: str, attrs: Mapping[str, Any] | None = None) -> Element:
        """Create a detached element that shares this element's prefix."""
        return Element(prefix_of(self.tag) + local, attrs)

    def sub(self, local: str, attrs: Mapping[str, Any] | None = None) -> Element:
        child = self.make(local, attrs)
        self.children.append(child)
        return child

    def remove(self, child: Element) -> None:
        self.children.remove(child)

    @property
    def text(self) -> str:
        """Concatenated text of this element and its descendants."""
        parts: list[str] = []
        for child in self.children:
            parts.append(child if isinstance(child, str) else child.text)
        return "".join(parts)

    @text.setter
    def text(self, value: str) -> None:
        self.children = [value] if value else []

    def to_bytes(self, encoding: str = "utf-8") -> bytes:
        out: list[str] = []
        self.write(out)
        return "".join(out).encode(encoding, "xmlcharrefreplace")

    def write(self, out: list[str]) -> None:
        out.append("<" + self.tag)
        for key, value in self.attrs.items():
            out.append(f' {key}="{escape_attr(value)}"')
        if not self.children:
            out.append("/>")
            return
        out.append(">")
        for child in self.children:
            if isinstance(child, str):
                out.append(escape_text(child))
            else:
                child.write(out)
        out.append(f"</{self.tag}>")


def _attr_str(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def attr_bool(element: Element | None, name: str, default: bool = False) -> bool:
    """Read an ``xsd:boolean`` attribute. An empty or unknown value raises ``ValueError``."""
    value = element.get(name) if element is not None else None
    if value is None:
        return default
    if value in ("1", "true"):
        return True
    if value in ("0", "false"):
        return False
    raise ValueError(f"invalid boolean value {value!r} for attribute {name}")


def attr_float(element: Element | None, name: str, default: float = 0.0) -> float:
    value = element.get(name) if element is not None else None
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"invalid numeric value {value!r} for attribute {name}") from None


def parse_element(data: bytes, encoding: str | None = None) -> Element:
    """Parse a standalone XML fragment into an ``Element`` tree."""
    parser = expat.ParserCreate(encoding)
    parser.ordered_attributes = True
    parser.buffer_text = True
    stack: list[Element] = []
    result: list[Element] = []

    def start(name: str, attrs: list[str]) -> None:
        element = Element(name)
        element.attrs = dict(zip(attrs[::2], attrs[1::2]))
        if stack:
            stack[-1].children.append(element)
        else:
            result.append(element)
        stack.append(element)

    def end(name: str) -> None:
        stack.pop()

    def chars(data: str) -> None:
        if stack:
            stack[-1].children.append(data)

    parser.StartElementHandler = start
    parser.EndElementHandler = end
    parser.CharacterDataHandler = chars
    parser.Parse(data, True)
    return result[0]


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------
class Opaque:
    """An unmodeled byte span: an element the engine does not interpret, or inter-element text."""

    __slots__ = ("tag", "raw")

    def __init__(self, tag: str, raw: bytes) -> None:
        self.tag = tag
        self.raw = raw

    def __repr__(self) -> str:
        return f"<Opaque {self.tag or '#text'} {len(self.raw)}B>"

    def to_bytes(self, encoding: str = "utf-8") -> bytes:
        return self.raw


class Node:
    """A modeled top-level element. Untouched nodes serialize from ``raw``."""

    __slots__ = ("tag", "raw", "value", "dirty")

    def __init__(self, tag: str, raw: bytes, value: Any, dirty: bool = False) -> None:
        self.tag = tag
        self.raw = raw
        self.value = value
        self.dirty = dirty

    def __repr__(self) -> str:
        return f"<Node {self.tag} dirty={self.dirty}>"

    def to_bytes(self, encoding: str = "utf-8") -> bytes:
        if self.dirty or not self.raw:
            return self.value.to_bytes(encoding)
        return self.raw


Segment = Node | Opaque

Factory = Callable[[Element], Any]


class PartTree:
    """A parsed part: prolog, root start tag, segments, and closing bytes."""

    def __init__(
        self,
        *,
        prolog: bytes,
        root_tag: str,
        root_attrs: dict[str, str],
        root_open: bytes,
        segments: list[Segment],
        epilog: bytes,
        encoding: str = "utf-8",
        self_closing: bool = False,
    ) -> None:
        self.prolog = prolog
        self.root_tag = root_tag
        self.root_attrs = root_attrs
        self.root_open = root_open
        self.segments = segments
        self.epilog = epilog
        self.encoding = encoding
        self.self_closing = self_closing

    @classmethod
    def parse(cls, data: bytes, modeled: Mapping[str, Factory] | None = None) -> "PartTree":
        """Tokenize *data*. Children whose local name is in *modeled* become ``Node``s.

        Raises ``expat.ExpatError`` for malformed input.
        """
        factories = modeled or {}
        parser = expat.ParserCreate()
        parser.ordered_attributes = True
        depth = 0
        root: dict[str, Any] = {}
        spans: list[tuple[str, int, int]] = []
        opened: list[Any] = [None, 0]
        declared: list[str] = []

        def xml_decl(version: str, encoding: str | None, standalone: int) -> None:
            if encoding:
                declared.append(encoding)

        def start(name: str, attrs: list[str]) -> None:
            nonlocal depth
            if depth == 0:
                root["tag"] = name
                root["attrs"] = dict(zip(attrs[::2], attrs[1::2]))
                root["start"] = parser.CurrentByteIndex
            elif depth == 1:
                opened[0] = name
                opened[1] = parser.CurrentByteIndex
            depth += 1

        def end(name: str) -> None:
            nonlocal depth
            depth -= 1
            pos = parser.CurrentByteIndex
            if depth == 1:
                open_end = _tag_end(data, opened[1])
                if data[open_end - 2:open_end] == b"/>":
                    finish = open_end
                else:
                    finish = _tag_end(data, pos)
                spans.append((opened[0], opened[1], finish))
            elif depth == 0:
                root["close"] = pos

        parser.XmlDeclHandler = xml_decl
        parser.StartElementHandler = start
        parser.EndElementHandler = end
        parser.Parse(data, True)

        encoding = declared[0] if declared else "utf-8"
        start_at = root["start"]
        open_end = _tag_end(data, start_at)
        self_closing = data[open_end - 2:open_end] == b"/>"
        body_end = open_end if self_closing else root["close"]

        segments: list[Segment] = []
        cursor = open_end
        for tag, begin, finish in spans:
            if begin > cursor:
                segments.append(Opaque("", data[cursor:begin]))
            raw = data[begin:finish]
            factory = factories.get(local_name(tag))
            if factory is None:
                segments.append(Opaque(tag, raw))
            else:
                segments.append(Node(tag, raw, factory(parse_element(raw, encoding))))
            cursor = finish
        if body_end > cursor:
            segments.append(Opaque("", data[cursor:body_end]))

        return cls(
            prolog=data[:start_at],
            root_tag=root["tag"],
            root_attrs=root["attrs"],
            root_open=data[start_at:open_end],
            segments=segments,
            epilog=data[body_end:],
            encoding=encoding,
            self_closing=self_closing,
        )

    @classmethod
    def new(cls, root_tag: str, namespaces: Mapping[str, str]) -> "PartTree":
        """Create an empty part with the given root and namespace declarations."""
        attrs = dict(namespaces)
        head = "".join(f' {k}="{escape_attr(v)}"' for k, v in attrs.items())
        return cls(
            prolog=XML_HEADER,
            root_tag=root_tag,
            root_attrs=attrs,
            root_open=f"<{root_tag}{head}>".encode(),
            segments=[],
            epilog=f"</{root_tag}>".encode(),
        )

    # -- namespace helpers ---------------------------------------------------
    @property
    def prefix(self) -> str:
        return prefix_of(self.root_tag)

    def namespace_prefix(self, *uris: str) -> str | None:
        """Return the prefix bound on the root to any of *uris* (``""`` for default)."""
        for key, value in self.root_attrs.items():
            if value in uris:
                if key == "xmlns":
                    return ""
                if key.startswith("xmlns:"):
                    return key[6:]
        return None

    def declare_namespace(self, prefix: str, uri: str) -> None:
        """Add ``xmlns:prefix`` to the root start tag."""
        key = f"xmlns:{prefix}"
        if key in self.root_attrs:
            return
        self.root_attrs[key] = uri
        decl = f' {key}="{escape_attr(uri)}"'.encode(self.encoding)
        cut = -2 if self.root_open.endswith(b"/>") else -1
        self.root_open = self.root_open[:cut].rstrip() + decl + self.root_open[cut:]

    # -- segment access ------------------------------------------------------
    def nodes(self, local: str | None = None) -> list[Node]:
        return [
            seg for seg in self.segments
            if isinstance(seg, Node) and (local is None or local_name(seg.tag) == local)
        ]

    def node(self, local: str) -> Node | None:
        for seg in self.segments:
            if isinstance(seg, Node) and local_name(seg.tag) == local:
                return seg
        return None

    def insert(self, local: str, value: Any, order: Sequence[str] = ()) -> Node:
        """Insert a new modeled node, positioned by the schema *order* of local names."""
        node = Node(self.prefix + local, b"", value, dirty=True)
        ranks = {name: i for i, name in enumerate(order)}
        rank = ranks.get(local)
        pos = len(self.segments)
        if rank is not None:
            after: int | None = None
            for i, seg in enumerate(self.segments):
                seg_rank = ranks.get(local_name(seg.tag)) if seg.tag else None
                if seg_rank is None:
                    continue
                if seg_rank > rank:
                    pos = i if after is None else after
                    break
                after = i + 1
            else:
                if after is not None:
                    pos = after
        self.segments.insert(pos, node)
        return node

    def remove(self, node: Node) -> None:
        self.segments.remove(node)

    # -- serialization -------------------------------------------------------
    def to_bytes(self) -> bytes:
        body = b"".join(seg.to_bytes(self.encoding) for seg in self.segments)
        if not self.self_closing:
            return self.prolog + self.root_open + body + self.epilog
        if not body:
            return self.prolog + self.root_open + self.epilog
        open_tag = self.root_open[:-2].rstrip() + b">"
        close_tag = f"</{self.root_tag}>".encode(self.encoding)
        return self.prolog + open_tag + body + close_tag + self.epilog
