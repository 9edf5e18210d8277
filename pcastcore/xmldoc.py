"""A small XML tree with the lenient reader and writer used for settings and stats."""

from __future__ import annotations

import re

from pcastcore.streams import Stream, StreamError

_BUFFER_LEN = 100 * 1024
_HEX = "0123456789ABCDEF"
_LINE_WIDTH = 1023
_WHITESPACE = " \t\r\n"
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _is_ws(ch: str) -> bool:
    return ch in _WHITESPACE


def _nibble(ch: str) -> int:
    code = ord(ch)
    value = code - ord("A") + 10 if code >= ord("A") else code - ord("0")
    return value & 0xF


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


class Node:
    """An element: a name, attributes in order, optional text content and children."""

    def __init__(self, text: str = ""):
        self.name = ""
        self.attributes: list[tuple[str, str]] = []
        self.content: str | None = None
        self.children: list[Node] = []
        self.parent: Node | None = None
        self.set_attributes(text)

    def __repr__(self) -> str:
        return f"Node({self.name!r})"

    def add(self, node: "Node | None") -> None:
        if node is None:
            return
        node.parent = self
        self.children.append(node)

    def set_attributes(self, text: str) -> None:
        """Parse ``name attr="value" ...`` into the name and attributes."""
        text = text.split("\0", 1)[0]
        max_attr = 1
        in_quote = False
        for ch in text:
            if ch == '"':
                in_quote = not in_quote
            if not in_quote and ch == "=":
                max_attr += 1

        self.attributes = []
        n = len(text)
        i = 0
        while i < n and not _is_ws(text[i]):
            i += 1
        self.name = text[:i]
        if i >= n:
            return
        i += 1

        while i < n:
            if _is_ws(text[i]):
                i += 1
                continue
            if len(self.attributes) + 1 >= max_attr:
                raise StreamError("Too many attributes")
            start = i
            name_end = None
            while i < n:
                ch = text[i]
                i += 1
                if ch == "=" or _is_ws(ch):
                    if name_end is None:
                        name_end = i - 1
                    if ch == "=":
                        break
            if name_end is None:
                name_end = i
            attr_name = text[start:name_end]

            while i < n and _is_ws(text[i]):
                i += 1
            if i >= n or text[i] != '"':
                raise StreamError("Bad tag value")
            i += 1
            value_start = i
            closed = False
            while i < n:
                ch = text[i]
                i += 1
                if ch == '"':
                    closed = True
                    break
            if closed:
                value = text[value_start:i - 1]
            elif i == value_start:
                value = ""
            else:
                value = text[value_start:n - 1]
            self.attributes.append((attr_name, value))

    def set_content(self, text: str) -> None:
        self.content = text

    def set_binary_content(self, data) -> None:
        """Store bytes as hex text, low nibble first, with a newline every 1024 bytes."""
        pieces = []
        for index, byte in enumerate(bytes(data)):
            pieces.append(_HEX[byte & 0xF] + _HEX[(byte >> 4) & 0xF])
            if (index & _LINE_WIDTH) == _LINE_WIDTH:
                pieces.append("\n")
        self.content = "".join(pieces)

    def binary_content(self, size: int) -> bytes:
        """Decode hex content written by set_binary_content, at most ``size`` bytes."""
        text = self.content or ""
        out = bytearray()
        i = 0
        while i < len(text):
            if _is_ws(text[i]):
                i += 1
                continue
            if len(out) >= size:
                raise StreamError("Too much binary data")
            low = _nibble(text[i])
            high = _nibble(text[i + 1]) if i + 1 < len(text) else 0
            out.append((high << 4) | low)
            i += 2
        return bytes(out)

    def find_node(self, name: str) -> "Node | None":
        """First node in depth-first order whose name matches, ignoring case."""
        if self.name.lower() == name.lower():
            return self
        for child in self.children:
            found = child.find_node(name)
            if found is not None:
                return found
        return None

    def find_attr(self, name: str) -> str | None:
        """Value of the first attribute whose name starts with ``name`` (any case)."""
        prefix = name.lower()
        for attr_name, value in self.attributes:
            if attr_name[:len(prefix)].lower() == prefix:
                return value
        return None

    def find_attr_int(self, name: str) -> int:
        """Attribute value as an integer; 0 when missing or not numeric."""
        value = self.find_attr(name)
        if value is None:
            return 0
        match = _LEADING_INT.match(value)
        return int(match.group(1)) if match else 0

    def write(self, out: Stream) -> None:
        parts = [f"<{self.name}"]
        parts.extend(f' {attr}="{value}"' for attr, value in self.attributes)
        if self.content is None and not self.children:
            parts.append("/>\n")
            out.write_string("".join(parts))
            return
        parts.append(">\n")
        if self.content is not None:
            parts.append(self.content)
        out.write_string("".join(parts))
        for child in self.children:
            child.write(out)
        out.write_string(f"</{self.name}>\n")


class XMLDocument:
    """A document holding one root node."""

    def __init__(self, root: Node | None = None):
        self.root = root

    def set_root(self, node: Node | None) -> None:
        self.root = node

    def _require_root(self) -> Node:
        if self.root is None:
            raise StreamError("No XML root")
        return self.root

    def write(self, out: Stream) -> None:
        root = self._require_root()
        out.write_line('<?xml version="1.0" encoding="utf-8" ?>')
        root.write(out)

    def write_compact(self, out: Stream) -> None:
        root = self._require_root()
        out.write_line("<?xml ?>")
        root.write(out)

    def write_html(self, out: Stream) -> None:
        self._require_root().write(out)

    def find_node(self, name: str) -> Node | None:
        return self.root.find_node(name) if self.root is not None else None

    @staticmethod
    def _next_byte(stream: Stream) -> int | None:
        if stream.eof():
            return None
        data = stream.read(1)
        return data[0] if data else None

    def read(self, stream: Stream) -> None:
        """Parse a document from ``stream``, adding to this document's tree."""
        current: Node | None = None
        buf = bytearray()
        while True:
            byte = self._next_byte(stream)
            if byte is None:
                break
            if byte != ord("<"):
                if len(buf) >= _BUFFER_LEN:
                    raise StreamError("Content too big")
                buf.append(byte)
                continue

            if buf and current is not None:
                current.set_content(_decode(bytes(buf)))
            buf.clear()
            while True:
                byte = self._next_byte(stream)
                if byte is None or byte == ord(">"):
                    break
                if len(buf) >= _BUFFER_LEN:
                    raise StreamError("Tag too long")
                buf.append(byte)
            tag = _decode(bytes(buf)).split("\0", 1)[0]
            buf.clear()

            if tag.startswith("!"):
                continue
            if tag.startswith("?"):
                if tag[1:5].lower() != "xml ":
                    raise StreamError("Not XML document")
                continue
            if tag.startswith("/"):
                if current is None:
                    raise StreamError("Unexpected end tag")
                current = current.parent
                continue

            single = tag.endswith("/")
            if single:
                tag = tag[:-1]
            if tag:
                node = Node(tag)
                if current is not None:
                    current.add(node)
                else:
                    self.set_root(node)
                if not single:
                    current = node