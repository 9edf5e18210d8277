"""Typed text values and the escaping schemes used in URLs, HTML and metadata."""

from __future__ import annotations

import re
import string
import time
from enum import IntEnum
from typing import Callable, Iterable, Iterator

from pcastcore.b64 import decode_base64_words

_UPPER = str.maketrans(string.ascii_lowercase, string.ascii_uppercase)

_HTML_SPECIAL = {
    ord("&"): b"&amp;",
    ord('"'): b"&quot;",
    ord("'"): b"&#039;",
    ord("<"): b"&lt;",
    ord(">"): b"&gt;",
}

_AMP = ord("&")
_HASH = ord("#")
_SEMI = ord(";")
_PERCENT = ord("%")
_PLUS = ord("+")


class StringType(IntEnum):
    """The encoding a TypedString's text is currently held in."""

    UNKNOWN = 0
    ASCII = 1
    HTML = 2
    ESC = 3
    ESCSAFE = 4
    META = 5
    METASAFE = 6
    BASE64 = 7
    UNICODE = 8
    UNICODESAFE = 9


# --- low-level helpers ------------------------------------------------------
def _ascii_upper(text: str) -> str:
    return text.translate(_UPPER)


def _is_alnum(c: int) -> bool:
    return 0x30 <= c <= 0x39 or 0x61 <= c <= 0x7A or 0x41 <= c <= 0x5A


def _nibble(c: int) -> int:
    if 0x30 <= c <= 0x39:
        return c - 0x30
    if 0x41 <= c <= 0x46:
        return c - 0x41 + 10
    return 0


def _strtoul(text: str, base: int) -> int:
    """Parse leading digits like strtoul; 0 when there are none."""
    if base == 16:
        match = re.match(r"\s*\+?(?:0[xX])?([0-9a-fA-F]*)", text)
    else:
        match = re.match(r"\s*\+?([0-9]*)", text)
    digits = match.group(1) if match else ""
    return int(digits, base) if digits else 0


def _utf8(code: int) -> bytes:
    if code < 0x80:
        out = (code,)
    elif code < 0x800:
        out = (code >> 6 | 0xC0, code & 0x3F | 0x80)
    elif code < 0x10000:
        out = (code >> 12 | 0xE0, code >> 6 & 0x3F | 0x80, code & 0x3F | 0x80)
    else:
        out = (
            code >> 18 | 0xF0,
            code >> 12 & 0x3F | 0x80,
            code >> 6 & 0x3F | 0x80,
            code & 0x3F | 0x80,
        )
    return bytes(b & 0xFF for b in out)


def _to_bytes(text) -> bytes:
    if text is None:
        return b""
    data = text.encode("utf-8") if isinstance(text, str) else bytes(text)
    return data.split(b"\0", 1)[0]


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _collect(pieces: Iterable[bytes], limit: int | None = None) -> bytes:
    """Join output pieces, stopping once ``limit`` bytes are reached; cut at NUL."""
    out = bytearray()
    for piece in pieces:
        out += piece
        if limit is not None and len(out) >= limit:
            break
    return bytes(out).split(b"\0", 1)[0]


def _read_code(units, i: int) -> tuple[str, int]:
    """Read code units up to ';' (consumed) starting at ``i``."""
    start = i
    while i < len(units) and units[i] != _SEMI:
        i += 1
    code = "".join(chr(u) for u in units[start:i])
    return code, i + 1


# --- piece generators -------------------------------------------------------
def _esc_pieces(data: bytes, safe: bool) -> Iterator[bytes]:
    prefix = b"%%" if safe else b"%"
    for c in data:
        if _is_alnum(c):
            yield bytes((c,))
        else:
            yield prefix + b"%02X" % c


def _html_pieces(data: bytes) -> Iterator[bytes]:
    for c in data:
        yield bytes((c,)) if _is_alnum(c) else b"&#x%02X;" % c


def _meta_pieces(data: bytes, safe: bool) -> Iterator[bytes]:
    for c in data:
        if c == _PERCENT:
            yield b"%%" if safe else b"%"
        elif c == _SEMI:
            yield b":"
        else:
            yield bytes((c,))


def _unesc_pieces(data: bytes) -> Iterator[bytes]:
    i, n = 0, len(data)
    while i < n:
        c = data[i]
        i += 1
        if c == _PLUS:
            c = 0x20
        elif c == _PERCENT:
            if i < n and data[i] == _PERCENT:
                i += 1
            hi = data[i] if i < n else 0
            lo = data[i + 1] if i + 1 < n else 0
            hi = ord(_ascii_upper(chr(hi)))
            lo = ord(_ascii_upper(chr(lo)))
            c = ((_nibble(hi) << 4) | _nibble(lo)) & 0xFF
            i += 2
        yield bytes((c,))


def _unhtml_pieces(data: bytes) -> Iterator[bytes]:
    i, n = 0, len(data)
    while i < n:
        c = data[i]
        i += 1
        if c == _AMP and i < n and data[i] == _HASH:
            i += 1
            marker = data[i] if i < n else 0
            i += 1
            code, i = _read_code(data, i)
            c = _strtoul(code, 16 if marker == ord("x") else 10) & 0xFF
        yield bytes((c,))


def _html_unicode_pieces(units: list[int]) -> Iterator[bytes]:
    i, n = 0, len(units)
    while i < n:
        c = units[i]
        i += 1
        if c == _AMP and i < n and units[i] == _HASH:
            i += 1
            marker = units[i] if i < n else 0
            i += 1
            code, i = _read_code(units, i)
            yield _utf8(_strtoul(code, 16 if marker == ord("x") else 10))
        else:
            yield _utf8(c)


def _is_sjis(a: int, b: int) -> bool:
    return (0x81 <= a <= 0x9F or 0xE0 <= a <= 0xFC) and (
        0x40 <= b <= 0x7E or 0x80 <= b <= 0xFC
    )


def _is_euc(a: int) -> bool:
    return 0xA1 <= a <= 0xFE


def _double_byte(pair: bytes, codec: str) -> bytes:
    decoded = pair.decode(codec, errors="replace")
    return _utf8(ord(decoded[0])) if decoded else _utf8(0xFFFD)


def _unknown_unicode_pieces(data: bytes, safe: bool) -> Iterator[bytes]:
    i, n = 0, len(data)
    while i < n:
        c = data[i]
        i += 1
        d = data[i] if i < n else 0
        if (c & 0xC0) == 0xC0 and (d & 0x80) == 0x80:
            num = 0
            for bit in range(6):
                if c & (0x80 >> bit):
                    num += 1
                else:
                    break
            end = min(i + num - 1, n)
            yield bytes((c,)) + data[i:end]
            i = end
        elif _is_sjis(c, d):
            yield _double_byte(bytes((c, d)), "shift_jis")
            i += 1
        elif _is_euc(c) and _is_euc(d):
            yield _double_byte(bytes((c, d)), "euc_jp")
            i += 1
        elif c == _AMP and d == _HASH:
            i += 1
            code, i = _read_code(data, i)
            yield _utf8(_strtoul(code, 10))
        elif _is_alnum(c):
            yield bytes((c,))
        elif safe and c in _HTML_SPECIAL:
            yield _HTML_SPECIAL[c]
        else:
            yield _utf8(c)


def _units(text) -> list[int]:
    if text is None:
        return []
    if isinstance(text, str):
        return [ord(ch) for ch in text.split("\0", 1)[0]]
    return list(bytes(text).split(b"\0", 1)[0])


# --- public conversions -----------------------------------------------------
def _esc(text, safe, limit=None) -> str:
    return _decode(_collect(_esc_pieces(_to_bytes(text), safe), limit))


def _html(text, limit=None) -> str:
    return _decode(_collect(_html_pieces(_to_bytes(text)), limit))


def _meta(text, safe, limit=None) -> str:
    return _decode(_collect(_meta_pieces(_to_bytes(text), safe), limit))


def _unesc(text, limit=None) -> str:
    return _decode(_collect(_unesc_pieces(_to_bytes(text)), limit))


def _unhtml(text, limit=None) -> str:
    return _decode(_collect(_unhtml_pieces(_to_bytes(text)), limit))


def _html_unicode(text, limit=None) -> str:
    data = _collect(_html_unicode_pieces(_units(text)), limit)
    return data.decode("utf-8", errors="replace")


def _unknown_unicode(text, safe, limit=None) -> str:
    data = _collect(_unknown_unicode_pieces(_to_bytes(text), safe), limit)
    return data.decode("utf-8", errors="replace")


def ascii_to_esc(text, safe=False) -> str:
    """Percent-escape everything but letters and digits ('%%' when safe)."""
    return _esc(text, safe)


def ascii_to_html(text) -> str:
    """Escape everything but letters and digits as hex character references."""
    return _html(text)


def ascii_to_meta(text, safe=False) -> str:
    """Make text fit for stream metadata: ';' becomes ':' and '%' doubles when safe."""
    return _meta(text, safe)


def esc_to_ascii(text) -> str:
    """Undo percent-escaping; '+' becomes a space and '%%' counts as '%'."""
    return _unesc(text)


def html_to_ascii(text) -> str:
    """Replace '&#x..;' references by the byte they name.

    The character after '&#' is taken as the base marker ('x' for hex).
    """
    return _unhtml(text)


def html_to_unicode(text) -> str:
    """Replace '&#x..;' references by the code point they name."""
    return _html_unicode(text)


def base64_to_ascii(text) -> str:
    """Decode whole base64 words, skipping invalid ones."""
    data = decode_base64_words(_to_bytes(text)).split(b"\0", 1)[0]
    return _decode(data)


def unknown_to_unicode(text, safe=False) -> str:
    """Turn text in UTF-8, Shift_JIS, EUC-JP or Latin-1 into Unicode.

    Decimal '&#nn;' references are resolved; with ``safe`` the HTML
    special characters are escaped.
    """
    return _unknown_unicode(text, safe)


# --- plain string helpers ---------------------------------------------------
def trim(text: str) -> str:
    """Strip spaces and tabs from both ends."""
    return text.strip(" \t")


def find_insensitive(haystack: str, needle: str) -> int:
    """Index of ``needle`` in ``haystack`` ignoring ASCII case, or -1.

    An empty needle is never found.
    """
    if not needle:
        return -1
    return _ascii_upper(haystack).find(_ascii_upper(needle))


def format_stopwatch(seconds: int) -> str:
    """Describe a duration by its two largest units."""
    sec = seconds % 60
    minutes = (seconds // 60) % 60
    hours = (seconds // 3600) % 24
    days = seconds // 86400
    if days:
        return f"{days} day, {hours} hour"
    if hours:
        return f"{hours} hour, {minutes} min"
    if minutes:
        return f"{minutes} min, {sec} sec"
    if sec:
        return f"{sec} sec"
    return "-"


def parse_quoted(text: str) -> str:
    """Return the first word of ``text``, or the quoted phrase if it is quoted."""
    out: list[str] = []
    quote = False
    for ch in text.split("\0", 1)[0]:
        if ch == '"':
            if quote:
                break
            quote = True
            continue
        if ch == " " and not quote:
            if out:
                break
            continue
        out.append(ch)
    return "".join(out)


def get_cgi_arg(query, arg: str):
    """The part of ``query`` after the first ``arg``, or None."""
    if query is None:
        return None
    index = query.find(arg)
    if index < 0:
        return None
    return query[index + len(arg):]


def cmp_cgi_arg(query, arg: str, value: str) -> bool:
    """True if ``query`` starts with ``arg`` (any case) followed by ``value``."""
    if not query or not value:
        return False
    head = query[:len(arg)]
    if len(head) != len(arg) or _ascii_upper(head) != _ascii_upper(arg):
        return False
    return query[len(arg):].startswith(value)


def has_cgi_arg(query, arg: str) -> bool:
    """True if ``arg`` occurs in ``query``."""
    if query is None:
        return False
    return arg in query


# --- typed string -----------------------------------------------------------
class TypedString:
    """A bounded text value that remembers how it is encoded."""

    MAX_LEN = 256
    _LIMIT = MAX_LEN - 10

    def __init__(self, text=None, kind: StringType = StringType.ASCII):
        self.data = ""
        self.kind = StringType.UNKNOWN
        if text is not None:
            self.set(text, kind)

    def __str__(self) -> str:
        return self.data

    def __repr__(self) -> str:
        return f"TypedString({self.data!r}, {self.kind.name})"

    def __eq__(self, other) -> bool:
        if isinstance(other, TypedString):
            return self.data == other.data
        if isinstance(other, str):
            return self.data == other
        return NotImplemented

    __hash__ = None

    @staticmethod
    def _plain(text) -> str:
        if isinstance(text, (bytes, bytearray)):
            return _decode(bytes(text).split(b"\0", 1)[0])
        return str(text).split("\0", 1)[0]

    def set(self, text, kind: StringType = StringType.ASCII) -> None:
        self.data = self._plain(text)[: self.MAX_LEN - 1]
        self.kind = kind

    def set_from_string(self, text, kind: StringType = StringType.ASCII) -> None:
        """Set from the first word or quoted phrase of ``text``."""
        self.data = parse_quoted(self._plain(text))[: self.MAX_LEN - 1]
        self.kind = kind

    def set_from_word(self, text) -> None:
        """Set from ``text`` up to its first space; the kind is kept."""
        self.data = self._plain(text)[: self.MAX_LEN - 1].split(" ", 1)[0]

    def set_unquote(self, text, kind: StringType = StringType.ASCII) -> None:
        """Set from ``text`` without its first and last characters."""
        text = self._plain(text)
        if len(text) > 2:
            end = min(len(text), self.MAX_LEN)
            self.data = text[1:end - 1]
        else:
            self.clear()
        self.kind = kind

    def set_from_stopwatch(self, seconds: int) -> None:
        self.data = format_stopwatch(seconds)
        self.kind = StringType.ASCII

    def set_from_time(self, timestamp: int) -> None:
        """Set to the local ctime form of ``timestamp``, newline included."""
        try:
            self.data = time.ctime(timestamp) + "\n"
        except (OverflowError, OSError, ValueError):
            self.data = "-"
        self.kind = StringType.ASCII

    def clear(self) -> None:
        self.data = ""
        self.kind = StringType.UNKNOWN

    def append(self, text) -> None:
        """Append ``text`` unless the result would be too long."""
        text = self._plain(text)
        if len(text) + len(self.data) < self.MAX_LEN - 1:
            self.data += text

    def prepend(self, text) -> None:
        """Put ``text`` in front; if both do not fit, only ``text`` is kept."""
        head = TypedString(text)
        head.append(self.data)
        self.data = head.data

    def starts_with(self, prefix: str) -> bool:
        return self.data.startswith(str(prefix))

    def contains(self, needle) -> bool:
        """Case-insensitive substring test."""
        return find_insensitive(self.data, str(needle)) >= 0

    def is_empty(self) -> bool:
        return not self.data

    def is_valid_url(self) -> bool:
        head = _ascii_upper(self.data[:7])
        return head in ("HTTP://", "MAILTO:")

    def convert_to(self, kind: StringType) -> None:
        """Re-encode the text as ``kind``, going through plain ASCII."""
        if kind == self.kind:
            return
        limit = self._LIMIT
        if self.kind == StringType.HTML:
            plain = _unhtml(self.data, limit)
        elif self.kind in (StringType.ESC, StringType.ESCSAFE):
            plain = _unesc(self.data, limit)
        elif self.kind == StringType.BASE64:
            plain = base64_to_ascii(self.data)
        else:
            plain = self.data

        converters: dict[StringType, Callable[[str], str]] = {
            StringType.UNKNOWN: lambda t: t,
            StringType.ASCII: lambda t: t,
            StringType.UNICODE: lambda t: _unknown_unicode(t, False, limit),
            StringType.UNICODESAFE: lambda t: _unknown_unicode(t, True, limit),
            StringType.HTML: lambda t: _html(t, limit),
            StringType.ESC: lambda t: _esc(t, False, limit),
            StringType.ESCSAFE: lambda t: _esc(t, True, limit),
            StringType.META: lambda t: _meta(t, False, limit),
            StringType.METASAFE: lambda t: _meta(t, True, limit),
        }
        convert = converters.get(kind)
        if convert is not None:
            self.data = convert(plain)[: self.MAX_LEN - 1]
        self.kind = kind