"""Byte streams with the binary and text helpers used by the network code."""

from __future__ import annotations

import struct
import time
from abc import ABC, abstractmethod

from pcastcore.b64 import base64_word_to_bytes, decode_base64_words
from pcastcore.ids import ID4

_CHUNK = 4096


class StreamError(Exception):
    """Raised when a stream operation fails."""


class StreamTimeout(StreamError):
    """Raised when a stream operation times out."""


def _default_clock() -> int:
    return int(time.time())


class Stream(ABC):
    """Base class: subclasses supply ``read`` and ``write``."""

    def __init__(self, *, clock=None):
        self.write_crlf = True
        self.poll_read = False
        self.total_bytes_in = 0
        self.total_bytes_out = 0
        self.last_bytes_in = 0
        self.last_bytes_out = 0
        self.bytes_in_per_sec = 0
        self.bytes_out_per_sec = 0
        self.last_update = 0
        self.bits_buffer = 0
        self.bits_pos = 0
        self._clock = clock or _default_clock

    # --- primitives -------------------------------------------------------
    @abstractmethod
    def read(self, size: int) -> bytes:
        """Read ``size`` bytes."""

    @abstractmethod
    def write(self, data) -> None:
        """Write all of ``data``."""

    def read_upto(self, size: int) -> bytes:
        return b""

    def eof(self) -> bool:
        raise StreamError("Stream can`t eof")

    def rewind(self) -> None:
        raise StreamError("Stream can`t rewind")

    def seek_to(self, pos: int) -> None:
        raise StreamError("Stream can`t seek")

    def position(self) -> int:
        return 0

    def close(self) -> None:
        pass

    def set_read_timeout(self, ms: int) -> None:
        pass

    def set_write_timeout(self, ms: int) -> None:
        pass

    def set_poll_read(self, flag: bool) -> None:
        """Record whether reads should poll rather than block."""
        self.poll_read = bool(flag)

    def read_ready(self) -> bool:
        return True

    def num_pending(self) -> int:
        return 0

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _read_fixed(self, size: int) -> bytes:
        return bytes(self.read(size)).ljust(size, b"\0")

    def skip(self, length: int) -> None:
        while length:
            size = min(_CHUNK, length)
            self.read(size)
            length -= size

    def write_to(self, out: "Stream", length: int) -> None:
        """Copy ``length`` bytes from this stream to ``out``."""
        while length:
            size = min(_CHUNK, length)
            out.write(self._read_fixed(size))
            length -= size

    # --- binary -----------------------------------------------------------
    def read_char(self) -> int:
        """Read one signed byte."""
        return struct.unpack("<b", self._read_fixed(1))[0]

    def read_short(self) -> int:
        return struct.unpack("<h", self._read_fixed(2))[0]

    def read_long(self) -> int:
        return struct.unpack("<i", self._read_fixed(4))[0]

    def read_int(self) -> int:
        return self.read_long()

    def read_int24(self) -> int:
        return int.from_bytes(self._read_fixed(3), "little")

    def read_id4(self) -> ID4:
        return ID4.from_bytes(self._read_fixed(4))

    def read_tag(self) -> int:
        """Read four bytes as a big-endian tag value."""
        return struct.unpack(">I", self._read_fixed(4))[0]

    def read_string(self, max_len: int) -> bytes:
        """Read up to ``max_len`` bytes, stopping after a NUL (not returned)."""
        out = bytearray()
        for _ in range(max_len):
            char = self._read_fixed(1)
            if char == b"\0":
                break
            out += char
        return bytes(out)

    def write_id4(self, id4: ID4) -> None:
        self.write(id4.to_bytes())

    def write_char(self, value) -> None:
        if isinstance(value, (bytes, bytearray, str)):
            value = ord(value)
        self.write(bytes((value & 0xFF,)))

    def write_short(self, value: int) -> None:
        self.write(struct.pack("<H", value & 0xFFFF))

    def write_long(self, value: int) -> None:
        self.write(struct.pack("<I", value & 0xFFFFFFFF))

    def write_int(self, value: int) -> None:
        self.write_long(value)

    def write_tag(self, value) -> None:
        """Write a tag given as four bytes/characters or as a big-endian integer."""
        if isinstance(value, str):
            value = value.encode("latin-1")
        if isinstance(value, (bytes, bytearray)):
            self.write(bytes(value[:4]).ljust(4, b"\0"))
        else:
            self.write(struct.pack(">I", value & 0xFFFFFFFF))

    def write_utf8(self, code: int) -> int:
        """Write a code point as UTF-8 and return the number of bytes written."""
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
        self.write(bytes(b & 0xFF for b in out))
        return len(out)

    # --- text -------------------------------------------------------------
    def read_line(self, max_len: int) -> bytes:
        """Read a line of at most ``max_len - 2`` bytes, dropping CR and LF."""
        out = bytearray()
        for _ in range(max(max_len - 2, 0)):
            char = self._read_fixed(1)
            if char == b"\n":
                break
            if char == b"\r":
                continue
            out += char
        return bytes(out)

    def read_word(self, max_len: int) -> bytes:
        """Read one whitespace-delimited word of at most ``max_len - 1`` bytes."""
        out = bytearray()
        while not self.eof():
            char = self._read_fixed(1)
            if char in (b" ", b"\t", b"\r", b"\n"):
                if out:
                    break
                continue
            if len(out) >= max_len - 1:
                break
            out += char
        return bytes(out)

    def read_base64(self, max_len: int) -> bytes:
        """Decode base64 words until an invalid word or about ``max_len`` bytes."""
        out = bytearray()
        while len(out) < max_len - 4:
            chunk = base64_word_to_bytes(self._read_fixed(4))
            if not chunk:
                break
            out += chunk
        return bytes(out)

    def write_string(self, text) -> None:
        if isinstance(text, str):
            text = text.encode("utf-8")
        self.write(text)

    def write_line(self, text) -> None:
        self.write_string(text)
        self.write(b"\r\n" if self.write_crlf else b"\n")

    def read_bits(self, count: int) -> int:
        """Read ``count`` bits, most significant first."""
        value = 0
        while count:
            if not self.bits_pos:
                self.bits_buffer = self._read_fixed(1)[0]
            count -= 1
            if self.bits_buffer & (1 << (7 - self.bits_pos)):
                value |= 1 << count
            self.bits_pos = (self.bits_pos + 1) & 7
        return value

    def update_totals(self, bytes_in: int, bytes_out: int) -> None:
        """Add to the byte counters and refresh the rates every five seconds."""
        self.total_bytes_in += bytes_in
        self.total_bytes_out += bytes_out
        now = self._clock()
        elapsed = now - self.last_update
        if elapsed >= 5:
            self.bytes_in_per_sec = (self.total_bytes_in - self.last_bytes_in) // elapsed
            self.bytes_out_per_sec = (self.total_bytes_out - self.last_bytes_out) // elapsed
            self.last_bytes_in = self.total_bytes_in
            self.last_bytes_out = self.total_bytes_out
            self.last_update = now


class FileStream(Stream):
    """A stream over a file on disk."""

    def __init__(self, *, clock=None):
        super().__init__(clock=clock)
        self.file = None
        self._hit_eof = False

    def _open(self, path, mode: str) -> None:
        self.close()
        try:
            self.file = open(path, mode)
        except OSError as exc:
            raise StreamError("Unable to open file") from exc
        self._hit_eof = False

    def open_read_only(self, path) -> None:
        self._open(path, "rb")

    def open_write_replace(self, path) -> None:
        self._open(path, "wb")

    def open_write_append(self, path) -> None:
        self._open(path, "ab")

    def is_open(self) -> bool:
        return self.file is not None

    def close(self) -> None:
        if self.file is not None:
            self.file.close()
            self.file = None

    def rewind(self) -> None:
        if self.file is not None:
            self.file.seek(0)
            self._hit_eof = False

    def length(self) -> int:
        if self.file is None:
            return 0
        old = self.file.tell()
        size = self.file.seek(0, 2)
        self.file.seek(old)
        return size

    def eof(self) -> bool:
        return self.file is None or self._hit_eof

    def read(self, size: int) -> bytes:
        if self.file is None:
            return b""
        if self._hit_eof:
            raise StreamError("End of file")
        data = self.file.read(size)
        if len(data) < size:
            self._hit_eof = True
        self.update_totals(len(data), 0)
        return data

    def write(self, data) -> None:
        if self.file is None:
            return
        data = bytes(data)
        self.file.write(data)
        self.update_totals(0, len(data))

    def flush(self) -> None:
        if self.file is not None:
            self.file.flush()

    def position(self) -> int:
        return self.file.tell() if self.file is not None else 0

    def seek_to(self, pos: int) -> None:
        if self.file is not None:
            self.file.seek(pos)
            self._hit_eof = False


class MemoryStream(Stream):
    """A fixed-size in-memory buffer.

    Pass an int for a zeroed buffer of that size, bytes for a copy, or a
    bytearray to work on it in place. Writes past the end raise; reads past
    the end give zero bytes and leave the position alone.
    """

    def __init__(self, data=None, *, clock=None):
        super().__init__(clock=clock)
        if data is None:
            self.buf = bytearray()
        elif isinstance(data, int):
            self.buf = bytearray(data)
        elif isinstance(data, bytearray):
            self.buf = data
        else:
            self.buf = bytearray(data)
        self.pos = 0

    def __len__(self) -> int:
        return len(self.buf)

    def read_from_file(self, file: FileStream) -> None:
        size = file.length()
        self.buf = bytearray(bytes(file.read(size)).ljust(size, b"\0"))
        self.pos = 0

    def read(self, size: int) -> bytes:
        end = self.pos + size
        if end <= len(self.buf):
            data = bytes(self.buf[self.pos:end])
            self.pos = end
            return data
        return bytes(size)

    def write(self, data) -> None:
        data = bytes(data)
        end = self.pos + len(data)
        if end > len(self.buf):
            raise StreamError("Stream - premature end of write()")
        self.buf[self.pos:end] = data
        self.pos = end

    def eof(self) -> bool:
        return self.pos >= len(self.buf)

    def rewind(self) -> None:
        self.pos = 0

    def seek_to(self, pos: int) -> None:
        self.pos = pos

    def position(self) -> int:
        return self.pos

    def convert_from_base64(self) -> None:
        """Replace the buffer with the base64 decoding of its contents."""
        self.buf = bytearray(decode_base64_words(bytes(self.buf)))

    def getvalue(self) -> bytes:
        """The whole buffer."""
        return bytes(self.buf)


class IndirectStream(Stream):
    """Forwards reads, writes, eof and close to another stream."""

    def __init__(self, stream: Stream | None = None, *, clock=None):
        super().__init__(clock=clock)
        self.stream = stream

    def read(self, size: int) -> bytes:
        return self.stream.read(size)

    def write(self, data) -> None:
        self.stream.write(data)

    def eof(self) -> bool:
        return self.stream.eof()

    def close(self) -> None:
        self.stream.close()