"""Reading and writing of nested tagged atoms."""

from __future__ import annotations

from pcastcore.ids import ID4
from pcastcore.streams import Stream, StreamError

_PARENT_FLAG = 0x80000000


class AtomStream:
    """Atom reader/writer over a stream.

    Each atom is a four-byte ID followed by a length word; a set top bit
    marks a parent atom whose low bits give the number of children.
    """

    def __init__(self, io: Stream):
        self.io = io
        self.num_children = 0
        self.num_data = 0

    def check_data(self, length: int) -> None:
        if self.num_data != length:
            raise StreamError("Bad atom data")

    # --- writing ----------------------------------------------------------
    def write_parent(self, id4: ID4, num_children: int) -> None:
        self.io.write_id4(id4)
        self.io.write_int(num_children | _PARENT_FLAG)

    def write_int(self, id4: ID4, value: int) -> None:
        self.io.write_id4(id4)
        self.io.write_int(4)
        self.io.write_int(value)

    def write_id4(self, id4: ID4, value: ID4) -> None:
        self.io.write_id4(id4)
        self.io.write_int(4)
        self.io.write_id4(value)

    def write_short(self, id4: ID4, value: int) -> None:
        self.io.write_id4(id4)
        self.io.write_int(2)
        self.io.write_short(value)

    def write_char(self, id4: ID4, value) -> None:
        self.io.write_id4(id4)
        self.io.write_int(1)
        self.io.write_char(value)

    def write_bytes(self, id4: ID4, data) -> None:
        data = bytes(data)
        self.io.write_id4(id4)
        self.io.write_int(len(data))
        self.io.write(data)

    def write_stream(self, id4: ID4, source: Stream, length: int) -> int:
        """Write an atom whose data is copied from ``source``; return bytes written."""
        self.io.write_id4(id4)
        self.io.write_int(length)
        source.write_to(self.io, length)
        return 8 + length

    def write_string(self, id4: ID4, text) -> None:
        """Write a NUL-terminated string atom."""
        if isinstance(text, str):
            text = text.encode("utf-8")
        self.write_bytes(id4, bytes(text) + b"\0")

    def write_atoms(self, id4: ID4, source: Stream, count: int, data_len: int) -> int:
        """Copy an atom (and any children) from ``source``; return bytes written."""
        if not count:
            return self.write_stream(id4, source, data_len)
        self.write_parent(id4, count)
        total = 8
        for _ in range(count):
            child_id, child_count, child_len = AtomStream(source).read()
            total += self.write_atoms(child_id, source, child_count, child_len)
        return total

    # --- reading ----------------------------------------------------------
    def read(self) -> tuple[ID4, int, int]:
        """Read an atom header, returning ``(id4, num_children, data_len)``."""
        id4 = self.io.read_id4()
        word = self.io.read_int() & 0xFFFFFFFF
        if word & _PARENT_FLAG:
            self.num_children, self.num_data = word & 0x7FFFFFFF, 0
        else:
            self.num_children, self.num_data = 0, word
        return id4, self.num_children, self.num_data

    def skip(self, num_children: int, data_len: int) -> None:
        """Skip the data and all children of the atom just read."""
        if data_len:
            self.io.skip(data_len)
        for _ in range(num_children):
            _, child_count, child_len = self.read()
            self.skip(child_count, child_len)

    def read_int(self) -> int:
        self.check_data(4)
        return self.io.read_int()

    def read_id4(self) -> ID4:
        self.check_data(4)
        return self.io.read_id4()

    def read_short(self) -> int:
        self.check_data(2)
        return self.io.read_short()

    def read_char(self) -> int:
        self.check_data(1)
        return self.io.read_char()

    def read_bytes(self, length: int) -> bytes:
        self.check_data(length)
        return self.io.read(length)

    def read_bytes_max(self, max_len: int, data_len: int) -> bytes:
        """Read the atom's data into at most ``max_len`` bytes.

        Raises StreamError when the atom holds more than ``max_len`` bytes.
        """
        self.check_data(data_len)
        if max_len > data_len:
            return self.read_bytes(data_len)
        data = self.read_bytes(max_len)
        self.io.skip(data_len - max_len)
        return data

    def read_string(self, max_len: int, data_len: int) -> str:
        """Read a NUL-terminated string atom, keeping at most ``max_len - 1`` bytes."""
        self.check_data(data_len)
        data = self.read_bytes_max(max_len, data_len)
        text = data[: max(max_len - 1, 0)].split(b"\0", 1)[0]
        return text.decode("utf-8", errors="replace")

    def eof(self) -> bool:
        return self.io.eof()