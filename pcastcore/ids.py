"""Four-byte protocol identifiers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ID4:
    """A four-byte tag such as ``pcp\\n`` or ``chan``, kept in wire order."""

    raw: bytes = bytes(4)

    def __post_init__(self) -> None:
        if not isinstance(self.raw, (bytes, bytearray)) or len(self.raw) != 4:
            raise ValueError("ID4 needs exactly four bytes")
        object.__setattr__(self, "raw", bytes(self.raw))

    @classmethod
    def from_text(cls, text) -> "ID4":
        """Build an ID from up to four characters, stopping at a NUL."""
        if text is None:
            return cls()
        if isinstance(text, str):
            text = text.encode("latin-1")
        head = bytes(text[:4]).split(b"\0", 1)[0]
        return cls(head.ljust(4, b"\0"))

    @classmethod
    def from_bytes(cls, data) -> "ID4":
        """Build an ID from exactly four raw bytes."""
        return cls(bytes(data))

    def to_bytes(self) -> bytes:
        return self.raw

    def is_set(self) -> bool:
        return any(self.raw)

    @property
    def value(self) -> int:
        """The tag read as a little-endian signed integer."""
        return int.from_bytes(self.raw, "little", signed=True)

    def __str__(self) -> str:
        return self.raw.split(b"\0", 1)[0].decode("latin-1")