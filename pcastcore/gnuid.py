"""Sixteen-byte network identifiers and a time-stamped list of recently seen ones."""

from __future__ import annotations

import random
import re
import time
from typing import Callable

_HEX_LEADING = re.compile(r"\s*([+-]?)([0-9a-fA-F]*)")
_NEVER = 0xFFFFFFFF


def _default_clock() -> int:
    return int(time.time())


def _salt_bytes(salt) -> bytes | None:
    if salt is None:
        return None
    data = salt.encode("utf-8") if isinstance(salt, str) else bytes(salt)
    return data.split(b"\0", 1)[0]


def _hex_pair(pair: str) -> int:
    """Parse a two-character hex pair the lenient way: leading digits only."""
    match = _HEX_LEADING.match(pair)
    sign, digits = match.group(1), match.group(2)
    value = int(digits, 16) if digits else 0
    if sign == "-":
        value = -value
    return value & 0xFF


class GnuID:
    """A sixteen-byte identifier with the time it was last stored."""

    SIZE = 16

    def __init__(self, data=None, store_time: int = 0):
        data = bytes(self.SIZE) if data is None else bytes(data)
        if len(data) != self.SIZE:
            raise ValueError("GnuID needs exactly sixteen bytes")
        self.id = bytearray(data)
        self.store_time = store_time

    def __eq__(self, other) -> bool:
        if isinstance(other, GnuID):
            return self.id == other.id
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        return f"GnuID({str(self)!r})"

    def __str__(self) -> str:
        return "".join(f"{b:02X}" for b in self.id)

    def to_bytes(self) -> bytes:
        return bytes(self.id)

    def copy(self) -> "GnuID":
        return GnuID(self.id, self.store_time)

    def clear(self) -> None:
        self.id[:] = bytes(self.SIZE)
        self.store_time = 0

    def is_set(self) -> bool:
        return any(self.id)

    def flags(self) -> int:
        """The first byte, which carries the identifier's flags."""
        return self.id[0]

    def encode(self, ip=None, salt1=None, salt2=None, salt3: int = 0) -> None:
        """Scramble the identifier in place with an IP address and salts.

        Applying the same encoding twice gives back the original bytes.
        """
        s1_data = _salt_bytes(salt1)
        s2_data = _salt_bytes(salt2)
        s1 = s2 = 0
        for i, value in enumerate(self.id):
            if ip is not None:
                value ^= (ip >> (8 * (i & 3))) & 0xFF
            if s1_data is not None:
                if s1 < len(s1_data):
                    value ^= s1_data[s1]
                    s1 += 1
                else:
                    s1 = 0
            if s2_data is not None:
                if s2 < len(s2_data):
                    value ^= s2_data[s2]
                    s2 += 1
                else:
                    s2 = 0
            value ^= salt3 & 0xFF
            self.id[i] = value & 0xFF

    @classmethod
    def from_string(cls, text: str) -> "GnuID":
        """Parse 32 hex characters; a shorter string gives a cleared ID."""
        text = text.split("\0", 1)[0]
        if len(text) < 2 * cls.SIZE:
            return cls()
        return cls(bytes(_hex_pair(text[i * 2:i * 2 + 2]) for i in range(cls.SIZE)))

    @classmethod
    def generate(cls, flags: int = 0, rng: Callable[[], int] | None = None) -> "GnuID":
        """A random identifier whose first byte is ``flags``."""
        rng = rng or (lambda: random.getrandbits(32))
        data = bytearray(rng() & 0xFF for _ in range(cls.SIZE))
        data[0] = flags & 0xFF
        return cls(data)


class GnuIDList:
    """A fixed number of identifier slots; new entries replace the oldest."""

    def __init__(self, max_ids: int, *, clock: Callable[[], int] | None = None):
        self.ids = [GnuID() for _ in range(max_ids)]
        self._clock = clock or _default_clock

    def __len__(self) -> int:
        return len(self.ids)

    def contains(self, gid: GnuID) -> bool:
        return any(slot == gid for slot in self.ids)

    def num_used(self) -> int:
        return sum(1 for slot in self.ids if slot.store_time)

    def oldest(self) -> int:
        """Earliest store time among used slots, or 0xFFFFFFFF if none is used."""
        return min((slot.store_time for slot in self.ids if slot.store_time), default=_NEVER)

    def add(self, gid: GnuID) -> None:
        """Refresh ``gid`` if present, else store it in the oldest slot."""
        min_time = _NEVER
        min_index = 0
        for index, slot in enumerate(self.ids):
            if slot == gid:
                slot.store_time = self._clock()
                return
            if slot.store_time <= min_time:
                min_time = slot.store_time
                min_index = index
        entry = gid.copy()
        entry.store_time = self._clock()
        self.ids[min_index] = entry

    def clear(self) -> None:
        for slot in self.ids:
            slot.clear()