"""Word-at-a-time base64 decoding with the lenient rules of the wire protocol."""

from __future__ import annotations

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"


def base64_char_value(char) -> int:
    """Value of one base64 character: 0-63, -1 for '=', -2 for anything else."""
    if isinstance(char, int):
        char = chr(char)
    if len(char) != 1:
        return -2
    if char == "=":
        return -1
    index = _ALPHABET.find(char)
    return index if index >= 0 else -2


def base64_word_to_bytes(word) -> bytes:
    """Decode a four-character word into three bytes.

    Padding positions become zero bytes. An invalid word gives b"".
    """
    if len(word) < 4:
        raise ValueError("base64 word needs four characters")
    v0, v1, v2, v3 = (base64_char_value(c) for c in word[:4])
    if v0 < 0 or v1 < 0 or v2 < -1 or v3 < -1:
        return b""
    first = ((v0 << 2) | (v1 >> 4)) & 0xFF
    second = (((v1 & 0x0F) << 4) | (v2 >> 2)) & 0xFF if v2 >= 0 else 0
    third = (((v2 & 0x03) << 6) | v3) & 0xFF if v3 >= 0 else 0
    return bytes((first, second, third))


def decode_base64_words(data) -> bytes:
    """Decode every whole four-character word in ``data``; a trailing part is ignored."""
    if isinstance(data, str):
        data = data.encode("latin-1")
    data = bytes(data)
    return b"".join(
        base64_word_to_bytes(data[start:start + 4])
        for start in range(0, len(data) - 3, 4)
    )