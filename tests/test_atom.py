import struct

import pytest

from pcastcore.atom import AtomStream
from pcastcore.ids import ID4
from pcastcore.streams import MemoryStream, StreamError


def _written(ms):
    return ms.getvalue()[: ms.position()]


def _reader(data):
    return AtomStream(MemoryStream(data))


def test_int_atom_wire_format():
    ms = MemoryStream(64)
    AtomStream(ms).write_int(ID4.from_text("test"), 7)
    assert _written(ms) == b"test" + struct.pack("<ii", 4, 7)


def test_int_atom_round_trip():
    ms = MemoryStream(64)
    AtomStream(ms).write_int(ID4.from_text("ver "), 1218)
    atoms = _reader(_written(ms))
    assert atoms.read() == (ID4.from_text("ver "), 0, 4)
    assert atoms.read_int() == 1218
    assert atoms.eof()


def test_short_char_id4_round_trip():
    ms = MemoryStream(64)
    writer = AtomStream(ms)
    writer.write_short(ID4.from_text("port"), 7144)
    writer.write_char(ID4.from_text("flg1"), 5)
    writer.write_id4(ID4.from_text("type"), ID4.from_text("mp3"))
    atoms = _reader(_written(ms))
    atoms.read()
    assert atoms.read_short() == 7144
    atoms.read()
    assert atoms.read_char() == 5
    atoms.read()
    assert atoms.read_id4() == ID4.from_text("mp3")


def test_wrong_size_read_raises():
    ms = MemoryStream(64)
    AtomStream(ms).write_short(ID4.from_text("port"), 1)
    atoms = _reader(_written(ms))
    atoms.read()
    with pytest.raises(StreamError):
        atoms.read_int()


def test_parent_header_reports_children():
    ms = MemoryStream(64)
    AtomStream(ms).write_parent(ID4.from_text("host"), 3)
    assert _reader(_written(ms)).read() == (ID4.from_text("host"), 3, 0)


def test_string_round_trip():
    ms = MemoryStream(64)
    AtomStream(ms).write_string(ID4.from_text("name"), "hello")
    atoms = _reader(_written(ms))
    _, _, length = atoms.read()
    assert length == len("hello") + 1
    assert atoms.read_string(100, length) == "hello"


def test_string_exact_size():
    ms = MemoryStream(64)
    AtomStream(ms).write_string(ID4.from_text("name"), "hello")
    atoms = _reader(_written(ms))
    _, _, length = atoms.read()
    assert atoms.read_string(length, length) == "hello"


def test_string_longer_than_limit_raises():
    ms = MemoryStream(64)
    AtomStream(ms).write_string(ID4.from_text("name"), "hello")
    atoms = _reader(_written(ms))
    _, _, length = atoms.read()
    with pytest.raises(StreamError):
        atoms.read_string(length - 2, length)


def test_read_bytes_max_within_limit():
    ms = MemoryStream(64)
    AtomStream(ms).write_bytes(ID4.from_text("data"), b"\x01\x02\x03")
    atoms = _reader(_written(ms))
    _, _, length = atoms.read()
    assert atoms.read_bytes_max(10, length) == b"\x01\x02\x03"


def test_skip_nested_atoms():
    ms = MemoryStream(256)
    writer = AtomStream(ms)
    writer.write_parent(ID4.from_text("host"), 2)
    writer.write_int(ID4.from_text("ip"), 5)
    writer.write_string(ID4.from_text("name"), "relay")
    writer.write_int(ID4.from_text("tail"), 9)
    atoms = _reader(_written(ms))
    _, children, length = atoms.read()
    atoms.skip(children, length)
    assert atoms.read()[0] == ID4.from_text("tail")
    assert atoms.read_int() == 9


def test_write_atoms_copies_tree():
    src = MemoryStream(256)
    writer = AtomStream(src)
    writer.write_parent(ID4.from_text("host"), 2)
    writer.write_int(ID4.from_text("ip"), 5)
    writer.write_string(ID4.from_text("name"), "relay")
    original = _written(src)

    source = MemoryStream(original)
    id4, children, length = AtomStream(source).read()
    dest = MemoryStream(256)
    total = AtomStream(dest).write_atoms(id4, source, children, length)
    assert _written(dest) == original
    assert total == len(original)


def test_write_stream_returns_written_size():
    dest = MemoryStream(64)
    total = AtomStream(dest).write_stream(ID4.from_text("data"), MemoryStream(b"abcde"), 5)
    assert total == len(_written(dest))
    assert _written(dest).endswith(b"abcde")