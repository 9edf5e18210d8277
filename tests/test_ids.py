import pytest

from pcastcore.ids import ID4


def test_from_text_keeps_wire_order():
    assert ID4.from_text("pcp\n").to_bytes() == b"pcp\n"


def test_short_text_is_zero_padded():
    assert ID4.from_text("ab").to_bytes() == b"ab\x00\x00"


def test_text_longer_than_four_is_cut():
    assert str(ID4.from_text("channel")) == "chan"


def test_text_stops_at_nul():
    assert str(ID4.from_text("a\0bc")) == "a"


def test_str_round_trip():
    assert str(ID4.from_text("host")) == "host"


def test_equality_between_constructors():
    assert ID4.from_text("host") == ID4.from_bytes(b"host")


def test_is_set():
    assert not ID4().is_set()
    assert not ID4.from_text(None).is_set()
    assert ID4.from_text("x").is_set()


def test_wrong_length_rejected():
    with pytest.raises(ValueError):
        ID4.from_bytes(b"abc")


def test_value_is_little_endian():
    assert ID4.from_bytes(b"\x01\x00\x00\x00").value == 1
    assert ID4().value == 0