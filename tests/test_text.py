import base64
import time

import pytest

from pcastcore.text import (
    StringType,
    TypedString,
    ascii_to_esc,
    ascii_to_html,
    ascii_to_meta,
    base64_to_ascii,
    cmp_cgi_arg,
    esc_to_ascii,
    find_insensitive,
    format_stopwatch,
    get_cgi_arg,
    has_cgi_arg,
    html_to_ascii,
    html_to_unicode,
    parse_quoted,
    trim,
    unknown_to_unicode,
)


def test_ascii_to_esc_pinned():
    assert ascii_to_esc("a b", False) == "a%20b"


def test_ascii_to_esc_keeps_alnum():
    assert ascii_to_esc("abc123XYZ", False) == "abc123XYZ"


@pytest.mark.parametrize("safe", [False, True])
@pytest.mark.parametrize("text", ["Hello World!", "a/b?c=d&e", "50% off; now"])
def test_esc_round_trip(text, safe):
    assert esc_to_ascii(ascii_to_esc(text, safe)) == text


def test_esc_safe_doubles_percent():
    plain = ascii_to_esc("a b", False)
    safe = ascii_to_esc("a b", True)
    assert safe.count("%") == 2 * plain.count("%")


def test_esc_plus_is_space():
    assert esc_to_ascii("a+b") == "a b"


def test_ascii_to_html_pinned():
    assert ascii_to_html("a b") == "a&#x20;b"


@pytest.mark.parametrize("text", ["Tom & Jerry", "<tag attr='1'>", "x.y"])
def test_html_round_trip(text):
    assert html_to_ascii(ascii_to_html(text)) == text
    assert html_to_unicode(ascii_to_html(text)) == text


def test_ascii_to_meta():
    out = ascii_to_meta("a;b", False)
    assert ";" not in out
    assert out.replace(":", ";") == "a;b"
    assert ascii_to_meta("50%", True).count("%") == 2
    assert ascii_to_meta("50%", False).count("%") == 1


def test_html_to_unicode_passes_plain_chars():
    assert html_to_unicode("é and ü") == "é and ü"


def test_html_to_unicode_hex_reference():
    assert html_to_unicode("&#x263A;") == chr(0x263A)


def test_unknown_to_unicode_utf8_passthrough():
    assert unknown_to_unicode("日本".encode("utf-8"), False) == "日本"


def test_unknown_to_unicode_shift_jis():
    assert unknown_to_unicode("日本".encode("shift_jis"), False) == "日本"


def test_unknown_to_unicode_euc():
    assert unknown_to_unicode("ア".encode("euc_jp"), False) == "ア"


def test_unknown_to_unicode_decimal_escape():
    assert unknown_to_unicode("&#9731;", False) == chr(9731)


def test_unknown_to_unicode_safe_escapes_specials():
    assert unknown_to_unicode("<b>", True) == "&lt;" + "b" + "&gt;"
    assert unknown_to_unicode("<b>", False) == "<b>"


def test_unknown_to_unicode_latin1_byte():
    assert unknown_to_unicode(bytes([0xE9, 0x20]), False) == "\xe9 "


def test_base64_to_ascii_round_trip():
    encoded = base64.b64encode(b"hello world").decode()
    assert base64_to_ascii(encoded) == "hello world"


def test_trim():
    assert trim(" \tabc def\t ") == "abc def"


def test_find_insensitive():
    assert find_insensitive("Hello World", "WORLD") == "Hello World".index("World")
    assert find_insensitive("Hello", "xyz") == -1
    assert find_insensitive("Hello", "") == -1


def test_format_stopwatch():
    assert format_stopwatch(0) == "-"
    assert format_stopwatch(59) == "59 sec"
    assert format_stopwatch(61) == "1 min, 1 sec"


def test_format_stopwatch_days_drop_minutes():
    assert "min" not in format_stopwatch(86400 + 61)
    assert format_stopwatch(86400 + 61).startswith("1 day")


def test_parse_quoted():
    assert parse_quoted('"hello world" rest') == "hello world"
    assert parse_quoted("   word rest") == "word"


def test_cgi_args():
    assert get_cgi_arg("a=1&b=2", "b=") == "2"
    assert get_cgi_arg("a=1", "z=") is None
    assert get_cgi_arg(None, "a=") is None
    assert cmp_cgi_arg("CMD=play", "cmd=", "play") is True
    assert cmp_cgi_arg("cmd=stop", "cmd=", "play") is False
    assert cmp_cgi_arg("cmd=play", "cmd=", "") is False
    assert has_cgi_arg("a=1&b=2", "b=") is True
    assert has_cgi_arg(None, "b=") is False


def test_typed_string_set_truncates():
    s = TypedString("x" * 400)
    assert len(s.data) == TypedString.MAX_LEN - 1
    assert s.kind == StringType.ASCII


def test_typed_string_default_is_unknown():
    s = TypedString()
    assert s.is_empty()
    assert s.kind == StringType.UNKNOWN


def test_typed_string_append_limit():
    s = TypedString("abc")
    s.append("def")
    assert s == "abcdef"
    s.append("y" * 300)
    assert s == "abcdef"


def test_typed_string_prepend():
    s = TypedString("world", StringType.HTML)
    s.prepend("hello ")
    assert s == "hello world"
    assert s.kind == StringType.HTML


def test_typed_string_prepend_too_long_keeps_prefix():
    s = TypedString("z" * 200)
    s.prepend("p" * 100)
    assert s == "p" * 100


def test_set_unquote_and_word():
    s = TypedString()
    s.set_unquote('"abc"')
    assert s == "abc"
    s.set_unquote("ab")
    assert s.is_empty()
    assert s.kind == StringType.ASCII
    s.set_from_word("one two")
    assert s == "one"


def test_set_from_string():
    s = TypedString()
    s.set_from_string('"my channel" extra', StringType.HTML)
    assert s == "my channel"
    assert s.kind == StringType.HTML


def test_valid_url_and_contains():
    assert TypedString("HTTP://example.com/").is_valid_url()
    assert TypedString("mailto:someone@example.com").is_valid_url()
    assert not TypedString("ftp://example.com").is_valid_url()
    s = TypedString("Some Genre")
    assert s.contains("genre")
    assert not s.contains("rock")
    assert s.starts_with("Some")


def test_set_from_time():
    s = TypedString()
    s.set_from_time(0)
    assert s.data.endswith("\n")
    assert s.data.rstrip("\n") == time.ctime(0)
    assert s.kind == StringType.ASCII


def test_convert_esc_round_trip():
    s = TypedString("Tom & Jerry")
    s.convert_to(StringType.ESC)
    assert s.kind == StringType.ESC
    assert " " not in s.data
    s.convert_to(StringType.ASCII)
    assert s == "Tom & Jerry"


def test_convert_html_round_trip():
    s = TypedString("x y")
    s.convert_to(StringType.HTML)
    assert s == ascii_to_html("x y")
    s.convert_to(StringType.ASCII)
    assert s == "x y"


def test_convert_html_is_bounded():
    s = TypedString(" " * 200)
    s.convert_to(StringType.HTML)
    assert len(s.data) <= TypedString.MAX_LEN - 1
    assert s.data.endswith(";")
    decoded = html_to_ascii(s.data)
    assert decoded == " " * len(decoded)
    assert 0 < len(decoded) < 200


def test_convert_to_base64_leaves_data():
    s = TypedString("plain")
    s.convert_to(StringType.BASE64)
    assert s == "plain"
    assert s.kind == StringType.BASE64


def test_convert_unicode_safe():
    s = TypedString("<a>")
    s.convert_to(StringType.UNICODESAFE)
    assert s == "&lt;" + "a" + "&gt;"
    assert s.kind == StringType.UNICODESAFE