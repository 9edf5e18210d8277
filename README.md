# pcastcore

Low-level pieces for a peer-to-peer audio/video streaming node, in plain
Python with no third-party dependencies.

## What is inside

| Module | Contents |
| --- | --- |
| `pcastcore.ids` | `ID4`, the four-byte tag used to name packets |
| `pcastcore.b64` | `base64_char_value`, `base64_word_to_bytes`, `decode_base64_words`: lenient word-at-a-time base64 decoding |
| `pcastcore.streams` | `Stream`, `FileStream`, `MemoryStream`, `IndirectStream` with little-endian integer, tag, line, word, base64, UTF-8 and bit readers and writers; `StreamError`, `StreamTimeout` |
| `pcastcore.atom` | `AtomStream`, reader and writer for nested tag/length/value "atom" packets |
| `pcastcore.version` | protocol and agent version constants (`PCP_CLIENT_VERSION`, `PCX_AGENT`, ...) |
| `pcastcore.text` | `TypedString` and `StringType`; conversions between ASCII, HTML character references, URL escapes, stream metadata, base64 and UTF-8 (including Shift_JIS and EUC-JP input); `trim`, `find_insensitive`, `format_stopwatch`, `parse_quoted`; CGI query helpers `get_cgi_arg`, `cmp_cgi_arg`, `has_cgi_arg` |
| `pcastcore.gnuid` | `GnuID` 16-byte identifiers and `GnuIDList`, a fixed set of slots that replaces its oldest entry |
| `pcastcore.logbuffer` | `LogBuffer` and `LogType`, a fixed-size ring of log lines with an HTML dump |
| `pcastcore.xmldoc` | `Node` and `XMLDocument`, a small lenient XML reader and writer |
| `pcastcore.system` | `System`, `Random`, `ThreadInfo`: clock, multiply-with-carry random numbers, daemon threads, opening URLs and files with the `webbrowser` module |
| `pcastcore.sockets` | `ClientSocket`, a non-blocking TCP stream with timeouts; `resolve_ip`, `hostname_for`, `SocketError` |

## A few examples

Formatting an uptime by its two largest units:

```python
from pcastcore.text import format_stopwatch

format_stopwatch(65)      # "1 min, 5 sec"
format_stopwatch(90000)   # "1 day, 1 hour"
```

Escaping text for a URL query, where every character that is not a letter
or digit becomes a `%XX` escape:

```python
from pcastcore.text import ascii_to_esc, esc_to_ascii

escaped = ascii_to_esc("my channel", False)   # "my%20channel"
esc_to_ascii(escaped)                         # "my channel"
```

Writing and reading back an atom in memory:

```python
from pcastcore.atom import AtomStream
from pcastcore.ids import ID4
from pcastcore.streams import MemoryStream

buf = MemoryStream(12)
AtomStream(buf).write_int(ID4.from_text("ver "), 1218)

buf.rewind()
atoms = AtomStream(buf)
tag, children, length = atoms.read()   # (ID4(b"ver "), 0, 4)
atoms.read_int()                       # 1218
```

## Errors

Reading past the end of a file, opening a file that cannot be opened,
writing past the end of a `MemoryStream`, atoms of the wrong size and
malformed XML raise `pcastcore.streams.StreamError`; timeouts raise
`StreamTimeout`. Socket failures raise `pcastcore.sockets.SocketError`, a
subclass of `StreamError`.

## What this package does not do

It holds the building blocks only. There is no channel manager, relay or
broadcast logic, no HTTP server or status pages, no settings storage and
no command-line program; an application has to put those together from
the pieces above.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.