"""Non-blocking TCP sockets presented as streams."""

from __future__ import annotations

import errno
import os
import select
import socket
import struct

from pcastcore.streams import Stream, StreamError, StreamTimeout

_WOULD_BLOCK = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EINPROGRESS}
_RECV_FLAGS = getattr(socket, "MSG_NOSIGNAL", 0)
_SEND_FLAGS = getattr(socket, "MSG_DONTWAIT", 0) | _RECV_FLAGS


class SocketError(StreamError):
    """Raised when a socket operation fails."""


def _ip_to_str(ip: int) -> str:
    return socket.inet_ntoa(struct.pack("!I", ip & 0xFFFFFFFF))


def _ip_from_str(text: str) -> int:
    return struct.unpack("!I", socket.inet_aton(text))[0]


def resolve_ip(name: str | None = None) -> int:
    """IPv4 address of ``name`` (this host when None) as an integer; 0 if unknown."""
    if name is None:
        try:
            name = socket.gethostname()
        except OSError:
            return 0
    try:
        return _ip_from_str(socket.gethostbyname(name))
    except (OSError, UnicodeError):
        return 0


def hostname_for(ip: int) -> str | None:
    """Reverse lookup of an integer IPv4 address, or None."""
    try:
        return socket.gethostbyaddr(_ip_to_str(ip))[0]
    except (OSError, UnicodeError):
        return None


class ClientSocket(Stream):
    """A TCP connection or listening socket; ``host`` is ``(ip, port)``."""

    def __init__(self, sock: socket.socket | None = None, host: tuple[int, int] = (0, 0),
                 *, clock=None):
        super().__init__(clock=clock)
        self.sock = sock
        self.host = host
        self.read_timeout = 30000
        self.write_timeout = 30000
        self._remote: tuple[str, int] | None = None

    def _need(self) -> socket.socket:
        if self.sock is None:
            raise SocketError("Socket not open")
        return self.sock

    def _new_socket(self) -> socket.socket:
        try:
            return socket.socket(socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP)
        except OSError as exc:
            raise SocketError("Can`t open socket") from exc

    def _wait(self, for_read: bool, for_write: bool) -> None:
        sock = self._need()
        seconds = 0
        if for_write:
            seconds = self.write_timeout // 1000
        if for_read:
            seconds = self.read_timeout // 1000
        readers = [sock] if for_read else []
        writers = [sock] if for_write else []
        try:
            ready = select.select(readers, writers, [], seconds or None)
        except (OSError, ValueError) as exc:
            raise SocketError("select failed.") from exc
        if not any(ready):
            raise StreamTimeout("Timeout")

    def _check(self, exc: OSError, for_read: bool, for_write: bool) -> None:
        if exc.errno in _WOULD_BLOCK:
            self._wait(for_read, for_write)
            return
        reason = os.strerror(exc.errno) if exc.errno else str(exc)
        raise SocketError(f"Closed: {reason}") from exc

    # --- connection -------------------------------------------------------
    def open(self, ip: int, port: int) -> None:
        """Create a non-blocking socket aimed at ``ip``:``port``."""
        self.sock = self._new_socket()
        self.set_blocking(False)
        self.host = (ip, port)
        self._remote = (_ip_to_str(ip), port)

    def connect(self) -> None:
        sock = self._need()
        if self._remote is None:
            raise SocketError("Socket has no remote address")
        code = sock.connect_ex(self._remote)
        if code == 0:
            return
        if code not in _WOULD_BLOCK:
            raise SocketError(f"Closed: {os.strerror(code)}")
        self._wait(False, True)
        code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
        if code:
            raise SocketError(f"Closed: {os.strerror(code)}")

    def bind(self, port: int) -> None:
        """Listen on ``port`` on all interfaces (0 picks a free port)."""
        sock = self._new_socket()
        self.sock = sock
        self.set_reuse(True)
        self.set_blocking(False)
        try:
            sock.bind(("", port))
        except OSError as exc:
            raise SocketError("Can`t bind socket") from exc
        try:
            sock.listen(3)
        except OSError as exc:
            raise SocketError("Can`t listen") from exc
        self.host = (0, sock.getsockname()[1])

    def accept(self) -> "ClientSocket | None":
        """The next pending connection, or None if there is none."""
        sock = self._need()
        try:
            conn, (addr, port) = sock.accept()
        except OSError:
            return None
        client = ClientSocket(conn, (_ip_from_str(addr), port), clock=self._clock)
        client.set_blocking(False)
        return client

    def close(self) -> None:
        if self.sock is None:
            return
        try:
            self.sock.shutdown(socket.SHUT_WR)
        except OSError:
            pass
        self.sock.close()
        self.sock = None

    def active(self) -> bool:
        return self.sock is not None

    # --- data ---------------------------------------------------------------
    def read(self, size: int) -> bytes:
        """Read exactly ``size`` bytes; raises SocketError if the peer closes."""
        sock = self._need()
        out = bytearray()
        while len(out) < size:
            try:
                chunk = sock.recv(size - len(out), _RECV_FLAGS)
            except OSError as exc:
                self._check(exc, True, False)
                continue
            if not chunk:
                raise SocketError("Closed on read")
            self.update_totals(len(chunk), 0)
            out += chunk
        return bytes(out)

    def read_upto(self, size: int) -> bytes:
        """Read up to ``size`` bytes, stopping early if the peer closes."""
        sock = self._need()
        out = bytearray()
        while len(out) < size:
            try:
                chunk = sock.recv(size - len(out), _RECV_FLAGS)
            except OSError as exc:
                self._check(exc, True, False)
                continue
            if not chunk:
                break
            self.update_totals(len(chunk), 0)
            out += chunk
        return bytes(out)

    def write(self, data) -> None:
        sock = self._need()
        view = memoryview(bytes(data))
        while view:
            try:
                sent = sock.send(view, _SEND_FLAGS)
            except OSError as exc:
                self._check(exc, False, True)
                continue
            if sent == 0:
                raise SocketError("Closed on write")
            self.update_totals(0, sent)
            view = view[sent:]

    def read_ready(self) -> bool:
        if self.sock is None:
            return False
        readable, _, _ = select.select([self.sock], [], [], 0)
        return bool(readable)

    def num_pending(self) -> int:
        """Number of bytes waiting to be read."""
        sock = self._need()
        try:
            import fcntl
            import termios

            raw = fcntl.ioctl(sock.fileno(), termios.FIONREAD, b"\0\0\0\0")
        except (ImportError, OSError) as exc:
            raise StreamError("numPending") from exc
        return struct.unpack("i", raw)[0]

    def local_host(self) -> tuple[int, int]:
        """Local address as ``(ip, 0)``, or ``(0, 0)`` when unknown."""
        if self.sock is None:
            return (0, 0)
        try:
            return (_ip_from_str(self.sock.getsockname()[0]), 0)
        except OSError:
            return (0, 0)

    # --- options ------------------------------------------------------------
    def set_blocking(self, block: bool) -> None:
        self._need().setblocking(block)

    def set_reuse(self, yes: bool) -> None:
        try:
            self._need().setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, int(yes))
        except OSError as exc:
            raise SocketError("Unable to set REUSE") from exc

    def set_nagle(self, on: bool) -> None:
        try:
            self._need().setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, int(not on))
        except OSError as exc:
            raise SocketError("Unable to set NODELAY") from exc

    def set_linger(self, seconds: int) -> None:
        value = struct.pack("ii", 1 if seconds > 0 else 0, seconds)
        try:
            self._need().setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, value)
        except OSError as exc:
            raise SocketError("Unable to set LINGER") from exc

    def set_read_timeout(self, ms: int) -> None:
        self.read_timeout = ms

    def set_write_timeout(self, ms: int) -> None:
        self.write_timeout = ms