"""TCP and UDP sockets with the framework's send/receive conventions."""

from __future__ import annotations

import io
import socket
from abc import ABC, abstractmethod
from typing import Optional, Union

BUFSIZ = 8192
_TCP_RECV_SIZE = 1024
_MAX_CLIENTS = 20

SocketLike = Union[socket.socket, int]


class Socket(ABC):
    """Common interface of the framework's sockets."""

    @abstractmethod
    def send(self, data):
        """Send ``data``; return the number of bytes sent."""

    @abstractmethod
    def recv(self):
        """Receive data from the peer."""

    @abstractmethod
    def fileno(self) -> int:
        """Return the underlying file descriptor."""


def _adopt(sock: SocketLike) -> socket.socket:
    if isinstance(sock, socket.socket):
        return sock
    return socket.socket(fileno=sock)


class TCPSocket(Socket):
    """A stream socket, either bound for serving or connected as a client.

    Pass ``sock`` (a socket object or a descriptor) to wrap an already
    open connection instead of resolving ``ip`` and ``port``.
    """

    def __init__(
        self,
        port: Optional[Union[str, int]] = None,
        ip: str = "",
        server: bool = False,
        *,
        sock: Optional[SocketLike] = None,
    ) -> None:
        if sock is not None:
            self._sock = _adopt(sock)
            return
        if port is None:
            raise ValueError("a port or an open socket is required")
        self._sock = self._open(str(port), ip, server)

    @staticmethod
    def _open(port: str, ip: str, server: bool) -> socket.socket:
        candidates = socket.getaddrinfo(
            ip or None, port, socket.AF_UNSPEC, socket.SOCK_STREAM, 0, socket.AI_PASSIVE
        )
        last_error: Optional[OSError] = None
        for family, socktype, proto, _, address in candidates:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as exc:
                last_error = exc
                continue
            try:
                if server:
                    try:
                        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                    except OSError:
                        pass
                    sock.bind(address)
                else:
                    sock.connect(address)
            except OSError as exc:
                sock.close()
                last_error = exc
                continue
            return sock
        raise OSError("failed to bind") from last_error

    @property
    def local_address(self) -> tuple:
        return self._sock.getsockname()

    def fileno(self) -> int:
        return self._sock.fileno()

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "TCPSocket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class TCPClient(TCPSocket):
    """A client connected to a TCP server."""

    def __init__(self, port: Union[str, int], server_ip: str = "127.0.0.1") -> None:
        super().__init__(port, server_ip, server=False)

    def send(self, text: str) -> int:
        """Send ``text`` followed by a NUL terminator."""
        data = text.encode() + b"\0"
        self._sock.sendall(data)
        return len(data)

    def recv(self) -> bytes:
        """Receive whatever is available, up to 1024 bytes."""
        return self._sock.recv(_TCP_RECV_SIZE)


class TCPConnection(TCPSocket):
    """One accepted (or otherwise open) stream connection."""

    def __init__(self, sock: SocketLike) -> None:
        super().__init__(sock=sock)

    def send(self, data: bytes) -> int:
        """Send all of ``data``; return the number of bytes sent."""
        view = memoryview(bytes(data))
        sent = 0
        while sent < len(view):
            count = self._sock.send(view[sent:])
            if count <= 0:
                raise ConnectionError("server: failed to send")
            sent += count
        return sent

    def recv(self, size: int) -> bytes:
        """Receive exactly ``size`` bytes."""
        buffer = bytearray()
        while len(buffer) < size:
            chunk = self._sock.recv(size - len(buffer))
            if not chunk:
                raise ConnectionError("server: recv error")
            buffer += chunk
        return bytes(buffer)


class TCPServer(TCPSocket):
    """A listening socket that hands out connections."""

    def __init__(self, port: Union[str, int], ip: str = "") -> None:
        super().__init__(port, ip, server=True)
        try:
            self._sock.listen(_MAX_CLIENTS)
        except OSError:
            self._sock.close()
            raise

    def accept(self) -> TCPConnection:
        connection, _ = self._sock.accept()
        return TCPConnection(connection)

    def send(self, data) -> int:
        raise io.UnsupportedOperation("a listening socket does not send")

    def recv(self) -> bytes:
        raise io.UnsupportedOperation("a listening socket does not receive")


class UDPSocket(Socket):
    """A datagram socket.

    Without ``other_ip`` it is bound to ``port`` on all interfaces and
    replies to whoever sent the last datagram; with ``other_ip`` it sends
    to that host and port.
    """

    def __init__(self, port: Union[str, int], other_ip: str = "") -> None:
        candidates = socket.getaddrinfo(
            other_ip or None, str(port), socket.AF_INET, socket.SOCK_DGRAM, 0,
            socket.AI_PASSIVE,
        )
        last_error: Optional[OSError] = None
        for family, socktype, proto, _, address in candidates:
            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as exc:
                last_error = exc
                continue
            if not other_ip:
                try:
                    sock.bind(address)
                except OSError as exc:
                    sock.close()
                    last_error = exc
                    continue
            self._sock = sock
            self._other = address
            return
        raise OSError("failed to bind") from last_error

    @property
    def local_address(self) -> tuple:
        return self._sock.getsockname()

    def send(self, data: bytes) -> int:
        return self._sock.sendto(bytes(data), self._other)

    def recv(self) -> bytes:
        """Receive one datagram and remember its sender as the peer."""
        data, self._other = self._sock.recvfrom(BUFSIZ)
        return data

    def enable_broadcast(self) -> None:
        self._sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)

    def fileno(self) -> int:
        return self._sock.fileno()

    def close(self) -> None:
        self._sock.close()

    def __enter__(self) -> "UDPSocket":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()