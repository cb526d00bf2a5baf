from __future__ import annotations

import errno
import json
import logging
import os
import re
import socket
import stat
import struct
import tempfile
import threading
from typing import Mapping, TextIO

from .errors import ForwardingError
from .types import Priority

logger = logging.getLogger(__name__)

JOURNAL_SOCKET = "/run/systemd/journal/socket"

# journald drops fields whose names do not match this
_FIELD_NAME_RE = re.compile(r"[A-Z][A-Z0-9_]{0,63}")


class Sink:
    """Destination for projected records.

    send() raises ForwardingError when the record could not be recorded.
    """
    def enabled(self) -> bool:
        raise NotImplementedError

    def send(self, line: str, priority: Priority, fields: Mapping[str, str]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


def valid_field_name(name: str) -> bool:
    return _FIELD_NAME_RE.fullmatch(name) is not None


def _append_field(buf: bytearray, name: str, value: str) -> None:
    data = value.encode("utf-8", errors="surrogateescape")
    if b"\n" in data:
        # Binary form: NAME\n<little-endian u64 length><value>\n
        buf += name.encode("ascii") + b"\n" + struct.pack("<Q", len(data)) + data + b"\n"
    else:
        buf += name.encode("ascii") + b"=" + data + b"\n"


def encode_entry(
    line: str, priority: Priority, fields: Mapping[str, str]
) -> tuple[bytes, list[str]]:
    """Serialize a record in the journald native protocol.

    Returns the datagram and the field names left out because journald
    would reject them.
    """
    buf = bytearray()
    _append_field(buf, "PRIORITY", str(int(priority)))
    _append_field(buf, "MESSAGE", line)
    skipped: list[str] = []
    for name, value in fields.items():
        if not valid_field_name(name):
            skipped.append(name)
            continue
        _append_field(buf, name, value)
    return bytes(buf), skipped


class JournalSink(Sink):
    """Send records to the local journald over its native datagram socket."""

    def __init__(self, socket_path: str = JOURNAL_SOCKET) -> None:
        self.socket_path = socket_path
        self._sock: socket.socket | None = None
        self._lock = threading.Lock()
        self._warned: set[str] = set()

    def enabled(self) -> bool:
        try:
            st = os.stat(self.socket_path)
        except OSError:
            return False
        return stat.S_ISSOCK(st.st_mode)

    def _socket(self) -> socket.socket:
        with self._lock:
            if self._sock is None:
                self._sock = socket.socket(socket.AF_UNIX, socket.SOCK_DGRAM)
            return self._sock

    def send(self, line: str, priority: Priority, fields: Mapping[str, str]) -> None:
        data, skipped = encode_entry(line, priority, fields)
        if skipped:
            with self._lock:
                unwarned = [name for name in dict.fromkeys(skipped) if name not in self._warned]
                self._warned.update(unwarned)
            for name in unwarned:
                logger.warning("Field name %r is not valid for journald, dropping it", name)

        sock = self._socket()
        try:
            sock.sendto(data, self.socket_path)
            return
        except OSError as e:
            if e.errno not in (errno.EMSGSIZE, errno.ENOBUFS):
                raise ForwardingError(f"journal send failed: {e}") from e
        self._send_via_fd(sock, data)

    def _send_via_fd(self, sock: socket.socket, data: bytes) -> None:
        """Pass an oversized entry as a file descriptor instead of a datagram."""
        shm = "/dev/shm" if os.path.isdir("/dev/shm") else None
        try:
            with tempfile.TemporaryFile(dir=shm) as f:
                f.write(data)
                f.flush()
                socket.send_fds(sock, [b""], [f.fileno()], 0, self.socket_path)
        except OSError as e:
            raise ForwardingError(f"journal send via file descriptor failed: {e}") from e
        logger.debug("Sent %d byte entry via file descriptor", len(data))

    def close(self) -> None:
        with self._lock:
            if self._sock is not None:
                self._sock.close()
                self._sock = None


class JsonLinesSink(Sink):
    """Write each record as one JSON object per line to a text stream."""

    def __init__(self, stream: TextIO) -> None:
        self._stream = stream
        self._lock = threading.Lock()

    def enabled(self) -> bool:
        return not self._stream.closed and self._stream.writable()

    def send(self, line: str, priority: Priority, fields: Mapping[str, str]) -> None:
        entry = {**fields, "MESSAGE": line, "PRIORITY": int(priority)}
        encoded = json.dumps(entry)
        try:
            with self._lock:
                self._stream.write(encoded + "\n")
                self._stream.flush()
        except (OSError, ValueError) as e:
            raise ForwardingError(f"write failed: {e}") from e
