"""Hand file paths from a second launch to the already running instance.

The running GUI listens on a named local socket; a new process started with
files connects, writes a small JSON payload and exits.
"""
from __future__ import annotations

import json
import logging
import sys

from PyQt6.QtCore import QObject, pyqtSignal
from PyQt6.QtNetwork import QLocalServer, QLocalSocket

LOGGER = logging.getLogger(__name__)

CONNECT_TIMEOUT_MS = 500


def get_initial_file_list_from_argv(argv: list[str] | None = None) -> list[str]:
    """Positional arguments up to the first option (anything starting with ``-``)."""
    args = sys.argv[1:] if argv is None else argv
    files: list[str] = []
    for arg in args:
        if arg.startswith("-"):
            break
        files.append(arg)
    return files


def encode_file_list(files: list[str]) -> bytes:
    return json.dumps({"files": [str(item) for item in files]}, ensure_ascii=False).encode("utf-8")


def decode_file_list(payload: bytes) -> list[str]:
    try:
        data = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        LOGGER.warning("ignoring malformed hand-off payload (%d bytes)", len(payload))
        return []
    if not isinstance(data, dict):
        return []
    files = data.get("files")
    if not isinstance(files, list):
        return []
    return [str(item) for item in files if str(item).strip()]


def send_file_list_to_running_app(app_id: str, files: list[str], timeout_ms: int = CONNECT_TIMEOUT_MS) -> bool:
    """Return True when a running instance accepted ``files``."""
    socket = QLocalSocket()
    socket.connectToServer(app_id)
    if not socket.waitForConnected(timeout_ms):
        LOGGER.debug("no running instance on %s: %s", app_id, socket.errorString())
        return False
    socket.write(encode_file_list(files))
    socket.flush()
    written = socket.waitForBytesWritten(timeout_ms)
    socket.disconnectFromServer()
    if not written:
        LOGGER.warning("hand-off to %s timed out", app_id)
    return written


class FileListServer(QObject):
    files_received = pyqtSignal(list)

    def __init__(self, app_id: str, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self._app_id = app_id
        self._server = QLocalServer(self)
        self._server.newConnection.connect(self._on_new_connection)
        self._buffers: dict[QLocalSocket, bytes] = {}

    def start(self) -> bool:
        if self._server.listen(self._app_id):
            LOGGER.info("listening for file hand-off on %s", self._app_id)
            return True
        # Stale socket left by a crashed instance.
        QLocalServer.removeServer(self._app_id)
        if self._server.listen(self._app_id):
            LOGGER.info("listening for file hand-off on %s after cleanup", self._app_id)
            return True
        LOGGER.warning("cannot listen on %s: %s", self._app_id, self._server.errorString())
        return False

    def close(self) -> None:
        self._server.close()

    def _on_new_connection(self) -> None:
        while self._server.hasPendingConnections():
            socket = self._server.nextPendingConnection()
            if socket is None:
                break
            self._buffers[socket] = b""
            socket.readyRead.connect(lambda s=socket: self._on_ready_read(s))
            socket.disconnected.connect(lambda s=socket: self._on_disconnected(s))

    def _on_ready_read(self, socket: QLocalSocket) -> None:
        self._buffers[socket] = self._buffers.get(socket, b"") + bytes(socket.readAll())

    def _on_disconnected(self, socket: QLocalSocket) -> None:
        self._on_ready_read(socket)
        payload = self._buffers.pop(socket, b"")
        socket.deleteLater()
        files = decode_file_list(payload)
        if files:
            LOGGER.info("received %d file(s) from another instance", len(files))
            self.files_received.emit(files)
