"""
Module: tests/e2e/test_socket_session.py

What:
    Run a full session through :class:`imapsock.protocol.transport.SocketStream`
    against a threaded fake server on the other end of a socket pair.

Why:
    Unit tests use an in-memory stream; this suite proves the real socket
    adapter frames commands, reads long lines whole and releases the socket
    once, including when the server hangs up mid-response.

How:
    ``socket.socketpair()`` provides both ends. A daemon thread reads tagged
    commands, answers from a per-verb script and closes its end after
    ``LOGOUT`` (or immediately for the hang-up verb). Client sockets get a
    timeout so a broken test fails instead of hanging.
"""

import base64
import socket
import threading
from typing import Dict, List

import pytest

from imapsock.config.schema import ClientSettings
from imapsock.errors import UnterminatedResponseError
from imapsock.imap.connection import Connection, open_connection
from imapsock.protocol.transport import SocketStream

LONG_SEARCH = " ".join(str(n) for n in range(1, 3000))


def _serve(sock: socket.socket, script: Dict[str, List[bytes]], received: List[str]) -> None:
    reader = sock.makefile("rb")
    try:
        while True:
            line = reader.readline()
            if not line:
                break
            tag, _, command = line.decode("utf-8").rstrip("\r\n").partition(" ")
            received.append(command)
            verb = command.split(" ", 1)[0]
            if verb == "HANGUP":
                sock.sendall(b"* partial data\r\n")
                break
            for out in script.get(verb, []):
                sock.sendall(out)
            if verb == "LOGOUT":
                sock.sendall(b"* BYE closing\r\n" + f"{tag} OK LOGOUT completed\r\n".encode())
                break
            sock.sendall(f"{tag} OK {verb} completed\r\n".encode())
    finally:
        reader.close()
        sock.close()


@pytest.fixture
def socket_server():
    """Yield ``(client_socket, received_commands)`` for one session."""

    client, server = socket.socketpair()
    client.settimeout(5)
    received: List[str] = []
    message = (
        "Content-Type: multipart/mixed; boundary=\"e2e\"\r\n\r\n"
        "--e2e\r\nContent-Type: text/plain\r\nContent-Transfer-Encoding: base64\r\n\r\n"
        + base64.b64encode(b"socket body").decode("ascii")
        + "\r\n--e2e\r\nContent-Type: image/png\r\n"
        "Content-Disposition: attachment; filename=\"dot.png\"\r\n"
        "Content-Transfer-Encoding: base64\r\n\r\n"
        + base64.b64encode(b"\x89PNG\r\n\x1a\n").decode("ascii")
        + "\r\n--e2e--\r\n"
    ).encode("ascii")
    script = {
        "SEARCH": [f"* SEARCH {LONG_SEARCH}\r\n".encode()],
        "LIST": [b'* LIST (\\HasNoChildren) "/" "INBOX"\r\n'],
        "FETCH": [b"* 1 FETCH (BODY[] {%d}\r\n" % len(message) + message + b")\r\n"],
    }
    thread = threading.Thread(target=_serve, args=(server, script, received), daemon=True)
    thread.start()
    yield client, received
    thread.join(timeout=5)


def test_full_session_over_socket(socket_server):
    client, received = socket_server
    stream = SocketStream(client)
    with open_connection(stream, ClientSettings(log_level="ERROR")) as conn:
        assert conn.list_folders() == ["INBOX"]
        ids = conn.search_mails("ALL")
        assert len(ids) == 2999
        assert ids[-1] == "2999"
        message = conn.get_message_text(1)
        assert message.plain == "socket body"
        assert message.attachments[0].filename == "dot.png"
        assert message.attachments[0].content == b"\x89PNG\r\n\x1a\n"
    assert stream.closed
    assert received == ['LIST "" "*"', "SEARCH ALL", "FETCH 1 (BODY.PEEK[])", "LOGOUT"]


def test_server_hang_up_returns_partial_response(socket_server):
    client, _ = socket_server
    stream = SocketStream(client)
    conn = Connection(stream, ClientSettings(log_level="ERROR"))
    response = conn.execute("HANGUP")
    assert not response.terminated
    assert response.lines == ["* partial data"]
    stream.close()


def test_server_hang_up_raises_in_strict_mode(socket_server):
    client, _ = socket_server
    stream = SocketStream(client)
    conn = Connection(stream, ClientSettings(strict_responses=True, log_level="ERROR"))
    with pytest.raises(UnterminatedResponseError):
        conn.execute("HANGUP")
    stream.close()
