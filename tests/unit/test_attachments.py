"""
Module: tests/unit/test_attachments.py

What:
    Validate attachment extraction from multipart messages and persistence
    through :meth:`Connection.save_attachment`.

Why:
    Attachment bytes must come out exactly as sent, with sensible defaults
    when senders omit filenames or types, and only into a directory the caller
    approved.

How:
    Build multipart messages inline for the pure extractor; for persistence,
    serve the message as a FETCH literal from the fake server and write into
    ``tmp_path``.
"""

import base64

from imapsock.mime.decoder import decode, extract_attachments

PDF_BYTES = b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\nfake report\n"


def build_message() -> str:
    return "\r\n".join(
        [
            "From: alice@example.org",
            'Content-Type: multipart/mixed; boundary="mix-42"',
            "",
            "--mix-42",
            "Content-Type: text/plain",
            "",
            "See attached.",
            "--mix-42",
            'Content-Type: application/pdf; name="report.pdf"',
            'Content-Disposition: attachment; filename="report.pdf"',
            "Content-Transfer-Encoding: base64",
            "",
            base64.encodebytes(PDF_BYTES).decode("ascii").strip(),
            "--mix-42",
            "content-disposition: ATTACHMENT",
            "",
            "raw notes",
            "--mix-42--",
            "",
        ]
    )


def test_extracts_named_attachment_with_decoded_bytes():
    attachments = extract_attachments(build_message())
    assert attachments[0].filename == "report.pdf"
    assert attachments[0].content_type == "application/pdf"
    assert attachments[0].content == PDF_BYTES
    assert attachments[0].size == len(PDF_BYTES)


def test_missing_filename_and_type_use_defaults():
    attachments = extract_attachments(build_message())
    assert len(attachments) == 2
    assert attachments[1].filename == "unknown"
    assert attachments[1].content_type == "application/octet-stream"
    assert attachments[1].content == b"raw notes"


def test_decode_exposes_attachments_alongside_text():
    message = decode(build_message())
    assert message.plain == "See attached."
    assert [a.filename for a in message.attachments] == ["report.pdf", "unknown"]


def test_non_multipart_message_has_no_attachments():
    raw = "Content-Type: application/pdf\r\nContent-Disposition: attachment; filename=\"a.pdf\"\r\n\r\nxx"
    assert extract_attachments(raw) == []


def test_malformed_message_has_no_attachments():
    assert extract_attachments("garbage") == []


def test_encoded_word_filename_is_decoded():
    raw = "\r\n".join(
        [
            "Content-Type: multipart/mixed; boundary=b1",
            "",
            "--b1",
            'Content-Disposition: attachment; filename="=?utf-8?q?R=C3=A9sum=C3=A9.txt?="',
            "Content-Type: text/plain",
            "",
            "cv",
            "--b1--",
        ]
    )
    attachment = extract_attachments(raw)[0]
    assert attachment.filename == "Résumé.txt"
    assert attachment.content == b"cv"


def _serve_message(server, raw: str) -> None:
    payload = raw.encode("utf-8")
    server.reply(b"* 1 FETCH (BODY[] {%d}\r\n" % len(payload) + payload + b")\r\n")


def test_save_attachment_writes_into_directory(connection, server, tmp_path):
    assert connection.set_attachments_directory(tmp_path)
    _serve_message(server, build_message())
    assert connection.save_attachment(1, "report.pdf")
    assert (tmp_path / "report.pdf").read_bytes() == PDF_BYTES
    assert server.bodies[-1] == "FETCH 1 (BODY.PEEK[])"


def test_save_attachment_without_match(connection, server, tmp_path):
    connection.set_attachments_directory(tmp_path)
    _serve_message(server, build_message())
    assert not connection.save_attachment(1, "missing.doc")
    assert list(tmp_path.iterdir()) == []


def test_save_attachment_requires_directory(connection, server):
    assert connection.attachments_directory is None
    assert not connection.save_attachment(1, "report.pdf")
    assert server.commands == []


def test_set_attachments_directory_rejects_missing_path(connection, tmp_path):
    assert connection.set_attachments_directory(tmp_path)
    assert not connection.set_attachments_directory(tmp_path / "nope")
    assert connection.attachments_directory == tmp_path


def test_set_attachments_directory_rejects_files(connection, tmp_path):
    target = tmp_path / "file.txt"
    target.write_text("x")
    assert not connection.set_attachments_directory(target)


def test_binary_attachment_keeps_exact_bytes():
    png = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\xfe"
    raw = (
        b'Content-Type: multipart/mixed; boundary="bin"\r\n\r\n'
        b"--bin\r\n"
        b'Content-Type: image/png\r\nContent-Disposition: attachment; filename="dot.png"\r\n'
        b"Content-Transfer-Encoding: binary\r\n\r\n" + png + b"\r\n--bin--\r\n"
    )
    attachments = extract_attachments(raw)
    assert attachments[0].filename == "dot.png"
    assert attachments[0].content == png


def test_attachment_content_type_keeps_header_case():
    raw = build_message().replace("application/pdf", "Application/PDF")
    attachments = extract_attachments(raw)
    assert attachments[0].content_type == "Application/PDF"
    assert decode(raw).parts[1].content_type == "application/pdf"
