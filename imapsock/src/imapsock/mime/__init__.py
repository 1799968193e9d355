"""MIME decoding for messages fetched over IMAP."""

from .decoder import (
    Attachment,
    DecodedMessage,
    DecodeStatus,
    Disposition,
    MessagePart,
    TransferEncoding,
    decode,
    extract_attachments,
    split_parts,
)

__all__ = [
    "Attachment",
    "DecodedMessage",
    "DecodeStatus",
    "Disposition",
    "MessagePart",
    "TransferEncoding",
    "decode",
    "extract_attachments",
    "split_parts",
]
