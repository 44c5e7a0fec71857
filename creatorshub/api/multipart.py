"""
Builds multipart/form-data request bodies for file uploads.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path

AUDIO_MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/m4a",
    "aac": "audio/aac",
}
DEFAULT_MIME_TYPE = "application/octet-stream"

CRLF = b"\r\n"


@dataclass(frozen=True)
class FilePart:
    """A binary part of a multipart body."""

    name: str
    filename: str
    content_type: str
    data: bytes


def new_boundary() -> str:
    """Returns a boundary token unique to one request."""
    return f"Boundary-{uuid.uuid4()}"


def audio_mime_type(path: str | Path) -> str:
    """Derives the audio content type from a file's extension."""
    extension = Path(path).suffix.lstrip(".").lower()
    return AUDIO_MIME_TYPES.get(extension, DEFAULT_MIME_TYPE)


def content_type_header(boundary: str) -> str:
    return f"multipart/form-data; boundary={boundary}"


def build_multipart_body(
    boundary: str,
    fields: list[tuple[str, str]],
    files: list[FilePart],
) -> bytes:
    """
    Serializes text fields followed by file parts into a multipart body.

    Each part is framed as ``--boundary``, its headers, a blank line, then the
    value and a CRLF. The body ends with the closing ``--boundary--`` line.

    Args:
        boundary: The delimiter token, without leading dashes.
        fields: Ordered (name, value) pairs sent as text parts.
        files: Ordered binary parts.

    Returns:
        The complete request body.
    """
    delimiter = f"--{boundary}".encode()
    body = bytearray()

    for name, value in fields:
        body += delimiter + CRLF
        body += f'Content-Disposition: form-data; name="{name}"'.encode() + CRLF
        body += CRLF
        body += value.encode("utf-8") + CRLF

    for part in files:
        body += delimiter + CRLF
        body += (
            f'Content-Disposition: form-data; name="{part.name}"; '
            f'filename="{part.filename}"'
        ).encode() + CRLF
        body += f"Content-Type: {part.content_type}".encode() + CRLF
        body += CRLF
        body += part.data + CRLF

    body += delimiter + b"--" + CRLF
    return bytes(body)
