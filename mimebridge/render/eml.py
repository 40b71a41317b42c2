from __future__ import annotations

from email import encoders
from email.header import Header as EncodedHeader
from email.message import Message
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.policy import compat32
from pathlib import Path

from mimebridge.mime.headers import Header
from mimebridge.mime.parts import ContentEncoding, MimeMessage, MimeNode, MimePart, Multipart, TextPart

# RFC 5322 line limit, excluding CRLF
_MAX_RAW_LINE = 998


def to_email_message(message: MimeMessage, *, default_charset: str = "utf-8") -> Message:
    """Convert a MimeMessage into a standard library (compat32) message.

    Message headers come first in list order, then MIME-Version and the
    body's own content headers. Caller headers for Content-* or MIME-Version
    are dropped in favour of the body's.
    """
    root = _render_node(message.body)

    content_headers = [(name, value) for name, value in root.items() if name.lower() != "mime-version"]
    for name in {name.lower() for name in root.keys()}:
        del root[name]

    for header in message.headers:
        if _is_content_header(header.name):
            continue
        root[header.name] = _header_value(header, default_charset)

    root["MIME-Version"] = "1.0"
    for name, value in content_headers:
        root[name] = value
    return root


def message_to_bytes(message: MimeMessage, *, default_charset: str = "utf-8", max_line_length: int = 78) -> bytes:
    policy = compat32.clone(linesep="\r\n", max_line_length=max_line_length)
    return to_email_message(message, default_charset=default_charset).as_bytes(policy=policy)


def write_eml_file(
    *,
    message: MimeMessage,
    out_path: Path,
    default_charset: str = "utf-8",
    max_line_length: int = 78,
) -> None:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("wb") as f:
        f.write(message_to_bytes(message, default_charset=default_charset, max_line_length=max_line_length))


def _is_content_header(name: str) -> bool:
    key = name.lower()
    return key.startswith("content-") or key == "mime-version"


def _header_value(header: Header, default_charset: str) -> str | EncodedHeader:
    if header.charset is not None:
        return EncodedHeader(header.value, charset=header.charset, header_name=header.name)
    if not header.value.isascii():
        return EncodedHeader(header.value, charset=default_charset, header_name=header.name)
    return header.value


def _render_node(node: MimeNode) -> Message:
    if isinstance(node, Multipart):
        return _render_multipart(node)
    if isinstance(node, TextPart):
        return MIMEText(node.text, node.subtype, node.charset)
    return _render_leaf(node)


def _render_multipart(node: Multipart) -> Message:
    part = MIMEMultipart(node.subtype)
    for name, value in node.parameters:
        part.set_param(name, value)
    if node.content_location is not None:
        part["Content-Location"] = node.content_location
    for child in node.children:
        rendered = _render_node(child)
        del rendered["MIME-Version"]
        part.attach(rendered)
    return part


def _render_leaf(node: MimePart) -> Message:
    content_type = node.content_type
    part = MIMEBase(content_type.media_type, content_type.media_subtype)
    for name, value in content_type.parameters:
        part.set_param(name, value)

    data = node.get_bytes()
    encoding = node.transfer_encoding or _choose_encoding(data)
    part.set_payload(data)
    if encoding is ContentEncoding.BASE64:
        encoders.encode_base64(part)
    elif encoding is ContentEncoding.QUOTED_PRINTABLE:
        encoders.encode_quopri(part)
    else:
        part["Content-Transfer-Encoding"] = encoding.value

    if node.content_disposition is not None:
        part.add_header(
            "Content-Disposition",
            node.content_disposition.disposition,
            **dict(node.content_disposition.parameters),
        )
    if node.content_id is not None:
        part["Content-ID"] = f"<{node.content_id}>"
    if node.content_location is not None:
        part["Content-Location"] = node.content_location
    return part


def _choose_encoding(data: bytes) -> ContentEncoding:
    if data.isascii() and all(len(line) <= _MAX_RAW_LINE for line in data.splitlines()):
        return ContentEncoding.SEVEN_BIT
    return ContentEncoding.BASE64
