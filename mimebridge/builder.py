from __future__ import annotations

"""FlatMessage -> MimeMessage transform.

Order of work:
1. project_headers: sender, address fields, subject and priority onto a copy
   of the caller's headers
2. build_body: text leaf, then `alternative` (views, each optionally wrapped
   in `related` with its linked resources), then `mixed` (attachments)
3. materialize_part: one content item -> one MimePart leaf

The builder holds no per-message state; every call reads its input once.
"""

import io
from dataclasses import replace
from email.headerregistry import Address
from typing import Any, BinaryIO

from mimebridge.config import BuilderConfig
from mimebridge.errors import ContentTooLargeError, InvalidArgumentError
from mimebridge.mime.headers import (
    HeaderList,
    format_address_list,
    mailbox_address,
    parse_content_disposition,
    parse_content_type,
)
from mimebridge.mime.parts import (
    ContentEncoding,
    MimeMessage,
    MimeNode,
    MimePart,
    Multipart,
    TextPart,
    iter_leaves,
)
from mimebridge.models import (
    AlternateView,
    ContentItem,
    FlatMessage,
    MailAddress,
    MailPriority,
    TransferEncoding,
)
from mimebridge.storage.runs import StructuredLogger

_PRIORITY_HEADERS = ("X-MSMail-Priority", "Importance", "X-Priority", "Priority")

_PRIORITY_VALUES: dict[MailPriority, tuple[tuple[str, str], ...]] = {
    MailPriority.HIGH: (("Priority", "urgent"), ("Importance", "high"), ("X-Priority", "2 (High)")),
    MailPriority.LOW: (("Priority", "non-urgent"), ("Importance", "low"), ("X-Priority", "4 (Low)")),
}

# 8bit stays unmapped; the serializer picks an encoding for it
_TRANSFER_ENCODINGS = {
    TransferEncoding.QUOTED_PRINTABLE: ContentEncoding.QUOTED_PRINTABLE,
    TransferEncoding.BASE64: ContentEncoding.BASE64,
    TransferEncoding.SEVEN_BIT: ContentEncoding.SEVEN_BIT,
}

_COPY_CHUNK_SIZE = 64 * 1024


def to_mailbox_address(address: MailAddress) -> Address:
    return mailbox_address(address.display_name, address.address)


def to_address_list(addresses: list[MailAddress]) -> list[Address]:
    return [to_mailbox_address(a) for a in addresses]


class MessageBuilder:
    """Builds MIME documents from flat messages."""

    def __init__(self, *, config: BuilderConfig | None = None, logger: StructuredLogger | None = None) -> None:
        self.config = config or BuilderConfig()
        self.logger = logger

    def build(self, message: FlatMessage | None) -> MimeMessage:
        if message is None:
            raise InvalidArgumentError("message is required", stage="build", field="message")

        try:
            headers = self.project_headers(message, HeaderList(message.headers))
            body = self.build_body(message)
        except Exception as exc:
            self._log(
                "error",
                "message_build_failed",
                error_type=exc.__class__.__name__,
                error_message=str(exc),
            )
            raise

        self._log(
            "info",
            "message_built",
            body_type=body.content_type.mime_type,
            leaf_count=sum(1 for _ in iter_leaves(body)),
            header_count=len(headers),
        )
        return MimeMessage(headers=headers, body=body)

    def project_headers(self, message: FlatMessage, headers: HeaderList) -> HeaderList:
        """Apply the message's top-level fields to `headers` and return it.

        Address fields only overwrite existing headers when the message has a
        value for them; headers merged in by an earlier send attempt survive.
        """
        charset = self.config.default_charset

        if message.sender is not None:
            headers.replace("Sender", format_address_list([to_mailbox_address(message.sender)], charset=charset))

        address_fields = (
            ("From", [message.from_address] if message.from_address is not None else []),
            ("Reply-To", message.reply_to),
            ("To", message.to),
            ("Cc", message.cc),
            ("Bcc", message.bcc),
        )
        for name, addresses in address_fields:
            if not addresses:
                continue
            mailboxes = to_address_list(addresses)
            headers.remove_all(name)
            headers.append(name, format_address_list(mailboxes, charset=charset))

        if message.subject_encoding is not None:
            headers.replace("Subject", message.subject or "", charset=message.subject_encoding)
        else:
            headers.replace("Subject", message.subject or "")

        if message.priority == MailPriority.NORMAL:
            for name in _PRIORITY_HEADERS:
                headers.remove_all(name)
        else:
            for name, value in _PRIORITY_VALUES[message.priority]:
                headers.replace(name, value)

        self._log("info", "headers_projected", header_count=len(headers), priority=message.priority.value)
        return headers

    def build_body(self, message: FlatMessage) -> MimeNode:
        subtype = "html" if message.is_body_html else "plain"
        body: MimeNode | None = None

        if message.body:
            body = TextPart(
                subtype=subtype,
                text=message.body,
                charset=message.body_encoding or self.config.default_charset,
            )

        if message.alternate_views:
            entries: list[MimeNode] = [body] if body is not None else []
            entries.extend(self._view_entry(view) for view in message.alternate_views)
            body = Multipart("alternative", tuple(entries))

        if body is None:
            body = TextPart(subtype=subtype)

        if message.attachments:
            attachments = [self.materialize_part(a) for a in message.attachments]
            body = Multipart("mixed", (body, *attachments))

        return body

    def _view_entry(self, view: AlternateView) -> MimeNode:
        part = self.materialize_part(view)
        if view.base_uri is not None:
            part = replace(part, content_location=view.base_uri)

        if not view.linked_resources:
            return part

        children: list[MimeNode] = [part]
        for resource in view.linked_resources:
            leaf = self.materialize_part(resource)
            if resource.content_link is not None:
                leaf = replace(leaf, content_location=resource.content_link)
            children.append(leaf)

        return Multipart(
            "related",
            tuple(children),
            parameters=(("type", part.content_type.mime_type),),
            content_location=view.base_uri,
        )

    def materialize_part(self, item: ContentItem) -> MimePart:
        content_type = parse_content_type(item.content_type)
        disposition = (
            parse_content_disposition(item.content_disposition)
            if item.content_disposition is not None
            else None
        )
        encoding = _TRANSFER_ENCODINGS.get(item.transfer_encoding)
        content_id = item.content_id.strip().strip("<>") if item.content_id is not None else None

        content = self._copy_stream(item.content_stream)
        part = MimePart(
            content_type=content_type,
            content=content,
            content_disposition=disposition,
            transfer_encoding=encoding,
            content_id=content_id,
        )
        self._log(
            "debug",
            "part_materialized",
            content_type=content_type.mime_type,
            size_bytes=len(content.getvalue()),
            transfer_encoding=encoding.value if encoding is not None else None,
            content_id=content_id,
        )
        return part

    def _copy_stream(self, stream: BinaryIO) -> io.BytesIO:
        limit = self.config.max_content_bytes
        buffer = io.BytesIO()
        while True:
            chunk = stream.read(_COPY_CHUNK_SIZE)
            if not chunk:
                break
            buffer.write(chunk)
            if limit is not None and buffer.tell() > limit:
                raise ContentTooLargeError(
                    f"content stream exceeds {limit} bytes",
                    stage="materialize",
                    field="content_stream",
                )
        buffer.seek(0)
        return buffer

    def _log(self, level: str, event: str, **kwargs: Any) -> None:
        if self.logger is None:
            return
        if level == "error":
            kwargs.setdefault("status", "error")
        self.logger.log(level=level, event=event, stage="build", **kwargs)


def to_mime_message(
    message: FlatMessage | None,
    *,
    config: BuilderConfig | None = None,
    logger: StructuredLogger | None = None,
) -> MimeMessage:
    return MessageBuilder(config=config, logger=logger).build(message)
