from __future__ import annotations

"""Input data models for the message builder.

Hierarchy:
- MailAddress: display name + address string
- ContentItem: shared shape of every content-carrying input (stream, type, id, encoding hint)
  - LinkedResource: inline resource referenced from an alternate view
  - AlternateView: an alternative rendering of the body plus its linked resources
  - Attachment: a content item with a content-disposition descriptor
- FlatMessage: the whole flat email (headers, addresses, subject, body, views, attachments)

All models use Pydantic for validation. Content streams are arbitrary readable
binary objects; bytes and str inputs are wrapped into an in-memory stream.
"""

import codecs
import io
from datetime import datetime, timezone
from email.utils import parseaddr
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class MailPriority(str, Enum):
    """Message priority (NORMAL/HIGH/LOW).

    Str subclass so description files can use plain strings.
    """
    NORMAL = "normal"
    HIGH = "high"
    LOW = "low"


class TransferEncoding(str, Enum):
    """Transfer-encoding hint carried by a content item."""
    UNKNOWN = "unknown"
    QUOTED_PRINTABLE = "quoted-printable"
    BASE64 = "base64"
    SEVEN_BIT = "7bit"
    EIGHT_BIT = "8bit"


class MailAddress(BaseModel):
    address: str
    display_name: str = ""

    @model_validator(mode="before")
    @classmethod
    def _from_string(cls, data: Any) -> Any:
        # "Alice <alice@example.com>" shorthand
        if isinstance(data, str):
            display_name, address = parseaddr(data)
            return {"display_name": display_name, "address": address or data}
        return data

    @field_validator("address")
    @classmethod
    def _address_not_empty(cls, value: str) -> str:
        v = value.strip()
        if not v:
            raise ValueError("address cannot be empty")
        return v


class ContentItem(BaseModel):
    """Anything that materializes into a single MIME leaf.

    Only attachments normally carry a content disposition; views and linked
    resources leave it unset.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    content_stream: Any
    content_type: str = "application/octet-stream"
    content_id: str | None = None
    content_disposition: str | None = None
    transfer_encoding: TransferEncoding = TransferEncoding.UNKNOWN

    @field_validator("content_stream", mode="before")
    @classmethod
    def _readable_stream(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.encode("utf-8")
        if isinstance(value, (bytes, bytearray)):
            return io.BytesIO(bytes(value))
        if not callable(getattr(value, "read", None)):
            raise ValueError("content_stream must be a readable binary stream")
        return value

    @field_validator("content_type")
    @classmethod
    def _content_type_not_empty(cls, value: str) -> str:
        v = value.strip()
        if not v:
            raise ValueError("content_type cannot be empty")
        return v


class LinkedResource(ContentItem):
    content_link: str | None = None


class AlternateView(ContentItem):
    base_uri: str | None = None
    linked_resources: list[LinkedResource] = Field(default_factory=list)


class Attachment(ContentItem):
    content_disposition: str = "attachment"
    name: str | None = None

    @model_validator(mode="after")
    def _filename_from_name(self) -> Attachment:
        if self.name and "filename" not in self.content_disposition.lower():
            escaped = self.name.replace("\\", "\\\\").replace('"', '\\"')
            self.content_disposition = f'{self.content_disposition}; filename="{escaped}"'
        return self


class FlatMessage(BaseModel):
    """A flat, loosely-typed email message.

    `headers` holds whatever the caller attached directly, in order. Address
    fields accept a single address or a list; empty means "not set".
    """
    model_config = ConfigDict(populate_by_name=True)

    headers: list[tuple[str, str]] = Field(default_factory=list)
    sender: MailAddress | None = None
    from_address: MailAddress | None = Field(default=None, alias="from")
    reply_to: list[MailAddress] = Field(default_factory=list)
    to: list[MailAddress] = Field(default_factory=list)
    cc: list[MailAddress] = Field(default_factory=list)
    bcc: list[MailAddress] = Field(default_factory=list)
    subject: str | None = None
    subject_encoding: str | None = None
    priority: MailPriority = MailPriority.NORMAL
    body: str | None = None
    is_body_html: bool = False
    body_encoding: str | None = None
    alternate_views: list[AlternateView] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)

    @field_validator("headers", mode="before")
    @classmethod
    def _headers_from_mapping(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return list(value.items())
        return value

    @field_validator("reply_to", "to", "cc", "bcc", mode="before")
    @classmethod
    def _single_address_to_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, (str, dict, MailAddress)):
            return [value]
        return value

    @field_validator("subject_encoding", "body_encoding")
    @classmethod
    def _known_charset(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            codecs.lookup(value)
        except LookupError as exc:
            raise ValueError(f"unknown charset: {value}") from exc
        return value


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
