from __future__ import annotations

"""MIME document tree.

Nodes are frozen dataclasses: a composite receives its complete child tuple at
construction time and a leaf is re-tagged by building a new value, so a tree
cannot change once it has been attached to a MimeMessage.
"""

import io
from dataclasses import dataclass, field
from email.headerregistry import Address
from enum import Enum
from typing import Iterator, Union

from mimebridge.mime.headers import (
    ContentDisposition,
    ContentType,
    HeaderList,
    parse_address_list,
)


class ContentEncoding(str, Enum):
    SEVEN_BIT = "7bit"
    QUOTED_PRINTABLE = "quoted-printable"
    BASE64 = "base64"


@dataclass(frozen=True)
class TextPart:
    """Body text leaf. A charset of None means plain US-ASCII."""
    subtype: str = "plain"
    text: str = ""
    charset: str | None = None

    @property
    def content_type(self) -> ContentType:
        params = (("charset", self.charset),) if self.charset else ()
        return ContentType("text", self.subtype, params)

    def walk(self) -> Iterator[MimeNode]:
        yield self


@dataclass(frozen=True)
class MimePart:
    """Typed leaf whose payload lives in an in-memory buffer."""
    content_type: ContentType
    content: io.BytesIO = field(default_factory=io.BytesIO, compare=False, repr=False)
    content_disposition: ContentDisposition | None = None
    transfer_encoding: ContentEncoding | None = None
    content_id: str | None = None
    content_location: str | None = None

    def get_bytes(self) -> bytes:
        # getvalue() leaves the read position alone
        return self.content.getvalue()

    def walk(self) -> Iterator[MimeNode]:
        yield self


@dataclass(frozen=True)
class Multipart:
    subtype: str
    children: tuple[MimeNode, ...] = ()
    parameters: tuple[tuple[str, str], ...] = ()
    content_location: str | None = None

    def __post_init__(self) -> None:
        children = tuple(self.children)
        if len({id(child) for child in children}) != len(children):
            raise ValueError("a MIME part cannot appear twice in the same multipart")
        object.__setattr__(self, "children", children)

    @property
    def content_type(self) -> ContentType:
        return ContentType("multipart", self.subtype, self.parameters)

    def walk(self) -> Iterator[MimeNode]:
        yield self
        for child in self.children:
            yield from child.walk()


MimeNode = Union[TextPart, MimePart, Multipart]


def iter_leaves(node: MimeNode) -> Iterator[TextPart | MimePart]:
    for part in node.walk():
        if not isinstance(part, Multipart):
            yield part


@dataclass(frozen=True)
class MimeMessage:
    headers: HeaderList
    body: MimeNode

    @property
    def subject(self) -> str | None:
        return self.headers.get("Subject")

    @property
    def sender(self) -> Address | None:
        found = parse_address_list(self.headers.get("Sender"))
        return found[0] if found else None

    @property
    def from_(self) -> tuple[Address, ...]:
        return parse_address_list(self.headers.get("From"))

    @property
    def reply_to(self) -> tuple[Address, ...]:
        return parse_address_list(self.headers.get("Reply-To"))

    @property
    def to(self) -> tuple[Address, ...]:
        return parse_address_list(self.headers.get("To"))

    @property
    def cc(self) -> tuple[Address, ...]:
        return parse_address_list(self.headers.get("Cc"))

    @property
    def bcc(self) -> tuple[Address, ...]:
        return parse_address_list(self.headers.get("Bcc"))
