from __future__ import annotations

"""Header-level MIME primitives.

Parsing is delegated to the standard library header registry; any defect it
reports is surfaced as a MimeFormatError instead of being silently repaired.
"""

import re
from dataclasses import dataclass
from email.errors import HeaderParseError
from email.headerregistry import Address, HeaderRegistry
from email.utils import formataddr, quote
from typing import Iterable, Iterator

from mimebridge.errors import MimeFormatError

_registry = HeaderRegistry()

# RFC 2045 tspecials plus space and controls
_TSPECIALS = set('()<>@,;:\\"/[]?= \t')

# CRLF (or bare LF) followed by whitespace is a folding point
_FOLD = re.compile(r"\r?\n(?=[ \t])")


@dataclass(frozen=True)
class Header:
    name: str
    value: str
    charset: str | None = None


class HeaderList:
    """Ordered header collection; field names compare case-insensitively."""

    def __init__(self, headers: Iterable[Header | tuple[str, str]] = ()) -> None:
        self._headers: list[Header] = []
        for item in headers:
            if isinstance(item, Header):
                self.append(item.name, item.value, charset=item.charset)
            else:
                name, value = item
                self.append(name, value)

    def append(self, name: str, value: str, *, charset: str | None = None) -> None:
        value = _check_header(name, value)
        self._headers.append(Header(name=name, value=value, charset=charset))

    def remove_all(self, name: str) -> int:
        key = name.lower()
        kept = [h for h in self._headers if h.name.lower() != key]
        removed = len(self._headers) - len(kept)
        self._headers = kept
        return removed

    def replace(self, name: str, value: str, *, charset: str | None = None) -> None:
        """Erase every entry for `name`, then set a single new one.

        The new entry takes the position of the first erased entry, or goes
        last when the field was absent.
        """
        value = _check_header(name, value)
        key = name.lower()
        header = Header(name=name, value=value, charset=charset)
        for index, existing in enumerate(self._headers):
            if existing.name.lower() == key:
                self.remove_all(name)
                self._headers.insert(index, header)
                return
        self._headers.append(header)

    def get(self, name: str, default: str | None = None) -> str | None:
        key = name.lower()
        for header in self._headers:
            if header.name.lower() == key:
                return header.value
        return default

    def get_all(self, name: str) -> list[str]:
        key = name.lower()
        return [h.value for h in self._headers if h.name.lower() == key]

    def find(self, name: str) -> Header | None:
        key = name.lower()
        return next((h for h in self._headers if h.name.lower() == key), None)

    def items(self) -> list[tuple[str, str]]:
        return [(h.name, h.value) for h in self._headers]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None

    def __iter__(self) -> Iterator[Header]:
        return iter(list(self._headers))

    def __len__(self) -> int:
        return len(self._headers)

    def __repr__(self) -> str:
        return f"HeaderList({self.items()!r})"


def _check_header(name: str, value: str) -> str:
    """Validate a header field and return its value with folding removed."""
    if not name or any(c in name for c in ": \t\r\n"):
        raise MimeFormatError(f"invalid header name: {name!r}", stage="headers", field=name, value=value)
    unfolded = _FOLD.sub("", value)
    if "\r" in unfolded or "\n" in unfolded:
        raise MimeFormatError(
            f"header {name} value cannot contain line breaks",
            stage="headers",
            field=name,
            value=value,
        )
    return unfolded


def _format_parameters(parameters: tuple[tuple[str, str], ...]) -> str:
    parts = []
    for name, value in parameters:
        if not value or any(c in _TSPECIALS for c in value):
            parts.append(f'; {name}="{quote(value)}"')
        else:
            parts.append(f"; {name}={value}")
    return "".join(parts)


@dataclass(frozen=True)
class ContentType:
    media_type: str
    media_subtype: str
    parameters: tuple[tuple[str, str], ...] = ()

    @property
    def mime_type(self) -> str:
        return f"{self.media_type}/{self.media_subtype}"

    def param(self, name: str) -> str | None:
        key = name.lower()
        return next((v for k, v in self.parameters if k == key), None)

    def __str__(self) -> str:
        return self.mime_type + _format_parameters(self.parameters)


@dataclass(frozen=True)
class ContentDisposition:
    disposition: str
    parameters: tuple[tuple[str, str], ...] = ()

    @property
    def is_attachment(self) -> bool:
        return self.disposition == "attachment"

    @property
    def filename(self) -> str | None:
        return next((v for k, v in self.parameters if k == "filename"), None)

    def __str__(self) -> str:
        return self.disposition + _format_parameters(self.parameters)


def parse_content_type(value: str) -> ContentType:
    header = _registry("content-type", value)
    if header.defects:
        raise MimeFormatError(
            f"invalid content type {value!r}: {header.defects[0]}",
            stage="parse",
            field="content-type",
            value=value,
        )
    return ContentType(
        media_type=header.maintype,
        media_subtype=header.subtype,
        parameters=tuple(header.params.items()),
    )


def parse_content_disposition(value: str) -> ContentDisposition:
    header = _registry("content-disposition", value)
    if header.defects or not header.content_disposition:
        reason = header.defects[0] if header.defects else "missing disposition type"
        raise MimeFormatError(
            f"invalid content disposition {value!r}: {reason}",
            stage="parse",
            field="content-disposition",
            value=value,
        )
    return ContentDisposition(
        disposition=header.content_disposition,
        parameters=tuple(header.params.items()),
    )


def mailbox_address(display_name: str | None, address: str) -> Address:
    try:
        return Address(display_name=display_name or "", addr_spec=address)
    except (ValueError, HeaderParseError) as exc:
        raise MimeFormatError(
            f"invalid mailbox address {address!r}: {exc}",
            stage="parse",
            field="address",
            value=address,
        ) from exc


def _ascii_addr_spec(address: Address) -> str:
    if address.domain.isascii():
        return address.addr_spec
    try:
        domain = address.domain.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise MimeFormatError(
            f"invalid mailbox domain {address.domain!r}: {exc}",
            stage="parse",
            field="address",
            value=address.addr_spec,
        ) from exc
    return Address(username=address.username, domain=domain).addr_spec


def format_address_list(addresses: Iterable[Address], *, charset: str = "utf-8") -> str:
    """Render mailboxes as header text; international domains go out in IDNA form."""
    formatted = []
    for address in addresses:
        addr_spec = _ascii_addr_spec(address)
        try:
            formatted.append(formataddr((address.display_name, addr_spec), charset=charset))
        except UnicodeEncodeError as exc:
            raise MimeFormatError(
                f"mailbox {addr_spec!r} has a non-ASCII local part",
                stage="parse",
                field="address",
                value=addr_spec,
            ) from exc
    return ", ".join(formatted)


def parse_address_list(value: str | None) -> tuple[Address, ...]:
    if not value:
        return ()
    return tuple(_registry("to", value).addresses)
