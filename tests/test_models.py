from __future__ import annotations

import io

import pytest
from pydantic import ValidationError

from mimebridge.models import (
    AlternateView,
    Attachment,
    FlatMessage,
    LinkedResource,
    MailAddress,
    MailPriority,
    TransferEncoding,
)


def test_mail_address_accepts_display_string() -> None:
    address = MailAddress.model_validate("Alice Example <alice@example.com>")

    assert address.display_name == "Alice Example"
    assert address.address == "alice@example.com"


def test_mail_address_rejects_blank() -> None:
    with pytest.raises(ValidationError):
        MailAddress(address="   ")


def test_flat_message_accepts_from_alias_and_single_recipients() -> None:
    message = FlatMessage.model_validate(
        {
            "from": "alice@example.com",
            "to": "bob@example.com",
            "cc": {"address": "carol@example.com", "display_name": "Carol"},
            "headers": {"X-Campaign": "spring"},
            "priority": "high",
        }
    )

    assert message.from_address == MailAddress(address="alice@example.com")
    assert [a.address for a in message.to] == ["bob@example.com"]
    assert message.cc[0].display_name == "Carol"
    assert message.headers == [("X-Campaign", "spring")]
    assert message.priority is MailPriority.HIGH
    assert message.bcc == []


def test_flat_message_rejects_unknown_priority_and_charset() -> None:
    with pytest.raises(ValidationError):
        FlatMessage(priority="urgent")

    with pytest.raises(ValidationError):
        FlatMessage(subject="hi", subject_encoding="no-such-charset")


def test_content_stream_coercion() -> None:
    from_bytes = LinkedResource(content_stream=b"abc")
    from_text = AlternateView(content_stream="café", content_type="text/plain; charset=utf-8")
    stream = io.BytesIO(b"raw")
    from_stream = Attachment(content_stream=stream)

    assert from_bytes.content_stream.read() == b"abc"
    assert from_text.content_stream.read() == "café".encode("utf-8")
    assert from_stream.content_stream is stream
    assert from_bytes.content_type == "application/octet-stream"
    assert from_bytes.transfer_encoding is TransferEncoding.UNKNOWN


def test_content_stream_must_be_readable() -> None:
    with pytest.raises(ValidationError):
        Attachment(content_stream=12345)


def test_attachment_name_becomes_filename() -> None:
    named = Attachment(content_stream=b"x", name='say "hi".txt')
    explicit = Attachment(content_stream=b"x", name="ignored.txt", content_disposition="inline; filename=logo.png")

    assert named.content_disposition == 'attachment; filename="say \\"hi\\".txt"'
    assert explicit.content_disposition == "inline; filename=logo.png"


def test_only_attachments_default_to_a_disposition() -> None:
    assert Attachment(content_stream=b"x").content_disposition == "attachment"
    assert AlternateView(content_stream=b"x").content_disposition is None
    assert LinkedResource(content_stream=b"x").content_disposition is None
