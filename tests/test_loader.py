from __future__ import annotations

import base64
import json
from pathlib import Path

import pytest

from mimebridge.errors import MessageSpecError
from mimebridge.loader import load_flat_message
from mimebridge.models import MailPriority


def _write_assets(tmp_path: Path) -> None:
    (tmp_path / "view.html").write_text("<html><body><img src='cid:logo'></body></html>", encoding="utf-8")
    (tmp_path / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n")
    (tmp_path / "report.pdf").write_bytes(b"%PDF-1.4")


def test_yaml_description_resolves_content_files(tmp_path: Path) -> None:
    _write_assets(tmp_path)
    description = tmp_path / "message.yaml"
    description.write_text(
        """
from: "Alice <alice@example.com>"
to:
  - bob@example.com
  - "Carol <carol@example.com>"
subject: Quarterly report
priority: high
body: See attached.
alternate_views:
  - path: view.html
    content_type: "text/html; charset=utf-8"
    linked_resources:
      - path: logo.png
        content_id: logo
attachments:
  - path: report.pdf
    transfer_encoding: base64
""",
        encoding="utf-8",
    )

    message = load_flat_message(description)

    assert message.from_address.display_name == "Alice"
    assert [a.address for a in message.to] == ["bob@example.com", "carol@example.com"]
    assert message.priority is MailPriority.HIGH
    view = message.alternate_views[0]
    assert view.content_stream.read().startswith(b"<html>")
    resource = view.linked_resources[0]
    assert resource.content_type == "image/png"
    assert resource.content_id == "logo"
    attachment = message.attachments[0]
    assert attachment.name == "report.pdf"
    assert attachment.content_type == "application/pdf"
    assert attachment.content_disposition == 'attachment; filename="report.pdf"'
    assert attachment.content_stream.read() == b"%PDF-1.4"


def test_json_description_with_inline_data(tmp_path: Path) -> None:
    description = tmp_path / "message.json"
    description.write_text(
        json.dumps(
            {
                "to": "bob@example.com",
                "alternate_views": [{"text": "<p>hi</p>", "content_type": "text/html"}],
                "attachments": [
                    {
                        "base64": base64.b64encode(b"\x00\x01").decode("ascii"),
                        "name": "blob.bin",
                    }
                ],
            }
        ),
        encoding="utf-8",
    )

    message = load_flat_message(description)

    assert message.alternate_views[0].content_stream.read() == b"<p>hi</p>"
    assert message.attachments[0].content_stream.read() == b"\x00\x01"
    assert message.attachments[0].content_type == "application/octet-stream"


def test_missing_description_raises(tmp_path: Path) -> None:
    with pytest.raises(MessageSpecError):
        load_flat_message(tmp_path / "nope.yaml")


def test_unsupported_suffix_raises(tmp_path: Path) -> None:
    description = tmp_path / "message.txt"
    description.write_text("to: bob@example.com", encoding="utf-8")

    with pytest.raises(MessageSpecError):
        load_flat_message(description)


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "attachments:\n  - content_type: text/plain\n",
        "attachments:\n  - text: a\n    base64: YQ==\n",
        "attachments:\n  - path: missing.bin\n",
        "attachments:\n  - base64: '***'\n",
        "priority: whenever\n",
        "to: [unclosed\n",
    ],
)
def test_bad_descriptions_raise_spec_error(tmp_path: Path, content: str) -> None:
    description = tmp_path / "message.yml"
    description.write_text(content, encoding="utf-8")

    with pytest.raises(MessageSpecError):
        load_flat_message(description)
