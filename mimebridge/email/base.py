from __future__ import annotations

from pathlib import Path
from typing import Protocol

from mimebridge.mime.parts import MimeMessage
from mimebridge.models import FlatMessage


class EmlWriter(Protocol):
    def build_message(self, *, message: FlatMessage) -> MimeMessage:
        """Build a MIME document from a flat message."""

    def write_message(self, *, message: MimeMessage, out_path: Path) -> None:
        """Persist message to .eml."""
