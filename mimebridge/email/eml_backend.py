from __future__ import annotations

from pathlib import Path

from mimebridge.builder import MessageBuilder
from mimebridge.config import BuilderConfig
from mimebridge.mime.parts import MimeMessage, iter_leaves
from mimebridge.models import FlatMessage
from mimebridge.render.eml import write_eml_file
from mimebridge.storage.runs import StructuredLogger


class EmlBackend:
    """Default backend: builds the MIME tree and writes it as .eml."""

    def __init__(self, *, config: BuilderConfig, logger: StructuredLogger) -> None:
        self.config = config
        self.logger = logger
        self.builder = MessageBuilder(config=config, logger=logger)

    def build_message(self, *, message: FlatMessage) -> MimeMessage:
        built = self.builder.build(message)
        self.logger.info(
            "email_message_built",
            stage="email",
            status="ok",
            content_type=built.body.content_type.mime_type,
            leaf_count=sum(1 for _ in iter_leaves(built.body)),
        )
        return built

    def write_message(self, *, message: MimeMessage, out_path: Path) -> None:
        write_eml_file(
            message=message,
            out_path=out_path,
            default_charset=self.config.default_charset,
            max_line_length=self.config.max_line_length,
        )
        self.logger.info(
            "email_eml_written",
            stage="email",
            status="ok",
            path=str(out_path),
        )
