from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from uuid import uuid4

from mimebridge.config import load_config
from mimebridge.email.base import EmlWriter
from mimebridge.email.eml_backend import EmlBackend
from mimebridge.errors import MimeBridgeError
from mimebridge.loader import load_flat_message
from mimebridge.mime.parts import iter_leaves
from mimebridge.storage.runs import StructuredLogger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mimebridge", description="Build MIME messages from flat descriptions")
    subparsers = parser.add_subparsers(dest="command")

    build_parser_ = subparsers.add_parser("build", help="Build an .eml file from a message description")
    build_parser_.add_argument("--message", required=True, help="path to message description YAML/JSON")
    build_parser_.add_argument("--out", default=None, help="output .eml path (default: next to the description)")
    build_parser_.add_argument("--env-file", default=".env", help="dotenv file with MIMEBRIDGE_* settings")

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint.

    Loads the description, builds the MIME tree, writes the .eml and prints a
    JSON summary. Builder errors are reported on stderr with exit code 2.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "build":
        parser.print_help()
        return 1

    description = Path(args.message)
    out_path = Path(args.out) if args.out else description.with_suffix(".eml")

    cfg = load_config(args.env_file)
    logger = StructuredLogger(path=cfg.log_path, run_id=uuid4().hex[:12], min_level=cfg.log_level)
    backend: EmlWriter = EmlBackend(config=cfg, logger=logger)

    try:
        flat = load_flat_message(description)
        message = backend.build_message(message=flat)
        backend.write_message(message=message, out_path=out_path)
    except MimeBridgeError as exc:
        logger.error("cli_build_failed", stage=exc.stage, error_type=exc.__class__.__name__, error_message=str(exc))
        print(f"[mimebridge] {exc}", file=sys.stderr)
        return 2

    summary = {
        "status": "ok",
        "path": str(out_path),
        "content_type": message.body.content_type.mime_type,
        "parts": sum(1 for _ in iter_leaves(message.body)),
    }
    print(json.dumps(summary, indent=2, ensure_ascii=True))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
