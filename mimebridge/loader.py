from __future__ import annotations

import base64
import binascii
import io
import json
import mimetypes
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mimebridge.errors import MessageSpecError
from mimebridge.models import FlatMessage

_SOURCES = ("path", "text", "base64")


def load_flat_message(path: Path) -> FlatMessage:
    """Load a YAML/JSON message description into a FlatMessage.

    Content items give their payload as exactly one of `path` (relative to the
    description file), `text` (UTF-8 encoded) or `base64`.
    """
    if not path.exists():
        raise MessageSpecError(
            f"message description does not exist: {path}",
            stage="load",
            field=str(path),
        )

    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        elif path.suffix.lower() == ".json":
            raw = json.loads(path.read_text(encoding="utf-8"))
        else:
            raise MessageSpecError(
                "message description must be yaml/yml/json",
                stage="load",
                field=str(path),
            )
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise MessageSpecError(
            f"message description is not valid yaml/json: {exc}",
            stage="load",
            field=str(path),
        ) from exc

    if not isinstance(raw, dict):
        raise MessageSpecError(
            "message description must be an object",
            stage="load",
            field=str(path),
        )

    base_dir = path.parent
    data = dict(raw)
    data["alternate_views"] = [_resolve_view(view, base_dir) for view in raw.get("alternate_views") or []]
    data["attachments"] = [
        _resolve_item(item, base_dir, name_from_path=True) for item in raw.get("attachments") or []
    ]

    try:
        return FlatMessage.model_validate(data)
    except ValidationError as exc:
        raise MessageSpecError(
            f"invalid message description: {exc}",
            stage="load",
            field=str(path),
        ) from exc


def _resolve_view(raw: Any, base_dir: Path) -> dict[str, Any]:
    view = _resolve_item(raw, base_dir)
    view["linked_resources"] = [
        _resolve_item(resource, base_dir) for resource in view.get("linked_resources") or []
    ]
    return view


def _resolve_item(raw: Any, base_dir: Path, *, name_from_path: bool = False) -> dict[str, Any]:
    if not isinstance(raw, dict):
        raise MessageSpecError("content item must be an object", stage="load")

    item = dict(raw)
    sources = [key for key in _SOURCES if key in item]
    if len(sources) != 1:
        raise MessageSpecError(
            "content item needs exactly one of path/text/base64",
            stage="load",
            field=", ".join(sources) or None,
        )

    source = sources[0]
    value = item.pop(source)
    if source == "path":
        file_path = base_dir / str(value)
        if not file_path.is_file():
            raise MessageSpecError(
                f"content file does not exist: {file_path}",
                stage="load",
                field="path",
            )
        item["content_stream"] = io.BytesIO(file_path.read_bytes())
        if "content_type" not in item:
            guessed, _ = mimetypes.guess_type(file_path.name)
            if guessed:
                item["content_type"] = guessed
        if name_from_path:
            item.setdefault("name", file_path.name)
    elif source == "text":
        item["content_stream"] = str(value).encode("utf-8")
    else:
        try:
            item["content_stream"] = base64.b64decode(str(value), validate=True)
        except binascii.Error as exc:
            raise MessageSpecError(
                f"content item has invalid base64 data: {exc}",
                stage="load",
                field="base64",
            ) from exc
    return item
