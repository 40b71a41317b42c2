"""Pluggable .eml backends for built messages."""

from mimebridge.email.eml_backend import EmlBackend

__all__ = ["EmlBackend"]
