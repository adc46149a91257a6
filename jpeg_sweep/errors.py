"""Typed failures raised by the pipeline and the atomic writer."""

from __future__ import annotations


class NormalizeError(Exception):
    """Base class for per-file failures."""


class DecodeError(NormalizeError):
    """The input is not a recognizable image or cannot be parsed."""


class UnsupportedFormatError(NormalizeError):
    """The container was recognized but has no defined transform path."""


class EncodeError(NormalizeError):
    """JPEG encoding failed."""


class CommitError(NormalizeError):
    """Writing the temporary file or renaming it onto the destination failed."""
