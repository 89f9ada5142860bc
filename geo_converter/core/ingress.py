"""Ingress boundary helpers for file and text inputs.

Centralises two cross-cutting input concerns so the orchestrator and the
CLI only deal with validated inputs:

- **InputFile**: an in-memory file (name, bytes, MIME type) with helpers
  to read it as text or encode it as a data URI.
- **validate_files**: the per-mode file-type gate. A single failing file
  rejects the whole selection; there is no partial acceptance.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import TYPE_CHECKING

from geo_converter.core.constants import (
    ACCEPTED_EXTENSIONS,
    ACCEPTED_MIME_PREFIXES,
    ACCEPTED_MIME_TYPES,
    EXPECTED_TYPE_LABELS,
    ConversionMode,
)
from geo_converter.core.exceptions import FileTypeError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger("geo_converter.core.ingress")


@dataclass(frozen=True, slots=True)
class InputFile:
    """A user-supplied file held in memory.

    Attributes:
        name: Original filename including extension.
        content: Raw file bytes.
        media_type: MIME type reported by the caller (may be empty).
    """

    name: str
    content: bytes
    media_type: str = ""

    @classmethod
    def from_path(cls, path: Path | str) -> InputFile:
        """Read a file from disk, guessing its MIME type from the extension."""
        path = Path(path)
        media_type, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, content=path.read_bytes(), media_type=media_type or "")

    @property
    def stem(self) -> str:
        """Filename without its final extension."""
        return PurePath(self.name).stem

    @property
    def suffix(self) -> str:
        """Lower-cased final extension including the dot."""
        return PurePath(self.name).suffix.lower()

    @property
    def effective_media_type(self) -> str:
        """Caller-reported MIME type, else one guessed from the extension."""
        if self.media_type:
            return self.media_type
        guessed, _ = mimetypes.guess_type(self.name)
        return guessed or ""

    def text(self) -> str:
        """Decode the content as UTF-8, dropping a leading byte order mark."""
        return self.content.decode("utf-8-sig", errors="replace")

    def to_data_uri(self) -> str:
        """Encode the content as a base64 ``data:`` URI."""
        media_type = self.effective_media_type or "application/octet-stream"
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{media_type};base64,{encoded}"


def is_accepted(mode: ConversionMode, file: InputFile) -> bool:
    """Return whether *file* passes the file-type gate for *mode*."""
    name = file.name.lower()
    media_type = file.effective_media_type.lower()
    if any(name.endswith(ext) for ext in ACCEPTED_EXTENSIONS.get(mode, ())):
        return True
    if media_type in ACCEPTED_MIME_TYPES.get(mode, ()):
        return True
    return any(media_type.startswith(p) for p in ACCEPTED_MIME_PREFIXES.get(mode, ()))


def validate_files(mode: ConversionMode, files: Sequence[InputFile]) -> None:
    """Apply the file-type gate for *mode* to every file.

    Raises:
        FileTypeError: On the first file that fails the gate. The message
            names the extension(s) the mode expects.
    """
    for file in files:
        if not is_accepted(mode, file):
            logger.warning(
                "File rejected by type gate | mode=%s | file=%s | media_type=%s",
                mode,
                file.name,
                file.media_type,
            )
            msg = f"Please upload only {EXPECTED_TYPE_LABELS[mode]} files."
            raise FileTypeError(msg)
