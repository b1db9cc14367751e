"""
Sanctuary Backend — Media Upload Gate
=======================================

What:  Validates, stages, commits and removes sermon audio files.
How:   Checks the declared MIME type and size, derives a readable filename
       from the original name, and writes the bytes with aiofiles.
Who:   Called by the sermon routes (staging) and SermonService
       (commit, discard, removal).

Upload lifecycle (two-phase):
    1. validate_media_type() / validate_size() reject bad uploads; nothing
       touches the disk
    2. stage() writes the bytes to `.staging-<uuid>.mp3` in the upload dir
    3. SermonService inserts the record, then StagedUpload.commit() renames
       the staged file onto its derived name
    4. If anything fails before commit, StagedUpload.discard() deletes the
       staged file, so no orphan audio is left behind

Filename derivation:
    "Sunday Service (Part 2).MP3" → "sunday-service-part-2mp3.mp3"
    Lowercased, punctuation stripped, spaces replaced by hyphens, fixed
    ".mp3" extension. Derived names are not unique: a second upload with the
    same derived name replaces the first file.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import aiofiles
import aiofiles.os

from sanctuary.config import Settings, settings as default_settings
from sanctuary.exceptions import FileStorageError, UnsupportedMediaTypeError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "audio/mpeg",
    "audio/mpeg3",
    "audio/x-mpeg-3",
    "audio/mp3",
})

AUDIO_EXTENSION = ".mp3"
FALLBACK_STEM = "sermon"
STAGING_PREFIX = ".staging-"

# Removed from original filenames; path separators included
STRIPPED_CHARACTERS = frozenset("!@#$%^&*()-=_+|;':\",.<>?`/\\")


def derive_filename(original_name: str) -> str:
    """Build the stored filename for an uploaded audio file."""
    lowered = (original_name or "").lower()
    stripped = "".join(ch for ch in lowered if ch not in STRIPPED_CHARACTERS)
    stem = "-".join(stripped.split(" "))
    if not stem.strip("-"):
        stem = FALLBACK_STEM
    return f"{stem}{AUDIO_EXTENSION}"


@dataclass
class StagedUpload:
    """An upload written to a temporary name, awaiting record creation."""

    staged_path: Path
    final_path: Path
    size: int

    @property
    def filename(self) -> str:
        return self.final_path.name

    async def commit(self) -> Path:
        """Move the staged file onto its public name."""
        try:
            await aiofiles.os.replace(self.staged_path, self.final_path)
        except (OSError, ValueError) as e:
            # ValueError: embedded NUL in the target name
            logger.error("Failed to commit upload %s: %s", self.final_path.name, e)
            raise FileStorageError(
                message="Failed to save the uploaded audio file. Please try again.",
                context={"path": str(self.final_path), "os_error": str(e)},
            )
        logger.info("Audio stored: %s (%d bytes)", self.final_path.name, self.size)
        return self.final_path

    async def discard(self) -> None:
        """Remove the staged file; a missing file is already discarded."""
        try:
            await aiofiles.os.remove(self.staged_path)
            logger.info("Discarded staged upload for %s", self.final_path.name)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Failed to discard staged upload %s: %s", self.staged_path, e)


class MediaService:
    """Owns the sermon audio directory (served read-only under /mp3)."""

    def __init__(self, upload_dir: Optional[str] = None, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.upload_dir = Path(upload_dir or self.config.upload_dir).resolve()
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info("MediaService initialized with upload_dir=%s", self.upload_dir)

    def validate_media_type(self, content_type: Optional[str]) -> str:
        """
        Check the declared MIME type against the audio allow-list.

        Parameters such as "; charset=..." are ignored.

        Raises:
            UnsupportedMediaTypeError: type missing or not allowed
        """
        media_type = (content_type or "").split(";", 1)[0].strip().lower()
        if media_type not in ALLOWED_MIME_TYPES:
            raise UnsupportedMediaTypeError(
                media_type=content_type,
                allowed=ALLOWED_MIME_TYPES,
                context={"field": "mp3"},
            )
        return media_type

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        max_mb = self.config.max_upload_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="The uploaded audio file is empty.",
                field="mp3",
            )

        if (content_length and content_length > self.config.max_upload_size) or (
            actual_size > self.config.max_upload_size
        ):
            raise ValidationError(
                message=f"Audio file is too large. Maximum size is {max_mb:.0f}MB.",
                field="mp3",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

    def path_for(self, filename: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            FileStorageError: name contains directory parts or is hidden
        """
        if not filename or Path(filename).name != filename or filename.startswith("."):
            raise FileStorageError(
                message="Invalid audio file name",
                context={"filename": filename},
            )
        return self.upload_dir / filename

    @staticmethod
    def resolve_filename(mp3_url: str) -> str:
        """Stored filename for a sermon, taken from the last segment of its URL."""
        path = unquote(urlparse(mp3_url or "").path)
        return path.rstrip("/").rsplit("/", 1)[-1]

    async def stage(
        self,
        original_name: Optional[str],
        content_type: Optional[str],
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StagedUpload:
        """
        Validate an upload and write it under a temporary name.

        Returns:
            StagedUpload to commit after the sermon record exists.

        Raises:
            UnsupportedMediaTypeError: declared type not allowed (415)
            ValidationError: empty or oversized upload (400)
            FileStorageError: disk write failed (500)
        """
        self.validate_media_type(content_type)
        self.validate_size(content_length, len(content))

        final_path = self.path_for(derive_filename(original_name or ""))
        staged_path = self.upload_dir / f"{STAGING_PREFIX}{uuid.uuid4().hex}{AUDIO_EXTENSION}"

        try:
            async with aiofiles.open(staged_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to stage upload at %s: %s", staged_path, e)
            if staged_path.exists():
                os.remove(staged_path)
            raise FileStorageError(
                message="Failed to save the uploaded audio file. Please try again.",
                context={"path": str(staged_path), "os_error": str(e)},
            )

        logger.debug("Staged %s as %s", final_path.name, staged_path.name)
        return StagedUpload(staged_path=staged_path, final_path=final_path, size=len(content))

    async def remove(self, filename: str) -> None:
        """
        Delete a stored audio file.

        Raises:
            FileStorageError: file missing, inaccessible, or not removable
        """
        path = self.path_for(filename)
        if not await aiofiles.os.path.isfile(path):
            logger.error("Audio file missing: %s", path)
            raise FileStorageError(
                message="Could not access the audio file for this sermon.",
                context={"path": str(path)},
            )
        try:
            await aiofiles.os.remove(path)
        except OSError as e:
            logger.error("Failed to remove audio file %s: %s", path, e)
            raise FileStorageError(
                message="Could not remove the audio file for this sermon.",
                context={"path": str(path), "os_error": str(e)},
            )
        logger.info("Removed audio file: %s", filename)


media_service = MediaService()
