"""
Payload staging.

Materializes the bundled archive into its install directory and removes it
again after the run:

- The blob is written to a temporary archive file first.
- Any previous install at the destination is removed.
- The archive is extracted, then the temporary file is deleted.

``unstage`` is safe on every exit path: missing paths are fine and removal
errors are logged, never raised.
"""

from __future__ import annotations

import logging
import shutil
import zipfile
import zlib
from pathlib import Path, PurePosixPath

from quiesce.core.errors import StagingError

logger = logging.getLogger(__name__)

# zipfile surfaces damaged or unsupported members through all of these
EXTRACT_ERRORS = (
    zipfile.BadZipFile,
    zlib.error,
    EOFError,
    NotImplementedError,
    RuntimeError,
    OSError,
)


def load_payload(path: Path) -> bytes:
    """
    Read a payload archive from disk.

    Raises:
        StagingError: If the file cannot be read
    """
    try:
        return path.read_bytes()
    except OSError as e:
        raise StagingError(f"Cannot read payload {path}: {e}") from e


class ArtifactStager:
    """
    Install and remove the tool payload.

    Attributes:
        temp_archive: Explicit temporary archive path, or None to derive one
            next to the destination (``<destination>.zip``)
    """

    def __init__(self, temp_archive: Path | None = None) -> None:
        self.temp_archive = temp_archive

    def temp_archive_for(self, destination_dir: Path) -> Path:
        """Return where the blob is written before extraction."""
        if self.temp_archive is not None:
            return self.temp_archive
        return destination_dir.with_name(destination_dir.name + ".zip")

    def stage(self, blob: bytes, destination_dir: Path) -> Path:
        """
        Write ``blob`` to disk and extract it into ``destination_dir``.

        Args:
            blob: Zip archive contents
            destination_dir: Install directory (replaced if it exists)

        Returns:
            The install directory

        Raises:
            StagingError: If writing, clearing, or extracting fails
        """
        archive_path = self.temp_archive_for(destination_dir)

        logger.info("Unpacking payload to %s", archive_path)
        try:
            archive_path.parent.mkdir(parents=True, exist_ok=True)
            archive_path.write_bytes(blob)
        except OSError as e:
            raise StagingError(f"Cannot write temporary archive {archive_path}: {e}") from e

        if destination_dir.exists():
            logger.info("Removing previous install at %s", destination_dir)
            try:
                shutil.rmtree(destination_dir)
            except OSError as e:
                raise StagingError(f"Cannot remove previous install {destination_dir}: {e}") from e

        logger.info("Installing payload into %s", destination_dir)
        try:
            with zipfile.ZipFile(archive_path) as archive:
                self._check_members(archive, destination_dir)
                archive.extractall(destination_dir)
        except EXTRACT_ERRORS as e:
            raise StagingError(f"Cannot extract {archive_path}: {e}") from e

        self._remove_file(archive_path)
        return destination_dir

    def unstage(self, destination_dir: Path) -> bool:
        """
        Remove the install directory and any leftover temporary archive.

        Args:
            destination_dir: Install directory passed to ``stage``

        Returns:
            True if nothing remains on disk
        """
        logger.info("Removing installed payload from %s", destination_dir)
        clean = True

        if destination_dir.exists():
            try:
                shutil.rmtree(destination_dir)
            except OSError as e:
                logger.warning("Could not remove %s: %s", destination_dir, e)
                clean = False

        if not self._remove_file(self.temp_archive_for(destination_dir)):
            clean = False

        return clean

    @staticmethod
    def _check_members(archive: zipfile.ZipFile, destination_dir: Path) -> None:
        """Reject members that would land outside the destination."""
        for member in archive.namelist():
            parts = PurePosixPath(member.replace("\\", "/")).parts
            # "C:" drive prefixes count as absolute on Windows
            if member.startswith(("/", "\\")) or ".." in parts or (parts and ":" in parts[0]):
                raise StagingError(f"Unsafe path in archive {destination_dir.name}: {member}")

    @staticmethod
    def _remove_file(path: Path) -> bool:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)
            return False
        return True
