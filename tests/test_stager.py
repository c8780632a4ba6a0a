"""
Tests for ArtifactStager.

Staging runs against a real temporary filesystem; only failure injection
uses patching.
"""

from pathlib import Path
from unittest.mock import patch

import pytest

from quiesce.core.errors import StagingError
from quiesce.core.stage.stager import ArtifactStager, load_payload


class TestStage:
    """Tests for ArtifactStager.stage."""

    def test_extracts_payload(self, tmp_path: Path, payload: bytes) -> None:
        """The archive contents land in the destination directory."""
        dest = tmp_path / "APC"
        result = ArtifactStager().stage(payload, dest)

        assert result == dest
        assert (dest / "panel.ini").read_text() == "[panel]\n"
        assert (dest / "bin" / "tool.sh").exists()

    def test_temp_archive_removed_after_extraction(self, tmp_path: Path, payload: bytes) -> None:
        """The temporary archive does not outlive a successful stage."""
        dest = tmp_path / "APC"
        stager = ArtifactStager()
        stager.stage(payload, dest)

        assert stager.temp_archive_for(dest) == tmp_path / "APC.zip"
        assert not (tmp_path / "APC.zip").exists()

    def test_explicit_temp_archive(self, tmp_path: Path, payload: bytes) -> None:
        """A configured temp archive path is used instead of the derived one."""
        temp = tmp_path / "scratch" / "payload.zip"
        stager = ArtifactStager(temp_archive=temp)

        assert stager.temp_archive_for(tmp_path / "APC") == temp
        stager.stage(payload, tmp_path / "APC")
        assert not temp.exists()

    def test_removes_previous_install(self, tmp_path: Path, payload: bytes) -> None:
        """Stale files from an earlier install are gone after staging."""
        dest = tmp_path / "APC"
        (dest / "old").mkdir(parents=True)
        (dest / "old" / "stale.jar").write_text("stale")

        ArtifactStager().stage(payload, dest)

        assert not (dest / "old").exists()
        assert (dest / "panel.ini").exists()

    def test_corrupt_archive(self, tmp_path: Path) -> None:
        """A blob that is not a zip raises StagingError."""
        with pytest.raises(StagingError, match="Cannot extract"):
            ArtifactStager().stage(b"not a zip file", tmp_path / "APC")

    def test_corrupt_deflate_stream(self, tmp_path: Path, corrupt_deflate_payload: bytes) -> None:
        """A damaged compressed member raises StagingError, not a zlib error."""
        with pytest.raises(StagingError, match="Cannot extract"):
            ArtifactStager().stage(corrupt_deflate_payload, tmp_path / "APC")

    def test_unsupported_compression_method(
        self, tmp_path: Path, unsupported_method_payload: bytes
    ) -> None:
        """A member zipfile cannot decompress raises StagingError."""
        with pytest.raises(StagingError, match="Cannot extract"):
            ArtifactStager().stage(unsupported_method_payload, tmp_path / "APC")

    @pytest.mark.parametrize(
        "error",
        [EOFError("truncated"), RuntimeError("encrypted member"), NotImplementedError("lzma")],
    )
    def test_extraction_errors_wrapped(
        self, tmp_path: Path, payload: bytes, error: Exception
    ) -> None:
        """Every error zipfile raises while extracting becomes StagingError."""
        with patch("quiesce.core.stage.stager.zipfile.ZipFile.extractall", side_effect=error):
            with pytest.raises(StagingError) as exc_info:
                ArtifactStager().stage(payload, tmp_path / "APC")

        assert exc_info.value.__cause__ is error

    def test_unwritable_temp_archive(self, tmp_path: Path, payload: bytes) -> None:
        """Failure to write the temporary archive raises StagingError."""
        with patch.object(Path, "write_bytes", side_effect=PermissionError("denied")):
            with pytest.raises(StagingError, match="Cannot write temporary archive"):
                ArtifactStager().stage(payload, tmp_path / "APC")

    @pytest.mark.parametrize(
        "member",
        ["../escape.txt", "nested/../../escape.txt", "/etc/passwd", "C:/Windows/evil.dll"],
    )
    def test_rejects_unsafe_members(self, tmp_path: Path, zip_bytes, member: str) -> None:
        """Members that would escape the destination are refused."""
        blob = zip_bytes({member: "x"})

        with pytest.raises(StagingError, match="Unsafe path"):
            ArtifactStager().stage(blob, tmp_path / "APC")

        assert not (tmp_path / "escape.txt").exists()


class TestUnstage:
    """Tests for ArtifactStager.unstage."""

    def test_removes_install_and_temp_archive(self, tmp_path: Path, payload: bytes) -> None:
        """Both the install directory and a leftover archive are removed."""
        dest = tmp_path / "APC"
        stager = ArtifactStager()
        stager.stage(payload, dest)
        (tmp_path / "APC.zip").write_bytes(payload)

        assert stager.unstage(dest) is True
        assert not dest.exists()
        assert not (tmp_path / "APC.zip").exists()

    def test_idempotent(self, tmp_path: Path, payload: bytes) -> None:
        """Calling unstage twice never errors."""
        dest = tmp_path / "APC"
        stager = ArtifactStager()
        stager.stage(payload, dest)

        assert stager.unstage(dest) is True
        assert stager.unstage(dest) is True

    def test_never_staged(self, tmp_path: Path) -> None:
        """Unstaging paths that never existed is a no-op."""
        assert ArtifactStager().unstage(tmp_path / "never") is True

    def test_after_failed_stage(self, tmp_path: Path) -> None:
        """Unstage cleans up the temp archive a failed extraction left behind."""
        dest = tmp_path / "APC"
        stager = ArtifactStager()
        with pytest.raises(StagingError):
            stager.stage(b"garbage", dest)
        assert (tmp_path / "APC.zip").exists()

        assert stager.unstage(dest) is True
        assert not (tmp_path / "APC.zip").exists()

    def test_after_damaged_member(
        self, tmp_path: Path, unsupported_method_payload: bytes
    ) -> None:
        """Unstage removes a half-extracted install and its temp archive."""
        dest = tmp_path / "APC"
        stager = ArtifactStager()
        with pytest.raises(StagingError):
            stager.stage(unsupported_method_payload, dest)

        assert stager.unstage(dest) is True
        assert not dest.exists()
        assert not (tmp_path / "APC.zip").exists()

    def test_removal_error_is_reported_not_raised(self, tmp_path: Path, payload: bytes) -> None:
        """A directory that cannot be removed yields False."""
        dest = tmp_path / "APC"
        stager = ArtifactStager()
        stager.stage(payload, dest)

        with patch("quiesce.core.stage.stager.shutil.rmtree", side_effect=OSError("busy")):
            assert stager.unstage(dest) is False


class TestLoadPayload:
    """Tests for load_payload."""

    def test_reads_bytes(self, tmp_path: Path, payload: bytes) -> None:
        """The archive file is read verbatim."""
        archive = tmp_path / "APC.zip"
        archive.write_bytes(payload)
        assert load_payload(archive) == payload

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing archive raises StagingError."""
        with pytest.raises(StagingError, match="Cannot read payload"):
            load_payload(tmp_path / "missing.zip")
