"""
Unit tests for Smart Organize and the score history.
"""

import json
import pytest
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from barricade.actions.file_operations import FileOperations
from barricade.actions.history_tracker import SecurityHistory
from barricade.classification.summary import SecuritySummary
from barricade.security.path_locks import PathLockRegistry
from barricade.utils.exceptions import ErrorCode, FileAccessError


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestFileOperations:
    """Tests for FileOperations."""

    def test_organize_by_file_type(self, temp_dir):
        """Test files go into a subfolder named after their type."""
        photo = temp_dir / "beach.jpg"
        doc = temp_dir / "notes.txt"
        photo.write_text("jpg")
        doc.write_text("txt")

        results = FileOperations().organize([photo, doc])

        assert all(r.success for r in results)
        assert (temp_dir / "Image" / "beach.jpg").exists()
        assert (temp_dir / "Document" / "notes.txt").exists()
        assert not photo.exists()

    def test_organize_with_category(self, temp_dir):
        source = temp_dir / "beach.jpg"
        source.write_text("jpg")

        results = FileOperations().organize([source], category="Holiday")

        assert results[0].new_path == temp_dir / "Holiday" / "beach.jpg"
        assert results[0].to_dict()["newPath"] == str(temp_dir / "Holiday" / "beach.jpg")

    def test_organize_collision_gets_timestamp(self, temp_dir):
        """Test an occupied destination is never overwritten."""
        (temp_dir / "Image").mkdir()
        (temp_dir / "Image" / "beach.jpg").write_text("already here")
        source = temp_dir / "beach.jpg"
        source.write_text("incoming")

        result = FileOperations().organize([source])[0]

        assert result.success
        assert result.new_path.parent == temp_dir / "Image"
        assert result.new_path.name.startswith("beach_")
        assert result.new_path.read_text() == "incoming"
        assert (temp_dir / "Image" / "beach.jpg").read_text() == "already here"

    def test_organize_skips_missing(self, temp_dir):
        present = temp_dir / "a.zip"
        present.write_text("zip")

        results = FileOperations().organize([temp_dir / "missing.zip", present])

        assert len(results) == 1
        assert (temp_dir / "Archive" / "a.zip").exists()

    def test_organize_unknown_type(self, temp_dir):
        source = temp_dir / "thing.xyz"
        source.write_text("?")

        FileOperations().organize([source])

        assert (temp_dir / "Other" / "thing.xyz").exists()

    def test_organize_reports_failure(self, temp_dir):
        """Test a file that cannot be moved yields a failed result."""
        (temp_dir / "Document").write_text("a file where the folder should be")
        source = temp_dir / "notes.txt"
        source.write_text("txt")

        result = FileOperations().organize([source])[0]

        assert not result.success
        assert result.message
        assert source.exists()

    def test_move_file_missing(self, temp_dir):
        with pytest.raises(FileAccessError) as exc_info:
            FileOperations().move_file(temp_dir / "missing.txt", temp_dir / "dest")

        assert exc_info.value.error_code == ErrorCode.FILE_NOT_FOUND

    def test_move_holds_source_lock(self, temp_dir):
        locks = PathLockRegistry()
        source = temp_dir / "a.txt"
        source.write_text("a")

        FileOperations(locks=locks).move_file(source, temp_dir / "dest")

        assert not locks.is_locked(source)
        assert (temp_dir / "dest" / "a.txt").exists()


class TestSecurityHistory:
    """Tests for SecurityHistory."""

    @pytest.fixture
    def history_file(self, temp_dir):
        return temp_dir / "history.json"

    def test_record_and_persist(self, history_file):
        """Test entries survive a reload."""
        history = SecurityHistory(history_file)
        when = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

        history.record(SecuritySummary(integrity_score=72, malicious_count=1), when=when)

        reloaded = SecurityHistory(history_file)
        assert len(reloaded) == 1
        entry = reloaded.get_recent()[0]
        assert entry.score == 72
        assert entry.threats == 1
        assert entry.date == when.isoformat()

    def test_get_recent_oldest_first(self, history_file):
        history = SecurityHistory(history_file)
        for score in (90, 80, 70, 60):
            history.record(SecuritySummary(integrity_score=score))

        assert [e.score for e in history.get_recent(3)] == [80, 70, 60]
        assert history.get_recent(0) == []

    def test_total_threats(self, history_file):
        history = SecurityHistory(history_file)
        history.record(SecuritySummary(malicious_count=2))
        history.record(SecuritySummary(malicious_count=3))

        assert history.total_threats() == 5

    def test_history_is_capped(self, history_file, monkeypatch):
        monkeypatch.setattr(SecurityHistory, "MAX_HISTORY_SIZE", 3)
        history = SecurityHistory(history_file)
        for score in range(5):
            history.record(SecuritySummary(integrity_score=score))

        assert [e.score for e in history.get_recent(10)] == [2, 3, 4]

    def test_corrupt_file_starts_empty(self, history_file):
        history_file.write_text("{broken")

        assert len(SecurityHistory(history_file)) == 0

    def test_clear_history(self, history_file):
        history = SecurityHistory(history_file)
        history.record(SecuritySummary())

        history.clear_history()

        assert len(history) == 0
        assert json.loads(history_file.read_text()) == {"entries": []}

    def test_score_change(self, history_file):
        history = SecurityHistory(history_file)
        assert history.score_change() == 0

        history.record(SecuritySummary(integrity_score=90))
        history.record(SecuritySummary(integrity_score=65))

        assert history.score_change() == -25
