"""
Unit tests for quarantine/vault holding areas and conflict resolution.
"""

import json
import pytest
import tempfile
from datetime import datetime, timezone
from pathlib import Path

from barricade.actions.conflict_resolver import ConflictResolver, ConflictStrategy
from barricade.actions.disposition_store import (
    META_SUFFIX,
    DispositionKind,
    DispositionStore,
)
from barricade.config.settings import StoreConfig
from barricade.security.hasher import ContentHasher
from barricade.utils.exceptions import (
    ConflictError,
    ErrorCode,
    FileAccessError,
    HashError,
    MoveError,
)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """Store with holding areas inside the temp directory."""
    config = StoreConfig(
        quarantine_directory=temp_dir / "Quarantine",
        vault_directory=temp_dir / "Vault",
    )
    return DispositionStore(config)


@pytest.fixture
def sample(temp_dir):
    """A file in a fake Downloads sector."""
    downloads = temp_dir / "Downloads"
    downloads.mkdir()
    path = downloads / "setup_crack.exe"
    path.write_bytes(b"MZ" + bytes(range(256)) * 4)
    return path


class TestConflictResolver:
    """Tests for ConflictResolver."""

    def test_free_destination(self, temp_dir):
        dest = temp_dir / "report.pdf"

        assert ConflictResolver().resolve(temp_dir / "x", dest) == dest

    def test_fail_strategy(self, temp_dir):
        dest = temp_dir / "report.pdf"
        dest.write_text("occupied")

        with pytest.raises(ConflictError) as exc_info:
            ConflictResolver(ConflictStrategy.FAIL).resolve(temp_dir / "x", dest)

        assert exc_info.value.error_code == ErrorCode.RESTORE_CONFLICT

    def test_rename_strategy(self, temp_dir):
        """Test rename picks the first free _restored_<n> name."""
        dest = temp_dir / "report.pdf"
        dest.write_text("occupied")
        (temp_dir / "report_restored_1.pdf").write_text("also occupied")

        resolved = ConflictResolver(ConflictStrategy.RENAME).resolve(temp_dir / "x", dest)

        assert resolved == temp_dir / "report_restored_2.pdf"

    def test_timestamp_strategy(self, temp_dir):
        dest = temp_dir / "photo.jpg"
        dest.write_text("occupied")

        resolved = ConflictResolver().resolve(temp_dir / "x", dest, ConflictStrategy.TIMESTAMP)

        assert resolved.parent == temp_dir
        assert resolved.name.startswith("photo_")
        assert resolved.suffix == ".jpg"
        assert not resolved.exists()


class TestPlace:
    """Tests for placing files into holding areas."""

    def test_quarantine_moves_file_and_writes_sidecar(self, store, sample, temp_dir):
        """Test both halves of the record exist after placement."""
        digest = ContentHasher().compute(sample)

        record = store.place(sample, "Manual quarantine request.", DispositionKind.QUARANTINE)

        assert not sample.exists()
        assert record.stored_path.parent == temp_dir / "Quarantine"
        assert record.stored_path.name.endswith("_setup_crack.exe.quarantined")
        assert record.stored_path.exists()
        assert record.meta_path.name == record.stored_path.name + META_SUFFIX

        meta = json.loads(record.meta_path.read_text())
        assert meta["originalPath"] == str(sample)
        assert meta["originalName"] == "setup_crack.exe"
        assert meta["reason"] == "Manual quarantine request."
        assert meta["sha256"] == digest

    def test_vault_suffix(self, store, sample, temp_dir):
        record = store.place(sample, "Securing sensitive data.", DispositionKind.VAULT)

        assert record.stored_path.parent == temp_dir / "Vault"
        assert record.id.endswith(".vault")
        assert record.kind == DispositionKind.VAULT

    def test_missing_source(self, store, temp_dir):
        with pytest.raises(FileAccessError) as exc_info:
            store.place(temp_dir / "gone.txt", "x", DispositionKind.QUARANTINE)

        assert exc_info.value.error_code == ErrorCode.FILE_NOT_FOUND

    def test_symlink_source_refused(self, store, sample, temp_dir):
        """Test a link is never placed in lieu of the file it points to."""
        link = temp_dir / "Downloads" / "payload.exe"
        link.symlink_to(sample)

        with pytest.raises(FileAccessError) as exc_info:
            store.place(link, "x", DispositionKind.QUARANTINE)

        assert exc_info.value.error_code == ErrorCode.SYMLINK_REFUSED
        assert link.is_symlink()
        assert sample.is_file()
        quarantine = temp_dir / "Quarantine"
        assert not quarantine.exists() or list(quarantine.iterdir()) == []

    def test_hash_failure_changes_nothing(self, store, sample, temp_dir, monkeypatch):
        """Test a digest failure aborts before anything moves."""
        def failing_compute(path):
            raise HashError("read interrupted", file_path=str(path))

        monkeypatch.setattr(store.hasher, "compute", failing_compute)

        with pytest.raises(HashError):
            store.place(sample, "x", DispositionKind.QUARANTINE)

        assert sample.exists()
        quarantine = temp_dir / "Quarantine"
        assert not quarantine.exists() or list(quarantine.iterdir()) == []

    def test_metadata_failure_rolls_back(self, store, sample, temp_dir, monkeypatch):
        """Test a failed sidecar commit returns the file to its origin."""
        content = sample.read_bytes()

        def failing_commit(record):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(store, "_commit_metadata", failing_commit)

        with pytest.raises(MoveError) as exc_info:
            store.place(sample, "x", DispositionKind.QUARANTINE)

        assert exc_info.value.error_code == ErrorCode.METADATA_WRITE_FAILED
        assert sample.read_bytes() == content
        assert list((temp_dir / "Quarantine").iterdir()) == []

    def test_same_name_twice_gets_distinct_ids(self, store, temp_dir):
        first = temp_dir / "a.txt"
        first.write_text("one")
        record_one = store.place(first, "x", DispositionKind.QUARANTINE)
        first.write_text("two")
        record_two = store.place(first, "x", DispositionKind.QUARANTINE)

        assert record_one.id != record_two.id
        assert len(store.list(DispositionKind.QUARANTINE)) == 2


class TestRestore:
    """Tests for restoring files from holding areas."""

    def test_round_trip_preserves_content(self, store, sample):
        """Test quarantine then restore returns identical bytes."""
        hasher = ContentHasher()
        digest = hasher.compute(sample)

        record = store.place(sample, "x", DispositionKind.QUARANTINE)
        restored = store.restore(record.id)

        assert restored == sample
        assert hasher.compute(restored) == digest
        assert not record.stored_path.exists()
        assert not record.meta_path.exists()
        assert store.list(DispositionKind.QUARANTINE) == []

    def test_vault_round_trip(self, store, sample):
        record = store.place(sample, "x", DispositionKind.VAULT)

        assert store.restore(record.id, DispositionKind.VAULT) == sample
        assert sample.exists()

    def test_restore_recreates_missing_parent(self, store, sample):
        record = store.place(sample, "x", DispositionKind.QUARANTINE)
        sample.parent.rmdir()

        assert store.restore(record.id) == sample

    def test_conflict_fail_leaves_record(self, store, sample):
        """Test an occupied original path fails and keeps the record."""
        record = store.place(sample, "x", DispositionKind.QUARANTINE)
        sample.write_text("new file at the same path")

        with pytest.raises(ConflictError):
            store.restore(record.id)

        assert sample.read_text() == "new file at the same path"
        assert record.stored_path.exists()
        assert record.meta_path.exists()

    def test_conflict_rename(self, temp_dir, sample):
        store = DispositionStore(StoreConfig(
            quarantine_directory=temp_dir / "Quarantine",
            vault_directory=temp_dir / "Vault",
            restore_conflict="rename",
        ))
        original = sample.read_bytes()
        record = store.place(sample, "x", DispositionKind.QUARANTINE)
        sample.write_text("occupant")

        restored = store.restore(record.id)

        assert restored == sample.parent / "setup_crack_restored_1.exe"
        assert restored.read_bytes() == original
        assert sample.read_text() == "occupant"

    def test_unknown_id(self, store):
        with pytest.raises(FileAccessError) as exc_info:
            store.restore("123_nothing.txt.quarantined")

        assert exc_info.value.error_code == ErrorCode.RECORD_NOT_FOUND

    @pytest.mark.parametrize("record_id", ["plain.txt", "../escape.quarantined", "a/b.vault"])
    def test_invalid_id(self, store, record_id):
        with pytest.raises(FileAccessError) as exc_info:
            store.get(record_id)

        assert exc_info.value.error_code == ErrorCode.RECORD_NOT_FOUND


class TestListing:
    """Tests for listing holding areas."""

    def test_orphans_are_skipped(self, store, sample, temp_dir):
        """Test content without sidecar and sidecar without content are ignored."""
        record = store.place(sample, "x", DispositionKind.QUARANTINE)
        quarantine = temp_dir / "Quarantine"
        (quarantine / "1_lonely.bin.quarantined").write_bytes(b"no sidecar")
        (quarantine / "2_ghost.bin.quarantined" f"{META_SUFFIX}").write_text(json.dumps({
            "originalPath": "/x/ghost.bin", "originalName": "ghost.bin",
            "timestamp": "2024-01-01T00:00:00+00:00", "reason": "", "sha256": "0" * 64,
        }))

        records = store.list(DispositionKind.QUARANTINE)

        assert [r.id for r in records] == [record.id]

    def test_corrupt_sidecar_is_skipped(self, store, sample, temp_dir):
        record = store.place(sample, "x", DispositionKind.QUARANTINE)
        record.meta_path.write_text("{not json")

        assert store.list(DispositionKind.QUARANTINE) == []

    def test_timestamp_without_offset_is_utc(self, store, temp_dir):
        """Test a sidecar with a naive timestamp still lists alongside fresh ones."""
        old = temp_dir / "old.txt"
        new = temp_dir / "new.txt"
        old.write_text("old")
        new.write_text("new")
        old_record = store.place(old, "x", DispositionKind.QUARANTINE)
        store.place(new, "x", DispositionKind.QUARANTINE)
        metadata = json.loads(old_record.meta_path.read_text())
        metadata["timestamp"] = "2024-01-01T00:00:00"
        old_record.meta_path.write_text(json.dumps(metadata))

        records = store.list(DispositionKind.QUARANTINE)

        assert [r.original_name for r in records] == ["old.txt", "new.txt"]
        assert records[0].timestamp == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_empty_holding_area(self, store):
        assert store.list(DispositionKind.VAULT) == []

    def test_listing_is_per_area(self, store, temp_dir):
        a = temp_dir / "a.txt"
        b = temp_dir / "b.txt"
        a.write_text("a")
        b.write_text("b")
        store.place(a, "x", DispositionKind.QUARANTINE)
        store.place(b, "y", DispositionKind.VAULT)

        assert [r.original_name for r in store.list(DispositionKind.QUARANTINE)] == ["a.txt"]
        assert [r.original_name for r in store.list(DispositionKind.VAULT)] == ["b.txt"]

    def test_record_to_dict(self, store, sample):
        record = store.place(sample, "because", DispositionKind.QUARANTINE)

        data = record.to_dict()

        assert data["id"] == record.id
        assert data["kind"] == "quarantine"
        assert data["storedPath"] == str(record.stored_path)
