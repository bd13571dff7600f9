from datetime import datetime
from unittest.mock import patch

import pytest
from freezegun import freeze_time

from shorty.backup import BackupManager, sanitize_backup_name
from shorty.errors import NotFoundError, StorageIOError


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "aliases"
    path.write_text("alias a='x'\n")
    return path


@freeze_time("2025-10-24 21:01:01")
def test_create_backup(backups, source):
    snapshot = backups.create_backup(source)

    assert snapshot.id == "aliases_20251024_210101_000000.txt"
    assert snapshot.created_at == datetime(2025, 10, 24, 21, 1, 1)
    assert snapshot.name is None
    assert snapshot.size == len("alias a='x'\n")
    assert snapshot.path.read_text() == source.read_text()


@freeze_time("2025-10-24 21:01:01")
def test_create_backup__same_instant_gets_sequence(backups, source):
    first = backups.create_backup(source, name="manual")
    second = backups.create_backup(source, name="manual")

    assert first.id == "aliases_20251024_210101_000000_manual.txt"
    assert second.id == "aliases_20251024_210101_000000-1_manual.txt"
    assert [s.id for s in backups.list_backups()] == [second.id, first.id]


def test_create_backup__missing_source(backups, tmp_path):
    with pytest.raises(NotFoundError):
        backups.create_backup(tmp_path / "missing")


def test_create_backup__copy_failure(backups, source):
    with patch("shorty.backup.shutil.copy2", side_effect=OSError("denied")):
        with pytest.raises(StorageIOError):
            backups.create_backup(source)


def test_create_backup__uses_clock(tmp_path, source):
    manager = BackupManager(tmp_path / "backups", clock=lambda: datetime(2024, 1, 2, 3, 4, 5, 6))

    assert manager.create_backup(source).id == "aliases_20240102_030405_000006.txt"


def test_list_backups__ignores_foreign_files(backups, source):
    backups.create_backup(source)
    (backups.backup_dir / "notes.txt").write_text("hello")
    (backups.backup_dir / "aliases_garbage.txt").write_text("hello")

    assert len(backups.list_backups()) == 1


def test_list_backups__no_directory(backups):
    assert backups.list_backups() == []


def test_get_latest(backups, source):
    with freeze_time("2025-10-20"):
        backups.create_backup(source)
    with freeze_time("2025-10-21"):
        newest = backups.create_backup(source)

    assert backups.get("latest") == newest


def test_get__missing(backups):
    with pytest.raises(NotFoundError):
        backups.get("latest")
    with pytest.raises(NotFoundError):
        backups.get("aliases_20250101_000000_000000.txt")


def test_restore_backs_up_live_file(backups, source):
    with freeze_time("2025-10-20"):
        old = backups.create_backup(source)
    source.write_text("alias b='y'\n")

    with freeze_time("2025-10-21"):
        backups.restore(old.id, source)

    assert source.read_text() == "alias a='x'\n"
    latest = backups.get("latest")
    assert latest.name == "pre-restore"
    assert latest.path.read_text() == "alias b='y'\n"


def test_restore__missing_snapshot_leaves_file(backups, source):
    with pytest.raises(NotFoundError):
        backups.restore("aliases_20250101_000000_000000.txt", source)

    assert source.read_text() == "alias a='x'\n"


def test_remove(backups, source):
    snapshot = backups.create_backup(source)

    backups.remove(snapshot.id)

    assert backups.list_backups() == []


def test_clean_keeps_newest(backups, source):
    for day in ("2025-09-01", "2025-09-02", "2025-09-03"):
        with freeze_time(day):
            backups.create_backup(source)

    with freeze_time("2025-10-24"):
        removed = backups.clean(7)

    assert removed == 2
    assert [s.created_at for s in backups.list_backups()] == [datetime(2025, 9, 3)]


def test_clean_keeps_recent(backups, source):
    with freeze_time("2025-10-01"):
        backups.create_backup(source)
    with freeze_time("2025-10-20"):
        backups.create_backup(source)
    with freeze_time("2025-10-22"):
        backups.create_backup(source)

    with freeze_time("2025-10-24"):
        assert backups.clean(7) == 1

    assert len(backups.list_backups()) == 2


def test_max_backups_prunes_oldest(tmp_path, source):
    manager = BackupManager(tmp_path / "backups", max_backups=2)
    for day in ("2025-10-01", "2025-10-02", "2025-10-03"):
        with freeze_time(day):
            manager.create_backup(source)

    assert [s.created_at.day for s in manager.list_backups()] == [3, 2]


def test_sanitize_backup_name():
    assert sanitize_backup_name("before big change!") == "before-big-change"


def test_restore__oldest_snapshot_with_full_directory(tmp_path, source):
    manager = BackupManager(tmp_path / "backups", max_backups=3)
    with freeze_time("2026-01-01"):
        oldest = manager.create_backup(source)
    source.write_text("alias b='y'\n")
    for day in ("2026-01-02", "2026-01-03"):
        with freeze_time(day):
            manager.create_backup(source)

    with freeze_time("2026-01-04"):
        manager.restore(oldest.id, source)

    assert source.read_text() == "alias a='x'\n"
    ids = [s.id for s in manager.list_backups()]
    assert len(ids) == 3
    assert oldest.id in ids
    assert manager.get("latest").name == "pre-restore"


def test_max_backups__keeps_new_snapshot_when_clock_is_behind(tmp_path, source):
    manager = BackupManager(tmp_path / "backups", max_backups=2)
    for day in ("2026-03-01", "2026-03-02"):
        with freeze_time(day):
            manager.create_backup(source)

    with freeze_time("2025-12-31"):
        snapshot = manager.create_backup(source)

    assert snapshot.path.exists()
    ids = [s.id for s in manager.list_backups()]
    assert ids == ["aliases_20260302_000000_000000.txt", snapshot.id]


def test_cleanup_old_backups__protected_ids_count_towards_keep(backups, source):
    for day in ("2026-02-01", "2026-02-02", "2026-02-03"):
        with freeze_time(day):
            backups.create_backup(source)
    oldest = backups.list_backups()[-1]

    assert backups.cleanup_old_backups(keep=2, protect={oldest.id}) == 1
    assert [s.created_at.day for s in backups.list_backups()] == [3, 1]
