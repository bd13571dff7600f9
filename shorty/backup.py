"""Point-in-time snapshots of the alias file"""

import logging
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, List, Optional

from shorty.errors import NotFoundError, StorageIOError
from shorty.storage import atomic_write

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "aliases_"
BACKUP_SUFFIX = ".txt"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S_%f"
BACKUP_PATTERN = re.compile(
    r"^aliases_(?P<ts>\d{8}_\d{6}_\d{6})(?:-(?P<seq>\d+))?(?:_(?P<name>[A-Za-z0-9_-]+))?\.txt$"
)


@dataclass(frozen=True)
class BackupSnapshot:
    """A verbatim copy of the alias file, never modified after creation"""
    id: str
    path: Path
    created_at: datetime
    name: Optional[str]
    size: int
    seq: int = 0


def sanitize_backup_name(name: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", name).strip("-")


class BackupManager:
    """Create, list, restore and prune alias file snapshots"""

    def __init__(
        self,
        backup_dir: Path,
        clock: Optional[Callable[[], datetime]] = None,
        max_backups: Optional[int] = None,
    ):
        self.backup_dir = backup_dir
        self.clock = clock
        self.max_backups = max_backups

    def now(self) -> datetime:
        return self.clock() if self.clock else datetime.now()

    def _snapshot_for(self, path: Path) -> Optional[BackupSnapshot]:
        match = BACKUP_PATTERN.match(path.name)
        if not match:
            return None
        try:
            created_at = datetime.strptime(match.group("ts"), TIMESTAMP_FORMAT)
            size = path.stat().st_size
        except (ValueError, OSError):
            return None
        return BackupSnapshot(
            id=path.name,
            path=path,
            created_at=created_at,
            name=match.group("name"),
            size=size,
            seq=int(match.group("seq") or 0),
        )

    def create_backup(
        self,
        source: Path,
        name: Optional[str] = None,
        protect: Iterable[str] = (),
    ) -> BackupSnapshot:
        """Copy the alias file into the backup directory

        Pruning to max_backups never removes the new snapshot or any id in
        protect.
        """
        if not source.exists():
            raise NotFoundError(f"Aliases file not found: {source}. Nothing to back up.")

        timestamp = self.now().strftime(TIMESTAMP_FORMAT)
        label = sanitize_backup_name(name) if name else ""
        suffix = f"_{label}{BACKUP_SUFFIX}" if label else BACKUP_SUFFIX

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            backup_path = self.backup_dir / f"{BACKUP_PREFIX}{timestamp}{suffix}"
            seq = 0
            while backup_path.exists():
                seq += 1
                backup_path = self.backup_dir / f"{BACKUP_PREFIX}{timestamp}-{seq}{suffix}"
            shutil.copy2(source, backup_path)
        except OSError as e:
            raise StorageIOError(f"Could not create backup of {source}: {e}") from e

        logger.info("Created backup %s", backup_path.name)
        snapshot = self._snapshot_for(backup_path)

        if self.max_backups:
            self.cleanup_old_backups(keep=self.max_backups, protect={snapshot.id, *protect})
        return snapshot

    def list_backups(self) -> List[BackupSnapshot]:
        """All snapshots, newest first"""
        if not self.backup_dir.exists():
            return []
        snapshots = []
        for path in self.backup_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}"):
            snapshot = self._snapshot_for(path)
            if snapshot is not None:
                snapshots.append(snapshot)
        return sorted(snapshots, key=lambda s: (s.created_at, s.seq), reverse=True)

    def get(self, snapshot_id: str) -> BackupSnapshot:
        """Look up a snapshot by id, or "latest" for the newest one"""
        snapshots = self.list_backups()
        if snapshot_id == "latest":
            if not snapshots:
                raise NotFoundError("No backups found")
            return snapshots[0]
        for snapshot in snapshots:
            if snapshot.id == snapshot_id:
                return snapshot
        raise NotFoundError(f"Backup not found: {snapshot_id}")

    def restore(self, snapshot_id: str, target: Path) -> BackupSnapshot:
        """Copy a snapshot over the live file, backing up the live file first"""
        snapshot = self.get(snapshot_id)
        try:
            content = snapshot.path.read_bytes()
        except OSError as e:
            raise StorageIOError(f"Could not read backup {snapshot.id}: {e}") from e

        if target.exists():
            self.create_backup(target, name="pre-restore", protect={snapshot.id})
        atomic_write(target, content)
        logger.info("Restored %s from %s", target, snapshot.id)
        return snapshot

    def remove(self, snapshot_id: str) -> BackupSnapshot:
        snapshot = self.get(snapshot_id)
        try:
            snapshot.path.unlink()
        except OSError as e:
            raise StorageIOError(f"Could not delete backup {snapshot.id}: {e}") from e
        return snapshot

    def clean(self, older_than_days: int) -> int:
        """Delete snapshots older than the threshold, always keeping the newest"""
        cutoff = self.now() - timedelta(days=older_than_days)
        snapshots = self.list_backups()
        removed = 0
        for snapshot in snapshots[1:]:
            if snapshot.created_at < cutoff:
                try:
                    snapshot.path.unlink()
                except OSError as e:
                    raise StorageIOError(f"Could not delete backup {snapshot.id}: {e}") from e
                logger.info("Removed old backup %s", snapshot.id)
                removed += 1
        return removed

    def cleanup_old_backups(self, keep: int = 10, protect: Iterable[str] = ()) -> int:
        """Remove old backups, keeping only the most recent ones

        Protected ids are never removed and count towards keep.
        """
        protect = set(protect)
        snapshots = self.list_backups()
        protected = sum(1 for s in snapshots if s.id in protect)
        candidates = [s for s in snapshots if s.id not in protect]
        room = max(max(keep, 1) - protected, 0)
        removed = 0
        for snapshot in candidates[room:]:
            try:
                snapshot.path.unlink()
            except OSError as e:
                raise StorageIOError(f"Could not delete backup {snapshot.id}: {e}") from e
            logger.debug("Pruned backup %s", snapshot.id)
            removed += 1
        return removed
