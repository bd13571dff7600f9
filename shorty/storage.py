import contextlib
import logging
import os
import stat
import tempfile
from collections import Counter
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from shorty import codec
from shorty.errors import ConflictError, NotFoundError, ParseError, StorageIOError
from shorty.models import Alias

if TYPE_CHECKING:
    from shorty.backup import BackupManager, BackupSnapshot

logger = logging.getLogger(__name__)


def atomic_write(path: Path, data: Union[str, bytes]) -> None:
    """Replace path with data so readers never see a partial file

    The content goes to a temporary file in the same directory, is flushed
    and fsynced, then renamed over the target. On failure the target is left
    untouched and StorageIOError is raised. An existing target keeps its
    permission bits.
    """
    mode = "wb" if isinstance(data, bytes) else "w"
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, mode, **({} if mode == "wb" else {"encoding": "utf-8"})) as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        with contextlib.suppress(FileNotFoundError):
            os.chmod(tmp_name, stat.S_IMODE(os.stat(path).st_mode))
        os.replace(tmp_name, path)
        tmp_name = None
    except OSError as e:
        raise StorageIOError(f"Could not write {path}: {e}") from e
    finally:
        if tmp_name is not None:
            with contextlib.suppress(OSError):
                os.unlink(tmp_name)


class ReplacePolicy(Enum):
    """What add() does when the name is already taken"""

    REJECT = "reject"
    REPLACE = "replace"


class AliasStorage:
    """Handle storage and retrieval of aliases"""

    def __init__(
        self,
        storage_path: Path,
        backups: Optional["BackupManager"] = None,
        auto_backup: bool = True,
        sort_on_add: bool = False,
    ):
        self.storage_path = storage_path
        self.backups = backups
        self.auto_backup = auto_backup
        self.sort_on_add = sort_on_add

        self.aliases: Dict[str, Alias] = {}
        self.warnings: List[ParseError] = []
        self.unparsed: List[str] = []
        self.load()

    def load(self) -> List[ParseError]:
        """Load aliases from the alias file

        A missing file is an empty collection. Lines that fail to parse are
        logged, collected in ``warnings`` and kept in ``unparsed`` so that the
        next save writes them back instead of dropping them.
        """
        self.aliases = {}
        self.warnings = []
        self.unparsed = []

        if not self.storage_path.exists():
            return self.warnings

        try:
            text = self.storage_path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageIOError(f"Could not read {self.storage_path}: {e}") from e

        parsed, errors = codec.parse_document(text)
        for error in errors:
            logger.warning("Skipping malformed alias (%s)", error)
            self.warnings.append(error)
            if error.line is not None:
                self.unparsed.append(error.line)

        for line_number, alias in parsed:
            if alias.name in self.aliases:
                # the shell keeps the last definition, so do we
                warning = ParseError(f"duplicate alias '{alias.name}', keeping this definition", line_number)
                logger.warning("%s", warning)
                self.warnings.append(warning)
                del self.aliases[alias.name]
            self.aliases[alias.name] = alias

        logger.debug("Loaded %d aliases from %s", len(self.aliases), self.storage_path)
        return self.warnings

    def save(self) -> None:
        """Write every alias to disk atomically"""
        atomic_write(self.storage_path, codec.dump(self.aliases.values(), self.unparsed))
        logger.debug("Saved %d aliases to %s", len(self.aliases), self.storage_path)

    def create_backup(self, name: Optional[str] = None) -> Optional["BackupSnapshot"]:
        """Snapshot the alias file before it changes, if auto backup is on"""
        if not (self.auto_backup and self.backups):
            return None
        if not self.storage_path.exists():
            return None
        return self.backups.create_backup(self.storage_path, name=name)

    def _insert(self, alias: Alias) -> None:
        if not self.sort_on_add:
            self.aliases[alias.name] = alias
            return
        items = list(self.aliases.items())
        index = next((i for i, (name, _) in enumerate(items) if name > alias.name), len(items))
        items.insert(index, (alias.name, alias))
        self.aliases = dict(items)

    def add(self, alias: Alias, policy: ReplacePolicy = ReplacePolicy.REJECT) -> Alias:
        """Add an alias; an existing name is a conflict unless policy is REPLACE"""
        codec.check_alias(alias)
        if alias.name in self.aliases:
            if policy is ReplacePolicy.REJECT:
                raise ConflictError(f"Alias '{alias.name}' already exists")
            self.create_backup("auto")
            self.aliases[alias.name] = alias
        else:
            self._insert(alias)
        self.save()
        return alias

    def add_many(self, aliases: Iterable[Alias], policy: ReplacePolicy = ReplacePolicy.REJECT) -> Dict[str, List[str]]:
        """Add several aliases with a single backup and a single save

        Existing names are skipped under REJECT and overwritten under REPLACE.
        Returns the names that were added, replaced and skipped.
        """
        aliases = list(aliases)
        for alias in aliases:
            codec.check_alias(alias)

        result: Dict[str, List[str]] = {"added": [], "replaced": [], "skipped": []}
        pending: Dict[str, Alias] = {}
        for alias in aliases:
            if alias.name in pending:
                # later definitions in the same batch win
                pending[alias.name] = alias
            elif alias.name not in self.aliases:
                result["added"].append(alias.name)
                pending[alias.name] = alias
            elif policy is ReplacePolicy.REPLACE:
                result["replaced"].append(alias.name)
                pending[alias.name] = alias
            else:
                result["skipped"].append(alias.name)

        if not pending:
            return result
        if result["replaced"]:
            self.create_backup("auto")
        for alias in pending.values():
            if alias.name in self.aliases:
                self.aliases[alias.name] = alias
            else:
                self._insert(alias)
        self.save()
        return result

    def remove(self, name: str) -> Alias:
        """Remove an alias and return it"""
        if name not in self.aliases:
            raise NotFoundError(f"Alias '{name}' not found")
        self.create_backup("auto")
        alias = self.aliases.pop(name)
        self.save()
        return alias

    def edit(
        self,
        name: str,
        command: Optional[str] = None,
        note: Optional[str] = None,
        tags: Optional[List[str]] = None,
        category: Optional[str] = None,
    ) -> Alias:
        """Change fields of an alias

        ``None`` leaves a field as it is; an empty string or list clears it.
        """
        current = self.get(name)
        if current is None:
            raise NotFoundError(f"Alias '{name}' not found")

        updated = Alias(
            name=current.name,
            command=current.command if command is None else command,
            note=current.note if note is None else note,
            tags=list(current.tags) if tags is None else list(tags),
            category=current.category if category is None else category,
        )
        codec.check_alias(updated)

        self.create_backup("auto")
        self.aliases[name] = updated
        self.save()
        return updated

    def get(self, name: str) -> Optional[Alias]:
        """Get an alias by name"""
        return self.aliases.get(name)

    find = get

    def list_all(self, tags: Optional[Iterable[str]] = None, category: Optional[str] = None) -> List[Alias]:
        """Get all aliases as a list, optionally filtered by tags and category"""
        aliases = list(self.aliases.values())
        if tags:
            wanted = list(tags)
            aliases = [a for a in aliases if all(t in a.tags for t in wanted)]
        if category:
            aliases = [a for a in aliases if a.category == category]
        return aliases

    def find_duplicates(self) -> List[List[Alias]]:
        """Group aliases whose commands only differ in whitespace"""
        groups: Dict[str, List[Alias]] = {}
        for alias in self.aliases.values():
            if alias.command.strip():
                groups.setdefault(codec.normalize_command(alias.command), []).append(alias)
        return [group for group in groups.values() if len(group) > 1]

    def remove_duplicates(self) -> List[Alias]:
        """Delete all but the first alias of every duplicate group"""
        doomed = [alias for group in self.find_duplicates() for alias in group[1:]]
        if not doomed:
            return []
        self.create_backup("auto")
        for alias in doomed:
            del self.aliases[alias.name]
        self.save()
        return doomed

    def get_tags(self) -> List[str]:
        """Get all unique tags"""
        tags = set()
        for alias in self.aliases.values():
            tags.update(alias.tags)
        return sorted(tags)

    def get_by_tag(self, tag: str) -> List[Alias]:
        """Get all aliases with a specific tag"""
        return [alias for alias in self.aliases.values() if tag in alias.tags]

    def add_tags(self, name: str, tags: Iterable[str]) -> List[str]:
        """Add tags to an alias, return the ones that were new"""
        alias = self.get(name)
        if alias is None:
            raise NotFoundError(f"Alias '{name}' not found")
        added = [t for t in dict.fromkeys(tags) if t and t not in alias.tags]
        if added:
            self.edit(name, tags=alias.tags + added)
        return added

    def remove_tags(self, name: str, tags: Iterable[str]) -> List[str]:
        """Remove tags from an alias, return the ones that were present"""
        alias = self.get(name)
        if alias is None:
            raise NotFoundError(f"Alias '{name}' not found")
        removed = [t for t in dict.fromkeys(tags) if t in alias.tags]
        if removed:
            self.edit(name, tags=[t for t in alias.tags if t not in removed])
        return removed

    def rename_tag(self, old_tag: str, new_tag: str) -> int:
        """Rename a tag across all aliases, return count of changed aliases"""
        affected = self.get_by_tag(old_tag)
        if not affected:
            return 0
        self.create_backup("auto")
        for alias in affected:
            renamed = [new_tag if t == old_tag else t for t in alias.tags]
            self.aliases[alias.name] = Alias(alias.name, alias.command, alias.note, renamed, alias.category)
        self.save()
        return len(affected)

    def delete_tag(self, tag: str) -> int:
        """Remove a tag from every alias, return count of changed aliases"""
        affected = self.get_by_tag(tag)
        if not affected:
            return 0
        self.create_backup("auto")
        for alias in affected:
            alias.tags = [t for t in alias.tags if t != tag]
        self.save()
        return len(affected)

    def set_category(self, name: str, category: Optional[str]) -> Alias:
        return self.edit(name, category=category or "")

    def uncategorize(self, category: str) -> int:
        """Clear the category of every member alias, return how many changed"""
        members = self.list_all(category=category)
        if not members:
            return 0
        self.create_backup("auto")
        for alias in members:
            alias.category = None
        self.save()
        return len(members)

    def get_statistics(self) -> Dict:
        """Summary figures about the collection"""
        aliases = list(self.aliases.values())
        leading = Counter(a.command.split()[0] for a in aliases if a.command.split())
        try:
            file_size = self.storage_path.stat().st_size
        except OSError:
            file_size = 0

        return {
            "total_aliases": len(aliases),
            "with_notes": len([a for a in aliases if a.note]),
            "with_tags": len([a for a in aliases if a.tags]),
            "with_category": len([a for a in aliases if a.category]),
            "unique_tags": len(self.get_tags()),
            "keystrokes_saved": sum(max(len(a.command) - len(a.name), 0) for a in aliases),
            "average_command_length": (
                sum(len(a.command) for a in aliases) / len(aliases) if aliases else 0.0
            ),
            "top_commands": leading.most_common(5),
            "duplicate_groups": len(self.find_duplicates()),
            "file_size": file_size,
            "unparsed_lines": len(self.unparsed),
        }
