import csv
import io
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import yaml

from shorty import codec
from shorty.errors import MalformedError, NotFoundError, ShortyError
from shorty.models import Alias
from shorty.scanner import AliasScanner
from shorty.shell_detector import ShellType
from shorty.storage import AliasStorage, ReplacePolicy, atomic_write

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("json", "csv", "bash", "yaml")
IMPORT_FORMATS = ("json", "csv", "bash", "yaml")
SHELL_SOURCES = {"bash": ShellType.BASH, "zsh": ShellType.ZSH, "fish": ShellType.FISH}

CSV_FIELDS = ["name", "command", "note", "tags"]

SUFFIX_FORMATS = {
    ".json": "json",
    ".csv": "csv",
    ".yaml": "yaml",
    ".yml": "yaml",
}


def format_for(filepath: Path, explicit: Optional[str] = None) -> str:
    """Explicit format wins, otherwise guess from the suffix, else shell"""
    if explicit:
        return explicit
    return SUFFIX_FORMATS.get(filepath.suffix.lower(), "bash")


@dataclass
class ImportReport:
    """What an import did, or would do in a dry run"""
    added: List[str] = field(default_factory=list)
    replaced: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)
    dry_run: bool = False

    def summary(self) -> str:
        verb = "Would import" if self.dry_run else "Imported"
        msg = f"{verb} {len(self.added) + len(self.replaced)} aliases"
        if self.replaced:
            msg += f" ({len(self.replaced)} overwritten)"
        if self.skipped:
            msg += f" (skipped {len(self.skipped)} existing)"
        if self.invalid:
            msg += f" (ignored {len(self.invalid)} invalid)"
        return msg


class AliasPorter:
    """Handle import and export of aliases"""

    def __init__(
        self,
        storage: AliasStorage,
        scanner: Optional[AliasScanner] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.storage = storage
        self.scanner = scanner or AliasScanner()
        self.clock = clock

    def now(self) -> datetime:
        return self.clock() if self.clock else datetime.now()

    def export_to_dict(self, aliases: Optional[List[Alias]] = None, tag_filter: Optional[str] = None) -> Dict[str, Any]:
        """Export aliases to the envelope used by the yaml format"""
        if aliases is None:
            aliases = self.storage.list_all()

        if tag_filter:
            aliases = [alias for alias in aliases if tag_filter in alias.tags]

        export_data = {
            "version": "1.0",
            "exported_at": self.now().isoformat(),
            "count": len(aliases),
            "aliases": [alias.to_dict() for alias in aliases],
        }

        if tag_filter:
            export_data["tag_filter"] = tag_filter

        return export_data

    def render(self, aliases: List[Alias], format: str) -> str:
        """Render aliases in one of the export formats"""
        if format == "json":
            return json.dumps([alias.to_dict() for alias in aliases], indent=2, ensure_ascii=False) + "\n"
        elif format == "csv":
            buffer = io.StringIO()
            writer = csv.writer(buffer, lineterminator="\n")
            writer.writerow(CSV_FIELDS)
            for alias in aliases:
                writer.writerow([alias.name, alias.command, alias.note or "", ";".join(alias.tags)])
            return buffer.getvalue()
        elif format == "bash":
            header = (
                "#!/bin/bash\n"
                "# Exported by shorty\n"
                f"# Generated on: {self.now().strftime('%Y-%m-%d %H:%M:%S')}\n\n"
            )
            return header + "".join(f"{codec.serialize(alias)}\n" for alias in aliases)
        elif format == "yaml":
            return yaml.safe_dump(
                self.export_to_dict(aliases), default_flow_style=False, sort_keys=False, allow_unicode=True
            )
        raise MalformedError(f"Unknown export format '{format}'. Supported: {', '.join(EXPORT_FORMATS)}")

    def export_to_file(
        self, filepath: Path, format: Optional[str] = None, tag_filter: Optional[str] = None
    ) -> tuple[bool, str]:
        """Export aliases to a file"""
        format = format_for(filepath, format)
        aliases = self.storage.list_all(tags=[tag_filter] if tag_filter else None)

        try:
            atomic_write(filepath, self.render(aliases, format))
        except ShortyError as e:
            return False, f"Export failed: {e}"

        msg = f"Exported {len(aliases)} aliases to {filepath.name}"
        if tag_filter:
            msg += f" (filtered by tag: {tag_filter})"
        return True, msg

    def parse(self, content: str, format: str) -> List[Alias]:
        """Read aliases from text in one of the import formats"""
        if format == "json":
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                raise MalformedError(f"Invalid JSON: {e}") from e
            return self._from_records(data)
        elif format == "yaml":
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise MalformedError(f"Invalid YAML: {e}") from e
            return self._from_records(data)
        elif format == "csv":
            reader = csv.DictReader(io.StringIO(content))
            if not reader.fieldnames or not {"name", "command"} <= set(reader.fieldnames):
                raise MalformedError("Invalid CSV: header must contain 'name' and 'command'")
            aliases = []
            for row in reader:
                tags = [t.strip() for t in (row.get("tags") or "").split(";") if t.strip()]
                aliases.append(Alias(
                    name=(row.get("name") or "").strip(),
                    command=row.get("command") or "",
                    note=row.get("note") or row.get("description") or None,
                    tags=tags,
                ))
            return aliases
        elif format == "bash":
            parsed, errors = codec.parse_document(content)
            for error in errors:
                logger.warning("Ignoring line during import (%s)", error)
            return [alias for _, alias in parsed]
        raise MalformedError(f"Unknown import format '{format}'. Supported: {', '.join(IMPORT_FORMATS)}")

    def _from_records(self, data: Any) -> List[Alias]:
        if isinstance(data, dict):
            if "aliases" not in data:
                raise MalformedError("Invalid format: missing 'aliases' field")
            data = data["aliases"]
        if not isinstance(data, list):
            raise MalformedError("Invalid format: expected a list of aliases")

        aliases = []
        for record in data:
            if not isinstance(record, dict) or "name" not in record or "command" not in record:
                raise MalformedError(f"Invalid alias record: {record!r}")
            aliases.append(Alias.from_dict(record))
        return aliases

    def import_aliases(self, aliases: List[Alias], merge: bool = False, dry_run: bool = False) -> ImportReport:
        """Add aliases to the store, skipping existing names unless merging"""
        report = ImportReport(dry_run=dry_run)
        valid = []
        for alias in aliases:
            try:
                codec.check_alias(alias)
            except MalformedError as e:
                logger.warning("Ignoring alias during import: %s", e)
                report.invalid.append(alias.name)
                continue
            valid.append(alias)

        policy = ReplacePolicy.REPLACE if merge else ReplacePolicy.REJECT
        if dry_run:
            seen = set()
            for alias in valid:
                if alias.name in seen:
                    continue
                seen.add(alias.name)
                if alias.name not in self.storage.aliases:
                    report.added.append(alias.name)
                elif merge:
                    report.replaced.append(alias.name)
                else:
                    report.skipped.append(alias.name)
            return report

        result = self.storage.add_many(valid, policy)
        report.added = result["added"]
        report.replaced = result["replaced"]
        report.skipped = result["skipped"]
        return report

    def read_source(self, source: str, format: Optional[str] = None) -> List[Alias]:
        """Aliases from a file path, or from a shell's rc files"""
        if source in SHELL_SOURCES and not Path(source).exists():
            found = self.scanner.scan_shell(SHELL_SOURCES[source])
            return [alias for aliases in found.values() for alias in aliases]

        filepath = Path(source).expanduser()
        if not filepath.exists():
            raise NotFoundError(f"File not found: {filepath}")
        try:
            content = filepath.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedError(f"Could not read {filepath}: {e}") from e
        return self.parse(content, format_for(filepath, format))

    def import_from_file(
        self, source: str, format: Optional[str] = None, merge: bool = False, dry_run: bool = False
    ) -> tuple[bool, str]:
        """Import aliases from a file or shell"""
        try:
            report = self.import_aliases(self.read_source(source, format), merge=merge, dry_run=dry_run)
        except ShortyError as e:
            return False, f"Import failed: {e}"
        return True, report.summary()

    def get_tag_statistics(self) -> Dict[str, Any]:
        """Get comprehensive tag statistics"""
        aliases = self.storage.list_all()
        tag_counts = {}
        tag_combinations = {}

        for alias in aliases:
            for tag in alias.tags:
                tag_counts[tag] = tag_counts.get(tag, 0) + 1

            # pairs of tags used together
            for i, first in enumerate(alias.tags):
                for second in alias.tags[i + 1:]:
                    combo = tuple(sorted([first, second]))
                    tag_combinations[combo] = tag_combinations.get(combo, 0) + 1

        return {
            "total_tags": len(tag_counts),
            "total_aliases": len(aliases),
            "tagged_aliases": len([a for a in aliases if a.tags]),
            "untagged_aliases": len([a for a in aliases if not a.tags]),
            "tag_counts": dict(sorted(tag_counts.items(), key=lambda x: x[1], reverse=True)),
            "tag_combinations": dict(sorted(tag_combinations.items(), key=lambda x: x[1], reverse=True)),
        }
