"""Scanner for aliases defined in shell configuration files"""

import logging
import shlex
from pathlib import Path
from typing import Dict, List, Optional

from shorty import codec
from shorty.errors import ParseError, StorageIOError
from shorty.models import Alias
from shorty.shell_detector import ShellDetector, ShellType

logger = logging.getLogger(__name__)


def parse_fish_line(line: str) -> Optional[Alias]:
    """Parse ``alias name 'cmd'``, ``alias name='cmd'`` or ``abbr -a name cmd``"""
    try:
        words = shlex.split(line, comments=True)
    except ValueError:
        return None
    if len(words) < 2 or words[0] not in ("alias", "abbr"):
        return None

    keyword, args = words[0], words[1:]
    # options only come before the name
    while args and args[0].startswith("-"):
        args = args[1:]
    if not args:
        return None
    if "=" in args[0] and keyword == "alias":
        name, _, first = args[0].partition("=")
        command = " ".join([first] + args[1:])
    elif len(args) >= 2:
        name, command = args[0], " ".join(args[1:])
    else:
        return None

    if not name or not command.strip() or not codec.VALID_NAME.fullmatch(name):
        return None
    note = "Imported from Fish abbreviation" if keyword == "abbr" else None
    return Alias(name=name, command=command, note=note, tags=["fish"])


class AliasScanner:
    """Scan and import existing aliases from shell configuration"""

    def __init__(self, detector: Optional[ShellDetector] = None):
        self.detector = detector or ShellDetector()

    def scan_file(self, filepath: Path, shell_type: ShellType = ShellType.BASH) -> List[Alias]:
        """Scan a single file for aliases"""
        if not filepath.exists():
            return []

        try:
            content = filepath.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise StorageIOError(f"Could not read {filepath}: {e}") from e

        aliases = []
        for number, line in enumerate(content.splitlines(), 1):
            stripped = line.strip()
            if shell_type is ShellType.FISH:
                if stripped.startswith(("alias ", "abbr ")):
                    alias = parse_fish_line(stripped)
                    if alias is None:
                        logger.warning("%s:%d: could not parse %r", filepath.name, number, stripped)
                    else:
                        aliases.append(alias)
                continue

            if not stripped.startswith("alias "):
                continue
            try:
                alias = codec.parse_line(stripped, number)
            except ParseError as e:
                logger.warning("%s: %s", filepath.name, e)
                continue
            if alias is not None:
                if not alias.note:
                    alias.note = f"Imported from {filepath.name}"
                aliases.append(alias)

        logger.debug("Found %d aliases in %s", len(aliases), filepath)
        return aliases

    def scan_shell(self, shell_type: ShellType) -> Dict[str, List[Alias]]:
        """Scan every rc file of one shell, keyed by file name"""
        results = {}
        for filename, filepath in self.detector.find_config_files(shell_type).items():
            aliases = self.scan_file(filepath, shell_type)
            if aliases:
                results[filename] = aliases
        return results

    def scan_system(self) -> Dict[str, List[Alias]]:
        """Scan the rc files of the current shell"""
        return self.scan_shell(self.detector.detect_current_shell())
