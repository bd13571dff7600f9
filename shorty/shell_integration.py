"""Hook the alias file into the user's shell startup file"""

import logging
from pathlib import Path
from typing import Optional

from shorty.errors import MalformedError, StorageIOError
from shorty.shell_detector import ShellDetector, ShellType
from shorty.storage import atomic_write

logger = logging.getLogger(__name__)

BLOCK_START = "# >>> shorty >>>"
BLOCK_END = "# <<< shorty <<<"


class ShellIntegrator:
    """Install or remove the block that sources the alias file"""

    def __init__(self, aliases_path: Path, detector: Optional[ShellDetector] = None):
        self.aliases_path = aliases_path
        self.detector = detector or ShellDetector()

    def resolve_shell(self, shell: Optional[str] = None) -> ShellType:
        if shell is None:
            shell_type = self.detector.detect_current_shell()
        else:
            try:
                shell_type = ShellType(shell.lower())
            except ValueError:
                shell_type = ShellType.UNKNOWN
        if shell_type is ShellType.UNKNOWN:
            raise MalformedError(
                f"Unsupported shell: {shell or 'unknown'}. Supported: bash, zsh, fish, sh"
            )
        return shell_type

    def get_target_file(self, shell_type: ShellType) -> Path:
        target = self.detector.get_target_file(shell_type)
        if target is None:
            raise MalformedError(f"No startup file known for {shell_type.value}")
        return target

    def source_block(self, shell_type: ShellType) -> str:
        path = str(self.aliases_path)
        if shell_type is ShellType.FISH:
            line = f'test -f "{path}"; and source "{path}"'
        else:
            line = f'[ -f "{path}" ] && . "{path}"'
        return f"{BLOCK_START}\n# Load aliases from shorty\n{line}\n{BLOCK_END}\n"

    def _read(self, target: Path) -> str:
        if not target.exists():
            return ""
        try:
            return target.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageIOError(f"Could not read {target}: {e}") from e

    @staticmethod
    def _strip_block(content: str) -> str:
        lines = content.splitlines(keepends=True)
        kept = []
        inside = False
        for line in lines:
            if line.strip() == BLOCK_START:
                inside = True
                continue
            if inside:
                if line.strip() == BLOCK_END:
                    inside = False
                continue
            kept.append(line)
        return "".join(kept)

    def is_installed(self, shell_type: ShellType) -> bool:
        return BLOCK_START in self._read(self.get_target_file(shell_type))

    def install(self, shell_type: ShellType, force: bool = False) -> tuple[bool, str]:
        """Append the source block to the shell's startup file"""
        target = self.get_target_file(shell_type)
        content = self._read(target)
        if BLOCK_START in content:
            if not force:
                return False, f"shorty is already installed in {target}"
            content = self._strip_block(content)

        if content and not content.endswith("\n"):
            content += "\n"
        separator = "\n" if content else ""
        # write through symlinks
        atomic_write(target.resolve(), content + separator + self.source_block(shell_type))
        logger.info("Installed source block in %s", target)
        return True, f"Added alias sourcing to {target}"

    def uninstall(self, shell_type: ShellType) -> tuple[bool, str]:
        """Remove the source block from the shell's startup file"""
        target = self.get_target_file(shell_type)
        content = self._read(target)
        if BLOCK_START not in content:
            return False, f"shorty is not installed in {target}"
        atomic_write(target.resolve(), self._strip_block(content))
        logger.info("Removed source block from %s", target)
        return True, f"Removed alias sourcing from {target}"
