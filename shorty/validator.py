"""Checks that flag broken, risky or redundant aliases"""

import logging
import re
import shlex
import shutil
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, List, Optional

from shorty import codec
from shorty.models import Alias

if TYPE_CHECKING:
    from shorty.storage import AliasStorage

logger = logging.getLogger(__name__)

Resolver = Callable[[str], bool]

SHELL_BUILTINS = frozenset({
    ".", ":", "[", "alias", "bg", "bind", "break", "builtin", "cd", "command",
    "continue", "declare", "dirs", "echo", "eval", "exec", "exit", "export",
    "false", "fc", "fg", "getopts", "hash", "history", "jobs", "kill", "let",
    "local", "popd", "printf", "pushd", "pwd", "read", "readonly", "return",
    "set", "shift", "source", "test", "times", "trap", "true", "type",
    "typeset", "ulimit", "umask", "unalias", "unset", "wait",
})

# Aliasing these hides the real command
COMMON_COMMANDS = frozenset({
    "ls", "cp", "mv", "rm", "mkdir", "rmdir", "cat", "grep", "find", "ps",
    "top", "chmod", "chown", "sudo", "ssh", "git",
})

# rm with a recursive and a force flag anywhere among its options
RECURSIVE_FORCE_RM = re.compile(
    r"\brm"
    r"(?=(?:\s+-\S+)*?\s+(?:-[a-zA-Z]*[rR]|--recursive\b))"
    r"(?=(?:\s+-\S+)*?\s+(?:-[a-zA-Z]*f|--force\b))"
    r"(?:\s+-\S+)+\s+(?:/|/\*|~|\$HOME)(?:\s|$)"
)

DANGEROUS_PATTERNS = [
    (RECURSIVE_FORCE_RM, "recursive force delete of a root-level path"),
    (re.compile(r"\bsudo\s+rm\s+-[a-zA-Z]*r"), "recursive delete as root"),
    (re.compile(r":\(\)\s*\{\s*:\|:&\s*\};:"), "fork bomb"),
    (re.compile(r"\bmkfs(\.\w+)?\b"), "filesystem creation"),
    (re.compile(r"\bdd\s+.*\bof=/dev/"), "raw write to a device"),
    (re.compile(r">\s*/dev/(sd|nvme|hd)"), "redirect into a block device"),
    (re.compile(r"\bchmod\s+(-R\s+)?777\s+/(\s|$)"), "world-writable root"),
    (re.compile(r"\b(shutdown|reboot|halt|poweroff)\b"), "system shutdown"),
]

ASSIGNMENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=")


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class FindingKind(Enum):
    COMMAND_NOT_FOUND = "command_not_found"
    DUPLICATE_COMMAND = "duplicate_command"
    DANGEROUS_PATTERN = "dangerous_pattern"
    SYSTEM_NAME_CONFLICT = "system_name_conflict"
    EMPTY_COMMAND = "empty_command"


FIXABLE_KINDS = frozenset({FindingKind.DUPLICATE_COMMAND})


@dataclass(frozen=True)
class Finding:
    """One problem found with an alias"""
    alias_name: str
    kind: FindingKind
    severity: Severity
    message: str
    suggestion: Optional[str] = None

    @property
    def fixable(self) -> bool:
        return self.kind in FIXABLE_KINDS


def default_resolver(token: str) -> bool:
    """True if token is a shell builtin or an executable on PATH"""
    return token in SHELL_BUILTINS or shutil.which(token) is not None


def leading_token(command: str) -> Optional[str]:
    """First word of a command, skipping VAR=value assignments"""
    try:
        words = shlex.split(command, comments=True)
    except ValueError:
        words = command.split()
    for word in words:
        if ASSIGNMENT.match(word):
            continue
        return word
    return None


class Validator:
    """Run every check over a collection of aliases"""

    def __init__(self, resolver: Resolver = default_resolver):
        self.resolver = resolver

    def check_alias(self, alias: Alias, known_names: Iterable[str] = ()) -> List[Finding]:
        findings = []
        if not alias.command.strip():
            return [Finding(alias.name, FindingKind.EMPTY_COMMAND, Severity.ERROR,
                            "Empty command", "Provide a command or remove the alias")]

        if alias.name in SHELL_BUILTINS or alias.name in codec.RESERVED_WORDS:
            findings.append(Finding(
                alias.name, FindingKind.SYSTEM_NAME_CONFLICT, Severity.WARNING,
                f"Shadows the shell builtin '{alias.name}'",
                "Consider using a different alias name",
            ))
        elif alias.name in COMMON_COMMANDS:
            findings.append(Finding(
                alias.name, FindingKind.SYSTEM_NAME_CONFLICT, Severity.INFO,
                f"Shadows the system command '{alias.name}'",
                "Fine if intended, e.g. to add default flags",
            ))

        token = leading_token(alias.command)
        if token and not token.startswith(("$", "(", "{", "`")):
            if token not in known_names and not self.resolver(token):
                findings.append(Finding(
                    alias.name, FindingKind.COMMAND_NOT_FOUND, Severity.WARNING,
                    f"Command '{token}' not found in PATH",
                    "Check if the command is installed or fix the typo",
                ))

        for pattern, description in DANGEROUS_PATTERNS:
            if pattern.search(alias.command):
                findings.append(Finding(
                    alias.name, FindingKind.DANGEROUS_PATTERN, Severity.ERROR,
                    f"Potentially dangerous command: {description}",
                    "Review this alias carefully",
                ))
                break

        return findings

    def validate(self, aliases: Iterable[Alias]) -> List[Finding]:
        """Findings in collection order, duplicate groups last"""
        aliases = list(aliases)
        names = {a.name for a in aliases}
        findings: List[Finding] = []
        for alias in aliases:
            findings.extend(self.check_alias(alias, names))

        groups = {}
        for alias in aliases:
            if alias.command.strip():
                groups.setdefault(codec.normalize_command(alias.command), []).append(alias)
        for group in groups.values():
            keeper = group[0]
            for duplicate in group[1:]:
                findings.append(Finding(
                    duplicate.name, FindingKind.DUPLICATE_COMMAND, Severity.WARNING,
                    f"Same command as '{keeper.name}'",
                    f"Remove '{duplicate.name}' and keep '{keeper.name}'",
                ))
        return findings

    def fix(self, storage: "AliasStorage", findings: Iterable[Finding]) -> int:
        """Apply the safe automatic fixes, return how many findings were fixed"""
        if not any(f.kind is FindingKind.DUPLICATE_COMMAND for f in findings):
            return 0
        removed = storage.remove_duplicates()
        logger.info("Removed %d duplicate aliases", len(removed))
        return len(removed)
