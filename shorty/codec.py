"""Line format of the alias file

Every alias occupies one line that a POSIX shell can source directly::

    alias gs='git status' # Show repo status #tags:git,vcs #category:git

The command is single quoted (``'`` is written as ``'\\''``). Metadata rides
in a trailing comment: the note follows ``# ``, tags and category follow the
``#tags:`` and ``#category:`` markers. Characters that would break that
structure are percent-encoded.
"""

import re
from typing import Iterable, List, Optional, Tuple
from urllib.parse import quote, unquote

from shorty.errors import MalformedError, ParseError
from shorty.models import Alias

NAME_PATTERN = r"(?!-)[\w.:@+^~-]+"

ALIAS_LINE = re.compile(r"^\s*alias\s+(?P<name>" + NAME_PATTERN + r")=")
VALID_NAME = re.compile(NAME_PATTERN)

# Words the shell parses before alias expansion
RESERVED_WORDS = frozenset({
    "case", "coproc", "do", "done", "elif", "else", "esac", "fi", "for",
    "function", "if", "in", "select", "then", "time", "until", "while",
})

FILE_HEADER = (
    "# shorty aliases - managed file, edit with `shorty` or keep the line format\n"
    "# Source it from your shell: . ~/.shorty/aliases\n"
)
UNPARSED_HEADER = "# Lines shorty could not parse (kept verbatim):"

NOTE_UNSAFE = "%#\r\n"
TOKEN_UNSAFE = "%#,\r\n \t\f\v"

TAGS_MARKER = "tags:"
CATEGORY_MARKER = "category:"


def escape_meta(value: str, unsafe: str = NOTE_UNSAFE) -> str:
    """Percent-encode characters that would break the trailing comment"""
    stripped = value.strip()
    if not stripped:
        return "".join(quote(c, safe="") for c in value)

    lead = value[: len(value) - len(value.lstrip())]
    trail = value[len(value.rstrip()):]
    body = "".join(quote(c, safe="") if c in unsafe else c for c in stripped)
    return (
        "".join(quote(c, safe="") for c in lead)
        + body
        + "".join(quote(c, safe="") for c in trail)
    )


def unescape_meta(value: str) -> str:
    return unquote(value)


def quote_command(command: str) -> str:
    """Single-quote a command for a POSIX shell"""
    return "'" + command.replace("'", "'\\''") + "'"


def normalize_command(command: str) -> str:
    """Collapse whitespace runs so equivalent commands compare equal"""
    return " ".join(command.split())


def check_alias(alias: Alias) -> None:
    """Raise MalformedError unless the alias can be stored and sourced"""
    if not alias.name:
        raise MalformedError("Alias name must not be empty")
    if not VALID_NAME.fullmatch(alias.name):
        raise MalformedError(
            f"Invalid alias name '{alias.name}': use letters, digits and . _ - : @ + ^ ~"
        )
    if alias.name in RESERVED_WORDS:
        raise MalformedError(f"'{alias.name}' is a shell reserved word and cannot be an alias")
    if not alias.command.strip():
        raise MalformedError(f"Alias '{alias.name}' has an empty command")
    if "\n" in alias.command or "\r" in alias.command:
        raise MalformedError(f"Alias '{alias.name}': command must be a single line")
    for tag in alias.tags:
        if "\n" in tag or "\r" in tag:
            raise MalformedError(f"Alias '{alias.name}': tags must be single line")
    if alias.category and ("\n" in alias.category or "\r" in alias.category):
        raise MalformedError(f"Alias '{alias.name}': category must be single line")


def serialize(alias: Alias) -> str:
    """Render one alias as a line of the alias file"""
    line = f"alias {alias.name}={quote_command(alias.command)}"
    if alias.note:
        line += " # " + escape_meta(alias.note, NOTE_UNSAFE)
    if alias.tags:
        line += " #" + TAGS_MARKER + ",".join(escape_meta(t, TOKEN_UNSAFE) for t in alias.tags)
    if alias.category:
        line += " #" + CATEGORY_MARKER + escape_meta(alias.category, TOKEN_UNSAFE)
    return line


def _read_word(text: str, pos: int, line_number: Optional[int]) -> Tuple[str, int]:
    """Read one shell word starting at pos, return its value and end offset"""
    buf = []
    i = pos
    while i < len(text):
        ch = text[i]
        if ch == "'":
            end = text.find("'", i + 1)
            if end == -1:
                raise ParseError("unterminated single quote", line_number, text)
            buf.append(text[i + 1:end])
            i = end + 1
        elif ch == '"':
            i += 1
            while True:
                if i >= len(text):
                    raise ParseError("unterminated double quote", line_number, text)
                c = text[i]
                if c == '"':
                    i += 1
                    break
                if c == "\\" and i + 1 < len(text) and text[i + 1] in '"\\$`':
                    buf.append(text[i + 1])
                    i += 2
                    continue
                buf.append(c)
                i += 1
        elif ch == "\\":
            if i + 1 >= len(text):
                raise ParseError("dangling backslash", line_number, text)
            buf.append(text[i + 1])
            i += 2
        elif ch.isspace():
            break
        else:
            buf.append(ch)
            i += 1
    return "".join(buf), i


def _parse_comment(comment: str) -> Tuple[Optional[str], List[str], Optional[str]]:
    """Split the trailing comment into note, tags and category"""
    note_parts = []
    tags: List[str] = []
    category = None

    # comment starts with "#", so the first chunk is always empty
    for chunk in comment.split("#")[1:]:
        if chunk.startswith(TAGS_MARKER):
            raw = chunk[len(TAGS_MARKER):].strip()
            tags.extend(unescape_meta(t.strip()) for t in raw.split(",") if t.strip())
        elif chunk.startswith(CATEGORY_MARKER):
            raw = chunk[len(CATEGORY_MARKER):].strip()
            category = unescape_meta(raw) if raw else None
        else:
            note_parts.append(chunk)

    note_text = "#".join(note_parts).strip()
    note = unescape_meta(note_text) if note_text else None
    return note, tags, category


def parse_line(line: str, line_number: Optional[int] = None) -> Optional[Alias]:
    """Parse one line of the alias file

    Returns None for blank lines and comments. Raises ParseError when the
    line is neither blank, a comment, nor a valid alias definition.
    """
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return None

    match = ALIAS_LINE.match(line)
    if not match:
        raise ParseError("expected alias NAME='COMMAND'", line_number, line)

    name = match.group("name")
    if name in RESERVED_WORDS:
        raise ParseError(f"'{name}' is a shell reserved word", line_number, line)

    command, end = _read_word(line, match.end(), line_number)
    rest = line[end:].strip()

    note, tags, category = None, [], None
    if rest:
        if not rest.startswith("#"):
            raise ParseError(f"unexpected text after command: {rest!r}", line_number, line)
        note, tags, category = _parse_comment(rest)

    return Alias(name=name, command=command, note=note, tags=tags, category=category)


def parse_document(text: str) -> Tuple[List[Tuple[int, Alias]], List[ParseError]]:
    """Parse a whole file, collecting errors instead of stopping at the first"""
    aliases = []
    errors = []
    # only "\n" ends a line; notes may contain other separators
    for number, line in enumerate(text.split("\n"), 1):
        try:
            alias = parse_line(line, number)
        except ParseError as e:
            errors.append(e)
            continue
        if alias is not None:
            aliases.append((number, alias))
    return aliases, errors


def dump(aliases: Iterable[Alias], unparsed: Iterable[str] = ()) -> str:
    """Render the whole alias file"""
    lines = [serialize(alias) for alias in aliases]
    content = FILE_HEADER + "".join(f"{line}\n" for line in lines)
    unparsed = list(unparsed)
    if unparsed:
        content += "\n" + UNPARSED_HEADER + "\n" + "".join(f"{line}\n" for line in unparsed)
    return content
