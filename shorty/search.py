"""Keyword, regex and fuzzy search over aliases"""

import re
from enum import Enum
from typing import Callable, Iterable, List, Optional

from rapidfuzz import fuzz

from shorty.errors import InvalidPatternError
from shorty.models import Alias


class FieldScope(Enum):
    """Which part of an alias a search looks at"""

    NAME = "name"
    COMMAND = "command"
    NOTE = "note"
    TAG = "tag"
    ANY = "any"


class SortKey(Enum):
    NONE = "none"
    NAME = "name"
    COMMAND = "command"


def field_values(alias: Alias, scope: FieldScope) -> List[str]:
    """The strings of an alias that a search in the given scope inspects"""
    if scope is FieldScope.NAME:
        return [alias.name]
    elif scope is FieldScope.COMMAND:
        return [alias.command]
    elif scope is FieldScope.NOTE:
        return [alias.note] if alias.note else []
    elif scope is FieldScope.TAG:
        return list(alias.tags)
    elif scope is FieldScope.ANY:
        values = [alias.name, alias.command, *alias.tags]
        if alias.note:
            values.append(alias.note)
        return values
    raise ValueError(f"Unknown field scope: {scope!r}")


def build_matcher(
    keyword: str,
    use_regex: bool = False,
    case_sensitive: bool = False,
    fuzzy: bool = False,
    threshold: int = 70,
) -> Callable[[str], bool]:
    """Return a predicate telling whether a single string matches"""
    if use_regex:
        try:
            pattern = re.compile(keyword, 0 if case_sensitive else re.IGNORECASE)
        except re.error as e:
            raise InvalidPatternError(f"Invalid regex pattern '{keyword}': {e}") from e
        return lambda value: pattern.search(value) is not None

    if fuzzy:
        needle = keyword if case_sensitive else keyword.lower()

        def fuzzy_match(value: str) -> bool:
            haystack = value if case_sensitive else value.lower()
            return fuzz.partial_ratio(needle, haystack) >= threshold

        return fuzzy_match

    if case_sensitive:
        return lambda value: keyword in value
    needle = keyword.lower()
    return lambda value: needle in value.lower()


def filter_aliases(
    aliases: Iterable[Alias],
    tags: Optional[Iterable[str]] = None,
    category: Optional[str] = None,
) -> List[Alias]:
    """Keep aliases carrying every tag given and belonging to the category"""
    wanted = list(tags or [])
    return [
        alias
        for alias in aliases
        if all(tag in alias.tags for tag in wanted) and (not category or alias.category == category)
    ]


def search(
    aliases: Iterable[Alias],
    keyword: str,
    scope: FieldScope = FieldScope.ANY,
    use_regex: bool = False,
    case_sensitive: bool = False,
    tags: Optional[Iterable[str]] = None,
    category: Optional[str] = None,
    fuzzy: bool = False,
    threshold: int = 70,
) -> List[Alias]:
    """Find aliases matching keyword in the given scope

    Regex mode takes precedence over fuzzy mode. Tag and category filters
    are ANDed with the keyword match. An empty result is a normal outcome.
    """
    matches = build_matcher(keyword, use_regex, case_sensitive, fuzzy, threshold)
    candidates = filter_aliases(aliases, tags, category)
    return [alias for alias in candidates if any(matches(v) for v in field_values(alias, scope))]


def sort_aliases(aliases: Iterable[Alias], key: SortKey = SortKey.NONE) -> List[Alias]:
    """Display order only; never changes what is stored"""
    if key is SortKey.NAME:
        return sorted(aliases, key=lambda a: a.name)
    elif key is SortKey.COMMAND:
        return sorted(aliases, key=lambda a: (a.command, a.name))
    return list(aliases)
