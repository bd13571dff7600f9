"""Placeholder parsing and substitution for alias templates"""

import re
from typing import Dict, List, Optional, Tuple

from shorty.errors import MalformedError


class ParameterParser:
    """Parse and fill ``{name}`` placeholders in template patterns"""

    PLACEHOLDER_PATTERN = re.compile(r"\{(\w+)\}")

    @staticmethod
    def extract_parameters(pattern: str) -> List[str]:
        """Extract placeholder names from a pattern

        Args:
            pattern: The template pattern to parse

        Returns:
            Unique placeholder names in order of first appearance
            (e.g., ['url', 'directory'])
        """
        names = []
        for match in ParameterParser.PLACEHOLDER_PATTERN.finditer(pattern):
            if match.group(1) not in names:
                names.append(match.group(1))
        return names

    @staticmethod
    def has_parameters(pattern: str) -> bool:
        """Check if a pattern has any placeholders"""
        return ParameterParser.PLACEHOLDER_PATTERN.search(pattern) is not None

    @staticmethod
    def substitute(pattern: str, values: Dict[str, str]) -> Tuple[str, List[str]]:
        """Replace placeholders with their values in a single pass

        Values are inserted literally, so a value that itself looks like a
        placeholder is not expanded again.

        Args:
            pattern: The template pattern
            values: Mapping of placeholder name to value

        Returns:
            Tuple of (result, names of placeholders that had no value)
        """
        missing = []

        def replace(match: "re.Match") -> str:
            name = match.group(1)
            if name in values:
                return values[name]
            if name not in missing:
                missing.append(name)
            return match.group(0)

        return ParameterParser.PLACEHOLDER_PATTERN.sub(replace, pattern), missing

    @staticmethod
    def generate_usage_example(template_name: str, pattern: str,
                               defaults: Optional[Dict[str, Optional[str]]] = None) -> str:
        """Generate a usage example for a template

        Args:
            template_name: The template name
            pattern: The template pattern
            defaults: Optional default value per placeholder

        Returns:
            Usage example string
            (e.g., 'shorty template use git_clone -p url=value -p directory=.')
        """
        defaults = defaults or {}
        hints = []
        for name in ParameterParser.extract_parameters(pattern):
            default = defaults.get(name)
            hints.append(f"-p {name}={default if default else 'value'}")
        if not hints:
            return f"shorty template use {template_name}"
        return f"shorty template use {template_name} {' '.join(hints)}"

    @staticmethod
    def parse_assignments(items: List[str]) -> Dict[str, str]:
        """Turn ``key=value`` strings into a dict

        Raises:
            MalformedError: If an item has no ``=``
        """
        values = {}
        for item in items:
            key, sep, value = item.partition("=")
            if not sep or not key.strip():
                raise MalformedError(f"Invalid parameter '{item}', expected key=value")
            values[key.strip()] = value
        return values
