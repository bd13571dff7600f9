import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from shorty.errors import MalformedError
from shorty.storage import atomic_write

logger = logging.getLogger(__name__)

TRUE_VALUES = {"true", "yes", "on", "1"}
FALSE_VALUES = {"false", "no", "off", "0"}
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Config:
    """Manage shorty configuration and themes"""

    THEMES = {
        "default": {
            "border_color": "cyan",
            "header_color": "cyan",
            "selected_color": "yellow",
            "search_color": "magenta",
            "success_color": "green",
            "error_color": "red",
        },
        "ocean": {
            "border_color": "blue",
            "header_color": "bright_blue",
            "selected_color": "cyan",
            "search_color": "bright_cyan",
            "success_color": "green",
            "error_color": "bright_red",
        },
        "forest": {
            "border_color": "green",
            "header_color": "bright_green",
            "selected_color": "yellow",
            "search_color": "bright_yellow",
            "success_color": "bright_green",
            "error_color": "red",
        },
        "monochrome": {
            "border_color": "white",
            "header_color": "bright_white",
            "selected_color": "white",
            "search_color": "bright_white",
            "success_color": "white",
            "error_color": "bright_white",
        },
    }

    DEFAULT_CONFIG = {
        "theme": "default",
        "backup": {
            "auto_backup": True,
            "max_backups": 10,
        },
        "display": {
            "show_notes": True,
            "max_command_length": 50,
        },
        "search": {
            "case_sensitive": False,
            "fuzzy_matching": False,
            "fuzzy_threshold": 70,
        },
        "aliases": {
            "sort_on_add": False,
            "validate_on_add": True,
        },
        "logging": {
            "level": "WARNING",
        },
    }

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = config_dir or Path.home() / ".shorty"
        self.config_path = self.config_dir / "config.json"
        self.config = self.load()

    def load(self) -> Dict[str, Any]:
        """Load configuration from file, merged over the defaults"""
        config = copy.deepcopy(self.DEFAULT_CONFIG)
        if not self.config_path.exists():
            return config
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                user_config = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable config %s: %s", self.config_path, e)
            return config
        if not isinstance(user_config, dict):
            logger.warning("Ignoring config %s: expected an object", self.config_path)
            return config

        for key, value in user_config.items():
            if isinstance(config.get(key), dict) and isinstance(value, dict):
                config[key].update(value)
            else:
                config[key] = value
        return config

    def save(self) -> None:
        """Save configuration to file"""
        atomic_write(self.config_path, json.dumps(self.config, indent=2) + "\n")

    @classmethod
    def _default_for(cls, key: str) -> Any:
        node: Any = cls.DEFAULT_CONFIG
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                raise MalformedError(f"Unknown config key '{key}'")
            node = node[part]
        if isinstance(node, dict):
            raise MalformedError(f"'{key}' is a section, use one of its keys")
        return node

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dotted key"""
        node: Any = self.config
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def value_of(self, key: str) -> Any:
        """Current value of a known key, MalformedError for unknown ones"""
        return self.get(key, self._default_for(key))

    def coerce(self, key: str, value: Any) -> Any:
        """Convert value to the type of the key's default"""
        default = self._default_for(key)
        if not isinstance(value, str):
            if isinstance(value, type(default)):
                return value
            value = str(value)

        if isinstance(default, bool):
            lowered = value.strip().lower()
            if lowered in TRUE_VALUES:
                return True
            if lowered in FALSE_VALUES:
                return False
            raise MalformedError(f"'{key}' expects true or false, got '{value}'")
        if isinstance(default, int):
            try:
                number = int(value)
            except ValueError:
                raise MalformedError(f"'{key}' expects a whole number, got '{value}'") from None
            if number < 0:
                raise MalformedError(f"'{key}' must not be negative")
            return number

        if key == "theme" and value not in self.THEMES:
            raise MalformedError(f"Unknown theme '{value}'. Available: {', '.join(self.THEMES)}")
        if key == "logging.level":
            value = value.upper()
            if value not in LOG_LEVELS:
                raise MalformedError(f"Unknown log level '{value}'. Available: {', '.join(LOG_LEVELS)}")
        return value

    def set(self, key: str, value: Any) -> Any:
        """Set configuration value and return what was stored"""
        value = self.coerce(key, value)
        *sections, leaf = key.split(".")
        node = self.config
        for part in sections:
            if not isinstance(node.get(part), dict):
                node[part] = {}
            node = node[part]
        node[leaf] = value
        self.save()
        return value

    def reset(self) -> None:
        """Restore every value to its default"""
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()

    def items(self) -> List[Tuple[str, Any]]:
        """Every known key with its current value, in dotted form"""
        result = []

        def walk(defaults: Dict[str, Any], prefix: str) -> None:
            for key, value in defaults.items():
                dotted = f"{prefix}{key}"
                if isinstance(value, dict):
                    walk(value, f"{dotted}.")
                else:
                    result.append((dotted, self.get(dotted, value)))

        walk(self.DEFAULT_CONFIG, "")
        return result

    def get_theme(self) -> Dict[str, str]:
        """Get current theme colors"""
        theme_name = self.config.get("theme", "default")
        return self.THEMES.get(theme_name, self.THEMES["default"])
