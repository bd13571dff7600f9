import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import yaml

from shorty.errors import (
    ConflictError,
    InvalidPatternError,
    MalformedError,
    NotFoundError,
    StorageIOError,
)
from shorty.models import Alias
from shorty.parameters import ParameterParser
from shorty.storage import ReplacePolicy, atomic_write

if TYPE_CHECKING:
    from shorty.storage import AliasStorage

logger = logging.getLogger(__name__)

BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "templates"


@dataclass
class TemplateParameter:
    """A named placeholder in a template pattern"""
    name: str
    description: str = ""
    default: Optional[str] = None
    required: bool = True
    validation_pattern: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "description": self.description, "required": self.required}
        if self.default is not None:
            data["default"] = self.default
        if self.validation_pattern:
            data["validation_pattern"] = self.validation_pattern
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TemplateParameter":
        default = data.get("default")
        return cls(
            name=str(data["name"]),
            description=data.get("description") or f"Parameter for {data['name']}",
            default=None if default is None else str(default),
            required=bool(data.get("required", default is None)),
            validation_pattern=data.get("validation_pattern"),
        )


@dataclass
class Template:
    """A reusable command pattern with placeholders"""
    name: str
    pattern: str
    description: str = "No description"
    category: str = "general"
    parameters: List[TemplateParameter] = field(default_factory=list)
    created_at: Optional[str] = None
    usage_count: int = 0
    builtin: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "pattern": self.pattern,
            "parameters": [p.to_dict() for p in self.parameters],
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], builtin: bool = False) -> "Template":
        return cls(
            name=str(data["name"]),
            pattern=str(data["pattern"]),
            description=data.get("description") or "No description",
            category=data.get("category") or "general",
            parameters=[TemplateParameter.from_dict(p) for p in data.get("parameters") or []],
            created_at=data.get("created_at"),
            builtin=builtin,
        )

    def get_parameter(self, name: str) -> Optional[TemplateParameter]:
        for param in self.parameters:
            if param.name == name:
                return param
        return None


def parameters_for(pattern: str, existing: Optional[List[TemplateParameter]] = None) -> List[TemplateParameter]:
    """Parameters of a pattern, reusing existing definitions by name"""
    known = {p.name: p for p in existing or []}
    return [
        known.get(name) or TemplateParameter(name=name, description=f"Parameter for {name}")
        for name in ParameterParser.extract_parameters(pattern)
    ]


def sanitize_alias_name(value: str) -> str:
    return re.sub(r"\W+", "", value).lower()


class TemplateManager:
    """Manage builtin and user-defined alias templates"""

    def __init__(
        self,
        user_path: Path,
        builtin_dir: Path = BUILTIN_TEMPLATES_DIR,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.user_path = user_path
        self.builtin_dir = builtin_dir
        self.clock = clock
        self._builtin: Dict[str, Template] = {}
        self._user: Dict[str, Template] = {}
        self._usage: Dict[str, int] = {}
        self._load_templates()

    def now(self) -> datetime:
        return self.clock() if self.clock else datetime.now()

    def _validate_template_data(self, data: Any) -> bool:
        """Validate a single template entry"""
        if not isinstance(data, dict):
            return False

        for required in ("name", "pattern"):
            if not isinstance(data.get(required), str) or not data[required]:
                return False

        if not isinstance(data.get("parameters") or [], list):
            return False

        for param in data.get("parameters") or []:
            if not isinstance(param, dict) or "name" not in param:
                return False

        return True

    def _read_entries(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise MalformedError(f"Invalid template file {path}: {e}") from e
        except OSError as e:
            raise StorageIOError(f"Could not read {path}: {e}") from e
        if not isinstance(data, dict) or not isinstance(data.get("templates") or [], list):
            raise MalformedError(f"Invalid template file {path}: missing 'templates' list")
        return data

    def _parse_entries(self, data: Dict[str, Any], source: Path, builtin: bool) -> Dict[str, Template]:
        templates = {}
        for entry in data.get("templates") or []:
            if not self._validate_template_data(entry):
                logger.warning("Skipping invalid template in %s: %r", source.name, entry)
                continue
            template = Template.from_dict(entry, builtin=builtin)
            templates[template.name] = template
        return templates

    def _load_templates(self) -> None:
        """Load builtin templates, then the user's file on top"""
        self._builtin = {}
        if self.builtin_dir.exists():
            for yaml_file in sorted(self.builtin_dir.glob("*.yaml")):
                data = self._read_entries(yaml_file)
                self._builtin.update(self._parse_entries(data, yaml_file, builtin=True))

        self._user = {}
        self._usage = {}
        if self.user_path.exists():
            data = self._read_entries(self.user_path)
            self._user = self._parse_entries(data, self.user_path, builtin=False)
            usage = data.get("usage") or {}
            if isinstance(usage, dict):
                self._usage = {str(k): int(v) for k, v in usage.items()}

    def save(self) -> None:
        payload = {
            "version": "1.0",
            "templates": [t.to_dict() for t in self._user.values()],
            "usage": dict(self._usage),
        }
        atomic_write(self.user_path, yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))

    @property
    def _templates(self) -> Dict[str, Template]:
        merged = dict(self._builtin)
        merged.update(self._user)
        for name, template in merged.items():
            template.usage_count = self._usage.get(name, 0)
        return merged

    def list_templates(self, category: Optional[str] = None) -> List[Template]:
        """List available templates, optionally filtered by category"""
        templates = list(self._templates.values())

        if category:
            templates = [t for t in templates if t.category == category]

        return sorted(templates, key=lambda t: t.name)

    def get_template(self, name: str) -> Template:
        """Get a specific template by name"""
        template = self._templates.get(name)
        if template is None:
            raise NotFoundError(f"Template '{name}' not found")
        return template

    def get_categories(self) -> List[str]:
        """Get all available template categories"""
        return sorted({t.category for t in self._templates.values()})

    def add_template(
        self,
        name: str,
        pattern: str,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> Template:
        if not name or not pattern:
            raise MalformedError("Template name and pattern must not be empty")
        if name in self._templates:
            raise ConflictError(
                f"Template '{name}' already exists. Use a different name or remove the existing template first."
            )

        template = Template(
            name=name,
            pattern=pattern,
            description=description or "No description",
            category=category or "general",
            parameters=parameters_for(pattern),
            created_at=self.now().strftime("%Y-%m-%d %H:%M:%S"),
        )
        self._user[name] = template
        self.save()
        return template

    def update_template(
        self,
        name: str,
        pattern: Optional[str] = None,
        description: Optional[str] = None,
        category: Optional[str] = None,
    ) -> List[str]:
        """Change a template and return the names of the changed fields

        Updating a builtin template stores a user copy that shadows it.
        """
        current = self.get_template(name)
        template = Template.from_dict(current.to_dict())
        changes = []

        if pattern is not None and pattern != template.pattern:
            if not pattern:
                raise MalformedError("Template pattern must not be empty")
            template.pattern = pattern
            template.parameters = parameters_for(pattern, template.parameters)
            changes.append("pattern")
        if description is not None and description != template.description:
            template.description = description
            changes.append("description")
        if category is not None and category != template.category:
            template.category = category
            changes.append("category")

        if changes:
            self._user[name] = template
            self.save()
        return changes

    def remove_template(self, name: str) -> Template:
        """Remove a user template; builtin ones cannot be removed"""
        if name not in self._user:
            if name in self._builtin:
                raise ConflictError(f"Template '{name}' is builtin and cannot be removed")
            raise NotFoundError(f"Template '{name}' not found")
        template = self._user.pop(name)
        if name not in self._builtin:
            self._usage.pop(name, None)
        self.save()
        return template

    def instantiate(self, name: str, values: Dict[str, str]) -> str:
        """Fill a template's placeholders and return the command

        Raises:
            MalformedError: A required value is missing, a value does not match
                its validation pattern, or a placeholder is left unfilled
        """
        template = self.get_template(name)
        filled = dict(values)

        for param in template.parameters:
            if param.name not in filled:
                if param.default is None:
                    if param.required:
                        raise MalformedError(
                            f"Required parameter '{param.name}' is missing. Description: {param.description}"
                        )
                    continue
                filled[param.name] = param.default

            if param.validation_pattern:
                try:
                    matches = re.search(param.validation_pattern, filled[param.name])
                except re.error as e:
                    raise InvalidPatternError(
                        f"Invalid validation pattern for '{param.name}': {e}"
                    ) from e
                if not matches:
                    raise MalformedError(
                        f"Parameter '{param.name}' value '{filled[param.name]}' "
                        f"doesn't match pattern '{param.validation_pattern}'"
                    )

        command, missing = ParameterParser.substitute(template.pattern, filled)
        if missing:
            raise MalformedError(f"Missing values for parameters: {', '.join(missing)}")
        return command

    def default_alias_name(self, template: Template, values: Dict[str, str]) -> str:
        """Template name, suffixed with the first parameter's value if given"""
        if template.parameters:
            value = values.get(template.parameters[0].name)
            if value:
                suffix = sanitize_alias_name(value)
                if suffix:
                    return f"{template.name}_{suffix}"
        return template.name

    def use_template(
        self,
        name: str,
        values: Dict[str, str],
        storage: "AliasStorage",
        alias_name: Optional[str] = None,
        replace: bool = False,
    ) -> Alias:
        """Create an alias from a template and count the use"""
        template = self.get_template(name)
        command = self.instantiate(name, values)

        alias = Alias(
            name=alias_name or self.default_alias_name(template, values),
            command=command,
            note=f"Generated from template: {template.name}",
            tags=[template.category, "template"],
        )
        storage.add(alias, ReplacePolicy.REPLACE if replace else ReplacePolicy.REJECT)

        self._usage[name] = self._usage.get(name, 0) + 1
        self.save()
        logger.info("Created alias '%s' from template '%s'", alias.name, name)
        return alias
