"""Category forest for organising aliases"""

import logging
from collections import Counter
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Iterable, List, Optional, Tuple

import yaml

from shorty.errors import ConflictError, MalformedError, NotFoundError, StorageIOError
from shorty.models import Alias, Category
from shorty.storage import atomic_write

if TYPE_CHECKING:
    from shorty.storage import AliasStorage

logger = logging.getLogger(__name__)

UNCATEGORIZED = "uncategorized"

DEFAULT_CATEGORIES = [
    {"name": "git", "description": "Git version control commands", "color": "orange", "icon": "🔀"},
    {"name": "docker", "description": "Docker and containerization commands", "color": "blue", "icon": "🐳"},
    {"name": "nodejs", "description": "Node.js and npm commands", "color": "green", "icon": "📦"},
    {"name": "network", "description": "Network and SSH commands", "color": "purple", "icon": "🌐"},
    {"name": "system", "description": "System administration commands", "color": "red", "icon": "⚙️"},
]

# leading command -> suggested category
COMMAND_FAMILIES = {
    "git": "git", "tig": "git",
    "docker": "docker", "docker-compose": "docker", "podman": "docker",
    "npm": "nodejs", "yarn": "nodejs", "pnpm": "nodejs", "npx": "nodejs", "node": "nodejs",
    "kubectl": "kubernetes", "helm": "kubernetes", "k9s": "kubernetes",
    "ssh": "network", "scp": "network", "rsync": "network", "curl": "network", "ping": "network",
    "ls": "listing", "tree": "listing", "exa": "listing", "eza": "listing",
    "cd": "navigation", "pushd": "navigation", "popd": "navigation",
    "cat": "viewing", "less": "viewing", "more": "viewing", "head": "viewing", "tail": "viewing",
}


class CategoryRegistry:
    """Load, edit and persist categories stored in a YAML file"""

    def __init__(self, path: Path, clock: Optional[Callable[[], datetime]] = None):
        self.path = path
        self.clock = clock
        self.categories: Dict[str, Category] = {}
        self.load()

    def now(self) -> datetime:
        return self.clock() if self.clock else datetime.now()

    def load(self) -> None:
        """Load categories, falling back to the default set on first run"""
        if not self.path.exists():
            created = self.now()
            self.categories = {
                data["name"]: Category(created_at=created, **data) for data in DEFAULT_CATEGORIES
            }
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise MalformedError(f"Invalid categories file {self.path}: {e}") from e
        except OSError as e:
            raise StorageIOError(f"Could not read {self.path}: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("categories", []), list):
            raise MalformedError(f"Invalid categories file {self.path}: missing 'categories' list")

        self.categories = {}
        for entry in data.get("categories", []):
            if not isinstance(entry, dict) or "name" not in entry:
                logger.warning("Skipping invalid category entry: %r", entry)
                continue
            category = Category.from_dict(entry)
            self.categories[category.name] = category

    def save(self) -> None:
        payload = {
            "version": "1.0",
            "categories": [c.to_dict() for c in self.categories.values()],
        }
        atomic_write(self.path, yaml.safe_dump(payload, sort_keys=False, allow_unicode=True))

    def get(self, name: str) -> Category:
        category = self.categories.get(name)
        if category is None:
            raise NotFoundError(f"Category '{name}' not found")
        return category

    def resolve(self, name: Optional[str]) -> Optional[Category]:
        """The category a reference points to, or None if missing or dangling"""
        if not name:
            return None
        return self.categories.get(name)

    def effective_category(self, alias: Alias) -> str:
        category = self.resolve(alias.category)
        return category.name if category else UNCATEGORIZED

    def children(self, name: Optional[str]) -> List[Category]:
        return [c for c in self.categories.values() if c.parent == name]

    def ancestors(self, name: str) -> List[str]:
        """Names from the parent of name up to its root"""
        chain = []
        seen = {name}
        current = self.categories.get(name)
        while current is not None and current.parent:
            if current.parent in seen:
                logger.warning("Category cycle detected at '%s'", current.parent)
                break
            chain.append(current.parent)
            seen.add(current.parent)
            current = self.categories.get(current.parent)
        return chain

    def _check_parent(self, name: str, parent: Optional[str]) -> None:
        if parent is None:
            return
        if parent not in self.categories:
            raise NotFoundError(f"Parent category '{parent}' does not exist")
        if parent == name or name in self.ancestors(parent):
            raise ConflictError(f"Making '{parent}' the parent of '{name}' would create a cycle")

    def add(
        self,
        name: str,
        description: Optional[str] = None,
        parent: Optional[str] = None,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Category:
        if not name or not name.strip():
            raise MalformedError("Category name must not be empty")
        if name == UNCATEGORIZED:
            raise ConflictError(f"'{UNCATEGORIZED}' is reserved")
        if name in self.categories:
            raise ConflictError(f"Category '{name}' already exists")
        self._check_parent(name, parent)

        category = Category(
            name=name,
            description=description or "",
            parent=parent,
            color=color,
            icon=icon,
            created_at=self.now(),
        )
        self.categories[name] = category
        self.save()
        return category

    def set_parent(self, name: str, parent: Optional[str]) -> Category:
        category = self.get(name)
        self._check_parent(name, parent)
        category.parent = parent
        self.save()
        return category

    def remove(self, name: str, storage: "AliasStorage", force: bool = False) -> Tuple[List[str], int]:
        """Delete a category

        Without force, a category that has children or member aliases is
        kept and ConflictError is raised. With force, children move to the
        deleted category's parent and member aliases become uncategorized.
        Returns the re-parented child names and the number of freed aliases.
        """
        category = self.get(name)
        children = self.children(name)
        members = storage.list_all(category=name)

        if children and not force:
            raise ConflictError(
                f"Category '{name}' has child categories. Use --force to remove it "
                f"and move children to '{category.parent or 'root level'}'"
            )
        if members and not force:
            raise ConflictError(
                f"Category '{name}' contains {len(members)} aliases. Use --force to remove "
                f"the category (aliases will become {UNCATEGORIZED})"
            )

        freed = storage.uncategorize(name) if members else 0
        for child in children:
            child.parent = category.parent
        del self.categories[name]
        self.save()
        return [child.name for child in children], freed

    def move_alias(self, storage: "AliasStorage", alias_name: str, category_name: str) -> Alias:
        self.get(category_name)
        return storage.set_category(alias_name, category_name)

    def group_aliases(self, aliases: Iterable[Alias]) -> Dict[str, List[Alias]]:
        """Aliases keyed by effective category, uncategorized last"""
        groups: Dict[str, List[Alias]] = {}
        for alias in aliases:
            groups.setdefault(self.effective_category(alias), []).append(alias)
        if UNCATEGORIZED in groups:
            groups[UNCATEGORIZED] = groups.pop(UNCATEGORIZED)
        return groups

    def tree(self) -> List[Tuple[int, Category]]:
        """Depth-first (depth, category) pairs starting at the roots"""
        result = []
        visited = set()

        def walk(category: Category, depth: int) -> None:
            if category.name in visited:
                return
            visited.add(category.name)
            result.append((depth, category))
            for child in self.children(category.name):
                walk(child, depth + 1)

        for root in self.categories.values():
            if not root.parent or root.parent not in self.categories:
                walk(root, 0)
        return result

    def suggest_categories(self, aliases: Iterable[Alias]) -> List[Tuple[str, int]]:
        """Category names worth creating for uncategorized aliases"""
        counts = Counter()
        for alias in aliases:
            if self.effective_category(alias) != UNCATEGORIZED:
                continue
            words = alias.command.split()
            if not words:
                continue
            counts[COMMAND_FAMILIES.get(words[0], "general")] += 1
        return [(name, count) for name, count in counts.most_common() if count > 1]
