from datetime import datetime

import pytest
import yaml

from shorty.categories import UNCATEGORIZED, CategoryRegistry
from shorty.errors import ConflictError, MalformedError, NotFoundError
from shorty.models import Alias


def test_defaults_when_file_missing(registry):
    assert list(registry.categories) == ["git", "docker", "nodejs", "network", "system"]
    assert registry.get("docker").icon == "🐳"


def test_add_persists(registry, tmp_path):
    registry.add("k8s", description="Kubernetes", parent="docker", icon="☸")

    reloaded = CategoryRegistry(tmp_path / "categories.yaml")
    category = reloaded.get("k8s")
    assert category.parent == "docker"
    assert category.description == "Kubernetes"
    assert category.created_at == datetime(2025, 10, 24, 16, 34, 21)


def test_add__duplicate(registry):
    with pytest.raises(ConflictError):
        registry.add("git")


def test_add__missing_parent(registry):
    with pytest.raises(NotFoundError):
        registry.add("child", parent="nope")


def test_add__reserved_name(registry):
    with pytest.raises(ConflictError):
        registry.add(UNCATEGORIZED)


def test_set_parent__rejects_cycle(registry):
    registry.add("a")
    registry.add("b", parent="a")
    registry.add("c", parent="b")

    with pytest.raises(ConflictError):
        registry.set_parent("a", "c")
    with pytest.raises(ConflictError):
        registry.set_parent("a", "a")

    assert registry.get("a").parent is None


def test_set_parent__clear(registry):
    registry.add("a")
    registry.add("b", parent="a")

    registry.set_parent("b", None)

    assert registry.get("b").parent is None


def test_ancestors(registry):
    registry.add("a")
    registry.add("b", parent="a")
    registry.add("c", parent="b")

    assert registry.ancestors("c") == ["b", "a"]


def test_remove__with_children_needs_force(registry, storage):
    registry.add("child", parent="git")

    with pytest.raises(ConflictError):
        registry.remove("git", storage)

    assert registry.resolve("git") is not None


def test_remove__with_members_needs_force(registry, storage):
    storage.add(Alias(name="gs", command="git status", category="git"))

    with pytest.raises(ConflictError):
        registry.remove("git", storage)

    assert storage.get("gs").category == "git"


def test_remove__forced(registry, storage):
    registry.add("tools")
    registry.add("vcs", parent="tools")
    registry.add("hg", parent="vcs")
    registry.add("svn", parent="vcs")
    storage.add(Alias(name="hgs", command="hg status", category="vcs"))
    storage.add(Alias(name="ll", command="ls -la", category="system"))

    moved, freed = registry.remove("vcs", storage, force=True)

    assert moved == ["hg", "svn"]
    assert freed == 1
    assert "vcs" not in registry.categories
    assert registry.get("hg").parent == "tools"
    assert registry.get("svn").parent == "tools"
    assert storage.get("hgs").category is None
    assert storage.get("ll").category == "system"
    assert all(c.parent != "vcs" for c in registry.categories.values())


def test_remove__forced_root_children_become_roots(registry, storage):
    registry.add("child", parent="git")

    registry.remove("git", storage, force=True)

    assert registry.get("child").parent is None


def test_dangling_reference_is_uncategorized(registry):
    item = Alias(name="x", command="echo", category="gone")

    assert registry.resolve(item.category) is None
    assert registry.effective_category(item) == UNCATEGORIZED


def test_move_alias(registry, storage):
    storage.add(Alias(name="gs", command="git status"))

    registry.move_alias(storage, "gs", "git")

    assert storage.get("gs").category == "git"
    with pytest.raises(NotFoundError):
        registry.move_alias(storage, "gs", "nope")


def test_group_aliases(registry):
    aliases = [
        Alias(name="x", command="echo"),
        Alias(name="gs", command="git status", category="git"),
        Alias(name="dps", command="docker ps", category="docker"),
    ]

    groups = registry.group_aliases(aliases)

    assert list(groups) == ["git", "docker", UNCATEGORIZED]
    assert [a.name for a in groups[UNCATEGORIZED]] == ["x"]


def test_tree(registry):
    registry.add("compose", parent="docker")

    entries = [(depth, c.name) for depth, c in registry.tree()]

    assert entries.index((0, "docker")) + 1 == entries.index((1, "compose"))


def test_suggest_categories(registry):
    aliases = [
        Alias(name="k1", command="kubectl get pods"),
        Alias(name="k2", command="kubectl logs"),
        Alias(name="gs", command="git status", category="git"),
        Alias(name="x", command="foo"),
    ]

    assert registry.suggest_categories(aliases) == [("kubernetes", 2)]


def test_load__invalid_yaml(tmp_path):
    path = tmp_path / "categories.yaml"
    path.write_text("categories: [unclosed")

    with pytest.raises(MalformedError):
        CategoryRegistry(path)


def test_load__skips_bad_entries(tmp_path):
    path = tmp_path / "categories.yaml"
    path.write_text(yaml.safe_dump({"categories": [{"name": "ok"}, {"description": "no name"}]}))

    assert list(CategoryRegistry(path).categories) == ["ok"]
