from datetime import datetime
from pathlib import Path
from typing import List

import pytest

from shorty.backup import BackupManager
from shorty.categories import CategoryRegistry
from shorty.context import ShortyContext
from shorty.models import Alias
from shorty.storage import AliasStorage


@pytest.fixture
def alias() -> Alias:
    return Alias(
        name="gs",
        command="git status",
        note="Show repo status",
        tags=["git", "vcs"],
        category="git",
    )


@pytest.fixture
def alias_min() -> Alias:
    return Alias(name="ll", command="ls -la")


@pytest.fixture
def alias_list(alias, alias_min) -> List[Alias]:
    return [alias, alias_min]


@pytest.fixture
def search_aliases() -> List[Alias]:
    return [
        Alias(name="gs", command="git status", tags=["git"]),
        Alias(name="gp", command="git push", tags=["git", "remote"]),
        Alias(name="ll", command="ls -la"),
    ]


@pytest.fixture
def aliases_path(tmp_path) -> Path:
    return tmp_path / "aliases"


@pytest.fixture
def backups(tmp_path) -> BackupManager:
    return BackupManager(tmp_path / "backups")


@pytest.fixture
def storage(aliases_path, backups) -> AliasStorage:
    return AliasStorage(aliases_path, backups=backups)


@pytest.fixture
def filled_storage(storage, alias_list) -> AliasStorage:
    for item in alias_list:
        storage.add(item)
    return storage


@pytest.fixture
def registry(tmp_path) -> CategoryRegistry:
    return CategoryRegistry(tmp_path / "categories.yaml", clock=lambda: datetime(2025, 10, 24, 16, 34, 21))


@pytest.fixture
def shorty_context(tmp_path) -> ShortyContext:
    return ShortyContext(
        home=tmp_path / "home",
        resolver=lambda token: token in {"git", "ls", "echo", "docker", "ssh", "npm"},
        shell_home=tmp_path / "user",
    )
