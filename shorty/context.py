"""Per-invocation wiring of paths, configuration and services"""

import os
from datetime import datetime
from functools import cached_property
from pathlib import Path
from typing import Callable, Optional

from shorty.backup import BackupManager
from shorty.categories import CategoryRegistry
from shorty.config import Config
from shorty.porter import AliasPorter
from shorty.scanner import AliasScanner
from shorty.shell_detector import ShellDetector
from shorty.shell_integration import ShellIntegrator
from shorty.storage import AliasStorage
from shorty.template_manager import TemplateManager
from shorty.validator import Resolver, Validator, default_resolver

HOME_ENV = "SHORTY_HOME"


def default_home() -> Path:
    env = os.environ.get(HOME_ENV)
    return Path(env).expanduser() if env else Path.home() / ".shorty"


class ShortyContext:
    """Everything one command needs, built on first use"""

    def __init__(
        self,
        home: Optional[Path] = None,
        clock: Optional[Callable[[], datetime]] = None,
        resolver: Resolver = default_resolver,
        shell_home: Optional[Path] = None,
    ):
        self.home = Path(home).expanduser() if home else default_home()
        self.clock = clock
        self.resolver = resolver
        self.shell_home = shell_home
        self.config = Config(config_dir=self.home)

    @property
    def aliases_path(self) -> Path:
        return self.home / "aliases"

    @property
    def backup_dir(self) -> Path:
        return self.home / "backups"

    @cached_property
    def backups(self) -> BackupManager:
        return BackupManager(
            self.backup_dir,
            clock=self.clock,
            max_backups=self.config.get("backup.max_backups"),
        )

    @cached_property
    def storage(self) -> AliasStorage:
        return AliasStorage(
            self.aliases_path,
            backups=self.backups,
            auto_backup=self.config.get("backup.auto_backup", True),
            sort_on_add=self.config.get("aliases.sort_on_add", False),
        )

    @cached_property
    def categories(self) -> CategoryRegistry:
        return CategoryRegistry(self.home / "categories.yaml", clock=self.clock)

    @cached_property
    def templates(self) -> TemplateManager:
        return TemplateManager(self.home / "templates.yaml", clock=self.clock)

    @cached_property
    def detector(self) -> ShellDetector:
        return ShellDetector(self.shell_home)

    @cached_property
    def porter(self) -> AliasPorter:
        return AliasPorter(self.storage, scanner=AliasScanner(self.detector), clock=self.clock)

    @cached_property
    def integrator(self) -> ShellIntegrator:
        return ShellIntegrator(self.aliases_path, self.detector)

    @cached_property
    def validator(self) -> Validator:
        return Validator(self.resolver)
