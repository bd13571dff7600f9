"""Shell detection and configuration file handling"""

import os
import pwd
from enum import Enum
from pathlib import Path
from typing import Dict, Optional


class ShellType(Enum):
    """Supported shell types"""

    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"
    SH = "sh"
    UNKNOWN = "unknown"


class ShellDetector:
    """Detect shell type and configuration files"""

    # rc files scanned for existing aliases
    CONFIG_FILES = {
        ShellType.BASH: [".bashrc", ".bash_aliases", ".bash_profile"],
        ShellType.ZSH: [".zshrc", ".zsh_aliases"],
        ShellType.FISH: [".config/fish/config.fish"],
        ShellType.SH: [".profile"],
    }

    # file that sources the alias file after `shorty install`
    TARGET_FILES = {
        ShellType.BASH: ".bashrc",
        ShellType.ZSH: ".zshrc",
        ShellType.FISH: ".config/fish/config.fish",
        ShellType.SH: ".profile",
    }

    def __init__(self, home_dir: Optional[Path] = None):
        """Initialize detector with home directory"""
        self.home_dir = home_dir or Path.home()

    @staticmethod
    def _from_path(shell_path: str) -> ShellType:
        name = os.path.basename(shell_path.strip().lower())
        if "zsh" in name:
            return ShellType.ZSH
        elif "bash" in name:
            return ShellType.BASH
        elif "fish" in name:
            return ShellType.FISH
        elif name.endswith("sh"):
            return ShellType.SH
        return ShellType.UNKNOWN

    def detect_current_shell(self) -> ShellType:
        """Detect the current shell from the environment"""
        shell_env = os.environ.get("SHELL", "")
        if shell_env:
            shell_type = self._from_path(shell_env)
            if shell_type is not ShellType.UNKNOWN:
                return shell_type

        # user's login shell
        try:
            shell_type = self._from_path(pwd.getpwuid(os.getuid()).pw_shell)
            if shell_type is not ShellType.UNKNOWN:
                return shell_type
        except (KeyError, OSError):
            pass

        if os.environ.get("ZSH_NAME") or os.environ.get("ZSH_VERSION"):
            return ShellType.ZSH
        elif os.environ.get("BASH_VERSION"):
            return ShellType.BASH

        return self._get_shell_hints_from_configs() or ShellType.UNKNOWN

    def _get_shell_hints_from_configs(self) -> Optional[ShellType]:
        """Guess the shell from whichever rc file exists"""
        for shell_type in (ShellType.ZSH, ShellType.BASH, ShellType.FISH):
            for config in self.CONFIG_FILES[shell_type]:
                if (self.home_dir / config).exists():
                    return shell_type
        return None

    def find_config_files(self, shell_type: Optional[ShellType] = None) -> Dict[str, Path]:
        """Find existing configuration files for shell"""
        if shell_type is None:
            shell_type = self.detect_current_shell()

        config_files = {}
        for pattern in self.CONFIG_FILES.get(shell_type, []):
            config_path = self.home_dir / pattern
            if config_path.exists() and config_path.is_file():
                config_files[pattern] = config_path

        return config_files

    def get_target_file(self, shell_type: ShellType) -> Optional[Path]:
        target = self.TARGET_FILES.get(shell_type)
        return self.home_dir / target if target else None
