import pytest

from shorty.errors import MalformedError
from shorty.shell_detector import ShellDetector, ShellType
from shorty.shell_integration import BLOCK_END, BLOCK_START, ShellIntegrator


@pytest.fixture
def home(tmp_path):
    path = tmp_path / "user"
    path.mkdir()
    return path


@pytest.fixture
def integrator(tmp_path, home):
    return ShellIntegrator(tmp_path / ".shorty" / "aliases", ShellDetector(home))


def test_resolve_shell(integrator):
    assert integrator.resolve_shell("ZSH") is ShellType.ZSH

    with pytest.raises(MalformedError):
        integrator.resolve_shell("powershell")


def test_resolve_shell_detects(integrator, monkeypatch):
    monkeypatch.setenv("SHELL", "/usr/bin/fish")

    assert integrator.resolve_shell() is ShellType.FISH


def test_install_appends_block(integrator, home, tmp_path):
    rc = home / ".bashrc"
    rc.write_text("export EDITOR=vim")

    ok, msg = integrator.install(ShellType.BASH)

    assert ok
    assert msg == f"Added alias sourcing to {rc}"
    content = rc.read_text()
    assert content.startswith("export EDITOR=vim\n\n" + BLOCK_START)
    aliases = tmp_path / ".shorty" / "aliases"
    assert f'[ -f "{aliases}" ] && . "{aliases}"' in content
    assert content.endswith(BLOCK_END + "\n")
    assert integrator.is_installed(ShellType.BASH)


def test_install_creates_missing_file(integrator, home):
    ok, _ = integrator.install(ShellType.ZSH)

    assert ok
    assert (home / ".zshrc").read_text().startswith(BLOCK_START)


def test_install_is_idempotent(integrator, home):
    integrator.install(ShellType.BASH)
    before = (home / ".bashrc").read_text()

    ok, msg = integrator.install(ShellType.BASH)

    assert not ok
    assert "already installed" in msg
    assert (home / ".bashrc").read_text() == before


def test_install_force_rewrites_single_block(integrator, home):
    rc = home / ".bashrc"
    rc.write_text("alias ll='ls'\n")
    integrator.install(ShellType.BASH)

    ok, _ = integrator.install(ShellType.BASH, force=True)

    assert ok
    content = rc.read_text()
    assert content.count(BLOCK_START) == 1
    assert content.startswith("alias ll='ls'\n")


def test_install_fish(integrator, home, tmp_path):
    integrator.install(ShellType.FISH)

    content = (home / ".config" / "fish" / "config.fish").read_text()
    aliases = tmp_path / ".shorty" / "aliases"
    assert f'test -f "{aliases}"; and source "{aliases}"' in content


def test_install_follows_symlink(integrator, home, tmp_path):
    real = tmp_path / "dotfiles" / "bashrc"
    real.parent.mkdir()
    real.write_text("# mine\n")
    (home / ".bashrc").symlink_to(real)

    integrator.install(ShellType.BASH)

    assert (home / ".bashrc").is_symlink()
    assert BLOCK_START in real.read_text()


def test_uninstall(integrator, home):
    rc = home / ".bashrc"
    rc.write_text("export A=1\n")
    integrator.install(ShellType.BASH)
    with rc.open("a") as f:
        f.write("export B=2\n")

    ok, msg = integrator.uninstall(ShellType.BASH)

    assert ok
    assert msg == f"Removed alias sourcing from {rc}"
    content = rc.read_text()
    assert BLOCK_START not in content
    assert "export A=1\n" in content
    assert "export B=2\n" in content


def test_uninstall_not_installed(integrator, home):
    ok, msg = integrator.uninstall(ShellType.BASH)

    assert not ok
    assert "not installed" in msg
    assert not (home / ".bashrc").exists()
