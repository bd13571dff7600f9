from datetime import datetime

import pytest
import yaml

from shorty.errors import ConflictError, InvalidPatternError, MalformedError, NotFoundError
from shorty.models import Alias
from shorty.template_manager import TemplateManager


class TestTemplateManager:
    """Test cases for TemplateManager class"""

    @pytest.fixture
    def manager(self, tmp_path):
        return TemplateManager(tmp_path / "templates.yaml", clock=lambda: datetime(2025, 10, 24, 16, 34, 21))

    @pytest.fixture
    def builtin_dir(self, tmp_path):
        """A builtin directory with one valid and one invalid template"""
        templates_dir = tmp_path / "builtin"
        templates_dir.mkdir()
        data = {
            "version": "1.0",
            "templates": [
                {"name": "greet", "pattern": "echo hello {who}", "category": "test"},
                {"description": "no name or pattern"},
            ],
        }
        with open(templates_dir / "defaults.yaml", "w") as f:
            yaml.safe_dump(data, f)
        return templates_dir

    def test_builtin_templates_loaded(self, manager):
        names = [t.name for t in manager.list_templates()]

        assert names == ["docker_run", "git_clone", "npm_script", "ssh_tunnel"]
        assert all(t.builtin for t in manager.list_templates())

    def test_list_templates_by_category(self, manager):
        assert [t.name for t in manager.list_templates(category="git")] == ["git_clone"]
        assert manager.list_templates(category="missing") == []

    def test_get_categories(self, manager):
        assert manager.get_categories() == ["docker", "git", "network", "nodejs"]

    def test_get_template_not_exists(self, manager):
        with pytest.raises(NotFoundError):
            manager.get_template("missing")

    def test_load_skips_invalid_template(self, tmp_path, builtin_dir, caplog):
        manager = TemplateManager(tmp_path / "templates.yaml", builtin_dir=builtin_dir)

        assert [t.name for t in manager.list_templates()] == ["greet"]
        assert "Skipping invalid template" in caplog.text

    def test_load_malformed_user_file(self, tmp_path, builtin_dir):
        user_path = tmp_path / "templates.yaml"
        user_path.write_text("templates: [\n")

        with pytest.raises(MalformedError):
            TemplateManager(user_path, builtin_dir=builtin_dir)

    def test_validate_template_data(self, manager):
        assert manager._validate_template_data({"name": "a", "pattern": "echo"})
        assert not manager._validate_template_data("not a dict")
        assert not manager._validate_template_data({"name": "a"})
        assert not manager._validate_template_data({"name": "a", "pattern": "x", "parameters": "bad"})
        assert not manager._validate_template_data({"name": "a", "pattern": "x", "parameters": [{"x": 1}]})

    def test_add_template_persists(self, manager, tmp_path):
        template = manager.add_template("greet", "echo hello {who}", description="Say hi")

        assert [p.name for p in template.parameters] == ["who"]
        assert template.created_at == "2025-10-24 16:34:21"

        reloaded = TemplateManager(tmp_path / "templates.yaml")
        assert reloaded.get_template("greet").pattern == "echo hello {who}"
        assert not reloaded.get_template("greet").builtin

    def test_add_template_existing_name(self, manager):
        with pytest.raises(ConflictError):
            manager.add_template("git_clone", "git clone {url}")

    def test_update_template(self, manager):
        manager.add_template("greet", "echo hello {who}")

        changes = manager.update_template("greet", pattern="echo hi {who} from {where}", category="fun")

        assert changes == ["pattern", "category"]
        template = manager.get_template("greet")
        assert [p.name for p in template.parameters] == ["who", "where"]
        assert template.category == "fun"

    def test_update_template_no_changes(self, manager, tmp_path):
        manager.add_template("greet", "echo hello {who}")

        assert manager.update_template("greet", pattern="echo hello {who}") == []

    def test_update_builtin_creates_override(self, manager, tmp_path):
        manager.update_template("git_clone", description="My clone")

        reloaded = TemplateManager(tmp_path / "templates.yaml")
        template = reloaded.get_template("git_clone")
        assert template.description == "My clone"
        assert not template.builtin
        assert template.get_parameter("url").validation_pattern

    def test_remove_template(self, manager):
        manager.add_template("greet", "echo hello {who}")

        manager.remove_template("greet")

        with pytest.raises(NotFoundError):
            manager.get_template("greet")

    def test_remove_builtin(self, manager):
        with pytest.raises(ConflictError):
            manager.remove_template("git_clone")
        with pytest.raises(NotFoundError):
            manager.remove_template("missing")

    def test_remove_override_restores_builtin(self, manager):
        manager.update_template("git_clone", description="My clone")

        manager.remove_template("git_clone")

        assert manager.get_template("git_clone").builtin


class TestInstantiate:
    @pytest.fixture
    def manager(self, tmp_path):
        return TemplateManager(tmp_path / "templates.yaml")

    def test_defaults_fill_optional_parameters(self, manager):
        command = manager.instantiate("git_clone", {"url": "https://github.com/user/repo.git"})

        assert command == "git clone https://github.com/user/repo.git ."

    def test_missing_required_parameter(self, manager):
        with pytest.raises(MalformedError, match="Required parameter 'url' is missing"):
            manager.instantiate("git_clone", {})

    def test_validation_pattern(self, manager):
        with pytest.raises(MalformedError, match="doesn't match pattern"):
            manager.instantiate("git_clone", {"url": "not-a-url"})

        assert manager.instantiate("npm_script", {"env": "test", "script": "lint"}) == "NODE_ENV=test npm run lint"

        with pytest.raises(MalformedError):
            manager.instantiate("npm_script", {"env": "staging", "script": "lint"})

    def test_invalid_validation_pattern(self, manager):
        manager.add_template("bad", "echo {x}")
        manager._user["bad"].parameters[0].validation_pattern = "([unclosed"

        with pytest.raises(InvalidPatternError):
            manager.instantiate("bad", {"x": "1"})

    def test_unfilled_placeholder(self, manager):
        manager.add_template("greet", "echo {who}")
        manager._user["greet"].parameters = []

        with pytest.raises(MalformedError, match="Missing values for parameters: who"):
            manager.instantiate("greet", {})

    def test_extra_values_are_ignored(self, manager):
        command = manager.instantiate("npm_script", {"script": "build", "unused": "x"})

        assert command == "NODE_ENV=development npm run build"


class TestUseTemplate:
    @pytest.fixture
    def manager(self, tmp_path):
        return TemplateManager(tmp_path / "templates.yaml")

    def test_use_template_creates_alias(self, manager, storage):
        alias = manager.use_template("git_clone", {"url": "git@github.com:me/My-Repo.git"}, storage)

        assert alias.name == "git_clone_gitgithubcommemyrepogit"
        assert alias.command == "git clone git@github.com:me/My-Repo.git ."
        assert alias.note == "Generated from template: git_clone"
        assert alias.tags == ["git", "template"]
        assert storage.get(alias.name) == alias

    def test_use_template_explicit_name_and_usage(self, manager, storage, tmp_path):
        manager.use_template("npm_script", {"script": "test"}, storage, alias_name="nt")

        assert storage.get("nt").command == "NODE_ENV=development npm run test"
        assert TemplateManager(tmp_path / "templates.yaml").get_template("npm_script").usage_count == 1

    def test_use_template_existing_alias(self, manager, storage):
        storage.add(Alias(name="nt", command="npm test"))

        with pytest.raises(ConflictError):
            manager.use_template("npm_script", {"script": "test"}, storage, alias_name="nt")
        assert manager.get_template("npm_script").usage_count == 0

        manager.use_template("npm_script", {"script": "test"}, storage, alias_name="nt", replace=True)
        assert storage.get("nt").command == "NODE_ENV=development npm run test"

    def test_use_template_invalid_values_add_nothing(self, manager, storage):
        with pytest.raises(MalformedError):
            manager.use_template("ssh_tunnel", {"local_port": "abc"}, storage)

        assert storage.aliases == {}
