"""Tests for the global configuration store and local-to-global sync."""

from pathlib import Path

import pytest
from short_config import ConfigValidationError
from short_config import CurrentSelection
from short_config import GlobalCfg
from short_config import GlobalProjectCfg
from short_config import GlobalSetupCfg
from short_config import InvalidPathError
from short_config import LocalCfg
from short_config import MissingPathError
from short_config import NoCurrentSelectionError
from short_config import NoProvider
from short_config import NotFoundError
from short_config import Settings


class TestGlobalCfgProjects:
    """Test project registration."""

    def test_add_project_is_idempotent(self):
        path = Path("/project/short.yml")
        global_cfg = GlobalCfg()

        assert global_cfg.add_project(GlobalProjectCfg(path)) is True
        assert global_cfg.add_project(GlobalProjectCfg(path)) is False
        assert len(global_cfg.projects) == 1

    def test_project_file_must_be_absolute(self):
        with pytest.raises(InvalidPathError):
            GlobalProjectCfg(Path("project/short.yml"))

    def test_set_file_must_be_absolute(self):
        project = GlobalProjectCfg(Path("/project/short.yml"))
        with pytest.raises(InvalidPathError):
            project.set_file(Path("relative.yml"))

    def test_rename_then_remove(self):
        """After set_file, only the new path finds the project."""
        path = Path("/project/short.yml")
        change_path = Path("/project_1/short.yml")
        global_cfg = GlobalCfg()
        global_cfg.add_project(GlobalProjectCfg(path))

        global_cfg.get_project_by_file(path).set_file(change_path)

        # Removing with the stale path does nothing
        assert global_cfg.remove_project_by_file(path) is False
        assert len(global_cfg.projects) == 1

        assert global_cfg.remove_project_by_file(change_path) is True
        assert global_cfg.projects == []

    def test_get_project_by_file_exact_match(self):
        global_cfg = GlobalCfg([GlobalProjectCfg(Path("/a/short.yml"))])
        assert global_cfg.get_project_by_file(Path("/a/short.yml")) is not None
        assert global_cfg.get_project_by_file(Path("/b/short.yml")) is None

    def test_require_project_by_file(self):
        with pytest.raises(NotFoundError):
            GlobalCfg().require_project_by_file(Path("/a/short.yml"))

    def test_remove_missing_project_is_noop(self):
        global_cfg = GlobalCfg([GlobalProjectCfg(Path("/a/short.yml"))])
        assert global_cfg.remove_project_by_file(Path("/b/short.yml")) is False
        assert len(global_cfg.projects) == 1


class TestGlobalProjectSetups:
    """Test setup mirrors of a project."""

    @pytest.fixture
    def project(self):
        return GlobalProjectCfg(Path("/project/short.yml"))

    def test_add_setup_keeps_existing(self, project):
        project.add_setup(GlobalSetupCfg("a", private_env_dir=Path("/private")))
        assert project.add_setup(GlobalSetupCfg("a")) is False
        assert project.get_setup("a").private_env_dir == Path("/private")

    def test_remove_setup(self, project):
        project.add_setup(GlobalSetupCfg("a"))
        assert project.remove_setup("a") is True
        assert project.remove_setup("a") is False

    def test_rename_setup_follows_current(self, project):
        project.add_setup(GlobalSetupCfg("a", private_env_dir=Path("/private")))
        project.set_current("a", "dev")

        project.rename_setup("a", "b")
        assert project.get_setup("b").private_env_dir == Path("/private")
        assert project.current == CurrentSelection(setup="b", env="dev")

    def test_rename_missing_setup(self, project):
        assert project.rename_setup("a", "b") is None

    def test_prune_setups(self, project):
        for name in ("a", "b", "c"):
            project.add_setup(GlobalSetupCfg(name))
        assert project.prune_setups({"b"}) == ["a", "c"]
        assert [setup.name for setup in project.setups] == ["b"]


class TestCurrentSelection:
    """Test current selection resolution."""

    @pytest.fixture
    def project(self):
        return GlobalProjectCfg(Path("/project/short.yml"))

    def test_nothing_selected(self, project):
        with pytest.raises(NoCurrentSelectionError):
            project.current_setup_name()
        with pytest.raises(NoCurrentSelectionError):
            project.current_env_name(Settings())

    def test_persisted_pointer(self, project):
        project.set_current("setup_1", "dev")
        assert project.current_setup_name() == "setup_1"
        assert project.current_env_name() == "dev"

    def test_override_wins(self, project):
        project.set_current("setup_1", "dev")
        override = Settings(setup="setup_2", env="prod")
        assert project.current_setup_name(override) == "setup_2"
        assert project.current_env_name(override) == "prod"
        # Override is not persisted
        assert project.current == CurrentSelection(setup="setup_1", env="dev")

    def test_fields_resolve_independently(self, project):
        project.set_current("setup_1")
        override = Settings(env="prod")
        assert project.current_setup_name(override) == "setup_1"
        assert project.current_env_name(override) == "prod"
        with pytest.raises(NoCurrentSelectionError):
            project.current_env_name()

    def test_clear(self, project):
        project.set_current("setup_1", "dev")
        project.set_current(None)
        assert project.current is None


class TestSyncLocalProject:
    """Test reconciliation of the global store against a local store."""

    @pytest.fixture
    def local(self, tmp_path):
        local = LocalCfg(path=tmp_path / "short.yml")
        local.add_setup("setup_1", NoProvider())
        return local

    def test_requires_backing_file(self):
        local = LocalCfg()
        local.add_setup("setup_1", NoProvider())
        with pytest.raises(MissingPathError):
            GlobalCfg().sync_local_project(local)

    def test_first_sync(self, local):
        global_cfg = GlobalCfg()
        project = global_cfg.sync_local_project(local)

        assert len(global_cfg.projects) == 1
        assert project is global_cfg.projects[0]
        assert project.file == local.path.resolve()
        assert project.file.is_absolute()
        assert project.setups == [GlobalSetupCfg(name="setup_1", private_env_dir=None)]

    def test_sync_is_idempotent(self, local):
        global_cfg = GlobalCfg()
        first = global_cfg.sync_local_project(local)
        second = global_cfg.sync_local_project(local)

        assert first is second
        assert len(global_cfg.projects) == 1
        assert [setup.name for setup in second.setups] == ["setup_1"]

    def test_sync_adds_new_setup_without_touching_existing(self, local):
        global_cfg = GlobalCfg()
        project = global_cfg.sync_local_project(local)
        project.get_setup("setup_1").private_env_dir = Path("/private/env")

        local.add_setup("setup_2", NoProvider())
        global_cfg.sync_local_project(local)

        assert [setup.name for setup in project.setups] == ["setup_1", "setup_2"]
        assert project.get_setup("setup_1").private_env_dir == Path("/private/env")
        assert project.get_setup("setup_2").private_env_dir is None

    def test_sync_keeps_mirror_of_deleted_setup(self, local):
        global_cfg = GlobalCfg()
        global_cfg.sync_local_project(local)

        local.remove_by_name("setup_1")
        project = global_cfg.sync_local_project(local)
        assert project.get_setup("setup_1") is not None

    def test_sync_canonicalizes_path(self, local, tmp_path):
        """Two spellings of the same file map to one project."""
        global_cfg = GlobalCfg()
        global_cfg.sync_local_project(local)

        (tmp_path / "sub").mkdir()
        other = LocalCfg(path=tmp_path / "sub" / ".." / "short.yml")
        global_cfg.sync_local_project(other)
        assert len(global_cfg.projects) == 1

    def test_sync_reuses_loaded_project(self, local):
        existing = GlobalProjectCfg(
            local.path.resolve(),
            setups=[GlobalSetupCfg("setup_1", private_env_dir=Path("/keep"))],
            current=CurrentSelection(setup="setup_1"),
        )
        global_cfg = GlobalCfg([existing])

        project = global_cfg.sync_local_project(local)
        assert project is existing
        assert project.get_setup("setup_1").private_env_dir == Path("/keep")
        assert project.current_setup_name() == "setup_1"


class TestGlobalDocument:
    """Test the document form of the global configuration."""

    def test_to_dict(self):
        project = GlobalProjectCfg(Path("/project/short.yml"))
        project.add_setup(GlobalSetupCfg("setup_1", private_env_dir=Path("/home/me/env")))
        project.add_setup(GlobalSetupCfg("setup_2"))
        project.set_current("setup_1")

        assert GlobalCfg([project]).to_dict() == {
            "projects": [
                {
                    "file": "/project/short.yml",
                    "current": {"setup": "setup_1"},
                    "setups": [
                        {"name": "setup_1", "private_env_dir": "/home/me/env"},
                        {"name": "setup_2"},
                    ],
                }
            ]
        }

    def test_from_dict(self):
        global_cfg = GlobalCfg.from_dict(
            {
                "projects": [
                    {
                        "file": "/project/short.yml",
                        "current": {"setup": "setup_1", "env": "dev"},
                        "setups": [{"name": "setup_1", "private_env_dir": "/env"}],
                    }
                ]
            }
        )
        project = global_cfg.get_project_by_file(Path("/project/short.yml"))
        assert project.current == CurrentSelection(setup="setup_1", env="dev")
        assert project.get_setup("setup_1").private_env_dir == Path("/env")

    def test_from_empty_document(self):
        assert GlobalCfg.from_dict(None).projects == []

    def test_duplicate_projects_collapse(self):
        doc = {"projects": [{"file": "/p/short.yml"}, {"file": "/p/short.yml"}]}
        assert len(GlobalCfg.from_dict(doc).projects) == 1

    def test_project_without_file(self):
        with pytest.raises(ConfigValidationError):
            GlobalCfg.from_dict({"projects": [{"setups": []}]})

    def test_relative_project_file(self):
        with pytest.raises(ConfigValidationError, match="absolute"):
            GlobalCfg.from_dict({"projects": [{"file": "project/short.yml"}]})

    def test_duplicate_setup_in_project(self):
        doc = {"projects": [{"file": "/p/short.yml", "setups": [{"name": "a"}, {"name": "a"}]}]}
        with pytest.raises(ConfigValidationError, match="duplicate"):
            GlobalCfg.from_dict(doc)

    def test_invalid_current(self):
        with pytest.raises(ConfigValidationError):
            GlobalCfg.from_dict({"projects": [{"file": "/p/short.yml", "current": "setup_1"}]})
