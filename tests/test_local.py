"""Tests for the local configuration store."""

from pathlib import Path

import pytest
from short_config import AlreadyExistsError
from short_config import CloudformationProvider
from short_config import ConfigValidationError
from short_config import LocalCfg
from short_config import LocalSetupCfg
from short_config import NoProvider
from short_config import NotFoundError


class TestLocalCfg:
    """Test LocalCfg class."""

    @pytest.fixture
    def local(self):
        return LocalCfg(path=Path("/project/short.yml"))

    def test_new_is_empty(self):
        local = LocalCfg()
        assert local.path is None
        assert local.setups == []
        assert local.env_paths() == []

    def test_add_and_get_setup(self, local):
        local.add_setup("setup_1", NoProvider())
        setup = local.get_setup("setup_1")
        assert setup is not None
        assert setup.name == "setup_1"
        assert setup.provider == NoProvider()
        assert setup.public_env_dir is None

    def test_add_duplicate_name(self, local):
        local.add_setup("setup_1", NoProvider())
        with pytest.raises(AlreadyExistsError, match="setup_1"):
            local.add_setup("setup_1", NoProvider())
        assert local.setup_names() == ["setup_1"]

    def test_add_duplicate_template(self, local):
        """Two setups cannot deploy the same CloudFormation template."""
        local.add_setup("a", CloudformationProvider(Path("infra/template.yaml")))
        with pytest.raises(AlreadyExistsError, match="template.yaml"):
            local.add_setup("b", CloudformationProvider(Path("infra/template.yaml")))

    def test_get_missing_setup(self, local):
        assert local.get_setup("nope") is None

    def test_get_setup_returns_live_record(self, local):
        """Mutating the returned record mutates the store."""
        local.add_setup("setup", NoProvider())
        assert local.env_paths() == [Path()]

        local.get_setup("setup").public_env_dir = Path("./env_dir/")
        assert local.env_paths() == [Path("./env_dir/")]

    def test_remove_by_name(self, local):
        local.add_setup("setup", NoProvider())
        assert local.remove_by_name("setup") is True
        assert local.get_setup("setup") is None

    def test_remove_missing_is_noop(self, local):
        local.add_setup("setup", NoProvider())
        assert local.remove_by_name("other") is False
        assert local.setup_names() == ["setup"]

    def test_env_paths_one_per_setup(self, local):
        local.add_setup("a", NoProvider())
        local.add_setup("b", NoProvider())
        local.get_setup("b").public_env_dir = Path("b/env")
        assert local.env_paths() == [Path(), Path("b/env")]

    def test_rename_setup(self, local):
        local.add_setup("old", NoProvider())
        local.rename_setup("old", "new")
        assert local.setup_names() == ["new"]

    def test_rename_missing_setup(self, local):
        with pytest.raises(NotFoundError):
            local.rename_setup("old", "new")

    def test_rename_to_existing_name(self, local):
        local.add_setup("a", NoProvider())
        local.add_setup("b", NoProvider())
        with pytest.raises(AlreadyExistsError):
            local.rename_setup("a", "b")


class TestLocalDocument:
    """Test the document form of the local configuration."""

    def test_to_dict(self):
        local = LocalCfg()
        local.add_setup("none", NoProvider())
        setup = local.add_setup("cfn", CloudformationProvider(Path("setup_1/template.yaml")))
        setup.public_env_dir = Path("setup_1")

        assert local.to_dict() == {
            "setups": [
                {"name": "none", "provider": {"name": "none"}},
                {
                    "name": "cfn",
                    "public_env_dir": "setup_1",
                    "provider": {"name": "cloudformation", "template": "setup_1/template.yaml"},
                },
            ]
        }

    def test_from_dict(self):
        local = LocalCfg.from_dict(
            {
                "setups": [
                    {
                        "name": "setup_1",
                        "public_env_dir": "setup_1/",
                        "provider": {"name": "cloudformation", "template": "setup_1/template.yaml"},
                    }
                ]
            },
            path=Path("/project/short.yml"),
        )
        assert local.path == Path("/project/short.yml")
        assert local.setups == [
            LocalSetupCfg(
                name="setup_1",
                provider=CloudformationProvider(Path("setup_1/template.yaml")),
                public_env_dir=Path("setup_1/"),
            )
        ]

    def test_from_empty_document(self):
        assert LocalCfg.from_dict(None).setups == []
        assert LocalCfg.from_dict({}).setups == []

    def test_missing_or_unknown_provider_is_none(self):
        local = LocalCfg.from_dict({"setups": [{"name": "a"}, {"name": "b", "provider": {"name": "terraform"}}]})
        assert [setup.provider for setup in local.setups] == [NoProvider(), NoProvider()]

    def test_cloudformation_without_template(self):
        with pytest.raises(ConfigValidationError):
            LocalCfg.from_dict({"setups": [{"name": "a", "provider": {"name": "cloudformation"}}]})

    def test_setup_without_name(self):
        with pytest.raises(ConfigValidationError):
            LocalCfg.from_dict({"setups": [{"provider": {"name": "none"}}]})

    def test_setups_not_a_list(self):
        with pytest.raises(ConfigValidationError):
            LocalCfg.from_dict({"setups": {"name": "a"}})

    def test_duplicate_names_in_document(self):
        with pytest.raises(ConfigValidationError, match="already exists"):
            LocalCfg.from_dict({"setups": [{"name": "a"}, {"name": "a"}]})

    def test_round_trip(self):
        local = LocalCfg()
        local.add_setup("cfn", CloudformationProvider(Path("t.yaml")))
        assert LocalCfg.from_dict(local.to_dict()).setups == local.setups
