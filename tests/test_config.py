import os

import pytest

from dirlock.config import DEFAULT_MAX_WAIT, DEFAULT_NAME, DEFAULT_POLL_INTERVAL, Config, LockConfig
from dirlock.errors import ValidationError


def test_defaults():
    config = LockConfig()
    assert config.directory == os.path.expanduser("~")
    assert config.name == DEFAULT_NAME == "default_lock"
    assert config.poll_interval == DEFAULT_POLL_INTERVAL == 30
    assert config.max_wait == DEFAULT_MAX_WAIT == 3600
    assert config.node is None


@pytest.mark.parametrize("overrides", [
    {"name": ""},
    {"name": "   "},
    {"poll_interval": -1},
    {"max_wait": -0.5},
    {"max_wait": "soon"},
    {"poll_interval": True},
])
def test_validate_rejects(overrides):
    with pytest.raises(ValidationError):
        LockConfig(**overrides).validate()


def test_from_dict_ignores_unknown_keys(tmp_path):
    config = LockConfig.from_dict({"directory": str(tmp_path), "name": "build", "command": "acquire"})
    assert config.directory == str(tmp_path)
    assert config.name == "build"
    assert config.max_wait == 3600


def test_load_missing_file(tmp_path):
    assert Config.load_config(str(tmp_path / "missing.yml")) == {}


def test_load_yaml(tmp_path):
    path = tmp_path / "dirlock.yml"
    path.write_text("directory: /shared/locks\nname: nightly\npoll-interval: 5\nmax-wait: 60\n")
    assert Config.load_config(str(path)) == {
        "directory": "/shared/locks",
        "name": "nightly",
        "poll-interval": 5,
        "max-wait": 60,
    }


@pytest.mark.parametrize("content", ["name: [unclosed\n", "- just\n- a list\n"])
def test_load_bad_yaml_is_ignored(tmp_path, content):
    path = tmp_path / "dirlock.yml"
    path.write_text(content)
    assert Config.load_config(str(path)) == {}


def test_cli_args_take_precedence():
    file_config = {"directory": "/from/file", "name": "file-name", "poll-interval": 5, "max-wait": 60}
    cli_args = {"directory": "/from/cli", "name": None, "poll_interval": 0, "max_wait": None}

    merged = Config.merge_config(file_config, cli_args, environ={})
    assert merged == {"directory": "/from/cli", "name": "file-name", "poll_interval": 0, "max_wait": 60}


def test_environment_fallback():
    merged = Config.merge_config({}, {}, environ={"DIRLOCK_DIR": "/env/locks", "DIRLOCK_NAME": "env-name"})
    assert merged == {"directory": "/env/locks", "name": "env-name"}


def test_empty_merge_uses_defaults():
    config = LockConfig.from_dict(Config.merge_config({}, {}, environ={}))
    assert config == LockConfig()
