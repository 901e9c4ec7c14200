"""Tests for configuration loading."""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from codeloop import config as config_module
from codeloop.config import Config, ModelConfig
from codeloop.errors import ConfigurationError


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    workspace = tmp_path / "ws"
    workspace.mkdir()
    monkeypatch.setattr(config_module, "get_global_config_path", lambda: home / ".codeloop.json")
    for var in ("CODELOOP_PROVIDER", "CODELOOP_API_URL", "CODELOOP_API_KEY",
                "CODELOOP_MODEL", "CODELOOP_MAX_TOKENS", "CODELOOP_READONLY"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(workspace)
    return home, workspace


def write_json(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))


def test_defaults(isolated):
    _, workspace = isolated
    config = Config.from_json(workspace)
    assert config.provider == "lm-studio"
    assert config.max_tokens == 16384
    assert config.planning is True
    assert config.models == []
    assert config.default_model() is None
    assert config.validate()


def test_workspace_overrides_global(isolated):
    home, workspace = isolated
    write_json(home / ".codeloop.json", {"provider": "ollama", "max_tokens": 1000})
    write_json(workspace / ".codeloop" / ".codeloop.json", {"max_tokens": 2000})
    config = Config.from_json(workspace)
    assert config.provider == "ollama"
    assert config.max_tokens == 2000


def test_broken_json_is_ignored(isolated):
    home, workspace = isolated
    (home / ".codeloop.json").write_text("{not json")
    assert Config.from_json(workspace).provider == "lm-studio"


def test_model_roles(isolated):
    home, workspace = isolated
    write_json(home / ".codeloop.json", {"models": [
        {"id": "thinker", "type": "reasoning", "provider": "ollama"},
        {"id": "coder", "type": "long-context", "provider": "lm-studio"},
    ]})
    config = Config.from_json(workspace)
    assert config.default_model().id == "coder"
    assert config.reasoning_model().id == "thinker"
    assert config.reasoning_model().base_url == "http://127.0.0.1:11434/v1"


def test_reasoning_falls_back_to_default():
    config = Config(models=[ModelConfig(id="only", type="long-context")])
    assert config.reasoning_model().id == "only"


def test_provider_url_wins():
    mc = ModelConfig.from_dict({"id": "m", "provider": "custom", "providerUrl": "http://x/v1"})
    assert mc.base_url == "http://x/v1"


def test_env_overrides(isolated, monkeypatch):
    _, workspace = isolated
    monkeypatch.setenv("CODELOOP_MODEL", "env-model")
    monkeypatch.setenv("CODELOOP_MAX_TOKENS", "512")
    monkeypatch.setenv("CODELOOP_READONLY", "true")
    config = Config.from_env(workspace=workspace)
    assert config.model == "env-model"
    assert config.max_tokens == 512
    assert config.readonly is True


def test_dotenv_file(isolated, monkeypatch):
    _, workspace = isolated
    env_file = workspace / "custom.env"
    env_file.write_text("CODELOOP_API_KEY=from-dotenv\n")
    config = Config.from_env(env_path=env_file, workspace=workspace)
    monkeypatch.delenv("CODELOOP_API_KEY", raising=False)
    assert config.api_key == "from-dotenv"


def test_validate_errors():
    with pytest.raises(ConfigurationError):
        Config(max_tokens=0).validate()
    with pytest.raises(ConfigurationError, match="Unknown provider"):
        Config(provider="mystery").validate()
    assert Config(provider="mystery", api_url="http://x/v1").validate()


def test_bad_numbers_raise_configuration_error(isolated):
    home, workspace = isolated
    write_json(home / ".codeloop.json", {"max_tokens": "lots"})
    with pytest.raises(ConfigurationError, match="max_tokens must be a number"):
        Config.from_json(workspace)
    with pytest.raises(ConfigurationError, match="read_timeout"):
        Config.from_dict({"read_timeout": [1]})
    with pytest.raises(ConfigurationError, match="models must be a list"):
        Config.from_dict({"models": {"id": "m"}})


def test_bad_env_number_raises_configuration_error(isolated, monkeypatch):
    _, workspace = isolated
    monkeypatch.setenv("CODELOOP_MAX_TOKENS", "many")
    with pytest.raises(ConfigurationError, match="CODELOOP_MAX_TOKENS"):
        Config.from_env(workspace=workspace)
