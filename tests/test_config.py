"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest
import yaml

from krueger.config import KruegerConfig, load_config, save_config
from krueger.errors import ConfigError


@pytest.fixture
def home(tmp_path, monkeypatch):
    monkeypatch.setattr(Path, "home", lambda: tmp_path)
    return tmp_path


def write(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestKruegerConfig:
    """Tests for the KruegerConfig model."""

    def test_defaults(self):
        """Test the default configuration."""
        config = KruegerConfig()

        assert config.processes == []
        assert config.debug is False
        assert config.poll_interval_ms == 100
        assert config.poll_rate == 0.1
        assert config.probe_host == "8.8.8.8"
        assert config.probe_port == 80

    def test_comma_separated_processes(self):
        """Test a comma-separated string is split into terms."""
        config = KruegerConfig(processes="brave, firefox,,chrome")

        assert config.processes == ["brave", "firefox", "chrome"]
        assert config.watch_list().terms == ("brave", "firefox", "chrome")

    def test_interval_bounds(self):
        """Test the poll interval must stay within one second."""
        with pytest.raises(ValueError):
            KruegerConfig(poll_interval_ms=5000)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_no_file(self, home):
        """Test defaults are used when no file exists."""
        config, path = load_config(environ={})

        assert path is None
        assert config == KruegerConfig()

    def test_dot_config_location(self, home):
        """Test ~/.config/.krueger.json is found."""
        expected = write(home / ".config" / ".krueger.json", {"processes": "signal,keybase"})

        config, path = load_config(environ={})

        assert path == expected
        assert config.processes == ["signal", "keybase"]

    def test_home_location_preferred(self, home):
        """Test ~/.krueger.json wins over ~/.config/.krueger.json."""
        expected = write(home / ".krueger.json", {"processes": ["brave"]})
        write(home / ".config" / ".krueger.json", {"processes": ["firefox"]})

        config, path = load_config(environ={})

        assert path == expected
        assert config.processes == ["brave"]

    def test_yaml_in_dot_config(self, home):
        """Test the documented ~/.config/.krueger.yaml layout is read."""
        expected = home / ".config" / ".krueger.yaml"
        expected.parent.mkdir(parents=True)
        expected.write_text("processes: brave,firefox,signal\ndebug: true\n", encoding="utf-8")

        config, path = load_config(environ={})

        assert path == expected
        assert config.processes == ["brave", "firefox", "signal"]
        assert config.debug is True

    def test_yaml_preferred_over_json_in_same_directory(self, home):
        """Test .krueger.yaml is found before .krueger.json."""
        expected = home / ".krueger.yml"
        expected.write_text("processes:\n  - keybase\n", encoding="utf-8")
        write(home / ".krueger.json", {"processes": ["firefox"]})

        config, path = load_config(environ={})

        assert path == expected
        assert config.processes == ["keybase"]

    def test_invalid_yaml(self, home):
        """Test malformed YAML is a ConfigError naming the file."""
        (home / ".krueger.yaml").write_text("processes: [brave\n", encoding="utf-8")

        with pytest.raises(ConfigError, match=".krueger.yaml"):
            load_config(environ={})

    def test_empty_yaml_uses_defaults(self, home):
        """Test an empty YAML file loads as the default configuration."""
        (home / ".krueger.yaml").write_text("", encoding="utf-8")

        config, _ = load_config(environ={})

        assert config == KruegerConfig()

    def test_explicit_path(self, home, tmp_path):
        """Test an explicit path is used as given."""
        explicit = write(tmp_path / "elsewhere.json", {"processes": "chrome", "debug": True})

        config, path = load_config(explicit, environ={})

        assert path == explicit
        assert config.debug is True

    def test_explicit_path_missing(self, home, tmp_path):
        """Test a missing explicit path is a ConfigError."""
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.json", environ={})

    def test_environment_overrides_file(self, home):
        """Test KRUEGER_* variables override file values."""
        write(home / ".krueger.json", {"processes": "brave", "poll_interval_ms": 500})

        config, _ = load_config(
            environ={"KRUEGER_PROCESSES": "signal,firefox", "KRUEGER_DEBUG": "1"}
        )

        assert config.processes == ["signal", "firefox"]
        assert config.debug is True
        assert config.poll_interval_ms == 500

    def test_blank_environment_ignored(self, home):
        """Test empty variables do not clear file values."""
        write(home / ".krueger.json", {"processes": "brave"})

        config, _ = load_config(environ={"KRUEGER_PROCESSES": "  "})

        assert config.processes == ["brave"]

    def test_invalid_json(self, home):
        """Test malformed JSON is a ConfigError naming the file."""
        path = home / ".krueger.json"
        path.write_text("{processes: ", encoding="utf-8")

        with pytest.raises(ConfigError, match=".krueger.json"):
            load_config(environ={})

    def test_not_an_object(self, home):
        """Test a JSON document that is not an object is rejected."""
        write(home / ".krueger.json", ["firefox"])

        with pytest.raises(ConfigError):
            load_config(environ={})

    def test_invalid_value(self, home):
        """Test out-of-range values are a ConfigError."""
        write(home / ".krueger.json", {"poll_interval_ms": 0})

        with pytest.raises(ConfigError, match="invalid configuration"):
            load_config(environ={})


def test_save_config(tmp_path):
    """Test a saved configuration can be loaded back."""
    path = tmp_path / "sub" / ".krueger.json"

    save_config(KruegerConfig(processes=["signal", "brave"]), path)
    config, used = load_config(path, environ={})

    assert used == path
    assert config.processes == ["signal", "brave"]


def test_save_config_as_yaml(tmp_path):
    """Test a .yaml path is written as YAML and reads back."""
    path = tmp_path / ".krueger.yaml"

    save_config(KruegerConfig(processes=["signal", "brave"]), path)

    assert yaml.safe_load(path.read_text(encoding="utf-8"))["processes"] == ["signal", "brave"]
    config, _ = load_config(path, environ={})
    assert config.processes == ["signal", "brave"]
