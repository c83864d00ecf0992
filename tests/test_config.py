"""
Test 9: Configuration (config.py)
"""

import json

import pytest

from nidus.config import ConfigError, ConfigLoader, ServerConfig


class TestServerConfig:

    def test_defaults(self):
        config = ServerConfig()
        assert (config.host, config.port, config.log_level, config.json_limit) == (
            "127.0.0.1", 3000, "info", 100 * 1024,
        )

    def test_log_level_normalized(self):
        assert ServerConfig(log_level="DEBUG").log_level == "debug"

    @pytest.mark.parametrize("kwargs", [
        {"port": -1},
        {"port": 70000},
        {"port": "3000"},
        {"port": True},
        {"json_limit": 0},
        {"log_level": "loud"},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            ServerConfig(**kwargs)


class TestConfigLoader:

    def test_yaml_and_json_files_merge(self, tmp_path):
        (tmp_path / "a.yaml").write_text("server:\n  port: 4000\n  host: 0.0.0.0\ndatabase:\n  url: sqlite://\n")
        (tmp_path / "b.json").write_text(json.dumps({"server": {"port": 5000}}))

        loader = ConfigLoader.load(
            paths=[str(tmp_path / "a.yaml"), str(tmp_path / "b.json")],
            use_environ=False,
        )
        assert loader.get("server.port") == 5000
        assert loader.get("server.host") == "0.0.0.0"
        assert loader.get("database.url") == "sqlite://"
        assert loader.get("database.missing", "fallback") == "fallback"

    def test_glob_patterns(self, tmp_path):
        (tmp_path / "01.yaml").write_text("a: 1\n")
        (tmp_path / "02.yaml").write_text("a: 2\nb: 3\n")
        loader = ConfigLoader.load(paths=[str(tmp_path / "*.yaml")], use_environ=False)
        assert loader.to_dict() == {"a": 2, "b": 3}

    def test_missing_file_is_error(self, tmp_path):
        with pytest.raises(ConfigError):
            ConfigLoader.load(paths=[str(tmp_path / "nope.yaml")], use_environ=False)

    def test_unsupported_file_type(self, tmp_path):
        (tmp_path / "config.toml").write_text("a = 1\n")
        with pytest.raises(ConfigError):
            ConfigLoader.load(paths=[str(tmp_path / "config.toml")], use_environ=False)

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("server: [unclosed\n")
        with pytest.raises(ConfigError):
            ConfigLoader.load(paths=[str(tmp_path / "bad.yaml")], use_environ=False)

    def test_non_mapping_file(self, tmp_path):
        (tmp_path / "list.json").write_text("[1, 2]")
        with pytest.raises(ConfigError):
            ConfigLoader.load(paths=[str(tmp_path / "list.json")], use_environ=False)

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("NIDUS_SERVER__PORT", "8081")
        monkeypatch.setenv("NIDUS_DEBUG", "true")
        monkeypatch.setenv("NIDUS_FEATURES", '["a", "b"]')
        monkeypatch.setenv("OTHER_SERVER__PORT", "1")

        loader = ConfigLoader.load()
        assert loader.get("server.port") == 8081
        assert loader.get("debug") is True
        assert loader.get("features") == ["a", "b"]
        assert loader.get("other") is None

    def test_dotenv_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("NIDUS_SERVER__HOST=0.0.0.0\nNIDUS_SERVER__LOG_LEVEL=warning\nUNRELATED=1\n")

        loader = ConfigLoader.load(env_file=str(env_file), use_environ=False)
        server = loader.server_config()
        assert server.host == "0.0.0.0"
        assert server.log_level == "warning"
        assert loader.get("unrelated") is None

    def test_missing_dotenv_is_ignored(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / ".env"), use_environ=False)
        assert loader.to_dict() == {}

    def test_precedence(self, tmp_path, monkeypatch):
        (tmp_path / "config.yaml").write_text("server:\n  port: 1000\n")
        env_file = tmp_path / ".env"
        env_file.write_text("NIDUS_SERVER__PORT=2000\n")
        monkeypatch.setenv("NIDUS_SERVER__PORT", "3000")

        loader = ConfigLoader.load(paths=[str(tmp_path / "config.yaml")], env_file=str(env_file))
        assert loader.get("server.port") == 3000

        loader = ConfigLoader.load(
            paths=[str(tmp_path / "config.yaml")],
            env_file=str(env_file),
            overrides={"server": {"port": 4000}},
        )
        assert loader.get("server.port") == 4000

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("APP_SERVER__PORT", "9000")
        loader = ConfigLoader.load(env_prefix="APP_")
        assert loader.server_config().port == 9000

    def test_server_config_ignores_unknown_keys(self, caplog):
        loader = ConfigLoader.load(overrides={"server": {"port": 1234, "workers": 4}}, use_environ=False)
        assert loader.server_config().port == 1234
        assert any("workers" in record.getMessage() for record in caplog.records)

    def test_server_section_must_be_mapping(self):
        loader = ConfigLoader.load(overrides={"server": "nope"}, use_environ=False)
        with pytest.raises(ConfigError):
            loader.server_config()

    def test_invalid_server_values(self):
        loader = ConfigLoader.load(overrides={"server": {"port": "not-a-port"}}, use_environ=False)
        with pytest.raises(ConfigError):
            loader.server_config()
