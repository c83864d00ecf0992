"""
Config system - layered configuration with typed server settings.

Merge order (later overrides earlier):
1. Defaults
2. JSON / YAML config files
3. ``.env`` file (prefixed keys only)
4. Environment variables (``NIDUS_`` prefix, ``__`` nests)
5. Manual overrides
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from glob import glob
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from .faults import Fault, FaultDomain


logger = logging.getLogger("nidus.config")

DEFAULT_ENV_PREFIX = "NIDUS_"

LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


class ConfigError(Fault):
    """Raised when configuration loading or validation fails."""
    domain = FaultDomain.CONFIG
    code = "CONFIG_ERROR"

    def __init__(self, message: str, **metadata: Any):
        super().__init__(code=self.code, message=message, metadata=metadata)


@dataclass
class ServerConfig:
    """Settings consumed by ``listen()`` / ``run()`` and the CLI."""
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "info"
    json_limit: int = 100 * 1024

    def __post_init__(self):
        if not isinstance(self.port, int) or isinstance(self.port, bool) or not 0 <= self.port <= 65535:
            raise ConfigError(f"server.port must be an integer in 0..65535, got {self.port!r}")
        if not isinstance(self.json_limit, int) or isinstance(self.json_limit, bool) or self.json_limit <= 0:
            raise ConfigError(f"server.json_limit must be a positive integer, got {self.json_limit!r}")
        if str(self.log_level).lower() not in LOG_LEVELS:
            raise ConfigError(
                f"server.log_level must be one of {', '.join(LOG_LEVELS)}, got {self.log_level!r}"
            )
        self.log_level = str(self.log_level).lower()
        self.host = str(self.host)


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Example:
        loader = ConfigLoader.load(paths=["config/*.yaml"], env_file=".env")
        server = loader.server_config()
        loader.get("database.url", "sqlite://")
    """

    def __init__(self, env_prefix: str = DEFAULT_ENV_PREFIX):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[Iterable[str]] = None,
        env_prefix: str = DEFAULT_ENV_PREFIX,
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
        *,
        use_environ: bool = True,
    ) -> "ConfigLoader":
        """
        Load configuration from every source, lowest precedence first.

        Args:
            paths: Config file paths (glob patterns supported)
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file
            overrides: Manual overrides (highest precedence)
            use_environ: Read ``os.environ``
        """
        loader = cls(env_prefix=env_prefix)

        for pattern in paths or ():
            loader._load_from_files(pattern)

        if env_file:
            loader._load_env_file(env_file)

        if use_environ:
            loader._load_from_env(os.environ)

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    # ========================================================================
    # Sources
    # ========================================================================

    def _load_from_files(self, pattern: str):
        matches = sorted(glob(pattern))
        if not matches:
            raise ConfigError(f"No config file matches {pattern!r}", pattern=pattern)
        for path_str in matches:
            path = Path(path_str)
            if path.suffix == ".json":
                self._load_json_file(path)
            elif path.suffix in (".yaml", ".yml"):
                self._load_yaml_file(path)
            else:
                raise ConfigError(f"Unsupported config file type: {path}", path=str(path))
            logger.debug("Loaded config file %s", path)

    def _load_json_file(self, path: Path):
        """Load config from JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}", path=str(path)) from exc
        self._merge_mapping(data, path)

    def _load_yaml_file(self, path: Path):
        """Load config from YAML file."""
        import yaml

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}", path=str(path)) from exc
        if data:
            self._merge_mapping(data, path)

    def _merge_mapping(self, data: Any, path: Path):
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping", path=str(path))
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str):
        """Load prefixed keys from a .env file."""
        from dotenv import dotenv_values

        env_path = Path(path)
        if not env_path.exists():
            logger.debug("No .env file at %s", env_path)
            return
        self._load_from_env(dotenv_values(env_path))

    def _load_from_env(self, environ):
        for key, value in environ.items():
            if key.startswith(self.env_prefix) and value is not None:
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str):
        """Convert NIDUS_SERVER__PORT to {"server": {"port": ...}}."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: dict):
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    # ========================================================================
    # Access
    # ========================================================================

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    def server_config(self) -> ServerConfig:
        """Typed view of the ``server`` section."""
        data = self.get("server", {}) or {}
        if not isinstance(data, dict):
            raise ConfigError("'server' config section must be a mapping")
        known = {f.name for f in fields(ServerConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown server settings: %s", ", ".join(unknown))
        kwargs = {name: data[name] for name in known if name in data}
        return ServerConfig(**kwargs)

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return json.loads(json.dumps(self.config_data, default=str))

    def __repr__(self) -> str:
        return f"ConfigLoader(env_prefix={self.env_prefix!r}, keys={sorted(self.config_data)})"
