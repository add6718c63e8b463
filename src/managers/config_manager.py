"""
Config Manager

Loads the YAML configuration file and merges environment and command-line
overrides into an AppConfig.
"""

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from models.config import AppConfig, LoggingConfig, OutputConfig
from models.enums import LogLevel
from models.errors import ConfigError
from utils.logger import get_logger, LogCategory

log = get_logger().for_category(LogCategory.CONFIG)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "keytrace.yaml"

ENV_OUTPUT_PATH = "KEYTRACE_OUT"
ENV_BUFFER_SIZE = "KEYTRACE_BUFFER_SIZE"


class ConfigManager:
    """
    Configuration manager

    Precedence (lowest first):
    1. Built-in defaults (out.txt, 25 lines)
    2. YAML file (config/keytrace.yaml or --config)
    3. Environment (KEYTRACE_OUT, KEYTRACE_BUFFER_SIZE)
    4. Command-line overrides

    Example:
        manager = ConfigManager("config/keytrace.yaml")
        config = manager.load(overrides={"buffer_size": 50})
        config.output.path  # Path("out.txt")
    """

    def __init__(
        self,
        config_path: Union[str, Path, None] = None,
        environ: Optional[Mapping[str, str]] = None
    ):
        """
        Args:
            config_path: YAML file; the bundled default is used when omitted
            environ: Environment mapping (os.environ when omitted)
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        self.environ = os.environ if environ is None else environ
        self.data: Dict[str, Any] = {}
        self.config: Optional[AppConfig] = None

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> AppConfig:
        """
        Load and merge configuration

        Args:
            overrides: Command-line values (keys: path, buffer_size, log_level, colors);
                       None values are ignored

        Raises:
            ConfigError: unreadable file or invalid values
        """
        self.data = self._read_yaml()

        output = self.data.get("output") or {}
        logging_cfg = self.data.get("logging") or {}
        if not isinstance(output, dict) or not isinstance(logging_cfg, dict):
            raise ConfigError("'output' and 'logging' sections must be mappings")

        path = output.get("path", OutputConfig().path)
        buffer_size = output.get("buffer_size", OutputConfig().buffer_size)
        level = logging_cfg.get("level", LoggingConfig().level)
        colors = logging_cfg.get("colors", LoggingConfig().colors)

        # Environment
        if self.environ.get(ENV_OUTPUT_PATH):
            path = self.environ[ENV_OUTPUT_PATH]
            log.debug("Output path from environment", variable=ENV_OUTPUT_PATH)
        if self.environ.get(ENV_BUFFER_SIZE):
            buffer_size = self.environ[ENV_BUFFER_SIZE]
            log.debug("Buffer size from environment", variable=ENV_BUFFER_SIZE)

        # Command line
        overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        path = overrides.get("path", path)
        buffer_size = overrides.get("buffer_size", buffer_size)
        level = overrides.get("log_level", level)
        colors = overrides.get("colors", colors)

        self.config = AppConfig(
            output=OutputConfig(
                path=self._parse_path(path),
                buffer_size=self._parse_buffer_size(buffer_size),
            ),
            logging=LoggingConfig(
                level=self._parse_level(level),
                colors=bool(colors),
            ),
        )

        log.info(
            "Configuration loaded",
            output=self.config.output.path,
            buffer_size=self.config.output.buffer_size
        )
        return self.config

    def _read_yaml(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            log.warn("Config file not found, using defaults", path=self.config_path)
            return {}

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as ex:
            log.error("Failed to load config file", path=self.config_path, error=str(ex))
            raise ConfigError(f"Cannot read config file '{self.config_path}': {ex}") from ex

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config file '{self.config_path}' must contain a mapping")

        log.debug("Config file loaded", path=self.config_path, keys=str(list(data.keys())))
        return data

    # ===== Value parsing =====

    @staticmethod
    def _parse_path(value: Any) -> Path:
        if value is None or str(value).strip() == "":
            raise ConfigError("Output path must not be empty", key="output.path")
        return Path(str(value)).expanduser()

    @staticmethod
    def _parse_buffer_size(value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigError(f"Invalid buffer size: {value!r}", key="output.buffer_size")
        try:
            size = int(value)
        except (TypeError, ValueError):
            raise ConfigError(f"Invalid buffer size: {value!r}", key="output.buffer_size")
        if size < 0:
            raise ConfigError(f"Buffer size must be >= 0, got {size}", key="output.buffer_size")
        return size

    @staticmethod
    def _parse_level(value: Any) -> LogLevel:
        if isinstance(value, LogLevel):
            return value
        name = str(value).upper()
        if name == "WARNING":
            name = "WARN"
        try:
            return LogLevel[name]
        except KeyError:
            raise ConfigError(f"Unknown log level: {value!r}", key="logging.level")
