"""
Application configuration model

Only the destination file and the flush threshold shape the pipeline;
the logging section controls console output.
"""

from dataclasses import dataclass, field
from pathlib import Path

from models.enums import LogLevel

DEFAULT_OUTPUT_PATH = "out.txt"
DEFAULT_BUFFER_SIZE = 25


@dataclass
class OutputConfig:
    path: Path = field(default_factory=lambda: Path(DEFAULT_OUTPUT_PATH))
    buffer_size: int = DEFAULT_BUFFER_SIZE


@dataclass
class LoggingConfig:
    level: LogLevel = LogLevel.INFO
    colors: bool = True


@dataclass
class AppConfig:
    """Merged configuration (defaults < YAML < environment < CLI)"""
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
