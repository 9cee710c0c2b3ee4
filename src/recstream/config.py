"""Configuration system for recstream.

Settings live in a ``recstream.toml`` file with typed dataclass sections and
defaults for every value, so an empty or partial file is valid.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

import tomli_w

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from recstream.exceptions import ConfigError, ResolveError
from recstream.resolve import normalize_extension

if TYPE_CHECKING:
    from pathlib import Path

_T = TypeVar("_T")

__all__ = [
    "CONFIG_FILE",
    "PipelineConfig",
    "RecstreamConfig",
    "StreamConfig",
    "WriterConfig",
    "default_config",
    "load_config",
    "save_config",
]

logger = logging.getLogger(__name__)

CONFIG_FILE = "recstream.toml"


@dataclass
class StreamConfig:
    """[stream] section."""

    manifest_extension: str = ".list"
    compressed_extension: str = ".gz"
    extensions: list[str] = field(default_factory=list)
    read_size: int = 65536
    codec: str = "json"


@dataclass
class PipelineConfig:
    """[pipeline] section."""

    workers: int = 4
    path_queue_size: int = 10
    output_queue_size: int = 1024
    stop_on_error: bool = False


@dataclass
class WriterConfig:
    """[writer] section."""

    compress_level: int = 9


@dataclass
class RecstreamConfig:
    """Root configuration combining all sections."""

    stream: StreamConfig = field(default_factory=StreamConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    writer: WriterConfig = field(default_factory=WriterConfig)


_SECTIONS: dict[str, type] = {
    "stream": StreamConfig,
    "pipeline": PipelineConfig,
    "writer": WriterConfig,
}


def default_config() -> RecstreamConfig:
    """Return a config with all default values."""
    return RecstreamConfig()


def _validate(config: RecstreamConfig) -> None:
    if config.pipeline.workers < 1:
        raise ConfigError(f"pipeline.workers must be >= 1, got {config.pipeline.workers}")
    if config.pipeline.path_queue_size < 1:
        raise ConfigError(
            f"pipeline.path_queue_size must be >= 1, got {config.pipeline.path_queue_size}"
        )
    if config.pipeline.output_queue_size < 0:
        raise ConfigError(
            f"pipeline.output_queue_size must be >= 0, got {config.pipeline.output_queue_size}"
        )
    if config.stream.read_size < 1:
        raise ConfigError(f"stream.read_size must be >= 1, got {config.stream.read_size}")
    if not 0 <= config.writer.compress_level <= 9:
        raise ConfigError(
            f"writer.compress_level must be within 0..9, got {config.writer.compress_level}"
        )


def _normalize_extensions(config: RecstreamConfig) -> None:
    """Store every configured extension in its dotted form."""
    stream = config.stream
    try:
        stream.manifest_extension = normalize_extension(stream.manifest_extension)
        stream.compressed_extension = normalize_extension(stream.compressed_extension)
        stream.extensions = [normalize_extension(e) for e in stream.extensions]
    except (ResolveError, AttributeError) as e:
        raise ConfigError(f"Invalid extension in [stream]: {e}") from e


def save_config(config: RecstreamConfig, path: Path) -> None:
    """Save configuration to a TOML file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    data = {name: dict(vars(getattr(config, name))) for name in _SECTIONS}
    try:
        with path.open("wb") as f:
            tomli_w.dump(data, f)
        logger.info("Saved config to %s", path)
    except OSError as e:
        logger.error("Failed to save config to %s: %s", path, e)
        raise ConfigError(f"Failed to save config to {path}: {e}") from e


def _load_section(cls: type[_T], data: dict[str, object]) -> _T:
    """Load a dataclass section from a dict, ignoring unknown keys."""
    known_fields = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
    filtered = {k: v for k, v in data.items() if k in known_fields}
    return cls(**filtered)


def load_config(path: Path) -> RecstreamConfig:
    """Load configuration from a TOML file.

    Missing sections or keys get default values.

    Raises:
        ConfigError: If the file is missing, unreadable, malformed or holds
            out-of-range values.
    """
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_bytes().decode("utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        logger.error("Failed to load config from %s: %s", path, e)
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    config = RecstreamConfig()
    for name, cls in _SECTIONS.items():
        section = data.get(name)
        if section is None:
            continue
        if not isinstance(section, dict):
            raise ConfigError(f"Config section [{name}] must be a table in {path}")
        try:
            setattr(config, name, _load_section(cls, section))
        except TypeError as e:
            raise ConfigError(f"Invalid [{name}] section in {path}: {e}") from e

    _normalize_extensions(config)
    _validate(config)
    logger.info("Loaded config from %s", path)
    return config
