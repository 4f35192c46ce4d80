"""Configuration management for novelreader.

Handles loading .novelreader.yaml files with directory traversal,
environment variable overrides, and default values.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .decoder import EncodingPolicy
from .document import ReaderError
from .navigator import DEFAULT_CHUNK_SIZE, DEFAULT_DISPLAY_WIDTH, ELLIPSIS

CONFIG_FILENAME = ".novelreader.yaml"
ENV_CHUNK_SIZE = "NOVELREADER_CHUNK_SIZE"
ENV_ENCODING = "NOVELREADER_ENCODING"
ENV_STATE_FILE = "NOVELREADER_STATE_FILE"


@dataclass
class DisplayConfig:
    """Status line settings."""

    width: int = DEFAULT_DISPLAY_WIDTH  # Max characters of the rendered chunk
    name_width: int = 0  # 0 = full file name


@dataclass
class ReaderConfig:
    """Complete novelreader configuration."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    encoding: str = EncodingPolicy.UTF8.value  # "utf8", "gbk", "auto"
    state_file: Path | None = None  # None = per-user app directory
    display: DisplayConfig = field(default_factory=DisplayConfig)
    config_path: Path | None = None  # Path where config was loaded from

    @property
    def policy(self) -> EncodingPolicy:
        return EncodingPolicy.parse(self.encoding)

    def validate(self) -> None:
        """Validate configuration.

        Raises:
            ReaderError: If configuration is invalid.
        """
        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int):
            raise ReaderError(f"chunk_size must be an integer: {self.chunk_size!r}")
        if self.chunk_size <= 0:
            raise ReaderError("chunk_size must be positive")

        # Raises on unknown names
        self.encoding = EncodingPolicy.parse(self.encoding).value

        if not isinstance(self.display.width, int) or self.display.width <= len(
            ELLIPSIS
        ):
            raise ReaderError(
                f"display width must be an integer greater than {len(ELLIPSIS)}"
            )
        if not isinstance(self.display.name_width, int) or self.display.name_width < 0:
            raise ReaderError("display name_width must be non-negative")


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find .novelreader.yaml by traversing up from start_path.

    Args:
        start_path: Directory to start searching from. Defaults to cwd.

    Returns:
        Path to config file if found, None otherwise.
    """
    if start_path is None:
        start_path = Path.cwd()
    else:
        start_path = Path(start_path).resolve()

    if start_path.is_file():
        start_path = start_path.parent

    current = start_path
    while True:
        config_path = current / CONFIG_FILENAME
        if config_path.is_file():
            return config_path

        parent = current.parent
        if parent == current:
            return None
        current = parent


def _parse_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ReaderError(f"{name} must be an integer: {value!r}") from None


def load_config(
    config_path: Path | None = None,
    start_path: Path | None = None,
    chunk_size_override: int | None = None,
    encoding_override: str | None = None,
    state_file_override: Path | None = None,
) -> ReaderConfig:
    """Load configuration from file, environment, and overrides.

    Priority (highest to lowest):
    1. Function arguments (*_override)
    2. Environment variables (NOVELREADER_CHUNK_SIZE, NOVELREADER_ENCODING,
       NOVELREADER_STATE_FILE)
    3. Config file (.novelreader.yaml)
    4. Defaults

    Args:
        config_path: Explicit path to config file. If None, searches.
        start_path: Directory to start config file search from.
        chunk_size_override: Chunk size from a CLI argument.
        encoding_override: Encoding policy name from a CLI argument.
        state_file_override: State file path from a CLI argument.

    Returns:
        Loaded and validated configuration.
    """
    config = ReaderConfig()

    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.is_file():
            raise ReaderError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file(start_path)

    if config_path is not None:
        config = _load_config_file(config_path)
        config.config_path = config_path

    env_chunk_size = os.environ.get(ENV_CHUNK_SIZE)
    if env_chunk_size:
        config.chunk_size = _parse_int(env_chunk_size, ENV_CHUNK_SIZE)

    env_encoding = os.environ.get(ENV_ENCODING)
    if env_encoding:
        config.encoding = env_encoding

    env_state_file = os.environ.get(ENV_STATE_FILE)
    if env_state_file:
        config.state_file = Path(env_state_file).expanduser()

    if chunk_size_override is not None:
        config.chunk_size = chunk_size_override
    if encoding_override is not None:
        config.encoding = encoding_override
    if state_file_override is not None:
        config.state_file = Path(state_file_override)

    config.validate()
    return config


def _load_config_file(config_path: Path) -> ReaderConfig:
    """Load configuration from a YAML file.

    Raises:
        ReaderError: If file cannot be read or parsed.
    """
    try:
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ReaderError(f"Invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ReaderError(f"Cannot read config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ReaderError(f"Config file must contain a mapping: {config_path}")

    config = ReaderConfig(config_path=config_path)

    if "chunk_size" in data:
        config.chunk_size = _parse_int(data["chunk_size"], "chunk_size")

    if "encoding" in data:
        config.encoding = str(data["encoding"])

    if data.get("state_file"):
        state_file = Path(str(data["state_file"])).expanduser()
        # Resolve relative paths against config file directory
        if not state_file.is_absolute():
            state_file = config_path.parent / state_file
        config.state_file = state_file

    if "display" in data and isinstance(data["display"], dict):
        display_data = data["display"]
        config.display = DisplayConfig(
            width=_parse_int(
                display_data.get("width", config.display.width), "display.width"
            ),
            name_width=_parse_int(
                display_data.get("name_width", config.display.name_width),
                "display.name_width",
            ),
        )

    return config


def create_default_config(path: Path | None = None) -> Path:
    """Create a default .novelreader.yaml config file.

    Args:
        path: Directory to create config in. Defaults to cwd.

    Returns:
        Path to created config file.

    Raises:
        ReaderError: If file already exists or cannot be written.
    """
    if path is None:
        path = Path.cwd()
    else:
        path = Path(path)

    config_path = path / CONFIG_FILENAME

    if config_path.exists():
        raise ReaderError(f"Config file already exists: {config_path}")

    config_content = f"""# novelreader configuration

# Characters per page
chunk_size: {DEFAULT_CHUNK_SIZE}

# How documents are decoded when opened: "utf8", "gbk" or "auto"
encoding: "utf8"

# Where reading positions are stored (default: per-user app directory)
# state_file: "reader-state.json"

# Status line
display:
  width: {DEFAULT_DISPLAY_WIDTH}        # Max characters of the page excerpt
  name_width: 0     # Cut file names to this many characters, 0 = no limit
"""

    try:
        config_path.write_text(config_content, encoding="utf-8")
    except OSError as e:
        raise ReaderError(f"Cannot write config file: {e}") from e

    return config_path


def config_to_dict(config: ReaderConfig) -> dict[str, Any]:
    """Convert config to dictionary for display."""
    return {
        "chunk_size": config.chunk_size,
        "encoding": config.encoding,
        "state_file": str(config.state_file) if config.state_file else None,
        "display": {
            "width": config.display.width,
            "name_width": config.display.name_width,
        },
        "config_path": str(config.config_path) if config.config_path else None,
    }
