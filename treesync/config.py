"""Configuration for sync runs.

A :class:`SyncConfig` is built once (from a JSON or ``key=value`` config file,
command line options or both) and passed explicitly to the engine. It is immutable.
"""

import configparser
import json
import logging
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_FTP_PORT: int = 21

# Maps config file keys to SyncConfig field names
_FIELD_NAMES = {
    "server": "server",
    "port": "port",
    "user": "user",
    "password": "password",
    "remote": "remote_directory",
    "local": "local_directory",
    "useTls": "use_tls",
    "createRemote": "create_remote",
    "timeout": "timeout",
}

REQUIRED_FIELDS = ("server", "user", "password", "remote", "local")

# Section used for key=value config files
_SECTION = "treesync"
_SECTION_HEADER = re.compile(r"^\[\s*[\w.-]+\s*\]$")

_BOOLEAN_KEYS = ("useTls", "createRemote")


@dataclass(frozen=True)
class SyncConfig:
    """Immutable settings for one sync, backup or restore run."""

    server: str
    """FTP server host name"""

    user: str
    """Account user name"""

    password: str
    """Account password"""

    remote_directory: str
    """Remote directory kept in sync with the local one"""

    local_directory: Path
    """Local directory used as the source of truth"""

    port: int = DEFAULT_FTP_PORT
    """FTP server port"""

    use_tls: bool = True
    """Whether to secure the control and data connections with TLS"""

    create_remote: bool = True
    """Create the remote directory (and missing parents) if it does not exist"""

    timeout: Optional[float] = None
    """Socket timeout in seconds passed to the connection, None for no timeout"""

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise through object.__setattr__
        if not isinstance(self.local_directory, Path):
            object.__setattr__(self, "local_directory", Path(self.local_directory))
        try:
            object.__setattr__(self, "port", int(self.port))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid port: {self.port!r}") from e
        if not self.remote_directory:
            raise ConfigError("Remote directory must not be empty")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncConfig":
        """Create a SyncConfig from a config file dictionary.

        Args:
            data: Dictionary using config file keys (``server``, ``port``,
                ``user``, ``password``, ``remote``, ``local``, ``useTls``,
                ``createRemote``, ``timeout``)

        Returns:
            SyncConfig instance

        Raises:
            ConfigError: If required fields are missing or values are invalid
        """
        missing = [key for key in REQUIRED_FIELDS if data.get(key) in (None, "")]
        if missing:
            raise ConfigError(f"Missing required fields: {', '.join(missing)}")

        unknown = set(data) - set(_FIELD_NAMES)
        if unknown:
            logger.warning("Ignoring unknown config keys: %s", ", ".join(sorted(unknown)))

        kwargs = {
            _FIELD_NAMES[key]: value
            for key, value in data.items()
            if key in _FIELD_NAMES and value is not None
        }
        return cls(**kwargs)

    def to_dict(self, include_password: bool = False) -> dict[str, Any]:
        """Convert the config back to config file keys."""
        result: dict[str, Any] = {
            "server": self.server,
            "port": self.port,
            "user": self.user,
            "remote": self.remote_directory,
            "local": str(self.local_directory),
            "useTls": self.use_tls,
            "createRemote": self.create_remote,
            "timeout": self.timeout,
        }
        if include_password:
            result["password"] = self.password
        return result

    def with_overrides(self, **overrides: Any) -> "SyncConfig":
        """Return a copy with the given non-None fields replaced."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes)


def load_config_file(path: Union[str, Path]) -> dict[str, Any]:
    """Read a config file.

    Two formats are accepted: a JSON object, or plain ``key=value`` lines
    with ``#`` comments and an optional ``[treesync]`` section header.
    Files starting with ``{`` or ``[`` are read as JSON unless the first line
    is a section header.

    Args:
        path: Path to the config file

    Returns:
        Dictionary with the config file values

    Raises:
        ConfigError: If the file does not exist or cannot be parsed
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Specified config file does not exist: {config_path}")

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e

    if text.lstrip().startswith(("{", "[")) and not _has_section_header(text):
        data = _parse_json(config_path, text)
    else:
        data = _parse_key_value(config_path, text)

    logger.debug("Loaded config file %s", config_path)
    return data


def _has_section_header(text: str) -> bool:
    lines = text.strip().splitlines()
    return bool(lines) and _SECTION_HEADER.match(lines[0].strip()) is not None


def _parse_json(config_path: Path, text: str) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a JSON object")
    return data


def _parse_key_value(config_path: Path, text: str) -> dict[str, Any]:
    """Parse ``key=value`` lines, with or without a section header."""
    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep "useTls" and "createRemote" as written
    if not _has_section_header(text):
        text = f"[{_SECTION}]\n{text}"

    try:
        parser.read_string(text, source=str(config_path))
    except configparser.Error as e:
        raise ConfigError(f"Invalid config file {config_path}: {e}") from e

    section = _SECTION if parser.has_section(_SECTION) else None
    if section is None:
        sections = parser.sections()
        if len(sections) != 1:
            raise ConfigError(
                f"Config file {config_path} must have a single [{_SECTION}] section"
            )
        section = sections[0]

    values = parser[section]
    data: dict[str, Any] = dict(values)
    try:
        for key in _BOOLEAN_KEYS:
            if key in values:
                data[key] = values.getboolean(key)
        if "timeout" in values:
            data["timeout"] = values.getfloat("timeout")
    except ValueError as e:
        raise ConfigError(f"Invalid value in config file {config_path}: {e}") from e
    return data


def build_config(
    config_file: Optional[Union[str, Path]] = None, **options: Any
) -> SyncConfig:
    """Build a SyncConfig from an optional config file and option values.

    Option values that are not None take precedence over the config file.

    Args:
        config_file: Optional path to a JSON or key=value config file
        **options: Values keyed by config file names (``server``, ``remote``, ...)

    Returns:
        SyncConfig instance

    Raises:
        ConfigError: If the combined values are incomplete or invalid
    """
    data: dict[str, Any] = {}
    if config_file is not None:
        data.update(load_config_file(config_file))

    for key, value in options.items():
        if value is not None:
            data[key] = value

    return SyncConfig.from_dict(data)
