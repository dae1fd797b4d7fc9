"""
Server configuration.

Values are resolved in three layers, lowest precedence first:
built-in defaults, a Java-style properties file, and ``-Dkey=value``
overrides given on the command line.
"""

import configparser
import os
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Tuple

DEFAULT_CONFIG_FILE = "server.properties"

# Property keys
ROOT_PARAM = "server.root"
WEB_ROOT_PARAM = "web.root"
HOST_PARAM = "server.name"
PORT_PARAM = "server.port"
SERVER_VERSION_PARAM = "server.response.version"
READ_TIMEOUT_PARAM = "server.read.timeout"
WORKERS_PARAM = "server.workers"
MIME_TYPES_PARAM = "server.mime.types"
LOG_FILE_PARAM = "server.log.file"
LOG_LEVEL_PARAM = "server.log.level"
CONFIG_FILE_PARAM = "config.file"

DEFAULTS: Dict[str, str] = {
    ROOT_PARAM: "error_pages",
    WEB_ROOT_PARAM: "public",
    HOST_PARAM: "127.0.0.1",
    PORT_PARAM: "8080",
    SERVER_VERSION_PARAM: "StaticServer v1.0",
    READ_TIMEOUT_PARAM: "30",
    WORKERS_PARAM: "10",
    MIME_TYPES_PARAM: "",
    LOG_FILE_PARAM: "",
    LOG_LEVEL_PARAM: "INFO",
}

_SECTION = "server"


class ConfigError(ValueError):
    """Raised when a configuration value is missing or malformed."""


@dataclass(frozen=True)
class ServerConfig:
    """
    Immutable process-wide configuration, built once before the listener starts.
    """
    document_root: str
    error_root: str
    bind_address: str = "127.0.0.1"
    bind_port: int = 8080
    server_identity: str = "StaticServer v1.0"
    read_timeout: float = 30.0
    max_workers: int = 10
    mime_types_file: Optional[str] = None
    log_file: Optional[str] = None
    log_level: str = "INFO"


def read_properties(path: str) -> Dict[str, str]:
    """
    Read a ``key=value`` properties file.

    Java properties files have no section header, so one is prepended
    before handing the text to configparser. Keys keep their case.

    Args:
        path: Properties file path

    Returns:
        Mapping of property name to value
    """
    parser = configparser.ConfigParser(interpolation=None, delimiters=("=", ":"), strict=False)
    parser.optionxform = str
    with open(path, "r", encoding="utf-8") as f:
        parser.read_string(f"[{_SECTION}]\n" + f.read(), source=path)
    return dict(parser.items(_SECTION))


def parse_overrides(argv: Iterable[str]) -> Dict[str, str]:
    """
    Collect ``-Dkey=value`` arguments.

    Args:
        argv: Command line arguments (without the program name)

    Returns:
        Mapping of property name to value
    """
    overrides = {}
    for arg in argv:
        if not arg.startswith("-D") or "=" not in arg:
            raise ConfigError(f"Unrecognized argument: {arg} (expected -Dkey=value)")
        key, value = arg[2:].split("=", 1)
        if not key:
            raise ConfigError(f"Missing property name in: {arg}")
        overrides[key] = value
    return overrides


def _to_int(properties: Dict[str, str], key: str, low: int, high: int) -> int:
    raw = properties[key]
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from None
    if not (low <= value <= high):
        raise ConfigError(f"{key} must be between {low} and {high}, got {value}")
    return value


def _to_float(properties: Dict[str, str], key: str) -> float:
    raw = properties[key]
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{key} must not be negative, got {value}")
    return value


def _optional_path(properties: Dict[str, str], key: str) -> Optional[str]:
    value = properties.get(key, "").strip()
    return os.path.abspath(value) if value else None


def _optional_existing_file(properties: Dict[str, str], key: str) -> Optional[str]:
    path = _optional_path(properties, key)
    if path and not os.path.isfile(path):
        raise ConfigError(f"{key} file not found: {path}")
    return path


def merge_properties(overrides: Optional[Dict[str, str]] = None,
                     config_file: Optional[str] = None) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Merge defaults, the properties file and overrides.

    The file named by ``config_file`` (or the ``config.file`` override) must
    exist; the default ``server.properties`` is only read when present.

    Returns:
        Tuple of (merged properties, path of the file that was read or None)
    """
    overrides = dict(overrides or {})
    properties = dict(DEFAULTS)

    path = overrides.get(CONFIG_FILE_PARAM) or config_file
    if path:
        if not os.path.isfile(path):
            raise ConfigError(f"Configuration file not found: {path}")
    elif os.path.isfile(DEFAULT_CONFIG_FILE):
        path = DEFAULT_CONFIG_FILE

    if path:
        try:
            properties.update(read_properties(path))
        except (OSError, configparser.Error) as e:
            raise ConfigError(f"Cannot read configuration file {path}: {e}") from e

    properties.update(overrides)
    return properties, path


def load_config(overrides: Optional[Dict[str, str]] = None,
                config_file: Optional[str] = None) -> ServerConfig:
    """
    Build the immutable ServerConfig.

    Args:
        overrides: Process-level overrides, take precedence over everything else
        config_file: Explicit properties file path

    Returns:
        Validated ServerConfig with absolute root paths
    """
    properties, _ = merge_properties(overrides, config_file)

    for key in (ROOT_PARAM, WEB_ROOT_PARAM, SERVER_VERSION_PARAM):
        if not properties.get(key, "").strip():
            raise ConfigError(f"{key} must not be empty")

    return ServerConfig(
        document_root=os.path.abspath(properties[WEB_ROOT_PARAM].strip()),
        error_root=os.path.abspath(properties[ROOT_PARAM].strip()),
        bind_address=properties[HOST_PARAM].strip(),
        bind_port=_to_int(properties, PORT_PARAM, 0, 65535),
        server_identity=properties[SERVER_VERSION_PARAM].strip(),
        read_timeout=_to_float(properties, READ_TIMEOUT_PARAM),
        max_workers=_to_int(properties, WORKERS_PARAM, 1, 1024),
        mime_types_file=_optional_existing_file(properties, MIME_TYPES_PARAM),
        log_file=_optional_path(properties, LOG_FILE_PARAM),
        log_level=properties[LOG_LEVEL_PARAM].strip().upper() or "INFO",
    )
