"""Constants used in the project."""

import logging
import os
from enum import Enum
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    CONNECTION_ERROR = 2
    USAGE_ERROR = 3
    RESOLUTION_ERROR = 4
    LOCKFILE_STALE = 5
    INTEGRITY_ERROR = 6


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    REGISTRY_URL = "https://registry.prpm.dev"
    REGISTRY_TOKEN: Optional[str] = None
    MANIFEST_FILE = "prpm.json"
    LOCKFILE_NAME = "prpm.lock"
    LOCKFILE_SCHEMA_VERSION = 1
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    REQUEST_TIMEOUT = 30  # Timeout in seconds for all HTTP requests

    HTTP_RETRY_MAX = 3
    HTTP_RETRY_BASE_DELAY_SEC = 0.3
    HTTP_RETRY_MAX_DELAY_SEC = 8.0
    HTTP_CACHE_TTL_SEC = 300

    MAX_DEPTH = 10
    MAX_DEPTH_LIMIT = 256
    MAX_CONCURRENCY = 8
    DEFAULT_INTEGRITY_ALGORITHM = "sha256"

    CONFIG_ENV = "PKGLOCK_CONFIG"
    ENV_REGISTRY_URL = "PKGLOCK_REGISTRY_URL"
    ENV_TOKEN = "PKGLOCK_TOKEN"
    ENV_LOG_LEVEL = "PKGLOCK_LOG_LEVEL"


# Keys accepted in the YAML config, mapped onto Constants attributes.
_CONFIG_KEYS = {
    ("registry", "url"): ("REGISTRY_URL", str),
    ("registry", "token"): ("REGISTRY_TOKEN", str),
    ("registry", "timeout"): ("REQUEST_TIMEOUT", int),
    ("http", "retry_max"): ("HTTP_RETRY_MAX", int),
    ("http", "retry_base_delay_sec"): ("HTTP_RETRY_BASE_DELAY_SEC", float),
    ("http", "retry_max_delay_sec"): ("HTTP_RETRY_MAX_DELAY_SEC", float),
    ("http", "cache_ttl_sec"): ("HTTP_CACHE_TTL_SEC", int),
    ("resolver", "max_depth"): ("MAX_DEPTH", int),
    ("resolver", "max_concurrency"): ("MAX_CONCURRENCY", int),
    ("lockfile", "integrity_algorithm"): ("DEFAULT_INTEGRITY_ALGORITHM", str),
}


def _default_config_paths():
    """Candidate config locations in priority order."""
    paths = []
    env_path = os.environ.get(Constants.CONFIG_ENV)
    if env_path:
        paths.append(env_path)
    paths.append(os.path.join(os.getcwd(), "pkglock.yml"))
    paths.append(os.path.join(os.getcwd(), "pkglock.yaml"))
    paths.append(os.path.join(os.path.expanduser("~"), ".config", "pkglock", "pkglock.yml"))
    return paths


def _load_yaml_config(path: Optional[str] = None) -> Dict[str, Any]:
    """Load the first config file found and return its mapping.

    An explicit ``path`` that does not exist is an error; default locations
    are skipped silently when absent.
    """
    import yaml  # pylint: disable=import-outside-toplevel

    candidates = [path] if path else _default_config_paths()
    for candidate in candidates:
        if not os.path.isfile(candidate):
            if path:
                raise FileNotFoundError(candidate)
            continue
        with open(candidate, "r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {candidate} must contain a mapping")
        logger.debug("Loaded config from %s", candidate)
        return data
    return {}


def apply_config(cfg: Dict[str, Any]) -> None:
    """Apply a loaded config mapping onto Constants."""
    for (section, key), (attr, cast) in _CONFIG_KEYS.items():
        block = cfg.get(section)
        if not isinstance(block, dict) or key not in block or block[key] is None:
            continue
        try:
            setattr(Constants, attr, cast(block[key]))
        except (TypeError, ValueError):
            logger.warning("Ignoring invalid config value %s.%s=%r", section, key, block[key])


def apply_env_overrides() -> None:
    """Environment variables take precedence over config files."""
    url = os.environ.get(Constants.ENV_REGISTRY_URL)
    if url and url.strip():
        Constants.REGISTRY_URL = url.strip()
    token = os.environ.get(Constants.ENV_TOKEN)
    if token and token.strip():
        Constants.REGISTRY_TOKEN = token.strip()
