"""Runtime configuration for the CLI: logging, config file, overrides.

Precedence, lowest to highest: Constants defaults, YAML config file,
environment variables, CLI flags.
"""

from __future__ import annotations

import logging
import os
from typing import Any

from constants import Constants, _load_yaml_config, apply_config, apply_env_overrides
from common.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def setup_logging(args: Any) -> None:
    """Configure logging based on CLI arguments.

    Args:
        args: Parsed CLI arguments.
    """
    # Honor CLI --loglevel
    if getattr(args, "LOG_LEVEL", None):
        os.environ[Constants.ENV_LOG_LEVEL] = str(args.LOG_LEVEL).upper()

    configure_logging()

    level_name = str(getattr(args, "LOG_LEVEL", None) or "WARNING").upper()
    logging.getLogger().setLevel(getattr(logging, level_name, logging.WARNING))

    # Add file handler if --logfile specified
    log_file = getattr(args, "LOG_FILE", None)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        )
        file_handler.setFormatter(formatter)
        logging.getLogger().addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def load_config(args: Any) -> None:
    """Load the YAML config (explicit --config or default locations) and env overrides.

    Raises:
        FileNotFoundError: an explicit --config path does not exist.
        ValueError: the config file is not a mapping.
    """
    cfg = _load_yaml_config(getattr(args, "CONFIG", None))
    if cfg:
        apply_config(cfg)
    apply_env_overrides()


def apply_overrides(args: Any) -> None:
    """Apply CLI overrides with highest precedence."""
    if getattr(args, "REGISTRY_URL", None):
        Constants.REGISTRY_URL = args.REGISTRY_URL
    if getattr(args, "MAX_DEPTH", None) is not None:
        Constants.MAX_DEPTH = int(args.MAX_DEPTH)
    if getattr(args, "CONCURRENCY", None) is not None:
        Constants.MAX_CONCURRENCY = max(1, int(args.CONCURRENCY))
