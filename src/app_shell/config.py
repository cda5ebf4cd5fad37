import logging
import os
from pathlib import Path

from src.rules.models import Rules

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Operational requirements not met at startup."""


def validate_ops_rules(rules: Rules, data_dir: Path) -> None:
    """
    Validate operational requirements before startup.

    Raises ConfigurationError when a required env var is missing or the data
    dir cannot be created.
    """
    ops = rules.ops

    if ops.data_dir_required:
        try:
            data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Data dir not writable: {data_dir}") from e

    missing = [env_var for env_var in ops.required_env if not os.environ.get(env_var)]
    if missing:
        logger.critical("Missing required environment variables: %s", ", ".join(missing))
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}"
        )

    logger.info("Configuration validated.")
