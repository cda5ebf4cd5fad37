import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from src.rules.models import Rules

logger = logging.getLogger(__name__)


def _strip_fences(content: str) -> str:
    """Return the first ```yaml block if present, else the whole text."""
    yaml_lines = []
    in_block = False
    found_block = False

    for line in content.splitlines():
        s_line = line.strip()
        if s_line.startswith("```yaml"):
            in_block = True
            found_block = True
            continue
        if in_block and s_line.startswith("```"):
            break

        if in_block:
            yaml_lines.append(line)

    return "\n".join(yaml_lines) if found_block else content


def load_rules(path: Path) -> Rules:
    """
    Load and validate the rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(_strip_fences(content))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        rules = Rules.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Rules validation failed:\n{e}") from e

    logger.info("Loaded rules %s from %s", rules.project.rules_version, path)
    return rules


class AnalyticsRulesAdapter:
    """Exposes the analytics section of Rules through the analytics RulesPort."""

    def __init__(self, rules: Rules):
        self._analytics = rules.analytics

    def get_default_window_days(self) -> int:
        return self._analytics.default_window_days

    def get_top_limits(self) -> dict[str, int]:
        return self._analytics.top_limits.model_dump()

    def get_realtime_config(self) -> dict[str, int]:
        return self._analytics.realtime.model_dump()
