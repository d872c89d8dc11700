"""Local preference config, the authoritative read surface for preferences."""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from ...models import FitnessPreferences

logger = logging.getLogger(__name__)


class LocalPreferenceConfig:
    """Fitness preferences persisted to a local JSON file."""

    def __init__(self, path: Path):
        """Initialize local config.

        Args:
            path: JSON file to persist preferences in
        """
        self.path = Path(path)

    def load(self) -> FitnessPreferences:
        """Load preferences, falling back to defaults if the file is missing."""
        if not self.path.exists():
            return FitnessPreferences()
        try:
            return FitnessPreferences.model_validate_json(
                self.path.read_text(encoding="utf-8")
            )
        except (OSError, ValidationError, json.JSONDecodeError) as e:
            logger.warning("Invalid local preferences in %s, using defaults: %s", self.path, e)
            return FitnessPreferences()

    def save(self, preferences: FitnessPreferences) -> None:
        """Persist preferences."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(preferences.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Saved local preferences to %s", self.path)

    def reset(self) -> FitnessPreferences:
        """Reset to defaults and return them."""
        defaults = FitnessPreferences()
        self.save(defaults)
        return defaults
