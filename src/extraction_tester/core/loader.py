"""Loading and validation of suite configuration files."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from extraction_tester.core.config import SuiteConfig
from extraction_tester.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yaml", ".yml")
JSON_SUFFIXES = (".json",)


class ConfigLoader:
    """Loads a suite configuration from YAML/JSON files or parsed mappings.

    Example:
        ```python
        config = ConfigLoader().load_from_file("suites/invoices.yaml")
        print(config.suite.name, len(config.cases))
        ```
    """

    def load_from_file(self, path: str | Path) -> SuiteConfig:
        """Load and validate a suite configuration file.

        Args:
            path: Path to a ``.yaml``, ``.yml`` or ``.json`` file.

        Returns:
            Validated SuiteConfig.

        Raises:
            ConfigurationError: If the file cannot be read, parsed or validated.
        """
        file_path = Path(path).resolve()
        logger.info("Loading config from: %s", file_path)

        suffix = file_path.suffix.lower()
        if suffix not in YAML_SUFFIXES + JSON_SUFFIXES:
            raise ConfigurationError(
                f"Config file must be .yaml, .yml, or .json, got: {file_path.name}"
            )

        try:
            content = file_path.read_text()
        except OSError as e:
            raise ConfigurationError(f"Failed to read config file: {file_path}") from e

        try:
            if suffix in YAML_SUFFIXES:
                data = yaml.safe_load(content)
            else:
                data = json.loads(content)
        except (yaml.YAMLError, ValueError) as e:
            raise ConfigurationError(f"Failed to parse config file {file_path}: {e}") from e

        return self.load_from_dict(data)

    def load_from_dict(self, data: Any) -> SuiteConfig:
        """Validate an already-parsed configuration mapping.

        Raises:
            ConfigurationError: If validation fails; ``errors`` holds the details.
        """
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config root must be a mapping, got {type(data).__name__}"
            )

        try:
            config = SuiteConfig.model_validate(data)
        except ValidationError as e:
            logger.error("Config validation failed with %d error(s)", e.error_count())
            raise ConfigurationError(
                f"Invalid suite configuration: {e}", errors=e.errors()
            ) from e

        logger.info("Config validated successfully. Cases: %d", len(config.cases))
        return config
