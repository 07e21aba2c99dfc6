"""
Loading form configuration from files, text or mappings.
"""

import json
import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml

from dynaforms.models.form_config import FormConfig

from .config_validator import validate_form_config
from .errors import ConfigurationError, FormattedValidationError

logger = logging.getLogger("dynaforms.config.loader")

ConfigSource = Union[FormConfig, Mapping[str, Any], str, Path]


def parse_config_text(content: str, format: Optional[str] = None) -> Any:
    """
    Parses JSON or YAML text.

    Without an explicit ``format``, text starting with ``{`` or ``[`` is read
    as JSON and everything else as YAML.
    """
    if format is None:
        format = "json" if content.lstrip()[:1] in ("{", "[") else "yaml"
    try:
        if format == "json":
            return json.loads(content)
        return yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as error:
        raise ConfigurationError(
            f"Could not parse form configuration as {format}",
            [FormattedValidationError(path="", message=str(error))],
        ) from error


def load_config_file(file_path: Union[str, Path]) -> Any:
    path = Path(file_path)
    content = path.read_text(encoding="utf-8")
    ext = path.suffix.lower()
    if ext == ".json":
        format: Optional[str] = "json"
    elif ext in (".yaml", ".yml"):
        format = "yaml"
    else:
        format = None
    logger.debug("form_config_file_loaded", extra={"file_path": str(path), "format": format})
    return parse_config_text(content, format)


def load_form_config(source: ConfigSource, ui_integration: Optional[str] = None) -> FormConfig:
    """
    Loads and validates a form configuration.

    Args:
        source: A ``FormConfig``, a mapping, JSON/YAML text or a path to a
            ``.json``/``.yaml``/``.yml`` file
        ui_integration: Passed on to ``validate_form_config``

    Raises:
        ConfigurationError: The configuration cannot be parsed or is invalid
    """
    if isinstance(source, FormConfig):
        return source

    if isinstance(source, Path):
        raw = load_config_file(source)
    elif isinstance(source, str):
        candidate = source.strip()
        if "\n" not in candidate and Path(candidate).suffix.lower() in (".json", ".yaml", ".yml"):
            raw = load_config_file(candidate)
        else:
            raw = parse_config_text(source)
    else:
        raw = source

    result = validate_form_config(raw, ui_integration=ui_integration)
    if not result.valid:
        logger.error(
            "form_config_rejected",
            extra={"errors": [str(error) for error in result.errors]},
        )
    return result.raise_for_errors()
