"""
Form configuration: validation of raw configs and loading from JSON or YAML.
"""

from .config_validator import (
    FIX_SUGGESTIONS,
    UI_INTEGRATIONS,
    ConfigValidationResult,
    get_fix_suggestion,
    validate_form_config,
)
from .errors import ConfigurationError, DerivationCycleError, FormattedValidationError
from .loader import load_config_file, load_form_config, parse_config_text

__all__ = [
    "FIX_SUGGESTIONS",
    "UI_INTEGRATIONS",
    "ConfigValidationResult",
    "ConfigurationError",
    "DerivationCycleError",
    "FormattedValidationError",
    "get_fix_suggestion",
    "load_config_file",
    "load_form_config",
    "parse_config_text",
    "validate_form_config",
]
