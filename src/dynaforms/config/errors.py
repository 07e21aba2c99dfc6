from dataclasses import dataclass
from typing import List, Optional, Sequence


@dataclass
class FormattedValidationError:
    """One configuration problem, located by a dot path into the config."""

    path: str
    message: str
    fix: Optional[str] = None

    def __str__(self) -> str:
        text = f"{self.path or '<root>'}: {self.message}"
        if self.fix:
            text += f" (fix: {self.fix})"
        return text


class ConfigurationError(Exception):
    """Raised when a form configuration cannot be used."""

    def __init__(self, message: str, errors: Optional[Sequence[FormattedValidationError]] = None):
        super().__init__(message)
        self.errors: List[FormattedValidationError] = list(errors or [])

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        details = "\n".join(f"  - {error}" for error in self.errors)
        return f"{base}\n{details}"


class DerivationCycleError(ConfigurationError):
    """Raised when derivations depend on each other in a loop."""

    def __init__(self, message: str, cycle: Sequence[str]):
        super().__init__(message)
        self.cycle = list(cycle)
