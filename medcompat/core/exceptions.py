"""
Domain exceptions for the compatibility engine.

    MedCompatError (base)
    ├── InvalidInputError    -> contract violation by the caller (bad patient profile)
    └── ConfigurationError   -> inconsistent scoring policy

Missing lab data and unrecognised medicine names are NOT errors; the engine
degrades to a conservative result for those.
"""
from typing import Any, Dict, Optional


class MedCompatError(Exception):
    """Base class: a human readable message plus a context dict for logs and API payloads."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{context_str}]"
        return self.message


class InvalidInputError(MedCompatError, ValueError):
    """
    The caller violated the evaluate() contract (negative age, empty patient...).
    Raised before any rule runs, never silently coerced.
    """

    @property
    def errors(self) -> list:
        return self.context.get("errors", [])


class ConfigurationError(MedCompatError):
    pass
