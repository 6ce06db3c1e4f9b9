"""Errors raised while reading depflow settings from the environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence


class ConfigurationError(RuntimeError):
    """Raised when a ``DEPFLOW_*`` or ``GITHUB_*`` setting holds an unusable value."""

    def __init__(self, message: str, *, variables: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.variables = tuple(variables)


class MissingConfigurationError(ConfigurationError):
    """Raised when required settings such as ``GITHUB_TOKEN`` are unset or blank."""

    def __init__(self, variables: Sequence[str]) -> None:
        names = sorted(variables)
        super().__init__(f"Missing configuration for: {', '.join(names)}", variables=names)
