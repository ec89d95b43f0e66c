"""Error taxonomy for code-insight.

Validation and not-found conditions are raised before any traversal or
provider call. Partial traversal failures are never raised; they are
collected on ``fs_tools.TraversalReport.errors`` instead.
"""

from __future__ import annotations

from typing import Optional


class CodeInsightError(Exception):
    """Base class for every error surfaced to callers."""


class InputError(CodeInsightError):
    """A required path or query is missing, or the request shape is invalid."""


class RootNotFoundError(CodeInsightError):
    """The root path does not exist or cannot be read."""

    def __init__(self, path: str, message: str = "Directory not found or not accessible") -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class RootNotDirectoryError(CodeInsightError):
    """The root path exists but is not a directory."""

    def __init__(self, path: str, message: str = "Path is not a directory") -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class EmptyResultError(CodeInsightError):
    """Nothing analyzable was found; raised before the model is called."""


class ProviderError(CodeInsightError):
    """The model provider call failed.

    The message is the provider's own error text when one was returned.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.status_code = status_code


class ConfigError(ProviderError):
    """Missing credentials or an unknown provider for a model spec."""
