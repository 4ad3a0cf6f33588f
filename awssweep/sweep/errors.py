"""Exception hierarchy for sweep operations."""

from __future__ import annotations

from typing import Optional


class SweepError(Exception):
    """Base class for all sweeper errors."""


class ConfigError(SweepError):
    """Match configuration could not be read or parsed.

    Fatal: raised before any remote call is made.
    """


class RegistryError(SweepError):
    """Registry content is inconsistent (duplicate names, unknown dependents, cycles)."""


class UnknownResourceType(SweepError):
    """A resource type name is not present in the registry."""

    def __init__(self, type_name: str) -> None:
        super().__init__(f"Unknown resource type: {type_name}")
        self.type_name = type_name


class InvocationError(SweepError):
    """A remote list/describe call failed or could not be made."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        method: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.service = service
        self.method = method
        self.error_code = error_code


class MalformedCandidate(SweepError):
    """One item of a list response has no readable identifier or tags."""


class DestroyError(SweepError):
    """A resource could not be deleted."""

    def __init__(self, message: str, resource_id: Optional[str] = None, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.resource_id = resource_id
        self.error_code = error_code
