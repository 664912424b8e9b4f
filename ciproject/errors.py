from __future__ import annotations


class DescriptorError(Exception):
    """Base class for project descriptor errors."""


class ValidationError(DescriptorError):
    """Raised when a declaration, parameter set, or build step fails validation."""


class UnknownParameterError(ValidationError):
    """Raised when a `$name` reference does not resolve to a declared parameter."""

    def __init__(self, name: str, where: str = "") -> None:
        self.name = name
        self.where = where
        msg = f"Unknown parameter: {name!r}"
        if where:
            msg = f"{msg} (referenced at {where})"
        super().__init__(msg)


class HostError(DescriptorError):
    """Raised when the host refuses a descriptor or cannot start a build tool."""
