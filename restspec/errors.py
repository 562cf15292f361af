"""Exception hierarchy shared by the compiler, assembler and validator."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "RestSpecError",
    "UnsupportedShapeError",
    "UnsupportedKeyTypeError",
    "NameCollisionError",
    "MetadataLookupError",
    "HookError",
    "ValidationIssue",
    "ValidationFailedError",
]


class RestSpecError(ValueError):
    """Base class for every failure raised while building a document."""


class UnsupportedShapeError(RestSpecError):
    """A descriptor (or Python type) has no compilation rule."""


class UnsupportedKeyTypeError(RestSpecError):
    """A dictionary shape is keyed by something other than text."""


class NameCollisionError(RestSpecError):
    """Two distinct type identities normalise to the same schema name."""

    def __init__(self, name: str, existing: object, incoming: object):
        super().__init__(
            f"schema name {name!r} is claimed by both {existing} and {incoming}"
        )
        self.name = name
        self.existing = existing
        self.incoming = incoming


class MetadataLookupError(RestSpecError):
    """The metadata provider failed to answer a lookup."""


class HookError(RestSpecError):
    """A customisation hook tried to re-enter the compiler."""


@dataclass(slots=True, frozen=True)
class ValidationIssue:
    """One structural problem found in an assembled document."""

    location: str
    message: str

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"


class ValidationFailedError(RestSpecError):
    """The assembled document is not internally consistent."""

    def __init__(self, issues: list[ValidationIssue]):
        self.issues = list(issues)
        summary = "; ".join(str(issue) for issue in self.issues[:5])
        if len(self.issues) > 5:
            summary += f" (+{len(self.issues) - 5} more)"
        super().__init__(f"document failed validation: {summary}")
