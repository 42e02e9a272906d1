from __future__ import annotations


class DomainError(Exception):
    """Base class for errors raised by the task core."""


class NotFoundError(DomainError):
    pass


class ValidationError(DomainError):
    pass


class ConflictError(DomainError):
    pass


class CrossParentMismatchError(ConflictError):
    """Dependency endpoints live under different parents."""


class CircularDependencyError(ConflictError):
    pass


class DependencyBlockedError(ConflictError):
    """Completion attempted while a direct dependency is still open."""
