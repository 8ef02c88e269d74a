"""Shared error types for the compatibility engine.

Every error carries the structured attributes a mapping-table author needs
(field, constraint, transform name) so callers can surface them without
parsing messages.
"""


class CompatibilityError(Exception):
    """Base error for all compatibility-engine failures."""


class ConfigurationError(CompatibilityError):
    """A mapping table or module configuration is missing or malformed."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"Configuration error: {detail}")


class RequiredFieldMissing(CompatibilityError):
    """A required source field (or object sub-field) is absent with no default."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Required field missing: {field}")


class ValidationFailed(CompatibilityError):
    """A field-level or table-level constraint was violated."""

    def __init__(self, field: str, constraint: str, detail: str = "") -> None:
        self.field = field
        self.constraint = constraint
        self.detail = detail
        msg = f"Validation failed for field {field!r} ({constraint})"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class UnknownTransformType(CompatibilityError):
    """A referenced transform, transform type, function or rule does not exist."""

    def __init__(self, name: str, kind: str = "transform") -> None:
        self.name = name
        self.kind = kind
        super().__init__(f"Unknown {kind}: {name}")


class TransformExecutionError(CompatibilityError):
    """A transform failed while running (function raised, depth exceeded)."""

    def __init__(self, name: str, detail: str = "") -> None:
        self.name = name
        self.detail = detail
        super().__init__(f"Transform {name!r} failed" + (f": {detail}" if detail else ""))


class TransportError(CompatibilityError):
    """The transport collaborator could not deliver a request or read its reply."""

    def __init__(self, url: str, detail: str = "", status_code: int | None = None) -> None:
        self.url = url
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"Transport to {url} failed" + (f": {detail}" if detail else ""))
