# ABOUTME: Custom exception hierarchy for voyant-export error handling
# ABOUTME: Provides specialized exceptions with recovery hints for each pipeline stage
"""Custom exceptions for voyant-export"""


class VoyantExportError(Exception):
    """Base exception for all voyant-export errors"""

    def __init__(self, message: str, recovery_hint: str | None = None):
        super().__init__(message)
        self.recovery_hint = recovery_hint

    def __str__(self):
        base = super().__str__()
        if self.recovery_hint:
            return f"{base}\nHint: {self.recovery_hint}"
        return base


class ConfigError(VoyantExportError):
    """Configuration related errors"""

    pass


class ValidationError(VoyantExportError):
    """Malformed record data"""

    pass


class MetadataError(ValidationError):
    """Metadata document could not be built for a record"""

    pass


class CatalogError(VoyantExportError):
    """Source catalog could not be read"""

    pass


class FatalPreconditionError(VoyantExportError):
    """Export cannot start: no selection or no collection"""

    pass


class ExportIOError(VoyantExportError):
    """Filesystem errors while building the bag"""

    pass


class BagError(ExportIOError):
    """Bag skeleton (declaration or payload root) could not be created"""

    pass


class ArchiveError(ExportIOError):
    """Archive could not be written to the destination"""

    pass


class ExportError(VoyantExportError):
    """Job-level failure that terminates the export"""

    pass


class RetryExhaustedError(VoyantExportError):
    """An operation kept failing until its attempts ran out"""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(
            f"Operation failed after {attempts} attempt(s): {last_error}",
            recovery_hint=getattr(last_error, "recovery_hint", None),
        )
        self.attempts = attempts
        self.last_error = last_error
