"""
Exceptions raised by certwatch batch runs.

Record-level errors (InvalidRecord and its subclasses) are caught per row so
one bad spreadsheet row never aborts a batch. Configuration errors fail fast.
"""


class CertwatchError(Exception):
    """Base class for all certwatch errors."""
    pass


class ConfigurationError(CertwatchError):
    """Raised when a report profile is missing or malformed."""
    pass


class InvalidWindowDefinition(ConfigurationError):
    """Raised when a window's start offset is after its end offset."""

    def __init__(self, name, start_offset, end_offset):
        self.name = name
        self.start_offset = start_offset
        self.end_offset = end_offset
        super().__init__(
            f"Window {name!r} has start offset {start_offset} "
            f"after end offset {end_offset}"
        )


class InvalidRecord(CertwatchError):
    """Raised when a spreadsheet row cannot be decoded into a record."""

    def __init__(self, reason, row_number=None, field=None):
        self.reason = reason
        self.row_number = row_number
        self.field = field
        super().__init__(self.describe())

    def describe(self):
        parts = []
        if self.row_number is not None:
            parts.append(f"row {self.row_number}")
        if self.field:
            parts.append(f"field {self.field}")
        prefix = ", ".join(parts)
        return f"{prefix}: {self.reason}" if prefix else self.reason


class InvalidReferenceDate(InvalidRecord):
    """Raised when an admission / start of care date cannot be parsed."""
    pass


class SourceUnavailable(CertwatchError):
    """Raised when the spreadsheet source cannot be opened or read."""
    pass


class DocumentPreparationError(CertwatchError):
    """Raised when a single certification document cannot be produced."""

    def __init__(self, document_key, reason):
        self.document_key = document_key
        self.reason = reason
        super().__init__(f"Could not prepare {document_key}: {reason}")


class DeliveryError(CertwatchError):
    """Raised when an email could not be delivered after all retries."""
    pass
