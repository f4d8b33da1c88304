"""Error types shared by the core and shell layers."""


class RecordParseError(ValueError):
    """A single row or line could not be turned into a log record."""


class PreconditionError(ValueError):
    """Input or configuration was rejected before any I/O was attempted."""


class StoreError(RuntimeError):
    """A read or write against the document store failed."""
