"""Exception types shared across proxysentry"""


class ProxySentryError(Exception):
    """Base class for all proxysentry errors."""


class UnsupportedFormatError(ProxySentryError):
    """No registered parser recognizes the file content."""

    def __init__(self, filename: str | None = None):
        self.filename = filename
        message = 'Unable to detect log format. Please ensure the file is in a supported format.'
        if filename:
            message = f'{filename}: {message}'
        super().__init__(message)


class UnknownParserError(ProxySentryError):
    """A parser was requested by a log type that is not registered."""

    def __init__(self, log_type: str, available: list[str]):
        self.log_type = log_type
        self.available = available
        super().__init__(f"Parser for log type '{log_type}' not found. Available types: {', '.join(available)}")


class ModelCallError(ProxySentryError):
    """The language model call failed (transport, auth, rate limit or empty reply)."""
