"""Exception types raised by goimports-reviser."""

from typing import Optional


class ReviserError(Exception):
    """Base class for all errors raised while revising a file."""


class ConfigError(ReviserError):
    """Invalid option or configuration value."""


class ParseError(ReviserError):
    """The Go source could not be parsed."""

    def __init__(self, msg: str, lineno: Optional[int] = None):
        self.msg = msg
        self.lineno = lineno
        if lineno is not None:
            msg = f"line {lineno}: {msg}"
        super().__init__(msg)


class DependencyError(ReviserError):
    """Package dependencies or usages could not be determined."""


class FormatError(ReviserError):
    """The rendered source could not be formatted."""
