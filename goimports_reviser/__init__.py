"""Top-level package for goimports-reviser.

This package exposes the core API for sorting, grouping and cleaning up the
imports of Go source files.
"""

from goimports_reviser.core import STANDARD_INPUT
from goimports_reviser.core import SourceFile
from goimports_reviser.core import iter_go_files
from goimports_reviser.core import process_file
from goimports_reviser.core import revise
from goimports_reviser.errors import ConfigError
from goimports_reviser.errors import DependencyError
from goimports_reviser.errors import FormatError
from goimports_reviser.errors import ParseError
from goimports_reviser.errors import ReviserError
from goimports_reviser.rules import ImportsOrders
from goimports_reviser.rules import classify_import
from goimports_reviser.rules import group_imports


__all__ = [
    "STANDARD_INPUT",
    "SourceFile",
    "revise",
    "process_file",
    "iter_go_files",
    "classify_import",
    "group_imports",
    "ImportsOrders",
    "ReviserError",
    "ConfigError",
    "ParseError",
    "DependencyError",
    "FormatError",
]
