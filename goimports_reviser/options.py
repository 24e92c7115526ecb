"""Options accepted by ``SourceFile.fix``.

Each option is a callable applied to the ``SourceFile`` before the run and
may raise ``ConfigError``.
"""

import logging
from typing import Any
from typing import Callable

from goimports_reviser.rules import parse_imports_order


SourceFileOption = Callable[[Any], None]


def with_removing_unused_imports(f) -> None:
    f.should_remove_unused_imports = True


def with_using_alias_for_version_suffix(f) -> None:
    f.should_use_alias_for_version_suffix = True


def with_code_formatting(f) -> None:
    f.should_format_code = True


def with_skip_generated_file(f) -> None:
    f.should_skip_auto_generated = True


def with_company_package_prefixes(value: str) -> SourceFileOption:
    """Comma-separated prefixes of company-local import paths, in match order."""

    def option(f) -> None:
        f.company_package_prefixes = [prefix.strip() for prefix in value.split(",") if prefix.strip()]

    return option


def with_imports_order(value: str) -> SourceFileOption:
    """Comma-separated output order of the import groups."""

    def option(f) -> None:
        f.imports_orders = parse_imports_order(value)

    return option


def with_formatter(formatter: Callable[[bytes], bytes]) -> SourceFileOption:
    def option(f) -> None:
        f.formatter = formatter

    return option


def with_trace(logger: logging.Logger) -> SourceFileOption:
    """Record every import classification on ``logger`` at debug level."""

    def option(f) -> None:
        f.trace = logger

    return option
