#!/usr/bin/env python3
"""Core utilities for goimports-reviser. This module revises the import
section of a Go source file: it merges the import declarations, classifies
and sorts the imports into groups, rebuilds the declaration and renders the
formatted file. It also exposes helpers to process files and discover Go
sources.
"""
from __future__ import annotations

import logging
from pathlib import Path
import sys
from typing import Callable
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

from goimports_reviser.comments import ImportPosition
from goimports_reviser.comments import clear_import_docs
from goimports_reviser.comments import format_decls
from goimports_reviser.comments import is_file_auto_generated
from goimports_reviser.deps import DependencyResolver
from goimports_reviser.deps import UsageAnalyzer
from goimports_reviser.formatter import format_source
from goimports_reviser.rules import DEFAULT_IMPORTS_ORDERS
from goimports_reviser.rules import CommentsMetadata
from goimports_reviser.rules import Groups
from goimports_reviser.rules import ImportsOrders
from goimports_reviser.rules import group_imports
from goimports_reviser.rules import rebuild_imports
from goimports_reviser.syntax import File
from goimports_reviser.syntax import ImportDecl
from goimports_reviser.syntax import ImportSpec
from goimports_reviser.syntax import parse_file
from goimports_reviser.syntax import print_file

LOG = logging.getLogger(__name__)

STANDARD_INPUT = "<standard-input>"

_SKIPPED_DIRS = {"vendor", "testdata"}


def is_single_cgo_import(decl: ImportDecl) -> bool:
    """Return True for the ``import "C"`` pseudo-package declaration."""
    return len(decl.specs) == 1 and decl.specs[0].path == '"C"'


def merge_import_decls(file: File) -> bool:
    """Merge every import declaration into the first one.

    The first declaration receives all entries in their original order and
    its span is extended over the later declarations, which are removed.
    Returns True if there was more than one declaration.
    """
    import_specs = [
        spec for decl in file.decls if not is_single_cgo_import(decl) for spec in decl.specs
    ]

    decls: List[ImportDecl] = []
    first: Optional[ImportDecl] = None
    has_multiple_import_decls = False
    for decl in file.decls:
        if is_single_cgo_import(decl):
            decls.append(decl)
            continue
        if first is not None:
            has_multiple_import_decls = True
            first.end = max(first.end, decl.end)
            continue
        decl.specs = import_specs
        decls.append(decl)
        first = decl

    file.decls = decls
    return has_multiple_import_decls


def set_alias_for_versioned_import(spec: ImportSpec, resolver: DependencyResolver) -> str:
    """Alias the import when its last path segment is not the package name."""
    path = spec.unquoted_path
    alias = resolver.resolve_alias(path)
    if path.rsplit("/", 1)[-1] != alias:
        return f"{alias} {spec.path}"
    return spec.path


def parse_imports(
    file: File,
    remove_unused: bool = False,
    alias_version_suffix: bool = False,
    resolver: Optional[DependencyResolver] = None,
    usage: Optional[UsageAnalyzer] = None,
) -> Dict[str, CommentsMetadata]:
    """Extract the specifier of every import entry with its comments.

    Entries normalizing to the same specifier keep the comments of the last one.
    """
    if remove_unused and usage is None:
        raise ValueError("removing unused imports requires a usage analyzer")
    if alias_version_suffix and resolver is None:
        raise ValueError("aliasing version suffixes requires a dependency resolver")

    imports_with_metadata: Dict[str, CommentsMetadata] = {}
    for decl in file.decls:
        if is_single_cgo_import(decl):
            continue
        for spec in decl.specs:
            if remove_unused and not usage.is_used(spec.unquoted_path):
                LOG.debug("Removing unused import %s", spec.path)
                continue

            if spec.name is not None:
                imprt = spec.specifier
            elif alias_version_suffix:
                imprt = set_alias_for_versioned_import(spec, resolver)
            else:
                imprt = spec.path

            imports_with_metadata[imprt] = CommentsMetadata(doc=spec.doc, comment=spec.comment)

    LOG.debug("Found %d imports", len(imports_with_metadata))
    return imports_with_metadata


def remove_empty_import_decls(file: File) -> None:
    file.decls = [decl for decl in file.decls if decl.specs]


def fix_imports(
    file: File,
    groups: Groups,
    comments_metadata: Dict[str, CommentsMetadata],
    imports_orders: ImportsOrders = DEFAULT_IMPORTS_ORDERS,
) -> None:
    """Rebuild the import declarations from the classified groups."""
    import_positions: List[ImportPosition] = []
    for decl in file.decls:
        if is_single_cgo_import(decl):
            continue
        import_positions.append(ImportPosition(start=decl.pos, end=decl.end))
        first, second, third, fourth, fifth = imports_orders.sort_imports_by_order(*groups)
        decl.specs = rebuild_imports(comments_metadata, first, second, third, fourth, fifth)

    clear_import_docs(file, import_positions)
    remove_empty_import_decls(file)


class SourceFile:
    """Revises the imports of one Go source file.

    Options are applied with ``fix``; see ``goimports_reviser.options``.
    """

    def __init__(self, project_name: str, file_path: str):
        self.project_name = project_name
        self.file_path = file_path

        self.should_remove_unused_imports = False
        self.should_use_alias_for_version_suffix = False
        self.should_format_code = False
        self.should_skip_auto_generated = False
        self.company_package_prefixes: List[str] = []
        self.imports_orders: ImportsOrders = DEFAULT_IMPORTS_ORDERS
        self.formatter: Callable[[bytes], bytes] = format_source
        self.trace: Optional[logging.Logger] = None

    def fix(self, *options: Callable[["SourceFile"], None]) -> Tuple[bytes, bool]:
        """Revise the imports and format the code.

        Returns the formatted content and whether it differs from the input.
        """
        for option in options:
            option(self)

        original_content = self.read()
        file = parse_file(original_content)

        if self.should_skip_auto_generated and is_file_auto_generated(file):
            LOG.debug("[%s] auto-generated file, skipping", self.file_path)
            return original_content, False

        imports_with_metadata = self.parse_imports(file)
        groups = group_imports(
            self.project_name,
            self.company_package_prefixes,
            imports_with_metadata,
            log=self.trace,
        )

        merge_import_decls(file)
        fix_imports(file, groups, imports_with_metadata, self.imports_orders)

        if self.should_format_code:
            format_decls(file)

        formatted_content = self.formatter(print_file(file))
        return formatted_content, formatted_content != original_content

    def read(self) -> bytes:
        if self.file_path == STANDARD_INPUT:
            return sys.stdin.buffer.read()
        return Path(self.file_path).read_bytes()

    def parse_imports(self, file: File) -> Dict[str, CommentsMetadata]:
        resolver = usage = None
        if self.should_remove_unused_imports or self.should_use_alias_for_version_suffix:
            resolver = DependencyResolver(Path(self.file_path).parent)
            usage = UsageAnalyzer(file, resolver)
        return parse_imports(
            file,
            remove_unused=self.should_remove_unused_imports,
            alias_version_suffix=self.should_use_alias_for_version_suffix,
            resolver=resolver,
            usage=usage,
        )


def revise(project_name: str, file_path: str, *options: Callable[[SourceFile], None]) -> Tuple[bytes, bool]:
    """Revise the imports of ``file_path``; see ``SourceFile.fix``."""
    return SourceFile(project_name, file_path).fix(*options)


def process_file(
    file_path: str,
    project_name: str,
    options: Sequence[Callable[[SourceFile], None]] = (),
    apply: bool = False,
) -> Tuple[bool, bytes]:
    """Revise a single file, rewriting it in place if ``apply`` is set.

    Returns (changed, content). Standard input is never written back.
    """
    content, changed = revise(project_name, file_path, *options)
    if apply and changed and file_path != STANDARD_INPUT:
        Path(file_path).write_bytes(content)
        LOG.debug("[%s] written", file_path)
    return changed, content


def iter_go_files(root: str, ignore: Optional[Iterable[str]] = None) -> Iterator[Path]:
    """Yield Go files under the given root, skipping vendored, test data and hidden directories."""
    ignore_set = set(ignore or [])
    root_path = Path(root)
    if root_path.is_file():
        yield root_path
        return
    for path in sorted(root_path.rglob("*.go")):
        dirs = path.relative_to(root_path).parts[:-1]
        if any(part in _SKIPPED_DIRS or part.startswith((".", "_")) for part in dirs):
            continue
        if any(str(path).startswith(str(root_path / pattern)) for pattern in ignore_set):
            continue
        yield path
