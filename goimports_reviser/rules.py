"""Rules module for goimports-reviser.

This module classifies import specifiers into the five import groups, sorts
them, maps the groups onto the configured output order and rebuilds the
entries of an import declaration.

A specifier is the normalized text of one import entry: ``"path"`` or
``alias "path"``.
"""

from dataclasses import dataclass
import logging
from typing import Callable
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Tuple

from goimports_reviser.errors import ConfigError
from goimports_reviser.std import is_standard as is_standard_package
from goimports_reviser.syntax import CommentGroup
from goimports_reviser.syntax import ImportSpec


STD = "std"
GENERAL = "general"
NAMED = "named"
COMPANY = "company"
PROJECT = "project"

GROUP_NAMES: Tuple[str, ...] = (STD, GENERAL, NAMED, COMPANY, PROJECT)

Groups = Tuple[List[str], List[str], List[str], List[str], List[str]]


@dataclass
class CommentsMetadata:
    """Comments attached to one import entry."""

    doc: Optional[CommentGroup] = None
    comment: Optional[CommentGroup] = None


def skip_package_alias(imprt: str) -> str:
    """Return the bare import path of a specifier."""
    values = imprt.split(" ")
    if len(values) > 1:
        return values[1].strip('"')
    return imprt.strip('"')


def classify_import(
    imprt: str,
    project_name: str,
    company_prefixes: Sequence[str],
    is_standard: Callable[[str], bool] = is_standard_package,
) -> str:
    """Classify a specifier into 'std', 'general', 'named', 'company' or 'project'."""
    if len(imprt.split(" ")) > 1:
        return NAMED

    path = skip_package_alias(imprt)
    if is_standard(path):
        return STD
    for prefix in company_prefixes:
        if path.startswith(prefix):
            return COMPANY
    if project_name and project_name in path:
        return PROJECT
    return GENERAL


def group_imports(
    project_name: str,
    company_prefixes: Sequence[str],
    imports: Iterable[str],
    is_standard: Callable[[str], bool] = is_standard_package,
    log: Optional[logging.Logger] = None,
) -> Groups:
    """Split specifiers into the five groups, each sorted lexicographically.

    Returns the groups as (std, general, named, company, project). When
    ``log`` is given every classification is recorded on it at debug level.
    """
    grouped: Dict[str, List[str]] = {name: [] for name in GROUP_NAMES}
    for imprt in imports:
        group = classify_import(imprt, project_name, company_prefixes, is_standard)
        if log is not None:
            log.debug("import %s classified as %s", imprt, group)
        grouped[group].append(imprt)

    std, general, named, company, project = (sorted(grouped[name]) for name in GROUP_NAMES)
    return std, general, named, company, project


@dataclass(frozen=True)
class ImportsOrders:
    """Output sequence of the five import groups."""

    names: Tuple[str, ...] = GROUP_NAMES

    def sort_imports_by_order(
        self,
        std: List[str],
        general: List[str],
        named: List[str],
        company: List[str],
        project: List[str],
    ) -> Groups:
        by_name = {STD: std, GENERAL: general, NAMED: named, COMPANY: company, PROJECT: project}
        first, second, third, fourth, fifth = (by_name[name] for name in self.names)
        return first, second, third, fourth, fifth


DEFAULT_IMPORTS_ORDERS = ImportsOrders()


def parse_imports_order(value: str) -> ImportsOrders:
    """Parse a comma-separated group order such as ``std,general,company``.

    Groups left out keep their default relative order after the given ones.
    """
    names = [name.strip() for name in value.split(",") if name.strip()]
    unknown = [name for name in names if name not in GROUP_NAMES]
    if unknown:
        raise ConfigError(
            f"unknown import group(s) {', '.join(unknown)}; expected some of {', '.join(GROUP_NAMES)}"
        )
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ConfigError(f"duplicated import group(s) {', '.join(duplicates)}")

    names.extend(name for name in GROUP_NAMES if name not in names)
    return ImportsOrders(tuple(names))


def new_import_spec(imprt: str, comments_metadata: Mapping[str, CommentsMetadata]) -> ImportSpec:
    """Build the entry for a specifier, re-attaching its trailing comment."""
    name, _, path = imprt.rpartition(" ")
    metadata = comments_metadata.get(imprt)
    comment = metadata.comment if metadata is not None else None
    return ImportSpec(name=name or None, path=path, comment=comment)


def rebuild_imports(
    comments_metadata: Mapping[str, CommentsMetadata],
    first: List[str],
    second: List[str],
    third: List[str],
    fourth: List[str],
    fifth: List[str],
) -> List[ImportSpec]:
    """Concatenate the groups into one entry list with blank separators.

    A separator follows a non-empty group when a later group among the
    second to fourth is non-empty. After the fourth group the check is made
    against the fourth group itself, so a trailing separator is emitted even
    when the fifth group is empty.
    """
    boundaries = (
        (first, bool(second or third or fourth)),
        (second, bool(third or fourth)),
        (third, bool(fourth)),
        (fourth, bool(fourth)),
        (fifth, False),
    )

    specs: List[ImportSpec] = []
    for group, separated in boundaries:
        for imprt in group:
            specs.append(new_import_spec(imprt, comments_metadata))
        if group and separated:
            specs.append(ImportSpec.separator())
    return specs
