"""Package name resolution and import usage analysis.

The Go toolchain is not required: package names are read from the package
clause of the imported package's sources when they can be found (current
module, ``vendor/``, local replacements, module cache) and guessed from the
import path otherwise.
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
import logging
import os
from pathlib import Path
import re
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import Optional
from typing import Tuple

from goimports_reviser.errors import DependencyError
from goimports_reviser.errors import ParseError
from goimports_reviser.std import is_standard
from goimports_reviser.syntax import File
from goimports_reviser.syntax import package_references
from goimports_reviser.syntax import parse_file


LOG = logging.getLogger(__name__)

_MAJOR_VERSION_RE = re.compile(r"v\d+")
_IDENTIFIER_PREFIX_RE = re.compile(r"\w*")
_UPPER_RE = re.compile(r"[A-Z]")


def assumed_package_name(path: str) -> str:
    """Guess the package identifier of an import path.

    >>> assumed_package_name("github.com/go-pg/pg/v10")
    'pg'
    >>> assumed_package_name("gopkg.in/yaml.v3")
    'yaml'
    """
    segments = path.split("/")
    base = segments[-1]
    if _MAJOR_VERSION_RE.fullmatch(base) and len(segments) > 1:
        base = segments[-2]
    if base.startswith("go-"):
        base = base[len("go-"):]
    return _IDENTIFIER_PREFIX_RE.match(base).group()


@dataclass
class GoModule:
    """The parts of a ``go.mod`` file needed to locate package sources."""

    path: str
    root: Path
    requires: Dict[str, str] = field(default_factory=dict)
    replaces: Dict[str, Tuple[str, Optional[str]]] = field(default_factory=dict)


def parse_go_mod(text: str, root: Path) -> GoModule:
    """Parse the ``module``, ``require`` and ``replace`` directives of a go.mod."""
    module_path: Optional[str] = None
    requires: Dict[str, str] = {}
    replaces: Dict[str, Tuple[str, Optional[str]]] = {}
    block: Optional[str] = None
    location = root / "go.mod"

    for lineno, raw_line in enumerate(text.splitlines(), 1):
        line = raw_line.split("//", 1)[0].strip()
        if not line:
            continue
        if block is not None:
            if line == ")":
                block = None
                continue
            directive, args = block, line
        else:
            directive, _, args = line.replace("\t", " ").partition(" ")
            args = args.strip()
            if args == "(":
                block = directive
                continue

        if directive == "module":
            module_path = args.strip('"')
        elif directive == "require":
            parts = args.split()
            if len(parts) < 2:
                raise DependencyError(f"{location}:{lineno}: usage: require module/path v1.2.3")
            requires[parts[0].strip('"')] = parts[1]
        elif directive == "replace":
            old, sep, new = args.partition("=>")
            old_parts, new_parts = old.split(), new.split()
            if not sep or not old_parts or not new_parts:
                raise DependencyError(f"{location}:{lineno}: usage: replace module/path [v1.2.3] => other/module v1.4.5")
            version = new_parts[1] if len(new_parts) > 1 else None
            replaces[old_parts[0].strip('"')] = (new_parts[0].strip('"'), version)

    if block is not None:
        raise DependencyError(f"{location}: unterminated {block} block")
    if not module_path:
        raise DependencyError(f"{location}: no module declaration")
    return GoModule(path=module_path, root=root, requires=requires, replaces=replaces)


def find_go_module(directory: Path) -> Optional[GoModule]:
    """Return the module of the nearest go.mod in ``directory`` or its parents."""
    directory = Path(directory).resolve()
    for candidate in (directory, *directory.parents):
        go_mod = candidate / "go.mod"
        if go_mod.is_file():
            return parse_go_mod(go_mod.read_text(encoding="utf-8"), candidate)
    return None


def determine_project_name(directory: Path) -> str:
    """Return the module path of the project containing ``directory``."""
    module = find_go_module(directory)
    return module.path if module is not None else ""


def module_cache_dir() -> Path:
    if os.environ.get("GOMODCACHE"):
        return Path(os.environ["GOMODCACHE"])
    if os.environ.get("GOPATH"):
        return Path(os.environ["GOPATH"].split(os.pathsep)[0]) / "pkg" / "mod"
    return Path.home() / "go" / "pkg" / "mod"


def escape_module_path(path: str) -> str:
    """Apply the module cache case encoding (``Azure`` -> ``!azure``)."""
    return _UPPER_RE.sub(lambda m: "!" + m.group().lower(), path)


def read_package_name(directory: Path) -> Optional[str]:
    """Return the package name declared by the Go sources in ``directory``."""
    if not directory.is_dir():
        return None
    for go_file in sorted(directory.glob("*.go")):
        if go_file.name.endswith("_test.go"):
            continue
        try:
            return parse_file(go_file.read_bytes()).package_name
        except (OSError, ParseError) as exc:
            LOG.debug("Skipping %s: %s", go_file, exc)
    return None


def _longest_prefix(path: str, modules: Iterable[str]) -> Optional[str]:
    matches = [m for m in modules if path == m or path.startswith(m + "/")]
    return max(matches, key=len) if matches else None


class DependencyResolver:
    """Resolves import paths to the identifiers their packages declare."""

    def __init__(self, directory):
        self.directory = Path(directory)
        if not self.directory.is_dir():
            raise DependencyError(f"directory {self.directory} does not exist")
        self.module = find_go_module(self.directory)
        self._cache: Dict[str, str] = {}

    def resolve_alias(self, path: str) -> str:
        if path not in self._cache:
            self._cache[path] = self._resolve(path)
        return self._cache[path]

    def _resolve(self, path: str) -> str:
        if is_standard(path):
            return assumed_package_name(path)
        for directory in self._package_dirs(path):
            name = read_package_name(directory)
            if name:
                LOG.debug("Resolved %s to package %s in %s", path, name, directory)
                return name
        return assumed_package_name(path)

    def _package_dirs(self, path: str) -> Iterator[Path]:
        module = self.module
        if module is None:
            return
        if path == module.path or path.startswith(module.path + "/"):
            yield module.root / path[len(module.path):].lstrip("/")
        yield module.root / "vendor" / path

        cache = module_cache_dir()
        owner = _longest_prefix(path, module.replaces)
        if owner is not None:
            target, version = module.replaces[owner]
            subdir = path[len(owner):].lstrip("/")
            if target.startswith((".", "/")):
                yield (module.root / target / subdir).resolve()
            elif version:
                yield cache / f"{escape_module_path(target)}@{version}" / subdir

        owner = _longest_prefix(path, module.requires)
        if owner is not None:
            subdir = path[len(owner):].lstrip("/")
            yield cache / f"{escape_module_path(owner)}@{module.requires[owner]}" / subdir


class UsageAnalyzer:
    """Tells whether an imported package is referenced in a file's body."""

    def __init__(self, file: File, resolver: DependencyResolver):
        self._references = package_references(file)
        self._names = {spec.unquoted_path: spec.name for spec in file.imports if spec.name}
        self._resolver = resolver

    def is_used(self, path: str) -> bool:
        name = self._names.get(path)
        if name in ("_", "."):
            return True
        if name is None:
            name = self._resolver.resolve_alias(path)
        return name in self._references
