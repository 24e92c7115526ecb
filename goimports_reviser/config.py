"""Project configuration for goimports-reviser.

Settings are read from ``.goimports-reviser.toml`` (or
``goimports-reviser.toml``) in the project root, for example::

    project-name = "github.com/acme/widget"
    company-prefixes = ["github.com/acme"]
    imports-order = "std,general,named,company,project"
    rm-unused = true
"""

from dataclasses import dataclass
from pathlib import Path
import tomllib
from typing import List
from typing import Optional

from goimports_reviser.errors import ConfigError
from goimports_reviser.formatter import gofmt_source
from goimports_reviser.options import SourceFileOption
from goimports_reviser.options import with_code_formatting
from goimports_reviser.options import with_company_package_prefixes
from goimports_reviser.options import with_formatter
from goimports_reviser.options import with_imports_order
from goimports_reviser.options import with_removing_unused_imports
from goimports_reviser.options import with_skip_generated_file
from goimports_reviser.options import with_using_alias_for_version_suffix


CONFIG_FILE_NAMES = (".goimports-reviser.toml", "goimports-reviser.toml")

# toml key -> (attribute, accepted type)
_KEYS = {
    "project-name": ("project_name", str),
    "company-prefixes": ("company_prefixes", str),
    "imports-order": ("imports_order", str),
    "rm-unused": ("rm_unused", bool),
    "set-alias": ("set_alias", bool),
    "format": ("format", bool),
    "skip-generated": ("skip_generated", bool),
    "gofmt": ("gofmt", bool),
}


@dataclass
class ReviserConfig:
    project_name: Optional[str] = None
    company_prefixes: str = ""
    imports_order: str = ""
    rm_unused: bool = False
    set_alias: bool = False
    format: bool = False
    skip_generated: bool = False
    gofmt: bool = False

    def options(self) -> List[SourceFileOption]:
        """Translate the settings into ``SourceFile`` options."""
        options: List[SourceFileOption] = []
        if self.rm_unused:
            options.append(with_removing_unused_imports)
        if self.set_alias:
            options.append(with_using_alias_for_version_suffix)
        if self.format:
            options.append(with_code_formatting)
        if self.skip_generated:
            options.append(with_skip_generated_file)
        if self.company_prefixes:
            options.append(with_company_package_prefixes(self.company_prefixes))
        if self.imports_order:
            options.append(with_imports_order(self.imports_order))
        if self.gofmt:
            options.append(with_formatter(gofmt_source))
        return options


def read_reviser_config(root: str) -> ReviserConfig:
    """Read the configuration file in ``root``, or return the defaults."""
    root_path = Path(root)
    config = ReviserConfig()

    for name in CONFIG_FILE_NAMES:
        config_path = root_path / name
        if config_path.is_file():
            break
    else:
        return config

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{config_path}: {exc}") from exc

    for key, value in data.items():
        if key not in _KEYS:
            raise ConfigError(f"{config_path}: unknown setting {key!r}")
        attr, expected = _KEYS[key]
        if expected is str and isinstance(value, list) and all(isinstance(v, str) for v in value):
            value = ",".join(value)
        if not isinstance(value, expected):
            raise ConfigError(f"{config_path}: {key} must be a {expected.__name__}")
        setattr(config, attr, value)
    return config
