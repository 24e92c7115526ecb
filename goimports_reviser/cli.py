#!/usr/bin/env python3
"""Command-line interface for goimports-reviser using Click."""

from importlib import metadata
import logging
from pathlib import Path
import sys
from typing import Optional
from typing import Sequence

import click
from goimports_reviser import core
from goimports_reviser.config import ReviserConfig
from goimports_reviser.config import read_reviser_config
from goimports_reviser.deps import determine_project_name
from goimports_reviser.errors import ReviserError


try:
    VERSION = f"goimports-reviser {metadata.version('goimports-reviser')}"
except metadata.PackageNotFoundError:
    VERSION = "goimports-reviser"


def _load_config(root: Path, overrides: dict) -> ReviserConfig:
    """Read the project configuration and apply the command-line overrides."""
    config = read_reviser_config(str(root))
    for key, value in overrides.items():
        if value is not None:
            setattr(config, key, value)
    if config.project_name is None:
        config.project_name = determine_project_name(root)
        if not config.project_name:
            logging.debug("[%s] no go.mod found, project imports will not be grouped", root)
    return config


def _handle_files(paths: Sequence[str], overrides: dict, exclude: Sequence[str], apply_changes: bool, to_stdout: bool) -> int:
    """Process Go files and report or fix their imports.

    Returns:
        0 if no changes, 1 if changes required, 2 if error occurred.
    """
    exit_code = 0

    for raw_path in paths:
        if raw_path == "-":
            root, file_paths = Path.cwd(), [core.STANDARD_INPUT]
        else:
            path = Path(raw_path)
            if not path.exists():
                logging.error("[%s] ERROR: no such file or directory", raw_path)
                exit_code = max(exit_code, 2)
                continue
            root = path if path.is_dir() else path.parent
            file_paths = [str(p) for p in core.iter_go_files(raw_path, ignore=exclude)]

        try:
            config = _load_config(root, overrides)
        except (ReviserError, OSError) as exc:
            logging.error("[%s] ERROR: %s", raw_path, exc)
            exit_code = max(exit_code, 2)
            continue

        for file_path in file_paths:
            stdout = to_stdout or file_path == core.STANDARD_INPUT
            try:
                modified, content = core.process_file(
                    file_path,
                    config.project_name,
                    config.options(),
                    apply=apply_changes and not stdout,
                )
            except (ReviserError, OSError) as exc:
                logging.error("[%s] ERROR: %s", file_path, exc)
                exit_code = max(exit_code, 2)
                continue

            if stdout and apply_changes:
                click.echo(content, nl=False)

            if modified:
                msg = "file updated." if apply_changes and not stdout else "imports would be modified."
                logging.info("[%s] %s", file_path, msg)
                exit_code = max(exit_code, 1)

    return exit_code


def revise_options(func):
    """Options shared by the check and fix commands."""
    options = [
        click.argument("paths", nargs=-1, required=True),
        click.option("--project-name", default=None, help="Project module path; defaults to the module in go.mod."),
        click.option("--company-prefixes", default=None, help="Comma-separated prefixes of company packages."),
        click.option("--imports-order", default=None, help="Group order, e.g. std,general,named,company,project."),
        click.option("--rm-unused/--no-rm-unused", default=None, help="Remove unused imports."),
        click.option("--set-alias/--no-set-alias", default=None, help="Alias imports whose path ends with a version."),
        click.option("--format/--no-format", "format_", default=None, help="Normalize declaration doc comments."),
        click.option("--skip-generated/--no-skip-generated", default=None, help="Leave generated files untouched."),
        click.option("--gofmt/--no-gofmt", default=None, help="Format the result with the gofmt binary."),
        click.option("--exclude", multiple=True, help="Path (relative to PATH) to skip; may be repeated."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _overrides(
    project_name: Optional[str],
    company_prefixes: Optional[str],
    imports_order: Optional[str],
    rm_unused: Optional[bool],
    set_alias: Optional[bool],
    format_: Optional[bool],
    skip_generated: Optional[bool],
    gofmt: Optional[bool],
) -> dict:
    return {
        "project_name": project_name,
        "company_prefixes": company_prefixes,
        "imports_order": imports_order,
        "rm_unused": rm_unused,
        "set_alias": set_alias,
        "format": format_,
        "skip_generated": skip_generated,
        "gofmt": gofmt,
    }


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Increase verbosity.")
@click.option("-q", "--quiet", is_flag=True, help="Suppress non-error output.")
@click.version_option(version=VERSION, prog_name="goimports-reviser")
def cli(verbose: bool, quiet: bool) -> None:
    """Sort, group and clean up the imports of Go source files."""
    # Configure logging only once
    if not logging.getLogger().handlers:
        if quiet:
            logging.basicConfig(level=logging.ERROR, format="%(message)s")
        else:
            logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format="%(message)s")


@cli.command(help="Report files whose imports would change, without modifying them.")
@revise_options
def check(paths, exclude, **kwargs) -> None:
    exit_code = _handle_files(paths, _overrides(**kwargs), exclude, apply_changes=False, to_stdout=False)
    sys.exit(exit_code)


@cli.command(help="Revise imports in place. Use '-' to read from standard input.")
@revise_options
@click.option(
    "--output",
    type=click.Choice(["file", "stdout"]),
    default="file",
    show_default=True,
    help="Where to write the revised content.",
)
def fix(paths, exclude, output, **kwargs) -> None:
    exit_code = _handle_files(paths, _overrides(**kwargs), exclude, apply_changes=True, to_stdout=output == "stdout")
    sys.exit(exit_code)


def main():
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    cli()
