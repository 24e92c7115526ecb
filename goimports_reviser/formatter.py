"""Canonical formatting of rendered Go source.

``format_source`` normalizes the import section without any external tool;
``gofmt_source`` hands the whole file to ``gofmt`` instead.
"""

import logging
import re
import subprocess
from typing import List
from typing import Tuple

from goimports_reviser.errors import FormatError
from goimports_reviser.errors import ParseError
from goimports_reviser.syntax import File
from goimports_reviser.syntax import decode_source
from goimports_reviser.syntax import parse_file


LOG = logging.getLogger(__name__)

_IMPORT_OPEN_RE = re.compile(r"import\s*\(")
_LEADING_BLANK_LINES_RE = re.compile(r"\A\n(?:[ \t]*\n)+")


def _multiline_comment_ranges(file: File) -> List[Tuple[int, int]]:
    groups = [*file.header_comments, *file.comments]
    for decl in file.decls:
        for spec in decl.specs:
            groups.extend(group for group in (spec.doc, spec.comment) if group is not None)
    return [(group.pos, group.end) for group in groups if "\n" in group.text]


def format_source(content: bytes) -> bytes:
    """Normalize blank lines and trailing whitespace around the imports.

    The body after the import section is kept as is apart from blank lines
    at its start and the end of the file.
    """
    try:
        file = parse_file(content)
        text = decode_source(content)
    except ParseError as exc:
        raise FormatError(f"cannot format source: {exc}") from exc

    section_end = text.find("\n", file.body_start)
    if section_end == -1:
        section_end = len(text)
    protected = _multiline_comment_ranges(file)

    lines: List[str] = []
    offset = 0
    for line in text[:section_end].split("\n"):
        start = offset
        offset += len(line) + 1
        if any(pos < start < end for pos, end in protected):
            lines.append(line)
            continue
        line = line.rstrip()
        if not line:
            if not lines or not lines[-1] or _IMPORT_OPEN_RE.fullmatch(lines[-1]):
                continue
        elif line.strip() == ")" and lines and not lines[-1]:
            lines.pop()
        lines.append(line)

    tail = _LEADING_BLANK_LINES_RE.sub("\n\n", text[section_end:])
    return ("\n".join(lines) + tail.rstrip() + "\n").encode("utf-8")


def gofmt_source(content: bytes) -> bytes:
    """Format the content with the external gofmt binary."""
    LOG.debug("Running gofmt...")
    try:
        result = subprocess.run(["gofmt"], input=content, capture_output=True, check=False)
    except FileNotFoundError as exc:
        raise FormatError("gofmt not found. Please install Go or run without --gofmt.") from exc
    if result.returncode != 0:
        raise FormatError(result.stderr.decode("utf-8", "replace").strip() or "gofmt failed")
    return result.stdout
