import re
from dataclasses import dataclass
from dataclasses import replace
from typing import List
from typing import Optional
from typing import Sequence

from goimports_reviser.syntax import CommentGroup
from goimports_reviser.syntax import File


CODE_GENERATED_PATTERN = re.compile(r"// Code generated .* DO NOT EDIT\.")


@dataclass
class ImportPosition:
    """Source range of an import declaration."""

    start: int
    end: int

    def is_in_range(self, comment: CommentGroup) -> bool:
        return self.start <= comment.pos <= self.end


def clear_import_docs(file: File, import_positions: Sequence[ImportPosition]) -> None:
    """
    Drop the comment groups that lived inside the old import declarations.

    Comments attached to import entries were re-attached while rebuilding, the
    remaining ones inside those ranges would be stale. Nothing is dropped when
    the file had no imports.
    """
    if not file.imports:
        return
    file.comments = [
        comment
        for comment in file.comments
        if not any(position.is_in_range(comment) for position in import_positions)
    ]


def is_file_auto_generated(file: File) -> bool:
    """Return True if a generated-code marker precedes the package clause."""
    for group in [*file.header_comments, *file.comments]:
        for comment in group.comments:
            if comment.pos < file.package_pos and CODE_GENERATED_PATTERN.fullmatch(comment.text):
                return True
    return False


def fix_comment_group(group: Optional[CommentGroup]) -> Optional[CommentGroup]:
    """Return a copy of the group with trailing whitespace stripped from every line."""
    if group is None:
        return None
    return replace(
        group,
        comments=[replace(comment, text=_strip_lines(comment.text)) for comment in group.comments],
        text=_strip_lines(group.text),
    )


def _strip_lines(text: str) -> str:
    return "\n".join(line.rstrip() for line in text.split("\n"))


def format_decls(file: File) -> None:
    """
    Normalize the doc comment group of every declaration.

    The normalized copy replaces the original in the file's comment list too,
    since declaration docs are rendered from there.
    """
    replaced: List[tuple] = []
    for decl in file.decls:
        if decl.doc is None:
            continue
        formatted = fix_comment_group(decl.doc)
        replaced.append((decl.doc, formatted))
        decl.doc = formatted

    for original, formatted in replaced:
        file.comments = [formatted if comment is original else comment for comment in file.comments]
