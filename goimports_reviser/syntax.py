"""Parser and printer for the import section of Go source files.

The source is parsed with the tree-sitter Go grammar. Only the package
clause, the import declarations and the comments around them are turned into
a declaration tree; everything that follows the last import declaration is
kept as opaque text and printed back unchanged.
"""

from __future__ import annotations

import bisect
from dataclasses import dataclass
from dataclasses import field
import functools
import re
from typing import Any
from typing import List
from typing import Optional
from typing import Set
from typing import Tuple
from typing import Union

from tree_sitter import Node
from tree_sitter import Query
from tree_sitter import QueryCursor
from tree_sitter_language_pack import get_language
from tree_sitter_language_pack import get_parser

from goimports_reviser.errors import ParseError


GRAMMAR = "go"

# identifiers used as the package of a selector or a qualified type
PACKAGE_REFERENCE_QUERY = """
    (selector_expression operand: (identifier) @package)
    (qualified_type package: (package_identifier) @package)
"""


@dataclass
class Comment:
    """A single ``//`` or ``/* */`` comment."""

    text: str
    pos: int
    end: int


@dataclass
class CommentGroup:
    """Comments with no blank line between them."""

    comments: List[Comment]
    text: str
    pos: int
    end: int
    newlines_before: int = 1

    def render(self) -> str:
        return self.text


@dataclass
class ImportSpec:
    """One import entry; an empty ``path`` marks a blank separator."""

    name: Optional[str]
    path: str
    doc: Optional[CommentGroup] = None
    comment: Optional[CommentGroup] = None
    pos: Optional[int] = None
    end: Optional[int] = None

    @classmethod
    def separator(cls) -> "ImportSpec":
        return cls(name=None, path="")

    @property
    def is_separator(self) -> bool:
        return not self.path

    @property
    def unquoted_path(self) -> str:
        return self.path.strip('"`')

    @property
    def specifier(self) -> str:
        if self.name is not None:
            return f"{self.name} {self.path}"
        return self.path

    def render(self) -> str:
        if self.is_separator:
            return ""
        if self.comment is not None:
            return f"{self.specifier} {self.comment.text}"
        return self.specifier


@dataclass
class ImportDecl:
    """An ``import`` declaration, parenthesized or not."""

    specs: List[ImportSpec] = field(default_factory=list)
    lparen: bool = False
    doc: Optional[CommentGroup] = None
    pos: int = 0
    end: int = 0
    newlines_before: int = 1

    def render(self) -> str:
        if not self.lparen and len(self.specs) == 1:
            return "import " + self.specs[0].render()
        lines = ["import ("]
        for spec in self.specs:
            if spec.doc is not None:
                lines.append("\t" + spec.doc.text)
            lines.append("\t" + spec.render() if not spec.is_separator else "")
        lines.append(")")
        return "\n".join(lines)


@dataclass
class File:
    """Declaration tree of one Go source file.

    ``header`` holds the verbatim text up to the end of the package clause and
    ``body`` everything after the import section. ``comments`` are the free
    comment groups between them; comments attached to import entries live on
    the entries. ``imports`` lists every entry seen at parse time and is not
    updated when declarations change. ``tree`` is the tree-sitter tree of the
    whole source.
    """

    header: str
    package_name: str
    package_pos: int
    header_comments: List[CommentGroup] = field(default_factory=list)
    comments: List[CommentGroup] = field(default_factory=list)
    decls: List[ImportDecl] = field(default_factory=list)
    imports: List[ImportSpec] = field(default_factory=list)
    body: str = ""
    body_start: int = 0
    tree: Any = field(default=None, repr=False, compare=False)


@functools.lru_cache(maxsize=None)
def _go_parser():
    return get_parser(GRAMMAR)


@functools.lru_cache(maxsize=None)
def _go_query(source: str) -> Query:
    return Query(get_language(GRAMMAR), source)


def _first_error(node: Node) -> Optional[Node]:
    if node.is_error or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_error(child)
        if found is not None:
            return found
    return node


def _char_offsets(text: str, source: bytes) -> Optional[List[int]]:
    """Map byte offsets of ``source`` to character offsets of ``text``."""
    if len(source) == len(text):
        return None
    table: List[int] = []
    for index, char in enumerate(text):
        table.extend([index] * len(char.encode("utf-8")))
    table.append(len(text))
    return table


class _Builder:
    """Builds a ``File`` from the tree-sitter tree of one source."""

    def __init__(self, text: str, source: bytes, tree):
        self.text = text
        self.tree = tree
        self.comments: List[CommentGroup] = []
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]
        self._offsets = _char_offsets(text, source)

    def offset(self, byte_offset: int) -> int:
        if self._offsets is None:
            return byte_offset
        return self._offsets[byte_offset]

    def pos(self, node: Node) -> int:
        return self.offset(node.start_byte)

    def end(self, node: Node) -> int:
        return self.offset(node.end_byte)

    def line(self, offset: int) -> int:
        return bisect.bisect_right(self._line_starts, offset)

    def error(self, msg: str, offset: int) -> ParseError:
        return ParseError(msg, self.line(offset))

    def comment(self, node: Node) -> Comment:
        pos, end = self.pos(node), self.end(node)
        return Comment(self.text[pos:end], pos, end)

    def group_comments(self, comments: List[Comment], prev_line: int) -> List[Tuple[CommentGroup, bool]]:
        """Split consecutive comments into groups.

        The boolean is True for a group starting on ``prev_line``, the line of
        the preceding token; such a group only spans that line.
        """
        groups: List[Tuple[CommentGroup, bool]] = []
        current: List[Comment] = []
        trailing = False
        for comment in comments:
            start_line = self.line(comment.pos)
            if current:
                limit = 0 if trailing else 1
                if start_line - self.line(current[-1].end) > limit:
                    groups.append((self._group(current), trailing))
                    current = []
            if not current:
                trailing = not groups and start_line == prev_line
            current.append(comment)
        if current:
            groups.append((self._group(current), trailing))
        return groups

    def _group(self, comments: List[Comment]) -> CommentGroup:
        pos, end = comments[0].pos, comments[-1].end
        return CommentGroup(comments=comments, text=self.text[pos:end], pos=pos, end=end)

    def _is_doc_for(self, group: CommentGroup, node: Node) -> bool:
        return self.line(group.end) + 1 == self.line(self.pos(node))

    def _free_comments(self, comments: List[Comment]) -> None:
        self.comments.extend(group for group, _ in self.group_comments(comments, 0))

    def build(self) -> File:
        root = self.tree.root_node
        error = _first_error(root)
        if error is not None:
            if error.is_missing:
                raise self.error(f"expected '{error.type}'", self.pos(error))
            raise self.error("syntax error", self.pos(error))

        children = [child for child in root.children if child.is_named or child.type == ";"]
        index = 0
        leading: List[Comment] = []
        while index < len(children) and children[index].type == "comment":
            leading.append(self.comment(children[index]))
            index += 1
        if index == len(children) or children[index].type != "package_clause":
            offset = self.pos(children[index]) if index < len(children) else len(self.text)
            raise self.error("expected 'package'", offset)

        clause = children[index]
        index += 1
        name = next((c for c in clause.named_children if c.type == "package_identifier"), None)
        if name is None:
            raise self.error("expected package name", self.end(clause))
        if name.text == b"_":
            raise self.error("invalid package name _", self.pos(name))
        header_end = self.end(clause)
        if index < len(children) and children[index].type == ";":
            header_end = self.end(children[index])
            index += 1

        file = File(
            header=self.text[:header_end],
            package_name=name.text.decode("utf-8"),
            package_pos=self.pos(clause),
            header_comments=[group for group, _ in self.group_comments(leading, 0)],
            tree=self.tree,
        )

        last_end = header_end
        pending: List[Comment] = []
        rest = children[index:]
        for position, child in enumerate(rest):
            if child.type == "comment":
                pending.append(self.comment(child))
                continue
            if child.type == ";":
                continue
            groups = self.group_comments(pending, self.line(last_end))
            pending = []
            last_end = self._attach_trailing_comment(file, groups, last_end)
            if child.type != "import_declaration":
                for later in rest[position + 1:]:
                    if later.type == "import_declaration":
                        raise self.error("imports must appear before other declarations", self.pos(later))
                # comments in front of the body stay part of the body text
                break
            doc = None
            if groups and not groups[-1][1] and self._is_doc_for(groups[-1][0], child):
                doc = groups[-1][0]
            self.comments.extend(group for group, _ in groups)
            decl = self.import_decl(child, doc)
            file.decls.append(decl)
            file.imports.extend(decl.specs)
            last_end = decl.end
        else:
            groups = self.group_comments(pending, self.line(last_end))
            last_end = self._attach_trailing_comment(file, groups, last_end)

        file.comments = self.comments
        file.body = self.text[last_end:]
        file.body_start = last_end
        _assign_spacing(self.text, header_end, file)
        return file

    def _attach_trailing_comment(self, file: File, groups: List[Tuple[CommentGroup, bool]], last_end: int) -> int:
        """Give a same-line comment to the unparenthesized declaration before it."""
        if groups and groups[0][1] and file.decls and last_end == file.decls[-1].end:
            decl = file.decls[-1]
            if not decl.lparen and decl.specs[-1].comment is None:
                group = groups.pop(0)[0]
                decl.specs[-1].comment = group
                decl.end = last_end = group.end
        return last_end

    def import_decl(self, node: Node, doc: Optional[CommentGroup]) -> ImportDecl:
        decl = ImportDecl(doc=doc, pos=self.pos(node), end=self.end(node))
        # comments between "import" and the entries belong to no entry
        comments: List[Comment] = []
        for child in node.children:
            if child.type == "comment":
                comments.append(self.comment(child))
            elif child.type == "import_spec":
                self._free_comments(comments)
                spec, comments = self.import_spec(child)
                decl.specs.append(spec)
            elif child.type == "import_spec_list":
                self._free_comments(comments)
                comments = []
                decl.lparen = True
                self.import_spec_list(child, decl)

        groups = self.group_comments(comments, self.line(decl.specs[-1].end) if decl.specs else 0)
        if groups and groups[0][1] and not decl.lparen and decl.specs:
            decl.specs[-1].comment = groups.pop(0)[0]
        self.comments.extend(group for group, _ in groups)
        return decl

    def import_spec_list(self, node: Node, decl: ImportDecl) -> None:
        prev_line = self.line(self.pos(node))
        prev_spec: Optional[ImportSpec] = None
        pending: List[Comment] = []
        for child in node.children:
            if child.type == "comment":
                pending.append(self.comment(child))
                continue
            if child.type not in ("import_spec", ";", ")"):
                continue

            groups = self.group_comments(pending, prev_line)
            pending = []
            if groups and groups[0][1] and prev_spec is not None and prev_spec.comment is None:
                prev_spec.comment = groups.pop(0)[0]
            spec_doc = None
            if (
                child.type == "import_spec"
                and groups
                and not groups[-1][1]
                and self._is_doc_for(groups[-1][0], child)
            ):
                spec_doc = groups.pop()[0]
            self.comments.extend(group for group, _ in groups)

            if child.type == "import_spec":
                spec, pending = self.import_spec(child)
                spec.doc = spec_doc
                decl.specs.append(spec)
                prev_spec = spec
                prev_line = self.line(spec.end)
            elif child.type == ";":
                prev_line = self.line(self.end(child))

    def import_spec(self, node: Node) -> Tuple[ImportSpec, List[Comment]]:
        """Build one entry; comments nested after its path are returned."""
        name = node.child_by_field_name("name")
        path = node.child_by_field_name("path")
        if path is None:
            raise self.error("missing import path", self.pos(node))
        path_text = self.text[self.pos(path):self.end(path)]
        if not path_text.strip('"`'):
            raise self.error("invalid import path", self.pos(path))

        inner: List[Comment] = []
        after: List[Comment] = []
        for child in _descendants(node):
            if child.type == "comment":
                (inner if child.start_byte < path.start_byte else after).append(self.comment(child))
        # comments between the alias and the path belong to no entry
        self._free_comments(inner)

        spec = ImportSpec(
            name=self.text[self.pos(name):self.end(name)] if name is not None else None,
            path=path_text,
            pos=self.pos(node),
            end=self.end(path),
        )
        return spec, after


def _descendants(node: Node):
    for child in node.children:
        yield child
        yield from _descendants(child)


def _assign_spacing(text: str, header_end: int, file: File) -> None:
    """Record how many line breaks separated each item from the previous one."""
    items: List[Union[CommentGroup, ImportDecl]] = sorted(
        [*file.comments, *file.decls], key=lambda item: item.pos
    )
    prev = header_end
    for item in items:
        item.newlines_before = min(text.count("\n", prev, max(prev, item.pos)), 2)
        prev = max(prev, item.end)


def decode_source(source: bytes) -> str:
    """Decode UTF-8 source, dropping a byte order mark and CRLF line endings."""
    try:
        text = source.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ParseError(f"invalid UTF-8 encoding: {exc}") from exc
    if text.startswith("\ufeff"):
        text = text[1:]
    return text.replace("\r\n", "\n")


def parse_file(source: bytes) -> File:
    """Parse the package clause and import section of Go source."""
    text = decode_source(source)
    encoded = text.encode("utf-8")
    return _Builder(text, encoded, _go_parser().parse(encoded)).build()


def package_references(file: File) -> Set[str]:
    """Return the identifiers used as a package qualifier anywhere in the file."""
    cursor = QueryCursor(_go_query(PACKAGE_REFERENCE_QUERY))
    captures = cursor.captures(file.tree.root_node)
    return {node.text.decode("utf-8") for node in captures.get("package", [])}


def print_file(file: File) -> bytes:
    """Render the tree back to Go source."""
    parts = [file.header]
    items: List[Union[CommentGroup, ImportDecl]] = sorted(
        [*file.comments, *file.decls], key=lambda item: item.pos
    )
    for item in items:
        parts.append("\n" * item.newlines_before if item.newlines_before else " ")
        parts.append(item.render())
    parts.append(file.body)
    return "".join(parts).encode("utf-8")
