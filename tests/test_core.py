import io
import logging

import pytest

import goimports_reviser
from goimports_reviser import core
from goimports_reviser.errors import ConfigError
from goimports_reviser.errors import ParseError
from goimports_reviser.options import with_code_formatting
from goimports_reviser.options import with_company_package_prefixes
from goimports_reviser.options import with_formatter
from goimports_reviser.options import with_imports_order
from goimports_reviser.options import with_removing_unused_imports
from goimports_reviser.options import with_skip_generated_file
from goimports_reviser.options import with_trace
from goimports_reviser.options import with_using_alias_for_version_suffix
from goimports_reviser.syntax import parse_file


def write_go(tmp_path, content, name="main.go"):
    path = tmp_path / name
    path.write_text(content)
    return str(path)


def test_groups_standard_and_general_imports(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"github.com/acme/widget/foo"\n'
        '\t"os"\n'
        ")\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(os.Args, foo.X)\n"
        "}\n",
    )

    content, changed = goimports_reviser.revise("", file_path)

    assert changed
    assert content.decode() == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"os"\n'
        "\n"
        '\t"github.com/acme/widget/foo"\n'
        ")\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(os.Args, foo.X)\n"
        "}\n"
    )


def test_merges_separate_import_declarations(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "// first\n"
        'import "io"\n'
        "\n"
        "// second\n"
        'import "fmt"\n'
        "\n"
        "func main() {\n"
        "\tfmt.Println(io.EOF)\n"
        "}\n",
    )

    content, changed = goimports_reviser.revise("", file_path)

    assert changed
    assert content.decode() == (
        "package main\n"
        "\n"
        "// first\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"io"\n'
        ")\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(io.EOF)\n"
        "}\n"
    )


def test_merge_folds_later_declarations_into_first_span():
    file = parse_file(b'package main\n\nimport "fmt"\n\n// io\nimport "io"\n')
    first_end = file.decls[0].end
    last_end = file.decls[1].end

    assert core.merge_import_decls(file)
    assert len(file.decls) == 1
    assert file.decls[0].end == last_end > first_end
    assert [spec.path for spec in file.decls[0].specs] == ['"fmt"', '"io"']


def test_named_import_is_grouped_after_general(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "import (\n"
        '\tmyfmt "fmt"\n'
        '\t"github.com/pkg/errors"\n'
        '\t"strings"\n'
        ")\n",
    )

    content, _ = goimports_reviser.revise("", file_path)

    assert content.decode() == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"strings"\n'
        "\n"
        '\t"github.com/pkg/errors"\n'
        "\n"
        '\tmyfmt "fmt"\n'
        ")\n"
    )


def test_company_and_project_groups(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "import (\n"
        '\t"github.com/acme/widget/internal/store"\n'
        '\t"github.com/acme/lib/log"\n'
        '\t"github.com/google/uuid"\n'
        '\t"context"\n'
        ")\n",
    )

    content, _ = goimports_reviser.revise(
        "github.com/acme/widget",
        file_path,
        with_company_package_prefixes("github.com/acme/lib, gitlab.acme.io"),
    )

    assert content.decode() == (
        "package main\n"
        "\n"
        "import (\n"
        '\t"context"\n'
        "\n"
        '\t"github.com/google/uuid"\n'
        "\n"
        '\t"github.com/acme/lib/log"\n'
        "\n"
        '\t"github.com/acme/widget/internal/store"\n'
        ")\n"
    )


def test_imports_order_option(tmp_path):
    file_path = write_go(
        tmp_path,
        'package main\n\nimport (\n\t"fmt"\n\t"github.com/acme/widget/api"\n)\n',
    )

    content, _ = goimports_reviser.revise(
        "github.com/acme/widget", file_path, with_imports_order("project,std")
    )

    assert content.decode() == (
        'package main\n\nimport (\n\t"github.com/acme/widget/api"\n\n\t"fmt"\n)\n'
    )


def test_invalid_imports_order_is_rejected(tmp_path):
    file_path = write_go(tmp_path, 'package main\n\nimport "fmt"\n')
    with pytest.raises(ConfigError):
        goimports_reviser.revise("", file_path, with_imports_order("std,vendor"))


def test_trailing_comments_are_kept_and_docs_dropped(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "import (\n"
        '\t"os" // for args\n'
        "\t// printing\n"
        '\t"fmt"\n'
        "\t// dangling\n"
        ")\n",
    )

    content, _ = goimports_reviser.revise("", file_path)

    assert content.decode() == (
        'package main\n\nimport (\n\t"fmt"\n\t"os" // for args\n)\n'
    )


def test_removes_unused_imports(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"os"\n'
        '\t_ "embed"\n'
        ")\n"
        "\n"
        "func main() {\n"
        '\tfmt.Println("hello") // os.Exit\n'
        "}\n",
    )

    content, changed = goimports_reviser.revise("", file_path, with_removing_unused_imports)

    assert changed
    text = content.decode()
    assert '"os"' not in text
    assert text.startswith(
        'package main\n\nimport (\n\t"fmt"\n\n\t_ "embed"\n)\n'
    )


def test_removing_every_import_drops_the_declaration(tmp_path):
    file_path = write_go(
        tmp_path,
        'package main\n\nimport "os"\n\nfunc main() {}\n',
    )

    content, changed = goimports_reviser.revise("", file_path, with_removing_unused_imports)

    assert changed
    assert content.decode() == "package main\n\nfunc main() {}\n"


def test_alias_for_version_suffix(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"github.com/go-pg/pg/v10"\n'
        ")\n"
        "\n"
        "func main() {\n"
        "\tfmt.Println(pg.Connect(nil))\n"
        "}\n",
    )

    content, _ = goimports_reviser.revise("", file_path, with_using_alias_for_version_suffix)

    assert content.decode().startswith(
        'package main\n\nimport (\n\t"fmt"\n\n\tpg "github.com/go-pg/pg/v10"\n)\n'
    )


def test_skips_auto_generated_files(tmp_path):
    original = (
        "// Code generated by x DO NOT EDIT.\n"
        "\n"
        "package main\n"
        "\n"
        "import (\n"
        '\t"os"\n'
        '\t"fmt"\n'
        ")\n"
    )
    file_path = write_go(tmp_path, original)

    content, changed = goimports_reviser.revise("", file_path, with_skip_generated_file)
    assert content == original.encode()
    assert not changed

    _, changed = goimports_reviser.revise("", file_path)
    assert changed


def test_generated_marker_after_package_clause_is_ignored(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "// Code generated by x DO NOT EDIT.\n"
        "import (\n"
        '\t"os"\n'
        '\t"fmt"\n'
        ")\n",
    )

    content, changed = goimports_reviser.revise("", file_path, with_skip_generated_file)

    assert changed
    assert content.decode() == (
        "package main\n"
        "\n"
        "// Code generated by x DO NOT EDIT.\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"os"\n'
        ")\n"
    )


def test_cgo_import_is_left_untouched(tmp_path):
    file_path = write_go(
        tmp_path,
        "package main\n"
        "\n"
        "/*\n"
        "#include <stdio.h>\n"
        "*/\n"
        'import "C"\n'
        "\n"
        "import (\n"
        '\t"os"\n'
        '\t"fmt"\n'
        ")\n",
    )

    content, _ = goimports_reviser.revise("", file_path)

    assert content.decode() == (
        "package main\n"
        "\n"
        "/*\n"
        "#include <stdio.h>\n"
        "*/\n"
        'import "C"\n'
        "\n"
        "import (\n"
        '\t"fmt"\n'
        '\t"os"\n'
        ")\n"
    )


def test_format_declaration_comments(tmp_path):
    file_path = write_go(
        tmp_path,
        'package main\n\n// Imports.   \nimport "fmt"\n',
    )

    content, _ = goimports_reviser.revise("", file_path, with_code_formatting)

    assert content.decode() == 'package main\n\n// Imports.\nimport "fmt"\n'


def test_custom_formatter_and_trace(tmp_path, caplog):
    file_path = write_go(tmp_path, 'package main\n\nimport (\n\tf "fmt"\n)\n')
    calls = []

    def fake_formatter(content):
        calls.append(content)
        return content

    caplog.set_level(logging.DEBUG, logger="reviser.trace")
    goimports_reviser.revise(
        "",
        file_path,
        with_formatter(fake_formatter),
        with_trace(logging.getLogger("reviser.trace")),
    )

    assert calls == [b'package main\n\nimport (\n\tf "fmt"\n)\n']
    assert any('f "fmt" classified as named' in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize(
    "source",
    [
        'package main\n\nimport (\n\t"os"\n\t"fmt"\n\tx "github.com/a/b"\n\t"github.com/c/d" // d\n)\n',
        'package main\n\nimport "fmt"\nimport "github.com/acme/widget/x"\n\nvar _ = fmt.Println\n',
        'package main\n\nimport "github.com/acme/lib"\n',
        "package main\n\nfunc main() {}\n",
        'package main\n\nimport /* x */ (\n\t"os"\n\tf /* c */ "fmt"\n)\n',
    ],
)
def test_second_run_is_idempotent(tmp_path, source):
    file_path = write_go(tmp_path, source)
    options = [with_company_package_prefixes("github.com/acme/lib")]

    content, _ = goimports_reviser.revise("github.com/acme/widget", file_path, *options)
    (tmp_path / "main.go").write_bytes(content)
    second, changed = goimports_reviser.revise("github.com/acme/widget", file_path, *options)

    assert not changed
    assert second == content


def test_reads_standard_input(monkeypatch):
    source = b'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n'
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(source)))

    content, changed = goimports_reviser.revise("", goimports_reviser.STANDARD_INPUT)

    assert changed
    assert content == b'package main\n\nimport (\n\t"fmt"\n\t"os"\n)\n'


def test_errors_are_raised(tmp_path):
    with pytest.raises(FileNotFoundError):
        goimports_reviser.revise("", str(tmp_path / "missing.go"))

    file_path = write_go(tmp_path, "func main() {}\n")
    with pytest.raises(ParseError):
        goimports_reviser.revise("", file_path)


def test_process_file_applies_changes(tmp_path):
    file_path = write_go(tmp_path, 'package main\n\nimport (\n\t"os"\n\t"fmt"\n)\n')

    modified, _ = goimports_reviser.process_file(file_path, "", apply=False)
    assert modified
    assert '"os"\n\t"fmt"' in (tmp_path / "main.go").read_text()

    modified, _ = goimports_reviser.process_file(file_path, "", apply=True)
    assert modified
    assert (tmp_path / "main.go").read_text() == 'package main\n\nimport (\n\t"fmt"\n\t"os"\n)\n'


def test_iter_go_files_skips_vendor(tmp_path):
    (tmp_path / "vendor" / "x").mkdir(parents=True)
    (tmp_path / "vendor" / "x" / "x.go").write_text("package x\n")
    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "a.go").write_text("package pkg\n")
    (tmp_path / "main.go").write_text("package main\n")
    (tmp_path / "README.md").write_text("")

    files = [p.relative_to(tmp_path).as_posix() for p in goimports_reviser.iter_go_files(str(tmp_path))]

    assert files == ["main.go", "pkg/a.go"]


def test_comments_inside_import_declaration(tmp_path):
    file_path = write_go(
        tmp_path,
        'package main\n\nimport /* x */ (\n\t"os"\n\tf /* c */ "fmt"\n)\n',
    )

    content, changed = goimports_reviser.revise("", file_path)

    assert changed
    assert content.decode() == 'package main\n\nimport (\n\t"os"\n\n\tf "fmt"\n)\n'


def test_crlf_line_endings_are_normalized(tmp_path):
    path = tmp_path / "main.go"
    path.write_bytes(
        b'package main\r\n\r\nimport (\r\n\t"os"\r\n\t"fmt"\r\n)\r\n\r\nfunc main() {}\r\n'
    )

    content, changed = goimports_reviser.revise("", str(path))

    assert changed
    assert content == b'package main\n\nimport (\n\t"fmt"\n\t"os"\n)\n\nfunc main() {}\n'
