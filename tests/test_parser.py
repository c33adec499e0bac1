"""Tests for the JavaScript/TypeScript reference-site parser."""

import pytest

from scanner.parser import (
    DYNAMIC_IMPORT,
    EXPORT_DECLARATION,
    IMPORT_DECLARATION,
    REQUIRE_CALL,
    TRY_BLOCK,
    is_builtin,
    parse_source,
    tokenize,
)


def _references(tree):
    """Collect reference-site nodes in pre-order."""
    found = []
    stack = [tree]
    while stack:
        node = stack.pop()
        if node.is_reference:
            found.append(node)
        stack.extend(reversed(node.children))
    return found


def _specifiers(source):
    return [node.specifier.value for node in _references(parse_source(source))]


class TestImportDeclarations:
    """Tests for static import declarations."""

    def test_no_references(self):
        """Test a file without imports."""
        tree = parse_source('console.log("Hello, World!");')

        assert _references(tree) == []

    def test_import_forms(self):
        """Test every import declaration form."""
        source = """
            import './side-effect.js';
            import def from './default.js';
            import * as ns from './namespace.js';
            import { a, b as c } from "./named.js";
            import def2, { d } from './mixed.js'
        """

        assert _specifiers(source) == [
            "./side-effect.js",
            "./default.js",
            "./namespace.js",
            "./named.js",
            "./mixed.js",
        ]

    def test_multiline_named_import(self):
        """Test an import spanning several lines."""
        source = "import {\n  first,\n  second,\n} from 'pkg/sub';\n"

        assert _specifiers(source) == ["pkg/sub"]

    def test_declaration_text(self):
        """Test that node text covers the whole declaration."""
        node = _references(parse_source("import x from './x.js';\nfoo();"))[0]

        assert node.kind == IMPORT_DECLARATION
        assert node.text == "import x from './x.js';"

    def test_type_only_import(self):
        """Test that 'import type' is flagged."""
        nodes = _references(parse_source("import type { Thing } from './types.js';"))

        assert len(nodes) == 1
        assert nodes[0].type_only

    def test_default_import_named_type(self):
        """Test that a default import called 'type' is not type-only."""
        nodes = _references(parse_source("import type from './type.js';\nimport type, { x } from './y.js';"))

        assert [node.type_only for node in nodes] == [False, False]

    def test_import_meta_ignored(self):
        """Test that import.meta is not a reference."""
        assert _references(parse_source("const url = import.meta.url;")) == []

    def test_import_attributes(self):
        """Test an import with attributes."""
        assert _specifiers("import data from './data.json' with { type: 'json' };") == ["./data.json"]


class TestExportDeclarations:
    """Tests for export-from declarations."""

    def test_export_forms(self):
        """Test re-export forms."""
        source = """
            export * from './all.js';
            export * as ns from './ns.js';
            export { a, b as c } from './named.js';
            export type { T } from './types.js';
        """
        nodes = _references(parse_source(source))

        assert [node.kind for node in nodes] == [EXPORT_DECLARATION] * 4
        assert [node.specifier.value for node in nodes] == [
            "./all.js", "./ns.js", "./named.js", "./types.js",
        ]

    def test_local_exports_ignored(self):
        """Test that exports without 'from' are not references."""
        source = """
            export const a = 1;
            export { a };
            export default function main() { return import('./lazy.js'); }
        """
        nodes = _references(parse_source(source))

        assert [node.kind for node in nodes] == [DYNAMIC_IMPORT]


class TestCalls:
    """Tests for dynamic import() and require() calls."""

    def test_dynamic_import_literal(self):
        """Test a dynamic import with a string literal."""
        node = _references(parse_source("const m = await import('./lazy.js');"))[0]

        assert node.kind == DYNAMIC_IMPORT
        assert node.specifier.is_literal
        assert node.specifier.value == "./lazy.js"
        assert node.text == "import('./lazy.js')"

    def test_dynamic_import_expression(self):
        """Test a dynamic import with a computed argument."""
        node = _references(parse_source("import(a + '/' + b);"))[0]

        assert not node.specifier.is_literal
        assert node.specifier.text == "a + '/' + b"
        assert node.text == "import(a + '/' + b)"

    def test_dynamic_import_options(self):
        """Test that only the first argument names the module."""
        node = _references(parse_source("import('./data.json', { with: { type: 'json' } });"))[0]

        assert len(node.arguments) == 2
        assert node.specifier.value == "./data.json"

    def test_require(self):
        """Test a plain require call."""
        node = _references(parse_source("const fs = require('fs');"))[0]

        assert node.kind == REQUIRE_CALL
        assert node.specifier.value == "fs"
        assert not node.in_try

    def test_require_in_try_block(self):
        """Test that require inside try is flagged, but not inside catch."""
        source = """
            try {
                if (cond) { require('optional-a'); }
            } catch (e) {
                require('fallback');
            }
        """
        nodes = _references(parse_source(source))

        assert [(node.specifier.value, node.in_try) for node in nodes] == [
            ("optional-a", True),
            ("fallback", False),
        ]

    def test_try_block_kind(self):
        """Test that the try body is a try block."""
        tree = parse_source("try { a(); } finally { b(); }")

        assert [child.kind for child in tree.children] == [TRY_BLOCK, "block"]

    def test_non_calls_ignored(self):
        """Test member accesses and declarations named require."""
        source = """
            loader.require('./a.js');
            const p = require.resolve('./b.js');
            function require(id) { return id; }
            const o = { require: true };
        """

        assert _specifiers(source) == []

    def test_template_literals(self):
        """Test template literals with and without substitutions."""
        nodes = _references(parse_source("require(`./plain.js`);\nrequire(`./${name}.js`);"))

        assert nodes[0].specifier.value == "./plain.js"
        assert not nodes[1].specifier.is_literal

    def test_string_escapes(self):
        """Test that escapes in specifiers are decoded."""
        assert _specifiers(r"require('./a\x2ejs');") == ["./a.js"]

    def test_nested_in_functions(self):
        """Test references inside nested blocks."""
        source = "function f() { if (x) { return import('./deep.js'); } }"

        assert _specifiers(source) == ["./deep.js"]


class TestTokenizer:
    """Tests for comment, string and regex handling."""

    def test_comments_ignored(self):
        """Test that commented-out references are skipped."""
        source = """
            // import './line.js';
            /* require('./block.js') */
            import './real.js';
        """

        assert _specifiers(source) == ["./real.js"]

    def test_strings_ignored(self):
        """Test that code inside strings is skipped."""
        source = "const s = \"import './in-string.js'\";\nconst t = 'require(\"./x\")';"

        assert _specifiers(source) == []

    def test_regex_with_quotes(self):
        """Test that quotes inside a regex do not open a string."""
        source = "const re = /[\"']/g;\nimport './after-regex.js';"

        assert _specifiers(source) == ["./after-regex.js"]

    def test_division_is_not_regex(self):
        """Test that division operators are not read as regex literals."""
        source = "a = b / c; require('./x.js'); d = e / f;"

        assert _specifiers(source) == ["./x.js"]

    def test_template_substitution_braces(self):
        """Test braces inside template substitutions."""
        source = "const s = `${ {a: 1}.a }`;\nimport './after.js';"

        assert _specifiers(source) == ["./after.js"]

    def test_unterminated_string_stops_at_line_end(self):
        """Test recovery from an unterminated string."""
        source = "const s = 'oops\nimport './next.js';"

        assert _specifiers(source) == ["./next.js"]

    def test_shebang(self):
        """Test that a leading shebang line is skipped."""
        tokens = tokenize("#!/usr/bin/env node\nrun();")

        assert [token.value for token in tokens] == ["run", "(", ")", ";"]


class TestBuiltins:
    """Tests for builtin module detection."""

    @pytest.mark.parametrize("name", ["fs", "path", "node:fs", "node:test", "fs/promises", "child_process"])
    def test_builtin(self, name):
        """Test names of runtime modules."""
        assert is_builtin(name)

    @pytest.mark.parametrize("name", ["lodash", "fs-extra", "@scope/fs", "./fs", "path-browserify"])
    def test_not_builtin(self, name):
        """Test names of installable packages."""
        assert not is_builtin(name)
