"""Tests for the command line interface."""

import json

import pytest

from cli import main, normalize_entrypoint, parse_args


@pytest.fixture
def project(make_files, monkeypatch):
    """A small project with one used and one unused package."""
    root = make_files({
        "package.json": {"dependencies": {"tool": "1.0.0", "other": "1.0.0"}},
        "src/index.js": "import tool from 'tool';\nconsole.log(tool);",
        "node_modules/tool/package.json": {"main": "lib/main.js"},
        "node_modules/tool/lib/main.js": "module.exports = require('./helper');",
        "node_modules/tool/lib/helper.js": "",
        "node_modules/tool/test/main.test.js": "",
        "node_modules/other/index.js": "",
    })
    monkeypatch.chdir(root)
    return root


class TestParseArgs:
    """Tests for argument parsing."""

    def test_defaults(self):
        """Test flags default to off."""
        parsed = parse_args(["src/index.js"])

        assert parsed.entrypoints == ["src/index.js"]
        assert not parsed.list
        assert not parsed.json
        assert not parsed.rm

    def test_several_entrypoints(self):
        """Test multiple entrypoints with flags."""
        parsed = parse_args(["a.js", "b.js", "--list", "--json"])

        assert parsed.entrypoints == ["a.js", "b.js"]
        assert parsed.list and parsed.json

    def test_entrypoint_required(self):
        """Test that at least one entrypoint is needed."""
        with pytest.raises(SystemExit):
            parse_args([])


class TestNormalizeEntrypoint:
    """Tests for entrypoint normalization."""

    def test_existing_file_made_absolute(self, make_files):
        """Test that a plain path to a file becomes absolute."""
        root = make_files({"src/index.js": ""})

        assert normalize_entrypoint("src/index.js", root) == str(root / "src/index.js")

    def test_specifiers_untouched(self, root):
        """Test relative specifiers and package names pass through."""
        assert normalize_entrypoint("./src/index.js", root) == "./src/index.js"
        assert normalize_entrypoint("tool", root) == "tool"


class TestMain:
    """Tests for running the CLI end to end."""

    def test_prints_reachable_files(self, project, capsys):
        """Test the default output."""
        assert main(["src/index.js"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "src/index.js",
            "node_modules/tool/lib/main.js",
            "node_modules/tool/lib/helper.js",
        ]

    def test_list(self, project, capsys):
        """Test listing unused files."""
        assert main(["src/index.js", "--list"]) == 0

        lines = capsys.readouterr().out.splitlines()
        assert lines == [
            "- node_modules/other/index.js",
            "- node_modules/tool/test/main.test.js",
        ]

    def test_json(self, project, capsys):
        """Test listing unused files as JSON."""
        assert main(["./src/index.js", "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data == ["node_modules/other/index.js", "node_modules/tool/test/main.test.js"]

    def test_rm(self, project, capsys):
        """Test deleting unused files and emptied directories."""
        assert main(["src/index.js", "--rm"]) == 0

        assert not (project / "node_modules/other").exists()
        assert not (project / "node_modules/tool/test").exists()
        assert (project / "node_modules/tool/lib/main.js").exists()
        assert (project / "node_modules/tool/package.json").exists()
        assert (project / "node_modules").is_dir()
        assert "Removed 2 unused file(s)" in capsys.readouterr().err

    def test_resolution_error(self, project, capsys):
        """Test that a hard failure exits with an error."""
        (project / "src/broken.js").write_text("import './nope.js';")

        assert main(["src/broken.js", "--list"]) == 1

        err = capsys.readouterr().err
        assert "Error: Cannot find package './nope.js'" in err

    def test_diagnostics_do_not_fail(self, project, capsys):
        """Test that optional failures are warnings only."""
        (project / "src/plugins.js").write_text("try { require('./maybe.js'); } catch (e) {}")

        assert main(["src/plugins.js"]) == 0
        assert "src/plugins.js" in capsys.readouterr().out
