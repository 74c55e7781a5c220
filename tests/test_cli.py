import json

from typer.testing import CliRunner
from ui5lint_cli.main import app

runner = CliRunner()

DEPRECATED = 'sap.ui.define(["sap/ui/core/Core"], function(Core) {\n    Core.attachInit(function() {});\n});\n'
LEGACY = 'sap.ui.define(["x", "y"], function(X, Y) {\n    return {};\n});\n'
VIEW = '<mvc:View xmlns:mvc="sap.ui.core.mvc" xmlns="sap.m">\n    <Page title="Home" navButtonText="Back"/>\n</mvc:View>\n'


def test_cli_lint_help():
    result = runner.invoke(app, ["lint", "--help"])
    assert result.exit_code == 0
    assert "Run the linter on UI5 scripts" in result.stdout


def test_cli_lint_reports_errors_and_exits_1(tmp_path):
    file_path = tmp_path / "a.js"
    file_path.write_text(DEPRECATED)

    result = runner.invoke(app, ["lint", str(file_path)])

    assert result.exit_code == 1
    assert "ERROR" in result.stdout
    assert "[no-deprecated-api]" in result.stdout
    assert f"{file_path}:2:10" in result.stdout


def test_cli_lint_reports_deprecated_view_properties(tmp_path):
    file_path = tmp_path / "Main.view.xml"
    file_path.write_text(VIEW)

    result = runner.invoke(app, ["lint", str(file_path)])

    assert result.exit_code == 1
    assert "[no-deprecated-api]" in result.stdout
    assert f"{file_path}:2:24" in result.stdout


def test_cli_lint_clean_file_exits_0(tmp_path):
    file_path = tmp_path / "clean.js"
    file_path.write_text('import Button from "sap/m/Button";\nexport default new Button();\n')

    result = runner.invoke(app, ["lint", str(file_path)])

    assert result.exit_code == 0
    assert "Total issues found: 0" in result.stdout


def test_cli_lint_json_output(tmp_path):
    file_path = tmp_path / "a.js"
    file_path.write_text(DEPRECATED)

    result = runner.invoke(app, ["lint", str(file_path), "--format", "json", "--details", "--coverage"])

    report = json.loads(result.stdout)
    assert report["summary"]["errors"] == 1
    [file_report] = report["results"]
    assert file_report["messages"][0]["rule_id"] == "no-deprecated-api"
    assert file_report["messages"][0]["severity"] == "error"
    assert file_report["coverage"]["total"] > 0


def test_cli_lint_markdown_output(tmp_path):
    file_path = tmp_path / "a.js"
    file_path.write_text(DEPRECATED)

    result = runner.invoke(app, ["lint", str(file_path), "--format", "markdown"])

    assert result.stdout.startswith("# UI5 Linter Report")
    assert "| Error | `[2:10]` |" in result.stdout
    assert "## Summary" in result.stdout


def test_cli_lint_invalid_config_exits_2(tmp_path):
    config = tmp_path / "ui5lint.toml"
    config.write_text("[tool.ui5lint]\njobs = 0\n")
    file_path = tmp_path / "a.js"
    file_path.write_text(DEPRECATED)

    result = runner.invoke(app, ["lint", str(file_path), "--config", str(config)])

    assert result.exit_code == 2


def test_cli_lint_missing_config_exits_2(tmp_path):
    result = runner.invoke(app, ["lint", str(tmp_path), "--config", str(tmp_path / "nope.toml")])

    assert result.exit_code == 2


def test_cli_normalize_prints_es_module(tmp_path):
    file_path = tmp_path / "legacy.js"
    file_path.write_text(LEGACY)

    result = runner.invoke(app, ["normalize", str(file_path)])

    assert result.exit_code == 0
    assert 'import X from "x";' in result.stdout
    assert "export default {};" in result.stdout
    assert file_path.read_text() == LEGACY


def test_cli_normalize_write(tmp_path):
    file_path = tmp_path / "legacy.js"
    file_path.write_text(LEGACY)

    result = runner.invoke(app, ["normalize", str(file_path), "--write"])

    assert result.exit_code == 0
    assert file_path.read_text().startswith('import X from "x";\nimport Y from "y";\n')


def test_cli_rules_lists_builtin_rules():
    result = runner.invoke(app, ["rules"])

    assert result.exit_code == 0
    assert "no-deprecated-api" in result.stdout
    assert "parsing-error" in result.stdout


def test_cli_normalize_write_parenthesizes_sequence_return(tmp_path):
    file_path = tmp_path / "sequence.js"
    file_path.write_text('define(["x"], function(X) { return a, b; });\n')

    result = runner.invoke(app, ["normalize", str(file_path), "--write"])

    assert result.exit_code == 0
    assert "export default (a, b);" in file_path.read_text()


def test_cli_normalize_unsupported_definition_keeps_file_and_exits_1(tmp_path):
    code = 'define(["a"], function(A) { var A = 1; return A; });\n'
    file_path = tmp_path / "shadow.js"
    file_path.write_text(code)

    result = runner.invoke(app, ["normalize", str(file_path), "--write"])

    assert result.exit_code == 1
    assert file_path.read_text() == code
