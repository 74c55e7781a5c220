from pathlib import Path

import pytest
from ui5lint_linter import LinterEngine, LinterOptions

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "linter"
SNAPSHOT_DIR = Path(__file__).parent / "snapshots" / "linter"


def format_result_for_snapshot(name, result):
    """Convert a lint result into a stable string for snapshot comparison."""
    lines = [
        f"{name}: {result.error_count} error(s), {result.warning_count} warning(s), "
        f"{result.fatal_error_count} fatal"
    ]
    # Sort by position and then rule_id so findings at the same spot are stable
    for message in sorted(result.messages, key=lambda m: (m.line or 0, m.column or 0, m.rule_id)):
        lines.append(
            f"{message.line}:{message.column} {message.severity.name.lower()} {message.rule_id} - {message.message}"
        )
        if message.message_details:
            lines.append(f"    {message.message_details}")
    return "\n".join(lines) + "\n"


def get_fixtures():
    return sorted(p.name for p in FIXTURES_DIR.iterdir() if p.is_file())


@pytest.mark.parametrize("fixture_name", get_fixtures())
def test_fixture_findings_match_snapshot(fixture_name, snapshot):
    engine = LinterEngine(LinterOptions(include_message_details=True))
    context = engine.create_context()
    engine.lint_source(context, fixture_name, (FIXTURES_DIR / fixture_name).read_bytes())

    snapshot.snapshot_dir = SNAPSHOT_DIR
    result = context.get_result(fixture_name)
    snapshot.assert_match(format_result_for_snapshot(fixture_name, result), f"{fixture_name}.txt")
