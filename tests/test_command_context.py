from __future__ import annotations

from void_archive.core.context import parse_command_context


def test_splits_verb_and_args_on_runs_of_whitespace() -> None:
    ctx = parse_command_context("s1", "  ls   -la\t/secure  ")
    assert ctx.verb == "ls"
    assert ctx.args == ("-la", "/secure")
    assert ctx.first_arg == "-la"


def test_verb_keeps_case_as_typed() -> None:
    assert parse_command_context("s1", "CaT readme.txt").verb == "CaT"


def test_blank_line_yields_empty_verb() -> None:
    ctx = parse_command_context("s1", "   ")
    assert ctx.verb == ""
    assert ctx.args == ()
    assert ctx.first_arg is None


def test_working_directory_is_made_absolute() -> None:
    assert parse_command_context("s1", "ls", "secure").working_directory == "/secure"
    assert parse_command_context("s1", "ls", "").working_directory == "/"


def test_environment_is_copied() -> None:
    env = {"USER": "guest"}
    ctx = parse_command_context("s1", "ls", environment=env)
    env["USER"] = "root"
    assert ctx.environment == {"USER": "guest"}
