"""
Tests for the pg-schema command line.
"""

import pytest

from pg_schema_core.cli.cli import build_parser, main

USERS_SQL = "CREATE TABLE users (id integer);\n"
USERS_DDL = "CREATE TABLE users (\n    id integer\n);\n"


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """Run each command from an empty directory so no stray ignore file is picked up."""
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_options():
    args = build_parser().parse_args(["-vv", "diff", "old.sql", "new.sql", "--schema", "app", "--comments"])
    assert args.verbose == 2
    assert args.command == "diff"
    assert (args.old, args.new) == ("old.sql", "new.sql")
    assert args.schema == "app"
    assert args.comments
    assert args.output is None


def test_dump(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL)

    assert main(["dump", "schema.sql", "--schema", "public"]) == 0
    assert capsys.readouterr().out == USERS_DDL


def test_dump_without_schema_qualifies(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL)

    assert main(["dump", "schema.sql"]) == 0
    assert capsys.readouterr().out == "CREATE TABLE public.users (\n    id integer\n);\n"


def test_dump_with_comments(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL)

    assert main(["dump", "schema.sql", "--schema", "public", "--comments"]) == 0
    out = capsys.readouterr().out
    assert out.startswith("--\n-- PostgreSQL database dump\n--\n")
    assert "-- Name: users; Type: TABLE; Schema: -; Owner: -\n" in out


def test_diff(workdir, capsys):
    (workdir / "old.sql").write_text(USERS_SQL)
    (workdir / "new.sql").write_text(USERS_SQL + "CREATE TABLE orders (id integer);\n")

    assert main(["diff", "old.sql", "new.sql", "--schema", "public"]) == 0
    assert capsys.readouterr().out == "CREATE TABLE orders (\n    id integer\n);\n"


def test_output_file(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL)

    assert main(["dump", "schema.sql", "--schema", "public", "-o", "out.sql"]) == 0
    assert (workdir / "out.sql").read_text() == USERS_DDL
    assert capsys.readouterr().out == ""


def test_ignore_file_option(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL + "CREATE TABLE temp_import (id integer);\n")
    (workdir / "ignore.toml").write_text('[tables]\npatterns = ["temp_*"]\n')

    assert main(["dump", "schema.sql", "--schema", "public", "--ignore-file", "ignore.toml"]) == 0
    assert capsys.readouterr().out == USERS_DDL


def test_default_ignore_file(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL + "CREATE TABLE temp_import (id integer);\n")
    (workdir / ".pgschemaignore").write_text('[tables]\npatterns = ["temp_*"]\n')

    assert main(["dump", "schema.sql", "--schema", "public"]) == 0
    assert capsys.readouterr().out == USERS_DDL


def test_missing_ignore_file(workdir, capsys):
    (workdir / "schema.sql").write_text(USERS_SQL)

    assert main(["dump", "schema.sql", "--ignore-file", "nope.toml"]) == 1
    assert "Error: Ignore file not found: nope.toml" in capsys.readouterr().err


def test_missing_source(workdir, capsys):
    assert main(["dump", "missing.sql"]) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_invalid_sql(workdir, capsys):
    (workdir / "schema.sql").write_text("CREATE TABLE (")

    assert main(["dump", "schema.sql"]) == 1
    assert "Failed to parse SQL" in capsys.readouterr().err
