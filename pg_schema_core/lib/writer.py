"""
Append-only output sink used by the diff engine.

Only three operations are exposed (raw text, statement separator and a
statement with its header block), so a different sink, for example one
that streams into a file, can replace SQLWriter without touching callers.
"""

from io import StringIO
from typing import Optional, TextIO

from pg_schema_core.lib.ir import Metadata
from pg_schema_core.lib.quote import comment_schema_name


class SQLWriter:
    def __init__(self, include_comments: bool = True, stream: Optional[TextIO] = None):
        self.include_comments = include_comments
        self._stream = stream if stream is not None else StringIO()
        self._empty = True

    def write(self, text: str) -> None:
        if text:
            self._stream.write(text)
            self._empty = False

    def write_separator(self) -> None:
        """Leave exactly one blank line after whatever was written last."""
        if not self._empty:
            self._stream.write("\n")

    def write_statement(
        self,
        object_type: str,
        object_name: str,
        schema: Optional[str],
        owner: Optional[str],
        statement: str,
        target_schema: Optional[str] = None,
    ) -> None:
        if self.include_comments:
            self.write("--\n")
            self.write(
                f"-- Name: {object_name}; Type: {object_type}; "
                f"Schema: {comment_schema_name(schema, target_schema)}; Owner: {owner or '-'}\n"
            )
            self.write("--\n")
            self.write("\n")
        self.write(statement)
        self.write("\n")

    def write_header(self, metadata: Metadata) -> None:
        self.write("--\n")
        self.write("-- PostgreSQL database dump\n")
        self.write("--\n")
        self.write("\n")
        self.write(f"-- Dumped from database version {metadata.database_version}\n")
        self.write(f"-- Dumped by {metadata.dump_version}\n")

    def getvalue(self) -> str:
        if isinstance(self._stream, StringIO):
            return self._stream.getvalue()
        return ""


__all__ = ["SQLWriter"]
