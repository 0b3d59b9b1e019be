"""
Name-based exclusion of schema objects.

Patterns are shell-style globs kept per object kind. A name is ignored when
a plain pattern matches it, unless a '!'-prefixed pattern matches it too:

    [tables]
    patterns = ["test_*", "!test_core_*"]

The configuration is read from a TOML file, `.pgschemaignore` by default.
"""

import copy
import fnmatch
import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pg_schema_core.lib.ir import Catalog

IGNORE_FILE_NAME = ".pgschemaignore"

SECTIONS = ["tables", "views", "functions", "procedures", "types", "sequences"]


def _is_valid_pattern(pattern: str) -> bool:
    """Reject patterns with an unterminated character class."""
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if char == "\\":
            i += 2
            continue
        if char == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                return False
            i = end
        i += 1
    return True


def match_pattern(pattern: str, name: str) -> bool:
    if not _is_valid_pattern(pattern):
        return pattern == name
    return fnmatch.fnmatchcase(name, pattern)


def should_ignore(name: str, patterns: List[str]) -> bool:
    matched = False
    for pattern in patterns:
        if pattern.startswith("!"):
            continue
        if match_pattern(pattern, name):
            matched = True
            break

    if not matched:
        return False

    for pattern in patterns:
        if pattern.startswith("!") and match_pattern(pattern[1:], name):
            return False
    return True


@dataclass
class IgnoreConfig:
    tables: List[str] = field(default_factory=list)
    views: List[str] = field(default_factory=list)
    functions: List[str] = field(default_factory=list)
    procedures: List[str] = field(default_factory=list)
    types: List[str] = field(default_factory=list)
    sequences: List[str] = field(default_factory=list)

    def should_ignore_table(self, name: str) -> bool:
        return should_ignore(name, self.tables)

    def should_ignore_view(self, name: str) -> bool:
        return should_ignore(name, self.views)

    def should_ignore_function(self, name: str) -> bool:
        return should_ignore(name, self.functions)

    def should_ignore_procedure(self, name: str) -> bool:
        return should_ignore(name, self.procedures)

    def should_ignore_type(self, name: str) -> bool:
        return should_ignore(name, self.types)

    def should_ignore_sequence(self, name: str) -> bool:
        return should_ignore(name, self.sequences)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IgnoreConfig":
        """Build from the TOML layout: one table per kind with a `patterns` list."""
        kwargs = {}
        for section in SECTIONS:
            value = data.get(section) or {}
            if isinstance(value, dict):
                value = value.get("patterns") or []
            kwargs[section] = [str(p) for p in value]
        return cls(**kwargs)


def load_ignore_file(path: str) -> Optional[IgnoreConfig]:
    """
    Load an ignore file.

    Returns None when the file does not exist; a file that exists but is
    not valid TOML raises ValueError.
    """
    if not os.path.exists(path):
        logging.debug(f"No ignore file at {path}")
        return None
    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Failed to parse ignore file {path}: {e}")
    logging.info(f"Loaded ignore patterns from {path}")
    return IgnoreConfig.from_dict(data)


def load_ignore_config(directory: str = ".") -> Optional[IgnoreConfig]:
    return load_ignore_file(os.path.join(directory, IGNORE_FILE_NAME))


def apply_ignore(catalog: Catalog, config: Optional[IgnoreConfig]) -> Catalog:
    """Return a copy of the catalog without the ignored objects."""
    if config is None:
        return catalog

    filtered = copy.deepcopy(catalog)
    for schema in filtered.schemas.values():
        for kind, predicate in [
            ("tables", config.should_ignore_table),
            ("views", config.should_ignore_view),
            ("functions", config.should_ignore_function),
            ("procedures", config.should_ignore_procedure),
            ("types", config.should_ignore_type),
            ("sequences", config.should_ignore_sequence),
        ]:
            objects = getattr(schema, kind)
            for name in sorted(objects):
                if predicate(name):
                    logging.debug(f"Ignoring {kind[:-1]} {schema.name}.{name}")
                    del objects[name]
    return filtered


__all__ = [
    "IGNORE_FILE_NAME",
    "IgnoreConfig",
    "match_pattern",
    "should_ignore",
    "load_ignore_file",
    "load_ignore_config",
    "apply_ignore",
]
