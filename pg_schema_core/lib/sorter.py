import bisect
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Set, Tuple

from pg_schema_core.lib.ir import Schema


def topological_sort(nodes: Iterable[str], edges: Iterable[Tuple[str, str]]) -> List[str]:
    """
    Order nodes so that every edge (before, after) is respected.

    Kahn's algorithm with a ready queue that is kept sorted at all times, so
    the smallest available name is always taken next. If the graph has a
    cycle the dependency order is abandoned and the names are returned
    alphabetically.
    """
    names = sorted(set(nodes))
    graph: Dict[str, Set[str]] = defaultdict(set)
    in_degree: Dict[str, int] = {name: 0 for name in names}

    for before, after in edges:
        if before not in in_degree or after not in in_degree or before == after:
            continue
        if after in graph[before]:
            continue
        graph[before].add(after)
        in_degree[after] += 1

    queue = [name for name in names if in_degree[name] == 0]
    sorted_names = []

    while queue:
        current = queue.pop(0)
        sorted_names.append(current)
        for neighbor in sorted(graph[current]):
            in_degree[neighbor] -= 1
            if in_degree[neighbor] == 0:
                bisect.insort(queue, neighbor)

    if len(sorted_names) != len(names):
        remaining = [name for name in names if name not in sorted_names]
        logging.warning(f"Cyclic dependency detected between {remaining}, falling back to alphabetical order")
        return names

    return sorted_names


def table_dependency_edges(schema: Schema) -> List[Tuple[str, str]]:
    """Edges from each referenced table to the table declaring the foreign key."""
    edges = []
    for table_name in schema.sorted_table_names():
        table = schema.tables[table_name]
        for constraint in table.foreign_keys():
            referenced = constraint.referenced_table
            if not referenced or referenced == table_name:
                continue
            # Cross-schema references do not affect ordering within this schema
            if constraint.referenced_schema and constraint.referenced_schema != schema.name:
                continue
            if referenced not in schema.tables:
                logging.debug(f"{table_name} references missing table {referenced}, no ordering edge")
                continue
            edges.append((referenced, table_name))
    return edges


def find_view_references(view_name: str, definition: str, candidates: Iterable[str]) -> List[str]:
    """
    Names of other views mentioned in a view body.

    This is a case-insensitive substring search, not a parse of the query:
    a view whose name is contained in another identifier is reported too.
    """
    body = (definition or "").lower()
    return [
        other for other in candidates
        if other != view_name and other.lower() in body
    ]


def view_dependency_edges(schema: Schema) -> List[Tuple[str, str]]:
    names = schema.sorted_view_names()
    edges = []
    for view_name in names:
        view = schema.views[view_name]
        for referenced in find_view_references(view_name, view.definition, names):
            edges.append((referenced, view_name))
    return edges


def sort_tables(schema: Schema) -> List[str]:
    """Table names of a schema, referenced tables before referencing ones."""
    return topological_sort(schema.tables, table_dependency_edges(schema))


def sort_views(schema: Schema) -> List[str]:
    """View names of a schema, with views used by other views first."""
    return topological_sort(schema.views, view_dependency_edges(schema))


__all__ = [
    "topological_sort",
    "table_dependency_edges",
    "find_view_references",
    "view_dependency_edges",
    "sort_tables",
    "sort_views",
]
