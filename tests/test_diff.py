"""
Tests for the additive diff engine and full dumps.
"""

import logging

from pg_schema_core.lib.diff import SQLGenerator, generate_diff, generate_dump
from pg_schema_core.lib.ir import (
    Catalog,
    Column,
    Constraint,
    ConstraintColumn,
    ConstraintType,
    Extension,
    Function,
    Index,
    IndexColumn,
    Metadata,
    PartitionAttachment,
    Procedure,
    RLSPolicy,
    Sequence,
    Table,
    Trigger,
    Type,
    TypeKind,
    View,
)
from pg_schema_core.lib.writer import SQLWriter


def _serial_table(schema, name, *extra_columns):
    """A table with a SERIAL primary key and the sequence the SERIAL owns."""
    table = Table(schema=schema, name=name)
    table.add_column(Column(
        name="id", position=1, data_type="integer", is_nullable=False,
        default=f"nextval('{name}_id_seq'::regclass)",
    ))
    for position, (column_name, data_type, nullable) in enumerate(extra_columns, 2):
        table.add_column(Column(name=column_name, position=position, data_type=data_type, is_nullable=nullable))
    table.constraints[f"{name}_pkey"] = Constraint(
        schema=schema, table=name, name=f"{name}_pkey", type=ConstraintType.PRIMARY_KEY,
        columns=[ConstraintColumn(name="id", position=1)],
    )
    return table


def _add_table(catalog, table, owned_sequence=True):
    schema = catalog.get_or_create_schema(table.schema)
    schema.tables[table.name] = table
    if owned_sequence and table.get_column("id") is not None:
        sequence_name = f"{table.name}_id_seq"
        schema.sequences[sequence_name] = Sequence(
            schema=table.schema, name=sequence_name, data_type="integer",
            owned_by_table=table.name, owned_by_column="id",
        )
    return table


def _shop_catalog():
    catalog = Catalog()
    _add_table(catalog, _serial_table("public", "customers", ("name", "text", False)))
    orders = _add_table(catalog, _serial_table("public", "orders", ("customer_id", "integer", False)))
    orders.constraints["orders_customer_id_fkey"] = Constraint(
        schema="public", table="orders", name="orders_customer_id_fkey", type=ConstraintType.FOREIGN_KEY,
        columns=[ConstraintColumn(name="customer_id", position=1)],
        referenced_schema="public", referenced_table="customers",
        referenced_columns=[ConstraintColumn(name="id", position=1)],
    )
    return catalog


def test_diff_new_table():
    """A table missing from the old snapshot produces exactly one CREATE TABLE."""
    new = Catalog()
    _add_table(new, _serial_table("public", "users", ("name", "text", False)))

    result = generate_diff(Catalog(), new, target_schema="public")

    assert result.count("CREATE TABLE") == 1
    assert result == "CREATE TABLE users (\n    id SERIAL PRIMARY KEY,\n    name text NOT NULL\n);\n"


def test_diff_no_changes():
    assert generate_diff(_shop_catalog(), _shop_catalog(), target_schema="public") == ""


def test_diff_never_drops():
    """Objects that only exist in the old snapshot are ignored."""
    assert generate_diff(_shop_catalog(), Catalog(), target_schema="public") == ""


def test_dump_orders_tables_by_foreign_keys():
    expected = (
        "CREATE TABLE customers (\n"
        "    id SERIAL PRIMARY KEY,\n"
        "    name text NOT NULL\n"
        ");\n"
        "\n"
        "CREATE TABLE orders (\n"
        "    id SERIAL PRIMARY KEY,\n"
        "    customer_id integer NOT NULL\n"
        ");\n"
        "\n"
        "ALTER TABLE orders ADD CONSTRAINT orders_customer_id_fkey FOREIGN KEY (customer_id) REFERENCES customers (id);\n"
    )
    result = generate_dump(_shop_catalog(), target_schema="public")
    assert result == expected, f"Unexpected dump:\n{result}"


def test_dump_without_target_schema_qualifies_names():
    result = generate_dump(_shop_catalog())
    assert result.startswith("CREATE TABLE public.customers (\n")
    assert "REFERENCES public.customers (id);" in result


def test_dump_with_comments():
    catalog = Catalog(metadata=Metadata(database_version="16.2", dump_version="pg-schema 0.3.0"))
    _add_table(catalog, Table(schema="public", name="t", columns=[Column(name="a", position=1, data_type="text")]))

    result = generate_dump(catalog, target_schema="public", include_comments=True)

    assert result == (
        "--\n"
        "-- PostgreSQL database dump\n"
        "--\n"
        "\n"
        "-- Dumped from database version 16.2\n"
        "-- Dumped by pg-schema 0.3.0\n"
        "\n"
        "--\n"
        "-- Name: t; Type: TABLE; Schema: -; Owner: -\n"
        "--\n"
        "\n"
        "CREATE TABLE t (\n"
        "    a text\n"
        ");\n"
    )


def test_comment_headers_name_the_schema_without_target():
    catalog = Catalog()
    _add_table(catalog, Table(schema="public", name="t", columns=[Column(name="a", position=1, data_type="text")]))
    result = generate_dump(catalog, include_comments=True)
    assert "-- Name: t; Type: TABLE; Schema: public; Owner: -\n" in result


def test_function_header_uses_identity():
    catalog = Catalog()
    catalog.get_or_create_schema("public").functions["add_one"] = Function(
        schema="public", name="add_one", definition="SELECT $1 + 1",
        arguments="integer", signature="x integer", return_type="integer",
    )
    result = generate_dump(catalog, target_schema="public", include_comments=True)
    assert "-- Name: add_one(integer); Type: FUNCTION; Schema: -; Owner: -\n" in result


def test_new_table_brings_its_children():
    table = Table(schema="public", name="docs", rls_enabled=True)
    table.add_column(Column(name="id", position=1, data_type="integer", is_nullable=False))
    table.add_column(Column(name="owner", position=2, data_type="text"))
    table.indexes["docs_owner_idx"] = Index(
        schema="public", table="docs", name="docs_owner_idx", columns=[IndexColumn(name="owner", position=1)],
    )
    table.indexes["docs_pkey"] = Index(schema="public", table="docs", name="docs_pkey", is_primary=True,
                                       columns=[IndexColumn(name="id", position=1)])
    table.triggers["docs_touch"] = Trigger(
        schema="public", table="docs", name="docs_touch", timing="BEFORE", events=["UPDATE"], function="touch",
    )
    table.policies["docs_owner_policy"] = RLSPolicy(
        schema="public", table="docs", name="docs_owner_policy", using="owner = current_user",
    )
    catalog = Catalog()
    _add_table(catalog, table, owned_sequence=False)

    assert generate_dump(catalog, target_schema="public") == (
        "CREATE TABLE docs (\n"
        "    id integer NOT NULL,\n"
        "    owner text\n"
        ");\n"
        "\n"
        "CREATE INDEX docs_owner_idx ON docs (owner);\n"
        "\n"
        "CREATE TRIGGER docs_touch BEFORE UPDATE ON docs FOR EACH ROW EXECUTE FUNCTION touch();\n"
        "\n"
        "ALTER TABLE docs ENABLE ROW LEVEL SECURITY;\n"
        "\n"
        "CREATE POLICY docs_owner_policy ON docs USING (owner = current_user);\n"
    )


def test_new_index_on_existing_table_is_not_emitted():
    """Children are only created together with a new table."""
    old = _shop_catalog()
    new = _shop_catalog()
    new.schemas["public"].tables["customers"].indexes["customers_name_idx"] = Index(
        schema="public", table="customers", name="customers_name_idx",
        columns=[IndexColumn(name="name", position=1)],
    )
    assert generate_diff(old, new, target_schema="public") == ""


def test_owned_sequences_are_skipped():
    catalog = _shop_catalog()
    catalog.schemas["public"].sequences["invoice_numbers"] = Sequence(
        schema="public", name="invoice_numbers", start_value=1000,
    )
    result = generate_dump(catalog, target_schema="public")
    assert "customers_id_seq" not in result
    assert result.startswith("CREATE SEQUENCE invoice_numbers START WITH 1000 NO MINVALUE NO MAXVALUE;\n\nCREATE TABLE customers")


def test_domains_follow_other_types():
    catalog = Catalog()
    schema = catalog.get_or_create_schema("public")
    schema.types["a_domain"] = Type(schema="public", name="a_domain", kind=TypeKind.DOMAIN, base_type="z_enum")
    schema.types["z_enum"] = Type(schema="public", name="z_enum", kind=TypeKind.ENUM, enum_values=["x"])

    result = generate_dump(catalog, target_schema="public")
    assert result == (
        "CREATE TYPE z_enum AS ENUM (\n"
        "    'x'\n"
        ");\n"
        "\n"
        "CREATE DOMAIN a_domain AS z_enum;\n"
    )


def test_views_follow_tables_in_dependency_order():
    catalog = _shop_catalog()
    schema = catalog.schemas["public"]
    schema.views["a_report"] = View(schema="public", name="a_report", definition="SELECT * FROM z_base")
    schema.views["z_base"] = View(schema="public", name="z_base", definition="SELECT id FROM customers")

    result = generate_dump(catalog, target_schema="public")
    fk = result.index("ALTER TABLE orders")
    base = result.index("CREATE VIEW z_base")
    report = result.index("CREATE VIEW a_report")
    assert fk < base < report


def test_routines_are_emitted_last():
    catalog = _shop_catalog()
    schema = catalog.schemas["public"]
    schema.procedures["cleanup"] = Procedure(schema="public", name="cleanup", definition="BEGIN END;")
    schema.functions["add_one"] = Function(schema="public", name="add_one", definition="SELECT 1",
                                           return_type="integer")

    result = generate_dump(catalog, target_schema="public")
    assert result.index("CREATE TABLE orders") < result.index("FUNCTION add_one") < result.index("PROCEDURE cleanup")


def test_partitions_follow_their_parent():
    catalog = Catalog()
    parent = Table(schema="public", name="measurements", is_partitioned=True,
                   partition_strategy="LIST", partition_key="year")
    parent.add_column(Column(name="year", position=1, data_type="integer"))
    child = Table(schema="public", name="a_2024")
    child.add_column(Column(name="year", position=1, data_type="integer"))
    _add_table(catalog, parent, owned_sequence=False)
    _add_table(catalog, child, owned_sequence=False)
    catalog.partition_attachments.append(PartitionAttachment(
        parent_schema="public", parent_table="measurements", child_schema="public", child_table="a_2024",
        partition_bound="FOR VALUES IN (2024)",
    ))

    assert generate_dump(catalog, target_schema="public") == (
        "CREATE TABLE measurements (\n"
        "    year integer\n"
        ")\n"
        "PARTITION BY LIST (year);\n"
        "\n"
        "CREATE TABLE a_2024 (\n"
        "    year integer\n"
        ");\n"
        "\n"
        "ALTER TABLE measurements ATTACH PARTITION a_2024 FOR VALUES IN (2024);\n"
    )


def test_target_schema_restricts_output():
    catalog = _shop_catalog()
    accounts = Table(schema="app", name="accounts", columns=[Column(name="id", position=1, data_type="uuid")])
    _add_table(catalog, accounts, owned_sequence=False)

    assert generate_dump(catalog, target_schema="app") == "CREATE TABLE accounts (\n    id uuid\n);\n"


def test_new_schemas_and_extensions():
    catalog = Catalog()
    catalog.extensions["pgcrypto"] = Extension(name="pgcrypto", schema="public")
    _add_table(catalog, Table(schema="app", name="accounts", columns=[Column(name="id", position=1, data_type="uuid")]))
    catalog.get_or_create_schema("public")

    assert generate_dump(catalog) == (
        "CREATE EXTENSION IF NOT EXISTS pgcrypto WITH SCHEMA public;\n"
        "\n"
        "CREATE SCHEMA app;\n"
        "\n"
        "CREATE TABLE app.accounts (\n"
        "    id uuid\n"
        ");\n"
    )


def test_extensions_ignore_target_schema():
    catalog = Catalog()
    catalog.extensions["pgcrypto"] = Extension(name="pgcrypto", schema="extensions")
    catalog.get_or_create_schema("public")

    result = generate_dump(catalog, target_schema="public")
    assert result == "CREATE EXTENSION IF NOT EXISTS pgcrypto WITH SCHEMA extensions;\n"
    assert generate_diff(catalog, catalog, target_schema="public") == ""


def test_generator_writes_into_supplied_writer():
    writer = SQLWriter(include_comments=False)
    writer.write("-- preamble\n")
    SQLGenerator(target_schema="public").generate_diff(Catalog(), _shop_catalog(), writer)
    assert writer.getvalue().startswith("-- preamble\n\nCREATE TABLE customers (")


def test_dump_does_not_modify_catalog():
    catalog = _shop_catalog()
    before = catalog.to_json()
    generate_dump(catalog, target_schema="public", include_comments=True)
    assert catalog.to_json() == before


def test_partial_objects_do_not_abort_dump():
    """Objects too incomplete to render are skipped; the rest of the dump survives."""
    catalog = Catalog()
    broken = Table(schema="public", name="broken")
    broken.add_column(Column(name="a", position=1, data_type=None))
    _add_table(catalog, broken, owned_sequence=False)
    good = Table(schema="public", name="good")
    good.add_column(Column(name="id", position=1, data_type="integer"))
    _add_table(catalog, good, owned_sequence=False)
    catalog.schemas["public"].sequences["loose_seq"] = Sequence(
        schema="public", name="loose_seq", start_value=None, increment=None,
    )

    restored = Catalog.from_json(catalog.to_json())
    sql = generate_dump(restored, target_schema="public")
    assert sql == (
        "CREATE SEQUENCE loose_seq NO MINVALUE NO MAXVALUE;\n"
        "\n"
        "CREATE TABLE good (\n"
        "    id integer\n"
        ");\n"
    ), f"Unexpected dump:\n{sql}"


def _fk_table(name, other):
    table = Table(schema="public", name=name)
    table.add_column(Column(name="id", position=1, data_type="integer"))
    table.add_column(Column(name=f"{other}_id", position=2, data_type="integer"))
    fk_name = f"{name}_{other}_id_fkey"
    table.constraints[fk_name] = Constraint(
        schema="public", table=name, name=fk_name, type=ConstraintType.FOREIGN_KEY,
        columns=[ConstraintColumn(name=f"{other}_id", position=1)],
        referenced_table=other, referenced_columns=[ConstraintColumn(name="id", position=1)],
    )
    return table


def test_foreign_key_cycle_keeps_each_key_with_its_table(caplog):
    """A cycle falls back to name order; each foreign key still follows its own table."""
    catalog = Catalog()
    _add_table(catalog, _fk_table("b", "a"), owned_sequence=False)
    _add_table(catalog, _fk_table("a", "b"), owned_sequence=False)

    with caplog.at_level(logging.WARNING):
        sql = generate_dump(catalog, target_schema="public")

    assert "Cyclic dependency" in caplog.text
    assert sql == (
        "CREATE TABLE a (\n"
        "    id integer,\n"
        "    b_id integer\n"
        ");\n"
        "\n"
        "ALTER TABLE a ADD CONSTRAINT a_b_id_fkey FOREIGN KEY (b_id) REFERENCES b (id);\n"
        "\n"
        "CREATE TABLE b (\n"
        "    id integer,\n"
        "    a_id integer\n"
        ");\n"
        "\n"
        "ALTER TABLE b ADD CONSTRAINT b_a_id_fkey FOREIGN KEY (a_id) REFERENCES a (id);\n"
    ), f"Unexpected dump:\n{sql}"
