"""
Tests for the per-object DDL generators.
"""

from pg_schema_core.lib.ddl import (
    generate_aggregate_sql,
    generate_constraint_sql,
    generate_extension_sql,
    generate_function_sql,
    generate_index_sql,
    generate_partition_attach_sql,
    generate_policy_sql,
    generate_procedure_sql,
    generate_rls_enable_sql,
    generate_schema_sql,
    generate_sequence_sql,
    generate_table_sql,
    generate_trigger_sql,
    generate_type_sql,
    generate_view_sql,
    is_inline_constraint,
    simplify_expression_index,
)
from pg_schema_core.lib.ir import (
    Aggregate,
    Column,
    Constraint,
    ConstraintColumn,
    ConstraintType,
    DomainConstraint,
    Extension,
    Function,
    Index,
    IndexColumn,
    PolicyCommand,
    Procedure,
    RLSPolicy,
    Schema,
    Sequence,
    Table,
    Trigger,
    TriggerEvent,
    TriggerTiming,
    Type,
    TypeColumn,
    TypeKind,
    View,
)


def _constraint(table, name, type_, *columns, **kwargs):
    return Constraint(
        schema="public",
        table=table,
        name=name,
        type=type_,
        columns=[ConstraintColumn(name=c, position=i) for i, c in enumerate(columns, 1)],
        **kwargs,
    )


def _users_table():
    table = Table(schema="public", name="users")
    table.add_column(Column(
        name="id", position=1, data_type="integer", is_nullable=False,
        default="nextval('users_id_seq'::regclass)",
    ))
    table.add_column(Column(name="email", position=2, data_type="character varying", max_length=255, is_nullable=False))
    table.add_column(Column(name="created_at", position=3, data_type="timestamp with time zone", default="now()"))
    table.constraints["users_pkey"] = _constraint("users", "users_pkey", ConstraintType.PRIMARY_KEY, "id")
    table.constraints["users_email_key"] = _constraint("users", "users_email_key", ConstraintType.UNIQUE, "email")
    return table


def test_create_table_inlines_single_column_keys():
    """SERIAL, PRIMARY KEY and UNIQUE are rendered as column keywords."""
    sql = generate_table_sql(_users_table(), "public")
    expected = (
        "CREATE TABLE users (\n"
        "    id SERIAL PRIMARY KEY,\n"
        "    email varchar(255) NOT NULL UNIQUE,\n"
        "    created_at timestamptz DEFAULT now()\n"
        ");"
    )
    assert sql == expected, f"Unexpected SQL:\n{sql}"


def test_create_table_is_qualified_outside_target_schema():
    sql = generate_table_sql(_users_table(), None)
    assert sql.startswith("CREATE TABLE public.users (")
    assert generate_table_sql(_users_table(), "app").startswith("CREATE TABLE public.users (")


def test_create_table_check_constraints_trail_columns():
    table = Table(schema="public", name="products")
    table.add_column(Column(name="price", position=1, data_type="numeric", precision=10, scale=2))
    table.constraints["products_price_check"] = _constraint(
        "products", "products_price_check", ConstraintType.CHECK, "price", check_clause="price > 0",
    )
    assert generate_table_sql(table, "public") == (
        "CREATE TABLE products (\n"
        "    price numeric(10,2),\n"
        "    CONSTRAINT products_price_check CHECK (price > 0)\n"
        ");"
    )


def test_create_table_with_partitioning_and_comments():
    table = Table(
        schema="public", name="measurements", is_partitioned=True,
        partition_strategy="range", partition_key="logdate", comment="Sensor data",
    )
    table.add_column(Column(name="logdate", position=1, data_type="date", is_nullable=False, comment="Day of reading"))
    sql = generate_table_sql(table, "public")
    assert sql == (
        "CREATE TABLE measurements (\n"
        "    logdate date NOT NULL\n"
        ")\n"
        "PARTITION BY RANGE (logdate);\n"
        "\n"
        "COMMENT ON TABLE measurements IS 'Sensor data';\n"
        "\n"
        "COMMENT ON COLUMN measurements.logdate IS 'Day of reading';"
    )


def test_create_table_edge_cases():
    assert generate_table_sql(Table(schema="public", name="empty"), "public") == "CREATE TABLE empty ();"
    assert generate_table_sql(Table(schema="public", name=""), "public") == ""


def test_partial_columns_render_nothing():
    """A column missing its type or name leaves the whole table unrendered."""
    untyped = Table(schema="public", name="loose")
    untyped.add_column(Column(name="id", position=1, data_type="integer"))
    untyped.add_column(Column(name="a", position=2, data_type=None))
    assert generate_table_sql(untyped, "public") == ""

    unnamed = Table(schema="public", name="loose")
    unnamed.add_column(Column(name=None, position=1, data_type="integer"))
    assert generate_table_sql(unnamed, "public") == ""


def test_column_default_drops_trailing_cast():
    table = Table(schema="public", name="accounts")
    table.add_column(Column(name="status", position=1, data_type="text", default="'active'::text"))
    table.add_column(Column(name="tags", position=2, data_type="text[]", default="'{}'::text[]"))
    assert generate_table_sql(table, "public") == (
        "CREATE TABLE accounts (\n"
        "    status text DEFAULT 'active',\n"
        "    tags text[] DEFAULT '{}'\n"
        ");"
    )


def test_identity_and_quoted_columns():
    table = Table(schema="public", name="events")
    table.add_column(Column(
        name="id", position=1, data_type="bigint", is_nullable=False,
        is_identity=True, identity_generation="ALWAYS",
    ))
    table.add_column(Column(name="order", position=2, data_type="int4"))
    table.add_column(Column(name="Label", position=3, data_type="text"))
    sql = generate_table_sql(table, "public")
    assert "    id bigint GENERATED ALWAYS AS IDENTITY NOT NULL,\n" in sql
    assert '    "order" integer,\n' in sql
    assert '    "Label" text\n' in sql


def test_multi_column_keys_are_not_inline():
    table = Table(schema="public", name="memberships")
    pk = _constraint("memberships", "memberships_pkey", ConstraintType.PRIMARY_KEY, "user_id", "group_id")
    table.constraints["memberships_pkey"] = pk
    assert not is_inline_constraint(table, pk)
    assert generate_constraint_sql(pk, "public") == (
        "ALTER TABLE memberships ADD CONSTRAINT memberships_pkey PRIMARY KEY (user_id, group_id);"
    )


def test_foreign_key_constraint():
    fk = _constraint(
        "orders", "orders_customer_id_fkey", ConstraintType.FOREIGN_KEY, "customer_id",
        referenced_schema="public", referenced_table="customers",
        referenced_columns=[ConstraintColumn(name="id", position=1)],
        update_rule="NO ACTION", delete_rule="CASCADE",
    )
    assert generate_constraint_sql(fk, "public") == (
        "ALTER TABLE orders ADD CONSTRAINT orders_customer_id_fkey "
        "FOREIGN KEY (customer_id) REFERENCES customers (id) ON DELETE CASCADE;"
    )
    assert generate_constraint_sql(fk, None) == (
        "ALTER TABLE public.orders ADD CONSTRAINT orders_customer_id_fkey "
        "FOREIGN KEY (customer_id) REFERENCES public.customers (id) ON DELETE CASCADE;"
    )


def test_deferrable_foreign_key():
    fk = _constraint(
        "a", "a_b_fkey", ConstraintType.FOREIGN_KEY, "b_id",
        referenced_table="b", referenced_columns=[ConstraintColumn(name="id", position=1)],
        deferrable=True, initially_deferred=True,
    )
    assert generate_constraint_sql(fk, "public").endswith("REFERENCES b (id) DEFERRABLE INITIALLY DEFERRED;")


def test_exclusion_constraint_renders_nothing():
    excl = _constraint("rooms", "rooms_excl", ConstraintType.EXCLUSION, "during")
    assert generate_constraint_sql(excl, "public") == ""


def test_constraint_with_unnamed_column_renders_nothing():
    fk = _constraint(
        "orders", "orders_customer_id_fkey", ConstraintType.FOREIGN_KEY, None,
        referenced_table="customers", referenced_columns=[ConstraintColumn(name="id", position=1)],
    )
    assert generate_constraint_sql(fk, "public") == ""

    fk = _constraint(
        "orders", "orders_customer_id_fkey", ConstraintType.FOREIGN_KEY, "customer_id",
        referenced_table="customers", referenced_columns=[ConstraintColumn(name=None, position=1)],
    )
    assert generate_constraint_sql(fk, "public") == ""

    unique = _constraint("users", "users_email_key", ConstraintType.UNIQUE, None)
    assert generate_constraint_sql(unique, "public") == ""

    index = Index(schema="public", table="users", name="idx_users_x", columns=[IndexColumn(name=None, position=1)])
    assert generate_index_sql(index, "public") == ""


def test_index_from_columns():
    index = Index(schema="public", table="users", name="idx_users_email", columns=[IndexColumn(name="email", position=1)])
    assert generate_index_sql(index, "public") == "CREATE INDEX idx_users_email ON users (email);"

    index = Index(
        schema="public", table="docs", name="docs_body_idx", method="gin", is_unique=False,
        columns=[IndexColumn(name="body", position=1)], is_partial=True, where="(published)",
    )
    assert generate_index_sql(index, None) == "CREATE INDEX docs_body_idx ON public.docs USING gin (body) WHERE (published);"


def test_index_descending_and_unique():
    index = Index(
        schema="public", table="events", name="events_at_idx", is_unique=True,
        columns=[IndexColumn(name="at", position=1, direction="DESC")],
    )
    assert generate_index_sql(index, "public") == "CREATE UNIQUE INDEX events_at_idx ON events (at DESC);"


def test_index_from_stored_definition():
    index = Index(
        schema="public", table="users", name="idx_users_lower_email",
        definition="CREATE INDEX idx_users_lower_email ON public.users USING btree (lower((email)::text))",
    )
    assert generate_index_sql(index, "public") == "CREATE INDEX idx_users_lower_email ON users (lower((email)));"

    index = Index(
        schema="public", table="users", name="users_email_idx",
        definition="CREATE UNIQUE INDEX users_email_idx ON public.users USING btree (email)",
    )
    assert generate_index_sql(index, "public") == "CREATE UNIQUE INDEX users_email_idx ON users (email);"


def test_simplify_expression_index():
    simplified = simplify_expression_index(
        "CREATE INDEX idx_meta ON public.items USING gin ((data ->> 'kind'::text))"
    )
    assert simplified == "CREATE INDEX idx_meta ON public.items USING gin ((data->>'kind'))"
    # Not an index definition at all
    assert simplify_expression_index("SELECT 1") == "SELECT 1"


def test_trigger():
    trigger = Trigger(
        schema="public", table="users", name="users_audit", timing=TriggerTiming.AFTER,
        events=[TriggerEvent.UPDATE, TriggerEvent.INSERT], function="public.audit_fn",
    )
    assert generate_trigger_sql(trigger, "public") == (
        "CREATE TRIGGER users_audit AFTER INSERT OR UPDATE ON users FOR EACH ROW EXECUTE FUNCTION audit_fn();"
    )


def test_trigger_with_condition_and_instead_of():
    trigger = Trigger(
        schema="public", table="users", name="users_touch", timing="INSTEAD_OF",
        events=["UPDATE"], level="STATEMENT", function="touch()",
        condition="OLD.* IS DISTINCT FROM NEW.*",
    )
    assert generate_trigger_sql(trigger, "public") == (
        "CREATE TRIGGER users_touch INSTEAD OF UPDATE ON users FOR EACH STATEMENT "
        "WHEN (OLD.* IS DISTINCT FROM NEW.*) EXECUTE FUNCTION touch();"
    )
    trigger.events = []
    assert generate_trigger_sql(trigger, "public") == ""


def test_policy_and_rls():
    policy = RLSPolicy(
        schema="public", table="docs", name="docs_owner", command=PolicyCommand.SELECT,
        permissive=False, roles=["app_user"], using="owner = current_user",
    )
    assert generate_policy_sql(policy, "public") == (
        "CREATE POLICY docs_owner ON docs AS RESTRICTIVE FOR SELECT TO app_user USING (owner = current_user);"
    )

    policy = RLSPolicy(schema="public", table="docs", name="docs_all", with_check="(true)")
    assert generate_policy_sql(policy, "public") == "CREATE POLICY docs_all ON docs WITH CHECK (true);"

    assert generate_rls_enable_sql(Table(schema="public", name="docs", rls_enabled=True), "public") == (
        "ALTER TABLE docs ENABLE ROW LEVEL SECURITY;"
    )
    assert generate_rls_enable_sql(Table(schema="public", name="docs"), "public") == ""


def test_sequence():
    sequence = Sequence(schema="public", name="order_seq", start_value=1000, increment=5)
    assert generate_sequence_sql(sequence, "public") == (
        "CREATE SEQUENCE order_seq START WITH 1000 INCREMENT BY 5 NO MINVALUE NO MAXVALUE;"
    )

    sequence = Sequence(schema="app", name="counter", data_type="int4", min_value=10, max_value=100, cycle=True)
    assert generate_sequence_sql(sequence, None) == (
        "CREATE SEQUENCE app.counter AS integer MINVALUE 10 MAXVALUE 100 CYCLE;"
    )


def test_sequence_without_start_or_increment():
    sequence = Sequence(schema="public", name="s", start_value=None, increment=None)
    assert generate_sequence_sql(sequence, "public") == "CREATE SEQUENCE s NO MINVALUE NO MAXVALUE;"


def test_enum_type():
    type_ = Type(schema="public", name="status", kind=TypeKind.ENUM, enum_values=["active", "it's"])
    assert generate_type_sql(type_, "public") == "CREATE TYPE status AS ENUM (\n    'active',\n    'it''s'\n);"


def test_composite_type():
    type_ = Type(
        schema="public", name="address", kind=TypeKind.COMPOSITE,
        columns=[TypeColumn(name="city", data_type="text", position=2), TypeColumn(name="street", data_type="text", position=1)],
    )
    assert generate_type_sql(type_, "public") == "CREATE TYPE address AS (\n    street text,\n    city text\n);"
    assert generate_type_sql(Type(schema="public", name="empty", kind="COMPOSITE"), "public") == ""


def test_domain_type():
    type_ = Type(
        schema="public", name="email", kind=TypeKind.DOMAIN, base_type="text", not_null=True,
        constraints=[DomainConstraint(definition="CHECK (VALUE ~ '@')", name="email_check")],
        comment="An address",
    )
    assert generate_type_sql(type_, "public") == (
        "CREATE DOMAIN email AS text NOT NULL\n"
        "    CONSTRAINT email_check CHECK (VALUE ~ '@');\n"
        "\n"
        "COMMENT ON DOMAIN email IS 'An address';"
    )


def test_view():
    view = View(schema="public", name="active_users", definition="SELECT id FROM users WHERE active")
    assert generate_view_sql(view, "public") == "CREATE VIEW active_users AS\nSELECT id FROM users WHERE active;"

    view = View(schema="public", name="totals", definition=" SELECT count(*) FROM orders;", materialized=True)
    assert generate_view_sql(view, None) == "CREATE MATERIALIZED VIEW public.totals AS\nSELECT count(*) FROM orders;"

    assert generate_view_sql(View(schema="public", name="blank"), "public") == ""


def test_function():
    function = Function(
        schema="public", name="add_one", definition="SELECT $1 + 1", language="sql",
        arguments="integer", signature="x integer", return_type="integer", volatility="IMMUTABLE",
        comment="Adds one",
    )
    assert generate_function_sql(function, "public") == (
        "CREATE OR REPLACE FUNCTION add_one(x integer)\n"
        "RETURNS integer\n"
        "LANGUAGE sql\n"
        "IMMUTABLE\n"
        "AS $_$SELECT $1 + 1$_$;\n"
        "\n"
        "COMMENT ON FUNCTION add_one(integer) IS 'Adds one';"
    )


def test_function_attributes():
    function = Function(
        schema="app", name="secret", definition="BEGIN RETURN 1; END;", language="plpgsql",
        return_type="integer", volatility="volatile", is_strict=True, is_security_definer=True,
    )
    assert generate_function_sql(function, None) == (
        "CREATE OR REPLACE FUNCTION app.secret()\n"
        "RETURNS integer\n"
        "LANGUAGE plpgsql\n"
        "STRICT\n"
        "SECURITY DEFINER\n"
        "AS $$BEGIN RETURN 1; END;$$;"
    )
    assert generate_function_sql(Function(schema="app", name="nobody"), None) == ""


def test_procedure():
    procedure = Procedure(schema="public", name="cleanup", definition="BEGIN DELETE FROM logs; END;")
    assert generate_procedure_sql(procedure, "public") == (
        "CREATE OR REPLACE PROCEDURE cleanup()\n"
        "LANGUAGE plpgsql\n"
        "AS $$BEGIN DELETE FROM logs; END;$$;"
    )


def test_aggregate():
    aggregate = Aggregate(
        schema="public", name="my_sum", arguments="integer",
        transition_function="int4pl", state_type="integer", initial_condition="0",
    )
    assert generate_aggregate_sql(aggregate, "public") == (
        "CREATE AGGREGATE my_sum(integer) (\n"
        "    SFUNC = int4pl,\n"
        "    STYPE = integer,\n"
        "    INITCOND = '0'\n"
        ");"
    )


def test_aggregate_initial_condition_and_required_fields():
    aggregate = Aggregate(
        schema="public", name="concat_all", arguments="text",
        transition_function="textcat", state_type="text", initial_condition="",
        final_function="finish", final_function_schema="util",
    )
    sql = generate_aggregate_sql(aggregate, "public")
    assert "    INITCOND = '',\n" in sql
    assert "    FINALFUNC = util.finish\n" in sql

    aggregate.state_type = None
    assert generate_aggregate_sql(aggregate, "public") == ""


def test_extension_and_schema():
    assert generate_extension_sql(Extension(name="pgcrypto", schema="public")) == (
        "CREATE EXTENSION IF NOT EXISTS pgcrypto WITH SCHEMA public;"
    )
    assert generate_extension_sql(Extension(name="uuid-ossp")) == 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp";'
    assert generate_schema_sql(Schema(name="public")) == ""
    assert generate_schema_sql(Schema(name="app")) == "CREATE SCHEMA app;"


def test_partition_attach():
    assert generate_partition_attach_sql(
        "measurements", "measurements_2024", "FOR VALUES FROM ('2024-01-01') TO ('2025-01-01')"
    ) == (
        "ALTER TABLE measurements ATTACH PARTITION measurements_2024 "
        "FOR VALUES FROM ('2024-01-01') TO ('2025-01-01');"
    )
    assert generate_partition_attach_sql("a", "b", None) == ""


def test_generators_are_deterministic():
    """The same object rendered twice, or rebuilt in another order, gives identical text."""
    def build(reverse):
        table = _users_table()
        constraints = list(table.constraints.items())
        if reverse:
            constraints.reverse()
            table.columns.reverse()
        table.constraints = dict(constraints)
        table.constraints["users_email_check"] = _constraint(
            "users", "users_email_check", ConstraintType.CHECK, "email", check_clause="email <> ''",
        )
        return table

    first = generate_table_sql(build(False), "public")
    assert first == generate_table_sql(build(False), "public")
    assert first == generate_table_sql(build(True), "public"), "Insertion order must not leak into the output"

    trigger = Trigger(
        schema="public", table="users", name="users_audit", timing=TriggerTiming.AFTER,
        events=[TriggerEvent.DELETE, TriggerEvent.INSERT, TriggerEvent.UPDATE], function="audit_fn",
    )
    reordered = Trigger(
        schema="public", table="users", name="users_audit", timing=TriggerTiming.AFTER,
        events=[TriggerEvent.UPDATE, TriggerEvent.INSERT, TriggerEvent.DELETE], function="audit_fn",
    )
    assert generate_trigger_sql(trigger, "app") == generate_trigger_sql(reordered, "app")

    enum = Type(schema="public", name="mood", kind=TypeKind.ENUM, enum_values=["sad", "ok", "happy"])
    assert generate_type_sql(enum, "public") == generate_type_sql(enum, "public")
