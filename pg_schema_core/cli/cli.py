import argparse
import logging
import sys

from pg_schema_core.lib.diff import generate_diff, generate_dump
from pg_schema_core.lib.ignore import apply_ignore, load_ignore_config, load_ignore_file
from pg_schema_core.lib.ir import Catalog
from pg_schema_core.lib.parser import load_source


def write_output(sql: str, filename: str = None):
    """Write generated SQL to a file, or to stdout when no file is given."""
    if filename:
        with open(filename, 'w') as f:
            f.write(sql)
        logging.info(f"SQL written to: {filename}")
    else:
        sys.stdout.write(sql)


def load_catalog(source: str, args) -> Catalog:
    schemas = [args.schema] if args.schema else None
    catalog = load_source(source, schemas=schemas)
    logging.info(f"Loaded {catalog} from {source}")

    if args.ignore_file:
        config = load_ignore_file(args.ignore_file)
        if config is None:
            raise ValueError(f"Ignore file not found: {args.ignore_file}")
    else:
        config = load_ignore_config(".")
    return apply_ignore(catalog, config)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pg-schema",
        description="pg-schema: render PostgreSQL schemas as DDL and diff two of them"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--schema",
        help="Target schema: only its objects are emitted, without schema qualification"
    )
    common.add_argument(
        "--comments",
        action="store_true",
        help="Include the dump header and per-object comment headers"
    )
    common.add_argument(
        "--ignore-file",
        help="TOML file of name patterns to leave out (default: ./.pgschemaignore when present)"
    )
    common.add_argument(
        "-o", "--output",
        help="Write SQL to this file instead of stdout"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    dump = subparsers.add_parser("dump", parents=[common], help="Render the full DDL of a source")
    dump.add_argument("source", help="Source (.sql file, directory, .json catalog, or postgres:// URI)")

    diff = subparsers.add_parser("diff", parents=[common], help="Render the DDL that creates what <new> adds")
    diff.add_argument("old", help="Current schema source")
    diff.add_argument("new", help="Desired schema source")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set log level based on verbosity count
    if args.verbose == 0:
        log_level = logging.WARNING
    elif args.verbose == 1:
        log_level = logging.INFO
    else:
        log_level = logging.DEBUG

    # Configure logging
    logging.basicConfig(
        level=log_level,
        format='%(levelname)s: %(message)s',
        datefmt='%H:%M:%S'
    )

    try:
        if args.command == "dump":
            catalog = load_catalog(args.source, args)
            sql = generate_dump(catalog, target_schema=args.schema, include_comments=args.comments)
        else:
            old = load_catalog(args.old, args)
            new = load_catalog(args.new, args)
            sql = generate_diff(old, new, target_schema=args.schema, include_comments=args.comments)
        write_output(sql, args.output)
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
