from __future__ import annotations

import argparse
import json
import logging
import sys
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from persondir.app import load_resolver
from persondir.config import configure_logging

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from persondir.domain.attributes import Person

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Resolve person attributes")
    parser.add_argument(
        "--config",
        type=str,
        help="Path to the resolver TOML file (defaults to $PERSONDIR_CONFIG)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    person = subparsers.add_parser("person", help="Look up one person by identifier")
    person.add_argument("uid", type=str, help="Identifier to resolve")

    people = subparsers.add_parser("people", help="Find people matching attribute values")
    people.add_argument(
        "--attr",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Query attribute; repeat for more values or attributes",
    )

    attributes = subparsers.add_parser("attributes", help="List known attribute names")
    attributes.add_argument(
        "--query",
        action="store_true",
        help="List attributes that can be queried instead of returned ones",
    )

    return parser.parse_args(list(argv))


def _parse_query(pairs: Sequence[str]) -> dict[str, list[object]]:
    query: dict[str, list[object]] = {}
    for pair in pairs:
        name, separator, value = pair.partition("=")
        if not separator or not name.strip():
            raise ValueError(f"Invalid attribute filter (expected NAME=VALUE): {pair}")
        query.setdefault(name.strip(), []).append(value)
    if not query:
        raise ValueError("At least one --attr NAME=VALUE is required")
    return query


def _person_to_json(person: Person) -> dict[str, object]:
    return {"name": person.name, "attributes": person.attributes}


def _emit(payload: object) -> None:
    json.dump(payload, sys.stdout, indent=2, sort_keys=True, default=str)
    sys.stdout.write("\n")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        query = _parse_query(parsed_args.attr) if parsed_args.command == "people" else None
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        resolver = load_resolver(parsed_args.config)
        if parsed_args.command == "person":
            person = resolver.get_person(parsed_args.uid)
            _emit(_person_to_json(person) if person is not None else None)
        elif parsed_args.command == "people" and query is not None:
            people = resolver.get_people_with_multivalued_attributes(query)
            _emit([_person_to_json(person) for person in people])
        elif parsed_args.command == "attributes":
            names = (
                resolver.get_available_query_attributes()
                if parsed_args.query
                else resolver.get_possible_user_attribute_names()
            )
            _emit(sorted(names) if names is not None else None)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during resolution")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
