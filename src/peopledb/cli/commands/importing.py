"""Bulk import of persons with their records from JSON Lines."""

from typing import Annotated, Any

import typer

from peopledb.cli.context import CLIContext
from peopledb.cli.output import OutputFormatter
from peopledb.cli.parsing import read_jsonl_file
from peopledb.core.engine import PeopleDB
from peopledb.core.types import EntityType
from peopledb.exceptions import PeopleDBError, ValidationError
from peopledb.store.client import RELATION_FIELDS


def split_record(record: Any) -> tuple[dict[str, Any], dict[EntityType, list[dict[str, Any]]]]:
    """Separate one JSONL line into the person fields and its nested record lists.

    Raises:
        ValidationError: If the line is not an object or a nested field is not
            a list of objects
    """
    if not isinstance(record, dict):
        raise ValidationError(f"Expected a JSON object, got {type(record).__name__}")

    person = dict(record)
    nested: dict[EntityType, list[dict[str, Any]]] = {}
    for entity_type, field in RELATION_FIELDS.items():
        children = person.pop(field, None) or []
        if not isinstance(children, list) or not all(isinstance(c, dict) for c in children):
            raise ValidationError(
                f"'{field}' must be a list of objects", {field: "expected a list of objects"}
            )
        nested[entity_type] = children
    return person, nested


async def import_records(db: PeopleDB, records: list[Any]) -> dict[str, Any]:
    """Create each person and its nested records; errors are collected per line."""
    persons = 0
    children = 0
    errors: list[dict[str, Any]] = []

    for line_num, record in enumerate(records, 1):
        try:
            fields, nested = split_record(record)
            person = await db.persons.create_person(fields)
        except PeopleDBError as e:
            errors.append({"line": line_num, "error": e.message})
            continue
        persons += 1

        for entity_type in EntityType.children():
            for child in nested[entity_type]:
                try:
                    await db.persons.create_child(entity_type, person.id, child)
                except PeopleDBError as e:
                    errors.append(
                        {"line": line_num, "entity_type": entity_type.value, "error": e.message}
                    )
                    continue
                children += 1

    return {"persons": persons, "children": children, "errors": errors}


def import_command(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="JSONL file, one person per line")],
) -> None:
    """Import persons from a JSONL file.

    Each line is a person object, optionally with "addresses",
    "bank_accounts", "contacts" and "employments" lists.

    Examples:

        peopledb import people.jsonl

        # people.jsonl format:
        # {"first_name": "Ada", "last_name": "Lovelace", "contacts": [{"type": "email", ...}]}
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    try:
        records = read_jsonl_file(path)

        async def run(db: PeopleDB) -> dict[str, Any]:
            return await import_records(db, records)

        result = cli_ctx.run(run)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    errors = result["errors"]
    summary = {
        "persons": result["persons"],
        "children": result["children"],
        "error_count": len(errors),
    }
    if errors:
        summary["errors"] = errors[:10]
        formatter.print_success(
            f"Imported {result['persons']}/{len(records)} persons ({len(errors)} errors)",
            summary,
        )
        raise typer.Exit(code=1)
    formatter.print_success(f"Imported {result['persons']} persons", summary)
