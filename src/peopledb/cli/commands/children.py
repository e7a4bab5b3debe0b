"""Commands for the records a person owns (addresses, bank accounts, ...)."""

from enum import StrEnum
from typing import Annotated, Any

import typer

from peopledb.cli.context import CLIContext
from peopledb.cli.output import OutputFormatter, to_jsonable
from peopledb.cli.parsing import parse_json_object
from peopledb.core.engine import PeopleDB
from peopledb.core.types import EntityType

app = typer.Typer(help="Manage addresses, bank accounts, contacts and employments")


class ChildKind(StrEnum):
    ADDRESS = "address"
    BANK = "bank"
    CONTACT = "contact"
    EMPLOYMENT = "employment"

    @property
    def entity_type(self) -> EntityType:
        return EntityType(self.value.upper())


COLUMNS: dict[ChildKind, list[str]] = {
    ChildKind.ADDRESS: ["id", "type", "street", "city", "country", "is_primary"],
    ChildKind.BANK: ["id", "bank_name", "account_type", "account_number_last4", "is_primary"],
    ChildKind.CONTACT: ["id", "type", "value", "is_primary", "is_verified"],
    ChildKind.EMPLOYMENT: ["id", "company_name", "position", "start_date", "end_date", "is_current"],
}

KindArg = Annotated[ChildKind, typer.Argument(help="Record type", case_sensitive=False)]
PersonArg = Annotated[str, typer.Argument(help="Owning person ID")]


@app.command("list")
def child_list(ctx: typer.Context, kind: KindArg, person_id: PersonArg) -> None:
    """List one type of record of a person.

    Examples:

        peopledb child list address 550e8400
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def fetch(db: PeopleDB) -> list[Any]:
        return await db.persons.list_children(kind.entity_type, person_id)

    try:
        children = cli_ctx.run(fetch)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    formatter.print_table(
        f"{kind.value.title()} records of {person_id} ({len(children)})",
        to_jsonable(children),
        COLUMNS[kind],
    )


@app.command("add")
def child_add(
    ctx: typer.Context,
    kind: KindArg,
    person_id: PersonArg,
    data_json: Annotated[str, typer.Argument(help="Record fields as a JSON object")],
) -> None:
    """Add a record to a person. The person is not checked for existence.

    Examples:

        peopledb child add contact 550e8400 '{"type": "email", "value": "ada@example.com"}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def add(db: PeopleDB) -> Any:
        return await db.persons.create_child(kind.entity_type, person_id, data)

    try:
        data = parse_json_object(data_json)
        child = cli_ctx.run(add)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    formatter.print_success(f"{kind.value.title()} added", {"id": child.id})


@app.command("update")
def child_update(
    ctx: typer.Context,
    kind: KindArg,
    person_id: PersonArg,
    child_id: Annotated[str, typer.Argument(help="Record ID")],
    data_json: Annotated[str, typer.Argument(help="Complete record as a JSON object")],
) -> None:
    """Replace a record. All required fields must be given.

    Examples:

        peopledb child update bank 550e8400 9f1c '{"bank_name": "Coutts", ...}'
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def update(db: PeopleDB) -> Any:
        return await db.persons.update_child(kind.entity_type, person_id, child_id, data)

    try:
        data = parse_json_object(data_json)
        child = cli_ctx.run(update)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    if child is None:
        formatter.print_error(Exception(f"{kind.value.title()} not found: {child_id}"))
        raise typer.Exit(code=1)
    formatter.print_success(f"{kind.value.title()} updated", {"id": child.id})


@app.command("remove")
def child_remove(
    ctx: typer.Context,
    kind: KindArg,
    person_id: PersonArg,
    child_id: Annotated[str, typer.Argument(help="Record ID")],
) -> None:
    """Delete one record of a person.

    Examples:

        peopledb child remove address 550e8400 3e2a
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def remove(db: PeopleDB) -> bool:
        return await db.persons.delete_child(kind.entity_type, person_id, child_id)

    try:
        removed = cli_ctx.run(remove)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    if not removed:
        formatter.print_error(Exception(f"{kind.value.title()} not found: {child_id}"))
        raise typer.Exit(code=1)
    formatter.print_success(f"{kind.value.title()} removed", {"id": child_id})
