"""Person commands."""

from typing import Annotated, Any

import typer

from peopledb.cli.context import CLIContext
from peopledb.cli.output import OutputFormatter, to_jsonable
from peopledb.core.engine import PeopleDB
from peopledb.core.types import Gender
from peopledb.exceptions import PartialCascadeFailure

app = typer.Typer(help="Manage persons")

PERSON_COLUMNS = ["id", "last_name", "first_name", "date_of_birth", "gender", "updated_at"]


@app.command("list")
def person_list(ctx: typer.Context) -> None:
    """List all persons, ordered by last name.

    Examples:

        peopledb person list
        peopledb --json person list
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def fetch(db: PeopleDB) -> list[Any]:
        return await db.persons.list_persons()

    try:
        persons = cli_ctx.run(fetch)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    formatter.print_table(f"Persons ({len(persons)})", to_jsonable(persons), PERSON_COLUMNS)


@app.command("show")
def person_show(
    ctx: typer.Context,
    person_id: Annotated[str, typer.Argument(help="Person ID")],
) -> None:
    """Show a person with all addresses, bank accounts, contacts and employments.

    Examples:

        peopledb person show 550e8400-e29b-41d4-a716-446655440000
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def fetch(db: PeopleDB) -> Any:
        return await db.persons.get_person_with_relations(person_id)

    try:
        person = cli_ctx.run(fetch)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    if person is None:
        formatter.print_error(Exception(f"Person not found: {person_id}"))
        raise typer.Exit(code=1)
    formatter.print_person(person)


@app.command("create")
def person_create(
    ctx: typer.Context,
    first_name: Annotated[str, typer.Option("--first-name", "-f", help="First name")],
    last_name: Annotated[str, typer.Option("--last-name", "-l", help="Last name")],
    date_of_birth: Annotated[
        str | None, typer.Option("--dob", help="Date of birth (YYYY-MM-DD)")
    ] = None,
    gender: Annotated[Gender | None, typer.Option("--gender", help="Gender")] = None,
    person_id: Annotated[
        str | None, typer.Option("--id", help="Explicit ID (default: generated UUID)")
    ] = None,
) -> None:
    """Create a person.

    Examples:

        peopledb person create --first-name Ada --last-name Lovelace --dob 1815-12-10
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def create(db: PeopleDB) -> Any:
        data = {
            "id": person_id,
            "first_name": first_name,
            "last_name": last_name,
            "date_of_birth": date_of_birth,
            "gender": gender.value if gender else None,
        }
        return await db.persons.create_person(data)

    try:
        person = cli_ctx.run(create)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    formatter.print_success("Person created", {"id": person.id})


@app.command("update")
def person_update(
    ctx: typer.Context,
    person_id: Annotated[str, typer.Argument(help="Person ID")],
    first_name: Annotated[str | None, typer.Option("--first-name", "-f")] = None,
    last_name: Annotated[str | None, typer.Option("--last-name", "-l")] = None,
    date_of_birth: Annotated[str | None, typer.Option("--dob")] = None,
    gender: Annotated[Gender | None, typer.Option("--gender")] = None,
) -> None:
    """Update some fields of a person. Fields not given are left unchanged.

    Examples:

        peopledb person update 550e8400 --last-name King
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def update(db: PeopleDB) -> Any:
        changes = {
            "first_name": first_name,
            "last_name": last_name,
            "date_of_birth": date_of_birth,
            "gender": gender.value if gender else None,
        }
        return await db.persons.update_person(person_id, changes)

    try:
        person = cli_ctx.run(update)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    if person is None:
        formatter.print_error(Exception(f"Person not found: {person_id}"))
        raise typer.Exit(code=1)
    formatter.print_success(
        "Person updated", {"id": person.id, "updated_at": person.updated_at.isoformat()}
    )


@app.command("delete")
def person_delete(
    ctx: typer.Context,
    person_id: Annotated[str, typer.Argument(help="Person ID")],
    force: Annotated[bool, typer.Option("--force", help="Skip confirmation prompt")] = False,
) -> None:
    """Delete a person together with all of its records.

    The cascade is not atomic. If it fails part way, run it again.

    Examples:

        peopledb person delete 550e8400 --force
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    if not force and not cli_ctx.json_output:
        if not typer.confirm(f"Delete person {person_id} and all of its records?"):
            typer.echo("Cancelled.")
            raise typer.Exit(code=0)

    async def delete(db: PeopleDB) -> int:
        return await db.persons.delete_person_cascade(person_id)

    try:
        deleted = cli_ctx.run(delete)
    except PartialCascadeFailure as e:
        formatter.print_error(e)
        raise typer.Exit(code=2) from e
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    if deleted == 0:
        formatter.print_error(Exception(f"Person not found: {person_id}"))
        raise typer.Exit(code=1)
    formatter.print_success(f"Deleted {deleted} items", {"id": person_id, "deleted": deleted})


@app.command("check")
def person_check(
    ctx: typer.Context,
    person_id: Annotated[str, typer.Argument(help="Person ID")],
) -> None:
    """Report primary/current flag conflicts of a person. Changes nothing.

    Exits with code 1 when violations are found.

    Examples:

        peopledb person check 550e8400
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def check(db: PeopleDB) -> Any:
        return await db.persons.check_primary_invariants(person_id)

    try:
        report = cli_ctx.run(check)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    if report.ok:
        formatter.print_success("No violations", {"id": person_id})
        return

    formatter.print_table(
        f"Violations ({len(report.violations)})",
        [v.to_dict() for v in report.violations],
        ["entity_type", "message", "ids"],
    )
    raise typer.Exit(code=1)
