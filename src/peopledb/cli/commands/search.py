"""Fuzzy person search."""

from typing import Annotated, Any

import typer

from peopledb.cli.context import CLIContext
from peopledb.cli.output import OutputFormatter
from peopledb.core.engine import PeopleDB
from peopledb.search.index import DEFAULT_LIMIT, DEFAULT_THRESHOLD, DEFAULT_TOLERANCE


# Registered as a standalone command in main.py
def search_command(
    ctx: typer.Context,
    term: Annotated[str, typer.Argument(help="Search text")],
    limit: Annotated[
        int, typer.Option("--limit", "-n", min=1, help="Maximum results to return")
    ] = DEFAULT_LIMIT,
    tolerance: Annotated[
        int, typer.Option("--tolerance", min=0, help="Maximum typos per word")
    ] = DEFAULT_TOLERANCE,
    threshold: Annotated[
        float,
        typer.Option(
            "--threshold",
            min=0.0,
            max=1.0,
            help="Share of partial matches to include (0 = all words must match)",
        ),
    ] = DEFAULT_THRESHOLD,
) -> None:
    """Search persons by name, city, email, phone, employer or bank.

    Builds the index from a full table scan first.

    Examples:
        peopledb search lovelace
        peopledb search "ada@example.com" --json
        peopledb search "bletchly" --tolerance 2
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def run(db: PeopleDB) -> list[Any]:
        return await db.search(term, limit=limit, tolerance=tolerance, threshold=threshold)

    try:
        results = cli_ctx.run(run)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    rows = [
        {"score": round(r.score, 3), **r.document.model_dump(exclude={"first_name", "last_name"})}
        for r in results
    ]
    formatter.print_table(
        f"Results for '{term}' ({len(rows)})",
        rows,
        ["score", "id", "full_name", "email", "city", "company"],
    )
