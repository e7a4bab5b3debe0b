"""peopledb CLI - Main entry point."""

import logging
import sys
from typing import Annotated

import typer

import peopledb
from peopledb.cli.context import CLIContext, get_database_url, get_table_name

app = typer.Typer(
    name="peopledb",
    help="peopledb CLI - persons, their records and fuzzy search",
    no_args_is_help=True,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    database: Annotated[
        str | None,
        typer.Option(
            "--database",
            "-d",
            help="Database URL (PostgreSQL or SQLite) [env: PEOPLEDB_URL]",
        ),
    ] = None,
    table: Annotated[
        str | None,
        typer.Option(
            "--table",
            "-t",
            help="Table name [env: PEOPLEDB_TABLE_NAME]",
        ),
    ] = None,
    echo: Annotated[
        bool,
        typer.Option(
            "--echo",
            "-e",
            help="Echo SQL statements to console",
        ),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            "-j",
            help="Output as JSON (machine-readable)",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log debug output to stderr",
        ),
    ] = False,
) -> None:
    """Initialize CLI context with global options."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    ctx.obj = CLIContext(
        database_url=get_database_url(database),
        table_name=get_table_name(table),
        json_output=json_output,
        echo=echo,
    )


@app.command()
def version() -> None:
    """Show version information."""
    typer.echo(f"peopledb v{peopledb.__version__}")


# Register command groups
from peopledb.cli.commands import admin, children, importing, persons, search  # noqa: E402

app.add_typer(admin.app, name="admin")
app.add_typer(persons.app, name="person")
app.add_typer(children.app, name="child")

app.command(name="import")(importing.import_command)
app.command(name="search")(search.search_command)


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
