"""Admin and utility commands."""

import typer

import peopledb
from peopledb.cli.context import CLIContext
from peopledb.cli.output import OutputFormatter
from peopledb.core.engine import PeopleDB

app = typer.Typer(help="Database administration and utilities")


@app.command()
def init(
    ctx: typer.Context,
) -> None:
    """Create the items table and its secondary indexes.

    Provisioning is normally done outside this tool; this is for local
    databases and tests. Safe to run repeatedly.

    Examples:

        peopledb --table people admin init
        peopledb --database postgresql://localhost/mydb --table people admin init
    """
    cli_ctx: CLIContext = ctx.obj
    formatter = OutputFormatter(cli_ctx.json_output)

    async def create(db: PeopleDB) -> None:
        await db.init_schema()

    try:
        cli_ctx.run(create)
    except Exception as e:
        formatter.print_error(e)
        raise typer.Exit(code=1) from e

    formatter.print_success(
        "Table initialized",
        {
            "database": cli_ctx.database_url,
            "table": cli_ctx.table_name,
            "version": peopledb.__version__,
        },
    )
