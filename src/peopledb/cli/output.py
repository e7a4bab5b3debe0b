"""Output formatting for CLI commands."""

import json
from typing import Any

from pydantic import BaseModel
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from peopledb.core.types import PersonWithRelations
from peopledb.exceptions import PeopleDBError
from peopledb.store.client import RELATION_FIELDS

console = Console()


def to_jsonable(data: Any) -> Any:
    """Convert models (and lists of them) into plain JSON-ready values."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {k: to_jsonable(v) for k, v in data.items()}
    return data


class OutputFormatter:
    """Formats output for terminal or JSON mode."""

    def __init__(self, json_mode: bool = False) -> None:
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON instead of Rich formatting
        """
        self.json_mode = json_mode

    def print_table(
        self,
        title: str,
        data: list[dict[str, Any]],
        columns: list[str],
    ) -> None:
        """Print data as Rich table or JSON array.

        Args:
            title: Table title
            data: List of row dictionaries
            columns: Column names to display
        """
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            table = Table(title=title, show_header=True, header_style="bold magenta")
            for col in columns:
                table.add_column(col)
            for row in data:
                table.add_row(*[_cell(row.get(col)) for col in columns])
            console.print(table)

    def print_person(self, person: PersonWithRelations) -> None:
        """Print a person with one table per child collection."""
        if self.json_mode:
            print(json.dumps(person.model_dump(mode="json"), indent=2))
            return

        console.print(f"\n[bold]{person.first_name} {person.last_name}[/bold] ({person.id})")
        if person.date_of_birth:
            console.print(f"Born: {person.date_of_birth}")
        if person.gender:
            console.print(f"Gender: {person.gender}")
        console.print(f"Updated: {person.updated_at}", style="dim")

        for name in RELATION_FIELDS.values():
            children = getattr(person, name)
            if not children:
                continue
            console.print(f"\n[bold]{name.replace('_', ' ').title()} ({len(children)}):[/bold]")
            rows = [child.model_dump(mode="json") for child in children]
            columns = [c for c in rows[0] if c != "person_id"]
            table = Table(show_header=True, header_style="bold cyan")
            for col in columns:
                table.add_column(col)
            for row in rows:
                table.add_row(*[_cell(row.get(col)) for col in columns])
            console.print(table)

    def print_success(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Print success message.

        Args:
            message: Success message
            details: Optional details to display
        """
        if self.json_mode:
            output = {"success": True, "message": message}
            if details:
                output.update(details)
            print(json.dumps(output, default=str, indent=2))
        else:
            console.print(f"✓ {message}", style="green")
            if details:
                for key, value in details.items():
                    console.print(f"  {key}: {value}", style="dim")

    def print_error(self, error: Exception) -> None:
        """Print error message.

        Args:
            error: Exception to display
        """
        if self.json_mode:
            if isinstance(error, PeopleDBError):
                print(json.dumps(error.to_dict(), default=str, indent=2))
            else:
                print(json.dumps({"error": str(error)}, indent=2))
        else:
            error_text = str(error)
            if isinstance(error, PeopleDBError) and error.context:
                context_str = "\n".join(f"{k}: {v}" for k, v in error.context.items())
                error_text = f"{error_text}\n\n{context_str}"

            panel = Panel(
                error_text,
                title="[red]Error[/red]",
                border_style="red",
            )
            console.print(panel)

    def print_data(self, data: Any) -> None:
        """Print generic data (models, dicts, lists)."""
        data = to_jsonable(data)
        if self.json_mode:
            print(json.dumps(data, default=str, indent=2))
        else:
            console.print_json(json.dumps(data, default=str))


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if value is True:
        return "✓"
    if value is False:
        return ""
    return str(value)
