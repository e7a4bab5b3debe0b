"""Command-line interface for peopledb."""
