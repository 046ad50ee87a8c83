"""
Utility functions for the Long File Path Fixer.

Includes:
- Console output helpers
- JSON save helper
"""

import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

# Global console instance
console = Console()


def print_header(title: str, subtitle: str = ""):
    """Print a styled header."""
    console.print(Panel(f"[bold blue]{title}[/bold blue]\n[italic]{subtitle}[/italic]", expand=False))


def print_error(msg: str):
    console.print(f"[bold red]ERROR:[/bold red] {msg}")


def print_warning(msg: str):
    console.print(f"[bold yellow]WARNING:[/bold yellow] {msg}")


def print_success(msg: str):
    console.print(f"[bold green]SUCCESS:[/bold green] {msg}")


def print_summary_table(summary: dict):
    """Print the relocation counts and a sample of failed entries."""
    table = Table(title="Relocation Summary")
    table.add_column("Outcome", style="cyan")
    table.add_column("Count", style="magenta")

    table.add_row("Matched", str(summary.get("planned_count", 0)))
    if not summary.get("dry_run"):
        table.add_row("Moved", str(summary.get("moved_count", 0)))
        table.add_row("Left in place", str(summary.get("left_in_place_count", 0)))
        table.add_row("Skipped", str(summary.get("skipped_count", 0)))
    table.add_row("Failed", str(summary.get("failed_count", 0)))

    console.print(table)

    failed = [r for r in summary.get("results", []) if r["outcome"] == "failed"]
    if failed:
        tree = Tree("[bold red]Failed entries[/bold red]")
        for r in failed[:10]:
            tree.add(f"[yellow]{r['source']}[/yellow]\n[dim]{r['detail']}[/dim]")
        if len(failed) > 10:
            tree.add(f"[italic]... and {len(failed)-10} more[/italic]")
        console.print(tree)


def save_json(data: Any, path: Path) -> None:
    """
    Save data to a JSON file with pretty formatting.

    Args:
        data: The data to serialize.
        path: The output file path.
    """
    with open(path, 'w', encoding='utf-8', errors='surrogateescape') as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    print(f"[INFO] Saved: {path}")
