"""
Console report for Judgment Gate audit entries.

Renders entries as a Rich table with one row per judgment outcome, followed
by a one-line summary.
"""

from collections.abc import Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from judgment_gate.schema import AuditEntry

# Status icons
ICON_EXECUTED = "[green]✓[/green]"
ICON_BLOCKED = "[red]✗[/red]"
ICON_JUDGED = "[dim]○[/dim]"

DECISION_STYLES = {
    "ALLOW": "green",
    "HOLD": "yellow",
    "STOP": "red",
}


def render_audit_table(
    entries: Sequence[AuditEntry],
    console: Console | None = None,
    title: str = "Audit log",
) -> None:
    """
    Print audit entries as a table.

    Args:
        entries: Entries in the order they were recorded
        console: Rich Console instance (creates one if not provided)
        title: Table title
    """
    if console is None:
        console = Console()

    if not entries:
        console.print("[dim]No audit entries.[/dim]")
        return

    table = Table(title=title, show_lines=False)
    table.add_column("", width=2)
    table.add_column("Time", style="dim")
    table.add_column("Decision")
    table.add_column("Rule", style="cyan")
    table.add_column("Tool")
    table.add_column("Action")
    table.add_column("Reason", overflow="fold")

    for entry in entries:
        context = entry.context
        table.add_row(
            _status_icon(entry),
            entry.ts.strftime("%Y-%m-%d %H:%M:%S"),
            _decision_text(entry.decision),
            escape(entry.rule_id) if entry.rule_id else "[dim]-[/dim]",
            escape(context.tool) if context else "[dim]-[/dim]",
            escape(context.action) if context else "[dim]-[/dim]",
            escape(entry.error or entry.reason or ""),
        )

    console.print(table)
    _print_summary(console, entries)


def _status_icon(entry: AuditEntry) -> str:
    if entry.blocked:
        return ICON_BLOCKED
    if entry.executed:
        return ICON_EXECUTED
    return ICON_JUDGED


def _decision_text(decision: str | None) -> str:
    if decision is None:
        return "[red]<none>[/red]"
    style = DECISION_STYLES.get(decision)
    if style is None:
        # Not a valid decision value; show it verbatim so tampering is visible
        return f"[red]{escape(repr(decision))}[/red]"
    return f"[{style}]{decision}[/{style}]"


def _print_summary(console: Console, entries: Sequence[AuditEntry]) -> None:
    executed = sum(1 for e in entries if e.executed)
    blocked = sum(1 for e in entries if e.blocked)
    console.print(
        f"[bold]{len(entries)}[/bold] entries: "
        f"[green]{executed} executed[/green], "
        f"[red]{blocked} blocked[/red]"
    )
