"""
CLI entry point for Judgment Gate.

This module provides the Typer-based command-line interface.

Commands:
    judge   Judge one action against a policy
    rules   Show the rules a policy file loads to
    exec    Run a command only if the policy allows it
    audit   Show audit entries stored in a SQLite database

Architecture Note:
    The CLI is thin: it parses arguments, loads policy and config, and
    delegates to JudgmentGate. Everything it does is available as a library.
"""

import json
import subprocess
import uuid
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from judgment_gate import __version__
from judgment_gate.audit import MemoryAuditSink, SQLiteAuditSink
from judgment_gate.audit.sink import AuditSink
from judgment_gate.config import GateConfig, configure_logging, load_config
from judgment_gate.errors import BoundaryError, ConfigurationDegradedError, StorageError
from judgment_gate.hook import JudgmentGate, make_sink
from judgment_gate.policy.loader import LoadResult, load_rule_set, load_rule_set_strict
from judgment_gate.report import generate_json_report, render_audit_table
from judgment_gate.schema import Decision, JudgmentContext, PolicyRuleSet, Proposal

# Exit codes for `judge`
EXIT_CODES = {
    Decision.ALLOW: 0,
    Decision.HOLD: 1,
    Decision.STOP: 2,
}
EXIT_BLOCKED = 3
EXIT_NOT_FOUND = 127

app = typer.Typer(
    name="judgment-gate",
    help="Judge agent actions against a policy and gate their execution.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]judgment-gate[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    Judgment Gate - ALLOW / HOLD / STOP for agent actions.

    Every action is judged against ordered policy rules; anything not
    explicitly allowed is held.
    """
    pass


# =============================================================================
# Shared option types
# =============================================================================

PolicyOption = Annotated[
    Optional[Path],
    typer.Option(
        "--policy",
        "-p",
        help="Path to the policy YAML file.",
        resolve_path=True,
    ),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to a gate config YAML file.",
        exists=True,
        readable=True,
        resolve_path=True,
    ),
]
AuditDbOption = Annotated[
    Optional[Path],
    typer.Option(
        "--audit-db",
        help="Record audit entries in this SQLite database.",
        resolve_path=True,
    ),
]


def _load_config(config_path: Path | None) -> GateConfig:
    if config_path is None:
        return GateConfig()
    try:
        config = load_config(config_path)
    except ConfigurationDegradedError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    configure_logging(config.log_level)
    return config


def _load_rules(policy: Path | None, config: GateConfig) -> LoadResult:
    policy_path = policy or config.policy_path
    if policy_path is None:
        err_console.print("[yellow]No policy given; every action will be held.[/yellow]")
        return LoadResult(rule_set=PolicyRuleSet.empty())
    result = load_rule_set(policy_path)
    for warning in result.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")
    return result


def _open_sink(audit_db: Path | None, config: GateConfig) -> AuditSink:
    try:
        if audit_db is not None:
            return SQLiteAuditSink(audit_db)
        if config.audit_backend != "memory":
            return make_sink(config)
    except StorageError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)
    return MemoryAuditSink()


def _close_sink(sink: AuditSink) -> None:
    if isinstance(sink, SQLiteAuditSink):
        sink.close()


# =============================================================================
# judge
# =============================================================================


@app.command()
def judge(
    policy: PolicyOption = None,
    config_path: ConfigOption = None,
    tool: Annotated[str, typer.Option("--tool", "-t", help="Tool name.")] = "unknown",
    action: Annotated[str, typer.Option("--action", "-a", help="Action type.")] = "unknown",
    args: Annotated[str, typer.Option("--args", help="Argument text.")] = "",
    source: Annotated[str, typer.Option("--source", help="Event source.")] = "tool",
    hints: Annotated[
        Optional[list[str]],
        typer.Option("--hint", help="Risk hint (repeatable)."),
    ] = None,
    audit_db: AuditDbOption = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the result as JSON."),
    ] = False,
) -> None:
    """
    Judge one action against a policy.

    Exit code is 0 for ALLOW, 1 for HOLD, 2 for STOP.

    Example:
        $ judgment-gate judge -p policy.yaml -t exec -a execute --args "rm -rf /"
    """
    config = _load_config(config_path)
    loaded = _load_rules(policy, config)
    sink = _open_sink(audit_db, config)
    try:
        gate = JudgmentGate(loaded.rule_set, sink=sink)
        context = JudgmentContext(
            source=source,
            tool=tool,
            action=action,
            args=args,
            risk_hints=tuple(hints or ()),
        )
        verdict = gate.evaluate(context)
    finally:
        _close_sink(sink)

    result = verdict.result
    if json_output:
        payload = result.model_dump(mode="json")
        payload["block"] = verdict.blocked
        payload["warnings"] = list(loaded.warnings)
        typer.echo(json.dumps(payload, indent=2))
    else:
        style = {"ALLOW": "green", "HOLD": "yellow", "STOP": "red"}[result.decision.value]
        console.print(f"[bold {style}]{result.decision.value}[/bold {style}] {escape(result.reason)}")
        if result.rule_id:
            console.print(f"  [dim]Rule:[/dim] {escape(result.rule_id)}")
        else:
            console.print("  [dim]Rule:[/dim] (none matched)")

    raise typer.Exit(code=EXIT_CODES[result.decision])


# =============================================================================
# rules
# =============================================================================


@app.command()
def rules(
    policy: Annotated[
        Path,
        typer.Option(
            "--policy",
            "-p",
            help="Path to the policy YAML file.",
            resolve_path=True,
        ),
    ],
    strict: Annotated[
        bool,
        typer.Option("--strict", help="Fail if the policy does not load cleanly."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output rules as JSON."),
    ] = False,
) -> None:
    """
    Show the rules a policy file loads to, in evaluation order.

    A broken policy loads as zero rules (everything held); with --strict
    it is an error instead.
    """
    if strict:
        try:
            rule_set = load_rule_set_strict(policy)
        except ConfigurationDegradedError as e:
            err_console.print(f"[red]{escape(str(e))}[/red]")
            raise typer.Exit(code=1)
        warnings: tuple[str, ...] = ()
    else:
        loaded = _load_rules(policy, GateConfig())
        rule_set = loaded.rule_set
        warnings = loaded.warnings

    if json_output:
        payload = rule_set.model_dump(mode="json")
        payload["warnings"] = list(warnings)
        typer.echo(json.dumps(payload, indent=2))
        return

    if not rule_set.rules:
        console.print("[yellow]No rules loaded. Every action will be held.[/yellow]")
        return

    table = Table(title=f"Policy rules ({len(rule_set)})")
    table.add_column("#", style="dim", justify="right")
    table.add_column("ID", style="cyan")
    table.add_column("Decision")
    table.add_column("When")
    table.add_column("Reason", overflow="fold")

    for index, rule in enumerate(rule_set.rules, start=1):
        when = rule.when.model_dump(exclude_none=True, mode="json") if rule.when else {}
        table.add_row(
            str(index),
            escape(rule.id),
            rule.decision.value,
            escape(json.dumps(when, sort_keys=True)) if when else "[dim]never[/dim]",
            escape(rule.reason),
        )
    console.print(table)


# =============================================================================
# exec
# =============================================================================


@app.command("exec")
def exec_command(
    command: Annotated[
        list[str],
        typer.Argument(help="Command and arguments (put them after --)."),
    ],
    policy: PolicyOption = None,
    config_path: ConfigOption = None,
    hints: Annotated[
        Optional[list[str]],
        typer.Option("--hint", help="Risk hint (repeatable)."),
    ] = None,
    audit_db: AuditDbOption = None,
    timeout: Annotated[
        int,
        typer.Option("--timeout", help="Command timeout in seconds.", min=1),
    ] = 60,
) -> None:
    """
    Run a command only if the policy allows it.

    The command is judged as tool "exec", action "execute", with the joined
    command line as its args. It runs without a shell, and only through the
    execution boundary.

    Example:
        $ judgment-gate exec -p policy.yaml -- ls -la /tmp
    """
    config = _load_config(config_path)
    loaded = _load_rules(policy, config)
    sink = _open_sink(audit_db, config)
    try:
        gate = JudgmentGate(loaded.rule_set, sink=sink)
        context = JudgmentContext(
            source="cli",
            tool="exec",
            action="execute",
            args=" ".join(command),
            risk_hints=tuple(hints or ()),
        )
        proposal = Proposal(
            id=uuid.uuid4().hex[:8],
            action=lambda: _run_command(command, timeout),
        )
        outcome = gate.execute(proposal, context)
    except BoundaryError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        if e.context.get("rule_id"):
            err_console.print(f"  [dim]Rule:[/dim] {escape(e.context['rule_id'])}")
        raise typer.Exit(code=EXIT_BLOCKED)
    except FileNotFoundError:
        err_console.print(f"[red]Executable not found: {escape(command[0])}[/red]")
        raise typer.Exit(code=EXIT_NOT_FOUND)
    except subprocess.TimeoutExpired:
        err_console.print(f"[red]Command timed out after {timeout} seconds[/red]")
        raise typer.Exit(code=1)
    finally:
        _close_sink(sink)

    completed = outcome.value
    if completed.stdout:
        typer.echo(completed.stdout, nl=False)
    if completed.stderr:
        typer.echo(completed.stderr, nl=False, err=True)
    raise typer.Exit(code=completed.returncode)


def _run_command(command: list[str], timeout: int) -> subprocess.CompletedProcess[str]:
    # shell=False: arguments are never interpreted by a shell
    return subprocess.run(
        command,
        capture_output=True,
        text=True,
        timeout=timeout,
        shell=False,
    )


# =============================================================================
# audit
# =============================================================================


@app.command()
def audit(
    db: Annotated[
        Path,
        typer.Option(
            "--db",
            help="Path to the SQLite audit database.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    limit: Annotated[
        Optional[int],
        typer.Option("--limit", "-n", help="Show only the most recent N entries.", min=1),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output a JSON report."),
    ] = False,
) -> None:
    """Show audit entries stored in a SQLite database."""
    try:
        with SQLiteAuditSink(db) as sink:
            entries = sink.get_entries(limit=limit)
    except StorageError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    if json_output:
        typer.echo(generate_json_report(entries))
    else:
        render_audit_table(entries, console=console)


if __name__ == "__main__":
    app()
