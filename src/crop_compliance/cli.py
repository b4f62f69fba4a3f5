"""
Crop Compliance CLI
=====================
Command-line admin tooling for the compliance engine.

State is kept in a JSON snapshot between invocations (see --state).

Commands:
    init: Create a fresh state file
    set-admin / pause / unpause
    add-standard: Register a regulatory standard
    add-*-rule: Attach numerical / categorical / temporal rules
    deactivate-rule: Exclude a rule from future verification
    load-policy: Apply a YAML policy file
    verify: Submit measurement data for a crop
    status / rules / verification / compliance / history: Inspect state
"""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from crop_compliance import __version__
from crop_compliance.config import get_settings
from crop_compliance.engine import (
    CategoricalRule,
    ComplianceEngine,
    ComplianceError,
    EngineState,
    NumericalRule,
    Result,
    Submission,
    TemporalRule,
)
from crop_compliance.storage.policy import PolicyError, load_policy
from crop_compliance.storage.snapshot import SnapshotError, load_state, save_state
from crop_compliance.utils.helpers import file_digest, parse_digest
from crop_compliance.utils.log import get_logger, setup_logging

logger = get_logger(__name__)
console = Console()


def _state_path(ctx: click.Context) -> Path:
    return ctx.obj["state_path"]


def _open_engine(ctx: click.Context) -> ComplianceEngine:
    path = _state_path(ctx)
    if not path.exists():
        console.print(f"[red]No state file at[/red] {path}")
        console.print("[dim]Run 'crop-compliance init' first.[/dim]")
        sys.exit(1)
    try:
        return ComplianceEngine.from_settings(state=load_state(path))
    except SnapshotError as e:
        console.print(f"[red]Cannot read state:[/red] {e}")
        sys.exit(1)


def _save(ctx: click.Context, engine: ComplianceEngine) -> None:
    save_state(engine.snapshot(), _state_path(ctx))


def _finish(ctx: click.Context, engine: ComplianceEngine, result: Result, done: str) -> None:
    """Persist on success; report the error code and exit 1 on failure."""
    if not result.ok:
        console.print(f"[red]✗ {result.error.name}[/red] ({int(result.error)})")
        sys.exit(1)
    _save(ctx, engine)
    console.print(f"[green]✓[/green] {done}")


def _caller(caller: str | None) -> str:
    return caller or get_settings().engine.admin


caller_option = click.option(
    "--caller", "-c", default=None,
    help="Caller identity. Default: configured admin.",
)


# ═══════════════════════════════════════════════════════
#  Root group
# ═══════════════════════════════════════════════════════
@click.group()
@click.version_option(version=__version__, prog_name="crop-compliance")
@click.option(
    "--state", "-s", "state_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="State snapshot file. Default: config value.",
)
@click.pass_context
def main(ctx: click.Context, state_path: Path | None):
    """Crop compliance rule engine (standards, typed rules, verification)."""
    settings = get_settings()
    setup_logging(settings)
    ctx.ensure_object(dict)
    ctx.obj["state_path"] = state_path or settings.paths.state_file


# ═══════════════════════════════════════════════════════
#  ACCESS: init, admin handover, pause
# ═══════════════════════════════════════════════════════
@main.command()
@click.option("--admin", "-a", default=None, help="Initial admin identity. Default: config value.")
@click.option("--force", is_flag=True, help="Overwrite an existing state file.")
@click.pass_context
def init(ctx: click.Context, admin: str | None, force: bool):
    """Create a fresh state file with the given admin."""
    path = _state_path(ctx)
    if path.exists() and not force:
        console.print(f"[yellow]State file already exists:[/yellow] {path}")
        console.print("[dim]Use --force to overwrite.[/dim]")
        sys.exit(1)

    settings = get_settings()
    state = EngineState(
        admin=admin or settings.engine.admin, version=settings.engine.initial_version,
    )
    engine = ComplianceEngine.from_settings(state=state)
    _save(ctx, engine)
    console.print(f"[green]✓[/green] Initialized {path} (admin: [bold]{engine.get_admin()}[/bold])")


@main.command("set-admin")
@click.argument("new_admin")
@caller_option
@click.pass_context
def set_admin(ctx: click.Context, new_admin: str, caller: str | None):
    """Hand the admin role to NEW_ADMIN."""
    engine = _open_engine(ctx)
    _finish(ctx, engine, engine.set_admin(_caller(caller), new_admin), f"Admin is now {new_admin}")


@main.command()
@caller_option
@click.pass_context
def pause(ctx: click.Context, caller: str | None):
    """Pause rule creation and verification."""
    engine = _open_engine(ctx)
    _finish(ctx, engine, engine.pause(_caller(caller)), "Paused")


@main.command()
@caller_option
@click.pass_context
def unpause(ctx: click.Context, caller: str | None):
    """Resume rule creation and verification."""
    engine = _open_engine(ctx)
    _finish(ctx, engine, engine.unpause(_caller(caller)), "Unpaused")


# ═══════════════════════════════════════════════════════
#  POLICY: standards and rules
# ═══════════════════════════════════════════════════════
@main.command("add-standard")
@click.argument("standard_id", type=int)
@click.argument("name")
@click.argument("description")
@caller_option
@click.pass_context
def add_standard(ctx: click.Context, standard_id: int, name: str, description: str, caller: str | None):
    """Register a regulatory standard."""
    engine = _open_engine(ctx)
    result = engine.add_standard(_caller(caller), standard_id, name, description)
    _finish(ctx, engine, result, f"Standard {standard_id} ({name}) added")


@main.command("add-numerical-rule")
@click.argument("standard_id", type=int)
@click.argument("rule_id", type=int)
@click.argument("description")
@click.option("--min", "min_value", type=int, required=True, help="Inclusive lower bound.")
@click.option("--max", "max_value", type=int, required=True, help="Inclusive upper bound.")
@caller_option
@click.pass_context
def add_numerical_rule(ctx, standard_id, rule_id, description, min_value, max_value, caller):
    """Attach a numerical range rule to a standard."""
    engine = _open_engine(ctx)
    result = engine.add_numerical_rule(
        _caller(caller), standard_id, rule_id, description, min_value, max_value,
    )
    _finish(ctx, engine, result, f"Rule {standard_id}-{rule_id} [{min_value}, {max_value}] added")


@main.command("add-categorical-rule")
@click.argument("standard_id", type=int)
@click.argument("rule_id", type=int)
@click.argument("description")
@click.option("--category", "-k", "categories", multiple=True, help="Allowed category (repeatable).")
@caller_option
@click.pass_context
def add_categorical_rule(ctx, standard_id, rule_id, description, categories, caller):
    """Attach a category-membership rule to a standard."""
    engine = _open_engine(ctx)
    result = engine.add_categorical_rule(_caller(caller), standard_id, rule_id, description, categories)
    _finish(ctx, engine, result, f"Rule {standard_id}-{rule_id} {{{', '.join(categories)}}} added")


@main.command("add-temporal-rule")
@click.argument("standard_id", type=int)
@click.argument("rule_id", type=int)
@click.argument("description")
@click.option("--max-duration", type=int, required=True, help="Maximum allowed duration.")
@caller_option
@click.pass_context
def add_temporal_rule(ctx, standard_id, rule_id, description, max_duration, caller):
    """Attach a maximum-duration rule to a standard."""
    engine = _open_engine(ctx)
    result = engine.add_temporal_rule(_caller(caller), standard_id, rule_id, description, max_duration)
    _finish(ctx, engine, result, f"Rule {standard_id}-{rule_id} (≤ {max_duration}) added")


@main.command("deactivate-rule")
@click.argument("standard_id", type=int)
@click.argument("rule_id", type=int)
@caller_option
@click.pass_context
def deactivate_rule(ctx: click.Context, standard_id: int, rule_id: int, caller: str | None):
    """Exclude a rule from future verification."""
    engine = _open_engine(ctx)
    result = engine.deactivate_rule(_caller(caller), standard_id, rule_id)
    _finish(ctx, engine, result, f"Rule {standard_id}-{rule_id} deactivated")


@main.command("load-policy")
@click.argument("policy_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@caller_option
@click.pass_context
def load_policy_cmd(ctx: click.Context, policy_file: Path, caller: str | None):
    """Apply standards and rules from a YAML policy file."""
    engine = _open_engine(ctx)
    try:
        report = load_policy(engine, policy_file, _caller(caller))
    except PolicyError as e:
        console.print(f"[red]Invalid policy:[/red] {e}")
        sys.exit(1)
    except ComplianceError as e:
        console.print(f"[red]✗ {e.code.name}[/red] ({int(e.code)}): {e}")
        console.print("[dim]State not saved.[/dim]")
        sys.exit(1)

    _save(ctx, engine)
    console.print(
        f"[green]✓[/green] {policy_file.name}: "
        f"{len(report.standards_added)} standard(s) added, "
        f"{len(report.standards_reused)} reused, {len(report.rules_added)} rule(s) added"
    )


# ═══════════════════════════════════════════════════════
#  VERIFY: submit measurement data
# ═══════════════════════════════════════════════════════
@main.command()
@click.argument("crop_id")
@click.argument("standard_id", type=int)
@click.option("--value", "numeric_value", type=int, required=True, help="Measured numeric value.")
@click.option("--category", required=True, help="Measured category label.")
@click.option("--duration", type=int, required=True, help="Measured duration.")
@click.option("--data-hash", default=None, help="Hex-encoded 32-byte digest of the raw data.")
@click.option(
    "--data-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Raw data file; its SHA-256 digest is used as the data hash.",
)
@click.option("--clock", type=int, default=None, help="Logical clock value. Default: config value.")
@caller_option
@click.pass_context
def verify(ctx, crop_id, standard_id, numeric_value, category, duration, data_hash, data_file, clock, caller):
    """Verify CROP_ID's measurements against STANDARD_ID.

    The verification record and compliance status are saved even when
    the verification fails.
    """
    if (data_hash is None) == (data_file is None):
        raise click.UsageError("Pass exactly one of --data-hash or --data-file.")
    try:
        digest = parse_digest(data_hash) if data_hash is not None else file_digest(data_file)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--data-hash")

    engine = _open_engine(ctx)
    submission = Submission(
        numeric_value=numeric_value, category=category, duration=duration, data_hash=digest,
    )
    if clock is None:
        clock = get_settings().cli.default_clock
    before = engine.get_current_version()
    result = engine.verify_compliance(_caller(caller), crop_id, standard_id, submission, clock)

    if engine.get_current_version() != before:
        _save(ctx, engine)
        record = engine.get_verification(crop_id, engine.get_current_version())
        _print_verification(record)

    if result.ok:
        console.print(f"[green]✓ COMPLIANT[/green] (verification #{result.value})")
    else:
        console.print(f"[red]✗ {result.error.name}[/red] ({int(result.error)})")
        sys.exit(1)


# ═══════════════════════════════════════════════════════
#  INSPECT: read-only projections
# ═══════════════════════════════════════════════════════
@main.command()
@click.pass_context
def status(ctx: click.Context):
    """Show admin, pause flag, counters and standards."""
    engine = _open_engine(ctx)
    snap = engine.snapshot()

    table = Table(title="Engine Status", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Admin", snap.admin)
    table.add_row("Paused", "[red]yes[/red]" if snap.paused else "[green]no[/green]")
    table.add_row("Version", str(snap.version))
    table.add_row("Rule-set version", str(snap.rule_set_version))
    table.add_row("Verifications", str(len(snap.verifications)))
    console.print(table)

    if snap.standards:
        st = Table(title="Standards")
        st.add_column("ID", justify="right")
        st.add_column("Name", style="bold")
        st.add_column("Description")
        st.add_column("Rules", justify="right")
        for sid in sorted(snap.standards):
            s = snap.standards[sid]
            st.add_row(str(sid), s.name, s.description, str(len(snap.rule_ids(sid))))
        console.print(st)


@main.command()
@click.argument("standard_id", type=int)
@click.pass_context
def rules(ctx: click.Context, standard_id: int):
    """List the rules attached to a standard."""
    engine = _open_engine(ctx)
    if engine.get_standard(standard_id) is None:
        console.print(f"[yellow]No standard {standard_id}.[/yellow]")
        sys.exit(1)

    table = Table(title=f"Rules: standard {standard_id}", show_lines=True)
    table.add_column("ID", justify="right")
    table.add_column("Kind", style="cyan")
    table.add_column("Condition")
    table.add_column("Description")
    table.add_column("Active", justify="center")

    for rule in engine.get_rules(standard_id):
        table.add_row(
            str(rule.rule_id),
            rule.kind.name.lower() if rule.kind is not None else f"unknown({rule.rule_type})",
            _describe_condition(rule),
            rule.description,
            "[green]yes[/green]" if rule.active else "[dim]no[/dim]",
        )
    console.print(table)


@main.command()
@click.argument("crop_id")
@click.argument("verification_id", type=int)
@click.pass_context
def verification(ctx: click.Context, crop_id: str, verification_id: int):
    """Show one verification record."""
    engine = _open_engine(ctx)
    record = engine.get_verification(crop_id, verification_id)
    if record is None:
        console.print(f"[yellow]No verification {verification_id} for {crop_id}.[/yellow]")
        sys.exit(1)
    _print_verification(record)


@main.command()
@click.argument("crop_id")
@click.argument("standard_id", type=int)
@click.pass_context
def compliance(ctx: click.Context, crop_id: str, standard_id: int):
    """Show the current compliance status of a crop under a standard."""
    engine = _open_engine(ctx)
    current = engine.get_crop_compliance(crop_id, standard_id)
    if current is None:
        console.print(f"[yellow]{crop_id} has never been verified against standard {standard_id}.[/yellow]")
        sys.exit(1)
    label = "[green]COMPLIANT[/green]" if current.compliant else "[red]NON-COMPLIANT[/red]"
    console.print(f"{crop_id} / standard {standard_id}: {label} (last verified at {current.last_verified})")


@main.command()
@click.argument("crop_id")
@click.pass_context
def history(ctx: click.Context, crop_id: str):
    """List every verification recorded for a crop."""
    engine = _open_engine(ctx)
    records = engine.verifications_for(crop_id)
    if not records:
        console.print(f"[yellow]No verifications for {crop_id}.[/yellow]")
        return

    table = Table(title=f"Verifications: {crop_id}")
    table.add_column("#", justify="right")
    table.add_column("Standard", justify="right")
    table.add_column("Clock", justify="right")
    table.add_column("Result", justify="center")
    table.add_column("Failed rules")
    for v in records:
        table.add_row(
            str(v.verification_id),
            str(v.standard_id),
            str(v.timestamp),
            "[green]PASS[/green]" if v.passed else "[red]FAIL[/red]",
            ", ".join(str(i) for i in v.failed_rule_ids) or "—",
        )
    console.print(table)


def _describe_condition(rule) -> str:
    if isinstance(rule, NumericalRule):
        return f"{rule.min_value} ≤ value ≤ {rule.max_value}"
    if isinstance(rule, CategoricalRule):
        return "category ∈ {" + ", ".join(rule.allowed_categories) + "}"
    if isinstance(rule, TemporalRule):
        return f"duration ≤ {rule.max_duration}"
    return "—"


def _print_verification(record) -> None:
    table = Table(title=f"Verification #{record.verification_id}", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Crop", record.crop_id)
    table.add_row("Standard", str(record.standard_id))
    table.add_row("Clock", str(record.timestamp))
    table.add_row("Passed", "[green]yes[/green]" if record.passed else "[red]no[/red]")
    table.add_row("Failed rules", ", ".join(str(i) for i in record.failed_rule_ids) or "—")
    table.add_row("Data hash", record.data_hash.hex())
    console.print(table)


if __name__ == "__main__":
    main()
