"""
CLI commands for modules — add, remove, list, validate, doctor.

Thin wrappers over ``modgraft.core.use_cases``.
"""

from __future__ import annotations

import json
import sys

import click

from modgraft.ui.cli._common import resolve_paths


@click.group()
def module() -> None:
    """Modules — install, remove and audit injected code."""


@module.command()
@click.argument("manifest", type=click.Path(dir_okay=False))
@click.option("--with-env", is_flag=True, help="Append the module's env vars to the env file.")
@click.option("--run-scripts", is_flag=True, help="Run the module's postInstall script.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def add(ctx: click.Context, manifest: str, with_env: bool, run_scripts: bool, as_json: bool) -> None:
    """Install the module described by MANIFEST (a module.json).

    Examples:

        modgraft module add modules/payments/module.json

        modgraft module add payments.json --with-env --run-scripts
    """
    from modgraft.core.use_cases.modules import add_module

    paths = resolve_paths(ctx)
    result = add_module(paths, manifest, with_env=with_env, run_scripts=run_scripts)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        label = f" {result.module}" if result.module else ""
        click.secho(f"❌ Installation of{label} failed: {result.error}", fg="red")
        if result.error_file:
            click.echo(f"   file: {result.error_file}")
        if result.transaction_id and result.module:
            click.echo("   🔄 All touched files were restored.")
        sys.exit(1)

    click.secho(f"✅ Module {result.module}@{result.version} installed", fg="green", bold=True)
    if not ctx.obj.get("quiet"):
        for file in result.files:
            click.echo(f"   • {file}")
        if result.env_added:
            click.echo(f"   🔑 Env vars added: {', '.join(result.env_added)}")
    for warning in result.warnings:
        click.secho(f"   ⚠️  {warning}", fg="yellow")


@module.command()
@click.argument("name")
@click.option("--run-scripts", is_flag=True, help="Run the module's preRemove script first.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def remove(ctx: click.Context, name: str, run_scripts: bool, as_json: bool) -> None:
    """Remove an installed module by NAME."""
    from modgraft.core.use_cases.modules import remove_module

    paths = resolve_paths(ctx)
    result = remove_module(paths, name, run_scripts=run_scripts)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        click.secho(f"❌ Failed to remove module {name}: {result.error}", fg="red")
        if result.error_file:
            click.echo(f"   file: {result.error_file}")
        sys.exit(1)

    click.secho(f"✅ Module {name} removed", fg="green", bold=True)
    if not ctx.obj.get("quiet"):
        for file in result.files:
            click.echo(f"   • {file}")
        if result.env_removed:
            click.echo(f"   🔑 Env vars removed: {', '.join(result.env_removed)}")


@module.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_cmd(ctx: click.Context, as_json: bool) -> None:
    """List modules recorded in the project registry."""
    from modgraft.core.errors import RegistryError
    from modgraft.core.use_cases.modules import list_modules

    paths = resolve_paths(ctx)
    try:
        entries = list_modules(paths)
    except RegistryError as e:
        click.secho(f"❌ {e}", fg="red")
        sys.exit(1)

    if as_json:
        click.echo(json.dumps([e.model_dump(mode="json") for e in entries], indent=2))
        return

    if not entries:
        click.secho("No modules installed.", fg="yellow")
        return

    click.secho(f"📦 Modules ({len(entries)}):", fg="cyan", bold=True)
    for entry in entries:
        state = "" if entry.installed else " (not installed)"
        click.echo(f"   {entry.name}@{entry.version}{state}")


@module.command()
@click.argument("manifest", type=click.Path(dir_okay=False))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def validate(manifest: str, as_json: bool) -> None:
    """Validate a module.json without installing it."""
    from modgraft.core.services.manifest_parser import validate_manifest

    result = validate_manifest(manifest)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(0 if result.valid else 1)

    if result.valid:
        assert result.manifest is not None
        click.secho(
            f"✅ Manifest is valid: {result.manifest.name}@{result.manifest.version}",
            fg="green", bold=True,
        )
        click.echo(f"   Injections: {len(result.manifest.injections)}")
        return

    click.secho("❌ Manifest errors:", fg="red", bold=True)
    for err in result.errors:
        click.echo(f"   • {err}")
    sys.exit(1)


@module.command()
@click.option("--fix", is_flag=True, help="Repair fixable issues.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def doctor(ctx: click.Context, fix: bool, as_json: bool) -> None:
    """Check that installed modules match the files on disk.

    Exit code: 0 = healthy, 1 = errors, 2 = warnings only.
    """
    from modgraft.core.use_cases.doctor import run_doctor

    paths = resolve_paths(ctx)
    result = run_doctor(paths, fix=fix)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        sys.exit(result.exit_code)

    if result.error:
        click.secho(f"❌ Doctor could not run: {result.error}", fg="red")
        sys.exit(1)

    for line in result.fixed:
        click.secho(f"🔧 {line}", fg="cyan")
    for line in result.manual:
        click.secho(f"✋ Manual action: {line}", fg="yellow")
    if result.fixed or result.manual:
        click.echo()

    report = result.report
    if not report.findings:
        click.secho("✅ All checks passed! Your modules are healthy.", fg="green", bold=True)
        sys.exit(0)

    if report.errors:
        click.secho(f"❌ Found {len(report.errors)} error(s):", fg="red", bold=True)
        for finding in report.errors:
            click.secho(f"   {finding.message}", fg="red")
            if finding.file:
                click.echo(f"      file: {finding.file}")
            if finding.fixable and not fix:
                click.secho("      (💡 run with --fix to repair)", fg="yellow")

    if report.warnings:
        click.secho(f"⚠️  Found {len(report.warnings)} warning(s):", fg="yellow", bold=True)
        for finding in report.warnings:
            click.secho(f"   {finding.message}", fg="yellow")
            if finding.file:
                click.echo(f"      file: {finding.file}")

    infos = [f for f in report.findings if f.severity == "info"]
    if infos and ctx.obj.get("verbose"):
        for finding in infos:
            click.echo(f"   ℹ️  {finding.message}")

    sys.exit(report.exit_code)
