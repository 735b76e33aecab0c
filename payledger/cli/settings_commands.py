"""Settings CLI commands for Pay Ledger.

Manages settings.json (data directory) and the ledger section of
profile.yaml (currencies).
"""

import shutil

import click
from pathlib import Path

from payledger.sdk import (
    load_settings,
    save_settings,
    get_setting,
    set_setting,
    get_settings_path,
    get_data_path,
    get_snapshot_path,
    get_currencies,
    load_profile,
    save_profile,
)


@click.group()
def settings():
    """Manage settings (settings.json, profile.yaml).

    Available settings:
    - data_dir: custom data directory path
    - currencies: ledger currency codes, primary first
    """
    pass


@settings.command("show")
def settings_show():
    """Show current settings and effective paths."""
    settings_path = get_settings_path()
    current = load_settings()

    click.echo(f"Settings file: {settings_path}")
    click.echo(f"File exists: {settings_path.exists()}")
    click.echo()

    if current:
        click.echo("Current settings:")
        for key, value in current.items():
            click.echo(f"  {key}: {value}")
    else:
        click.echo("No settings configured (using defaults).")

    click.echo()
    click.echo("Effective values:")
    click.echo(f"  data_dir: {get_data_path()}")
    click.echo(f"  snapshot: {get_snapshot_path()}")
    click.echo(f"  currencies: {', '.join(get_currencies())}")


def _snapshot_status() -> str:
    snapshot = get_snapshot_path()
    state = "exists" if snapshot.exists() else "not created yet"
    return f"{snapshot} ({state})"


@settings.command("data-dir")
@click.argument("path", required=False, type=click.Path(file_okay=False))
@click.option("--clear", is_flag=True, help="Clear custom data_dir, revert to default")
@click.option("--move", is_flag=True, help="Move the current ledger snapshot to the new directory")
def settings_data_dir(path, clear, move):
    """Show, set or clear the directory holding the ledger snapshot.

    Switching directories without --move leaves the current snapshot where
    it is, and the ledger opens from whatever snapshot the new directory has.

    Examples:
        pay-ledger settings data-dir
        pay-ledger settings data-dir ~/payroll --move
        pay-ledger settings data-dir --clear
    """
    if not path and not clear:
        source = "data_dir setting" if get_setting("data_dir") else "default"
        click.echo(f"Data directory: {get_data_path()} ({source})")
        click.echo(f"Snapshot: {_snapshot_status()}")
        return

    old_snapshot = get_snapshot_path()

    if clear:
        current = load_settings()
        current.pop("data_dir", None)
        save_settings(current)
    else:
        data_path = Path(path).expanduser().resolve()
        try:
            data_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise click.ClickException(f"Cannot create directory: {data_path}\n{e}")
        set_setting("data_dir", str(data_path))

    new_snapshot = get_snapshot_path()
    if old_snapshot.exists() and old_snapshot != new_snapshot:
        if move:
            if new_snapshot.exists():
                raise click.ClickException(
                    f"A snapshot already exists at {new_snapshot}; not overwriting it with {old_snapshot}"
                )
            shutil.move(str(old_snapshot), str(new_snapshot))
            click.echo(f"Moved snapshot from {old_snapshot}")
        else:
            click.echo(f"Warning: ledger snapshot left at {old_snapshot}", err=True)

    click.echo(f"Data directory: {get_data_path()}")
    click.echo(f"Snapshot: {_snapshot_status()}")


@settings.command("currencies")
@click.argument("codes", nargs=-1)
def settings_currencies(codes):
    """Show or set ledger currencies (first is primary).

    Examples:
        pay-ledger settings currencies
        pay-ledger settings currencies ILS JOD USD
    """
    if not codes:
        click.echo(", ".join(get_currencies()))
        return

    normalized = [c.strip().upper() for c in codes]
    if len(set(normalized)) != len(normalized):
        raise click.BadParameter("currency codes must be distinct")

    profile = load_profile()
    profile.setdefault("ledger", {})["currencies"] = normalized
    path = save_profile(profile)
    click.echo(f"Set currencies: {', '.join(normalized)}")
    click.echo(f"Saved to: {path}")
