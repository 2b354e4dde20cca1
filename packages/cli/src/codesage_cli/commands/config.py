"""config command — show, set, or reset values in .codesage.yml."""

from __future__ import annotations

import copy

import click
import yaml
from rich.console import Console

console = Console()


def _mask_secrets(config: dict) -> dict:
    data = copy.deepcopy(config)
    data.pop("config_path", None)
    llm = data.get("llm") or {}
    key = llm.get("api_key")
    if key:
        llm["api_key"] = f"{key[:4]}…" if len(key) > 8 else "****"
    return data


@click.command("config")
@click.option("--show", is_flag=True, help="Show the effective configuration.")
@click.option("--reset", is_flag=True, help="Overwrite the configuration file with defaults.")
@click.option("--key", default=None, help="Dotted configuration key to set, e.g. llm.model.")
@click.option("--value", default=None, help="Value for --key, parsed as YAML (0.3, true, [a, b]).")
@click.pass_context
def config_cmd(ctx, show: bool, reset: bool, key: str | None, value: str | None):
    """Show or change CodeSage configuration."""
    from codesage_core.config import (
        default_config_path,
        load_config,
        parse_value,
        reset_config,
        save_config,
        set_value,
    )

    config_path = ctx.obj.get("config_path") if ctx.obj else None

    if show:
        config = load_config(config_path)
        console.print("[bold cyan]📋 CodeSage Configuration[/bold cyan]")
        console.print(f"[dim]{config['config_path']}[/dim]")
        console.print("=" * 50)
        console.print(
            yaml.dump(_mask_secrets(config), default_flow_style=False, sort_keys=False),
            markup=False,
            highlight=False,
        )
        return

    if reset:
        path = reset_config(config_path)
        console.print(f"[green]✅ Configuration reset to defaults ({path})[/green]")
        return

    if key is not None or value is not None:
        if key is None or value is None:
            raise click.UsageError("--key and --value must be given together.")
        config = load_config(config_path)
        set_value(config, key, parse_value(value))
        path = save_config(config, config_path)
        console.print(f"[green]✅ Configuration updated: {key} = {value} ({path})[/green]")
        return

    console.print(f"[cyan]📋 Current configuration file: {config_path or default_config_path()}[/cyan]")
    console.print("Use --show to display configuration")
    console.print("Use --key KEY --value VALUE to update settings")
    console.print("Use --reset to restore defaults")
