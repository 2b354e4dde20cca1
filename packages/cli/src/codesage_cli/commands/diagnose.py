"""diagnose command — check the local setup before running a review."""

from __future__ import annotations

import importlib.util
import os
import platform
import subprocess
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

console = Console()

_SDK_PACKAGES = {"openai": "openai", "anthropic": "anthropic", "ollama": "openai", "qwen": "openai"}


def _git_version() -> str | None:
    try:
        result = subprocess.run(["git", "--version"], capture_output=True, text=True, timeout=5)
    except (FileNotFoundError, subprocess.TimeoutExpired):
        return None
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def _ok(label: str, detail: str = "") -> None:
    suffix = f" ({detail})" if detail else ""
    console.print(f"{label}: [green]✅{escape(suffix)}[/green]")


def _fail(label: str, detail: str) -> None:
    console.print(f"{label}: [red]❌ {escape(detail)}[/red]")


@click.command("diagnose")
@click.pass_context
def diagnose_cmd(ctx):
    """Run system diagnostics: git, SDKs, API keys, and configured provider."""
    from codesage_core.config import API_KEY_ENV_VARS, load_config

    console.print("[bold cyan]🔍 CodeSage System Diagnostics[/bold cyan]")
    console.print("=" * 50)

    _ok("Python", platform.python_version())

    git_version = _git_version()
    if git_version:
        _ok("Git", git_version)
    else:
        _fail("Git", "Not found")

    console.print("\n[yellow]📦 Provider SDKs:[/yellow]")
    for package in sorted(set(_SDK_PACKAGES.values())):
        if importlib.util.find_spec(package) is not None:
            _ok(package, "installed")
        else:
            _fail(package, f"Not installed — pip install 'codesage[{package}]'")

    console.print("\n[yellow]🔑 API Keys:[/yellow]")
    for env_var in API_KEY_ENV_VARS.values():
        if os.environ.get(env_var):
            _ok(env_var, "configured")
        else:
            _fail(env_var, "Not set")

    config = load_config(ctx.obj.get("config_path") if ctx.obj else None)
    llm = config["llm"]
    provider = str(llm.get("provider") or "openai").lower()
    console.print("\n[yellow]⚙️ Configuration:[/yellow]")
    console.print(f"Config file: [cyan]{config['config_path']}[/cyan]")
    console.print(f"LLM Provider: [cyan]{provider}[/cyan]")
    console.print(f"Model: [cyan]{llm.get('model') or '(provider default)'}[/cyan]")

    recommendations = []
    if provider in API_KEY_ENV_VARS and not llm.get("api_key"):
        recommendations.append(f"• Set {API_KEY_ENV_VARS[provider]} for the '{provider}' provider")
    sdk = _SDK_PACKAGES.get(provider)
    if sdk and importlib.util.find_spec(sdk) is None:
        recommendations.append(f"• Install the {sdk} SDK: pip install 'codesage[{sdk}]'")
    if provider in ("ollama", "qwen"):
        recommendations.append("• Install and start Ollama for local models: ollama serve")
    if not git_version:
        recommendations.append("• Install git — CodeSage reads changes with it")
    if not Path(".git").exists():
        recommendations.append("• Run CodeSage from the root of a git repository")

    console.print("\n[yellow]💡 Recommendations:[/yellow]")
    if recommendations:
        for rec in recommendations:
            console.print(escape(rec))
    else:
        console.print("[green]✅ System looks good![/green]")
