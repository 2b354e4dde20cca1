"""CLI entry point for codesage.

Commands:
  review    — review changed files in the current git repository
  config    — show, set, or reset values in .codesage.yml
  diagnose  — check git, SDKs, API keys, and the configured provider
"""

from __future__ import annotations

import importlib.metadata

import click

from codesage_cli.commands.config import config_cmd
from codesage_cli.commands.diagnose import diagnose_cmd
from codesage_cli.commands.review import review_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("codesage"),
    prog_name="codesage",
)
@click.option(
    "--config",
    "config_path",
    default=None,
    help="Path to the configuration file. Defaults to ./.codesage.yml, then ~/.codesage.yml.",
    envvar="CODESAGE_CONFIG",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None):
    """🔮 CodeSage — AI code review for your local git changes."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


main.add_command(review_cmd)
main.add_command(config_cmd)
main.add_command(diagnose_cmd)
