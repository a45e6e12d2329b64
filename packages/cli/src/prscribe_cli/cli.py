"""CLI entry point for prscribe.

Commands:
  review   — summarize a pull request and post line-anchored remarks
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.logging import RichHandler

from prscribe_cli.commands.review import review_cmd


@click.group()
@click.version_option(
    version=importlib.metadata.version("prscribe"),
    prog_name="prscribe",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging, including streamed model output.")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """AI synopsis and review remarks for GitHub pull requests."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


main.add_command(review_cmd)
