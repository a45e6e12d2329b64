"""review command — summarize a pull request and post review remarks."""

from __future__ import annotations

import click
from rich.console import Console

from prscribe_core.errors import PrscribeError
from prscribe_core.gh.pull_request import get_pull_requests, get_repo
from prscribe_core.reviewer import run_review

console = Console()

_API_KEY_ENV = {
    "gemini": ("gemini_api_key", "GEMINI_API_KEY"),
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
}


@click.command("review")
@click.option("--repo", default=None, help="GitHub repository in owner/name format. Defaults to GITHUB_REPOSITORY.")
@click.option(
    "--pr",
    "pr_number",
    type=int,
    default=None,
    help="Pull request number. Defaults to the Actions event's PR, else lists open PRs interactively.",
)
@click.option(
    "--model",
    type=click.Choice(list(_API_KEY_ENV)),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option(
    "--context",
    "context_file",
    default=None,
    help="Text file passed verbatim to the model as extra context, relative to the repo path. Overrides config file.",
)
@click.option(
    "--ignore-file",
    default=None,
    help="Repository path of the ignore list (one path per line). Overrides config file.",
)
@click.option(
    "--repo-path",
    default=None,
    help="Local checkout containing both commits of the range. Overrides config file and GIT_REPO_PATH.",
)
@click.option(
    "--config",
    "config_path",
    default=".prscribe.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="PRSCRIBE_CONFIG",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the synopsis and remarks without posting to GitHub.",
)
@click.option(
    "--full-review",
    "full_review",
    is_flag=True,
    help="Review every commit of the PR even if a previous review exists.",
)
def review_cmd(
    repo: str | None,
    pr_number: int | None,
    model: str | None,
    context_file: str | None,
    ignore_file: str | None,
    repo_path: str | None,
    config_path: str,
    shadow: bool,
    full_review: bool,
):
    """Summarize a GitHub pull request and post line-anchored review remarks.

    Diffs the commits added since the last prscribe review (or the whole PR on
    the first run), posts or updates the "AI Review Summary" comment, and adds
    the model's suggestions as review comments.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub token (or use gh CLI)
      GEMINI_API_KEY       Required when using --model gemini (default)
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    from prscribe_core.config import load_config
    from prscribe_cli.auth import resolve_actions_target, resolve_github_token

    config = load_config(
        config_path,
        cli_overrides={"model": model, "context_file": context_file, "ignore_file": ignore_file},
    )
    if repo_path:
        config["repo_path"] = repo_path

    token = resolve_github_token()
    if not token:
        raise click.UsageError(
            "No GitHub token found. Set GITHUB_TOKEN or run `gh auth login` first.\n"
            "Create a token at https://github.com/settings/tokens"
        )
    config["github_token"] = token

    if config["model"] not in _API_KEY_ENV:
        raise click.UsageError(f"Unknown model provider in config: {config['model']!r}.")
    key_name, env_name = _API_KEY_ENV[config["model"]]
    if not config.get(key_name):
        raise click.UsageError(f"{env_name} environment variable is not set.")

    actions_repo, actions_pr = resolve_actions_target()
    repo = repo or actions_repo
    if not repo:
        raise click.UsageError("No repository given. Pass --repo owner/name or set GITHUB_REPOSITORY.")
    if pr_number is None:
        pr_number = actions_pr

    this_repo = get_repo(repo, token=token)

    if pr_number is None:
        prs = list(get_pull_requests(this_repo))
        if not prs:
            console.print("[yellow]No open pull requests found.[/yellow]")
            return
        console.print("\nOpen pull requests:")
        for pr in prs:
            console.print(f"  [bold]#{pr.number}[/bold]  {pr.title}")
        pr_number = click.prompt("\nEnter the pull request number", type=int)

    try:
        report = run_review(
            repo=repo,
            pr_number=pr_number,
            config=config,
            shadow=shadow,
            force_full=full_review,
            repo_obj=this_repo,
        )
    except (PrscribeError, ValueError, FileNotFoundError, ImportError) as e:
        raise click.ClickException(str(e))

    if not report.succeeded:
        raise click.exceptions.Exit(1)
