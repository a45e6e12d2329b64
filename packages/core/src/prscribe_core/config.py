import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "model": "gemini",
    "model_name": None,  # None = provider default; set to pin a specific model id
    "repo_path": ".",
    "ignore_file": ".prscribe-ignore",
    "context_file": None,  # optional free-text file appended to the synopsis and suggestions prompts
    "function_context": True,  # pass -W to git diff
    "review_draft_prs": False,
    "max_chars_per_file": 20000,
}


def load_config(config_path: str = ".prscribe.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prscribe.yml in the current directory
      3. CLI argument overrides
    """
    config = dict(DEFAULT_CONFIG)

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # GitHub Actions checks the repository out somewhere other than the cwd.
    if os.environ.get("GIT_REPO_PATH"):
        config["repo_path"] = os.environ["GIT_REPO_PATH"]

    # Resolve credentials from environment variables
    config["github_token"] = os.environ.get("GITHUB_TOKEN")
    config["gemini_api_key"] = os.environ.get("GEMINI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")

    return config


def load_ignore_list(ignore_path: Optional[str]) -> frozenset:
    """
    Read the ignore-list file: one repository path per line.

    Blank lines and lines starting with ``#`` are skipped. A missing file
    means nothing is ignored.
    """
    if not ignore_path:
        return frozenset()
    p = Path(ignore_path)
    if not p.exists():
        return frozenset()
    paths = set()
    for line in p.read_text().splitlines():
        entry = line.strip()
        if entry and not entry.startswith("#"):
            paths.add(entry)
    return frozenset(paths)


def _repo_relative(config: dict, path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(config.get("repo_path") or ".", path)


def load_context_text(config: dict) -> str:
    """
    Load the supplementary context passed verbatim to the generator.

    Returns an empty string when ``context_file`` is not configured. A relative
    path is resolved against ``repo_path``, like ``ignore_file``.
    """
    custom_path = config.get("context_file")
    if not custom_path:
        return ""
    p = Path(_repo_relative(config, custom_path))
    if not p.exists():
        raise FileNotFoundError(f"Context file not found: {custom_path}")
    return p.read_text()


@dataclass(frozen=True)
class ReviewSettings:
    """Everything the orchestrator needs from configuration, resolved up front."""

    repo_path: str = "."
    ignore_file: Optional[str] = None
    ignore_patterns: frozenset = field(default_factory=frozenset)
    context_text: str = ""
    function_context: bool = True
    review_draft_prs: bool = False
    max_chars_per_file: int = 20000

    @classmethod
    def from_config(cls, config: dict) -> "ReviewSettings":
        ignore_file = config.get("ignore_file")
        return cls(
            repo_path=config.get("repo_path") or ".",
            ignore_file=ignore_file,
            ignore_patterns=load_ignore_list(_repo_relative(config, ignore_file) if ignore_file else None),
            context_text=load_context_text(config),
            function_context=bool(config.get("function_context", True)),
            review_draft_prs=bool(config.get("review_draft_prs", False)),
            max_chars_per_file=int(config.get("max_chars_per_file", 20000)),
        )
