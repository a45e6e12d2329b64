"""Core PR review orchestration."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from github import GithubException
from rich.console import Console

from prscribe_core.annotate import FileDiff
from prscribe_core.config import ReviewSettings
from prscribe_core.diffset import FileDiffSet
from prscribe_core.errors import MalformedSuggestions, PublishError
from prscribe_core.gh.pull_request import (
    create_issue_comment,
    get_pull,
    get_repo,
    list_review_comments,
    update_issue_comment,
)
from prscribe_core.providers.anthropic import AnthropicGenerator
from prscribe_core.providers.gemini import GeminiGenerator
from prscribe_core.providers.openai import OpenAIGenerator
from prscribe_core.state import ReviewRange, ReviewStateTracker, build_summary_body
from prscribe_core.suggestions import OutcomeStatus, PublishOutcome, SuggestionMapper, parse_suggestions
from prscribe_core.utils.git import GitDiffSource

console = Console()
logger = logging.getLogger(__name__)


class ReviewState(str, Enum):
    INIT = "init"
    RANGE_RESOLVED = "range_resolved"
    DIFFS_COMPUTED = "diffs_computed"
    SYNOPSIS_GENERATED = "synopsis_generated"
    SYNOPSIS_PUBLISHED = "synopsis_published"
    SUGGESTIONS_PUBLISHED = "suggestions_published"
    DONE = "done"
    ABORTED = "aborted"


class AbortReason(str, Enum):
    DRAFT_PULL_REQUEST = "draft_pull_request"
    NO_NEW_COMMITS = "no_new_commits"
    NO_REVIEWABLE_CHANGES = "no_reviewable_changes"
    EMPTY_SYNOPSIS = "empty_synopsis"
    MALFORMED_SUGGESTIONS = "malformed_suggestions"

    @property
    def is_failure(self) -> bool:
        return self is AbortReason.MALFORMED_SUGGESTIONS


@dataclass
class ReviewReport:
    """Result returned by run_review: what happened and what was written."""

    repo: str
    pr_number: int
    state: ReviewState = ReviewState.INIT
    abort_reason: AbortReason | None = None
    base_sha: str | None = None
    head_sha: str | None = None
    shadow: bool = False
    reviewed_files: list[str] = field(default_factory=list)
    errored_files: list[str] = field(default_factory=list)
    ignored_files: list[str] = field(default_factory=list)
    summary_comment_id: int | None = None
    synopsis: str | None = None
    outcomes: list[PublishOutcome] = field(default_factory=list)
    reviewed_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)

    @property
    def succeeded(self) -> bool:
        # Individual FAILED remarks do not fail the run.
        return self.abort_reason is None or not self.abort_reason.is_failure


def _get_generator(config: dict):
    model = config["model"]
    model_name = config.get("model_name")
    if model == "gemini":
        return GeminiGenerator(api_key=config["gemini_api_key"], model=model_name)
    if model == "anthropic":
        return AnthropicGenerator(api_key=config["anthropic_api_key"], model=model_name)
    if model == "openai":
        return OpenAIGenerator(api_key=config["openai_api_key"], model=model_name)
    raise ValueError(f"Unknown model provider: {model!r}. Choose 'gemini', 'anthropic' or 'openai'.")


def print_shadow_output(summary_body: str, outcomes: list[PublishOutcome]) -> None:
    """Print the synopsis and remarks to the terminal without posting to GitHub."""
    console.print("\n[bold]Shadow review — synopsis comment (not posted)[/bold]\n")
    console.print(summary_body, markup=False)

    remarks = [o for o in outcomes if o.status is OutcomeStatus.VALIDATED]
    if not remarks:
        console.print("\n[yellow]Shadow mode: no remarks generated.[/yellow]")
    else:
        console.print(f"\n[bold]Shadow review — {len(remarks)} remark(s) (not posted)[/bold]\n")
    for o in remarks:
        r = o.record
        lines = f"{r.from_line}-{r.to_line}" if r.from_line < r.to_line else str(r.to_line)
        console.print(f"[bold cyan]{r.filename}[/bold cyan]  line [bold]{lines}[/bold]  [dim]{r.side.value}[/dim]")
        console.print(f"  {r.text}", markup=False)
        console.print()

    for o in outcomes:
        if o.status is OutcomeStatus.REJECTED:
            console.print(f"[yellow]Rejected suggestion #{o.index}: {o.reason}[/yellow]")


class ReviewOrchestrator:
    """Runs one review of one pull request.

    States advance INIT → RANGE_RESOLVED → DIFFS_COMPUTED → SYNOPSIS_GENERATED
    → SYNOPSIS_PUBLISHED → SUGGESTIONS_PUBLISHED → DONE, or stop at ABORTED
    with an AbortReason. Fatal errors (PrscribeError subclasses) propagate.
    """

    def __init__(
        self,
        settings: ReviewSettings,
        pr,
        generator,
        diff_source=None,
        repo_name: str = "",
        shadow: bool = False,
        force_full: bool = False,
    ):
        self.settings = settings
        self.pr = pr
        self.generator = generator
        self.diff_source = diff_source or GitDiffSource(settings.repo_path, settings.function_context)
        self.shadow = shadow
        self.force_full = force_full
        self.report = ReviewReport(repo=repo_name, pr_number=pr.number, shadow=shadow)

    def _advance(self, state: ReviewState) -> None:
        logger.debug("PR #%s: %s → %s", self.report.pr_number, self.report.state.value, state.value)
        self.report.state = state

    def _abort(self, reason: AbortReason, message: str) -> ReviewReport:
        color = "red" if reason.is_failure else "yellow"
        console.print(f"[{color}]{message}[/{color}]")
        self.report.state = ReviewState.ABORTED
        self.report.abort_reason = reason
        return self.report

    async def run(self) -> ReviewReport:
        if self.pr.draft and not self.settings.review_draft_prs:
            return self._abort(
                AbortReason.DRAFT_PULL_REQUEST,
                "Skipping draft PR. Set review_draft_prs: true in .prscribe.yml to review drafts.",
            )

        review_range = ReviewStateTracker(self.pr, force_full=self.force_full).resolve()
        self.report.base_sha = review_range.base_commit
        self.report.head_sha = review_range.head_commit
        self._advance(ReviewState.RANGE_RESOLVED)
        if not review_range.has_new_commits:
            return self._abort(AbortReason.NO_NEW_COMMITS, "No new commits since the last review. Nothing to do.")

        console.print(f"[cyan]Reviewing {review_range.base_commit[:7]}..{review_range.head_commit[:7]}[/cyan]")
        diffs = FileDiffSet(self.diff_source, self.settings.ignore_file).compute(
            review_range.base_commit,
            review_range.head_commit,
            self.settings.ignore_patterns,
            synopsis_base=review_range.pr_base_commit,
        )
        self.report.reviewed_files = [fd.path for fd in diffs.per_file]
        self.report.errored_files = [e.path for e in diffs.errored]
        self.report.ignored_files = list(diffs.ignored)
        for error in diffs.errored:
            console.print(f"  [red]Could not diff {error.path}: {error.error}[/red]")
        self._advance(ReviewState.DIFFS_COMPUTED)
        if not diffs.per_file:
            return self._abort(AbortReason.NO_REVIEWABLE_CHANGES, "No reviewable changes in the new commits.")

        console.print(f"Generating synopsis ({len(diffs.per_file)} file(s) changed)...")
        synopsis = await self.generator.summarize(diffs.whole_range_diff, self.settings.context_text)
        if not synopsis.strip():
            return self._abort(AbortReason.EMPTY_SYNOPSIS, "Empty synopsis from the model. Stopping.")
        self.report.synopsis = synopsis.strip()
        self._advance(ReviewState.SYNOPSIS_GENERATED)

        summary_body = build_summary_body(self.report.synopsis, review_range.head_commit)
        if not self.shadow:
            self._publish_synopsis(summary_body, review_range)
        self._advance(ReviewState.SYNOPSIS_PUBLISHED)

        console.print("Generating suggestions...")
        raw = await self.generator.suggest(
            [self._render(fd) for fd in diffs.per_file],
            self.settings.context_text,
        )
        try:
            items = parse_suggestions(raw)
        except MalformedSuggestions as e:
            logger.error("%s", e)
            return self._abort(AbortReason.MALFORMED_SUGGESTIONS, f"Could not parse suggestions: {e}")

        if self.shadow:
            mapper = SuggestionMapper(self.pr, review_range.head)
            self.report.outcomes = mapper.validate(items)
            print_shadow_output(summary_body, self.report.outcomes)
        else:
            mapper = SuggestionMapper(self.pr, review_range.head, self._existing_remarks())
            self.report.outcomes = mapper.publish(items)
        self._advance(ReviewState.SUGGESTIONS_PUBLISHED)

        created = self.report.count(OutcomeStatus.VALIDATED if self.shadow else OutcomeStatus.CREATED)
        rejected = self.report.count(OutcomeStatus.REJECTED)
        failed = self.report.count(OutcomeStatus.FAILED)
        verb = "would be posted" if self.shadow else "posted"
        console.print(
            f"\n[green]{created} remark(s) {verb}"
            + (f", {rejected} rejected" if rejected else "")
            + (f", {failed} failed" if failed else "")
            + f" across {len(diffs.per_file)} file(s).[/green]"
        )
        self._advance(ReviewState.DONE)
        return self.report

    def _publish_synopsis(self, body: str, review_range: ReviewRange) -> None:
        checkpoint = review_range.checkpoint
        try:
            if checkpoint is not None and checkpoint.comment_id is not None:
                update_issue_comment(self.pr, checkpoint.comment_id, body)
                self.report.summary_comment_id = checkpoint.comment_id
                console.print("[green]Synopsis comment updated.[/green]")
            else:
                comment = create_issue_comment(self.pr, body)
                self.report.summary_comment_id = comment.id
                console.print("[green]Synopsis comment posted.[/green]")
        except GithubException as e:
            raise PublishError(f"Could not publish the synopsis comment on PR #{self.pr.number}: {e}") from e

    def _existing_remarks(self) -> list:
        try:
            return list_review_comments(self.pr)
        except GithubException as e:
            logger.warning("Could not list existing review comments; duplicates will not be detected: %s", e)
            return []

    def _render(self, file_diff: FileDiff) -> str:
        rendered = file_diff.render()
        max_chars = self.settings.max_chars_per_file
        if len(rendered) > max_chars:
            rendered = rendered[:max_chars] + "\n... [diff truncated]"
        return rendered


def run_review(
    repo: str,
    pr_number: int,
    config: dict,
    shadow: bool = False,
    force_full: bool = False,
    repo_obj=None,
) -> ReviewReport:
    """Run the full PR review pipeline and return a ReviewReport.

    Early exits (draft, no new commits, empty synopsis, ...) are reported
    through ReviewReport.abort_reason. Fatal errors raise PrscribeError.
    """
    this_repo = repo_obj if repo_obj is not None else get_repo(repo, token=config["github_token"])

    try:
        this_pr = get_pull(this_repo, pr_number)
    except GithubException:
        raise ValueError(f"PR #{pr_number} not found in {repo}.")

    orchestrator = ReviewOrchestrator(
        settings=ReviewSettings.from_config(config),
        pr=this_pr,
        generator=_get_generator(config),
        repo_name=repo,
        shadow=shadow,
        force_full=force_full,
    )
    return asyncio.run(orchestrator.run())
