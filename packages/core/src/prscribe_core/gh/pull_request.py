from __future__ import annotations

from github import Auth, Github

# Clients built by get_repo fetch this many items per page.
PAGE_SIZE = 100


def get_repo(repo_name: str, token: str):
    return Github(auth=Auth.Token(token), per_page=PAGE_SIZE).get_repo(repo_name)


def get_pull(repo, pr_number: int):
    return repo.get_pull(pr_number)


def get_pull_requests(repo, state: str = "open"):
    return repo.get_pulls(state=state)


def fetch_all_pages(paginated) -> list:
    """Collect every item of a PyGithub PaginatedList, one page at a time.

    The page size belongs to the client that built ``paginated``, so only an
    empty page marks the end.
    """
    items: list = []
    page = 0
    while True:
        batch = list(paginated.get_page(page))
        if not batch:
            return items
        items.extend(batch)
        page += 1


def list_issue_comments(pr) -> list:
    """Return every conversation comment on the PR, oldest first."""
    return fetch_all_pages(pr.get_issue_comments())


def list_commits(pr) -> list:
    """Return every commit of the PR in history order."""
    return fetch_all_pages(pr.get_commits())


def list_review_comments(pr) -> list:
    return list(pr.get_review_comments())


def create_issue_comment(pr, body: str):
    return pr.create_issue_comment(body)


def update_issue_comment(pr, comment_id: int, body: str):
    comment = pr.get_issue_comment(comment_id)
    comment.edit(body)
    return comment


def create_review_remark(pr, commit, path: str, body: str, **anchor_fields):
    """Create one line-anchored review comment.

    ``anchor_fields`` is ``line``/``side`` for a single line, plus
    ``start_line``/``start_side`` for a range.
    """
    return pr.create_review_comment(body=body, commit=commit, path=path, **anchor_fields)
