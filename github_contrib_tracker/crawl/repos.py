"""
Repository Crawl Module

This module drives the crawl of the repositories referenced by users: one
metadata request per stale repository, then the sub-fetchers for commits, pull
requests, languages and settings.

Fetching a repository is a two-phase operation. The metadata step opens it by
setting ``fetching_since``; once every sub-fetcher has run, ``fetching_since``
is promoted to ``fetched_at``. A run that dies in between leaves the marker set
and the next run resumes from the sub-fetchers' own checkpoints.
"""
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, Optional

from github_contrib_tracker import config
from github_contrib_tracker.catalog import Catalog, Record
from github_contrib_tracker.crawl.commits import CommitsFetcher
from github_contrib_tracker.crawl.details import RepoDetailsFetcher
from github_contrib_tracker.crawl.freshness import metadata_skip_reason
from github_contrib_tracker.exceptions import GitHubAPIError
from github_contrib_tracker.models import (
    FetchKind,
    format_timestamp,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

METADATA_ACCEPTED = (304, 403, 404, 451)

# Keep the DB small
BULKY_FIELDS = (
    "node_id", "keys_url", "collaborators_url", "teams_url", "hooks_url", "issue_events_url",
    "events_url", "assignees_url", "branches_url", "tags_url", "blobs_url", "git_tags_url",
    "git_refs_url", "trees_url", "statuses_url", "contributors_url", "subscribers_url",
    "subscription_url", "commits_url", "git_commits_url", "comments_url", "issue_comment_url",
    "contents_url", "compare_url", "merges_url", "archive_url", "downloads_url", "issues_url",
    "milestones_url", "notifications_url", "labels_url", "releases_url", "deployments_url",
    "ssh_url", "git_url", "clone_url", "svn_url", "has_issues", "has_projects", "has_downloads",
    "has_wiki", "has_pages", "id", "forks_url", "permissions", "allow_squash_merge",
    "allow_merge_commit", "allow_rebase_merge", "stargazers_url", "watchers_count",
    "forks_count", "open_issues_count", "forks", "open_issues", "watchers", "parent", "source",
    "network_count", "subscribers_count",
)


def apply_metadata(repo: Record, payload: Dict[str, Any], now: datetime) -> Record:
    """Merge fresh repository metadata into a copy of ``repo`` and open the fetch."""
    updated = dict(repo)
    payload = dict(payload)
    owner = payload.get("owner")
    if isinstance(owner, dict):
        payload["owner"] = owner.get("login")
    updated.update(payload)
    for field in BULKY_FIELDS:
        updated.pop(field, None)

    # Repos without stars or empty are "insignificant": no resources are spent
    # on fetching more about them.
    updated["ghuser_insignificant"] = (
        (updated.get("stargazers_count") or 0) < 1 or updated.get("size") == 0
    )
    updated["fetching_since"] = format_timestamp(now)
    return updated


class RepoCrawler:
    """
    Per-repository crawl orchestrator.
    """

    def __init__(
        self,
        catalog: Catalog,
        client,
        clock: Callable[[], datetime] = utc_now,
        per_page: int = config.PER_PAGE,
    ):
        self.catalog = catalog
        self.client = client
        self.clock = clock
        self.commits = CommitsFetcher(catalog, client, clock, per_page)
        self.details = RepoDetailsFetcher(catalog, client, per_page)

    def fetch_repo(self, full_name: str, first_time: bool = False) -> Optional[FetchKind]:
        """
        Refresh the metadata of one repository.

        Args:
            full_name: ``owner/name`` the repository is stored under
            first_time: Use the wide freshness window meant for new repositories

        Returns:
            The outcome of the request, or None when the repository was skipped
        """
        repo = self.catalog.repo(full_name)
        now = self.clock()
        reason = metadata_skip_reason(repo, now, first_time)
        if reason:
            logger.info(f"{full_name} {reason}")
            return None

        result = self.client.fetch_repo_metadata(
            full_name, parse_timestamp(repo.get("fetched_at")), accepted=METADATA_ACCEPTED
        )
        if result.kind is FetchKind.NOT_MODIFIED:
            repo["fetched_at"] = format_timestamp(now)
            logger.info(f"{full_name} didn't change")
        elif result.kind is FetchKind.NOT_FOUND:
            repo["removed_from_github"] = True
            logger.info(f"{full_name} was removed from GitHub")
        elif result.kind is FetchKind.BLOCKED:
            repo["removed_from_github"] = True
            logger.info(f"{full_name} is blocked for legal reasons ({result.status_code})")
        elif result.kind is FetchKind.OK:
            repo = apply_metadata(repo, result.payload, now)
            logger.info(f"Fetched {full_name}")
        else:
            raise GitHubAPIError(f"Unexpected {result} for {full_name}")

        self.catalog.put_repo(full_name, repo)
        return result.kind

    def fetch_repos(self, full_names: Iterable[str], first_time: bool = False) -> int:
        fetched = 0
        for full_name in full_names:
            if self.fetch_repo(full_name, first_time) is FetchKind.OK:
                fetched += 1
        logger.info(f"Fetched metadata of {fetched} repos")
        return fetched

    def fetch_repo_details(self, full_name: str):
        """Run the sub-fetchers of one repository, then close its fetch."""
        repo = self.catalog.repo(full_name)
        if not repo.get("removed_from_github") and not repo.get("ghuser_insignificant"):
            self.commits.fetch(full_name)
            self.details.fetch_pull_requests(full_name)
            self.details.fetch_languages(full_name)
            self.details.fetch_settings(full_name)
        self.mark_fully_fetched(full_name)

    def fetch_all_details(self, full_names: Iterable[str]):
        for full_name in full_names:
            self.fetch_repo_details(full_name)

    def mark_fully_fetched(self, full_name: str) -> bool:
        repo = self.catalog.repo(full_name)
        if not repo.get("fetching_since"):
            return False
        repo["fetched_at"] = repo.pop("fetching_since")
        self.catalog.put_repo(full_name, repo)
        return True
