"""
Commits Module

Incremental, checkpointed fetch of a repository's commits. Pages are read
newest-first until the commit recorded as checkpoint by the previous run shows
up, so each run only pays for the history it has not seen yet.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from github_contrib_tracker import config
from github_contrib_tracker.catalog import Catalog, Record
from github_contrib_tracker.crawl.freshness import has_changed
from github_contrib_tracker.exceptions import CrawlInvariantError, GitHubAPIError
from github_contrib_tracker.models import FetchKind, FetchResult, parse_timestamp, utc_now

logger = logging.getLogger(__name__)

COMMITS_ACCEPTED = (404, 500)
INITIAL_CHECKPOINT = {"sha": None, "date": "2000-01-01T00:00:00Z"}

MAX_PAGES = 10000
TRUNCATION_MIN_PAGE = 500
# GitHub answers 500 on very deep pages of some giant repos.
UNSTABLE_MIN_PAGE = 1000
POPULARITY_STARS = 15
YEAR = timedelta(days=365.25)


def iter_commit_pages(client, full_name: str, per_page: int) -> Iterator[Tuple[int, FetchResult]]:
    """Yields ``(page, result)`` newest-first; the consumer decides when to stop."""
    page = 1
    while True:
        if page > MAX_PAGES:
            raise CrawlInvariantError(f"{full_name}: more than {MAX_PAGES} pages of commits. Infinite loop?")
        yield page, client.fetch_commits_page(full_name, page, per_page, accepted=COMMITS_ACCEPTED)
        page += 1


def should_truncate(stars: int, oldest_commit: Optional[datetime], now: datetime) -> bool:
    """
    Cost bound for giant repositories.

    Unpopular repos, and repos that are old relative to their popularity, are
    not worth paging through further.
    """
    not_popular = stars < POPULARITY_STARS
    years_of_inactivity = (now - oldest_commit) / YEAR if oldest_commit else 0
    old_and_not_so_popular = (
        years_of_inactivity >= 1 and stars / POPULARITY_STARS < years_of_inactivity
    )
    return not_popular or old_and_not_so_popular


@dataclass
class CommitCrawl:
    """State of one incremental pass over a repository's commits."""

    checkpoint_sha: Optional[str]
    counts: Dict[str, int] = field(default_factory=dict)
    days: Dict[str, Dict[str, int]] = field(default_factory=dict)
    most_recent: Optional[Dict[str, Any]] = None
    oldest_date: Optional[datetime] = None
    truncated: bool = False

    def consume(self, commits: List[Dict[str, Any]]) -> bool:
        """
        Attributes a page of commits.

        Returns:
            False once the checkpoint commit was reached
        """
        for commit in commits:
            if commit["sha"] == self.checkpoint_sha:
                return False

            details = commit["commit"]
            date = (commit.get("author") and details["author"]["date"]) or details["committer"]["date"]
            if self.most_recent is None:
                self.most_recent = {"sha": commit["sha"], "date": date}
            commit_date = parse_timestamp(date)
            if commit_date is not None and (self.oldest_date is None or commit_date < self.oldest_date):
                self.oldest_date = commit_date

            author_login = (commit.get("author") or {}).get("login")
            committer_login = (commit.get("committer") or {}).get("login")
            if author_login:
                self._count(author_login, details["author"]["date"])
            if committer_login and committer_login != author_login:
                self._count(committer_login, details["committer"]["date"])
        return True

    def _count(self, login: str, date: str):
        day = date[:10]
        self.counts[login] = self.counts.get(login, 0) + 1
        per_day = self.days.setdefault(login, {})
        per_day[day] = per_day.get(day, 0) + 1

    def apply(self, repo: Record, repo_commits: Record) -> Tuple[Record, Record]:
        """Folds this pass into copies of the repo and checkpoint records."""
        repo = dict(repo)
        repo_commits = dict(repo_commits)
        contributors = dict(repo.get("contributors") or {})
        commit_contributors = {
            login: dict(per_day) for login, per_day in (repo_commits.get("contributors") or {}).items()
        }
        for login, count in self.counts.items():
            if login not in commit_contributors:
                contributors[login] = 0
                commit_contributors[login] = {}
            contributors[login] = contributors.get(login, 0) + count
            per_day = commit_contributors[login]
            for day, day_count in self.days[login].items():
                per_day[day] = per_day.get(day, 0) + day_count

        repo["contributors"] = contributors
        repo_commits["contributors"] = commit_contributors
        repo_commits["last_fetched_commit"] = self.most_recent or repo_commits.get(
            "last_fetched_commit", dict(INITIAL_CHECKPOINT)
        )
        if self.truncated:
            repo_commits["ghuser_truncated"] = True
        return repo, repo_commits


class CommitsFetcher:
    """Fetches commits and contributors of one repository at a time."""

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
        self.per_page = per_page

    def fetch(self, full_name: str) -> bool:
        """
        Fetch the commits pushed since the last checkpoint.

        Returns:
            True when new state was persisted
        """
        repo = self.catalog.repo(full_name)
        repo_commits = self.catalog.commits(full_name)
        repo.setdefault("contributors", {})
        repo_commits.setdefault("contributors", {})
        repo_commits.setdefault("last_fetched_commit", dict(INITIAL_CHECKPOINT))
        checkpoint_sha = repo_commits["last_fetched_commit"].get("sha")

        if not has_changed(repo):
            if repo.get("size") and not checkpoint_sha:
                # Not empty but no commit fetched last time: definitely try again.
                logger.warning(f"{full_name} is not empty but has no commits yet, fetching again")
            else:
                logger.info(f"{full_name} hasn't changed")
                return False

        now = self.clock()
        crawl = CommitCrawl(checkpoint_sha=checkpoint_sha)
        stars = repo.get("stargazers_count") or 0
        for page, result in iter_commit_pages(self.client, full_name, self.per_page):
            logger.info(f"Fetching {full_name}'s commits [page {page}]")
            if result.kind is FetchKind.NOT_FOUND:
                # Removed during the current run; the next run marks it as removed.
                logger.info(f"{full_name} was just removed from GitHub")
                return False
            if result.kind is FetchKind.SERVER_ERROR:
                if page > UNSTABLE_MIN_PAGE:
                    logger.warning(f"{full_name}: server error on page {page}, keeping what we have")
                    crawl.truncated = True
                    break
                logger.error(f"Failed to fetch {full_name}'s commits on page {page}, will retry next run")
                return False
            if result.kind is not FetchKind.OK:
                raise GitHubAPIError(f"Unexpected {result} for {full_name}'s commits")

            commits = result.payload
            if not crawl.consume(commits):
                break  # this commit and all the older ones are known already
            if len(commits) < self.per_page:
                break
            if page >= TRUNCATION_MIN_PAGE and should_truncate(stars, crawl.oldest_date, now):
                logger.info(f"{full_name} is too big for its popularity, truncating at page {page}")
                crawl.truncated = True
                break

        repo, repo_commits = crawl.apply(repo, repo_commits)
        self.catalog.put_repo(full_name, repo)
        self.catalog.put_commits(full_name, repo_commits)
        logger.info(f"Fetched {full_name}'s commits")

        if repo.get("size") and not repo_commits["last_fetched_commit"].get("sha"):
            raise CrawlInvariantError(f"{full_name} is not empty yet has no commits?")
        return True
