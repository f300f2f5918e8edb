"""
Repository Details Module

Fetches what the dataset keeps about a repository besides its commits: pull
request authors, languages and the optional settings file.
"""
import logging
from typing import Iterable

from github_contrib_tracker import config
from github_contrib_tracker.catalog import Catalog
from github_contrib_tracker.crawl.freshness import has_changed
from github_contrib_tracker.exceptions import CrawlInvariantError
from github_contrib_tracker.languages import color_for
from github_contrib_tracker.models import FetchKind, parse_timestamp

logger = logging.getLogger(__name__)

MAX_PAGES = 10000
PULL_REQUESTS_ACCEPTED = (404, 500, 502)
LANGUAGES_ACCEPTED = (404,)
SETTINGS_ACCEPTED = (404, 503)
SETTINGS_FILE_NAMES = (".ghuser.io.json", ".github/ghuser.io.json")


class RepoDetailsFetcher:
    def __init__(self, catalog: Catalog, client, per_page: int = config.PER_PAGE):
        self.catalog = catalog
        self.client = client
        self.per_page = per_page

    def fetch_pull_requests(self, full_name: str) -> bool:
        """
        Collect the logins of pull request authors, newest pull requests first.

        Pages older than the previous successful fetch are already covered. Each
        page is persisted as soon as it is read.
        """
        repo = self.catalog.repo(full_name)
        if not has_changed(repo):
            logger.info(f"{full_name} hasn't changed")
            return False

        authors = set(repo.get("pulls_authors") or [])
        fetched_at = parse_timestamp(repo.get("fetched_at"))
        page = 1
        while True:
            logger.info(f"Fetching {full_name}'s pull requests [page {page}]")
            result = self.client.fetch_pull_requests_page(
                full_name, page, self.per_page, accepted=PULL_REQUESTS_ACCEPTED
            )
            if result.kind is FetchKind.NOT_FOUND:
                logger.info(f"{full_name} was just removed from GitHub")
                return False
            if result.kind is FetchKind.SERVER_ERROR:
                # Flaky on some big repos; missing a few authors this run is fine.
                logger.warning(
                    f"Server error {result.status_code} on {full_name}'s pull requests, moving on"
                )
                return False

            pulls = result.payload
            authors.update(pr["user"]["login"] for pr in pulls if pr.get("user"))
            repo = self.catalog.repo(full_name)
            repo["pulls_authors"] = sorted(authors)
            self.catalog.put_repo(full_name, repo)

            if len(pulls) < self.per_page:
                break
            oldest = parse_timestamp(pulls[-1].get("created_at")) if pulls else None
            if fetched_at is not None and oldest is not None and fetched_at > oldest:
                break
            if page >= MAX_PAGES:
                raise CrawlInvariantError(f"{full_name}: more than {MAX_PAGES} pages of pull requests. Infinite loop?")
            page += 1

        logger.info(f"Fetched {full_name}'s pull requests")
        return True

    def fetch_languages(self, full_name: str) -> bool:
        repo = self.catalog.repo(full_name)
        if not has_changed(repo):
            logger.info(f"{full_name} hasn't changed")
            return False

        result = self.client.fetch_languages(full_name, accepted=LANGUAGES_ACCEPTED)
        if result.kind is FetchKind.NOT_FOUND:
            logger.info(f"{full_name} was just removed from GitHub")
            return False

        repo["languages"] = {
            language: {"bytes": size, "color": color_for(language)}
            for language, size in result.payload.items()
        }
        self.catalog.put_repo(full_name, repo)
        logger.info(f"Fetched {full_name}'s languages")
        return True

    def fetch_settings(self, full_name: str, file_names: Iterable[str] = SETTINGS_FILE_NAMES) -> bool:
        repo = self.catalog.repo(full_name)
        if not has_changed(repo):
            logger.info(f"{full_name} hasn't changed")
            return False

        for file_name in file_names:
            result = self.client.fetch_raw_file(full_name, file_name, accepted=SETTINGS_ACCEPTED)
            if result.kind in (FetchKind.NOT_FOUND, FetchKind.SERVER_ERROR):
                continue
            repo["settings"] = result.payload
            self.catalog.put_repo(full_name, repo)
            logger.info(f"Fetched {full_name}'s settings from {file_name}")
            return True

        logger.info(f"{full_name} has no settings")
        return False
