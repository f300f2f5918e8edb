"""
GitHub Client Module

This module wraps the GitHub REST API and raw.githubusercontent.com. Every
endpoint returns a FetchResult: the parsed JSON on success, or the outcome
matching one of the HTTP statuses the caller declared as expected. Any other
failure raises GitHubAPIError.
"""
import logging
import time
from datetime import datetime
from email.utils import format_datetime
from typing import Any, Callable, Dict, Iterable, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from github_contrib_tracker import config
from github_contrib_tracker.exceptions import GitHubAPIError
from github_contrib_tracker.models import STATUS_KINDS, FetchResult

logger = logging.getLogger(__name__)

RETRY_STATUSES = (500, 502, 503, 504)


class GitHubClient:
    """
    Sequential, retry-aware access to the GitHub endpoints the crawl needs.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        api_url: str = config.GITHUB_API_URL,
        raw_url: str = config.GITHUB_RAW_URL,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")
        self.headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": config.USER_AGENT,
        }
        token = token if token is not None else config.GITHUB_TOKEN
        if token:
            self.headers["Authorization"] = f"token {token}"
            logger.info("Using GitHub token for authentication")
        else:
            logger.warning(
                "No GitHub token provided. API rate limits will be restricted. "
                "Set the GITHUB_TOKEN environment variable to increase rate limits."
            )
        self.session = session or self._build_session()
        self._sleep = sleep

    def _build_session(self) -> requests.Session:
        retry = Retry(
            total=config.MAX_RETRIES,
            backoff_factor=1,
            status_forcelist=RETRY_STATUSES,
            allowed_methods=frozenset(["GET"]),
            raise_on_status=False,
        )
        session = requests.Session()
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def get(
        self,
        url: str,
        accepted: Iterable[int] = (),
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> FetchResult:
        """
        GET a JSON document.

        Args:
            url: Absolute URL
            accepted: HTTP statuses to report as a FetchResult instead of raising
            params: Query string parameters
            headers: Extra request headers

        Returns:
            FetchResult
        """
        accepted = frozenset(accepted)
        request_headers = dict(self.headers)
        if headers:
            request_headers.update(headers)

        while True:
            logger.debug(f"GET {url} {params or ''}")
            response = self.session.get(
                url,
                headers=request_headers,
                params=params,
                timeout=config.REQUEST_TIMEOUT_SECONDS,
            )
            if self._is_rate_limited(response):
                self._wait_for_rate_limit_reset(response)
                continue
            break

        if 200 <= response.status_code < 300:
            return FetchResult.ok(response.json(), response.status_code)
        if response.status_code in accepted and response.status_code in STATUS_KINDS:
            return FetchResult.from_status(response.status_code)

        logger.error(f"Failed to fetch {url}: {response.status_code}")
        logger.error(f"Response: {response.text[:200]}")
        raise GitHubAPIError(
            f"GitHub API error {response.status_code} for {url}",
            status_code=response.status_code,
        )

    def _is_rate_limited(self, response: requests.Response) -> bool:
        # Secondary rate limits answer with Retry-After while quota remains.
        return response.status_code in (403, 429) and (
            response.headers.get("X-RateLimit-Remaining") == "0"
            or response.headers.get("Retry-After") is not None
        )

    def _wait_for_rate_limit_reset(self, response: requests.Response):
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None and retry_after.isdigit():
            delay = int(retry_after)
            logger.warning(f"GitHub API secondary rate limit hit, retrying in {delay}s")
            self._sleep(delay)
            return

        rate_limit_reset = response.headers.get("X-RateLimit-Reset")
        try:
            reset_at = int(rate_limit_reset) if rate_limit_reset else None
        except ValueError:
            reset_at = None
        if reset_at is None:
            raise GitHubAPIError(
                "GitHub API rate limit exceeded without a reset time",
                status_code=response.status_code,
            )
        delay = max(0, reset_at - int(time.time())) + 1
        logger.warning(
            f"GitHub API rate limit exceeded, sleeping until "
            f"{datetime.fromtimestamp(reset_at)} ({delay}s)"
        )
        self._sleep(delay)

    def fetch_repo_metadata(
        self,
        full_name: str,
        if_modified_since: Optional[datetime] = None,
        accepted: Iterable[int] = (),
    ) -> FetchResult:
        headers = {}
        if if_modified_since is not None:
            headers["If-Modified-Since"] = format_datetime(if_modified_since, usegmt=True)
        return self.get(f"{self.api_url}/repos/{full_name}", accepted, headers=headers)

    def fetch_commits_page(
        self, full_name: str, page: int, per_page: int, accepted: Iterable[int] = ()
    ) -> FetchResult:
        return self.get(
            f"{self.api_url}/repos/{full_name}/commits",
            accepted,
            params={"page": page, "per_page": per_page},
        )

    def fetch_pull_requests_page(
        self, full_name: str, page: int, per_page: int, accepted: Iterable[int] = ()
    ) -> FetchResult:
        # Sorted from newest to oldest
        return self.get(
            f"{self.api_url}/repos/{full_name}/pulls",
            accepted,
            params={
                "state": "all",
                "sort": "created",
                "direction": "desc",
                "page": page,
                "per_page": per_page,
            },
        )

    def fetch_languages(self, full_name: str, accepted: Iterable[int] = ()) -> FetchResult:
        return self.get(f"{self.api_url}/repos/{full_name}/languages", accepted)

    def fetch_raw_file(
        self, full_name: str, file_path: str, ref: str = "HEAD", accepted: Iterable[int] = ()
    ) -> FetchResult:
        return self.get(f"{self.raw_url}/{full_name}/{ref}/{file_path}", accepted)

    def fetch_org(self, login: str, accepted: Iterable[int] = ()) -> FetchResult:
        return self.get(f"{self.api_url}/orgs/{login}", accepted)

    def fetch_stargazers_page(
        self, full_name: str, page: int, per_page: int, accepted: Iterable[int] = ()
    ) -> FetchResult:
        return self.get(
            f"{self.api_url}/repos/{full_name}/stargazers",
            accepted,
            params={"page": page, "per_page": per_page},
        )
