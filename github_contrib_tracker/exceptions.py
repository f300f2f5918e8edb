"""Exceptions for the crawler."""
from typing import Optional


class GitHubAPIError(Exception):
    """Error from GitHub API that the caller did not declare as expected."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        rate_limit_reset: Optional[int] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.rate_limit_reset = rate_limit_reset  # Unix timestamp when rate limit resets
        super().__init__(message)


class CrawlInvariantError(RuntimeError):
    """The dataset or GitHub broke an assumption the crawl relies on.

    Aborts the whole run; the next scheduled run starts again from the
    persisted checkpoints.
    """
