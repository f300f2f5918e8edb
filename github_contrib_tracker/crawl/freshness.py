"""
Freshness Module

Decides whether a repository needs to be fetched again.
"""
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from github_contrib_tracker import config
from github_contrib_tracker.models import parse_timestamp


def freshness_window(first_time: bool) -> timedelta:
    hours = config.FIRST_TIME_FRESHNESS_HOURS if first_time else config.FRESHNESS_HOURS
    return timedelta(hours=hours)


def metadata_skip_reason(repo: Dict[str, Any], now: datetime, first_time: bool) -> Optional[str]:
    """
    Returns why the metadata of ``repo`` must not be fetched now, or None.

    A repo with ``fetching_since`` set was started by an earlier run that never
    finished; its sub-fetchers pick it up from their own checkpoints.
    """
    if repo.get("fetching_since"):
        return "is still being fetched"
    fetched_at = parse_timestamp(repo.get("fetched_at"))
    if fetched_at is not None and now - fetched_at < freshness_window(first_time):
        return "is still fresh"
    if repo.get("removed_from_github"):
        # Resurrected repos are not handled.
        return "was removed from GitHub in the past"
    return None


def has_changed(repo: Dict[str, Any]) -> bool:
    """True when the sub-fetchers have new data to look at for ``repo``."""
    if not repo.get("fetching_since"):
        return False
    fetched_at = parse_timestamp(repo.get("fetched_at"))
    pushed_at = parse_timestamp(repo.get("pushed_at"))
    if fetched_at is not None and pushed_at is not None and fetched_at > pushed_at:
        return False
    return True
