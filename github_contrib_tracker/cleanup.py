"""
Cleanup Module

Finds users whose profiles are candidates for removal: profiles that exist
for a while, aren't marked to be kept, show no starred contribution, and whose
owners haven't starred the project. Only reports them.

usage:
  $ python -m github_contrib_tracker.cleanup
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from github_contrib_tracker import config
from github_contrib_tracker.catalog import Catalog, is_live_user
from github_contrib_tracker.exceptions import CrawlInvariantError
from github_contrib_tracker.github_client import GitHubClient
from github_contrib_tracker.models import parse_timestamp, utc_now
from github_contrib_tracker.store import JsonStore

logger = logging.getLogger(__name__)

MAX_PAGES = 10000


def fetch_stargazers(client, full_name: str, per_page: int = config.PER_PAGE) -> List[str]:
    stargazers = []
    page = 1
    while True:
        result = client.fetch_stargazers_page(full_name, page, per_page)
        stargazers.extend(stargazer["login"] for stargazer in result.payload)
        if len(result.payload) < per_page:
            break
        if page >= MAX_PAGES:
            raise CrawlInvariantError(f"{full_name}: more than {MAX_PAGES} pages of stargazers. Infinite loop?")
        page += 1
    logger.info(f"{full_name} has {len(stargazers)} stargazers")
    return stargazers


def find_users_to_remove(
    catalog: Catalog,
    client,
    project_repo: str = config.PROJECT_REPO,
    clock: Callable[[], datetime] = utc_now,
    min_age: Optional[timedelta] = None,
) -> List[str]:
    now = clock()
    min_age = min_age if min_age is not None else timedelta(days=config.MIN_USER_AGE_DAYS)

    candidates = []
    for key, user in catalog.users.items():
        if not is_live_user(user) or user.get("keep_because"):
            continue
        created_at = parse_timestamp(user.get("created_at"))
        if created_at is None or now - created_at <= min_age:
            continue

        repos = (user.get("contribs") or {}).get("repos") or []
        if repos:
            scores = (catalog.contribs.get(key) or {}).get("repos") or {}
            total_stars = sum(score.get("stargazers_count") or 0 for score in scores.values())
            if total_stars:
                continue
        candidates.append(user["login"])

    if not candidates:
        return []
    stargazers = set(fetch_stargazers(client, project_repo))
    return [login for login in candidates if login not in stargazers]


def main():
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    catalog = Catalog.load(JsonStore(config.DATA_DIR))
    to_remove = find_users_to_remove(catalog, GitHubClient())
    if to_remove:
        print("\nUsers to remove:\n")
        for login in to_remove:
            print(login)


if __name__ == "__main__":
    main()
