"""
Consistency Module

Keeps the derived dataset referentially sound between runs: records nothing
refers to anymore are deleted, and renamed repositories are made available
under their new name as well.
"""
import logging
from typing import Iterable, List

from github_contrib_tracker.catalog import Catalog
from github_contrib_tracker.derive.orgs import referenced_owners
from github_contrib_tracker.exceptions import CrawlInvariantError

logger = logging.getLogger(__name__)


class ConsistencyMaintainer:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def strip_unreferenced_contribs(self) -> List[str]:
        """Deletes contribution lists that belong to no live user."""
        live_users = self.catalog.live_users()
        to_be_deleted = [key for key in self.catalog.contribs if key not in live_users]
        for key in to_be_deleted:
            self.catalog.delete_contrib(key)
        logger.info(f"Deleted {len(to_be_deleted)} unreferenced contribution lists")
        return to_be_deleted

    def strip_unreferenced_repos(self, referenced: Iterable[str]) -> List[str]:
        """Deletes repos that no live user contributed to."""
        referenced = set(referenced)
        to_be_deleted = [full_name for full_name in self.catalog.repos if full_name not in referenced]
        for full_name in to_be_deleted:
            self.catalog.delete_repo(full_name)
        logger.info(f"Deleted {len(to_be_deleted)} unreferenced repos")
        return to_be_deleted

    def strip_unreferenced_orgs(self) -> List[str]:
        """Deletes organizations no user belongs to and no contribution is owned by."""
        user_orgs, contrib_owners = referenced_owners(self.catalog)
        referenced = set(user_orgs) | set(contrib_owners)
        to_be_deleted = [login for login in self.catalog.orgs if login not in referenced]
        for login in to_be_deleted:
            self.catalog.delete_org(login)
        logger.info(f"Deleted {len(to_be_deleted)} unreferenced organizations")
        return to_be_deleted

    def create_renamed_repos(self) -> List[str]:
        """
        Copies repos that were renamed or moved under their latest name too.

        Contributions were recorded under the old name; the copy makes the repo
        reachable under the name GitHub uses today.
        """
        created = []
        for old_full_name in list(self.catalog.repos):
            repo = self.catalog.repo(old_full_name)
            if repo.get("removed_from_github"):
                continue

            latest_full_name = repo.get("full_name")
            if not latest_full_name:
                raise CrawlInvariantError(f"{old_full_name} has no full name")

            if latest_full_name != old_full_name and latest_full_name not in self.catalog.repos:
                self.catalog.put_repo(latest_full_name, repo)
                self.catalog.put_commits(latest_full_name, self.catalog.commits(old_full_name))
                created.append(latest_full_name)
                logger.info(f"{old_full_name} was renamed to {latest_full_name}")
        return created
