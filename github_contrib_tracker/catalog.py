"""
Catalog Module

This module loads every entity of the dataset from the store at the start of a
run and hands out working copies to the pipeline stages. Stages transform a copy
and hand it back through ``put_*``, which updates the in-memory view and persists
the record in one step.
"""
import copy
import logging
from typing import Any, Dict, Iterator, List, Set, Tuple

from github_contrib_tracker import config
from github_contrib_tracker.exceptions import CrawlInvariantError
from github_contrib_tracker.store import JsonStore

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


def is_deleted_user(user: Record) -> bool:
    return bool(user.get("deleted_because"))


def is_live_user(user: Record) -> bool:
    return not is_deleted_user(user) and not user.get("removed_from_github")


def owner_of(full_name: str) -> str:
    return full_name.split("/")[0]


class Catalog:
    """In-memory view over users, contribs, repos, repo commits, orgs and run metadata."""

    def __init__(self, store: JsonStore):
        self.store = store
        self.users: Dict[str, Record] = {}
        self.contribs: Dict[str, Record] = {}
        self.repos: Dict[str, Record] = {}
        self.repo_commits: Dict[str, Record] = {}
        self.orgs: Dict[str, Record] = {}
        self.non_orgs: Set[str] = set()
        self.meta: Record = {}

    @classmethod
    def load(cls, store: JsonStore) -> "Catalog":
        catalog = cls(store)
        for key in store.keys(config.USERS_DIR_NAME):
            catalog.users[key] = store.load(config.USERS_DIR_NAME, key)
        for key in store.keys(config.CONTRIBS_DIR_NAME):
            catalog.contribs[key] = store.load(config.CONTRIBS_DIR_NAME, key)
        for key in store.keys(config.REPOS_DIR_NAME):
            catalog.repos[key] = store.load(config.REPOS_DIR_NAME, key)
            catalog.repo_commits[key] = store.load(config.REPO_COMMITS_DIR_NAME, key)
        for key in store.keys(config.ORGS_DIR_NAME):
            catalog.orgs[key] = store.load(config.ORGS_DIR_NAME, key)
        catalog.non_orgs = set(store.load_singleton(config.NON_ORGS_FILE_NAME).get("non_orgs", []))
        catalog.meta = store.load_singleton(config.META_FILE_NAME)
        logger.info(
            f"Loaded {len(catalog.users)} users, {len(catalog.contribs)} contribution lists, "
            f"{len(catalog.repos)} repos and {len(catalog.orgs)} organizations"
        )
        return catalog

    # Users

    def live_users(self) -> Dict[str, Record]:
        return {key: user for key, user in self.users.items() if is_live_user(user)}

    def known_users(self) -> Dict[str, Record]:
        """Users that were not deleted on request, including ones gone from GitHub."""
        return {key: user for key, user in self.users.items() if not is_deleted_user(user)}

    def iter_user_repos(self, users: Dict[str, Record]) -> Iterator[Tuple[str, str]]:
        for key, user in users.items():
            for full_name in (user.get("contribs") or {}).get("repos") or []:
                if not full_name:
                    raise CrawlInvariantError(f"{key} references a repo without a name")
                yield key, full_name

    def referenced_repos(self) -> List[str]:
        """Full names referenced by live users, in first-seen order."""
        referenced: Dict[str, None] = {}
        for _, full_name in self.iter_user_repos(self.live_users()):
            referenced.setdefault(full_name)
        return list(referenced)

    # Repos and their commit checkpoints

    def repo(self, full_name: str) -> Record:
        return copy.deepcopy(self.repos.get(full_name, {}))

    def commits(self, full_name: str) -> Record:
        return copy.deepcopy(self.repo_commits.get(full_name, {}))

    def put_repo(self, full_name: str, record: Record):
        self.repos[full_name] = record
        self.store.save(config.REPOS_DIR_NAME, full_name, record)

    def put_commits(self, full_name: str, record: Record):
        self.repo_commits[full_name] = record
        self.store.save(config.REPO_COMMITS_DIR_NAME, full_name, record)

    def ensure_repo(self, full_name: str):
        """Create empty placeholders so a referenced repo is tracked from now on."""
        if full_name not in self.repos:
            self.put_repo(full_name, {})
        if not self.store.exists(config.REPO_COMMITS_DIR_NAME, full_name):
            self.put_commits(full_name, self.repo_commits.get(full_name, {}))

    def delete_repo(self, full_name: str):
        self.repos.pop(full_name, None)
        self.repo_commits.pop(full_name, None)
        self.store.delete(config.REPOS_DIR_NAME, full_name)
        self.store.delete(config.REPO_COMMITS_DIR_NAME, full_name)

    # Contribution lists

    def put_contrib(self, key: str, record: Record):
        self.contribs[key] = record
        self.store.save(config.CONTRIBS_DIR_NAME, key, record)

    def delete_contrib(self, key: str):
        self.contribs.pop(key, None)
        self.store.delete(config.CONTRIBS_DIR_NAME, key)

    # Organizations

    def is_org(self, login: str) -> bool:
        return bool(self.orgs.get(login, {}).get("login"))

    def put_org(self, login: str, record: Record):
        self.orgs[login] = record
        self.store.save(config.ORGS_DIR_NAME, login, record)

    def delete_org(self, login: str):
        self.orgs.pop(login, None)
        self.store.delete(config.ORGS_DIR_NAME, login)

    def add_non_org(self, login: str):
        self.non_orgs.add(login)
        self.store.save_singleton(config.NON_ORGS_FILE_NAME, {"non_orgs": sorted(self.non_orgs)})

    # Run summary

    def put_meta(self, record: Record):
        self.meta = record
        self.store.save_singleton(config.META_FILE_NAME, record)
