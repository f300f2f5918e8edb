"""Pytest configuration and fixtures.

The crawl stages only talk to GitHub through the client's ``fetch_*`` methods,
so tests drive them with ``FakeGitHub``: a scripted stand-in that records every
call and answers with ``FetchResult`` values.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from github_contrib_tracker import config
from github_contrib_tracker.catalog import Catalog
from github_contrib_tracker.models import FetchResult
from github_contrib_tracker.store import JsonStore

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_commit(
    sha: str,
    author: str | None,
    committer: str | None = None,
    date: str = "2024-05-20T10:00:00Z",
    committer_date: str | None = None,
) -> dict:
    committer = author if committer is None else committer
    return {
        "sha": sha,
        "author": {"login": author} if author else None,
        "committer": {"login": committer} if committer else None,
        "commit": {
            "author": {"date": date},
            "committer": {"date": committer_date or date},
        },
    }


def make_repo_payload(full_name: str, **fields) -> dict:
    owner, name = full_name.split("/")
    payload = {
        "full_name": full_name,
        "name": name,
        "owner": {"login": owner, "id": 1},
        "stargazers_count": 42,
        "size": 100,
        "fork": False,
        "pushed_at": "2024-05-30T00:00:00Z",
        "node_id": "MDEwOlJlcG9zaXRvcnk=",
        "clone_url": f"https://github.com/{full_name}.git",
        "id": 1234,
    }
    payload.update(fields)
    return payload


class FakeGitHub:
    """Scripted GitHub client; unknown resources answer 404."""

    def __init__(self):
        self.repos: dict = {}
        self.commits: dict = {}
        self.pulls: dict = {}
        self.languages: dict = {}
        self.raw_files: dict = {}
        self.orgs: dict = {}
        self.stargazers: dict = {}
        self.calls: list = []

    @staticmethod
    def _answer(value):
        if isinstance(value, FetchResult):
            return value
        if isinstance(value, int):
            return FetchResult.from_status(value)
        return FetchResult.ok(value)

    @classmethod
    def _page(cls, pages, page):
        if pages is None:
            return FetchResult.from_status(404)
        if callable(pages):
            return cls._answer(pages(page))
        if page <= len(pages):
            return cls._answer(pages[page - 1])
        return FetchResult.ok([])

    def calls_to(self, endpoint: str) -> list:
        return [call for call in self.calls if call[0] == endpoint]

    def fetch_repo_metadata(self, full_name, if_modified_since=None, accepted=()):
        self.calls.append(("repo", full_name, if_modified_since))
        return self._answer(self.repos.get(full_name, 404))

    def fetch_commits_page(self, full_name, page, per_page, accepted=()):
        self.calls.append(("commits", full_name, page))
        return self._page(self.commits.get(full_name), page)

    def fetch_pull_requests_page(self, full_name, page, per_page, accepted=()):
        self.calls.append(("pulls", full_name, page))
        return self._page(self.pulls.get(full_name), page)

    def fetch_languages(self, full_name, accepted=()):
        self.calls.append(("languages", full_name))
        return self._answer(self.languages.get(full_name, 404))

    def fetch_raw_file(self, full_name, file_path, ref="HEAD", accepted=()):
        self.calls.append(("raw", full_name, file_path))
        return self._answer(self.raw_files.get((full_name, file_path), 404))

    def fetch_org(self, login, accepted=()):
        self.calls.append(("org", login))
        return self._answer(self.orgs.get(login, 404))

    def fetch_stargazers_page(self, full_name, page, per_page, accepted=()):
        self.calls.append(("stargazers", full_name, page))
        return self._page(self.stargazers.get(full_name, []), page)


@pytest.fixture
def store(tmp_path) -> JsonStore:
    return JsonStore(tmp_path / "data")


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def add_user(store):
    def _add_user(login: str, repos=(), **fields) -> dict:
        user = {
            "login": login,
            "organizations": [],
            "contribs": {"repos": list(repos)},
            "created_at": "2020-01-01T00:00:00Z",
        }
        user.update(fields)
        store.save(config.USERS_DIR_NAME, login, user)
        return user

    return _add_user


@pytest.fixture
def load_catalog(store):
    return lambda: Catalog.load(store)
