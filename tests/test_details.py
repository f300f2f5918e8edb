"""Tests for the pull request, languages and settings fetchers."""

from __future__ import annotations

import pytest

from github_contrib_tracker.catalog import Catalog
from github_contrib_tracker.crawl.details import RepoDetailsFetcher
from github_contrib_tracker.exceptions import CrawlInvariantError
from github_contrib_tracker.models import FetchResult

PER_PAGE = 2
OPEN_REPO = {
    "full_name": "owner/repo",
    "fetching_since": "2024-06-01T00:00:00Z",
    "fetched_at": "2024-03-01T00:00:00Z",
    "pushed_at": "2024-05-30T00:00:00Z",
}


def _fetcher(store, github, **repo_fields):
    store.save("repos", "owner/repo", dict(OPEN_REPO, **repo_fields))
    return RepoDetailsFetcher(Catalog.load(store), github, per_page=PER_PAGE)


def _pr(login, created_at="2024-05-01T00:00:00Z"):
    return {"user": {"login": login}, "created_at": created_at}


def test_pull_request_authors_are_merged_with_known_ones(store, github):
    github.pulls["owner/repo"] = [[_pr("alice"), _pr("bob")], [_pr("alice")]]
    fetcher = _fetcher(store, github, pulls_authors=["carol"])

    assert fetcher.fetch_pull_requests("owner/repo") is True

    assert store.load("repos", "owner/repo")["pulls_authors"] == ["alice", "bob", "carol"]
    assert len(github.calls_to("pulls")) == 2


def test_pull_requests_stop_once_older_than_last_fetch(store, github):
    github.pulls["owner/repo"] = [
        [_pr("alice"), _pr("bob", created_at="2024-02-01T00:00:00Z")],
        [_pr("dave"), _pr("erin")],
    ]
    fetcher = _fetcher(store, github)

    fetcher.fetch_pull_requests("owner/repo")

    assert store.load("repos", "owner/repo")["pulls_authors"] == ["alice", "bob"]
    assert len(github.calls_to("pulls")) == 1


def test_pull_requests_server_error_is_not_fatal(store, github):
    github.pulls["owner/repo"] = [[_pr("alice"), _pr("bob")], 502]
    fetcher = _fetcher(store, github, fetched_at=None)

    assert fetcher.fetch_pull_requests("owner/repo") is False
    assert store.load("repos", "owner/repo")["pulls_authors"] == ["alice", "bob"]


def test_pull_requests_not_found(store, github):
    fetcher = _fetcher(store, github)

    assert fetcher.fetch_pull_requests("owner/repo") is False
    assert "pulls_authors" not in store.load("repos", "owner/repo")


def test_pull_requests_page_cap(store, github):
    github.pulls["owner/repo"] = lambda page: [_pr("alice"), _pr("bob")]
    fetcher = _fetcher(store, github, fetched_at=None)

    with pytest.raises(CrawlInvariantError):
        fetcher.fetch_pull_requests("owner/repo")


def test_unchanged_repo_skips_details(store, github):
    fetcher = _fetcher(store, github, fetching_since=None)

    assert fetcher.fetch_pull_requests("owner/repo") is False
    assert fetcher.fetch_languages("owner/repo") is False
    assert fetcher.fetch_settings("owner/repo") is False
    assert github.calls == []


def test_languages_get_colors(store, github):
    github.languages["owner/repo"] = {"Python": 1200, "Brainfuck": 3}
    fetcher = _fetcher(store, github)

    assert fetcher.fetch_languages("owner/repo") is True

    assert store.load("repos", "owner/repo")["languages"] == {
        "Python": {"bytes": 1200, "color": "#3572A5"},
        "Brainfuck": {"bytes": 3, "color": "#cccccc"},
    }


def test_languages_not_found(store, github):
    fetcher = _fetcher(store, github)

    assert fetcher.fetch_languages("owner/repo") is False
    assert "languages" not in store.load("repos", "owner/repo")


def test_settings_fall_back_to_second_location(store, github):
    github.raw_files[("owner/repo", ".ghuser.io.json")] = FetchResult.from_status(503)
    github.raw_files[("owner/repo", ".github/ghuser.io.json")] = {"repos": {"hide": True}}
    fetcher = _fetcher(store, github)

    assert fetcher.fetch_settings("owner/repo") is True

    assert store.load("repos", "owner/repo")["settings"] == {"repos": {"hide": True}}
    assert [call[2] for call in github.calls_to("raw")] == [".ghuser.io.json", ".github/ghuser.io.json"]


def test_missing_settings_leave_repo_untouched(store, github):
    fetcher = _fetcher(store, github)

    assert fetcher.fetch_settings("owner/repo") is False
    assert "settings" not in store.load("repos", "owner/repo")
