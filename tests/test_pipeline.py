"""End-to-end tests of a pipeline run against a scripted GitHub."""

from __future__ import annotations

import pytest
from conftest import make_commit, make_repo_payload

from github_contrib_tracker.exceptions import GitHubAPIError
from github_contrib_tracker.pipeline import DataPipeline


def _snapshot(store):
    return {
        path.relative_to(store.root).as_posix(): path.read_text()
        for path in sorted(store.root.rglob("*.json"))
    }


@pytest.fixture
def world(store, github, add_user):
    add_user("alice", repos=["acme/tool", "old/name", "alice/fork"], organizations=["guild"])
    add_user("bob", repos=["spam/repo"], deleted_because="spam")
    store.save("contribs", "ghost", {"repos": {}, "organizations": []})
    store.save("repos", "stale/repo", {"full_name": "stale/repo"})
    store.save("orgs", "defunct", {"login": "defunct", "avatar_url": "x"})

    github.repos["acme/tool"] = make_repo_payload("acme/tool")
    github.repos["old/name"] = make_repo_payload("new/name")
    github.repos["alice/fork"] = make_repo_payload("alice/fork", fork=True, stargazers_count=3)
    github.commits["acme/tool"] = [[
        make_commit("t2", "alice"),
        make_commit("t1", "bob", "web-flow"),
    ]]
    github.commits["old/name"] = [[make_commit("n1", "alice")]]
    github.commits["alice/fork"] = [[make_commit("f1", "bob")]]
    github.languages["acme/tool"] = {"Go": 5000}
    github.orgs["acme"] = {"login": "acme", "avatar_url": "https://avatars.example/acme"}
    github.orgs["guild"] = {"login": "guild", "avatar_url": "https://avatars.example/guild"}
    return store


def test_run_builds_the_dataset(world, github, clock):
    store = world

    meta = DataPipeline(store, github, clock).run()

    assert meta == {"num_users": 1, "num_contribs": 3}
    assert store.load_singleton("meta") == meta

    contrib = store.load("contribs", "alice")
    assert set(contrib["repos"]) == {"acme/tool", "old/name"}
    assert contrib["repos"]["acme/tool"]["percentage"] == 50
    assert contrib["repos"]["acme/tool"]["total_commits_count"] == 2
    assert contrib["repos"]["old/name"]["full_name"] == "new/name"
    assert contrib["organizations"] == ["acme"]

    tool = store.load("repos", "acme/tool")
    assert tool["fetched_at"] == "2024-06-01T12:00:00Z"
    assert "fetching_since" not in tool
    assert tool["languages"] == {"Go": {"bytes": 5000, "color": "#00ADD8"}}

    assert store.keys("contribs") == ["alice"]
    assert store.keys("orgs") == ["acme", "guild"]
    assert store.load_singleton("non_orgs") == {"non_orgs": ["alice", "new", "old"]}


def test_renamed_repo_exists_under_both_names(world, github, clock):
    store = world

    DataPipeline(store, github, clock).run()

    old = store.load("repos", "old/name")
    new = store.load("repos", "new/name")
    assert old["contributors"] == new["contributors"] == {"alice": 1}
    assert store.load("repo_commits", "new/name") == store.load("repo_commits", "old/name")


def test_referential_integrity_after_run(world, github, clock):
    store = world

    DataPipeline(store, github, clock).run()

    referenced = {"acme/tool", "old/name", "alice/fork"}
    renamed = {store.load("repos", key)["full_name"] for key in referenced}
    assert set(store.keys("repos")) <= referenced | renamed
    assert "stale/repo" not in store.keys("repos")
    assert set(store.keys("repo_commits")) == set(store.keys("repos"))
    assert set(store.keys("orgs")) <= {"guild", "acme", "old", "new", "alice"}


def test_second_run_is_idempotent(world, github, clock):
    store = world
    pipeline = DataPipeline(store, github, clock)

    first_meta = pipeline.run()
    first = _snapshot(store)
    num_calls = len(github.calls)
    second_meta = pipeline.run()

    assert second_meta == first_meta
    assert _snapshot(store) == first
    assert len(github.calls) == num_calls


def test_interrupted_run_resumes_from_the_marker(world, github, clock):
    store = world
    flaky = {"fail": True}

    def tool_commits(page):
        if flaky["fail"]:
            raise GitHubAPIError("connection reset")
        return [make_commit("t2", "alice"), make_commit("t1", "bob")]

    github.commits["acme/tool"] = tool_commits

    with pytest.raises(GitHubAPIError):
        DataPipeline(store, github, clock).run()
    assert store.load("repos", "acme/tool")["fetching_since"] == "2024-06-01T12:00:00Z"

    flaky["fail"] = False
    DataPipeline(store, github, clock).run()

    tool = store.load("repos", "acme/tool")
    assert "fetching_since" not in tool
    assert tool["contributors"] == {"alice": 1, "bob": 1}
    assert len(github.calls_to("repo")) == 3


def test_removed_repos_are_not_scored(world, github, clock):
    store = world
    del github.repos["acme/tool"]

    DataPipeline(store, github, clock).run()

    assert store.load("repos", "acme/tool") == {"removed_from_github": True}
    assert "acme/tool" not in store.load("contribs", "alice")["repos"]
