"""
Scoring Module

This module turns crawled repositories into per-user contribution lists: the
share of each repository's commits a user authored, plus the organizations
the user meaningfully contributed to.
"""
import logging
from typing import Any, Callable, Dict, List, Tuple

from github_contrib_tracker.catalog import Catalog, Record, owner_of

logger = logging.getLogger(__name__)

# GitHub's merge bot; its commits are not real contributions.
WEB_FLOW_LOGIN = "web-flow"


def is_scorable(repo: Record) -> bool:
    return bool(
        repo.get("full_name")  # crawled at least once
        and not repo.get("removed_from_github")
        and not repo.get("ghuser_insignificant")
    )


def score_repo(login: str, repo: Record) -> Dict[str, Any]:
    contributors = repo.get("contributors") or {}
    total_commits = sum(
        count for contributor, count in contributors.items() if contributor != WEB_FLOW_LOGIN
    )
    user_commits = contributors.get(login, 0) if login != WEB_FLOW_LOGIN else 0
    # 0 for "no contribution" and for an empty history alike
    percentage = 100 * user_commits / total_commits if user_commits and total_commits else 0
    return {
        "full_name": repo["full_name"],
        "name": repo.get("name"),
        "stargazers_count": repo.get("stargazers_count"),
        "percentage": percentage,
        "total_commits_count": total_commits,
    }


def strip_untouched_forks(scores: Dict[str, Dict[str, Any]], repos: Dict[str, Record]) -> Dict[str, Dict[str, Any]]:
    """Drops contributions to forks the user did 0% of."""
    return {
        full_name: score
        for full_name, score in scores.items()
        if not (repos.get(full_name, {}).get("fork") and score["percentage"] == 0)
    }


def contrib_organizations(scores: Dict[str, Dict[str, Any]], is_org: Callable[[str], bool]) -> List[str]:
    owners: Dict[str, None] = {}
    for full_name, score in scores.items():
        if not score["percentage"]:
            continue
        owners.setdefault(owner_of(full_name))
        if score.get("full_name"):
            owners.setdefault(owner_of(score["full_name"]))
    return [owner for owner in owners if is_org(owner)]


class ContribScorer:
    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def score_user(self, key: str, user: Record) -> Tuple[Record, int]:
        """
        Rebuild the contribution list of one user.

        Returns:
            (contribution list, number of contributions scored)
        """
        login = user.get("login")
        scores = {}
        for full_name in (user.get("contribs") or {}).get("repos") or []:
            repo = self.catalog.repos.get(full_name)
            if repo is None or not is_scorable(repo):
                continue
            scores[full_name] = score_repo(login, repo)
        num_contribs = len(scores)

        scores = strip_untouched_forks(scores, self.catalog.repos)
        contrib = dict(self.catalog.contribs.get(key, {}))
        contrib["repos"] = scores
        contrib["organizations"] = contrib_organizations(scores, self.catalog.is_org)
        return contrib, num_contribs

    def run(self) -> int:
        """
        Score every live user.

        Returns:
            Number of contributions scored in this run
        """
        num_contribs = 0
        for key, user in self.catalog.live_users().items():
            contrib, num_user_contribs = self.score_user(key, user)
            self.catalog.put_contrib(key, contrib)
            num_contribs += num_user_contribs
            logger.debug(f"Calculated scores for {user.get('login')}")
        logger.info(f"Calculated {num_contribs} contributions")
        return num_contribs
