"""
Organizations Module

Resolves repository owners and user affiliations to GitHub organizations.
Owners confirmed to be plain users are cached in the non-orgs list so they
are not queried again on the next run.
"""
import logging
from typing import Dict, List, Tuple

from github_contrib_tracker.catalog import Catalog, Record, owner_of
from github_contrib_tracker.exceptions import GitHubAPIError
from github_contrib_tracker.models import FetchKind

logger = logging.getLogger(__name__)

ORG_ACCEPTED = (404,)

# Volatile or bulky fields of the /orgs endpoint that are not kept
STRIPPED_ORG_FIELDS = (
    "id", "node_id", "events_url", "hooks_url", "issues_url", "repos_url", "members_url",
    "public_members_url", "description", "company", "blog", "location", "email",
    "has_organization_projects", "has_repository_projects", "public_repos", "public_gists",
    "followers", "following", "is_verified", "total_private_repos", "owned_private_repos",
    "private_gists", "disk_usage", "billing_email", "plan", "default_repository_permission",
    "members_can_create_repositories", "two_factor_requirement_enabled", "updated_at",
    "collaborators",
)


def _unique(values) -> List[str]:
    return list(dict.fromkeys(value for value in values if value))


def referenced_owners(catalog: Catalog) -> Tuple[List[str], List[str]]:
    """
    Owners the dataset refers to.

    Returns:
        (organizations listed by users, owners of the repos users contributed to)
    """
    users = catalog.known_users()
    user_orgs = _unique(org for user in users.values() for org in user.get("organizations") or [])

    contrib_owners = []
    for _, full_name in catalog.iter_user_repos(users):
        contrib_owners.append(owner_of(full_name))
        current_name = catalog.repos.get(full_name, {}).get("full_name")
        if current_name:
            contrib_owners.append(owner_of(current_name))
    return user_orgs, _unique(contrib_owners)


def strip_org_fields(current: Record, payload: Dict) -> Record:
    org = {**current, **payload}
    for field in STRIPPED_ORG_FIELDS:
        org.pop(field, None)
    return org


class OrgClassifier:
    def __init__(self, catalog: Catalog, client):
        self.catalog = catalog
        self.client = client
        self._user_logins = {user.get("login") for user in catalog.known_users().values()}

    def classify(self, owner: str) -> bool:
        """
        Decide whether ``owner`` is an organization, fetching it when unknown.

        Returns:
            True if ``owner`` is an organization
        """
        if self.catalog.orgs.get(owner, {}).get("avatar_url"):
            logger.debug(f"Organization {owner} is already known")
            return True
        if owner in self.catalog.non_orgs:
            logger.debug(f"{owner} is a user")
            return False
        if owner in self._user_logins:
            logger.info(f"{owner} is a user")
            self.catalog.add_non_org(owner)
            return False

        result = self.client.fetch_org(owner, accepted=ORG_ACCEPTED)
        if result.kind is FetchKind.NOT_FOUND:
            logger.info(f"{owner} must be a user")
            self.catalog.add_non_org(owner)
            return False
        if result.kind is not FetchKind.OK:
            raise GitHubAPIError(f"Unexpected {result} for organization {owner}")

        # Keyed by the owner as users spell it; the record keeps GitHub's login.
        self.catalog.put_org(owner, strip_org_fields(self.catalog.orgs.get(owner, {}), result.payload))
        logger.info(f"Fetched organization {owner}")
        return True

    def classify_all(self) -> int:
        user_orgs, contrib_owners = referenced_owners(self.catalog)
        num_orgs = 0
        for owner in _unique(user_orgs + contrib_owners):
            if self.classify(owner):
                num_orgs += 1
        logger.info(f"Found {num_orgs} organizations among referenced owners")
        return num_orgs
