"""
Data Pipeline Module

This module orchestrates one run of the crawl: repositories are refreshed,
the dataset is repaired, and contribution scores are recomputed.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from github_contrib_tracker import config
from github_contrib_tracker.catalog import Catalog
from github_contrib_tracker.crawl.repos import RepoCrawler
from github_contrib_tracker.derive.consistency import ConsistencyMaintainer
from github_contrib_tracker.derive.orgs import OrgClassifier
from github_contrib_tracker.derive.scoring import ContribScorer
from github_contrib_tracker.github_client import GitHubClient
from github_contrib_tracker.models import utc_now
from github_contrib_tracker.store import JsonStore

logger = logging.getLogger(__name__)


class DataPipeline:
    """
    Runs the crawl, consistency and scoring stages over the store.
    """

    def __init__(
        self,
        store: Optional[JsonStore] = None,
        client=None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store if store is not None else JsonStore(config.DATA_DIR)
        self.client = client if client is not None else GitHubClient()
        self.clock = clock

    def run(self, first_time: bool = False) -> Dict[str, int]:
        """Run the complete data pipeline and return the run summary."""
        start_time = self.clock()
        logger.info(f"Starting data pipeline run at {start_time}")

        catalog = Catalog.load(self.store)
        crawler = RepoCrawler(catalog, self.client, self.clock)
        maintainer = ConsistencyMaintainer(catalog)

        live_users = catalog.live_users()
        referenced = catalog.referenced_repos()
        logger.info(f"Found {len(referenced)} repos referenced by {len(live_users)} users")
        for full_name in referenced:
            catalog.ensure_repo(full_name)

        crawler.fetch_repos(referenced, first_time)
        maintainer.strip_unreferenced_repos(referenced)
        crawler.fetch_all_details(list(catalog.repos))
        maintainer.create_renamed_repos()

        maintainer.strip_unreferenced_contribs()
        OrgClassifier(catalog, self.client).classify_all()
        maintainer.strip_unreferenced_orgs()
        num_contribs = ContribScorer(catalog).run()

        meta = {"num_users": len(live_users), "num_contribs": num_contribs}
        catalog.put_meta(meta)

        duration = (self.clock() - start_time).total_seconds()
        logger.info(f"Data pipeline run completed in {duration:.2f} seconds: {meta}")
        return meta
