"""
API Module

Read-only access to the derived dataset, straight from the flat-file store.
"""
import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from github_contrib_tracker import config
from github_contrib_tracker.store import JsonStore

logger = logging.getLogger(__name__)
router = APIRouter()


def get_store() -> JsonStore:
    return JsonStore(config.DATA_DIR)


def _load_or_404(store: JsonStore, kind: str, key: str, what: str) -> Dict[str, Any]:
    record = store.load(kind, key)
    if not record:
        raise HTTPException(status_code=404, detail=f"{what} {key} not found")
    return record


@router.get("/meta", response_model=Dict[str, int])
def get_meta(store: JsonStore = Depends(get_store)):
    """
    Get the summary of the latest crawl run.
    """
    return store.load_singleton(config.META_FILE_NAME)


@router.get("/users/{login}/contribs")
def get_user_contribs(login: str, store: JsonStore = Depends(get_store)):
    """
    Get the scored contributions and organizations of a user.
    """
    return _load_or_404(store, config.CONTRIBS_DIR_NAME, login, "Contributions of")


@router.get("/repos/{owner}/{name}")
def get_repo(owner: str, name: str, store: JsonStore = Depends(get_store)):
    return _load_or_404(store, config.REPOS_DIR_NAME, f"{owner}/{name}", "Repository")


@router.get("/orgs/{login}")
def get_org(login: str, store: JsonStore = Depends(get_store)):
    return _load_or_404(store, config.ORGS_DIR_NAME, login, "Organization")
