"""
Configuration Module

This module contains configuration settings for the application.
"""
import os
from pathlib import Path

# Load environment variables from .env file
from dotenv import load_dotenv

# Base directory - one level up from this file
BASE_DIR = Path(__file__).resolve().parent.parent

# Load .env file from BASE_DIR (adjust path if your .env is elsewhere)
load_dotenv(BASE_DIR / ".env")

# Flat-file object store layout
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
USERS_DIR_NAME = "users"
CONTRIBS_DIR_NAME = "contribs"
REPOS_DIR_NAME = "repos"
REPO_COMMITS_DIR_NAME = "repo_commits"
ORGS_DIR_NAME = "orgs"
NON_ORGS_FILE_NAME = "non_orgs"
META_FILE_NAME = "meta"

# GitHub API settings
GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")
GITHUB_RAW_URL = os.getenv("GITHUB_RAW_URL", "https://raw.githubusercontent.com")
GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")  # Personal Access Token for GitHub API
USER_AGENT = "github-contrib-tracker"
REQUEST_TIMEOUT_SECONDS = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))

# Crawl settings
PER_PAGE = int(os.getenv("PER_PAGE", 100))  # 100 is the max for GitHub API
FRESHNESS_HOURS = int(os.getenv("FRESHNESS_HOURS", "72"))
FIRST_TIME_FRESHNESS_HOURS = int(os.getenv("FIRST_TIME_FRESHNESS_HOURS", str(24 * 365)))

# Repository whose stargazers are never proposed for removal
PROJECT_REPO = os.getenv("PROJECT_REPO", "ghuser-io/ghuser.io")
MIN_USER_AGE_DAYS = int(os.getenv("MIN_USER_AGE_DAYS", "30"))

# Scheduler settings (server process only)
COLLECTION_INTERVAL_SECONDS = int(os.getenv("COLLECTION_INTERVAL_SECONDS", str(6 * 60 * 60)))
API_ONLY = os.getenv("API_ONLY", "false").lower() in ("1", "true", "yes")

# API settings
API_PREFIX = "/api"
