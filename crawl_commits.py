#!/usr/bin/env python3
"""
Commit Crawler command line entry point.

Usage:
    python crawl_commits.py crawl [REPO_PATH] [OPTIONS]
    python crawl_commits.py fingerprint [REPO_PATH] --json

Examples:
    python crawl_commits.py crawl .                        # Crawl the whole default branch
    python crawl_commits.py crawl . --limit 20             # Crawl the 20 most recent commits
    python crawl_commits.py fingerprint . --json > known.json
    python crawl_commits.py crawl . --known known.json     # Crawl only commits newer than known.json
"""

from services.commit_crawler.cli import cli

if __name__ == "__main__":
    cli()
