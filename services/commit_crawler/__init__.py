"""
Commit Crawler Service.

This service is responsible for:
- Resolving the default branch head of a local repository
- Walking its history and extracting line-level text diffs per commit
- Aggregating added/deleted line statistics
- Fingerprinting history for resumable crawls
"""

__version__ = "1.0.0"
__description__ = "Git history crawling and diff extraction service"
