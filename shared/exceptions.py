"""
Error taxonomy for the commit crawler.

Branch resolution failures are fatal and reach the caller. Object resolution
failures are scoped to a single file and never leave the diff extractor.
"""

from typing import Optional


class CrawlerError(Exception):
    """Base class for crawler errors."""


class BranchResolutionError(CrawlerError):
    """No reference could be resolved to a head revision."""


class NoDefaultBranchError(BranchResolutionError):
    """Neither the remote default branch nor a local main branch exists."""

    def __init__(self, tried: Optional[list] = None):
        self.tried = list(tried or [])
        message = "No remote default or local master branch found"
        if self.tried:
            message = f"{message} (tried: {', '.join(self.tried)})"
        super().__init__(message)


class ObjectResolutionError(CrawlerError):
    """A blob could not be opened or read."""

    def __init__(self, object_id: str, reason: str):
        self.object_id = object_id
        self.reason = reason
        super().__init__(f"Cannot read object {object_id}: {reason}")
