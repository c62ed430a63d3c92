"""
Crawl event reporting.

Components never log through a global logger; they receive a ``CrawlReporter``
and emit typed events to it. The default ``NullReporter`` discards everything,
``LoggingReporter`` forwards events to the ``logging`` module and
``RecordingReporter`` keeps them in memory.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, List

from pydantic import BaseModel, Field


class CrawlEventType(Enum):
    """Event types emitted during a crawl or fingerprint pass."""

    HEAD_RESOLVED = "head.resolved"
    COMMIT_VISITED = "commit.visited"
    FILE_SKIPPED = "file.skipped"
    CRAWL_COMPLETED = "crawl.completed"
    FINGERPRINT_COMPLETED = "fingerprint.completed"


class SkipReason(Enum):
    """Why a file was left out of a commit's diff list."""

    BINARY = "binary"
    UNREADABLE = "unreadable"


class CrawlEvent(BaseModel):
    """A single crawl event."""

    event_type: CrawlEventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize event to JSON."""
        return self.model_dump_json()


class CrawlReporter(ABC):
    """Receives crawl events. Implementations must not raise."""

    @abstractmethod
    def emit(self, event: CrawlEvent) -> None:
        """Handle an event."""

    def head_resolved(self, revision: str, source: str) -> None:
        self.emit(CrawlEvent(
            event_type=CrawlEventType.HEAD_RESOLVED,
            data={"revision": revision, "source": source},
        ))

    def commit_visited(
        self,
        commit_hash: str,
        message: str,
        parent_hash: Optional[str],
        visited: int,
        total: int = 0,
    ) -> None:
        percent = (visited / total) * 100 if total else 0.0
        self.emit(CrawlEvent(
            event_type=CrawlEventType.COMMIT_VISITED,
            data={
                "hash": commit_hash,
                "message": message,
                "parent": parent_hash,
                "visited": visited,
                "total": total,
                "percent": percent,
            },
        ))

    def file_skipped(
        self,
        commit_hash: Optional[str],
        path: str,
        reason: SkipReason,
        error: Optional[Exception] = None,
    ) -> None:
        self.emit(CrawlEvent(
            event_type=CrawlEventType.FILE_SKIPPED,
            data={
                "hash": commit_hash,
                "path": path,
                "reason": reason.value,
                "error": str(error) if error else None,
            },
        ))

    def crawl_completed(self, emitted: int, stopped_before: Optional[str] = None) -> None:
        self.emit(CrawlEvent(
            event_type=CrawlEventType.CRAWL_COMPLETED,
            data={"emitted": emitted, "stopped_before": stopped_before},
        ))

    def fingerprint_completed(self, commit_count: int, email_count: int) -> None:
        self.emit(CrawlEvent(
            event_type=CrawlEventType.FINGERPRINT_COMPLETED,
            data={"commits": commit_count, "emails": email_count},
        ))


class NullReporter(CrawlReporter):
    """Discards every event."""

    def emit(self, event: CrawlEvent) -> None:
        pass


class LoggingReporter(CrawlReporter):
    """Forwards events to a standard library logger."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def emit(self, event: CrawlEvent) -> None:
        data = event.data
        if event.event_type == CrawlEventType.HEAD_RESOLVED:
            self.logger.debug(f"Hashing from {data['source']} ({data['revision']})")
        elif event.event_type == CrawlEventType.COMMIT_VISITED:
            self.logger.debug(
                f"commit: {data['hash']}; '{data['message']}'; parent commit: {data['parent']}"
            )
            if data["total"]:
                self.logger.info(
                    f"[{data['percent']:.1f}%] {data['hash'][:8]} {data['message']}"
                )
            else:
                self.logger.info(f"{data['hash'][:8]} {data['message']}")
        elif event.event_type == CrawlEventType.FILE_SKIPPED:
            if data["reason"] == SkipReason.UNREADABLE.value:
                self.logger.error(
                    f"Skipping {data['path']} in {data['hash']}: {data['error']}"
                )
            else:
                self.logger.debug(f"Skipping binary file {data['path']} in {data['hash']}")
        elif event.event_type == CrawlEventType.CRAWL_COMPLETED:
            self.logger.info(f"Crawl completed: {data['emitted']} commits")
        elif event.event_type == CrawlEventType.FINGERPRINT_COMPLETED:
            self.logger.info(
                f"Fingerprinted {data['commits']} commits from {data['emails']} authors"
            )


class RecordingReporter(CrawlReporter):
    """Keeps every event in memory."""

    def __init__(self):
        self.events: List[CrawlEvent] = []

    def emit(self, event: CrawlEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: CrawlEventType) -> List[CrawlEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def clear(self) -> None:
        self.events.clear()


__all__ = [
    'CrawlEventType', 'SkipReason', 'CrawlEvent',
    'CrawlReporter', 'NullReporter', 'LoggingReporter', 'RecordingReporter'
]
