"""
Sync types for the Kobo highlights pipeline.

Defines the per-book result returned by the reconciler, the run summary
aggregated by the runner, and the directory interface that a destination
(Notion, or a fake in tests) has to provide.
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class SyncStatus(Enum):
    """Status of a sync operation."""
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class SyncAction(Enum):
    """What the reconciler did with a book."""
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED_AMBIGUOUS = "skipped_ambiguous"
    SKIPPED_ALREADY_SYNCED = "skipped_already_synced"
    FAILED = "failed"


@dataclass
class DestinationPage:
    """A page in the destination database matched or created for a book."""
    page_id: str
    title: str
    synced: bool = False


@dataclass
class SyncResult:
    """Result of syncing a single book."""
    title: str
    status: SyncStatus
    action: SyncAction
    target_id: Optional[str] = None  # Page ID in the destination
    error_message: Optional[str] = None
    highlights_uploaded: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SyncSummary:
    """Aggregated results of a full sync pass."""
    results: List[SyncResult] = field(default_factory=list)

    def add(self, result: SyncResult) -> None:
        self.results.append(result)

    def counts(self) -> Dict[SyncAction, int]:
        counter = Counter(result.action for result in self.results)
        return {action: counter.get(action, 0) for action in SyncAction}

    @property
    def failed(self) -> List[SyncResult]:
        return [r for r in self.results if r.status == SyncStatus.FAILED]

    @property
    def highlights_uploaded(self) -> int:
        return sum(r.highlights_uploaded for r in self.results)

    def log_summary(self) -> None:
        counts = self.counts()
        logger.info(
            f"🎉 Sync completed: {len(self.results)} books, "
            f"{counts[SyncAction.CREATED]} created, "
            f"{counts[SyncAction.UPDATED]} updated, "
            f"{counts[SyncAction.SKIPPED_ALREADY_SYNCED]} already synced, "
            f"{counts[SyncAction.SKIPPED_AMBIGUOUS]} ambiguous, "
            f"{counts[SyncAction.FAILED]} failed "
            f"({self.highlights_uploaded} highlights uploaded)"
        )
        for result in self.failed:
            logger.error(f"❌ {result.title}: {result.error_message}")


class PageDirectory(ABC):
    """
    Abstract destination for highlight pages.

    Implementations look pages up by title, create them, append content
    blocks and flip the synced flag. They hold no state between calls.
    """

    @abstractmethod
    def query_pages(self, value: str) -> List[DestinationPage]:
        """
        Find pages whose title contains ``value``.

        Args:
            value: Text to search for in the title property

        Returns:
            Candidate pages, possibly empty
        """
        pass

    @abstractmethod
    def create_page(self, title: str, author: Optional[str] = None) -> DestinationPage:
        """Create a page with the given title and the synced flag cleared."""
        pass

    @abstractmethod
    def append_children(self, page_id: str, blocks: List[Any]) -> None:
        """Append content blocks to the end of a page."""
        pass

    @abstractmethod
    def mark_synced(self, page_id: str) -> None:
        """Set the synced flag on a page."""
        pass
