"""
Run driver: copy the Kobo database, then sync every book in turn.
"""

import logging
from pathlib import Path
from typing import Optional

from .database import KoboDatabase, setup_snapshot
from .reconciler import HighlightReconciler
from .sync_engine import PageDirectory, SyncSummary

logger = logging.getLogger(__name__)


def sync_highlights(source: KoboDatabase, reconciler: HighlightReconciler) -> SyncSummary:
    """
    Reconcile every book of the snapshot, one after the other.

    A failing book is recorded in the summary and the pass continues.
    """
    books = source.fetch_books()
    logger.info(f"🚀 Syncing highlights for {len(books)} books...")

    summary = SyncSummary()
    for i, book in enumerate(books, 1):
        logger.debug(f"📖 Processing {i}/{len(books)}: {book.title} ({book.highlight_count} highlights)")
        summary.add(reconciler.reconcile(book))

    summary.log_summary()
    return summary


def run_sync(directory: PageDirectory, snapshot_path, device_database: Optional[str] = None,
             title_delimiter: str = ":", review_heading: bool = True,
             nest_highlights: bool = True) -> SyncSummary:
    """
    Full job: refresh the snapshot from the device (if given) and sync it.

    Raises:
        SnapshotError: If the device database cannot be copied or the
            snapshot cannot be opened. No remote call has been made then.
    """
    if device_database:
        snapshot_path = setup_snapshot(device_database, snapshot_path)
    else:
        logger.info(f"Using existing snapshot {snapshot_path}")

    with KoboDatabase(Path(snapshot_path)) as source:
        reconciler = HighlightReconciler(
            source,
            directory,
            title_delimiter=title_delimiter,
            review_heading=review_heading,
            nest_highlights=nest_highlights
        )
        return sync_highlights(source, reconciler)
