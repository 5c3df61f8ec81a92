"""
Reconciliation of Kobo books against destination pages.

For every book the reconciler decides whether to create a page, append to the
one existing page, or leave things alone:

- one match, flag set   -> already synced, nothing to do
- one match, flag clear -> append highlights, set flag
- no match              -> create page, append highlights, set flag
- several matches       -> ambiguous, nothing to do

Books are matched on a simplified title: everything before the first
delimiter (":" by default), trimmed and case-folded, so "Dune: Part One" and
"DUNE" share the key "dune". Subtitle variants of the same title therefore
resolve to the same page.
"""

import logging
from typing import Dict, List

from .database import Book, KoboDatabase
from .sync_engine import DestinationPage, PageDirectory, SyncAction, SyncResult, SyncStatus
from ..integrations.notion_blocks import build_highlight_blocks

logger = logging.getLogger(__name__)


def title_prefix(title: str, delimiter: str = ":") -> str:
    """
    Short title used to search the destination.

    Falls back to the whole title when nothing precedes the delimiter.
    """
    title = title.strip()
    if delimiter:
        prefix = title.split(delimiter, 1)[0].strip()
        if prefix:
            return prefix
    return title


def lookup_key(title: str, delimiter: str = ":") -> str:
    """Derive the matching key for a title."""
    return title_prefix(title, delimiter).casefold()


class HighlightReconciler:
    """Syncs the highlights of one book at a time into a page directory."""

    def __init__(self, source: KoboDatabase, directory: PageDirectory,
                 title_delimiter: str = ":", review_heading: bool = True,
                 nest_highlights: bool = True):
        self.source = source
        self.directory = directory
        self.title_delimiter = title_delimiter
        self.review_heading = review_heading
        self.nest_highlights = nest_highlights

        # Pages created during this run, by lookup key
        self._created_pages: Dict[str, DestinationPage] = {}

    def find_matches(self, title: str) -> List[DestinationPage]:
        """Get the destination pages whose simplified title matches ``title``'s."""
        key = lookup_key(title, self.title_delimiter)

        # Notion's contains filter ignores case but does not case-fold,
        # so search with the unfolded prefix and compare keys locally.
        candidates = self.directory.query_pages(title_prefix(title, self.title_delimiter))
        matches = [
            page for page in candidates
            if lookup_key(page.title, self.title_delimiter) == key
        ]

        created = self._created_pages.get(key)
        if created and all(page.page_id != created.page_id for page in matches):
            matches.append(created)

        return matches

    def reconcile(self, book: Book) -> SyncResult:
        """
        Sync one book.

        Never raises; failures come back as a FAILED result.
        """
        key = lookup_key(book.title, self.title_delimiter)

        try:
            matches = self.find_matches(book.title)

            if len(matches) > 1:
                logger.warning(
                    f"⚠️ {book.title} matched {len(matches)} pages. Skipping to avoid duplicates."
                )
                return SyncResult(
                    title=book.title,
                    status=SyncStatus.SKIPPED,
                    action=SyncAction.SKIPPED_AMBIGUOUS,
                    metadata={'lookup_key': key, 'matches': [page.page_id for page in matches]}
                )

            if matches:
                page = matches[0]
                is_new_page = False
                if page.synced:
                    logger.info(f"⏭️ Highlights for {book.title} already synced")
                    return SyncResult(
                        title=book.title,
                        status=SyncStatus.SKIPPED,
                        action=SyncAction.SKIPPED_ALREADY_SYNCED,
                        target_id=page.page_id
                    )
                logger.info(f"📝 Reusing existing page for {book.title}")
            else:
                page = self.directory.create_page(book.title, author=book.author)
                is_new_page = True
                self._created_pages[key] = page
                logger.info(f"📄 Created a new page for {book.title}")

            excerpts = [
                highlight.text.strip()
                for highlight in self.source.fetch_highlights(book.content_id)
                if highlight.text and highlight.text.strip()
            ]

            blocks = build_highlight_blocks(
                excerpts,
                is_new_page=is_new_page,
                review_heading=self.review_heading,
                nested=self.nest_highlights
            )
            self.directory.append_children(page.page_id, blocks)
            self.directory.mark_synced(page.page_id)
            page.synced = True

            logger.info(f"✅ Uploaded {len(excerpts)} highlights for {book.title}")
            return SyncResult(
                title=book.title,
                status=SyncStatus.SUCCESS,
                action=SyncAction.CREATED if is_new_page else SyncAction.UPDATED,
                target_id=page.page_id,
                highlights_uploaded=len(excerpts)
            )

        except Exception as e:
            logger.error(f"❌ Error with {book.title}: {e}")
            return SyncResult(
                title=book.title,
                status=SyncStatus.FAILED,
                action=SyncAction.FAILED,
                error_message=str(e)
            )
