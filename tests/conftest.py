"""Shared fixtures: a Kobo-shaped SQLite database and an in-memory page directory."""

import sqlite3
import uuid
from typing import Dict, List, Optional

import pytest

from kobo_highlights.core.sync_engine import DestinationPage, PageDirectory


def create_kobo_database(path, books, highlights):
    """
    Write a minimal KoboReader.sqlite.

    Args:
        books: (content_id, title, author) tuples
        highlights: (content_id, text, date_created) tuples
    """
    conn = sqlite3.connect(str(path))
    conn.execute('''
        CREATE TABLE content (
            ContentID TEXT PRIMARY KEY,
            Title TEXT,
            Attribution TEXT,
            DateCreated TEXT
        )
    ''')
    conn.execute('''
        CREATE TABLE Bookmark (
            BookmarkID TEXT PRIMARY KEY,
            VolumeID TEXT,
            Text TEXT,
            DateCreated TEXT
        )
    ''')
    conn.executemany(
        "INSERT INTO content (ContentID, Title, Attribution, DateCreated) VALUES (?, ?, ?, '2020-01-01T00:00:00')",
        books
    )
    conn.executemany(
        "INSERT INTO Bookmark (BookmarkID, VolumeID, Text, DateCreated) VALUES (?, ?, ?, ?)",
        [(str(uuid.uuid4()), content_id, text, created) for content_id, text, created in highlights]
    )
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def kobo_db(tmp_path):
    """A snapshot with three books, one of them without highlights."""
    return create_kobo_database(
        tmp_path / "KoboReader.sqlite",
        books=[
            ("dune", "Dune: Part One", "Frank Herbert"),
            ("hobbit", "The Hobbit", "J.R.R. Tolkien"),
            ("unread", "Unread Book", None),
        ],
        highlights=[
            ("dune", "Fear is the mind-killer.", "2023-01-02T10:00:00"),
            ("dune", "", "2023-01-03T10:00:00"),
            ("dune", "The spice must flow.", "2023-01-01T10:00:00"),
            ("hobbit", "In a hole in the ground there lived a hobbit.", "2022-05-01T08:00:00"),
        ],
    )


class FakeDirectory(PageDirectory):
    """In-memory page directory recording every mutating call."""

    def __init__(self, pages: Optional[List[DestinationPage]] = None):
        self.pages: Dict[str, DestinationPage] = {page.page_id: page for page in pages or []}
        self.blocks: Dict[str, list] = {}
        self.calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}
        self._next_id = 0

    def add_page(self, title: str, synced: bool = False) -> DestinationPage:
        self._next_id += 1
        page = DestinationPage(page_id=f"page-{self._next_id}", title=title, synced=synced)
        self.pages[page.page_id] = page
        return page

    def _maybe_fail(self, operation: str):
        if operation in self.fail_on:
            raise self.fail_on[operation]

    def query_pages(self, value: str) -> List[DestinationPage]:
        self._maybe_fail('query_pages')
        return [
            DestinationPage(page.page_id, page.title, page.synced)
            for page in self.pages.values()
            if value.lower() in page.title.lower()
        ]

    def create_page(self, title: str, author: Optional[str] = None) -> DestinationPage:
        self._maybe_fail('create_page')
        self.calls.append(('create_page', title))
        page = self.add_page(title)
        return DestinationPage(page.page_id, page.title, page.synced)

    def append_children(self, page_id: str, blocks: list) -> None:
        self._maybe_fail('append_children')
        self.calls.append(('append_children', page_id))
        self.blocks.setdefault(page_id, []).extend(blocks)

    def mark_synced(self, page_id: str) -> None:
        self._maybe_fail('mark_synced')
        self.calls.append(('mark_synced', page_id))
        self.pages[page_id].synced = True

    def quotes(self, page_id: str) -> List[str]:
        """Text of every quote block on a page, in page order."""
        texts = []
        for block in self.blocks.get(page_id, []):
            if block.block_type == 'quote':
                texts.append(block.text)
            texts.extend(child.text for child in block.children if child.block_type == 'quote')
        return texts

    def find(self, title: str) -> List[DestinationPage]:
        return [page for page in self.pages.values() if page.title == title]


@pytest.fixture
def directory():
    return FakeDirectory()
