"""
Read access to the Kobo e-reader database.

The Kobo keeps highlights in ``KoboReader.sqlite`` on the device. The job never
reads the device file directly: it copies it to a local snapshot first and
then opens the snapshot read-only.
"""

import shutil
import sqlite3
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ('Bookmark', 'content')


class SnapshotError(Exception):
    """The Kobo database could not be copied or opened."""


@dataclass
class Book:
    """A book (Kobo ``content`` row) with at least one highlight."""
    content_id: str
    title: str
    author: Optional[str] = None
    highlight_count: int = 0


@dataclass
class Highlight:
    """A highlighted passage (Kobo ``Bookmark`` row)."""
    content_id: str
    text: Optional[str]
    created_at: Optional[str] = None


def setup_snapshot(device_database: Union[str, Path], snapshot_path: Union[str, Path]) -> Path:
    """
    Copy the device database to a local snapshot.

    Args:
        device_database: Path to KoboReader.sqlite on the mounted device
        snapshot_path: Destination of the copy

    Returns:
        Path to the snapshot

    Raises:
        SnapshotError: If the source is missing or the copy fails
    """
    source = Path(device_database)
    target = Path(snapshot_path)

    if not source.is_file():
        raise SnapshotError(f"Kobo database not found: {source}")

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, target)
    except OSError as e:
        raise SnapshotError(f"Failed to copy {source} to {target}: {e}") from e

    logger.info(f"📋 Database file copied to {target}")
    return target


class KoboDatabase:
    """Read-only view over a Kobo database snapshot."""

    def __init__(self, db_path: Union[str, Path]):
        """
        Open a snapshot.

        Args:
            db_path: Path to a copy of KoboReader.sqlite

        Raises:
            SnapshotError: If the file is missing, not SQLite, or lacks the Kobo tables
        """
        self.db_path = Path(db_path).resolve()

        if not self.db_path.is_file():
            raise SnapshotError(f"Snapshot not found: {self.db_path}")

        try:
            self.connection = sqlite3.connect(f"{self.db_path.as_uri()}?mode=ro", uri=True)
            self.connection.row_factory = sqlite3.Row
            self._check_schema()
        except SnapshotError:
            self.close()
            raise
        except sqlite3.Error as e:
            self.close()
            raise SnapshotError(f"Cannot open snapshot {self.db_path}: {e}") from e

        logger.debug(f"Opened Kobo snapshot: {self.db_path}")

    def _check_schema(self):
        cursor = self.connection.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        tables = {row['name'] for row in cursor.fetchall()}
        missing = [name for name in REQUIRED_TABLES if name not in tables]
        if missing:
            raise SnapshotError(f"Not a Kobo database, missing tables: {', '.join(missing)}")

    def fetch_books(self) -> List[Book]:
        """Get every book with at least one highlight, ordered by title."""
        cursor = self.connection.execute('''
            SELECT
                content.ContentID AS content_id,
                content.Title AS title,
                content.Attribution AS author,
                COUNT(Bookmark.VolumeID) AS highlight_count
            FROM Bookmark
            INNER JOIN content ON Bookmark.VolumeID = content.ContentID
            GROUP BY content.ContentID
            ORDER BY content.Title
        ''')

        return [
            Book(
                content_id=row['content_id'],
                title=row['title'] or '',
                author=row['author'] or None,
                highlight_count=row['highlight_count'],
            )
            for row in cursor.fetchall()
        ]

    def fetch_highlights(self, content_id: str) -> List[Highlight]:
        """Get the highlights of one book, newest first."""
        cursor = self.connection.execute('''
            SELECT Bookmark.Text AS text, Bookmark.DateCreated AS created_at
            FROM Bookmark
            WHERE Bookmark.VolumeID = ?
            ORDER BY Bookmark.DateCreated DESC
        ''', (content_id,))

        return [
            Highlight(content_id=content_id, text=row['text'], created_at=row['created_at'])
            for row in cursor.fetchall()
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Get book and highlight counts for the snapshot."""
        books = self.fetch_books()
        return {
            'database_path': str(self.db_path),
            'database_size_mb': self.db_path.stat().st_size / (1024 * 1024),
            'books': len(books),
            'highlights': sum(book.highlight_count for book in books),
        }

    def close(self):
        connection = getattr(self, 'connection', None)
        if connection is not None:
            connection.close()
            self.connection = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"KoboDatabase(db_path={self.db_path})"
