"""
Kobo highlights to Notion.

Copies the Kobo e-reader database and syncs each book's highlights into a
Notion database page.
"""

__version__ = "0.1.0"
