"""
Notion database as a destination for highlight pages.

Each book maps to one page in a Notion database. The database needs a title
property (default "Title") and a checkbox property (default "Highlights") that
records whether the highlights were already uploaded.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx
from notion_client import Client
from notion_client.helpers import collect_paginated_api

from ..core.sync_engine import DestinationPage, PageDirectory
from .notion_blocks import MAX_BLOCKS_PER_REQUEST, ContentBlock, rich_text, to_notion

logger = logging.getLogger(__name__)


def _plain_text(items: List[Dict[str, Any]]) -> str:
    return "".join(
        item.get("plain_text") or item.get("text", {}).get("content", "")
        for item in items
    )


class NotionDirectory(PageDirectory):
    """Looks up, creates and fills book pages in a Notion database."""

    def __init__(self, client: Client, database_id: str,
                 title_property: str = "Title",
                 flag_property: str = "Highlights",
                 author_property: Optional[str] = None):
        """
        Initialize the directory.

        Args:
            client: Notion API client
            database_id: Notion database holding one page per book
            title_property: Name of the database's title property
            flag_property: Name of the checkbox marking synced pages
            author_property: Optional rich text property for the author
        """
        self.client = client
        self.database_id = database_id
        self.title_property = title_property
        self.flag_property = flag_property
        self.author_property = author_property

    @classmethod
    def from_config(cls, config) -> 'NotionDirectory':
        """Build a directory from a Config, creating the Notion client."""
        token = config.get_notion_token()
        if not token:
            raise ValueError("Notion API token is not configured")

        if config.get('notion.verify_ssl', True):
            client = Client(auth=token)
        else:
            logger.warning("⚠️ SSL verification disabled for Notion API calls")
            client = Client(auth=token, client=httpx.Client(verify=False))

        return cls(
            client,
            config.get('notion.database_id'),
            title_property=config.get('notion.title_property', 'Title'),
            flag_property=config.get('notion.flag_property', 'Highlights'),
            author_property=config.get('notion.author_property'),
        )

    def _to_page(self, page: Dict[str, Any]) -> DestinationPage:
        properties = page.get("properties", {})
        title = _plain_text(properties.get(self.title_property, {}).get("title", []))
        synced = bool(properties.get(self.flag_property, {}).get("checkbox", False))
        return DestinationPage(page_id=page["id"], title=title, synced=synced)

    def query_pages(self, value: str) -> List[DestinationPage]:
        results = collect_paginated_api(
            self.client.databases.query,
            database_id=self.database_id,
            filter={
                "property": self.title_property,
                "title": {
                    "contains": value
                }
            }
        )
        pages = [self._to_page(page) for page in results]
        logger.debug(f"🔍 {len(pages)} Notion pages contain '{value}'")
        return pages

    def create_page(self, title: str, author: Optional[str] = None) -> DestinationPage:
        properties = {
            self.title_property: {
                "title": rich_text(title)
            },
            self.flag_property: {
                "checkbox": False
            }
        }
        if self.author_property and author:
            properties[self.author_property] = {
                "rich_text": rich_text(author)
            }

        response = self.client.pages.create(
            parent={"database_id": self.database_id},
            properties=properties
        )
        return DestinationPage(page_id=response["id"], title=title, synced=False)

    def append_children(self, page_id: str, blocks: List[ContentBlock]) -> None:
        """
        Append blocks to a page or block.

        Top-level blocks go out in batches of 100. Nested children past the
        per-request limit are appended to their parent once it exists.
        """
        for start in range(0, len(blocks), MAX_BLOCKS_PER_REQUEST):
            batch = blocks[start:start + MAX_BLOCKS_PER_REQUEST]
            response = self.client.blocks.children.append(
                block_id=page_id,
                children=[to_notion(block) for block in batch]
            )

            created = response.get("results", [])
            for block, created_block in zip(batch, created):
                overflow = block.children[MAX_BLOCKS_PER_REQUEST:]
                if overflow:
                    self.append_children(created_block["id"], overflow)

    def mark_synced(self, page_id: str) -> None:
        self.client.pages.update(
            page_id=page_id,
            properties={
                self.flag_property: {
                    "checkbox": True
                }
            }
        )
