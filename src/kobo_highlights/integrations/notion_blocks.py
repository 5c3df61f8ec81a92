"""
Notion content blocks for highlight pages.

A synced page body looks like this (newest highlight first)::

    # Review            <- only when the page was created by this run
    # Highlights        <- toggle heading, quotes nested inside
      > highlight 3
      > highlight 2
      > highlight 1
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

REVIEW_HEADING = "Review"
HIGHLIGHTS_HEADING = "Highlights"

# Notion API limits
MAX_TEXT_LENGTH = 2000
MAX_BLOCKS_PER_REQUEST = 100


@dataclass
class ContentBlock:
    """A heading or quote block, optionally with nested children."""
    block_type: str  # 'heading_1' or 'quote'
    text: str
    children: List['ContentBlock'] = field(default_factory=list)
    toggleable: bool = False


def heading(text: str, children: Optional[List[ContentBlock]] = None) -> ContentBlock:
    children = children or []
    return ContentBlock('heading_1', text, children=children, toggleable=bool(children))


def quote(text: str) -> ContentBlock:
    return ContentBlock('quote', text.strip())


def build_highlight_blocks(excerpts: Iterable[Optional[str]], is_new_page: bool,
                           review_heading: bool = True, nested: bool = True) -> List[ContentBlock]:
    """
    Build the blocks appended to a book page.

    Args:
        excerpts: Highlight texts, newest first
        is_new_page: Whether the page was just created
        review_heading: Add an empty "Review" section to new pages
        nested: Put quotes inside a toggle heading instead of after it

    Returns:
        Top-level blocks in page order
    """
    quotes = [quote(text) for text in excerpts if text and text.strip()]

    blocks = []
    if is_new_page and review_heading:
        blocks.append(heading(REVIEW_HEADING))

    if nested and quotes:
        blocks.append(heading(HIGHLIGHTS_HEADING, children=quotes))
    else:
        blocks.append(heading(HIGHLIGHTS_HEADING))
        blocks.extend(quotes)

    return blocks


def rich_text(content: str) -> List[Dict]:
    """Split text into rich text segments within Notion's length limit."""
    segments = [content[i:i + MAX_TEXT_LENGTH] for i in range(0, len(content), MAX_TEXT_LENGTH)]
    return [
        {
            "type": "text",
            "text": {
                "content": segment
            }
        }
        for segment in segments or [""]
    ]


def to_notion(block: ContentBlock, child_limit: int = MAX_BLOCKS_PER_REQUEST) -> Dict:
    """
    Render a block as Notion API JSON.

    Only the first ``child_limit`` children are included; the caller appends
    the rest to the created block.
    """
    body = {
        "rich_text": rich_text(block.text)
    }

    if block.block_type.startswith('heading'):
        body["is_toggleable"] = block.toggleable

    if block.children:
        body["children"] = [to_notion(child) for child in block.children[:child_limit]]

    return {
        "object": "block",
        "type": block.block_type,
        block.block_type: body
    }
