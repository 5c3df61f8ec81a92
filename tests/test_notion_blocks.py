from kobo_highlights.integrations.notion_blocks import (
    MAX_TEXT_LENGTH,
    build_highlight_blocks,
    heading,
    quote,
    rich_text,
    to_notion,
)


def test_new_page_starts_with_review_heading():
    blocks = build_highlight_blocks(["newest", "oldest"], is_new_page=True)

    assert [b.text for b in blocks] == ["Review", "Highlights"]
    assert blocks[0].children == []
    assert blocks[0].toggleable is False
    assert blocks[1].toggleable is True
    assert [c.text for c in blocks[1].children] == ["newest", "oldest"]


def test_existing_page_has_no_review_heading():
    blocks = build_highlight_blocks(["a"], is_new_page=False)

    assert [b.text for b in blocks] == ["Highlights"]


def test_review_heading_can_be_disabled():
    blocks = build_highlight_blocks(["a"], is_new_page=True, review_heading=False)

    assert [b.text for b in blocks] == ["Highlights"]


def test_sibling_layout_keeps_order_and_trims():
    blocks = build_highlight_blocks(["  first ", "", "   ", None, "second"], is_new_page=False, nested=False)

    assert [(b.block_type, b.text) for b in blocks] == [
        ('heading_1', "Highlights"),
        ('quote', "first"),
        ('quote', "second"),
    ]


def test_highlights_heading_present_without_excerpts():
    blocks = build_highlight_blocks([], is_new_page=False)

    assert len(blocks) == 1
    assert blocks[0].text == "Highlights"
    assert blocks[0].toggleable is False


def test_quote_to_notion():
    assert to_notion(quote("Fear is the mind-killer.")) == {
        "object": "block",
        "type": "quote",
        "quote": {
            "rich_text": [{"type": "text", "text": {"content": "Fear is the mind-killer."}}]
        }
    }


def test_toggle_heading_to_notion_nests_children():
    block = heading("Highlights", children=[quote("a"), quote("b")])

    payload = to_notion(block)

    assert payload["type"] == "heading_1"
    assert payload["heading_1"]["is_toggleable"] is True
    assert [c["quote"]["rich_text"][0]["text"]["content"] for c in payload["heading_1"]["children"]] == ["a", "b"]


def test_to_notion_limits_children():
    block = heading("Highlights", children=[quote(str(i)) for i in range(150)])

    payload = to_notion(block, child_limit=100)

    assert len(payload["heading_1"]["children"]) == 100


def test_long_text_is_split_into_segments():
    text = "x" * (MAX_TEXT_LENGTH * 2 + 5)

    segments = rich_text(text)

    assert [len(s["text"]["content"]) for s in segments] == [MAX_TEXT_LENGTH, MAX_TEXT_LENGTH, 5]
    assert "".join(s["text"]["content"] for s in segments) == text
