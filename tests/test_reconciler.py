import pytest

from kobo_highlights.core.database import Book, KoboDatabase
from kobo_highlights.core.reconciler import HighlightReconciler, lookup_key
from kobo_highlights.core.sync_engine import SyncAction, SyncStatus

from conftest import FakeDirectory, create_kobo_database


@pytest.fixture
def source(kobo_db):
    with KoboDatabase(kobo_db) as db:
        yield db


DUNE = Book(content_id="dune", title="Dune: Part One", author="Frank Herbert")


@pytest.mark.parametrize("title, expected", [
    ("Dune: Part One", "dune"),
    ("  The Hobbit  ", "the hobbit"),
    ("IT", "it"),
    ("Gödel, Escher, Bach: an Eternal Golden Braid", "gödel, escher, bach"),
    ("No subtitle", "no subtitle"),
    ("", ""),
    (":Foo", ":foo"),
    ("  :  ", ":"),
    ("Die Straße: Roman", "die strasse"),
])
def test_lookup_key(title, expected):
    assert lookup_key(title) == expected


def test_lookup_key_custom_delimiter():
    assert lookup_key("Sapiens - A Brief History", delimiter="-") == "sapiens"
    assert lookup_key("Dune: Part One", delimiter="") == "dune: part one"


def test_no_match_creates_page_with_full_title(source, directory):
    result = HighlightReconciler(source, directory).reconcile(DUNE)

    assert result.status == SyncStatus.SUCCESS
    assert result.action == SyncAction.CREATED
    assert result.highlights_uploaded == 2

    [page] = directory.find("Dune: Part One")
    assert result.target_id == page.page_id
    assert page.synced is True
    assert directory.calls == [
        ('create_page', "Dune: Part One"),
        ('append_children', page.page_id),
        ('mark_synced', page.page_id),
    ]


def test_new_page_gets_review_and_nested_highlights(source, directory):
    HighlightReconciler(source, directory).reconcile(DUNE)

    [page] = directory.find("Dune: Part One")
    review, highlights = directory.blocks[page.page_id]
    assert (review.block_type, review.text, review.children) == ('heading_1', "Review", [])
    assert highlights.text == "Highlights"
    assert [child.text for child in highlights.children] == [
        "Fear is the mind-killer.",
        "The spice must flow.",
    ]


def test_single_unsynced_match_is_reused(source):
    directory = FakeDirectory()
    existing = directory.add_page("DUNE")

    result = HighlightReconciler(source, directory).reconcile(DUNE)

    assert result.action == SyncAction.UPDATED
    assert result.target_id == existing.page_id
    assert ('create_page', "Dune: Part One") not in directory.calls
    assert directory.pages[existing.page_id].synced is True
    assert directory.quotes(existing.page_id) == ["Fear is the mind-killer.", "The spice must flow."]
    # No review heading on an existing page
    assert [block.text for block in directory.blocks[existing.page_id]] == ["Highlights"]


def test_subtitle_variants_share_a_page(source):
    directory = FakeDirectory()
    existing = directory.add_page("Dune: The Graphic Novel")

    result = HighlightReconciler(source, directory).reconcile(DUNE)

    assert result.target_id == existing.page_id


def test_longer_title_containing_key_is_not_a_match(source):
    directory = FakeDirectory()
    directory.add_page("Dune Messiah")

    result = HighlightReconciler(source, directory).reconcile(DUNE)

    assert result.action == SyncAction.CREATED
    assert len(directory.find("Dune: Part One")) == 1


def test_already_synced_match_is_skipped(source):
    directory = FakeDirectory()
    existing = directory.add_page("Dune", synced=True)

    result = HighlightReconciler(source, directory).reconcile(DUNE)

    assert result.status == SyncStatus.SKIPPED
    assert result.action == SyncAction.SKIPPED_ALREADY_SYNCED
    assert result.target_id == existing.page_id
    assert directory.calls == []


def test_ambiguous_match_is_skipped_without_mutation(tmp_path):
    path = create_kobo_database(
        tmp_path / "kobo.sqlite",
        books=[("it", "IT", "Stephen King")],
        highlights=[("it", "We all float down here.", "2021-10-31")],
    )
    directory = FakeDirectory()
    directory.add_page("It")
    directory.add_page("IT: A Novel")
    before = {page_id: (page.title, page.synced) for page_id, page in directory.pages.items()}

    with KoboDatabase(path) as source:
        [book] = source.fetch_books()
        result = HighlightReconciler(source, directory).reconcile(book)

    assert result.status == SyncStatus.SKIPPED
    assert result.action == SyncAction.SKIPPED_AMBIGUOUS
    assert len(result.metadata['matches']) == 2
    assert directory.calls == []
    assert {page_id: (page.title, page.synced) for page_id, page in directory.pages.items()} == before


def test_empty_and_whitespace_highlights_are_dropped(tmp_path, directory):
    path = create_kobo_database(
        tmp_path / "kobo.sqlite",
        books=[("b", "Blank", None)],
        highlights=[("b", "   ", "2023-01-03"), ("b", None, "2023-01-02"), ("b", "  kept  ", "2023-01-01")],
    )

    with KoboDatabase(path) as source:
        [book] = source.fetch_books()
        result = HighlightReconciler(source, directory).reconcile(book)

    assert result.highlights_uploaded == 1
    assert directory.quotes(result.target_id) == ["kept"]


def test_siblings_layout(source, directory):
    HighlightReconciler(source, directory, review_heading=False, nest_highlights=False).reconcile(DUNE)

    [page] = directory.find("Dune: Part One")
    blocks = directory.blocks[page.page_id]
    assert [(b.block_type, b.text) for b in blocks] == [
        ('heading_1', "Highlights"),
        ('quote', "Fear is the mind-killer."),
        ('quote', "The spice must flow."),
    ]


@pytest.mark.parametrize("operation", ['query_pages', 'create_page', 'append_children', 'mark_synced'])
def test_remote_failure_becomes_failed_result(source, directory, operation):
    directory.fail_on[operation] = RuntimeError("Notion API returned 500")

    result = HighlightReconciler(source, directory).reconcile(DUNE)

    assert result.status == SyncStatus.FAILED
    assert result.action == SyncAction.FAILED
    assert result.title == "Dune: Part One"
    assert "500" in result.error_message


def test_page_created_earlier_in_run_is_matched(source, directory):
    reconciler = HighlightReconciler(source, directory)
    reconciler.reconcile(DUNE)

    # Remote search has not caught up with the new page yet
    directory.query_pages = lambda value: []
    second = reconciler.reconcile(Book(content_id="dune", title="Dune: Part Two"))

    assert second.action == SyncAction.SKIPPED_ALREADY_SYNCED
    assert len([call for call in directory.calls if call[0] == 'create_page']) == 1


def test_query_uses_prefix_with_original_case(source):
    directory = FakeDirectory()
    queried = []
    query_pages = directory.query_pages
    directory.query_pages = lambda value: queried.append(value) or query_pages(value)

    reconciler = HighlightReconciler(source, directory)
    reconciler.reconcile(Book(content_id="dune", title="Die Straße: Roman"))
    reconciler.reconcile(Book(content_id="dune", title=":Untitled"))

    assert queried == ["Die Straße", ":Untitled"]


def test_title_with_empty_prefix_matches_only_itself(source):
    directory = FakeDirectory()
    directory.add_page("Foo")
    directory.add_page("Bar: Foo")

    result = HighlightReconciler(source, directory).reconcile(Book(content_id="dune", title=":Foo"))

    assert result.action == SyncAction.CREATED
    assert len(directory.find(":Foo")) == 1
    assert len(directory.pages) == 3
