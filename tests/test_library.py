import logging

import pytest

from agent_oop.agents.library import BookAgent, CypherpunkLibrary, LibrarianAgent, PageAgent
from agent_oop.errors import PreconditionError, UnderlyingFailure

from tests.conftest import DummyGroq, dummy_model


@pytest.fixture
def library():
    return CypherpunkLibrary(dummy_model())


@pytest.mark.asyncio
async def test_page_write_logs_access_and_reports_length(caplog):
    page = PageAgent(dummy_model(), 3)

    with caplog.at_level(logging.INFO, logger="agent_oop.hooks"):
        result = await page.run_operation("write", {"text": "Privacy is necessary"})

    assert result == "Page 3 updated with 20 characters"
    assert page.content == "Privacy is necessary"
    assert "[ACCESS]" in caplog.text


@pytest.mark.asyncio
async def test_page_edit_goes_through_write():
    page = PageAgent(dummy_model("  Privacy is essential.  "), 1)
    page.content = "Privacy is necessary."

    result = await page.run_operation("edit", {"instruction": "stronger word"})

    assert page.content == "Privacy is essential."
    assert result == "Page 1 updated with 21 characters"
    assert 'Edit this content: "Privacy is necessary."' in page.model.client.prompts[0]


@pytest.mark.asyncio
async def test_write_page_requires_auth():
    book = BookAgent(dummy_model(), "Manifesto", page_count=2)

    with pytest.raises(PreconditionError, match="Authentication required"):
        await book.run_operation("writePage", {"page_number": 1, "text": "hello"})
    assert book.pages[0].content == ""

    assert await book.run_operation("writePage", {"page_number": 1, "text": "hello", "user_id": "eric"}) == (
        "Page 1 updated with 5 characters"
    )
    with pytest.raises(UnderlyingFailure, match="Page not found: 9"):
        await book.run_operation("writePage", {"page_number": 9, "text": "x", "user_id": "eric"})


@pytest.mark.asyncio
async def test_book_search_toc_and_pages():
    book = BookAgent(dummy_model(), "Manifesto", page_count=3)
    await book.run_operation("writePage", {"page_number": 2, "text": "Cypherpunks write code.", "user_id": "u"})

    assert await book.run_operation("search", {"query": "CODE"}) == [{"page": 2, "snippet": "Cypherpunks write code."}]
    assert await book.run_operation("search", {"query": "banks"}) == 'No results found for "banks"'
    toc = await book.run_operation("getTableOfContents")
    assert [entry["preview"] for entry in toc] == ["(empty)", "Cypherpunks write code.", "(empty)"]
    assert await book.run_operation("getPage", {"page_number": 4}) == {"error": "Page not found: 4"}


@pytest.mark.asyncio
async def test_catalog_and_book_lookup(library):
    catalog = await library.run_operation("getCatalog")

    assert [(b["id"], b["pages"]) for b in catalog] == [
        ("cypherpunk-manifesto", 5),
        ("crypto-anarchy", 3),
        ("privacy-handbook", 20),
    ]
    assert await library.run_operation("getBook", {"book_id": "nope"}) == {"error": "Book not found: nope"}
    book = await library.run_operation("getBook", {"book_id": "crypto-anarchy"})
    assert book["title"] == "The Crypto Anarchist Manifesto"
    assert len(book["toc"]) == 3


@pytest.mark.asyncio
async def test_search_all_skips_books_without_matches(library):
    await library.books["privacy-handbook"].run_operation(
        "writePage", {"page_number": 7, "text": "Use strong encryption.", "user_id": "u"}
    )

    results = await library.run_operation("searchAll", {"query": "encryption"})

    assert results == [
        {
            "book_id": "privacy-handbook",
            "title": "Digital Privacy Handbook",
            "matches": [{"page": 7, "snippet": "Use strong encryption."}],
        }
    ]


@pytest.mark.asyncio
async def test_add_book_requires_auth_and_unique_id(library):
    with pytest.raises(PreconditionError):
        await library.run_operation("addBook", {"id": "new", "title": "New"})

    added = await library.run_operation("addBook", {"id": "new", "title": "New", "pages": 2, "user_id": "u"})
    assert added == {"success": True, "message": 'Added "New" with 2 pages'}
    assert len(library.books["new"].pages) == 2
    duplicate = await library.run_operation("addBook", {"id": "new", "title": "Again", "user_id": "u"})
    assert duplicate == {"error": "Book ID already exists"}


def test_librarian_routing_by_specialty(library):
    privacy, history = library.librarians

    assert library.pick_librarian("Which cryptography books cover privacy?") is privacy
    assert library.pick_librarian("Tell me the history of the manifestos") is history
    assert library.pick_librarian("Anything good?") is privacy


@pytest.mark.asyncio
async def test_ask_librarian_delegates_to_the_specialist():
    client = DummyGroq("Read the manifesto.")
    library = CypherpunkLibrary(dummy_model())
    library.model.client = client

    answer = await library.run_operation("askLibrarian", {"question": "What is cypherpunk history?"})

    assert answer == "Read the manifesto."
    assert "specializing in cypherpunk history and manifestos" in client.prompts[0]


@pytest.mark.asyncio
async def test_research_uses_library_search():
    client = DummyGroq("Synthesis.")
    library = CypherpunkLibrary(dummy_model())
    library.model.client = client
    await library.books["crypto-anarchy"].run_operation(
        "writePage", {"page_number": 1, "text": "A specter is haunting the modern world.", "user_id": "u"}
    )

    result = await library.librarians[1].run_operation("research", {"topic": "specter"})

    assert result == "Synthesis."
    assert '"book_id": "crypto-anarchy"' in client.prompts[0]


@pytest.mark.asyncio
async def test_librarian_without_library():
    librarian = LibrarianAgent(dummy_model(), "privacy")

    assert await librarian.run_operation("recommend", {"interest": "crypto"}) == "No library assigned"
