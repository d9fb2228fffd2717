"""
Cypherpunk library: a small agent hierarchy used as the worked example.

    CypherpunkLibrary -> BookAgent -> PageAgent
                      -> LibrarianAgent (holds a back-reference to the library)
"""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

from agent_oop.agent import BaseAgent
from agent_oop.errors import not_found
from agent_oop.hooks import log_access, require_auth, sanitize_ascii
from agent_oop.registry import EmptyInput, after, before, task, tool
from agent_oop.runtime import ChatModel, RuntimeResult

ModelRef = Union[ChatModel, str, None]


class WriteInput(BaseModel):
    text: str


class InstructionInput(BaseModel):
    instruction: str


class PageNumberInput(BaseModel):
    page_number: int = Field(ge=1)


class QueryInput(BaseModel):
    query: str


class WritePageInput(BaseModel):
    page_number: int = Field(ge=1)
    text: str
    user_id: Optional[str] = None


class InterestInput(BaseModel):
    interest: str


class TopicInput(BaseModel):
    topic: str


class QuestionInput(BaseModel):
    question: str


class BookIdInput(BaseModel):
    book_id: str


class AddBookInput(BaseModel):
    id: str
    title: str
    pages: int = Field(default=10, ge=1)
    user_id: Optional[str] = None


class PageAgent(BaseAgent):
    def __init__(self, model: ModelRef, page_number: int) -> None:
        super().__init__(model)
        self.page_number = page_number
        self.content = ""

    @tool("getContent", "Get the current content of this page")
    def get_content(self, payload: Optional[EmptyInput] = None) -> str:
        return self.content

    @task("write", "Write new content to this page", input_schema=WriteInput)
    @before(log_access)
    @after(sanitize_ascii)
    def write(self, payload: WriteInput) -> str:
        self.content = payload.text
        return f"Page {self.page_number} updated with {len(payload.text)} characters"

    @task("edit", "Edit content on this page using AI", input_schema=InstructionInput)
    async def edit(self, payload: InstructionInput) -> str:
        edited = await self.model.complete(
            f'Edit this content: "{self.content}" with instruction: {payload.instruction}\n'
            "Return only the edited content."
        )
        return await self.run_operation("write", {"text": edited.strip()})

    async def execute(self, input: str) -> RuntimeResult:
        return await self.runtime.invoke(input)


class BookAgent(BaseAgent):
    def __init__(self, model: ModelRef, title: str, page_count: int = 10) -> None:
        super().__init__(model)
        self.title = title
        self.pages: List[PageAgent] = [PageAgent(self.model, n) for n in range(1, page_count + 1)]

    def page(self, page_number: int) -> Optional[PageAgent]:
        if 1 <= page_number <= len(self.pages):
            return self.pages[page_number - 1]
        return None

    @tool("getTableOfContents", "Get the table of contents for this book")
    def get_table_of_contents(self, payload: Optional[EmptyInput] = None) -> List[Dict[str, Any]]:
        return [{"page": p.page_number, "preview": p.content[:50] or "(empty)"} for p in self.pages]

    @tool("getPage", "Get a specific page from the book", PageNumberInput)
    def get_page(self, payload: PageNumberInput) -> Dict[str, Any]:
        page = self.page(payload.page_number)
        if page is None:
            return not_found("Page", str(payload.page_number))
        return {"page_number": payload.page_number, "content": page.content}

    @task("search", "Search for content across all pages", input_schema=QueryInput)
    def search(self, payload: QueryInput) -> Union[List[Dict[str, Any]], str]:
        needle = payload.query.lower()
        results = [
            {"page": p.page_number, "snippet": p.content[:100]}
            for p in self.pages
            if needle in p.content.lower()
        ]
        return results or f'No results found for "{payload.query}"'

    @task("summarize", "Generate a summary of the entire book", input_schema=EmptyInput)
    async def summarize(self, payload: Optional[EmptyInput] = None) -> str:
        text = "\n\n".join(p.content for p in self.pages)
        return await self.model.complete(f'Summarize this book titled "{self.title}":\n{text}')

    @task("writePage", "Write content to a specific page", input_schema=WritePageInput)
    @before(require_auth)
    async def write_page(self, payload: WritePageInput) -> str:
        page = self.page(payload.page_number)
        if page is None:
            raise LookupError(f"Page not found: {payload.page_number}")
        return await page.run_operation("write", {"text": payload.text})

    async def execute(self, input: str) -> RuntimeResult:
        return await self.runtime.invoke(input)


class LibrarianAgent(BaseAgent):
    def __init__(self, model: ModelRef, specialty: str) -> None:
        super().__init__(model)
        self.specialty = specialty
        self.library: Optional[CypherpunkLibrary] = None

    def set_library(self, library: "CypherpunkLibrary") -> None:
        self.library = library

    @task("recommend", "Recommend books based on user interest", input_schema=InterestInput)
    async def recommend(self, payload: InterestInput) -> str:
        if self.library is None:
            return "No library assigned"
        catalog = json.dumps(self.library.get_catalog())
        return await self.model.complete(
            f"As a librarian specializing in {self.specialty}, recommend books from this catalog "
            f'for someone interested in "{payload.interest}": {catalog}'
        )

    @task("research", "Research a topic across all library books", input_schema=TopicInput)
    @before(log_access)
    async def research(self, payload: TopicInput) -> str:
        if self.library is None:
            return "No library assigned"
        findings = await self.library.run_operation("searchAll", {"query": payload.topic})
        return await self.model.complete(
            f'Synthesize research on "{payload.topic}" from these findings: {json.dumps(findings)}'
        )

    @task("answer", "Answer a question using library resources", input_schema=QuestionInput)
    async def answer(self, payload: QuestionInput) -> str:
        return await self.model.complete(
            f"As a librarian specializing in {self.specialty}, answer: {payload.question}"
        )

    async def execute(self, input: str) -> RuntimeResult:
        return await self.runtime.invoke(input)


def _words(text: str) -> set:
    return set(re.findall(r"[a-z]+", text.lower()))


class CypherpunkLibrary(BaseAgent):
    """Top-level orchestrator holding books and specialist librarians."""

    def __init__(self, model: ModelRef = None) -> None:
        super().__init__(model)
        self.librarians = [
            LibrarianAgent(self.model, "cryptography and privacy"),
            LibrarianAgent(self.model, "cypherpunk history and manifestos"),
        ]
        for librarian in self.librarians:
            librarian.set_library(self)
        self.books: Dict[str, BookAgent] = {
            "cypherpunk-manifesto": BookAgent(self.model, "A Cypherpunk's Manifesto", 5),
            "crypto-anarchy": BookAgent(self.model, "The Crypto Anarchist Manifesto", 3),
            "privacy-handbook": BookAgent(self.model, "Digital Privacy Handbook", 20),
        }

    def pick_librarian(self, question: str) -> LibrarianAgent:
        """Librarian whose specialty shares the most words with `question`; the first on ties."""
        words = _words(question)
        return max(self.librarians, key=lambda lib: len(words & _words(lib.specialty)))

    @tool("getCatalog", "Get the library catalog")
    def get_catalog(self, payload: Optional[EmptyInput] = None) -> List[Dict[str, Any]]:
        return [{"id": book_id, "title": book.title, "pages": len(book.pages)} for book_id, book in self.books.items()]

    @tool("getBook", "Get a book by ID", BookIdInput)
    def get_book(self, payload: BookIdInput) -> Dict[str, Any]:
        book = self.books.get(payload.book_id)
        if book is None:
            return not_found("Book", payload.book_id)
        return {"title": book.title, "toc": book.get_table_of_contents()}

    @task("searchAll", "Search across all books in the library", input_schema=QueryInput)
    async def search_all(self, payload: QueryInput) -> List[Dict[str, Any]]:
        results = []
        for book_id, book in self.books.items():
            matches = await book.run_operation("search", {"query": payload.query})
            if isinstance(matches, list) and matches:
                results.append({"book_id": book_id, "title": book.title, "matches": matches})
        return results

    @task("askLibrarian", "Ask a librarian for help", input_schema=QuestionInput)
    async def ask_librarian(self, payload: QuestionInput) -> str:
        return await self.pick_librarian(payload.question).run_operation("answer", payload)

    @task("addBook", "Add a new book to the library", input_schema=AddBookInput)
    @before(require_auth)
    def add_book(self, payload: AddBookInput) -> Dict[str, Any]:
        if payload.id in self.books:
            return {"error": "Book ID already exists"}
        self.books[payload.id] = BookAgent(self.model, payload.title, payload.pages)
        return {"success": True, "message": f'Added "{payload.title}" with {payload.pages} pages'}

    async def execute(self, input: str) -> RuntimeResult:
        return await self.runtime.invoke(input)
