"""Tests for the REST remote repository against a local aiohttp server."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterator
from dataclasses import dataclass, field
from itertools import count
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from book_notes_storage import (
    AuthenticationError,
    Book,
    BooksInteractor,
    RemoteRepositoryError,
    StorageConnectionError,
)
from book_notes_storage.local import InMemoryLocalStore
from book_notes_storage.remote import HttpRemoteRepository

API_TOKEN = "secret-token"


@dataclass
class BackendState:
    """Mutable state of the test backend, adjusted by tests while it runs."""

    books: dict[str, dict[str, Any]] = field(default_factory=dict)
    ids: Iterator[int] = field(default_factory=lambda: count(1))
    fail_status: int = 0
    plain_text: bool = False
    requests: list[tuple[str, str]] = field(default_factory=list)


STATE = web.AppKey("state", BackendState)


def build_books_app() -> web.Application:
    """A tiny books backend keeping documents in app state."""
    app = web.Application()
    app[STATE] = BackendState()

    @web.middleware
    async def checks(request: web.Request, handler):
        request.app[STATE].requests.append((request.method, request.path))
        if request.headers.get("Authorization") != f"Bearer {API_TOKEN}":
            return web.json_response({"error": "unauthorized"}, status=401)
        if request.app[STATE].fail_status:
            return web.json_response({"error": "boom"}, status=request.app[STATE].fail_status)
        if request.app[STATE].plain_text:
            return web.Response(text="<html>maintenance</html>", content_type="text/html")
        return await handler(request)

    app.middlewares.append(checks)

    def next_id() -> str:
        return f"srv-{next(app[STATE].ids)}"

    async def list_books(request: web.Request) -> web.Response:
        return web.json_response(list(request.app[STATE].books.values()))

    async def get_book(request: web.Request) -> web.Response:
        book = request.app[STATE].books.get(request.match_info["book_id"])
        if book is None:
            return web.json_response({"error": "not found"}, status=404)
        return web.json_response(book)

    async def create_book(request: web.Request) -> web.Response:
        body = await request.json()
        assert "id" not in body
        book_id = next_id()
        request.app[STATE].books[book_id] = {**body, "id": book_id}
        return web.json_response({"id": book_id}, status=201)

    async def create_books(request: web.Request) -> web.Response:
        body = await request.json()
        ids = []
        for item in body:
            book_id = next_id()
            request.app[STATE].books[book_id] = {**item, "id": book_id}
            ids.append(book_id)
        return web.json_response({"ids": ids}, status=201)

    async def replace_book(request: web.Request) -> web.Response:
        book_id = request.match_info["book_id"]
        if book_id not in request.app[STATE].books:
            return web.json_response({"error": "not found"}, status=404)
        request.app[STATE].books[book_id] = await request.json()
        return web.Response(status=204)

    async def delete_book(request: web.Request) -> web.Response:
        if request.app[STATE].books.pop(request.match_info["book_id"], None) is None:
            return web.json_response({"error": "not found"}, status=404)
        return web.Response(status=204)

    app.router.add_get("/api/books", list_books)
    app.router.add_post("/api/books", create_book)
    app.router.add_post("/api/books/batch", create_books)
    app.router.add_get("/api/books/{book_id}", get_book)
    app.router.add_put("/api/books/{book_id}", replace_book)
    app.router.add_delete("/api/books/{book_id}", delete_book)
    return app


@pytest.fixture
async def server() -> AsyncIterator[TestServer]:
    test_server = TestServer(build_books_app())
    await test_server.start_server()
    yield test_server
    await test_server.close()


@pytest.fixture
async def repo(server: TestServer) -> AsyncIterator[HttpRemoteRepository[Book]]:
    repository = HttpRemoteRepository(
        Book, str(server.make_url("/api")), auth_token=API_TOKEN, timeout=5.0
    )
    yield repository
    await repository.close()


class TestHttpRemoteRepository:
    """Tests for HttpRemoteRepository."""

    async def test_insert_returns_server_id(
        self, repo: HttpRemoteRepository[Book], server: TestServer
    ) -> None:
        book_id = await repo.insert(Book(title="Dune", author="Frank Herbert"))

        assert book_id == "srv-1"
        assert server.app[STATE].books["srv-1"]["title"] == "Dune"

    async def test_insert_many_returns_aligned_ids(self, repo: HttpRemoteRepository[Book]) -> None:
        ids = await repo.insert_many([Book(title="One"), Book(title="Two"), Book(title="Three")])

        assert ids == ["srv-1", "srv-2", "srv-3"]
        assert (await repo.get("srv-2")).title == "Two"

    async def test_get_all(self, repo: HttpRemoteRepository[Book]) -> None:
        await repo.insert_many([Book(title="One"), Book(title="Two")])

        books = await repo.get_all()

        assert [b.title for b in books] == ["One", "Two"]
        assert all(isinstance(b, Book) for b in books)

    async def test_get_missing_is_none(self, repo: HttpRemoteRepository[Book]) -> None:
        assert await repo.get("nope") is None

    async def test_update(self, repo: HttpRemoteRepository[Book]) -> None:
        book_id = await repo.insert(Book(title="Dune"))

        await repo.update(Book(id=book_id, title="Dune Messiah"))

        assert (await repo.get(book_id)).title == "Dune Messiah"

    async def test_update_missing_raises(self, repo: HttpRemoteRepository[Book]) -> None:
        with pytest.raises(RemoteRepositoryError) as exc_info:
            await repo.update(Book(id="ghost", title="Nobody"))
        assert exc_info.value.status == 404

    async def test_delete_is_idempotent(self, repo: HttpRemoteRepository[Book]) -> None:
        book_id = await repo.insert(Book(title="Dune"))

        await repo.delete(Book(id=book_id))
        await repo.delete(Book(id=book_id))

        assert await repo.get(book_id) is None

    async def test_server_error_raises(
        self, repo: HttpRemoteRepository[Book], server: TestServer
    ) -> None:
        server.app[STATE].fail_status = 503

        with pytest.raises(RemoteRepositoryError) as exc_info:
            await repo.get_all()
        assert exc_info.value.status == 503

    async def test_non_json_body_raises_repository_error(
        self, repo: HttpRemoteRepository[Book], server: TestServer
    ) -> None:
        server.app[STATE].plain_text = True

        with pytest.raises(RemoteRepositoryError) as exc_info:
            await repo.get_all()
        assert exc_info.value.status == 200

    async def test_bad_token_raises_authentication_error(self, server: TestServer) -> None:
        repository = HttpRemoteRepository(Book, str(server.make_url("/api")), auth_token="wrong")

        with pytest.raises(AuthenticationError):
            await repository.get_all()
        await repository.close()

    async def test_unreachable_server_raises_connection_error(self) -> None:
        repository = HttpRemoteRepository(Book, "http://127.0.0.1:9/api", timeout=2.0)

        with pytest.raises(StorageConnectionError):
            await repository.get_all()
        await repository.close()


class TestInteractorOverHttp:
    """End-to-end cache-aside behavior against the HTTP backend."""

    async def test_insert_then_get_all_served_from_cache(
        self, repo: HttpRemoteRepository[Book], server: TestServer
    ) -> None:
        local = InMemoryLocalStore(Book)
        interactor = BooksInteractor(repo, local)

        result = await interactor.insert_many([Book(title="One"), Book(title="Two")])
        await interactor.wait_for_mirrors(timeout=1.0)
        server.app[STATE].requests.clear()

        books = await interactor.get_all()

        assert [b.id for b in books] == [b.id for b in result.get_or_raise()]
        assert server.app[STATE].requests == []
        await local.close()

    async def test_insert_failure_surfaces_in_result(
        self, repo: HttpRemoteRepository[Book], server: TestServer
    ) -> None:
        local = InMemoryLocalStore(Book)
        interactor = BooksInteractor(repo, local)
        server.app[STATE].fail_status = 500

        result = await interactor.insert(Book(title="Dune"))
        await interactor.wait_for_mirrors(timeout=1.0)

        assert result.is_failure
        assert isinstance(result.error, RemoteRepositoryError)
        assert len(local) == 0
