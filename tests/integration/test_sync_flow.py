"""End-to-end sync against a local aiohttp posts endpoint."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp import test_utils

from quote_sync.config import QuoteSyncConfig, RemoteSettings
from quote_sync.service import QuoteSyncService
from quote_sync.storage.base import QUOTES_KEY
from quote_sync.storage.sqlite_store import SQLiteKeyValueStore
from quote_sync.sync.protocol import SyncStatus


class PostsBackend:
    """Minimal posts collection: GET lists with ``_limit``, POST appends."""

    def __init__(self) -> None:
        self.posts: list[dict[str, Any]] = [
            {"id": 1, "title": "Server one", "body": "first"},
            {"id": 2, "title": "", "body": "Server two"},
        ]
        self.fail_get = False
        self.fail_post = False

    async def list_posts(self, request: web.Request) -> web.Response:
        if self.fail_get:
            return web.json_response({"error": "down"}, status=503)
        limit = int(request.query.get("_limit", len(self.posts)))
        return web.json_response(self.posts[:limit])

    async def create_post(self, request: web.Request) -> web.Response:
        if self.fail_post:
            return web.json_response({"error": "rejected"}, status=500)
        data = await request.json()
        post = {"id": len(self.posts) + 1, "title": data["title"], "body": data["body"]}
        self.posts.append(post)
        return web.json_response(post, status=201)


@pytest.fixture()
def backend() -> PostsBackend:
    return PostsBackend()


@pytest_asyncio.fixture
async def server(backend: PostsBackend) -> AsyncIterator[test_utils.TestServer]:
    app = web.Application()
    app.router.add_get("/posts", backend.list_posts)
    app.router.add_post("/posts", backend.create_post)
    test_server = test_utils.TestServer(app)
    await test_server.start_server()
    yield test_server
    await test_server.close()


async def _service(
    tmp_path: Path, server: test_utils.TestServer, pull_limit: int
) -> QuoteSyncService:
    config = QuoteSyncConfig(
        data_dir=tmp_path,
        remote=RemoteSettings(
            base_url=str(server.make_url("/posts")), timeout=5.0, pull_limit=pull_limit
        ),
    )
    # Start from an empty collection rather than the seeded defaults
    kv = SQLiteKeyValueStore(config.db_path)
    await kv.initialize()
    await kv.set(QUOTES_KEY, "[]")
    return await QuoteSyncService.create(config, kv=kv)


class TestSyncFlow:
    async def test_push_pull_merge(
        self, tmp_path: Path, server: test_utils.TestServer, backend: PostsBackend
    ) -> None:
        service = await _service(tmp_path, server, pull_limit=2)
        try:
            await service.add_quote("Mine", "Me")

            report = await service.trigger_sync_now()

            assert report is not None
            assert report.status == SyncStatus.SUCCESS
            assert report.pushed == 1
            assert backend.posts[-1] == {"id": 3, "title": "Mine", "body": "Me"}
            by_id = {q.id: q for q in service.quotes()}
            assert by_id["srv-3"].text == "Mine"
            assert by_id["srv-1"].text == "Server one"
            assert by_id["srv-2"].text == "Server two"
            assert by_id["srv-2"].category == "Server"
            assert all(q.synced for q in service.quotes())
        finally:
            await service.close()

    async def test_state_survives_restart(
        self, tmp_path: Path, server: test_utils.TestServer, backend: PostsBackend
    ) -> None:
        service = await _service(tmp_path, server, pull_limit=2)
        await service.trigger_sync_now()
        synced_ids = {q.id for q in service.quotes()}
        last_sync = service.last_sync_at
        await service.close()

        config = QuoteSyncConfig(
            data_dir=tmp_path,
            remote=RemoteSettings(base_url=str(server.make_url("/posts")), pull_limit=2),
        )
        reopened = await QuoteSyncService.create(config)
        try:
            assert {q.id for q in reopened.quotes()} == synced_ids
            assert reopened.last_sync_at == last_sync
        finally:
            await reopened.close()

    async def test_server_errors_degrade_gracefully(
        self, tmp_path: Path, server: test_utils.TestServer, backend: PostsBackend
    ) -> None:
        service = await _service(tmp_path, server, pull_limit=2)
        backend.fail_get = True
        backend.fail_post = True
        try:
            await service.add_quote("Offline", "Me")

            report = await service.trigger_sync_now()

            assert report is not None
            assert report.status == SyncStatus.PARTIAL
            assert report.push_failed >= 1
            assert report.pull_error is not None
            assert any(q.text == "Offline" and not q.synced for q in service.quotes())

            backend.fail_get = False
            backend.fail_post = False
            report = await service.trigger_sync_now()

            assert report is not None
            assert report.status == SyncStatus.SUCCESS
            assert all(q.synced for q in service.quotes())
        finally:
            await service.close()

    async def test_echo_of_pushed_quote_conflicts_on_category(
        self, tmp_path: Path, server: test_utils.TestServer, backend: PostsBackend
    ) -> None:
        backend.posts.clear()
        service = await _service(tmp_path, server, pull_limit=50)
        try:
            await service.add_quote("Round trip", "Me")
            await service.trigger_sync_now()
            conflicts = service.get_current_conflicts()

            echoed = [c for c in conflicts if c.local.text == "Round trip"]
            assert len(echoed) == 1
            assert echoed[0].local.category == "Me"
            assert echoed[0].remote.category == "Server"
        finally:
            await service.close()
