"""Tests for the bulk save command."""

from unittest.mock import patch

import httpx

from laterstack.client import LaterStackClient
from tools import save_urls


def _fake_server(request: httpx.Request) -> httpx.Response:
    body = request.read().decode()
    if "dup.example" in body:
        return httpx.Response(
            409,
            json={
                "success": False,
                "error": "You've already saved this article!",
                "error_code": "duplicate_article",
            },
        )
    if "broken.example" in body:
        return httpx.Response(
            502,
            json={"success": False, "error": "Could not extract", "error_code": "extraction_failed"},
        )
    return httpx.Response(200, json={"success": True, "item_id": 1})


def _client_factory(seen_users: list[str]):
    def factory(base_url, external_id, auth_header="X-User-Id"):
        seen_users.append(external_id)
        return LaterStackClient(
            base_url,
            external_id,
            auth_header=auth_header,
            transport=httpx.MockTransport(_fake_server),
        )

    return factory


class TestSaveUrls:
    async def test_all_saved(self):
        users: list[str] = []
        with patch.object(save_urls, "LaterStackClient", _client_factory(users)):
            code = await save_urls.main(
                ["--user", "user_alice", "https://a.example/1", "https://a.example/2"]
            )
        assert code == 0
        assert users == ["user_alice"]

    async def test_duplicates_are_not_failures(self):
        with patch.object(save_urls, "LaterStackClient", _client_factory([])):
            code = await save_urls.main(["--user", "user_alice", "https://dup.example/1"])
        assert code == 0

    async def test_failures_set_exit_code(self):
        with patch.object(save_urls, "LaterStackClient", _client_factory([])):
            code = await save_urls.main(
                ["--user", "user_alice", "https://a.example/1", "https://broken.example/2"]
            )
        assert code == 1
