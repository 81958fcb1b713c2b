#!/usr/bin/env python3
"""
Tests for environment-based configuration.
"""

import pytest

from pocketbase_sdk import PocketBase
from pocketbase_sdk.config import DEFAULT_URL, Config


class TestConfig:
    """Test Config helpers."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("POCKETBASE_URL", raising=False)
        monkeypatch.delenv("POCKETBASE_TOKEN", raising=False)
        assert Config.from_env() == {"base_url": DEFAULT_URL}

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("POCKETBASE_URL", "https://pb.example.com/")
        monkeypatch.setenv("POCKETBASE_TOKEN", "env-token")
        assert Config.from_env() == {
            "base_url": "https://pb.example.com",
            "token": "env-token"
        }

    def test_for_local(self):
        assert Config.for_local() == {"base_url": "http://127.0.0.1:8090"}
        assert Config.for_local(9000) == {"base_url": "http://127.0.0.1:9000"}

    def test_for_remote(self):
        assert Config.for_remote("https://pb.example.com/") == {"base_url": "https://pb.example.com"}
        assert Config.for_remote("https://pb.example.com", token="t")["token"] == "t"

    @pytest.mark.asyncio
    async def test_client_from_env(self, monkeypatch):
        monkeypatch.setenv("POCKETBASE_URL", "http://10.0.0.5:8090")
        monkeypatch.setenv("POCKETBASE_TOKEN", "env-token")
        async with PocketBase.from_env() as pb:
            assert pb.base_url == "http://10.0.0.5:8090"
            assert pb.auth_store.token == "env-token"
            assert pb.is_authenticated

    @pytest.mark.asyncio
    async def test_config_unpacks_into_client(self):
        async with PocketBase(**Config.for_remote("https://pb.example.com", token="t")) as pb:
            assert pb.http.url("/api/health") == "https://pb.example.com/api/health"
