# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for services that talk to external systems: the Solana RPC client,
the Redis token blocklist and the health check service.
"""

import pytest
import requests
from unittest.mock import Mock, patch

from services.chain import ChainClientError, SolanaRpcClient, DEFAULT_USDC_MINT
from services.health import HealthCheckService, SERVICE_NAME
from services.redis import BLOCKLIST_PREFIX, RedisService


def _rpc_response(body):
    response = Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = body
    return response


class TestSolanaRpcClient:
    """Test JSON-RPC calls with a mocked HTTP session."""

    @pytest.fixture
    def session(self):
        return Mock(spec=requests.Session)

    @pytest.fixture
    def client(self, session):
        return SolanaRpcClient("https://rpc.example.com", DEFAULT_USDC_MINT, timeout=5, session=session)

    def test_sol_balance(self, client, session):
        session.post.return_value = _rpc_response({"jsonrpc": "2.0", "id": "1", "result": {"value": 2_500_000_000}})

        assert client.get_sol_balance("Wallet111") == 2.5

        url = session.post.call_args[0][0]
        payload = session.post.call_args[1]["json"]
        assert url == "https://rpc.example.com"
        assert payload["method"] == "getBalance"
        assert payload["params"][0] == "Wallet111"
        assert session.post.call_args[1]["timeout"] == 5

    def test_token_balance_sums_accounts(self, client, session):
        def account(amount):
            return {"account": {"data": {"parsed": {"info": {"tokenAmount": {"uiAmount": amount}}}}}}

        session.post.return_value = _rpc_response({"result": {"value": [account(12.5), account(7.5), account(None)]}})

        assert client.get_token_balance("Wallet111") == 20.0
        assert session.post.call_args[1]["json"]["params"][1] == {"mint": DEFAULT_USDC_MINT}

    def test_token_balance_without_accounts(self, client, session):
        session.post.return_value = _rpc_response({"result": {"value": []}})

        assert client.get_token_balance("Wallet111") == 0.0

    def test_wallet_balances(self, client, session):
        session.post.side_effect = [
            _rpc_response({"result": {"value": 1_000_000_000}}),
            _rpc_response({"result": {"value": []}}),
        ]

        balances = client.get_wallet_balances("Wallet111")

        assert balances == {"address": "Wallet111", "sol": 1.0, "usdc": 0.0, "usdcMint": DEFAULT_USDC_MINT}

    def test_submit_transaction(self, client, session):
        session.post.return_value = _rpc_response({"result": "5igSignature"})

        assert client.submit_transaction("AQID") == "5igSignature"
        params = session.post.call_args[1]["json"]["params"]
        assert params == ["AQID", {"encoding": "base64", "preflightCommitment": "confirmed"}]

    def test_rpc_error(self, client, session):
        session.post.return_value = _rpc_response({"error": {"code": -32602, "message": "Invalid param"}})

        with pytest.raises(ChainClientError) as exc_info:
            client.get_sol_balance("bad")

        assert exc_info.value.code == -32602
        assert exc_info.value.message == "Invalid param"

    def test_network_error(self, client, session):
        session.post.side_effect = requests.ConnectionError("unreachable")

        with pytest.raises(ChainClientError, match="unavailable"):
            client.get_sol_balance("Wallet111")

    def test_http_error(self, client, session):
        response = Mock()
        response.raise_for_status.side_effect = requests.HTTPError("502 Bad Gateway")
        session.post.return_value = response

        with pytest.raises(ChainClientError):
            client.get_sol_balance("Wallet111")

    def test_invalid_json(self, client, session):
        response = _rpc_response(None)
        response.json.side_effect = ValueError("No JSON object could be decoded")
        session.post.return_value = response

        with pytest.raises(ChainClientError, match="invalid JSON"):
            client.get_sol_balance("Wallet111")


class TestRedisService:
    """Test the token blocklist."""

    def test_without_url_blocklist_is_disabled(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)

        service = RedisService()

        assert service.is_available() is False
        assert service.is_token_blocked("token") is False
        assert service.block_token("token", 60) is False
        assert service.health_check()["status"] == "not_configured"

    @patch("services.redis.Redis")
    def test_failed_ping_disables_client(self, mock_redis):
        mock_redis.return_value.ping.return_value = "NOPE"

        service = RedisService("https://redis.example.com", "token")

        assert service.is_available() is False

    @patch("services.redis.Redis")
    def test_block_and_check(self, mock_redis):
        client = mock_redis.return_value
        client.ping.return_value = "PONG"
        client.setex.return_value = "OK"
        client.exists.return_value = 1

        service = RedisService("https://redis.example.com", "token")

        assert service.block_token("user:jti:access", 900) is True
        client.setex.assert_called_once_with(f"{BLOCKLIST_PREFIX}user:jti:access", 900, "1")
        assert service.is_token_blocked("user:jti:access") is True
        client.exists.assert_called_once_with(f"{BLOCKLIST_PREFIX}user:jti:access")

    @patch("services.redis.Redis")
    def test_errors_degrade_to_not_blocked(self, mock_redis):
        client = mock_redis.return_value
        client.ping.return_value = "PONG"
        client.exists.side_effect = Exception("timeout")

        service = RedisService("https://redis.example.com", "token")

        assert service.is_token_blocked("token") is False

    @patch("services.redis.Redis")
    def test_health_check(self, mock_redis):
        mock_redis.return_value.ping.return_value = "PONG"

        health = RedisService("https://redis.example.com", "token").health_check()

        assert health["status"] == "healthy"
        assert "response_time_ms" in health


class TestHealthCheckService:
    """Test dependency aggregation."""

    def _mongodb(self, status):
        mongodb = Mock()
        mongodb.health_check.return_value = {"status": status}
        return mongodb

    def _redis(self, status):
        redis = Mock()
        redis.health_check.return_value = {"status": status}
        return redis

    def test_all_healthy(self):
        service = HealthCheckService(self._mongodb("healthy"), self._redis("healthy"))

        health = service.get_comprehensive_health(include_metrics=False)

        assert health["status"] == "healthy"
        assert health["service"] == SERVICE_NAME
        assert "system_metrics" not in health
        assert health["dependencies"]["mongodb"]["status"] == "healthy"

    def test_missing_redis_does_not_degrade(self):
        service = HealthCheckService(self._mongodb("healthy"), None)

        health = service.get_comprehensive_health(include_metrics=False)

        assert health["status"] == "healthy"
        assert health["dependencies"]["redis"]["status"] == "not_configured"

    def test_unconfigured_redis_service_does_not_degrade(self):
        service = HealthCheckService(self._mongodb("healthy"), self._redis("not_configured"))

        assert service.get_comprehensive_health(include_metrics=False)["status"] == "healthy"

    def test_degraded(self):
        service = HealthCheckService(self._mongodb("healthy"), self._redis("unhealthy"))

        assert service.get_comprehensive_health(include_metrics=False)["status"] == "degraded"

    def test_unhealthy(self):
        service = HealthCheckService(self._mongodb("unhealthy"), None)

        assert service.get_comprehensive_health(include_metrics=False)["status"] == "unhealthy"

    def test_redis_exception_reported(self):
        redis = Mock()
        redis.health_check.side_effect = Exception("boom")
        service = HealthCheckService(self._mongodb("healthy"), redis)

        health = service.get_comprehensive_health(include_metrics=False)

        assert health["status"] == "degraded"
        assert health["dependencies"]["redis"]["error"] == "boom"

    @patch("services.health.psutil")
    def test_system_metrics(self, mock_psutil):
        mock_psutil.cpu_percent.return_value = 12.0
        mock_psutil.virtual_memory.return_value = Mock(used=512 * 1024 * 1024, total=1024 * 1024 * 1024, percent=50.0)
        mock_psutil.disk_usage.return_value = Mock(used=10 * 1024 ** 3, total=100 * 1024 ** 3)
        service = HealthCheckService(self._mongodb("healthy"), None)

        metrics = service.get_comprehensive_health()["system_metrics"]

        assert metrics["cpu_percent"] == 12.0
        assert metrics["memory"]["used_mb"] == 512.0
        assert metrics["disk"]["percent"] == 10.0
