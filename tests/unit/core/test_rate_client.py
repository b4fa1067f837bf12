"""Unit tests for fxsignals.core.rate_client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from fxsignals.core.exceptions import DataSourceError, RateLimitError
from fxsignals.core.rate_client import FastForexClient


def _response(status: int = 200, payload: object = None, bad_json: bool = False) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    if bad_json:
        resp.json.side_effect = ValueError("not json")
    else:
        resp.json.return_value = payload
    return resp


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session: MagicMock) -> FastForexClient:
    return FastForexClient("key-123", base_url="https://fx.test/", calls_per_second=1000.0, session=session)


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("fxsignals.core.retry.time.sleep") as sleep:
        yield sleep


class TestFastForexClient:
    def test_requires_api_key(self) -> None:
        with pytest.raises(ValueError, match="api_key"):
            FastForexClient("")

    def test_parses_results(self, client, session) -> None:
        session.get.return_value = _response(
            payload={"base": "EUR", "results": {"usd": 1.0945, "JPY": "161.2", "GBP": None, "CHF": 0}}
        )

        rates = client.fetch_multi("eur", ["usd", "jpy", "gbp", "chf"])

        assert rates == {"USD": 1.0945, "JPY": 161.2}
        args, kwargs = session.get.call_args
        assert args[0] == "https://fx.test/fetch-multi"
        assert kwargs["params"] == {"from": "EUR", "to": "USD,JPY,GBP,CHF", "api_key": "key-123"}
        assert kwargs["timeout"] == 10.0

    def test_no_targets_skips_request(self, client, session) -> None:
        assert client.fetch_multi("EUR", []) == {}
        session.get.assert_not_called()

    def test_rate_limit_retried_then_raised(self, client, session) -> None:
        session.get.return_value = _response(status=429)
        with pytest.raises(RateLimitError):
            client.fetch_multi("EUR", ["USD"])
        assert session.get.call_count == 4

    def test_recovers_after_transient_error(self, client, session) -> None:
        session.get.side_effect = [
            requests.ConnectionError("reset"),
            _response(payload={"results": {"USD": 1.1}}),
        ]
        assert client.fetch_multi("EUR", ["USD"]) == {"USD": 1.1}

    def test_http_error(self, client, session) -> None:
        session.get.return_value = _response(status=500)
        with pytest.raises(DataSourceError, match="HTTP 500"):
            client.fetch_multi("EUR", ["USD"])

    def test_invalid_json(self, client, session) -> None:
        session.get.return_value = _response(bad_json=True)
        with pytest.raises(DataSourceError, match="invalid JSON"):
            client.fetch_multi("EUR", ["USD"])

    def test_missing_results(self, client, session) -> None:
        session.get.return_value = _response(payload={"error": "bad key"})
        with pytest.raises(DataSourceError, match="no results"):
            client.fetch_multi("EUR", ["USD"])
