"""Tests for the core HTTP client."""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from vidctl.core import client as client_module
from vidctl.core.client import VideoAPIClient
from vidctl.core.exceptions import (
    APIError,
    AuthenticationError,
    InvalidURLError,
    PermissionDeniedError,
    ResourceNotFoundError,
    RetryExhaustedError,
)


def _make_response(status_code: int, **kwargs) -> httpx.Response:
    req = httpx.Request("GET", "https://videos.example.com/api/v1/videos/batch/progress/u1")
    return httpx.Response(status_code, request=req, **kwargs)


@pytest.fixture
def no_sleep(monkeypatch):
    sleeps: list[float] = []
    monkeypatch.setattr(client_module.time, "sleep", sleeps.append)
    return sleeps


def _client_with(monkeypatch, *responses, **kwargs) -> tuple[VideoAPIClient, MagicMock]:
    client = VideoAPIClient(base_url="https://videos.example.com/", token="tok", **kwargs)
    mock_httpx = MagicMock()
    mock_httpx.request = MagicMock(side_effect=list(responses))
    monkeypatch.setattr(client, "_get_client", MagicMock(return_value=mock_httpx))
    return client, mock_httpx


def test_base_url_is_normalized():
    client = VideoAPIClient(base_url="https://videos.example.com/")
    assert client.base_url == "https://videos.example.com"
    assert not client.is_authenticated


def test_invalid_base_url_rejected():
    with pytest.raises(InvalidURLError):
        VideoAPIClient(base_url="ftp://videos.example.com")


def test_request_uses_prefix_and_bearer_token(monkeypatch):
    client, mock_httpx = _client_with(monkeypatch, _make_response(200, json={"data": []}))

    client.get("/batch/progress/u1")

    args, kwargs = mock_httpx.request.call_args
    assert args == ("GET", "/api/v1/videos/batch/progress/u1")
    assert kwargs["headers"]["Authorization"] == "Bearer tok"


def test_retries_gateway_errors_with_backoff(monkeypatch, no_sleep):
    client, mock_httpx = _client_with(
        monkeypatch,
        _make_response(503),
        _make_response(502),
        _make_response(200, json={"ok": True}),
    )

    resp = client.get("/batch/progress/u1")

    assert resp.status_code == 200
    assert mock_httpx.request.call_count == 3
    assert no_sleep == [2, 4]


def test_retry_exhausted_after_connect_errors(monkeypatch, no_sleep):
    req = httpx.Request("GET", "https://videos.example.com")
    client, mock_httpx = _client_with(
        monkeypatch,
        *[httpx.ConnectError("refused", request=req)] * 3,
        max_retries=2,
    )

    with pytest.raises(RetryExhaustedError) as excinfo:
        client.get("/batch/progress/u1")

    assert excinfo.value.attempts == 3
    assert mock_httpx.request.call_count == 3


@pytest.mark.parametrize(
    ("status", "error"),
    [
        (401, AuthenticationError),
        (403, PermissionDeniedError),
        (404, ResourceNotFoundError),
    ],
)
def test_status_mapping(monkeypatch, status, error):
    client, mock_httpx = _client_with(monkeypatch, _make_response(status))

    with pytest.raises(error):
        client.get("/batch/progress/u1")

    assert mock_httpx.request.call_count == 1


def test_other_errors_raise_api_error(monkeypatch):
    client, _ = _client_with(monkeypatch, _make_response(422, text="bad channel"))

    with pytest.raises(APIError) as excinfo:
        client.post("/batch/init", json={})

    assert excinfo.value.status_code == 422
    assert "bad channel" in str(excinfo.value)


def test_post_json_empty_body_returns_none(monkeypatch):
    client, _ = _client_with(monkeypatch, _make_response(204))

    assert client.post_json("/batch/complete/u1") is None


def test_post_json_decodes_body(monkeypatch):
    client, _ = _client_with(monkeypatch, _make_response(200, json={"success": True, "data": []}))

    assert client.post_json("/batch/retry/u1") == {"success": True, "data": []}


def test_get_json_malformed_body_raises_api_error(monkeypatch):
    client, _ = _client_with(monkeypatch, _make_response(200, text="<html>gateway</html>"))

    with pytest.raises(APIError, match="Malformed JSON response") as excinfo:
        client.get_json("/batch/progress/u1")

    assert excinfo.value.status_code == 200


def test_post_json_malformed_body_raises_api_error(monkeypatch):
    client, _ = _client_with(
        monkeypatch,
        _make_response(200, text="{not json", headers={"content-type": "application/json"}),
    )

    with pytest.raises(APIError, match="Malformed JSON response"):
        client.post_json("/batch/retry/u1")
