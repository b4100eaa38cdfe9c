"""Integration tests for FastAPI API endpoints using TestClient.

The full application is built with ``create_app`` and the upstream
provider is replaced by an ``httpx.MockTransport``, so each test drives
routing, middleware, services and the provider adapter end to end.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from src.api.routes import ROOT_MARKER
from src.main import create_app
from src.utils.logging import configure_logging
from tests.conftest import RecordingUpstream, error_response, make_settings, vector_response


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _client(upstream: RecordingUpstream, **settings_overrides) -> TestClient:
    settings = make_settings(**settings_overrides)
    return TestClient(create_app(settings, transport=upstream.transport()))


@pytest.fixture
def upstream() -> RecordingUpstream:
    return RecordingUpstream(vector_response([0.1, 0.2, 0.3]))


@pytest.fixture
def client(upstream: RecordingUpstream) -> Iterator[TestClient]:
    with _client(upstream) as test_client:
        yield test_client


# ======================================================================
# Health and root
# ======================================================================


class TestHealth:
    def test_health_reports_provider(self, client: TestClient, upstream: RecordingUpstream) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True, "provider": "openai"}
        assert upstream.call_count == 0

    def test_health_ollama(self) -> None:
        with _client(RecordingUpstream(), provider="ollama") as test_client:
            assert test_client.get("/health").json()["provider"] == "ollama"

    def test_root_marker(self, client: TestClient) -> None:
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == ROOT_MARKER
        assert response.headers["content-type"].startswith("text/plain")


# ======================================================================
# POST /v1/embeddings
# ======================================================================


class TestEmbeddings:
    def test_single_input(self, client: TestClient, upstream: RecordingUpstream) -> None:
        response = client.post("/v1/embeddings", json={"model": "m", "input": "hello"})

        assert response.status_code == 200
        assert response.json() == {
            "object": "list",
            "model": "m",
            "data": [{"object": "embedding", "index": 0, "embedding": [0.1, 0.2, 0.3]}],
        }
        assert upstream.call_count == 1
        assert str(upstream.requests[0].url) == "http://upstream.test/api/v1/embeddings"

    def test_list_input_preserves_order(self) -> None:
        upstream = RecordingUpstream(
            vector_response([1.0]),
            vector_response([2.0]),
            vector_response([3.0]),
        )
        with _client(upstream) as test_client:
            response = test_client.post("/v1/embeddings", json={"model": "m", "input": ["a", "b", "c"]})

        body = response.json()
        assert [item["index"] for item in body["data"]] == [0, 1, 2]
        assert [item["embedding"] for item in body["data"]] == [[1.0], [2.0], [3.0]]
        assert [b["input"] for b in upstream.json_bodies()] == ["a", "b", "c"]

    def test_trailing_slash(self, client: TestClient) -> None:
        response = client.post("/v1/embeddings/", json={"model": "m", "input": "x"})
        assert response.status_code == 200

    def test_ollama_endpoint(self) -> None:
        upstream = RecordingUpstream(httpx.Response(200, json={"embeddings": [[0.5, 0.6]]}))
        with _client(upstream, provider="ollama") as test_client:
            response = test_client.post("/v1/embeddings", json={"model": "nomic-embed-text", "input": "x"})

        assert response.json()["data"][0]["embedding"] == [0.5, 0.6]
        assert str(upstream.requests[0].url) == "http://upstream.test/api/embed"

    @pytest.mark.parametrize(
        ("payload", "message"),
        [
            ({"input": "x"}, "model required"),
            ({"model": "", "input": "x"}, "model required"),
            ({"model": "m"}, "input required"),
            ({"model": "m", "input": ""}, "input required"),
            ({"model": "m", "input": []}, "input required"),
        ],
    )
    def test_bad_request(
        self, client: TestClient, upstream: RecordingUpstream, payload: dict, message: str
    ) -> None:
        response = client.post("/v1/embeddings", json=payload)
        assert response.status_code == 400
        assert response.json() == {"error": message}
        assert upstream.call_count == 0

    def test_invalid_json_body(self, client: TestClient) -> None:
        response = client.post(
            "/v1/embeddings",
            content=b"{not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_retries_then_502(self) -> None:
        upstream = RecordingUpstream(error_response("overloaded"))
        with _client(upstream, router_attempts=3) as test_client:
            response = test_client.post("/v1/embeddings", json={"model": "m", "input": "x"})

        assert response.status_code == 502
        assert response.json() == {"error": "embedder error: overloaded"}
        assert upstream.call_count == 3

    def test_unreachable_provider_uses_every_attempt(self) -> None:
        upstream = RecordingUpstream(httpx.ConnectError("connection refused"))
        with _client(upstream, router_attempts=4) as test_client:
            response = test_client.post("/v1/embeddings", json={"model": "m", "input": "x"})

        assert response.status_code == 502
        assert response.json()["error"].startswith("embedder request failed")
        assert upstream.call_count == 4

    def test_failure_aborts_remaining_inputs(self) -> None:
        upstream = RecordingUpstream(vector_response([1.0]), httpx.Response(200, text="garbage"))
        with _client(upstream, router_attempts=2) as test_client:
            response = test_client.post("/v1/embeddings", json={"model": "m", "input": ["a", "b", "c"]})

        assert response.status_code == 502
        assert "non-json" in response.json()["error"]
        # One success for "a", two failed attempts for "b", nothing for "c".
        assert upstream.call_count == 3

    def test_recovers_within_attempts(self) -> None:
        upstream = RecordingUpstream(httpx.Response(503, text="busy"), vector_response([7.0]))
        with _client(upstream) as test_client:
            response = test_client.post("/v1/embeddings", json={"model": "m", "input": "x"})

        assert response.status_code == 200
        assert response.json()["data"][0]["embedding"] == [7.0]
        assert upstream.call_count == 2


# ======================================================================
# Credentials
# ======================================================================


class TestCredentials:
    def test_require_api_key_rejects(self) -> None:
        upstream = RecordingUpstream()
        with _client(upstream, api_key="secret", require_api_key=True) as test_client:
            response = test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": "x"},
                headers={"x-api-key": "wrong"},
            )

        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized - Invalid or missing API key"}
        assert upstream.call_count == 0

    def test_require_api_key_accepts_bearer(self) -> None:
        upstream = RecordingUpstream()
        with _client(upstream, api_key="secret", require_api_key=True) as test_client:
            response = test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": "x"},
                headers={"Authorization": "Bearer secret"},
            )

        assert response.status_code == 200
        assert upstream.requests[0].headers["x-api-key"] == "secret"

    def test_incoming_bearer_forwarded(self) -> None:
        upstream = RecordingUpstream()
        with _client(upstream, api_key="server") as test_client:
            test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": "x"},
                headers={"Authorization": "Bearer client", "X-PAYMENT": "pay-token"},
            )

        sent = upstream.requests[0].headers
        assert sent["authorization"] == "Bearer client"
        assert "x-api-key" not in sent
        assert sent["x-payment"] == "pay-token"

    def test_ignore_incoming_api_key(self) -> None:
        upstream = RecordingUpstream()
        with _client(upstream, api_key="server", ignore_incoming_api_key=True) as test_client:
            test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": "x"},
                headers={"Authorization": "Bearer client"},
            )

        sent = upstream.requests[0].headers
        assert sent["x-api-key"] == "server"
        assert "authorization" not in sent


# ======================================================================
# Transparent proxy
# ======================================================================


class TestProxy:
    def test_get_with_query(self) -> None:
        upstream = RecordingUpstream(
            httpx.Response(
                200,
                content=b'{"models":[]}',
                headers={"content-type": "application/json", "x-ratelimit-limit": "100"},
            )
        )
        with _client(upstream) as test_client:
            response = test_client.get("/api/tags?verbose=true")

        assert response.status_code == 200
        assert response.json() == {"models": []}
        assert response.headers["x-ratelimit-limit"] == "100"
        assert str(upstream.requests[0].url) == "http://upstream.test/api/tags?verbose=true"

    def test_encoded_path_forwarded_verbatim(self) -> None:
        upstream = RecordingUpstream(httpx.Response(200, text="ok"))
        with _client(upstream) as test_client:
            response = test_client.get("/api/show/a%2Fb")

        assert response.status_code == 200
        assert upstream.requests[0].url.raw_path == b"/api/show/a%2Fb"

    def test_v1_post_passthrough(self) -> None:
        upstream = RecordingUpstream(httpx.Response(418, text="teapot"))
        with _client(upstream) as test_client:
            response = test_client.post("/v1/chat/completions", json={"a": 1})

        assert response.status_code == 418
        assert response.text == "teapot"
        request = upstream.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/chat/completions"

    def test_proxy_does_not_enforce_required_key(self) -> None:
        upstream = RecordingUpstream(httpx.Response(200, text="ok"))
        with _client(upstream, api_key="secret", require_api_key=True) as test_client:
            response = test_client.get("/v1/models")

        assert response.status_code == 200
        assert upstream.requests[0].headers["x-api-key"] == "secret"

    def test_transport_error_is_502(self) -> None:
        upstream = RecordingUpstream(httpx.ConnectError("refused"))
        with _client(upstream) as test_client:
            response = test_client.get("/api/tags")

        assert response.status_code == 502
        assert response.json()["error"].startswith("upstream proxy error")

    @pytest.mark.parametrize("method", ["GET", "PUT", "DELETE"])
    def test_embeddings_path_never_proxied(self, method: str) -> None:
        upstream = RecordingUpstream()
        with _client(upstream) as test_client:
            response = test_client.request(method, "/v1/embeddings")

        assert response.status_code == 405
        assert response.headers["allow"] == "POST"
        assert upstream.call_count == 0


# ======================================================================
# Secrets stay out of the logs
# ======================================================================


_SECRETS = {
    "api_key": "sk-configured-1f2e3d",
    "x_payment": "pay-configured-9a8b7c",
    "bearer": "client-bearer-5d6e7f",
    "x_api_key": "client-raw-key-4c5b6a",
    "incoming_payment": "pay-incoming-3e2d1c",
}


class TestSecretsNotLogged:
    @pytest.fixture(autouse=True)
    def _restore_logging(self) -> Iterator[None]:
        yield
        configure_logging()

    def test_credential_values_never_logged(self, tmp_path: Path) -> None:
        upstream = RecordingUpstream(vector_response([0.1]))
        with _client(
            upstream,
            api_key=_SECRETS["api_key"],
            x_payment=_SECRETS["x_payment"],
            log_level="DEBUG",
            log_dir=str(tmp_path),
        ) as test_client:
            test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": ["a", "b"]},
                headers={
                    "Authorization": f"Bearer {_SECRETS['bearer']}",
                    "X-PAYMENT": _SECRETS["incoming_payment"],
                },
            )
            test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": "c"},
                headers={"x-api-key": _SECRETS["x_api_key"]},
            )
            test_client.get("/api/tags", headers={"Authorization": f"Bearer {_SECRETS['bearer']}"})
            test_client.post("/v1/chat/completions", json={}, headers={"x-api-key": _SECRETS["x_api_key"]})
            test_client.get("/v1/models")

        # Every secret really went upstream...
        sent = " ".join(str(dict(request.headers)) for request in upstream.requests)
        assert all(value in sent for value in _SECRETS.values())

        # ...and none of them reached the log files.
        combined = (tmp_path / "combined.log").read_text(encoding="utf-8")
        assert "embedding_request_completed" in combined
        assert "proxy_request_completed" in combined
        leaked = [name for name, value in _SECRETS.items() if value in combined]
        assert leaked == []

    def test_rejected_key_not_logged(self, tmp_path: Path) -> None:
        upstream = RecordingUpstream()
        with _client(
            upstream,
            api_key=_SECRETS["api_key"],
            require_api_key=True,
            log_dir=str(tmp_path),
        ) as test_client:
            response = test_client.post(
                "/v1/embeddings",
                json={"model": "m", "input": "x"},
                headers={"x-api-key": _SECRETS["x_api_key"]},
            )

        assert response.status_code == 401
        combined = (tmp_path / "combined.log").read_text(encoding="utf-8")
        assert "api_key_rejected" in combined
        assert _SECRETS["x_api_key"] not in combined
        assert _SECRETS["api_key"] not in combined
