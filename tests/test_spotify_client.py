import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from setkeeper.core import RateLimited, RefreshFailed, SpotifyAuthError, UpstreamUnavailable
from setkeeper.spotify import SpotifyClient


class FakeResponse:
    def __init__(
        self,
        status_code: int = 200,
        payload: Any = None,
        headers: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
    ) -> None:
        self.status_code = status_code
        self.headers = headers or {}
        if text is None:
            text = json.dumps(payload) if payload is not None else ""
        self.text = text
        self.content = text.encode("utf-8")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 400

    def json(self) -> Any:
        return json.loads(self.text)


class FakeSession:
    """Records requests and answers them from a queue of responses."""

    def __init__(self, *responses: Any) -> None:
        self.responses: List[Any] = list(responses)
        self.requests: List[Dict[str, Any]] = []

    def _next(self) -> FakeResponse:
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def post(self, url, **kwargs):
        self.requests.append({"method": "POST", "url": url, **kwargs})
        return self._next()

    def request(self, method, url, **kwargs):
        self.requests.append({"method": method, "url": url, **kwargs})
        return self._next()


def _client(session: FakeSession) -> SpotifyClient:
    return SpotifyClient(
        "client-id",
        "client-secret",
        "http://localhost:8000/auth/callback",
        auth_url="https://accounts.example/authorize",
        accounts_url="https://accounts.example/",
        api_base="https://api.example/v1/",
        session=session,
    )


def test_refresh_posts_form_with_basic_auth() -> None:
    session = FakeSession(
        FakeResponse(200, {"access_token": "new", "expires_in": 1800, "token_type": "Bearer"})
    )

    grant = _client(session).refresh_token("refresh-1")

    assert grant.access_token == "new"
    assert grant.expires_in == 1800
    assert grant.refresh_token is None

    sent = session.requests[0]
    assert sent["url"] == "https://accounts.example/api/token"
    assert sent["data"] == {"grant_type": "refresh_token", "refresh_token": "refresh-1"}
    assert sent["auth"] == ("client-id", "client-secret")


def test_refresh_defaults_expiry_to_one_hour() -> None:
    session = FakeSession(FakeResponse(200, {"access_token": "new"}))

    assert _client(session).refresh_token("r").expires_in == 3600


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(200, {"token_type": "Bearer"}),
        FakeResponse(400, {"error": "invalid_grant"}),
        FakeResponse(200, text="<html>oops</html>"),
        requests.ConnectionError("network down"),
    ],
)
def test_refresh_failures_raise_refresh_failed(response) -> None:
    with pytest.raises(RefreshFailed):
        _client(FakeSession(response)).refresh_token("r")


def test_exchange_code_failure_raises_auth_error() -> None:
    session = FakeSession(FakeResponse(400, {"error": "invalid_grant"}))

    with pytest.raises(SpotifyAuthError):
        _client(session).exchange_code("bad-code")


def test_exchange_code_returns_refresh_token() -> None:
    session = FakeSession(
        FakeResponse(200, {"access_token": "a", "refresh_token": "r", "expires_in": 3600})
    )

    grant = _client(session).exchange_code("code-1")

    assert grant.refresh_token == "r"
    assert session.requests[0]["data"]["grant_type"] == "authorization_code"
    assert session.requests[0]["data"]["code"] == "code-1"


def test_get_tracks_joins_ids_and_keeps_nulls() -> None:
    session = FakeSession(FakeResponse(200, {"tracks": [{"id": "a"}, None]}))

    tracks = _client(session).get_tracks("token", ["a", "b"])

    assert tracks == [{"id": "a"}, None]
    sent = session.requests[0]
    assert sent["method"] == "GET"
    assert sent["url"] == "https://api.example/v1/tracks"
    assert sent["params"] == {"ids": "a,b"}
    assert sent["headers"] == {"Authorization": "Bearer token"}


def test_rate_limit_carries_retry_after() -> None:
    session = FakeSession(FakeResponse(429, headers={"Retry-After": "7"}))

    with pytest.raises(RateLimited) as excinfo:
        _client(session).get_tracks("token", ["a"])

    assert excinfo.value.retry_after == 7.0
    assert excinfo.value.status == 429


def test_rate_limit_without_header_uses_default() -> None:
    session = FakeSession(FakeResponse(429))

    with pytest.raises(RateLimited) as excinfo:
        _client(session).get_tracks("token", ["a"])

    assert excinfo.value.retry_after == 1.0


def test_server_error_is_upstream_unavailable() -> None:
    session = FakeSession(FakeResponse(503, text="unavailable"))

    with pytest.raises(UpstreamUnavailable) as excinfo:
        _client(session).get_tracks("token", ["a"])

    assert excinfo.value.status == 503
    assert not isinstance(excinfo.value, RateLimited)


def test_network_error_is_upstream_unavailable() -> None:
    session = FakeSession(requests.Timeout("slow"))

    with pytest.raises(UpstreamUnavailable):
        _client(session).get_current_user("token")


def test_authorize_url_carries_state_and_scopes() -> None:
    url = _client(FakeSession()).build_authorize_url(
        "state-1", ["user-read-email", "playlist-modify-private"], show_dialog=True
    )

    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://accounts.example/authorize"
    assert query["client_id"] == ["client-id"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["state-1"]
    assert query["scope"] == ["user-read-email playlist-modify-private"]
    assert query["show_dialog"] == ["true"]


def test_playback_calls_send_expected_bodies() -> None:
    session = FakeSession(
        FakeResponse(201, {"id": "pl-1"}),
        FakeResponse(201, {"snapshot_id": "s"}),
        FakeResponse(204),
    )
    client = _client(session)

    assert client.create_playlist("token", "user 1", "Temp", "desc") == "pl-1"
    client.add_playlist_items("token", "pl-1", ["spotify:track:a"])
    client.start_playback("token", device_id="d1", context_uri="spotify:playlist:pl-1")

    create, add, play = session.requests
    assert create["json"] == {"name": "Temp", "description": "desc", "public": False}
    assert add["url"] == "https://api.example/v1/playlists/pl-1/tracks"
    assert add["json"] == {"uris": ["spotify:track:a"]}
    assert play["method"] == "PUT"
    assert play["params"] == {"device_id": "d1"}
    assert play["json"] == {"context_uri": "spotify:playlist:pl-1"}


@pytest.mark.parametrize("header", ["inf", "nan", "soon"])
def test_unusable_retry_after_falls_back_to_default(header: str) -> None:
    session = FakeSession(FakeResponse(429, headers={"Retry-After": header}))

    with pytest.raises(RateLimited) as excinfo:
        _client(session).get_tracks("token", ["a"])

    assert excinfo.value.retry_after == 1.0


def test_single_track_playback_sends_uris() -> None:
    session = FakeSession(FakeResponse(204))

    _client(session).start_playback("token", device_id="d1", uris=["spotify:track:a"])

    sent = session.requests[0]
    assert sent["url"] == "https://api.example/v1/me/player/play"
    assert sent["json"] == {"uris": ["spotify:track:a"]}
