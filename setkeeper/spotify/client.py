"""Thin HTTP client for the Spotify accounts service and Web API.

This is the only module that performs HTTP. Every failure is translated into
the setkeeper error taxonomy here, so callers never see requests exceptions:

  - token endpoint problems      -> SpotifyAuthError / RefreshFailed
  - HTTP 429 on the Web API      -> RateLimited (with the advised wait)
  - network errors / other non-2xx -> UpstreamUnavailable
"""

from dataclasses import dataclass
import math
from typing import Any, Dict, Iterable, List, Optional, Type
from urllib.parse import urlencode

import requests

from setkeeper.core import (
    RateLimited,
    RefreshFailed,
    SpotifyAuthError,
    UpstreamUnavailable,
)

DEFAULT_RETRY_AFTER = 1.0


@dataclass
class TokenGrant:
    """Successful answer of the token endpoint."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None


def _retry_after(response: requests.Response) -> float:
    raw = response.headers.get("Retry-After")
    if raw is None:
        return DEFAULT_RETRY_AFTER
    try:
        seconds = float(raw)
    except ValueError:
        return DEFAULT_RETRY_AFTER
    if not math.isfinite(seconds):
        return DEFAULT_RETRY_AFTER
    return max(0.0, seconds)


class SpotifyClient:
    def __init__(
        self,
        client_id: Optional[str],
        client_secret: Optional[str],
        redirect_uri: str,
        *,
        auth_url: str,
        accounts_url: str,
        api_base: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.auth_url = auth_url
        self.token_url = f"{accounts_url.rstrip('/')}/api/token"
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    # ---------- Accounts service ----------

    def build_authorize_url(
        self,
        state: str,
        scopes: Iterable[str],
        show_dialog: bool = False,
    ) -> str:
        params = {
            "client_id": self.client_id or "",
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "state": state,
            "scope": " ".join(scopes),
        }
        if show_dialog:
            params["show_dialog"] = "true"
        return f"{self.auth_url}?{urlencode(params)}"

    def exchange_code(self, code: str) -> TokenGrant:
        return self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
            },
            SpotifyAuthError,
        )

    def refresh_token(self, refresh_token: str) -> TokenGrant:
        return self._request_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token},
            RefreshFailed,
        )

    def _request_token(
        self,
        form: Dict[str, str],
        error_cls: Type[SpotifyAuthError],
    ) -> TokenGrant:
        grant_type = form["grant_type"]
        try:
            r = self.session.post(
                self.token_url,
                data=form,
                auth=(self.client_id or "", self.client_secret or ""),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise error_cls(f"Token request ({grant_type}) failed: {e}") from e

        if not r.ok:
            raise error_cls(
                f"Token request ({grant_type}) failed with status {r.status_code}"
            )

        try:
            data = r.json()
        except ValueError as e:
            raise error_cls(f"Token response ({grant_type}) is not JSON") from e

        access_token = data.get("access_token") if isinstance(data, dict) else None
        if not access_token:
            raise error_cls(f"Token response ({grant_type}) has no access_token")

        return TokenGrant(
            access_token=access_token,
            expires_in=int(data.get("expires_in") or 3600),
            refresh_token=data.get("refresh_token") or None,
            token_type=data.get("token_type"),
            scope=data.get("scope"),
        )

    # ---------- Web API ----------

    def _api(
        self,
        method: str,
        path: str,
        access_token: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        url = path if path.startswith("http") else f"{self.api_base}{path}"
        try:
            r = self.session.request(
                method,
                url,
                headers={"Authorization": f"Bearer {access_token}"},
                params=params,
                json=json,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise UpstreamUnavailable(f"{method} {path} failed: {e}") from e

        if r.status_code == 429:
            raise RateLimited(_retry_after(r))
        if not r.ok:
            raise UpstreamUnavailable(
                f"{method} {path} failed with status {r.status_code}: {r.text[:200]}",
                status=r.status_code,
            )
        return r

    def _json(self, r: requests.Response) -> Any:
        if r.status_code == 204 or not r.content:
            return None
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamUnavailable(
                f"Invalid JSON from Spotify (status {r.status_code})", r.status_code
            ) from e

    def get_tracks(
        self,
        access_token: str,
        track_ids: List[str],
    ) -> List[Optional[Dict[str, Any]]]:
        """
        Bulk-fetch tracks. Spotify answers with one entry per requested id,
        null for ids it does not know.
        """
        r = self._api(
            "GET", "/tracks", access_token, params={"ids": ",".join(track_ids)}
        )
        data = self._json(r)
        tracks = data.get("tracks") if isinstance(data, dict) else None
        return tracks if isinstance(tracks, list) else []

    def get_current_user(self, access_token: str) -> Dict[str, Any]:
        return self._json(self._api("GET", "/me", access_token)) or {}

    def search_tracks(
        self,
        access_token: str,
        query: str,
        limit: int = 10,
        market: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"q": query, "type": "track", "limit": limit}
        if market:
            params["market"] = market
        data = self._json(self._api("GET", "/search", access_token, params=params))
        items = ((data or {}).get("tracks") or {}).get("items")
        return items if isinstance(items, list) else []

    def create_playlist(
        self,
        access_token: str,
        user_id: str,
        name: str,
        description: str,
        public: bool = False,
    ) -> str:
        data = self._json(
            self._api(
                "POST",
                f"/users/{user_id}/playlists",
                access_token,
                json={"name": name, "description": description, "public": public},
            )
        )
        return data["id"]

    def add_playlist_items(
        self,
        access_token: str,
        playlist_id: str,
        uris: List[str],
    ) -> None:
        self._api(
            "POST",
            f"/playlists/{playlist_id}/tracks",
            access_token,
            json={"uris": uris},
        )

    def unfollow_playlist(self, access_token: str, playlist_id: str) -> None:
        self._api("DELETE", f"/playlists/{playlist_id}/followers", access_token)

    def set_shuffle(
        self,
        access_token: str,
        state: bool,
        device_id: Optional[str] = None,
    ) -> None:
        params: Dict[str, Any] = {"state": "true" if state else "false"}
        if device_id:
            params["device_id"] = device_id
        self._api("PUT", "/me/player/shuffle", access_token, params=params)

    def list_devices(self, access_token: str) -> List[Dict[str, Any]]:
        data = self._json(self._api("GET", "/me/player/devices", access_token))
        devices = (data or {}).get("devices")
        return devices if isinstance(devices, list) else []

    def start_playback(
        self,
        access_token: str,
        *,
        device_id: Optional[str] = None,
        context_uri: Optional[str] = None,
        uris: Optional[List[str]] = None,
    ) -> None:
        body: Dict[str, Any] = {}
        if context_uri:
            body["context_uri"] = context_uri
        if uris:
            body["uris"] = uris
        params = {"device_id": device_id} if device_id else None
        self._api("PUT", "/me/player/play", access_token, params=params, json=body)
