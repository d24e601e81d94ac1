from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from setkeeper.api.deps import get_actor_id, get_services, raise_http
from setkeeper.bootstrap import Services
from setkeeper.core import SetkeeperError

router = APIRouter()


@router.get("/url")
def get_auth_url(
    show_dialog: bool = False,
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> dict:
    """
    Spotify consent URL for the caller. The embedded state is single-use and
    expires after 10 minutes.
    """
    return {"auth_url": services.tokens.build_authorize_url(actor_id, show_dialog)}


@router.get("/callback", response_class=HTMLResponse)
def auth_callback(
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    error: str | None = Query(default=None),
    services: Services = Depends(get_services),
):
    """
    Spotify redirect target: exchange the code and store the tokens for the
    user the state was issued to.
    """
    if error:
        raise HTTPException(
            status_code=400,
            detail=f"Spotify authorization failed: {error}",
        )
    if not state:
        raise HTTPException(status_code=400, detail="Missing 'state' parameter.")
    if not code:
        raise HTTPException(status_code=400, detail="Missing 'code' parameter.")

    try:
        services.tokens.link_from_callback(state, code)
    except SetkeeperError as e:
        raise_http(e)

    return """
    <html>
      <body>
        <h1>Spotify authorization complete ✅</h1>
        <p>You can close this window and return to the application.</p>
      </body>
    </html>
    """


@router.get("/status")
def auth_status(
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> dict:
    """
    Whether a Spotify credential is stored for the caller (expiry only,
    never the tokens).
    """
    status = services.tokens.token_status(actor_id)
    if status is None:
        return {"authenticated": False, "expires_at": None}
    return {"authenticated": True, "expires_at": status["expires_at"]}


@router.delete("/link")
def unlink(
    actor_id: str = Depends(get_actor_id),
    services: Services = Depends(get_services),
) -> dict:
    return {"unlinked": services.tokens.unlink_account(actor_id)}
