"""OAuth callback endpoint.

The backend redirects the OAuth popup here once GitHub has answered. The page
posts the outcome on the message channel the waiting handshake listens to.
"""

from typing import Optional
import html
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse

from repo_integrator.messaging import MessageType

logger = logging.getLogger(__name__)

router = APIRouter()

NO_PENDING_TITLE = "No pending connection"
NO_PENDING_MESSAGE = "No GitHub connection is waiting for this window. Start the connection again from the application."

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head><title>{title}</title></head>
<body>
<h1>{title}</h1>
<p>{message}</p>
<p>You can close this window.</p>
</body>
</html>
"""


def request_origin(request: Request) -> str:
    """Origin (scheme://host[:port]) the request was addressed to."""
    return f"{request.url.scheme}://{request.url.netloc}"


def render_page(title: str, message: str, status_code: int = 200) -> HTMLResponse:
    return HTMLResponse(
        PAGE_TEMPLATE.format(title=html.escape(title), message=html.escape(message)),
        status_code=status_code,
    )


@router.get("/callback", response_class=HTMLResponse)
async def oauth_callback(
    request: Request,
    connection_id: Optional[str] = Query(None, alias="connectionId"),
    error: Optional[str] = Query(None),
):
    """Receive the OAuth outcome and hand it to the waiting handshake."""
    channel = request.app.state.channel
    origin = request_origin(request)

    if connection_id and not error:
        delivered = channel.publish(
            {"type": MessageType.OAUTH_SUCCESS.value, "connectionId": connection_id},
            origin=origin,
        )
        if not delivered:
            logger.warning(f"OAuth callback for connection {connection_id} from {origin} had no pending handshake")
            return render_page(NO_PENDING_TITLE, NO_PENDING_MESSAGE, status_code=409)
        logger.info(f"OAuth callback delivered for connection {connection_id}")
        return render_page("GitHub connected", "Your GitHub account has been connected.")

    message = error or "Missing connection id"
    channel.publish({"type": MessageType.OAUTH_ERROR.value, "message": message}, origin=origin)
    logger.warning(f"OAuth callback reported an error: {message}")
    return render_page("GitHub connection failed", message, status_code=400)
