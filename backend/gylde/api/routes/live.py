"""
Live Views Route

Server-Sent Events stream of the caller's live views: pending requests,
grants, received access and entitlements. Each stream owns one
ViewerSession; every subscription it opened is released when the client
disconnects.
"""

import json
import logging

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from sse_starlette.sse import EventSourceResponse

from gylde.api.dependencies import (
    CurrentUserId,
    EntitlementServiceDep,
    PrivateAccessServiceDep,
)
from gylde.config.settings import get_settings
from gylde.infrastructure.realtime import ViewerSession, get_change_feed


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/live", operation_id="streamLiveViews")
async def stream_live_views(
    user_id: CurrentUserId,
    access: PrivateAccessServiceDep,
    entitlements: EntitlementServiceDep,
):
    """
    Stream live view snapshots as they change.

    Events are named after the view (``pendingRequests``, ``grants``,
    ``received``, ``entitlements``) and carry the full current snapshot.
    The first four events are the initial state.
    """
    viewer = ViewerSession(user_id, get_change_feed()).open()

    # Initial state is read before the response starts; the request's
    # database session is not used by the stream itself.
    try:
        viewer.seed("pendingRequests", await access.pending_requests(user_id))
        viewer.seed("grants", await access.list_grants(user_id))
        viewer.seed("received", await access.list_received(user_id))
        viewer.seed("entitlements", await entitlements.resolve(user_id))
    except Exception:
        viewer.close()
        raise

    async def event_generator():
        try:
            async for view, payload in viewer.events():
                yield {
                    "event": view,
                    "data": json.dumps(jsonable_encoder(payload)),
                }
        finally:
            viewer.close()

    return EventSourceResponse(event_generator(), ping=get_settings().live_ping_seconds)
