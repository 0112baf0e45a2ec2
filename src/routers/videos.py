"""Video upload, management and live notification routes."""

import uuid
from typing import Dict, List, Optional
from urllib.parse import quote
from fastapi import (
    APIRouter,
    Depends,
    File,
    Query,
    Request,
    UploadFile,
    WebSocket,
    WebSocketDisconnect,
    status,
)
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from ..core.dependencies import get_video_service
from ..core.security import decode_access_token
from ..middleware.auth import extract_socket_token, get_current_user
from ..middleware.rate_limit import limiter
from ..repositories.storage_repo import iter_file
from ..schemas.shared import ErrorResponse, SuccessResponse
from ..schemas.video import FormatListResponse, VideoResponse, VideoUploadResponse
from ..services.video_service import VideoService
from ..utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/videos", tags=["videos"])

NOT_FOUND = {404: {"model": ErrorResponse}}


def attachment_headers(filename: str) -> Dict[str, str]:
    """Content-Disposition for a download, RFC 5987 encoded when not plain ASCII."""
    quoted = quote(filename)
    if quoted != filename:
        return {"Content-Disposition": f"attachment; filename*=utf-8''{quoted}"}
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.post(
    "/upload",
    response_model=VideoUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}},
)
@limiter.limit("20/minute")
async def upload_videos(
    request: Request,
    files: List[UploadFile] = File(...),
    user: dict = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
):
    """
    Upload one or more videos.
    Each accepted file gets a record and is queued for conversion.
    """
    return await video_service.handle_upload(user_email=user["email"], files=files)


@router.get("", response_model=List[VideoResponse])
async def list_videos(
    user: dict = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
):
    """List user's videos, newest first."""
    return await video_service.list_videos(user["email"])


@router.get("/formats", response_model=FormatListResponse)
async def list_formats(user: dict = Depends(get_current_user)):
    """List the output formats every upload is converted into."""
    return VideoService.get_formats()


@router.get("/{video_id}", response_model=VideoResponse, responses=NOT_FOUND)
async def get_video(
    video_id: str,
    user: dict = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
):
    """Get video details by ID."""
    return await video_service.get_video(video_id, user["email"])


@router.get("/{video_id}/download", response_class=StreamingResponse, responses=NOT_FOUND)
async def download_video(
    video_id: str,
    format: Optional[str] = Query(None, description="Output format, e.g. mp4 or webm"),
    user: dict = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
):
    """
    Download the raw upload or a converted format.
    A format that was not produced yet is converted before responding.
    """
    target = await video_service.get_download(video_id, user["email"], format)
    headers = attachment_headers(target.filename)
    headers["Content-Length"] = str(target.size)
    return StreamingResponse(
        iter_file(target.handle),
        media_type=target.content_type,
        headers=headers,
        background=BackgroundTask(target.handle.close),
    )


@router.delete("/{video_id}", response_model=SuccessResponse, responses=NOT_FOUND)
async def delete_video(
    video_id: str,
    user: dict = Depends(get_current_user),
    video_service: VideoService = Depends(get_video_service),
):
    """Delete a video with its raw and converted files."""
    return await video_service.delete_video(video_id, user["email"])


@router.websocket("/ws")
async def video_notifications(websocket: WebSocket):
    """
    Live status-changed and format-converted events for the caller's videos.
    Connections without a valid credential are closed before acceptance.
    """
    hub = websocket.app.state.notification_hub
    token = extract_socket_token(
        websocket.cookies, websocket.query_params, websocket.headers
    )
    user_email = decode_access_token(token)
    if not user_email:
        logger.warning("Connection rejected", reason="missing or invalid token")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    connection_id = uuid.uuid4().hex
    hub.register(user_email, connection_id, websocket)
    try:
        while True:
            # Clients only listen; inbound frames are ignored
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(user_email, connection_id)
