"""Integration tests for video routes."""

import pytest
from httpx import AsyncClient
from src.repositories.video_repo import VideoRepository
from src.utils.constants import VideoStatus


def upload_payload(*names, content=b"fake video bytes"):
    return [("files", (name, content, "video/mp4")) for name in names]


async def upload(client, headers, *names):
    response = await client.post("/videos/upload", files=upload_payload(*names), headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["videos"]


async def set_status(session_factory, storage_repo, video_id, status):
    async with session_factory() as session:
        await VideoRepository(session, storage_repo).update_status(video_id, status)


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize(
    "method,path",
    [
        ("post", "/videos/upload"),
        ("get", "/videos"),
        ("get", "/videos/formats"),
        ("get", "/videos/abc"),
        ("get", "/videos/abc/download"),
        ("delete", "/videos/abc"),
    ],
)
async def test_video_routes_require_auth(client: AsyncClient, method, path):
    """Test that video routes require authentication."""
    response = await getattr(client, method)(path)
    assert response.status_code == 401  # Unauthorized


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_token_rejected(client: AsyncClient):
    response = await client.get("/videos", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_creates_records_and_enqueues(client: AsyncClient, auth_headers, queue_repo, storage_repo):
    videos = await upload(client, auth_headers, "one.mp4", "two.MOV")

    assert [v["filename"] for v in videos] == ["one.mp4", "two.MOV"]
    assert all(v["status"] == "uploaded" for v in videos)
    assert all(v["user_email"] == "test@example.com" for v in videos)
    assert queue_repo.enqueue_video_processing.call_count == 2
    kwargs = queue_repo.enqueue_video_processing.call_args.kwargs
    assert kwargs["video_id"] == videos[1]["id"]
    assert kwargs["raw_file_path"].endswith(".mov")
    assert len(list(storage_repo.raw_dir.iterdir())) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_accepts_cookie_credential(client: AsyncClient, auth_headers):
    token = auth_headers["Authorization"].split(" ", 1)[1]
    client.cookies.set("token", token)
    response = await client.post("/videos/upload", files=upload_payload("cookie.webm"))
    client.cookies.clear()
    assert response.status_code == 201


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_duplicate_filename(client: AsyncClient, auth_headers, storage_repo):
    await upload(client, auth_headers, "clip.mp4")

    response = await client.post("/videos/upload", files=upload_payload("clip.mp4"), headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == 'A video with filename "clip.mp4" already exists'
    # The rejected copy is not kept on disk
    assert len(list(storage_repo.raw_dir.iterdir())) == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_rejects_unsupported_extension(client: AsyncClient, auth_headers, queue_repo):
    response = await client.post(
        "/videos/upload",
        files=[("files", ("notes.txt", b"hello", "text/plain"))],
        headers=auth_headers,
    )

    assert response.status_code == 400
    assert "File format not supported" in response.json()["detail"]
    queue_repo.enqueue_video_processing.assert_not_called()


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_rejects_too_many_files(client: AsyncClient, auth_headers):
    names = [f"clip{i}.mp4" for i in range(11)]
    response = await client.post("/videos/upload", files=upload_payload(*names), headers=auth_headers)
    assert response.status_code == 400
    assert "Too many files" in response.json()["detail"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_upload_enqueue_failure(client: AsyncClient, auth_headers, queue_repo):
    queue_repo.enqueue_video_processing.side_effect = ConnectionError("broker down")

    response = await client.post("/videos/upload", files=upload_payload("clip.mp4"), headers=auth_headers)
    assert response.status_code == 503

    listed = await client.get("/videos", headers=auth_headers)
    assert [v["status"] for v in listed.json()] == ["uploaded"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_and_get_videos(client: AsyncClient, auth_headers, other_auth_headers):
    first, = await upload(client, auth_headers, "first.mp4")
    second, = await upload(client, auth_headers, "second.mp4")
    await upload(client, other_auth_headers, "theirs.mp4")

    response = await client.get("/videos", headers=auth_headers)
    assert response.status_code == 200
    assert [v["id"] for v in response.json()] == [second["id"], first["id"]]

    response = await client.get(f"/videos/{first['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["filename"] == "first.mp4"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_users_video_is_not_found(client: AsyncClient, auth_headers, other_auth_headers):
    video, = await upload(client, auth_headers, "private.mp4")

    for response in (
        await client.get(f"/videos/{video['id']}", headers=other_auth_headers),
        await client.get(f"/videos/{video['id']}/download", headers=other_auth_headers),
        await client.delete(f"/videos/{video['id']}", headers=other_auth_headers),
    ):
        assert response.status_code == 404
        assert response.json()["detail"] == "Video not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_formats(client: AsyncClient, auth_headers):
    response = await client.get("/videos/formats", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["formats"] == [
        {"value": "mp4", "label": "MP4"},
        {"value": "webm", "label": "WebM"},
        {"value": "avi", "label": "AVI"},
        {"value": "mov", "label": "MOV"},
        {"value": "mkv", "label": "MKV"},
        {"value": "flv", "label": "FLV"},
    ]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_download_raw_file(client: AsyncClient, auth_headers):
    video, = await upload(client, auth_headers, "clip.mp4")

    response = await client.get(f"/videos/{video['id']}/download", headers=auth_headers)

    assert response.status_code == 200
    assert response.content == b"fake video bytes"
    assert response.headers["content-type"] == "video/mp4"
    assert 'filename="clip.mp4"' in response.headers["content-disposition"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_download_before_processing_is_rejected(client: AsyncClient, auth_headers):
    video, = await upload(client, auth_headers, "clip.mp4")

    response = await client.get(f"/videos/{video['id']}/download?format=webm", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Video is not ready for download"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_download_unsupported_format(client: AsyncClient, auth_headers, session_factory, storage_repo):
    video, = await upload(client, auth_headers, "clip.mp4")
    await set_status(session_factory, storage_repo, video["id"], VideoStatus.COMPLETED)

    response = await client.get(f"/videos/{video['id']}/download?format=gif", headers=auth_headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid format. Supported formats: mp4, webm, avi, mov, mkv, flv"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_download_converts_on_demand(
    client: AsyncClient, auth_headers, session_factory, storage_repo, fake_transcoder
):
    """Test a format that was never produced is converted inside the request."""
    video, = await upload(client, auth_headers, "holiday.mp4")
    await set_status(session_factory, storage_repo, video["id"], VideoStatus.PROCESSING)

    response = await client.get(f"/videos/{video['id']}/download?format=mkv", headers=auth_headers)

    assert response.status_code == 200
    assert response.content == b"converted-mkv"
    assert response.headers["content-type"] == "video/x-matroska"
    assert 'filename="holiday.mkv"' in response.headers["content-disposition"]
    assert response.headers["content-disposition"].startswith("attachment")

    record = (await client.get(f"/videos/{video['id']}", headers=auth_headers)).json()
    assert [e["format"] for e in record["converted_formats"]] == ["mkv"]

    # A second download reuses the stored file
    again = await client.get(f"/videos/{video['id']}/download?format=mkv", headers=auth_headers)
    assert again.status_code == 200
    assert [fmt.value for fmt in fake_transcoder.converted] == ["mkv"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_download_missing_raw_file(client: AsyncClient, auth_headers, session_factory, storage_repo):
    video, = await upload(client, auth_headers, "clip.mp4")
    await set_status(session_factory, storage_repo, video["id"], VideoStatus.COMPLETED)
    storage_repo.delete_file(video["raw_file_path"])

    response = await client.get(f"/videos/{video['id']}/download?format=avi", headers=auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "Video file not found"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_video(client: AsyncClient, auth_headers, storage_repo):
    video, = await upload(client, auth_headers, "clip.mp4")

    response = await client.delete(f"/videos/{video['id']}", headers=auth_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "Video deleted successfully"
    assert not storage_repo.file_exists(video["raw_file_path"])
    assert (await client.get(f"/videos/{video['id']}", headers=auth_headers)).status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_health_check(client: AsyncClient):
    """Test health check endpoint."""
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
