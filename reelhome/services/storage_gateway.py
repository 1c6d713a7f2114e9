"""Video uploads to Supabase storage.

Uploads the whole file as-is; trim markers from the editor are not applied.
"""

import inspect
import mimetypes
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel
from ulid import ULID

from reelhome.services.supabase_client import GatewayResult, SupabaseClient, describe_error
from reelhome.utils.config import Settings
from reelhome.utils.errors import ListingValidationError
from reelhome.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)


class StoredVideo(BaseModel):
    """Uploaded video object with its public URL."""
    name: str
    path: str
    url: str


def generate_object_name(filename: str) -> str:
    """Time-sortable unique object name keeping the original file name."""
    return f"{ULID()}_{Path(filename).name}"


def guess_video_type(filename: str) -> Optional[str]:
    mime_type, _ = mimetypes.guess_type(filename)
    return mime_type


def _object_path(name: str) -> str:
    return f"{Settings.VIDEO_UPLOAD_PREFIX}/{name}"


async def get_public_url(path: str) -> str:
    async with SupabaseClient() as client:
        url = client.storage.from_(Settings.VIDEO_BUCKET).get_public_url(path)
        # storage3 made this coroutine-based in its async client
        if inspect.isawaitable(url):
            url = await url
        return url


async def upload_video(
    source: Union[str, Path, bytes],
    filename: Optional[str] = None,
    content_type: Optional[str] = None,
) -> GatewayResult[Optional[StoredVideo]]:
    """Upload a local video file (or raw bytes) under the uploads prefix.

    Raises ListingValidationError when the file is not a video; backend
    failures come back as a failed result.
    """
    if isinstance(source, (str, Path)):
        path = Path(source)
        filename = filename or path.name
        data = path.read_bytes()
    else:
        data = source
    
    if not filename:
        raise ListingValidationError("請選擇影片檔案", field="file")
    
    content_type = content_type or guess_video_type(filename)
    if not content_type or not content_type.startswith("video/"):
        raise ListingValidationError("請選擇影片檔案", field="file")
    
    name = generate_object_name(filename)
    object_path = _object_path(name)
    
    async with SupabaseClient() as client:
        try:
            with log_timing("storage.upload_video", logger=logger, path=object_path, size_bytes=len(data)):
                await client.storage.from_(Settings.VIDEO_BUCKET).upload(
                    object_path,
                    data,
                    file_options={
                        "cache-control": Settings.VIDEO_CACHE_CONTROL,
                        "content-type": content_type,
                        "upsert": "false",
                    },
                )
        except Exception as e:
            logger.error("Video upload failed", path=object_path, **describe_error(e))
            return GatewayResult.failure(f"Failed to upload video: {e}", None)
    
    url = await get_public_url(object_path)
    logger.info("Video uploaded", path=object_path)
    return GatewayResult.success(StoredVideo(name=name, path=object_path, url=url))


async def list_uploaded_videos() -> GatewayResult[list[StoredVideo]]:
    """Uploaded videos, newest first, with public URLs."""
    async with SupabaseClient() as client:
        try:
            files = await client.storage.from_(Settings.VIDEO_BUCKET).list(
                Settings.VIDEO_UPLOAD_PREFIX,
                {
                    "limit": Settings.VIDEO_LIST_LIMIT,
                    "offset": 0,
                    "sortBy": {"column": "created_at", "order": "desc"},
                },
            )
        except Exception as e:
            logger.error("Failed to list uploaded videos", **describe_error(e))
            return GatewayResult.failure(f"Failed to list videos: {e}", [])
    
    videos = []
    for item in files or []:
        name = item.get("name")
        if not name:
            continue
        object_path = _object_path(name)
        videos.append(StoredVideo(name=name, path=object_path, url=await get_public_url(object_path)))
    return GatewayResult.success(videos)
