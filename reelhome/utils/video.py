"""YouTube URL helpers and playback routing for listing videos."""

import re
from enum import Enum
from typing import Literal, Optional
from urllib.parse import urlencode

from pydantic import BaseModel

YOUTUBE_ID_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/v/|youtube\.com/shorts/)"
    r"([^&\n?#]+)"
)

EMBED_BASE_URL = "https://www.youtube.com/embed"
THUMBNAIL_BASE_URL = "https://img.youtube.com/vi"

ThumbnailQuality = Literal["default", "medium", "high", "maxres"]

THUMBNAIL_FILES = {
    "default": "default",        # 120x90
    "medium": "mqdefault",       # 320x180
    "high": "hqdefault",         # 480x360
    "maxres": "maxresdefault",   # 1280x720
}

EMBED_PARAMS = {
    "autoplay": "0",
    "mute": "0",
    "loop": "0",
    "controls": "1",
    "modestbranding": "1",
    "rel": "0",
    "playsinline": "1",
}


class PlaybackKind(str, Enum):
    """How a listing video is played back."""
    EMBED = "embed"
    DIRECT = "direct"


class PlaybackSource(BaseModel):
    """Resolved playback target for a listing video."""
    kind: PlaybackKind
    url: str
    video_id: Optional[str] = None
    thumbnail_url: Optional[str] = None


def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    """Extract the video id from watch, youtu.be, embed, v and shorts URLs."""
    if not url:
        return None

    match = YOUTUBE_ID_PATTERN.search(url)
    if match and match.group(1):
        return match.group(1)
    return None


def is_valid_youtube_url(url: Optional[str]) -> bool:
    return extract_youtube_id(url) is not None


def get_embed_url(video_id_or_url: str, background: bool = False) -> str:
    """Build an embeddable player URL.

    The default player never autoplays. ``background=True`` gives the
    continuous feed variant: autoplay, muted, looping over itself.
    """
    video_id = extract_youtube_id(video_id_or_url) or video_id_or_url

    params = dict(EMBED_PARAMS)
    if background:
        # looping a single video requires it to be its own playlist
        params.update(autoplay="1", mute="1", loop="1", playlist=video_id)

    return f"{EMBED_BASE_URL}/{video_id}?{urlencode(params)}"


def get_thumbnail_url(video_id_or_url: str, quality: ThumbnailQuality = "high") -> str:
    video_id = extract_youtube_id(video_id_or_url) or video_id_or_url
    return f"{THUMBNAIL_BASE_URL}/{video_id}/{THUMBNAIL_FILES[quality]}.jpg"


def resolve_playback(url: str, background: bool = False) -> PlaybackSource:
    """Route a listing video either to the YouTube embed or to direct media playback.

    Unrecognised URLs (e.g. storage object links to an ``.mp4``) pass through
    unchanged as directly playable media.
    """
    video_id = extract_youtube_id(url)
    if video_id is None:
        return PlaybackSource(kind=PlaybackKind.DIRECT, url=url)

    return PlaybackSource(
        kind=PlaybackKind.EMBED,
        url=get_embed_url(video_id, background=background),
        video_id=video_id,
        thumbnail_url=get_thumbnail_url(video_id, "maxres"),
    )
