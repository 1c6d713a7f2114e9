"""Environment-driven settings for the Supabase backend and video storage."""

import os


class Settings:
    """Backend endpoint, table and storage settings."""

    SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
    SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY", "")

    LISTINGS_TABLE = os.environ.get("LISTINGS_TABLE", "properties")
    CHAT_ROOMS_TABLE = os.environ.get("CHAT_ROOMS_TABLE", "chat_rooms")
    CHAT_MESSAGES_TABLE = os.environ.get("CHAT_MESSAGES_TABLE", "chat_messages")
    PROFILES_TABLE = os.environ.get("PROFILES_TABLE", "profiles")

    VIDEO_BUCKET = os.environ.get("VIDEO_BUCKET", "videos")
    VIDEO_UPLOAD_PREFIX = os.environ.get("VIDEO_UPLOAD_PREFIX", "uploads")
    VIDEO_CACHE_CONTROL = os.environ.get("VIDEO_CACHE_CONTROL", "3600")
    VIDEO_LIST_LIMIT = int(os.environ.get("VIDEO_LIST_LIMIT", "100"))

    @classmethod
    def reload(cls) -> None:
        """Re-read the backend credentials from the environment."""
        cls.SUPABASE_URL = os.environ.get("SUPABASE_URL", "")
        cls.SUPABASE_ANON_KEY = os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY", "")
