# core/supabase_client.py
# Supabase client for storage operations

import logging

from django.conf import settings
from supabase import create_client

logger = logging.getLogger("vcollab.storage")

_supabase_client = None


class SupabaseNotConfigured(RuntimeError):
    pass


def get_supabase_client():
    """
    Get the Supabase client instance (singleton pattern).
    Uses service_role key for admin access.
    """
    global _supabase_client

    if _supabase_client is None:
        url = getattr(settings, "SUPABASE_URL", None)
        key = getattr(settings, "SUPABASE_SERVICE_ROLE_KEY", None)

        if not url or not key:
            raise SupabaseNotConfigured("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")

        _supabase_client = create_client(url, key)
        logger.info("Supabase client initialized")

    return _supabase_client


def reset_supabase_client():
    global _supabase_client
    _supabase_client = None


def upload_file(bucket: str, path: str, content: bytes, content_type: str = None) -> str:
    """
    Upload bytes to a Supabase Storage bucket.

    Returns the storage path. Errors from the client propagate.
    """
    client = get_supabase_client()

    file_options = {"upsert": "false"}
    if content_type:
        file_options["content-type"] = content_type

    client.storage.from_(bucket).upload(path, content, file_options=file_options)
    logger.info(f"Uploaded to storage: {bucket}/{path}")
    return path


def get_signed_url(bucket: str, path: str, expires_in: int = 600) -> str | None:
    """
    Generate a signed URL for an object in a private bucket.

    Args:
        bucket: The bucket name
        path: The storage path (e.g., "projects/12/raw/v0/clip.mp4")
        expires_in: URL expiry in seconds (default 10 minutes)

    Returns:
        The signed URL, or None when the client returned none
    """
    client = get_supabase_client()
    result = client.storage.from_(bucket).create_signed_url(path, expires_in)

    if result and "signedURL" in result:
        return result["signedURL"]
    if result and "signedUrl" in result:
        return result["signedUrl"]
    return None


def get_public_url(bucket: str, path: str) -> str:
    client = get_supabase_client()
    return client.storage.from_(bucket).get_public_url(path)


def delete_file(bucket: str, path: str) -> None:
    """
    Delete an object from storage. Errors from the client propagate.
    """
    client = get_supabase_client()
    client.storage.from_(bucket).remove([path])
    logger.info(f"Deleted from storage: {bucket}/{path}")
