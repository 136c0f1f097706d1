# projects/storage.py
"""
Object store used for project files and voice briefs.

Two backends share one contract (upload / get_url / delete):
- SupabaseObjectStore: Supabase Storage buckets (production)
- DjangoFileObjectStore: Django's default storage (local MEDIA_ROOT, or S3
  through django-storages when USE_S3_MEDIA=1)

Backend errors are wrapped in StorageError with the operation name.
"""
import logging
import uuid

from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from core import supabase_client
from .exceptions import StorageError

logger = logging.getLogger("vcollab.storage")


def version_path(project_id, version_type: str, version_number: int, filename: str) -> str:
    return f"projects/{project_id}/{version_type}/v{version_number}/{_clean_name(filename)}"


def voice_brief_path(project_id, filename: str) -> str:
    # Unique per upload so a re-recorded brief never collides with the old one
    return f"projects/{project_id}/{uuid.uuid4().hex[:12]}_{_clean_name(filename or 'brief.webm')}"


def _clean_name(filename: str) -> str:
    try:
        return get_valid_filename(filename or "upload")
    except SuspiciousFileOperation:
        return "upload"


class ObjectStore:
    bucket = None

    def upload(self, path: str, content: bytes, content_type: str = None) -> str:
        raise NotImplementedError

    def get_url(self, ref: str, ttl: int = None) -> str:
        raise NotImplementedError

    def delete(self, ref: str) -> None:
        raise NotImplementedError


class SupabaseObjectStore(ObjectStore):
    def __init__(self, bucket: str):
        self.bucket = bucket

    def upload(self, path, content, content_type=None):
        try:
            return supabase_client.upload_file(self.bucket, path, content, content_type=content_type)
        except Exception as e:
            logger.error(f"Failed to upload {self.bucket}/{path}: {e}")
            raise StorageError("upload", cause=e) from e

    def get_url(self, ref, ttl=None):
        ttl = ttl or settings.SIGNED_URL_TTL
        try:
            # Private bucket first, public URL as the fallback
            url = supabase_client.get_signed_url(self.bucket, ref, ttl)
            return url or supabase_client.get_public_url(self.bucket, ref)
        except Exception as e:
            logger.error(f"Failed to generate URL for {self.bucket}/{ref}: {e}")
            raise StorageError("get_url", cause=e) from e

    def delete(self, ref):
        try:
            supabase_client.delete_file(self.bucket, ref)
        except Exception as e:
            logger.error(f"Failed to delete {self.bucket}/{ref}: {e}")
            raise StorageError("delete", cause=e) from e


class DjangoFileObjectStore(ObjectStore):
    def __init__(self, bucket: str, storage=None):
        self.bucket = bucket
        self.storage = storage or default_storage

    def _name(self, path):
        return f"{self.bucket}/{path}"

    def upload(self, path, content, content_type=None):
        try:
            # Storage may rename on collision; the saved name is the ref
            return self.storage.save(self._name(path), ContentFile(content))
        except Exception as e:
            logger.error(f"Failed to save {path}: {e}")
            raise StorageError("upload", cause=e) from e

    def get_url(self, ref, ttl=None):
        try:
            if getattr(settings, "USE_S3_MEDIA", False):
                return self.storage.url(ref, expire=ttl or settings.SIGNED_URL_TTL)
            return self.storage.url(ref)
        except Exception as e:
            logger.error(f"Failed to build URL for {ref}: {e}")
            raise StorageError("get_url", cause=e) from e

    def delete(self, ref):
        try:
            self.storage.delete(ref)
        except Exception as e:
            logger.error(f"Failed to delete {ref}: {e}")
            raise StorageError("delete", cause=e) from e


def get_object_store(bucket: str = None) -> ObjectStore:
    """
    Object store for `bucket` using the backend named by OBJECT_STORE_BACKEND.
    """
    bucket = bucket or settings.PROJECT_FILES_BUCKET
    backend = getattr(settings, "OBJECT_STORE_BACKEND", "django")

    if backend == "supabase":
        return SupabaseObjectStore(bucket)
    if backend == "django":
        return DjangoFileObjectStore(bucket)

    raise ValueError(f"Unknown OBJECT_STORE_BACKEND: {backend}")
