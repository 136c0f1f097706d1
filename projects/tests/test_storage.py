from unittest import mock

from django.test import SimpleTestCase, override_settings

from core import supabase_client
from projects.exceptions import StorageError
from projects.storage import (
    DjangoFileObjectStore,
    SupabaseObjectStore,
    get_object_store,
    version_path,
    voice_brief_path,
)

from .base import ProjectTestCase


class PathTests(SimpleTestCase):
    def test_version_path(self):
        self.assertEqual(version_path(7, "raw", 0, "My Clip.MOV"), "projects/7/raw/v0/My_Clip.MOV")

    def test_version_path_strips_directories(self):
        self.assertEqual(version_path(7, "edited", 2, "../../etc/passwd"), "projects/7/edited/v2/....etcpasswd")

    def test_voice_brief_paths_are_unique(self):
        first = voice_brief_path(3, "brief.webm")
        second = voice_brief_path(3, "brief.webm")
        self.assertNotEqual(first, second)
        self.assertTrue(first.startswith("projects/3/"))
        self.assertTrue(first.endswith("_brief.webm"))


class BackendSelectionTests(SimpleTestCase):
    @override_settings(OBJECT_STORE_BACKEND="django", PROJECT_FILES_BUCKET="project-files")
    def test_django_backend(self):
        store = get_object_store()
        self.assertIsInstance(store, DjangoFileObjectStore)
        self.assertEqual(store.bucket, "project-files")

    @override_settings(OBJECT_STORE_BACKEND="supabase")
    def test_supabase_backend(self):
        store = get_object_store("voice-briefs")
        self.assertIsInstance(store, SupabaseObjectStore)
        self.assertEqual(store.bucket, "voice-briefs")

    @override_settings(OBJECT_STORE_BACKEND="ftp")
    def test_unknown_backend(self):
        with self.assertRaises(ValueError):
            get_object_store()


class DjangoObjectStoreTests(ProjectTestCase):
    def test_round_trip(self):
        store = DjangoFileObjectStore("project-files")
        ref = store.upload("projects/1/raw/v0/a.mp4", b"data")

        self.assertEqual(ref, "project-files/projects/1/raw/v0/a.mp4")
        self.assertEqual(store.get_url(ref), "/media/project-files/projects/1/raw/v0/a.mp4")
        store.delete(ref)
        self.assertFalse(store.storage.exists(ref))

    def test_backend_errors_are_wrapped(self):
        storage = mock.Mock()
        storage.save.side_effect = OSError("disk full")
        store = DjangoFileObjectStore("project-files", storage=storage)

        with self.assertRaises(StorageError) as ctx:
            store.upload("x.mp4", b"data")
        self.assertEqual(ctx.exception.operation, "upload")

    @override_settings(USE_S3_MEDIA=True, SIGNED_URL_TTL=3600)
    def test_s3_urls_are_signed_with_ttl(self):
        storage = mock.Mock()
        storage.url.return_value = "https://bucket.s3.amazonaws.com/x?X-Amz-Signature=abc"
        store = DjangoFileObjectStore("project-files", storage=storage)

        store.get_url("project-files/x.mp4")
        storage.url.assert_called_once_with("project-files/x.mp4", expire=3600)


@override_settings(SIGNED_URL_TTL=31536000)
class SupabaseObjectStoreTests(SimpleTestCase):
    def setUp(self):
        self.client = mock.Mock()
        self.bucket = self.client.storage.from_.return_value
        patcher = mock.patch.object(supabase_client, "get_supabase_client", return_value=self.client)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_upload_returns_path(self):
        store = SupabaseObjectStore("project-files")
        ref = store.upload("projects/1/edited/v1/cut.mp4", b"data", content_type="video/mp4")

        self.assertEqual(ref, "projects/1/edited/v1/cut.mp4")
        self.client.storage.from_.assert_called_with("project-files")
        self.bucket.upload.assert_called_once_with(
            "projects/1/edited/v1/cut.mp4",
            b"data",
            file_options={"upsert": "false", "content-type": "video/mp4"},
        )

    def test_signed_url_with_one_year_ttl(self):
        self.bucket.create_signed_url.return_value = {"signedURL": "https://sb.example/signed"}

        url = SupabaseObjectStore("project-files").get_url("a.mp4")

        self.assertEqual(url, "https://sb.example/signed")
        self.bucket.create_signed_url.assert_called_once_with("a.mp4", 31536000)

    def test_camel_case_signed_url_key(self):
        self.bucket.create_signed_url.return_value = {"signedUrl": "https://sb.example/signed2"}
        self.assertEqual(SupabaseObjectStore("b").get_url("a.mp4"), "https://sb.example/signed2")

    def test_public_url_fallback(self):
        self.bucket.create_signed_url.return_value = {}
        self.bucket.get_public_url.return_value = "https://sb.example/public/a.mp4"

        self.assertEqual(SupabaseObjectStore("b").get_url("a.mp4"), "https://sb.example/public/a.mp4")

    def test_upload_error_is_wrapped(self):
        self.bucket.upload.side_effect = RuntimeError("Duplicate")

        with self.assertLogs("vcollab.storage", level="ERROR"):
            with self.assertRaises(StorageError) as ctx:
                SupabaseObjectStore("b").upload("a.mp4", b"x")

        self.assertIsInstance(ctx.exception.cause, RuntimeError)

    def test_delete(self):
        SupabaseObjectStore("b").delete("a.mp4")
        self.bucket.remove.assert_called_once_with(["a.mp4"])


class SupabaseClientTests(SimpleTestCase):
    def setUp(self):
        supabase_client.reset_supabase_client()
        self.addCleanup(supabase_client.reset_supabase_client)

    @override_settings(SUPABASE_URL="", SUPABASE_SERVICE_ROLE_KEY="")
    def test_not_configured(self):
        with self.assertRaises(supabase_client.SupabaseNotConfigured):
            supabase_client.get_supabase_client()

    @override_settings(SUPABASE_URL="https://abc.supabase.co", SUPABASE_SERVICE_ROLE_KEY="service-key")
    def test_client_is_created_once(self):
        with mock.patch.object(supabase_client, "create_client") as create:
            first = supabase_client.get_supabase_client()
            second = supabase_client.get_supabase_client()

        create.assert_called_once_with("https://abc.supabase.co", "service-key")
        self.assertIs(first, second)
