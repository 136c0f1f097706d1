# projects/throttles.py

from rest_framework.throttling import ScopedRateThrottle


class VersionUploadThrottle(ScopedRateThrottle):
    """
    Throttle version uploads per user per project.

    Scope key: 'version-upload'
    Cache key shape:
      throttle_version-upload_u<user_id>_p<project_id>
    """
    scope = "version-upload"

    def get_cache_key(self, request, view):
        # Listing versions is not throttled
        if request.method != "POST":
            return None

        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        project_id = getattr(view, "kwargs", {}).get("pk") or "unknown"
        return f"throttle_{self.scope}_u{user.id}_p{project_id}"


class VoiceBriefThrottle(ScopedRateThrottle):
    """
    Throttle voice brief uploads per user. Each upload queues a
    transcription call.

    Scope key: 'voice-brief'
    """
    scope = "voice-brief"

    def get_cache_key(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return None

        return f"throttle_{self.scope}_u{user.id}"
