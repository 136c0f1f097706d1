# core/supabase_auth.py
# DRF authentication class that verifies Supabase access tokens

import logging
import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = logging.getLogger("vcollab")

User = get_user_model()


class SupabaseJWTAuthentication(BaseAuthentication):
    """
    Validates Supabase JWTs (HS256, audience "authenticated").

    1. Extracts the token from the Authorization header
    2. Verifies the signature with SUPABASE_JWT_SECRET
    3. Maps the token's email to a Django user, creating one on first sight
       with name / avatar taken from user_metadata

    Tokens this class cannot verify are left for the next backend
    (SimpleJWT, session, basic).
    """

    def authenticate(self, request):
        auth_header = request.headers.get("Authorization", "")

        if not auth_header.startswith("Bearer "):
            return None  # Let other auth backends handle it

        token = auth_header.split(" ", 1)[1].strip()

        secret = getattr(settings, "SUPABASE_JWT_SECRET", "")
        if not secret:
            logger.warning("SUPABASE_JWT_SECRET not configured")
            return None

        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except jwt.ExpiredSignatureError:
            raise AuthenticationFailed("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.debug(f"Invalid Supabase token: {e}")
            return None

        if not payload.get("sub"):
            raise AuthenticationFailed("Invalid token: missing user ID")

        user = self._get_or_create_user(payload)
        return (user, payload)

    def authenticate_header(self, request):
        return 'Bearer realm="api"'

    def _get_or_create_user(self, payload: dict):
        email = payload.get("email")
        if not email:
            raise AuthenticationFailed("Token missing email claim")

        metadata = payload.get("user_metadata") or {}

        try:
            return User.objects.get(email=email)
        except User.DoesNotExist:
            pass

        username = email.split("@")[0]
        base_username = username
        counter = 1
        while User.objects.filter(username=username).exists():
            username = f"{base_username}_{counter}"
            counter += 1

        user = User(
            username=username,
            email=email,
            name=metadata.get("full_name") or metadata.get("name") or "",
            avatar_url=metadata.get("avatar_url"),
        )
        # Password is not used for Supabase auth
        user.set_unusable_password()
        user.save()

        logger.info(f"Created new user from Supabase: {email}")
        return user
