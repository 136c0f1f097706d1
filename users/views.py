# users/views.py - Profiles, onboarding and editor discovery

from django.contrib.auth import get_user_model
from django.db.models import Q
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from projects.services import editor_rating_stats
from .serializers import UserSerializer, OnboardingSerializer

User = get_user_model()


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Profiles.

    The list doubles as the explore page: filter by role and search by
    name / username, e.g. GET /api/users/?role=editor&search=ana
    """
    queryset = User.objects.filter(is_active=True)
    serializer_class = UserSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_queryset(self):
        qs = super().get_queryset()
        if self.action != 'list':
            return qs

        # Only people who finished onboarding show up when exploring
        qs = qs.filter(is_onboarded=True).exclude(pk=self.request.user.pk)

        role = self.request.query_params.get('role')
        if role:
            qs = qs.filter(role=role)

        search = (self.request.query_params.get('search') or '').strip()
        if search:
            qs = qs.filter(
                Q(name__icontains=search) |
                Q(username__icontains=search) |
                Q(bio__icontains=search)
            )
        return qs.order_by('name', 'username')

    @action(detail=False, methods=['get', 'patch'])
    def me(self, request):
        """
        GET   /api/users/me/
        PATCH /api/users/me/   Body: {name?, bio?, avatar_url?}
        """
        if request.method == 'PATCH':
            serializer = self.get_serializer(request.user, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            serializer.save()
            return Response(serializer.data)

        serializer = self.get_serializer(request.user)
        return Response(serializer.data)

    @action(detail=False, methods=['post'])
    def onboarding(self, request):
        """
        POST /api/users/onboarding/
        Body: {"name": "...", "role": "creator" | "editor", "bio"?, "avatar_url"?}
        """
        serializer = OnboardingSerializer(request.user, data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        return Response(UserSerializer(user).data)

    @action(detail=True, methods=['get'], url_path='rating-stats')
    def rating_stats(self, request, pk=None):
        """
        GET /api/users/{pk}/rating-stats/
        Average creator rating across the editor's rated projects.
        """
        user = self.get_object()
        stats = editor_rating_stats(user)
        return Response({'user_id': user.pk, **stats})
