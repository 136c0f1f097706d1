# projects/urls.py

from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views import (
    ProjectViewSet,
    VersionDetailView,
    VersionCommentListCreateView,
    CommentDetailView,
    CommentResolveView,
)

router = SimpleRouter()
router.register(r'', ProjectViewSet, basename='project')

urlpatterns = [
    # Version & comment routes come first so the router never sees them
    path('versions/<int:version_id>/', VersionDetailView.as_view(), name='version-detail'),
    path(
        'versions/<int:version_id>/comments/',
        VersionCommentListCreateView.as_view(),
        name='version-comments',
    ),
    path('comments/<int:comment_id>/', CommentDetailView.as_view(), name='comment-detail'),
    path('comments/<int:comment_id>/resolve/', CommentResolveView.as_view(), name='comment-resolve'),

    path('', include(router.urls)),
]
