"""
DRF Views
=========

API endpoints for the SkillShare community.

AUTHENTICATION NOTE:
--------------------
Session authentication. The acting identity is request.user.email; every
service call resolves it again through accounts.resolve_user(), so the
view never decides ownership itself.

For local development, /api/auth/mock-login/ logs in by email and creates
the account on first use.

ERRORS:
-------
Views do not catch service errors. CommunityError subclasses propagate to
custom_exception_handler, which maps them to 400/403/404.
"""

from django.conf import settings
from django.contrib.auth import login
from django.contrib.auth.models import User
from rest_framework import generics, permissions, status
from rest_framework.pagination import CursorPagination
from rest_framework.response import Response
from rest_framework.views import APIView

from . import accounts, graph, learning, notifications, services
from .queries import feed_queryset, post_view, posts_by_author_queryset
from .serializers import (
    CommentInputSerializer,
    CommentSerializer,
    FollowEntrySerializer,
    MockLoginSerializer,
    NotificationSerializer,
    PlanInputSerializer,
    PlanSerializer,
    PostInputSerializer,
    PostSerializer,
    PostUpdateSerializer,
    ProfileSerializer,
    ProfileUpdateSerializer,
    ProgressEntryInputSerializer,
    ProgressEntrySerializer,
    ProgressEntryUpdateSerializer,
    ProgressOverrideSerializer,
    RegisterSerializer,
    ReorderSerializer,
    StepInputSerializer,
    StepStatusSerializer,
)


def _viewer_email(request):
    """Email of the logged-in user, or None for anonymous reads."""
    if request.user.is_authenticated:
        return request.user.email
    return None


class FeedPagination(CursorPagination):
    """
    Cursor pagination for the feed.

    WHY CURSOR PAGINATION:
    - Offset pagination: SELECT ... LIMIT 20 OFFSET 1000 -> scans 1020 rows
    - Cursor pagination: SELECT ... WHERE created_at < cursor -> index seek

    Trade-off: Can't jump to arbitrary page, but O(1) vs O(n).
    Perfect for infinite scroll feeds.
    """
    page_size = getattr(settings, 'FEED_PAGE_SIZE', 20)
    ordering = ('-created_at', '-id')
    cursor_query_param = 'cursor'


class _PostListView(generics.ListAPIView):
    """Paginated posts rendered through the read model."""
    pagination_class = FeedPagination
    permission_classes = [permissions.AllowAny]

    def list(self, request, *args, **kwargs):
        viewer = request.user if request.user.is_authenticated else None
        page = self.paginate_queryset(self.get_queryset())
        data = PostSerializer([post_view(post, viewer=viewer) for post in page], many=True).data
        return self.get_paginated_response(data)


class FeedView(_PostListView):
    """
    GET /api/feed/

    All posts, newest first.

    Query: 2 (posts with author+profile JOIN, likes prefetch)
    """

    def get_queryset(self):
        return feed_queryset()


class UserPostsView(_PostListView):
    """GET /api/users/<user_id>/posts/"""

    def get_queryset(self):
        accounts.get_user(self.kwargs['user_id'])
        return posts_by_author_queryset(self.kwargs['user_id'])


# ============================================================================
# USERS / PROFILES
# ============================================================================

class RegisterView(APIView):
    """POST /api/users/register/"""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = accounts.register_member(**serializer.validated_data)
        profile = accounts.get_profile(user.id)
        return Response(ProfileSerializer(profile).data, status=status.HTTP_201_CREATED)


class MyProfileView(APIView):
    """GET /api/users/me/"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        user = accounts.resolve_user(request.user.email)
        return Response(ProfileSerializer(accounts.get_profile(user.id)).data)


class ProfileUpdateView(APIView):
    """
    PUT /api/users/profile/

    Partial update: only the keys present in the body change.
    """
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request):
        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = accounts.update_profile(request.user.email, serializer.validated_data)
        return Response(ProfileSerializer(accounts.get_profile(user.id)).data)


class ProfileDetailView(APIView):
    """GET /api/users/<user_id>/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        profile = accounts.get_profile(user_id, viewer_email=_viewer_email(request))
        return Response(ProfileSerializer(profile).data)


class FollowView(APIView):
    """
    POST   /api/users/<user_id>/follow/   follow
    DELETE /api/users/<user_id>/follow/   unfollow

    Both idempotent. Returns the target's live counts.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, user_id):
        result = graph.follow(request.user.email, user_id)
        return Response({
            'success': True,
            'created': result['created'],
            'follower_count': result['follower_count'],
            'following_count': result['following_count'],
        })

    def delete(self, request, user_id):
        result = graph.unfollow(request.user.email, user_id)
        return Response({
            'success': True,
            'follower_count': result['follower_count'],
            'following_count': result['following_count'],
        })


class FollowersView(APIView):
    """GET /api/users/<user_id>/followers/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        entries = graph.list_followers(user_id, viewer_email=_viewer_email(request))
        return Response(FollowEntrySerializer(entries, many=True).data)


class FollowingView(APIView):
    """GET /api/users/<user_id>/following/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        entries = graph.list_following(user_id, viewer_email=_viewer_email(request))
        return Response(FollowEntrySerializer(entries, many=True).data)


# ============================================================================
# POSTS / LIKES / COMMENTS
# ============================================================================

class PostCreateView(APIView):
    """
    POST /api/posts/

    Author is set from the authenticated user, not from the request body.
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = PostInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        post = services.create_post(request.user.email, serializer.validated_data)
        return Response(PostSerializer(post).data, status=status.HTTP_201_CREATED)


class PostDetailView(APIView):
    """
    GET    /api/posts/<post_id>/
    PUT    /api/posts/<post_id>/   owner only
    DELETE /api/posts/<post_id>/   owner only, removes comments first
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request, post_id):
        post = services.get_post(post_id, viewer_email=_viewer_email(request))
        return Response(PostSerializer(post).data)

    def put(self, request, post_id):
        serializer = PostUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        post = services.update_post(request.user.email, post_id, serializer.validated_data)
        return Response(PostSerializer(post).data)

    def delete(self, request, post_id):
        services.delete_post(request.user.email, post_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LikePostView(APIView):
    """
    POST   /api/posts/<post_id>/like/
    DELETE /api/posts/<post_id>/like/

    CONCURRENCY:
    - Uses atomic transactions
    - Unique constraint prevents duplicates
    - IntegrityError handled gracefully (idempotent)
    """
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, post_id):
        result = services.like_post(request.user.email, post_id)
        return Response({
            'success': result.success,
            'action': result.action,
            'likes_count': result.likes_count,
        })

    def delete(self, request, post_id):
        """Unlike a post."""
        result = services.unlike_post(request.user.email, post_id)
        return Response({
            'success': result.success,
            'action': result.action,
            'likes_count': result.likes_count,
        })


class PostCommentsView(APIView):
    """
    GET  /api/posts/<post_id>/comments/   oldest first
    POST /api/posts/<post_id>/comments/   { "content": "..." }
    """

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request, post_id):
        return Response(CommentSerializer(services.list_comments(post_id), many=True).data)

    def post(self, request, post_id):
        serializer = CommentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = services.add_comment(
            request.user.email, post_id, serializer.validated_data['content']
        )
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)


class CommentDetailView(APIView):
    """PUT / DELETE /api/comments/<comment_id>/ (author only)"""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, comment_id):
        serializer = CommentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = services.update_comment(
            request.user.email, comment_id, serializer.validated_data['content']
        )
        return Response(CommentSerializer(comment).data)

    def delete(self, request, comment_id):
        services.delete_comment(request.user.email, comment_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


# ============================================================================
# LEARNING PLANS
# ============================================================================

class LearningPlanListView(APIView):
    """
    GET  /api/learning-plans/   the caller's plans
    POST /api/learning-plans/   create
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        plans = learning.list_my_plans(request.user.email)
        return Response(PlanSerializer(plans, many=True).data)

    def post(self, request):
        serializer = PlanInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = learning.create_plan(request.user.email, serializer.validated_data)
        return Response(PlanSerializer(plan).data, status=status.HTTP_201_CREATED)


class LearningPlanDetailView(APIView):
    """GET / PUT / DELETE /api/learning-plans/<plan_id>/"""

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request, plan_id):
        return Response(PlanSerializer(learning.get_plan(plan_id)).data)

    def put(self, request, plan_id):
        serializer = PlanInputSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        plan = learning.update_plan(request.user.email, plan_id, serializer.validated_data)
        return Response(PlanSerializer(plan).data)

    def delete(self, request, plan_id):
        learning.delete_plan(request.user.email, plan_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserLearningPlansView(APIView):
    """GET /api/users/<user_id>/learning-plans/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        return Response(PlanSerializer(learning.list_plans_for_user(user_id), many=True).data)


class PlanProgressView(APIView):
    """
    PUT /api/learning-plans/<plan_id>/progress/   { "progress": 0..100 }

    Manual override. Never notifies followers.
    """
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, plan_id):
        serializer = ProgressOverrideSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = learning.set_progress(
            request.user.email, plan_id, serializer.validated_data['progress']
        )
        return Response(PlanSerializer(plan).data)


class PlanStepsView(APIView):
    """POST /api/learning-plans/<plan_id>/steps/"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, plan_id):
        serializer = StepInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = learning.add_step(request.user.email, plan_id, serializer.validated_data)
        return Response(PlanSerializer(plan).data, status=status.HTTP_201_CREATED)


class PlanStepDetailView(APIView):
    """PUT / DELETE /api/learning-plans/<plan_id>/steps/<step_id>/"""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, plan_id, step_id):
        serializer = StepInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = learning.update_step(
            request.user.email, plan_id, step_id, serializer.validated_data
        )
        return Response(PlanSerializer(plan).data)

    def delete(self, request, plan_id, step_id):
        plan = learning.delete_step(request.user.email, plan_id, step_id)
        return Response(PlanSerializer(plan).data)


class PlanStepStatusView(APIView):
    """PUT /api/learning-plans/<plan_id>/steps/<step_id>/status/"""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, plan_id, step_id):
        serializer = StepStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = learning.set_step_status(
            request.user.email, plan_id, step_id, serializer.validated_data['completed']
        )
        return Response(PlanSerializer(plan).data)


class PlanStepReorderView(APIView):
    """PUT /api/learning-plans/<plan_id>/steps/<step_id>/reorder/   { "direction": "up" | "down" }"""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, plan_id, step_id):
        serializer = ReorderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = learning.reorder_step(
            request.user.email, plan_id, step_id, serializer.validated_data['direction']
        )
        return Response(PlanSerializer(plan).data)


# ============================================================================
# LEARNING PROGRESS JOURNAL
# ============================================================================

class LearningProgressListView(APIView):
    """GET / POST /api/learning-progress/"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        entries = learning.list_my_progress_entries(request.user.email)
        return Response(ProgressEntrySerializer(entries, many=True).data)

    def post(self, request):
        serializer = ProgressEntryInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = learning.create_progress_entry(request.user.email, serializer.validated_data)
        return Response(ProgressEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


class LearningProgressDetailView(APIView):
    """GET / PUT / DELETE /api/learning-progress/<entry_id>/"""

    def get_permissions(self):
        if self.request.method == 'GET':
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get(self, request, entry_id):
        return Response(ProgressEntrySerializer(learning.get_progress_entry(entry_id)).data)

    def put(self, request, entry_id):
        serializer = ProgressEntryUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = learning.update_progress_entry(
            request.user.email, entry_id, serializer.validated_data
        )
        return Response(ProgressEntrySerializer(entry).data)

    def delete(self, request, entry_id):
        learning.delete_progress_entry(request.user.email, entry_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class UserLearningProgressView(APIView):
    """GET /api/users/<user_id>/learning-progress/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, user_id):
        entries = learning.list_progress_entries(user_id)
        return Response(ProgressEntrySerializer(entries, many=True).data)


class LearningProgressBySkillView(APIView):
    """GET /api/learning-progress/skill/<skill>/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, skill):
        entries = learning.list_progress_entries_by_skill(skill)
        return Response(ProgressEntrySerializer(entries, many=True).data)


# ============================================================================
# NOTIFICATIONS
# ============================================================================

class NotificationListView(APIView):
    """GET /api/notifications/   newest first"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        items = notifications.list_notifications(request.user.email)
        return Response(NotificationSerializer(items, many=True).data)


class UnreadCountView(APIView):
    """GET /api/notifications/unread-count/"""
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response({'count': notifications.unread_count(request.user.email)})


class MarkReadView(APIView):
    """PUT /api/notifications/<notification_id>/read/"""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, notification_id):
        notification = notifications.mark_read(request.user.email, notification_id)
        return Response(NotificationSerializer(notification).data)


class MarkAllReadView(APIView):
    """PUT /api/notifications/read-all/"""
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request):
        return Response({'updated': notifications.mark_all_read(request.user.email)})


# ============================================================================
# DEVELOPMENT/TESTING HELPERS
# ============================================================================

class MockAuthView(APIView):
    """
    POST /api/auth/mock-login/

    DEVELOPMENT ONLY: Quick login for testing without full auth flow.
    Creates the member if the email is unknown.

    Body: { "email": "ada@example.com", "name": "Ada" }
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        if not getattr(settings, 'MOCK_LOGIN_ENABLED', False):
            return Response({'error': 'Not available', 'code': 'not_found'},
                            status=status.HTTP_404_NOT_FOUND)

        serializer = MockLoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email']

        user = User.objects.filter(email__iexact=email).order_by('id').first()
        created = user is None
        if created:
            user = accounts.register_member(email, name=serializer.validated_data['name'])

        login(request, user)

        return Response({
            'user_id': user.id,
            'email': user.email,
            'username': user.username,
            'created': created,
        })


class WhoAmIView(APIView):
    """
    GET /api/auth/whoami/

    Returns current authenticated user info.
    """
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        if request.user.is_authenticated:
            return Response({
                'authenticated': True,
                'user_id': request.user.id,
                'email': request.user.email,
                'username': request.user.username,
            })
        return Response({
            'authenticated': False,
            'user_id': None,
            'email': None,
            'username': None,
        })
