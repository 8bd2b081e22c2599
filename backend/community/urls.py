"""
Community App URL Configuration
"""
from django.urls import path
from .views import (
    CommentDetailView,
    FeedView,
    FollowersView,
    FollowingView,
    FollowView,
    LearningPlanDetailView,
    LearningPlanListView,
    LearningProgressBySkillView,
    LearningProgressDetailView,
    LearningProgressListView,
    LikePostView,
    MarkAllReadView,
    MarkReadView,
    MockAuthView,
    MyProfileView,
    NotificationListView,
    PlanProgressView,
    PlanStepDetailView,
    PlanStepReorderView,
    PlanStepStatusView,
    PlanStepsView,
    PostCommentsView,
    PostCreateView,
    PostDetailView,
    ProfileDetailView,
    ProfileUpdateView,
    RegisterView,
    UnreadCountView,
    UserLearningPlansView,
    UserLearningProgressView,
    UserPostsView,
    WhoAmIView,
)

urlpatterns = [
    # Auth (development)
    path('auth/mock-login/', MockAuthView.as_view(), name='mock-login'),
    path('auth/whoami/', WhoAmIView.as_view(), name='whoami'),

    # Users
    path('users/register/', RegisterView.as_view(), name='register'),
    path('users/me/', MyProfileView.as_view(), name='my-profile'),
    path('users/profile/', ProfileUpdateView.as_view(), name='profile-update'),
    path('users/<int:user_id>/', ProfileDetailView.as_view(), name='profile-detail'),
    path('users/<int:user_id>/follow/', FollowView.as_view(), name='follow'),
    path('users/<int:user_id>/followers/', FollowersView.as_view(), name='followers'),
    path('users/<int:user_id>/following/', FollowingView.as_view(), name='following'),
    path('users/<int:user_id>/posts/', UserPostsView.as_view(), name='user-posts'),
    path('users/<int:user_id>/learning-plans/', UserLearningPlansView.as_view(),
         name='user-learning-plans'),
    path('users/<int:user_id>/learning-progress/', UserLearningProgressView.as_view(),
         name='user-learning-progress'),

    # Feed
    path('feed/', FeedView.as_view(), name='feed'),

    # Posts
    path('posts/', PostCreateView.as_view(), name='post-create'),
    path('posts/<int:post_id>/', PostDetailView.as_view(), name='post-detail'),
    path('posts/<int:post_id>/like/', LikePostView.as_view(), name='like-post'),
    path('posts/<int:post_id>/comments/', PostCommentsView.as_view(), name='post-comments'),

    # Comments
    path('comments/<int:comment_id>/', CommentDetailView.as_view(), name='comment-detail'),

    # Learning plans
    path('learning-plans/', LearningPlanListView.as_view(), name='learning-plans'),
    path('learning-plans/<int:plan_id>/', LearningPlanDetailView.as_view(),
         name='learning-plan-detail'),
    path('learning-plans/<int:plan_id>/progress/', PlanProgressView.as_view(),
         name='learning-plan-progress'),
    path('learning-plans/<int:plan_id>/steps/', PlanStepsView.as_view(),
         name='learning-plan-steps'),
    path('learning-plans/<int:plan_id>/steps/<str:step_id>/', PlanStepDetailView.as_view(),
         name='learning-plan-step'),
    path('learning-plans/<int:plan_id>/steps/<str:step_id>/status/', PlanStepStatusView.as_view(),
         name='learning-plan-step-status'),
    path('learning-plans/<int:plan_id>/steps/<str:step_id>/reorder/', PlanStepReorderView.as_view(),
         name='learning-plan-step-reorder'),

    # Learning progress journal
    path('learning-progress/', LearningProgressListView.as_view(), name='learning-progress'),
    path('learning-progress/<int:entry_id>/', LearningProgressDetailView.as_view(),
         name='learning-progress-detail'),
    path('learning-progress/skill/<str:skill>/', LearningProgressBySkillView.as_view(),
         name='learning-progress-by-skill'),

    # Notifications
    path('notifications/', NotificationListView.as_view(), name='notifications'),
    path('notifications/unread-count/', UnreadCountView.as_view(), name='unread-count'),
    path('notifications/read-all/', MarkAllReadView.as_view(), name='read-all'),
    path('notifications/<int:notification_id>/read/', MarkReadView.as_view(), name='mark-read'),
]
