"""
Read Models and Enrichment Joins
================================

Everything the API returns about a post, comment, plan, progress entry or
profile is built here, as an explicit TypedDict, from the stored rows plus
a join against the author's User/Profile.

WHY A SEPARATE READ MODEL:
--------------------------
The author's display name and avatar are NOT stored on posts or comments.
They are attached at read time, so a profile edit shows up everywhere
immediately and the stored entity never carries per-request fields.

THE N+1 RULE:
-------------
Lists are fetched with select_related('author__profile') so building N
views costs one query, not N+1.
"""

from datetime import datetime
from typing import List, Optional, TypedDict

from django.contrib.auth.models import User

from .models import Comment, LearningPlan, LearningProgress, LearningStep, Post


class AuthorSummary(TypedDict):
    id: int
    username: str
    name: str
    avatar_url: str


class ProfileView(TypedDict):
    id: int
    email: str
    username: str
    name: str
    bio: str
    location: str
    avatar_url: str
    cover_url: str
    skills: List[str]
    interests: List[str]
    follower_count: int
    following_count: int
    is_following: bool
    created_at: datetime


class FollowEntry(TypedDict):
    id: int
    username: str
    name: str
    avatar_url: str
    bio: str
    follower_count: int
    following_count: int
    is_following: bool


class PostView(TypedDict):
    id: int
    author: AuthorSummary
    content: str
    media_urls: List[str]
    skill_category: Optional[str]
    likes_count: int
    comments_count: int
    liked_by: List[int]
    user_liked: bool
    created_at: datetime
    updated_at: datetime


class CommentView(TypedDict):
    id: int
    post_id: int
    author: AuthorSummary
    content: str
    created_at: datetime
    updated_at: datetime


class StepView(TypedDict):
    id: str
    title: str
    description: str
    completed: bool
    deadline: Optional[datetime]


class PlanView(TypedDict):
    id: int
    owner: AuthorSummary
    title: str
    description: str
    skill: Optional[str]
    skills: List[str]
    deadline: Optional[datetime]
    progress: int
    steps: List[StepView]
    created_at: datetime
    updated_at: datetime


class ProgressEntryView(TypedDict):
    id: int
    owner: AuthorSummary
    title: str
    description: str
    progress_type: str
    skill: Optional[str]
    skills: List[str]
    resource_url: str
    completion_percentage: int
    start_date: Optional[datetime]
    completion_date: Optional[datetime]
    created_at: datetime
    updated_at: datetime


def author_summary(user: User) -> AuthorSummary:
    """Display fields for a user. Falls back to username when no name is set."""
    profile = getattr(user, 'profile', None)
    return {
        'id': user.id,
        'username': user.username,
        'name': profile.display_name if profile else user.username,
        'avatar_url': profile.avatar_url if profile else '',
    }


def profile_view(user: User, follower_count: int, following_count: int,
                 is_following: bool) -> ProfileView:
    profile = user.profile
    return {
        'id': user.id,
        'email': user.email,
        'username': user.username,
        'name': profile.display_name,
        'bio': profile.bio,
        'location': profile.location,
        'avatar_url': profile.avatar_url,
        'cover_url': profile.cover_url,
        'skills': list(profile.skills),
        'interests': list(profile.interests),
        'follower_count': follower_count,
        'following_count': following_count,
        'is_following': is_following,
        'created_at': user.date_joined,
    }


def post_view(post: Post, viewer: Optional[User] = None) -> PostView:
    liked_by = post.liked_by
    return {
        'id': post.id,
        'author': author_summary(post.author),
        'content': post.content,
        'media_urls': list(post.media_urls),
        'skill_category': post.skill_category,
        'likes_count': post.likes_count,
        'comments_count': post.comments_count,
        'liked_by': liked_by,
        'user_liked': viewer is not None and viewer.id in liked_by,
        'created_at': post.created_at,
        'updated_at': post.updated_at,
    }


def comment_view(comment: Comment) -> CommentView:
    return {
        'id': comment.id,
        'post_id': comment.post_id,
        'author': author_summary(comment.author),
        'content': comment.content,
        'created_at': comment.created_at,
        'updated_at': comment.updated_at,
    }


def step_view(step: LearningStep) -> StepView:
    return {
        'id': step.step_id,
        'title': step.title,
        'description': step.description,
        'completed': step.completed,
        'deadline': step.deadline,
    }


def plan_view(plan: LearningPlan) -> PlanView:
    return {
        'id': plan.id,
        'owner': author_summary(plan.owner),
        'title': plan.title,
        'description': plan.description,
        'skill': plan.skill,
        'skills': list(plan.skills),
        'deadline': plan.deadline,
        'progress': plan.progress,
        'steps': [step_view(step) for step in plan.steps.all()],
        'created_at': plan.created_at,
        'updated_at': plan.updated_at,
    }


def progress_entry_view(entry: LearningProgress) -> ProgressEntryView:
    return {
        'id': entry.id,
        'owner': author_summary(entry.owner),
        'title': entry.title,
        'description': entry.description,
        'progress_type': entry.progress_type,
        'skill': entry.skill,
        'skills': list(entry.skills),
        'resource_url': entry.resource_url,
        'completion_percentage': entry.completion_percentage,
        'start_date': entry.start_date,
        'completion_date': entry.completion_date,
        'created_at': entry.created_at,
        'updated_at': entry.updated_at,
    }


# ============================================================================
# QUERYSETS
# ============================================================================

def feed_queryset():
    """All posts, newest first. Paginated by the view's cursor paginator."""
    return (
        Post.objects
        .select_related('author__profile')
        .prefetch_related('likes')
        .order_by('-created_at', '-id')
    )


def posts_by_author_queryset(user_id: int):
    return feed_queryset().filter(author_id=user_id)


def get_post_with_author(post_id: int) -> Optional[Post]:
    return (
        Post.objects
        .select_related('author__profile')
        .filter(id=post_id)
        .first()
    )


def get_comments_for_post(post_id: int) -> List[CommentView]:
    """All comments for a post, oldest first, in ONE query with authors."""
    comments = (
        Comment.objects
        .filter(post_id=post_id)
        .select_related('author__profile')
        .order_by('created_at', 'id')
    )
    return [comment_view(comment) for comment in comments]


def plans_for_owner(user_id: int) -> List[PlanView]:
    plans = (
        LearningPlan.objects
        .filter(owner_id=user_id)
        .select_related('owner__profile')
        .prefetch_related('steps')
        .order_by('-created_at', '-id')
    )
    return [plan_view(plan) for plan in plans]


def progress_entries_for_owner(user_id: int) -> List[ProgressEntryView]:
    entries = (
        LearningProgress.objects
        .filter(owner_id=user_id)
        .select_related('owner__profile')
        .order_by('-created_at', '-id')
    )
    return [progress_entry_view(entry) for entry in entries]


def progress_entries_for_skill(skill: str) -> List[ProgressEntryView]:
    """
    Progress entries tagged with `skill`.

    Filtered in Python: JSONField `contains` lookups are not available on
    SQLite, and this keeps dev/test on the same code path as production.
    """
    entries = (
        LearningProgress.objects
        .select_related('owner__profile')
        .order_by('-created_at', '-id')
    )
    return [progress_entry_view(entry) for entry in entries if skill in entry.skills]
