"""
Engagement Service: posts, likes, comments
===========================================

CONCURRENCY STRATEGY:
---------------------
Problem: two requests like the same post at the same moment.
Naive: read likedBy -> check membership -> append -> count+1 -> save
       Two writers read the same list and one like is LOST.

Solution: Unique Constraint + IntegrityError (optimistic)
    - Try to INSERT the Like row
    - DB rejects the duplicate (unique (user, post))
    - Catch IntegrityError -> the idempotent "already liked" no-op
    - Counter moves with F('likes_count') + 1 in the same transaction

So likes_count == len(likedBy) holds after every committed like/unlike.
Comment counts are maintained by signals with the same F() approach.

NOTIFICATIONS:
--------------
Sent after the transaction block, only when state actually changed and the
actor is not the owner. Unlike never retracts a notification: past
notifications are history.
"""

import logging
from typing import Literal, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Value
from django.db.models.functions import Greatest

from .accounts import resolve_user
from .exceptions import AuthorizationError, NotFoundError
from .models import Comment, Like, Notification, Post
from .notifications import notify
from .queries import (
    CommentView,
    PostView,
    comment_view,
    get_comments_for_post,
    get_post_with_author,
    post_view,
)

logger = logging.getLogger(__name__)


class LikeResult:
    """Result of a like operation with type safety."""
    def __init__(
        self,
        success: bool,
        action: Literal['created', 'removed', 'already_exists', 'already_removed'],
        likes_count: int = 0
    ):
        self.success = success
        self.action = action
        self.likes_count = likes_count


def _get_post(post_id: int) -> Post:
    post = get_post_with_author(post_id)
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _get_comment(comment_id: int) -> Comment:
    comment = Comment.objects.select_related('author__profile').filter(pk=comment_id).first()
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def _current_likes(post_id: int) -> int:
    return Post.objects.filter(pk=post_id).values_list('likes_count', flat=True).first() or 0


# ============================================================================
# POSTS
# ============================================================================

def create_post(actor_email: str, data: dict) -> PostView:
    user = resolve_user(actor_email)
    post = Post.objects.create(
        author=user,
        content=data['content'],
        media_urls=list(data.get('media_urls') or []),
        skill_category=data.get('skill_category'),
    )
    logger.info(f"Post {post.id} created by {user.id}")
    return post_view(_get_post(post.id), viewer=user)


def get_post(post_id: int, viewer_email: Optional[str] = None) -> PostView:
    viewer = resolve_user(viewer_email) if viewer_email else None
    return post_view(_get_post(post_id), viewer=viewer)


def update_post(actor_email: str, post_id: int, data: dict) -> PostView:
    """
    Owner only.

    content is replaced; skill_category only when provided; media_urls only
    when a non-empty list is provided (an empty list means "keep").
    """
    user = resolve_user(actor_email)
    post = _get_post(post_id)
    if post.author_id != user.id:
        raise AuthorizationError("You are not authorized to update this post")

    update_fields = ['updated_at']
    if data.get('content') is not None:
        post.content = data['content']
        update_fields.append('content')
    if data.get('skill_category') is not None:
        post.skill_category = data['skill_category']
        update_fields.append('skill_category')
    if data.get('media_urls'):
        post.media_urls = list(data['media_urls'])
        update_fields.append('media_urls')

    post.save(update_fields=update_fields)
    return post_view(_get_post(post.id), viewer=user)


def delete_post(actor_email: str, post_id: int) -> None:
    """
    Owner only. Comments go first, then likes, then the post.

    Comments are removed before the post so a reader never sees a
    comment whose post is already gone.
    """
    user = resolve_user(actor_email)
    post = _get_post(post_id)
    if post.author_id != user.id:
        raise AuthorizationError("You are not authorized to delete this post")

    with transaction.atomic():
        deleted_comments, _ = Comment.objects.filter(post_id=post.id).delete()
        Like.objects.filter(post_id=post.id).delete()
        post.delete()

    logger.info(f"Post {post_id} deleted by {user.id} ({deleted_comments} comments removed)")


# ============================================================================
# LIKES
# ============================================================================

def like_post(actor_email: str, post_id: int) -> LikeResult:
    """
    Like a post atomically.

    OPERATION:
    1. Resolve actor, load post (verify exists)
    2. Try to create Like (unique constraint prevents duplicates)
    3. If success: increment counter, notify owner (unless self-like)
    4. If IntegrityError: Like already exists -> no-op
    """
    user = resolve_user(actor_email)
    post = _get_post(post_id)

    try:
        with transaction.atomic():
            Like.objects.create(user=user, post=post)
            Post.objects.filter(id=post.id).update(likes_count=F('likes_count') + 1)
    except IntegrityError:
        return LikeResult(
            success=False,
            action='already_exists',
            likes_count=_current_likes(post.id)
        )

    if post.author_id != user.id:
        notify(
            recipient_id=post.author_id,
            sender_id=user.id,
            notification_type=Notification.NotificationType.LIKE,
            content=f"{user.profile.display_name} liked your post",
            entity_id=post.id,
        )

    return LikeResult(success=True, action='created', likes_count=_current_likes(post.id))


def unlike_post(actor_email: str, post_id: int) -> LikeResult:
    """Remove a like. Counter floored at 0. No notification retraction."""
    user = resolve_user(actor_email)
    post = _get_post(post_id)

    with transaction.atomic():
        deleted_count, _ = Like.objects.filter(user=user, post=post).delete()
        if deleted_count > 0:
            Post.objects.filter(id=post.id).update(
                likes_count=Greatest(F('likes_count') - 1, Value(0))
            )

    if deleted_count > 0:
        return LikeResult(success=True, action='removed', likes_count=_current_likes(post.id))
    return LikeResult(success=False, action='already_removed', likes_count=_current_likes(post.id))


# ============================================================================
# COMMENTS
# ============================================================================

def add_comment(actor_email: str, post_id: int, content: str) -> CommentView:
    """
    Create a comment; comments_count is incremented by the post_save signal.

    Returns the comment enriched with the actor's display fields.
    """
    user = resolve_user(actor_email)
    post = _get_post(post_id)

    comment = Comment.objects.create(post=post, author=user, content=content)

    if post.author_id != user.id:
        notify(
            recipient_id=post.author_id,
            sender_id=user.id,
            notification_type=Notification.NotificationType.COMMENT,
            content=f"{user.profile.display_name} commented on your post",
            entity_id=post.id,
        )

    comment.author = user
    return comment_view(comment)


def update_comment(actor_email: str, comment_id: int, content: str) -> CommentView:
    user = resolve_user(actor_email)
    comment = _get_comment(comment_id)
    if comment.author_id != user.id:
        raise AuthorizationError("You are not authorized to update this comment")

    comment.content = content
    comment.save(update_fields=['content', 'updated_at'])
    return comment_view(comment)


def delete_comment(actor_email: str, comment_id: int) -> None:
    """Author only. comments_count is decremented (floored at 0) by signal."""
    user = resolve_user(actor_email)
    comment = _get_comment(comment_id)
    if comment.author_id != user.id:
        raise AuthorizationError("You are not authorized to delete this comment")
    comment.delete()


def list_comments(post_id: int):
    _get_post(post_id)
    return get_comments_for_post(post_id)


# ============================================================================
# COUNTER RECONCILIATION
# ============================================================================

def reconcile_post_counters(post_id: Optional[int] = None) -> list:
    """
    Recompute likes_count/comments_count from the rows they mirror.

    Counters are only eventually accurate (a crashed request, a manual
    SQL fix, ...). This finds drift, logs it, and repairs it.

    Returns a list of {'post_id', 'field', 'stored', 'actual'} corrections.
    """
    queryset = Post.objects.annotate(
        actual_likes=Count('likes', distinct=True),
        actual_comments=Count('comments', distinct=True),
    )
    if post_id is not None:
        queryset = queryset.filter(pk=post_id)

    corrections = []
    for post in queryset:
        changes = {}
        if post.likes_count != post.actual_likes:
            changes['likes_count'] = post.actual_likes
        if post.comments_count != post.actual_comments:
            changes['comments_count'] = post.actual_comments
        for field, actual in changes.items():
            stored = getattr(post, field)
            logger.warning(f"Counter drift on post {post.id}: {field} stored={stored} actual={actual}")
            corrections.append({
                'post_id': post.id,
                'field': field,
                'stored': stored,
                'actual': actual,
            })
        if changes:
            Post.objects.filter(pk=post.pk).update(**changes)

    return corrections
