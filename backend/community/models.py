"""
Data Models for the SkillShare community
=========================================

Design Philosophy:
------------------
1. Users are Django's built-in User, extended one-to-one by Profile
   - Email is the identity token the API resolves on every request
   - Profile holds display fields and skill/interest sets

2. Follow edges are ONE row per directed edge (follower -> followee)
   - user.following and user.followers are both read from the same row
   - Symmetry cannot be broken by a half-finished write
   - Unique constraint makes a retried follow a no-op
   - Check constraint keeps a user out of their own lists

3. Likes are rows with a unique (user, post) constraint
   - likedBy is derived from Like rows, likes_count is a denormalized counter
   - Both are written in the same transaction

4. Learning steps are child rows with an explicit position
   - Order drives progress display and reordering
   - step_id is a UUID unless the client supplied one, unique within its plan

5. Notifications are append-mostly: only `read` ever changes

Indexes Strategy:
-----------------
- follow.followee + follow.created_at: follower list in insertion order
- follow.follower + follow.created_at: following list in insertion order
- comment.post + comment.created_at: comments for a post
- notification.recipient + notification.read: unread count
"""

import uuid

from django.contrib.auth.models import User
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


def generate_step_id() -> str:
    return str(uuid.uuid4())


def normalize_tags(values) -> list:
    """
    Set semantics for skills/interests while keeping first-seen order.

    Blank entries are dropped, surrounding whitespace is stripped.
    """
    seen = []
    for value in values or []:
        if value is None:
            continue
        value = str(value).strip()
        if value and value not in seen:
            seen.append(value)
    return seen


class Profile(models.Model):
    """
    Community-facing fields for a User.

    Created automatically by a post_save signal, so every User has one.
    """
    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name='profile'
    )
    name = models.CharField(max_length=150, blank=True)
    bio = models.TextField(blank=True)
    location = models.CharField(max_length=150, blank=True)
    avatar_url = models.URLField(max_length=500, blank=True)
    cover_url = models.URLField(max_length=500, blank=True)
    skills = models.JSONField(default=list, blank=True)
    interests = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Profile({self.user.email})"

    @property
    def display_name(self) -> str:
        return self.name or self.user.get_full_name() or self.user.username


class Follow(models.Model):
    """
    Directed follow edge.

    `created_at` is the insertion order of follow actions, which is the
    order followers/following lists are returned in.
    """
    follower = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='following_edges'
    )
    followee = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='follower_edges'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['follower', 'followee'],
                name='unique_follow_edge'
            ),
            models.CheckConstraint(
                condition=~Q(follower=F('followee')),
                name='follow_not_self'
            ),
        ]
        indexes = [
            models.Index(fields=['followee', 'created_at'], name='follow_followee_created_idx'),
            models.Index(fields=['follower', 'created_at'], name='follow_follower_created_idx'),
        ]

    def __str__(self):
        return f"{self.follower_id} -> {self.followee_id}"


class Post(models.Model):
    """
    A feed post.

    likes_count/comments_count are denormalized. They are updated with F()
    expressions so concurrent writers do not lose increments, but they are
    still only *eventually* accurate (see services.reconcile_post_counters).
    """
    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='posts',
        db_index=True
    )
    content = models.TextField()
    media_urls = models.JSONField(default=list, blank=True)
    skill_category = models.CharField(max_length=100, blank=True, null=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    likes_count = models.PositiveIntegerField(default=0)
    comments_count = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['author', '-created_at'], name='post_author_created_idx'),
        ]

    def __str__(self):
        return f"Post {self.pk} by {self.author_id}"

    @property
    def liked_by(self) -> list:
        """User ids that liked this post, in like order."""
        return [like.user_id for like in self.likes.all()]


class Like(models.Model):
    """
    One like per (user, post).

    The unique constraint is what makes like_post idempotent under
    concurrent requests: the second insert raises IntegrityError.
    """
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='likes'
    )
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='likes'
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'post'],
                name='unique_like_per_user_per_post'
            )
        ]
        indexes = [
            models.Index(fields=['post', 'created_at'], name='like_post_created_idx'),
        ]

    def __str__(self):
        return f"{self.user_id} liked post {self.post_id}"


class Comment(models.Model):
    post = models.ForeignKey(
        Post,
        on_delete=models.CASCADE,
        related_name='comments',
        db_index=True
    )
    author = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='comments'
    )
    content = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at', 'id']
        indexes = [
            models.Index(fields=['post', 'created_at'], name='comment_post_created_idx'),
        ]

    def __str__(self):
        return f"Comment by {self.author_id} on {self.post_id}"


class LearningPlan(models.Model):
    """
    An ordered list of steps with derived progress.

    `progress` is recomputed from steps after every step mutation. The only
    other writer is the explicit override (learning.set_progress), which
    holds until the next step mutation.

    The legacy single `skill` value is NOT stored: it is skills[0], derived
    on read.
    """
    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='learning_plans'
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    skills = models.JSONField(default=list, blank=True)
    deadline = models.DateTimeField(null=True, blank=True)
    progress = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['owner', '-created_at'], name='plan_owner_created_idx'),
        ]

    def __str__(self):
        return f"{self.title} ({self.progress}%)"

    @property
    def skill(self):
        return self.skills[0] if self.skills else None


class LearningStep(models.Model):
    plan = models.ForeignKey(
        LearningPlan,
        on_delete=models.CASCADE,
        related_name='steps'
    )
    step_id = models.CharField(max_length=64, default=generate_step_id, editable=False)
    position = models.PositiveIntegerField(default=0)
    title = models.CharField(max_length=200, blank=True)
    description = models.TextField(blank=True)
    completed = models.BooleanField(default=False)
    deadline = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['position', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['plan', 'step_id'],
                name='unique_step_id_per_plan'
            )
        ]

    def __str__(self):
        return f"{self.position}: {self.title}"


class LearningProgress(models.Model):
    """A journal entry: what the user is learning and how far along they are."""
    owner = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='learning_progress'
    )
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    progress_type = models.CharField(max_length=50, blank=True)
    skills = models.JSONField(default=list, blank=True)
    resource_url = models.URLField(max_length=500, blank=True)
    completion_percentage = models.PositiveSmallIntegerField(
        default=0,
        validators=[MinValueValidator(0), MaxValueValidator(100)]
    )
    start_date = models.DateTimeField(null=True, blank=True)
    completion_date = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'learning progress'

    def __str__(self):
        return f"{self.title} ({self.completion_percentage}%)"

    @property
    def skill(self):
        return self.skills[0] if self.skills else None


class Notification(models.Model):
    """
    Pull-based notification.

    Created only by the notifications module. No deduplication: the same
    trigger twice produces two rows.
    """

    class NotificationType(models.TextChoices):
        LIKE = 'LIKE', 'Like'
        COMMENT = 'COMMENT', 'Comment'
        FOLLOW = 'FOLLOW', 'Follow'
        LEARNING_UPDATE = 'LEARNING_UPDATE', 'Learning Update'

    recipient = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='notifications',
        db_index=True
    )
    sender = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='sent_notifications'
    )
    notification_type = models.CharField(
        max_length=20,
        choices=NotificationType.choices
    )
    content = models.CharField(max_length=500)
    entity_id = models.CharField(max_length=64)
    read = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['recipient', 'read'], name='notif_recipient_read_idx'),
            models.Index(fields=['recipient', '-created_at'], name='notif_recipient_created_idx'),
        ]

    def __str__(self):
        return f"{self.notification_type} -> {self.recipient_id}"


# ============================================================================
# DOMAIN CONSTANTS
# ============================================================================
# Progress values that notify followers: every multiple of this, and 100
MILESTONE_INTERVAL = 25
PROGRESS_COMPLETE = 100
