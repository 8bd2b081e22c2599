"""
Social Graph
============

Follow edges between users.

STORAGE:
--------
One Follow row per directed edge. user.following and user.followers are two
views of the same rows:

    following(A) = [f.followee for f in Follow where follower = A]
    followers(B) = [f.follower for f in Follow where followee = B]

So the classic "two list writes, crash in between" asymmetry cannot happen:
there is only one write. Counts are the live length of the lists, never a
stored integer.

CONCURRENCY:
------------
Same approach as likes: try the INSERT, let the unique constraint reject a
duplicate, treat IntegrityError as "already following". A retried follow is
therefore always safe.
"""
import logging
from typing import List, Optional, TypedDict

from django.contrib.auth.models import User
from django.db import IntegrityError, transaction
from django.db.models import Count

from .accounts import get_user, resolve_user
from .exceptions import SelfReferenceError
from .models import Follow, Notification
from .queries import FollowEntry, author_summary

logger = logging.getLogger(__name__)


class FollowResult(TypedDict):
    followee_id: int
    created: bool
    follower_count: int
    following_count: int


def following_ids(user: User) -> List[int]:
    """Ids this user follows, in the order they were followed."""
    return list(
        Follow.objects
        .filter(follower=user)
        .order_by('created_at', 'id')
        .values_list('followee_id', flat=True)
    )


def follower_ids(user: User) -> List[int]:
    """Ids following this user, in the order they followed."""
    return list(
        Follow.objects
        .filter(followee=user)
        .order_by('created_at', 'id')
        .values_list('follower_id', flat=True)
    )


def follower_count(user: User) -> int:
    return Follow.objects.filter(followee=user).count()


def following_count(user: User) -> int:
    return Follow.objects.filter(follower=user).count()


def _result(target: User, created: bool) -> FollowResult:
    return {
        'followee_id': target.id,
        'created': created,
        'follower_count': follower_count(target),
        'following_count': following_count(target),
    }


def follow(follower_email: str, target_user_id: int) -> FollowResult:
    """
    Create the edge follower -> target.

    Order of checks:
    1. Resolve follower (NotFoundError)
    2. Self-follow (SelfReferenceError), before touching the target
    3. Resolve target (NotFoundError)
    4. INSERT; duplicate edge is a no-op

    A FOLLOW notification goes to the target only when the edge is new.
    """
    from .notifications import notify

    follower = resolve_user(follower_email)
    if follower.id == int(target_user_id):
        raise SelfReferenceError("Users cannot follow themselves")
    target = get_user(target_user_id)

    try:
        with transaction.atomic():
            Follow.objects.create(follower=follower, followee=target)
    except IntegrityError:
        logger.debug(f"{follower.id} already follows {target.id}")
        return _result(target, created=False)

    logger.info(f"{follower.id} followed {target.id}")
    notify(
        recipient_id=target.id,
        sender_id=follower.id,
        notification_type=Notification.NotificationType.FOLLOW,
        content=f"{follower.profile.display_name} started following you",
        entity_id=follower.id,
    )
    return _result(target, created=True)


def unfollow(follower_email: str, target_user_id: int) -> FollowResult:
    """Remove the edge. No-op when it does not exist."""
    follower = resolve_user(follower_email)
    target = get_user(target_user_id)

    deleted, _ = Follow.objects.filter(follower=follower, followee=target).delete()
    if deleted:
        logger.info(f"{follower.id} unfollowed {target.id}")
    return _result(target, created=False)


def _entries(users: List[User], viewer: Optional[User]) -> List[FollowEntry]:
    viewer_following = set(following_ids(viewer)) if viewer else set()
    entries = []
    for user in users:
        summary = author_summary(user)
        entries.append({
            'id': user.id,
            'username': summary['username'],
            'name': summary['name'],
            'avatar_url': summary['avatar_url'],
            'bio': user.profile.bio,
            'follower_count': user.n_followers,
            'following_count': user.n_following,
            'is_following': user.id in viewer_following,
        })
    return entries


def _ordered_users(ids: List[int]) -> List[User]:
    """Fetch users in ONE query, then restore the edge order."""
    users = (
        User.objects
        .filter(id__in=ids)
        .select_related('profile')
        .annotate(
            n_followers=Count('follower_edges', distinct=True),
            n_following=Count('following_edges', distinct=True),
        )
    )
    by_id = {user.id: user for user in users}
    return [by_id[user_id] for user_id in ids if user_id in by_id]


def list_followers(user_id: int, viewer_email: Optional[str] = None) -> List[FollowEntry]:
    user = get_user(user_id)
    viewer = resolve_user(viewer_email) if viewer_email else None
    return _entries(_ordered_users(follower_ids(user)), viewer)


def list_following(user_id: int, viewer_email: Optional[str] = None) -> List[FollowEntry]:
    user = get_user(user_id)
    viewer = resolve_user(viewer_email) if viewer_email else None
    return _entries(_ordered_users(following_ids(user)), viewer)
