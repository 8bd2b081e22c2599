"""
Identity resolution and member profiles.

Every inbound action carries an identity token (the user's email). All
components go through resolve_user() before any graph or ownership check,
so "who is acting" is decided in exactly one place.
"""
import logging
from typing import Optional

from django.contrib.auth.models import User
from django.db import transaction

from .exceptions import NotFoundError, ValidationError
from .models import Follow, Profile, normalize_tags
from .queries import ProfileView, profile_view

logger = logging.getLogger(__name__)

PROFILE_TEXT_FIELDS = ('name', 'bio', 'location', 'avatar_url', 'cover_url')


def resolve_user(email: str) -> User:
    """
    Email -> User. Case-insensitive, like most login forms.

    Raises NotFoundError when no account matches.
    """
    if not email:
        raise NotFoundError("User not found")
    user = (
        User.objects
        .select_related('profile')
        .filter(email__iexact=email)
        .order_by('id')
        .first()
    )
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user(user_id: int) -> User:
    user = User.objects.select_related('profile').filter(pk=user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def register_member(email: str, name: str = '', username: Optional[str] = None,
                    password: Optional[str] = None) -> User:
    """
    Create a User (+ Profile via signal).

    Email is the login key, so it must be unique. Django's User does not
    enforce that, we do it here.
    """
    email = (email or '').strip()
    if not email:
        raise ValidationError("Email is required")
    if User.objects.filter(email__iexact=email).exists():
        raise ValidationError("Email is already registered")

    username = (username or email).strip()
    if User.objects.filter(username=username).exists():
        raise ValidationError("Username is already taken")

    with transaction.atomic():
        user = User.objects.create_user(username=username, email=email, password=password)
        profile, _ = Profile.objects.get_or_create(user=user)
        profile.name = name or ''
        profile.save(update_fields=['name', 'updated_at'])

    logger.info(f"Registered member {user.id}")
    return User.objects.select_related('profile').get(pk=user.pk)


def update_profile(email: str, data: dict) -> User:
    """
    Partial profile update. Keys absent from `data` are left unchanged.

    skills/interests keep set semantics (see models.normalize_tags).
    """
    user = resolve_user(email)
    profile = user.profile

    for field in PROFILE_TEXT_FIELDS:
        if field in data and data[field] is not None:
            setattr(profile, field, data[field])
    if data.get('skills') is not None:
        profile.skills = normalize_tags(data['skills'])
    if data.get('interests') is not None:
        profile.interests = normalize_tags(data['interests'])

    username = data.get('username')
    if username and username != user.username:
        if User.objects.filter(username=username).exclude(pk=user.pk).exists():
            raise ValidationError("Username is already taken")
        user.username = username
        user.save(update_fields=['username'])

    profile.save()
    return user


def get_profile(user_id: int, viewer_email: Optional[str] = None) -> ProfileView:
    """Profile with live follower/following counts and the viewer's follow state."""
    user = get_user(user_id)
    is_following = False
    if viewer_email:
        viewer = resolve_user(viewer_email)
        is_following = Follow.objects.filter(follower=viewer, followee=user).exists()

    return profile_view(
        user,
        follower_count=Follow.objects.filter(followee=user).count(),
        following_count=Follow.objects.filter(follower=user).count(),
        is_following=is_following,
    )
