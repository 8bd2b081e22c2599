"""
Django Signals for derived state.

1. Every new User gets a Profile, so read-side joins never miss one.
2. Comment creation/deletion keeps post.comments_count in step.

NOTE: post_delete DOES fire for comments removed through QuerySet.delete()
(the collector sends it per row), so delete_post's cascade also decrements
the counter of the post it is about to remove. Harmless, one UPDATE each.
"""

from django.contrib.auth.models import User
from django.db.models import F, Value
from django.db.models.functions import Greatest
from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from .models import Comment, Post, Profile


@receiver(post_save, sender=User)
def create_profile(sender, instance, created, **kwargs):
    if created:
        Profile.objects.get_or_create(user=instance)


@receiver(post_save, sender=Comment)
def increment_comment_count(sender, instance, created, **kwargs):
    """
    When a new comment is created, increment the post's comment count.

    F() makes the increment a single UPDATE, so two concurrent comments
    cannot overwrite each other's count.
    """
    if created:
        Post.objects.filter(id=instance.post_id).update(
            comments_count=F('comments_count') + 1
        )


@receiver(post_delete, sender=Comment)
def decrement_comment_count(sender, instance, **kwargs):
    """Decrement the post's comment count, floored at 0."""
    Post.objects.filter(id=instance.post_id).update(
        comments_count=Greatest(F('comments_count') - 1, Value(0))
    )
