"""
DRF Serializers
===============

Two kinds live here:

1. INPUT serializers validate request bodies before they reach a service.
   Services take plain dicts (validated_data), never request objects.
2. OUTPUT serializers render the read models built in queries.py. They are
   plain Serializers, not ModelSerializers: the read model already joined
   the author fields, the serializer only fixes the JSON shape.

DESIGN DECISIONS:
-----------------
1. Author/owner are never accepted from input, always from request.user
2. skill / skills both accepted; the service normalizes them
3. Percentages validated here AND in the service (services are callable
   from management commands too)
"""

from rest_framework import serializers

from .models import Notification
from .queries import author_summary


# ============================================================================
# OUTPUT
# ============================================================================

class AuthorSerializer(serializers.Serializer):
    """Minimal user representation for embedding in other objects."""
    id = serializers.IntegerField()
    username = serializers.CharField()
    name = serializers.CharField()
    avatar_url = serializers.CharField(allow_blank=True)


class ProfileSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    email = serializers.EmailField()
    username = serializers.CharField()
    name = serializers.CharField()
    bio = serializers.CharField(allow_blank=True)
    location = serializers.CharField(allow_blank=True)
    avatar_url = serializers.CharField(allow_blank=True)
    cover_url = serializers.CharField(allow_blank=True)
    skills = serializers.ListField(child=serializers.CharField())
    interests = serializers.ListField(child=serializers.CharField())
    follower_count = serializers.IntegerField()
    following_count = serializers.IntegerField()
    is_following = serializers.BooleanField()
    created_at = serializers.DateTimeField()


class FollowEntrySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    name = serializers.CharField()
    avatar_url = serializers.CharField(allow_blank=True)
    bio = serializers.CharField(allow_blank=True)
    follower_count = serializers.IntegerField()
    following_count = serializers.IntegerField()
    is_following = serializers.BooleanField()


class PostSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    author = AuthorSerializer()
    content = serializers.CharField()
    media_urls = serializers.ListField(child=serializers.CharField())
    skill_category = serializers.CharField(allow_null=True)
    likes_count = serializers.IntegerField()
    comments_count = serializers.IntegerField()
    liked_by = serializers.ListField(child=serializers.IntegerField())
    user_liked = serializers.BooleanField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class CommentSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    post_id = serializers.IntegerField()
    author = AuthorSerializer()
    content = serializers.CharField()
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class StepSerializer(serializers.Serializer):
    id = serializers.CharField()
    title = serializers.CharField(allow_blank=True)
    description = serializers.CharField(allow_blank=True)
    completed = serializers.BooleanField()
    deadline = serializers.DateTimeField(allow_null=True)


class PlanSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    owner = AuthorSerializer()
    title = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    skill = serializers.CharField(allow_null=True)
    skills = serializers.ListField(child=serializers.CharField())
    deadline = serializers.DateTimeField(allow_null=True)
    progress = serializers.IntegerField()
    steps = StepSerializer(many=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class ProgressEntrySerializer(serializers.Serializer):
    id = serializers.IntegerField()
    owner = AuthorSerializer()
    title = serializers.CharField()
    description = serializers.CharField(allow_blank=True)
    progress_type = serializers.CharField(allow_blank=True)
    skill = serializers.CharField(allow_null=True)
    skills = serializers.ListField(child=serializers.CharField())
    resource_url = serializers.CharField(allow_blank=True)
    completion_percentage = serializers.IntegerField()
    start_date = serializers.DateTimeField(allow_null=True)
    completion_date = serializers.DateTimeField(allow_null=True)
    created_at = serializers.DateTimeField()
    updated_at = serializers.DateTimeField()


class NotificationSerializer(serializers.ModelSerializer):
    """Notifications are rendered straight from the model plus the sender summary."""
    sender = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = [
            'id',
            'notification_type',
            'content',
            'entity_id',
            'read',
            'sender',
            'created_at',
        ]
        read_only_fields = ['notification_type', 'content', 'entity_id', 'read', 'created_at']

    def get_sender(self, obj):
        return AuthorSerializer(author_summary(obj.sender)).data


# ============================================================================
# INPUT
# ============================================================================

class MockLoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(required=False, allow_blank=True, default='')


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField()
    name = serializers.CharField(required=False, allow_blank=True, default='')
    username = serializers.CharField(required=False, max_length=150)
    password = serializers.CharField(required=False, write_only=True, min_length=8)


class ProfileUpdateSerializer(serializers.Serializer):
    """Every field optional: absent keys are left unchanged."""
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    username = serializers.CharField(required=False, max_length=150)
    bio = serializers.CharField(required=False, allow_blank=True, max_length=500)
    location = serializers.CharField(required=False, allow_blank=True, max_length=150)
    avatar_url = serializers.CharField(required=False, allow_blank=True, max_length=500)
    cover_url = serializers.CharField(required=False, allow_blank=True, max_length=500)
    skills = serializers.ListField(child=serializers.CharField(), required=False)
    interests = serializers.ListField(child=serializers.CharField(), required=False)


class PostInputSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=5000)
    media_urls = serializers.ListField(
        child=serializers.CharField(max_length=500), required=False, default=list
    )
    skill_category = serializers.CharField(required=False, allow_null=True, max_length=100)

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Post content cannot be empty.")
        return value.strip()


class PostUpdateSerializer(PostInputSerializer):
    content = serializers.CharField(required=False, max_length=5000)
    media_urls = serializers.ListField(
        child=serializers.CharField(max_length=500), required=False
    )


class CommentInputSerializer(serializers.Serializer):
    content = serializers.CharField(max_length=2000)

    def validate_content(self, value):
        if not value.strip():
            raise serializers.ValidationError("Comment cannot be empty.")
        return value.strip()


class StepInputSerializer(serializers.Serializer):
    id = serializers.RegexField(
        r'^[\w-]+$', required=False, allow_null=True, max_length=64,
        error_messages={'invalid': "Step ids may only contain letters, digits, '_' and '-'."},
    )
    title = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=200)
    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    completed = serializers.BooleanField(required=False, default=False)
    deadline = serializers.DateTimeField(required=False, allow_null=True)


class PlanInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    skill = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    skills = serializers.ListField(child=serializers.CharField(), required=False)
    deadline = serializers.DateTimeField(required=False, allow_null=True)
    steps = StepInputSerializer(many=True, required=False)


class StepStatusSerializer(serializers.Serializer):
    completed = serializers.BooleanField()


class ReorderSerializer(serializers.Serializer):
    direction = serializers.ChoiceField(choices=['up', 'down'])


class ProgressOverrideSerializer(serializers.Serializer):
    progress = serializers.IntegerField(min_value=0, max_value=100)


class ProgressEntryInputSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    progress_type = serializers.CharField(required=False, allow_blank=True, max_length=50)
    skill = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    skills = serializers.ListField(child=serializers.CharField(), required=False)
    resource_url = serializers.CharField(required=False, allow_blank=True, max_length=500)
    completion_percentage = serializers.IntegerField(
        required=False, min_value=0, max_value=100
    )
    start_date = serializers.DateTimeField(required=False, allow_null=True)
    completion_date = serializers.DateTimeField(required=False, allow_null=True)


class ProgressEntryUpdateSerializer(ProgressEntryInputSerializer):
    title = serializers.CharField(required=False, max_length=200)
