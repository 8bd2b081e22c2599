"""
Django Admin Configuration for Community Models
"""
from django.contrib import admin
from .models import (
    Comment,
    Follow,
    LearningPlan,
    LearningProgress,
    LearningStep,
    Like,
    Notification,
    Post,
    Profile,
)


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ['user', 'name', 'location', 'created_at']
    search_fields = ['name', 'user__username', 'user__email']


@admin.register(Follow)
class FollowAdmin(admin.ModelAdmin):
    list_display = ['follower', 'followee', 'created_at']
    search_fields = ['follower__username', 'followee__username']


@admin.register(Post)
class PostAdmin(admin.ModelAdmin):
    list_display = ['id', 'author', 'skill_category', 'likes_count', 'comments_count', 'created_at']
    list_filter = ['created_at', 'skill_category']
    search_fields = ['content', 'author__username']
    # Counters move through F() updates and reconcile_counters, never by hand
    readonly_fields = ['likes_count', 'comments_count', 'created_at', 'updated_at']


@admin.register(Comment)
class CommentAdmin(admin.ModelAdmin):
    list_display = ['id', 'post', 'author', 'created_at']
    list_filter = ['created_at']
    search_fields = ['content', 'author__username']
    readonly_fields = ['created_at', 'updated_at']


@admin.register(Like)
class LikeAdmin(admin.ModelAdmin):
    list_display = ['user', 'post', 'created_at']
    list_filter = ['created_at']
    search_fields = ['user__username']


class LearningStepInline(admin.TabularInline):
    model = LearningStep
    extra = 0
    readonly_fields = ['step_id']


@admin.register(LearningPlan)
class LearningPlanAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'progress', 'deadline', 'created_at']
    search_fields = ['title', 'owner__username']
    inlines = [LearningStepInline]


@admin.register(LearningProgress)
class LearningProgressAdmin(admin.ModelAdmin):
    list_display = ['title', 'owner', 'progress_type', 'completion_percentage', 'created_at']
    list_filter = ['progress_type']
    search_fields = ['title', 'owner__username']


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['recipient', 'sender', 'notification_type', 'read', 'created_at']
    list_filter = ['notification_type', 'read', 'created_at']
    search_fields = ['recipient__username', 'sender__username']
    readonly_fields = ['recipient', 'sender', 'notification_type', 'content',
                       'entity_id', 'created_at']

    def has_add_permission(self, request):
        # Notifications are only created by the system
        return False
