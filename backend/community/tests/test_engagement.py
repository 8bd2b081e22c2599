"""
Tests for posts, likes and comments.

Focus areas:
1. likes_count always equals the number of Like rows
2. Comment counter and cascade on post delete
3. Ownership checks leave state unchanged
4. Read model enrichment without N+1
"""

from django.contrib.auth.models import User
from django.db import connection
from django.test import TestCase, TransactionTestCase
from django.test.utils import CaptureQueriesContext

from community.exceptions import AuthorizationError, NotFoundError
from community.models import Comment, Like, Notification, Post
from community.queries import feed_queryset, post_view
from community.services import (
    add_comment,
    create_post,
    delete_comment,
    delete_post,
    get_post,
    like_post,
    list_comments,
    reconcile_post_counters,
    unlike_post,
    update_comment,
    update_post,
)


class LikeConcurrencyTestCase(TransactionTestCase):
    """
    Test like concurrency protection.

    These tests verify that:
    1. Duplicate likes are prevented
    2. IntegrityError is handled gracefully
    """

    def setUp(self):
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.author = User.objects.create_user('author', 'a@test.com', 'pass')
        self.post = Post.objects.create(author=self.author, content='Learning to juggle')

    def test_cannot_like_twice(self):
        """Second like on same post is a no-op."""
        result1 = like_post('u@test.com', self.post.id)
        result2 = like_post('u@test.com', self.post.id)

        self.assertEqual(result1.action, 'created')
        self.assertEqual(result2.action, 'already_exists')
        self.assertFalse(result2.success)
        self.assertEqual(result2.likes_count, 1)
        self.assertEqual(Like.objects.filter(user=self.user, post=self.post).count(), 1)

    def test_like_unlike_like(self):
        """Like -> Unlike -> Like should work."""
        self.assertEqual(like_post('u@test.com', self.post.id).action, 'created')
        self.assertEqual(unlike_post('u@test.com', self.post.id).action, 'removed')
        self.assertEqual(like_post('u@test.com', self.post.id).action, 'created')

    def test_likes_count_matches_liked_by(self):
        """likes_count == len(liked_by) after any like/unlike sequence."""
        sequence = [
            (like_post, 'u@test.com'),
            (like_post, 'a@test.com'),
            (like_post, 'u@test.com'),
            (unlike_post, 'a@test.com'),
            (unlike_post, 'a@test.com'),
            (like_post, 'a@test.com'),
            (unlike_post, 'u@test.com'),
        ]
        for action, email in sequence:
            action(email, self.post.id)
            view = get_post(self.post.id)
            self.assertEqual(view['likes_count'], len(view['liked_by']))

    def test_unlike_never_goes_negative(self):
        unlike_post('u@test.com', self.post.id)
        self.post.refresh_from_db()
        self.assertEqual(self.post.likes_count, 0)


class LikeNotificationTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user('user', 'u@test.com', 'pass')
        self.author = User.objects.create_user('author', 'a@test.com', 'pass')
        self.post = Post.objects.create(author=self.author, content='Learning to juggle')

    def test_like_notifies_owner(self):
        like_post('u@test.com', self.post.id)

        notification = Notification.objects.get(recipient=self.author)
        self.assertEqual(notification.notification_type, Notification.NotificationType.LIKE)
        self.assertEqual(notification.entity_id, str(self.post.id))

    def test_repeated_like_does_not_notify_again(self):
        like_post('u@test.com', self.post.id)
        like_post('u@test.com', self.post.id)
        self.assertEqual(Notification.objects.count(), 1)

    def test_self_like_counts_but_does_not_notify(self):
        result = like_post('a@test.com', self.post.id)
        self.assertEqual(result.likes_count, 1)
        self.assertEqual(Notification.objects.count(), 0)

    def test_unlike_keeps_notification(self):
        like_post('u@test.com', self.post.id)
        unlike_post('u@test.com', self.post.id)
        self.assertEqual(Notification.objects.count(), 1)

    def test_like_missing_post(self):
        with self.assertRaises(NotFoundError):
            like_post('u@test.com', 999999)


class PostTestCase(TestCase):

    def setUp(self):
        self.author = User.objects.create_user('author', 'a@test.com', 'pass')
        self.other = User.objects.create_user('other', 'o@test.com', 'pass')
        self.author.profile.name = 'Ada'
        self.author.profile.avatar_url = 'https://example.com/ada.png'
        self.author.profile.save()

    def test_create_post_enriched_with_author(self):
        post = create_post('a@test.com', {'content': 'Hello', 'skill_category': 'python'})

        self.assertEqual(post['author']['name'], 'Ada')
        self.assertEqual(post['author']['avatar_url'], 'https://example.com/ada.png')
        self.assertEqual(post['skill_category'], 'python')
        self.assertEqual(post['likes_count'], 0)

    def test_author_display_follows_profile_edits(self):
        post = create_post('a@test.com', {'content': 'Hello'})
        self.author.profile.name = 'Ada L.'
        self.author.profile.save()

        self.assertEqual(get_post(post['id'])['author']['name'], 'Ada L.')

    def test_update_post_keeps_media_on_empty_list(self):
        post = create_post('a@test.com', {'content': 'Hello', 'media_urls': ['https://x/1.png']})
        updated = update_post('a@test.com', post['id'], {'content': 'Edited', 'media_urls': []})

        self.assertEqual(updated['content'], 'Edited')
        self.assertEqual(updated['media_urls'], ['https://x/1.png'])

    def test_update_post_requires_owner(self):
        post = create_post('a@test.com', {'content': 'Hello'})
        with self.assertRaises(AuthorizationError):
            update_post('o@test.com', post['id'], {'content': 'Hijacked'})
        self.assertEqual(get_post(post['id'])['content'], 'Hello')

    def test_user_liked_relative_to_viewer(self):
        post = create_post('a@test.com', {'content': 'Hello'})
        like_post('o@test.com', post['id'])

        self.assertTrue(get_post(post['id'], viewer_email='o@test.com')['user_liked'])
        self.assertFalse(get_post(post['id'], viewer_email='a@test.com')['user_liked'])
        self.assertFalse(get_post(post['id'])['user_liked'])

    def test_delete_post_removes_comments(self):
        post = create_post('a@test.com', {'content': 'Hello'})
        add_comment('o@test.com', post['id'], 'First')
        add_comment('a@test.com', post['id'], 'Second')
        like_post('o@test.com', post['id'])

        delete_post('a@test.com', post['id'])

        self.assertFalse(Post.objects.filter(pk=post['id']).exists())
        self.assertEqual(Comment.objects.filter(post_id=post['id']).count(), 0)
        self.assertEqual(Like.objects.filter(post_id=post['id']).count(), 0)

    def test_delete_post_requires_owner(self):
        post = create_post('a@test.com', {'content': 'Hello'})
        with self.assertRaises(AuthorizationError):
            delete_post('o@test.com', post['id'])
        self.assertTrue(Post.objects.filter(pk=post['id']).exists())

    def test_feed_has_no_n_plus_one(self):
        """Rendering 20 posts with likes must not cost a query per post."""
        for i in range(20):
            post = create_post('a@test.com', {'content': f'Post {i}'})
            like_post('o@test.com', post['id'])

        with CaptureQueriesContext(connection) as context:
            views = [post_view(post) for post in feed_queryset()[:20]]

        self.assertEqual(len(views), 20)
        self.assertLessEqual(len(context), 2)
        self.assertEqual(views[0]['content'], 'Post 19')


class CommentTestCase(TestCase):

    def setUp(self):
        self.author = User.objects.create_user('author', 'a@test.com', 'pass')
        self.commenter = User.objects.create_user('commenter', 'c@test.com', 'pass')
        self.post = Post.objects.create(author=self.author, content='Sketching daily')

    def test_add_comment_increments_counter_and_notifies(self):
        comment = add_comment('c@test.com', self.post.id, 'Nice work')

        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 1)
        self.assertEqual(comment['author']['username'], 'commenter')
        notification = Notification.objects.get(recipient=self.author)
        self.assertEqual(notification.notification_type, Notification.NotificationType.COMMENT)

    def test_own_comment_does_not_notify(self):
        add_comment('a@test.com', self.post.id, 'Day two')
        self.assertEqual(Notification.objects.count(), 0)

    def test_add_comment_missing_post_or_actor(self):
        with self.assertRaises(NotFoundError):
            add_comment('c@test.com', 999999, 'Hello?')
        with self.assertRaises(NotFoundError):
            add_comment('ghost@test.com', self.post.id, 'Boo')

    def test_list_comments_oldest_first(self):
        first = add_comment('c@test.com', self.post.id, 'One')
        second = add_comment('a@test.com', self.post.id, 'Two')

        comments = list_comments(self.post.id)
        self.assertEqual([c['id'] for c in comments], [first['id'], second['id']])

    def test_unauthorized_update_leaves_content(self):
        comment = add_comment('c@test.com', self.post.id, 'Original')

        with self.assertRaises(AuthorizationError):
            update_comment('a@test.com', comment['id'], 'Rewritten')

        self.assertEqual(Comment.objects.get(pk=comment['id']).content, 'Original')

    def test_update_comment_by_author(self):
        comment = add_comment('c@test.com', self.post.id, 'Original')
        updated = update_comment('c@test.com', comment['id'], 'Fixed typo')
        self.assertEqual(updated['content'], 'Fixed typo')

    def test_delete_comment_decrements_counter(self):
        comment = add_comment('c@test.com', self.post.id, 'Bye')
        delete_comment('c@test.com', comment['id'])

        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 0)

    def test_delete_comment_floors_counter(self):
        comment = add_comment('c@test.com', self.post.id, 'Bye')
        Post.objects.filter(pk=self.post.pk).update(comments_count=0)

        delete_comment('c@test.com', comment['id'])

        self.post.refresh_from_db()
        self.assertEqual(self.post.comments_count, 0)


class ReconcileCountersTestCase(TestCase):

    def setUp(self):
        self.author = User.objects.create_user('author', 'a@test.com', 'pass')
        self.fan = User.objects.create_user('fan', 'f@test.com', 'pass')
        self.post = Post.objects.create(author=self.author, content='Drift me')

    def test_repairs_drift(self):
        like_post('f@test.com', self.post.id)
        add_comment('f@test.com', self.post.id, 'Hi')
        Post.objects.filter(pk=self.post.pk).update(likes_count=7, comments_count=0)

        with self.assertLogs('community.services', level='WARNING'):
            corrections = reconcile_post_counters()

        self.assertEqual(
            {(c['field'], c['stored'], c['actual']) for c in corrections},
            {('likes_count', 7, 1), ('comments_count', 0, 1)},
        )
        self.post.refresh_from_db()
        self.assertEqual(self.post.likes_count, 1)
        self.assertEqual(self.post.comments_count, 1)

    def test_no_drift_no_corrections(self):
        like_post('f@test.com', self.post.id)
        self.assertEqual(reconcile_post_counters(self.post.id), [])
