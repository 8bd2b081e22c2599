"""
Management command to seed the database with sample data.

Usage: python manage.py seed_data

Everything goes through the service layer, so counters, follow edges and
notifications end up exactly as real traffic would leave them.
"""

import random
from django.core.management.base import BaseCommand
from django.contrib.auth.models import User

from community.accounts import register_member
from community.graph import follow
from community.learning import create_plan, set_step_status
from community.models import Comment, Follow, LearningPlan, Like, Notification, Post
from community.services import add_comment, create_post, like_post


SKILLS = ['python', 'design', 'photography', 'cooking', 'guitar', 'spanish']


class Command(BaseCommand):
    help = 'Seed the database with sample members, posts and learning plans'

    def add_arguments(self, parser):
        parser.add_argument(
            '--users',
            type=int,
            default=10,
            help='Number of members to create'
        )
        parser.add_argument(
            '--posts',
            type=int,
            default=20,
            help='Number of posts to create'
        )
        parser.add_argument(
            '--comments',
            type=int,
            default=60,
            help='Number of comments to create'
        )
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding'
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            Notification.objects.all().delete()
            Like.objects.all().delete()
            Comment.objects.all().delete()
            Post.objects.all().delete()
            LearningPlan.objects.all().delete()
            Follow.objects.all().delete()
            User.objects.filter(is_superuser=False).delete()

        self.stdout.write('Creating members...')
        users = self._create_users(options['users'])

        self.stdout.write('Following...')
        self._create_follows(users)

        self.stdout.write('Creating posts...')
        posts = self._create_posts(users, options['posts'])

        self.stdout.write('Creating comments...')
        self._create_comments(users, posts, options['comments'])

        self.stdout.write('Creating likes...')
        self._create_likes(users, posts)

        self.stdout.write('Creating learning plans...')
        plans = self._create_plans(users)

        self.stdout.write(self.style.SUCCESS(
            f'Successfully created:\n'
            f'  - {len(users)} members\n'
            f'  - {len(posts)} posts\n'
            f'  - {len(plans)} learning plans\n'
            f'  - Follows, comments, likes and notifications'
        ))

    def _create_users(self, count):
        users = []
        for i in range(count):
            email = f'member{i+1}@example.com'
            user = User.objects.filter(email__iexact=email).first()
            if user is None:
                user = register_member(
                    email,
                    name=f'Member {i+1}',
                    username=f'member{i+1}',
                    password='password123',
                )
            users.append(user)
        return users

    def _create_follows(self, users):
        # follow() is idempotent, so re-running the seed is safe
        for user in users:
            others = [u for u in users if u.id != user.id]
            for target in random.sample(others, k=min(3, len(others))):
                follow(user.email, target.id)

    def _create_posts(self, users, count):
        contents = [
            "Finally got my first sourdough loaf to rise properly.",
            "Sharing the notes from this week's design critique.",
            "Three chords in and my fingers already hurt. Worth it.",
            "Wrote my first decorator today, feels like magic.",
            "Golden hour shots from the harbour this morning.",
        ]

        posts = []
        for i in range(count):
            author = random.choice(users)
            post = create_post(author.email, {
                'content': f"{random.choice(contents)}\n\nPost #{i+1}",
                'skill_category': random.choice(SKILLS),
            })
            posts.append(post)
        return posts

    def _create_comments(self, users, posts, count):
        comment_texts = [
            "Great progress!",
            "How long did that take you?",
            "Thanks for sharing!",
            "Can you post the resources you used?",
            "This is exactly what I was looking for.",
        ]
        for _ in range(count):
            post = random.choice(posts)
            add_comment(random.choice(users).email, post['id'], random.choice(comment_texts))

    def _create_likes(self, users, posts):
        # Like 50% of posts; like_post is idempotent
        for post in posts:
            for liker in random.sample(users, k=len(users) // 2):
                like_post(liker.email, post['id'])

    def _create_plans(self, users):
        plans = []
        for user in users[:max(1, len(users) // 2)]:
            skill = random.choice(SKILLS)
            plan = create_plan(user.email, {
                'title': f"Get started with {skill}",
                'description': f"A four week plan to learn the basics of {skill}.",
                'skills': [skill],
                'steps': [{'title': f"Week {week}"} for week in range(1, 5)],
            })
            # Completing steps goes through the milestone rule
            for step in plan['steps'][:random.randint(0, 4)]:
                set_step_status(user.email, plan['id'], step['id'], True)
            plans.append(plan)
        return plans
