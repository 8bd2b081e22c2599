"""
Tests for the learning plan engine and the progress journal.

Focus areas:
1. progress = floor(100 * completed / total), 0 for an empty plan
2. Milestone fan-out on step-driven changes only
3. Step identity and ordering across edits
"""

from unittest import mock

from django.contrib.auth.models import User
from django.test import TestCase

from community import learning
from community.exceptions import AuthorizationError, NotFoundError, ValidationError
from community.graph import follow
from community.learning import (
    add_step,
    calculate_progress,
    create_plan,
    create_progress_entry,
    delete_plan,
    delete_progress_entry,
    delete_step,
    get_plan,
    is_milestone,
    list_my_plans,
    list_plans_for_user,
    list_progress_entries,
    list_progress_entries_by_skill,
    reorder_step,
    set_progress,
    set_step_status,
    update_plan,
    update_progress_entry,
    update_step,
)
from community.models import LearningPlan, Notification

LEARNING_UPDATE = Notification.NotificationType.LEARNING_UPDATE


class ProgressMathTestCase(TestCase):

    def test_calculate_progress(self):
        self.assertEqual(calculate_progress(0, 0), 0)
        self.assertEqual(calculate_progress(1, 4), 25)
        self.assertEqual(calculate_progress(4, 4), 100)
        self.assertEqual(calculate_progress(1, 3), 33)
        self.assertEqual(calculate_progress(2, 3), 66)

    def test_is_milestone(self):
        self.assertTrue(is_milestone(0, 25))
        self.assertTrue(is_milestone(66, 100))
        self.assertTrue(is_milestone(33, 50))
        self.assertFalse(is_milestone(50, 50))
        self.assertFalse(is_milestone(75, 50))
        self.assertFalse(is_milestone(0, 33))


class PlanTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'owner@test.com', 'pass')
        self.other = User.objects.create_user('other', 'other@test.com', 'pass')

    def _plan(self, steps=4, **extra):
        data = {'title': 'Learn Spanish', 'steps': [{'title': f'Step {i}'} for i in range(steps)]}
        data.update(extra)
        return create_plan('owner@test.com', data)

    def test_create_plan_generates_step_ids(self):
        plan = self._plan(steps=3)

        ids = [step['id'] for step in plan['steps']]
        self.assertEqual(len(set(ids)), 3)
        self.assertTrue(all(ids))
        self.assertEqual(plan['progress'], 0)

    def test_create_plan_keeps_supplied_step_ids(self):
        plan = create_plan('owner@test.com', {
            'title': 'Guitar',
            'steps': [{'id': 'client-made', 'title': 'Chords'}, {'title': 'Strumming'}],
        })
        self.assertEqual(plan['steps'][0]['id'], 'client-made')
        self.assertTrue(plan['steps'][1]['id'])

    def test_create_plan_progress_from_supplied_steps(self):
        plan = create_plan('owner@test.com', {
            'title': 'Guitar',
            'steps': [{'title': 'A', 'completed': True}, {'title': 'B'},
                      {'title': 'C'}, {'title': 'D'}],
        })
        self.assertEqual(plan['progress'], 25)

    def test_empty_plan_progress_is_zero(self):
        self.assertEqual(self._plan(steps=0)['progress'], 0)

    def test_skill_and_skills_normalized(self):
        single = self._plan(skill='spanish')
        self.assertEqual(single['skills'], ['spanish'])
        self.assertEqual(single['skill'], 'spanish')

        many = self._plan(skills=['spanish', 'grammar', 'spanish'])
        self.assertEqual(many['skills'], ['spanish', 'grammar'])
        self.assertEqual(many['skill'], 'spanish')

        self.assertIsNone(self._plan()['skill'])

    def test_owner_enrichment(self):
        self.owner.profile.name = 'Olga'
        self.owner.profile.save()
        self.assertEqual(self._plan()['owner']['name'], 'Olga')

    def test_update_plan_without_steps_keeps_steps(self):
        plan = self._plan(steps=2)
        updated = update_plan('owner@test.com', plan['id'], {'title': 'Learn Catalan', 'steps': []})

        self.assertEqual(updated['title'], 'Learn Catalan')
        self.assertEqual(
            [step['id'] for step in updated['steps']],
            [step['id'] for step in plan['steps']],
        )

    def test_update_plan_with_steps_keeps_supplied_ids(self):
        plan = self._plan(steps=2)
        kept = plan['steps'][1]
        updated = update_plan('owner@test.com', plan['id'], {
            'title': 'Learn Spanish',
            'steps': [
                {'id': kept['id'], 'title': kept['title'], 'completed': True},
                {'title': 'Brand new'},
            ],
        })

        self.assertEqual(updated['steps'][0]['id'], kept['id'])
        self.assertTrue(updated['steps'][1]['id'])
        self.assertNotIn(updated['steps'][1]['id'], [s['id'] for s in plan['steps']])
        self.assertEqual(updated['progress'], 50)

    def test_update_plan_without_steps_preserves_override(self):
        plan = self._plan(steps=4)
        set_progress('owner@test.com', plan['id'], 60)

        updated = update_plan('owner@test.com', plan['id'], {'description': 'More detail'})
        self.assertEqual(updated['progress'], 60)

    def test_plan_mutations_require_owner(self):
        plan = self._plan()
        step_id = plan['steps'][0]['id']

        calls = [
            lambda: update_plan('other@test.com', plan['id'], {'title': 'Mine now'}),
            lambda: delete_plan('other@test.com', plan['id']),
            lambda: add_step('other@test.com', plan['id'], {'title': 'Sneaky'}),
            lambda: update_step('other@test.com', plan['id'], step_id, {'completed': True}),
            lambda: set_step_status('other@test.com', plan['id'], step_id, True),
            lambda: delete_step('other@test.com', plan['id'], step_id),
            lambda: reorder_step('other@test.com', plan['id'], step_id, 'down'),
            lambda: set_progress('other@test.com', plan['id'], 50),
        ]
        for call in calls:
            with self.assertRaises(AuthorizationError):
                call()

        self.assertEqual(get_plan(plan['id']), plan)

    def test_missing_plan(self):
        with self.assertRaises(NotFoundError):
            get_plan(999999)
        with self.assertRaises(NotFoundError):
            add_step('owner@test.com', 999999, {'title': 'x'})

    def test_delete_plan(self):
        plan = self._plan()
        delete_plan('owner@test.com', plan['id'])
        self.assertFalse(LearningPlan.objects.filter(pk=plan['id']).exists())

    def test_list_plans(self):
        first = self._plan()
        second = self._plan()

        self.assertEqual(
            [plan['id'] for plan in list_my_plans('owner@test.com')],
            [second['id'], first['id']],
        )
        self.assertEqual(len(list_plans_for_user(self.owner.id)), 2)
        self.assertEqual(list_plans_for_user(self.other.id), [])
        with self.assertRaises(NotFoundError):
            list_plans_for_user(999999)

    def test_duplicate_step_ids_rejected(self):
        duplicated = [{'id': 'same', 'title': 'A'}, {'id': 'same', 'title': 'B'}]

        with self.assertRaises(ValidationError):
            create_plan('owner@test.com', {'title': 'Twice', 'steps': duplicated})
        self.assertFalse(LearningPlan.objects.filter(title='Twice').exists())

        plan = self._plan(steps=2)
        with self.assertRaises(ValidationError):
            update_plan('owner@test.com', plan['id'], {'title': 'Twice', 'steps': duplicated})
        self.assertEqual(get_plan(plan['id']), plan)

    def test_update_plan_without_steps_leaves_progress_column(self):
        plan = self._plan(steps=4)
        load = learning._owned_plan

        def load_then_progress_moves(email, plan_id):
            owner, stale = load(email, plan_id)
            LearningPlan.objects.filter(pk=plan_id).update(progress=75)
            return owner, stale

        with mock.patch.object(learning, '_owned_plan', side_effect=load_then_progress_moves):
            updated = update_plan('owner@test.com', plan['id'], {'title': 'Renamed'})

        self.assertEqual(updated['title'], 'Renamed')
        self.assertEqual(updated['progress'], 75)


class StepTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'owner@test.com', 'pass')
        self.plan = create_plan('owner@test.com', {
            'title': 'Photography',
            'steps': [{'title': 'Exposure'}, {'title': 'Composition'},
                      {'title': 'Light'}, {'title': 'Editing'}],
        })
        self.step_ids = [step['id'] for step in self.plan['steps']]

    def test_progress_follows_completion(self):
        plan = set_step_status('owner@test.com', self.plan['id'], self.step_ids[0], True)
        self.assertEqual(plan['progress'], 25)

        for step_id in self.step_ids[1:]:
            plan = set_step_status('owner@test.com', self.plan['id'], step_id, True)
        self.assertEqual(plan['progress'], 100)

    def test_add_step_starts_incomplete(self):
        plan = add_step('owner@test.com', self.plan['id'], {'title': 'Print', 'completed': True})

        self.assertEqual(len(plan['steps']), 5)
        self.assertEqual(plan['steps'][-1]['title'], 'Print')
        self.assertFalse(plan['steps'][-1]['completed'])

    def test_add_step_recomputes_progress(self):
        for step_id in self.step_ids:
            set_step_status('owner@test.com', self.plan['id'], step_id, True)

        plan = add_step('owner@test.com', self.plan['id'], {'title': 'Print'})
        self.assertEqual(plan['progress'], 80)

    def test_update_step_partial(self):
        plan = update_step('owner@test.com', self.plan['id'], self.step_ids[1], {
            'title': None,
            'description': 'Rule of thirds',
            'completed': True,
        })
        step = plan['steps'][1]

        self.assertEqual(step['title'], 'Composition')
        self.assertEqual(step['description'], 'Rule of thirds')
        self.assertTrue(step['completed'])
        self.assertEqual(plan['progress'], 25)

    def test_update_step_completed_defaults_false(self):
        set_step_status('owner@test.com', self.plan['id'], self.step_ids[0], True)
        plan = update_step('owner@test.com', self.plan['id'], self.step_ids[0], {'title': 'F-stops'})

        self.assertFalse(plan['steps'][0]['completed'])
        self.assertEqual(plan['progress'], 0)

    def test_unknown_step(self):
        with self.assertRaises(NotFoundError):
            update_step('owner@test.com', self.plan['id'], 'nope', {'completed': True})
        with self.assertRaises(NotFoundError):
            delete_step('owner@test.com', self.plan['id'], 'nope')
        with self.assertRaises(NotFoundError):
            reorder_step('owner@test.com', self.plan['id'], 'nope', 'up')

    def test_delete_step_keeps_relative_order(self):
        plan = delete_step('owner@test.com', self.plan['id'], self.step_ids[1])
        self.assertEqual(
            [step['id'] for step in plan['steps']],
            [self.step_ids[0], self.step_ids[2], self.step_ids[3]],
        )

    def test_delete_step_recomputes_progress(self):
        set_step_status('owner@test.com', self.plan['id'], self.step_ids[0], True)
        plan = delete_step('owner@test.com', self.plan['id'], self.step_ids[3])
        self.assertEqual(plan['progress'], 33)

    def test_reorder_swaps_with_neighbour(self):
        plan = reorder_step('owner@test.com', self.plan['id'], self.step_ids[2], 'up')
        self.assertEqual(
            [step['id'] for step in plan['steps']],
            [self.step_ids[0], self.step_ids[2], self.step_ids[1], self.step_ids[3]],
        )

        plan = reorder_step('owner@test.com', self.plan['id'], self.step_ids[2], 'down')
        self.assertEqual([step['id'] for step in plan['steps']], self.step_ids)

    def test_reorder_first_up_is_noop(self):
        before = get_plan(self.plan['id'])
        plan = reorder_step('owner@test.com', self.plan['id'], self.step_ids[0], 'up')
        self.assertEqual(plan['steps'], before['steps'])

    def test_reorder_last_down_is_noop(self):
        plan = reorder_step('owner@test.com', self.plan['id'], self.step_ids[-1], 'down')
        self.assertEqual([step['id'] for step in plan['steps']], self.step_ids)

    def test_reorder_invalid_direction(self):
        with self.assertRaises(ValidationError):
            reorder_step('owner@test.com', self.plan['id'], self.step_ids[0], 'sideways')

    def test_reorder_checks_owner_before_direction(self):
        User.objects.create_user('stranger', 'stranger@test.com', 'pass')
        with self.assertRaises(AuthorizationError):
            reorder_step('stranger@test.com', self.plan['id'], self.step_ids[0], 'sideways')

    def test_set_progress_range(self):
        self.assertEqual(set_progress('owner@test.com', self.plan['id'], 0)['progress'], 0)
        self.assertEqual(set_progress('owner@test.com', self.plan['id'], 100)['progress'], 100)
        with self.assertRaises(ValidationError):
            set_progress('owner@test.com', self.plan['id'], 101)
        with self.assertRaises(ValidationError):
            set_progress('owner@test.com', self.plan['id'], -1)

    def test_step_mutation_overrides_manual_progress(self):
        set_progress('owner@test.com', self.plan['id'], 90)
        plan = set_step_status('owner@test.com', self.plan['id'], self.step_ids[0], True)
        self.assertEqual(plan['progress'], 25)


class MilestoneTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'owner@test.com', 'pass')
        self.owner.profile.name = 'Olga'
        self.owner.profile.save()
        self.fans = [
            User.objects.create_user('fan1', 'fan1@test.com', 'pass'),
            User.objects.create_user('fan2', 'fan2@test.com', 'pass'),
        ]
        for fan in self.fans:
            follow(fan.email, self.owner.id)
        # FOLLOW notifications went to the owner; start clean for fan-out counts
        Notification.objects.all().delete()

        self.plan = create_plan('owner@test.com', {
            'title': 'Watercolour',
            'steps': [{'title': f'Week {i}'} for i in range(1, 5)],
        })
        self.step_ids = [step['id'] for step in self.plan['steps']]

    def test_completing_four_steps_sends_eight_updates(self):
        """2 followers x milestones 25, 50, 75, 100."""
        for step_id in self.step_ids:
            set_step_status('owner@test.com', self.plan['id'], step_id, True)

        updates = Notification.objects.filter(notification_type=LEARNING_UPDATE)
        self.assertEqual(updates.count(), 8)
        for fan in self.fans:
            self.assertEqual(updates.filter(recipient=fan).count(), 4)
        self.assertTrue(all(n.sender_id == self.owner.id for n in updates))
        self.assertTrue(all(n.entity_id == str(self.plan['id']) for n in updates))

    def test_milestone_messages(self):
        for step_id in self.step_ids[:2]:
            set_step_status('owner@test.com', self.plan['id'], step_id, True)

        contents = set(
            Notification.objects.filter(recipient=self.fans[0]).values_list('content', flat=True)
        )
        self.assertEqual(contents, {
            'Olga reached 25% progress on learning plan: Watercolour',
            'Olga reached 50% progress on learning plan: Watercolour',
        })

        for step_id in self.step_ids[2:]:
            set_step_status('owner@test.com', self.plan['id'], step_id, True)
        latest = Notification.objects.filter(recipient=self.fans[0]).first()
        self.assertEqual(latest.content, 'Olga completed learning plan: Watercolour')

    def test_non_milestone_progress_is_silent(self):
        add_step('owner@test.com', self.plan['id'], {'title': 'Week 5'})
        add_step('owner@test.com', self.plan['id'], {'title': 'Week 6'})

        # 1/6 = 16, 2/6 = 33
        set_step_status('owner@test.com', self.plan['id'], self.step_ids[0], True)
        set_step_status('owner@test.com', self.plan['id'], self.step_ids[1], True)
        self.assertEqual(Notification.objects.count(), 0)

    def test_decreasing_progress_is_silent(self):
        set_step_status('owner@test.com', self.plan['id'], self.step_ids[0], True)
        set_step_status('owner@test.com', self.plan['id'], self.step_ids[1], True)
        Notification.objects.all().delete()

        set_step_status('owner@test.com', self.plan['id'], self.step_ids[1], False)
        self.assertEqual(Notification.objects.count(), 0)

    def test_manual_override_never_notifies(self):
        set_progress('owner@test.com', self.plan['id'], 100)
        self.assertEqual(Notification.objects.count(), 0)

    def test_reorder_never_notifies(self):
        reorder_step('owner@test.com', self.plan['id'], self.step_ids[1], 'up')
        self.assertEqual(Notification.objects.count(), 0)

    def test_update_plan_with_steps_applies_milestone(self):
        steps = [dict(step, completed=True) for step in self.plan['steps']]
        update_plan('owner@test.com', self.plan['id'], {'title': 'Watercolour', 'steps': steps})

        updates = Notification.objects.filter(notification_type=LEARNING_UPDATE)
        self.assertEqual(updates.count(), 2)


class ProgressJournalTestCase(TestCase):

    def setUp(self):
        self.owner = User.objects.create_user('owner', 'owner@test.com', 'pass')
        self.other = User.objects.create_user('other', 'other@test.com', 'pass')

    def test_create_and_list(self):
        entry = create_progress_entry('owner@test.com', {
            'title': 'Finished chapter 3',
            'skill': 'spanish',
            'completion_percentage': 40,
        })

        self.assertEqual(entry['skills'], ['spanish'])
        self.assertEqual(entry['skill'], 'spanish')
        self.assertEqual(entry['owner']['username'], 'owner')
        self.assertEqual([e['id'] for e in list_progress_entries(self.owner.id)], [entry['id']])

    def test_percentage_validated(self):
        with self.assertRaises(ValidationError):
            create_progress_entry('owner@test.com', {'title': 'x', 'completion_percentage': 120})

        entry = create_progress_entry('owner@test.com', {'title': 'x'})
        with self.assertRaises(ValidationError):
            update_progress_entry('owner@test.com', entry['id'], {'completion_percentage': -5})

    def test_update_and_delete_require_owner(self):
        entry = create_progress_entry('owner@test.com', {'title': 'Mine'})

        with self.assertRaises(AuthorizationError):
            update_progress_entry('other@test.com', entry['id'], {'title': 'Ours'})
        with self.assertRaises(AuthorizationError):
            delete_progress_entry('other@test.com', entry['id'])

        updated = update_progress_entry('owner@test.com', entry['id'], {'completion_percentage': 100})
        self.assertEqual(updated['completion_percentage'], 100)
        self.assertEqual(updated['title'], 'Mine')

        delete_progress_entry('owner@test.com', entry['id'])
        self.assertEqual(list_progress_entries(self.owner.id), [])

    def test_by_skill(self):
        create_progress_entry('owner@test.com', {'title': 'A', 'skills': ['python', 'sql']})
        create_progress_entry('other@test.com', {'title': 'B', 'skill': 'python'})
        create_progress_entry('other@test.com', {'title': 'C', 'skill': 'guitar'})

        titles = [entry['title'] for entry in list_progress_entries_by_skill('python')]
        self.assertEqual(titles, ['B', 'A'])
