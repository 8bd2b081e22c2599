"""
Learning Plan Engine
====================

A plan is an ordered list of steps plus a derived `progress` percentage.

PROGRESS:
---------
    progress = floor(100 * completed / total)      (0 when total == 0)

Recomputed after every step mutation: add, update, status change, delete,
and plan update with a new step list. Reordering does not change it.

The explicit override (set_progress) writes `progress` directly and holds
until the next step mutation recomputes it.

MILESTONES:
-----------
After a STEP-DRIVEN recomputation, if

    new > old  and  (new == 100 or new % 25 == 0)

every follower of the owner gets one LEARNING_UPDATE notification. The
override path never fires this, even when it crosses a milestone.

CONCURRENCY:
------------
Step mutations run in transaction.atomic() with select_for_update() on the
plan row, so two concurrent step edits recompute progress from a consistent
step list. Fan-out happens after the transaction commits.
"""
import logging
from typing import Iterable, List, Optional

from django.contrib.auth.models import User
from django.db import transaction
from django.utils import timezone

from .accounts import get_user, resolve_user
from .exceptions import AuthorizationError, NotFoundError, ValidationError
from .models import (
    MILESTONE_INTERVAL,
    PROGRESS_COMPLETE,
    LearningPlan,
    LearningProgress,
    LearningStep,
    Notification,
    generate_step_id,
    normalize_tags,
)
from .notifications import fan_out_to_followers
from .queries import (
    PlanView,
    ProgressEntryView,
    plan_view,
    plans_for_owner,
    progress_entries_for_owner,
    progress_entries_for_skill,
    progress_entry_view,
)

logger = logging.getLogger(__name__)

DIRECTIONS = ('up', 'down')


def calculate_progress(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    return (100 * completed) // total


def is_milestone(previous: int, current: int) -> bool:
    return current > previous and (
        current == PROGRESS_COMPLETE or current % MILESTONE_INTERVAL == 0
    )


def milestone_message(name: str, plan: LearningPlan) -> str:
    if plan.progress == PROGRESS_COMPLETE:
        return f"{name} completed learning plan: {plan.title}"
    return f"{name} reached {plan.progress}% progress on learning plan: {plan.title}"


def normalize_skills(skill: Optional[str] = None, skills: Optional[Iterable[str]] = None) -> Optional[list]:
    """
    Accept either the skill set or the legacy single skill.

    Returns None when neither was supplied, so callers can tell
    "not provided" from "cleared".
    """
    if skills:
        normalized = normalize_tags(skills)
        if normalized:
            return normalized
    if skill and str(skill).strip():
        return [str(skill).strip()]
    return None


# ============================================================================
# LOADING / OWNERSHIP
# ============================================================================

def _get_plan(plan_id: int) -> LearningPlan:
    plan = LearningPlan.objects.select_related('owner__profile').filter(pk=plan_id).first()
    if plan is None:
        raise NotFoundError("Learning plan not found")
    return plan


def _owned_plan(email: str, plan_id: int):
    user = resolve_user(email)
    plan = _get_plan(plan_id)
    if plan.owner_id != user.id:
        raise AuthorizationError("You are not authorized to update this learning plan")
    return user, plan


def _find_step(plan: LearningPlan, step_id: str) -> LearningStep:
    step = plan.steps.filter(step_id=step_id).first()
    if step is None:
        raise NotFoundError("Learning step not found")
    return step


def _renumber(plan: LearningPlan) -> None:
    for position, step in enumerate(plan.steps.order_by('position', 'id')):
        if step.position != position:
            step.position = position
            step.save(update_fields=['position'])


def _replace_steps(plan: LearningPlan, steps: List[dict]) -> None:
    """
    Replace the whole step list.

    Steps carrying an id keep it (identity preserved across edits); steps
    without one get a fresh id. Supplied ids must be unique within the list.
    """
    supplied = [step.get('id') for step in steps if step.get('id')]
    if len(supplied) != len(set(supplied)):
        raise ValidationError("Step ids must be unique within a plan")

    plan.steps.all().delete()
    LearningStep.objects.bulk_create([
        LearningStep(
            plan=plan,
            step_id=step.get('id') or generate_step_id(),
            position=position,
            title=step.get('title') or '',
            description=step.get('description') or '',
            completed=bool(step.get('completed', False)),
            deadline=step.get('deadline'),
        )
        for position, step in enumerate(steps)
    ])


def _recompute(plan: LearningPlan) -> int:
    total = plan.steps.count()
    completed = plan.steps.filter(completed=True).count()
    plan.progress = calculate_progress(completed, total)
    plan.updated_at = timezone.now()
    plan.save(update_fields=['progress', 'updated_at'])
    return plan.progress


def _step_mutation(email: str, plan_id: int, mutate) -> PlanView:
    """
    Shared shape of every step-driven change.

    1. Ownership check
    2. Lock plan row, apply `mutate(plan)`, recompute progress
    3. After commit: milestone fan-out if progress rose onto a milestone
    """
    user, plan = _owned_plan(email, plan_id)

    with transaction.atomic():
        plan = LearningPlan.objects.select_for_update().get(pk=plan.pk)
        previous = plan.progress
        mutate(plan)
        current = _recompute(plan)

    _announce_milestone(user, plan, previous, current)
    return get_plan(plan.pk)


def _announce_milestone(owner: User, plan: LearningPlan, previous: int, current: int) -> None:
    if not is_milestone(previous, current):
        return
    logger.info(f"Plan {plan.id} reached {current}% (was {previous}%)")
    fan_out_to_followers(
        owner,
        Notification.NotificationType.LEARNING_UPDATE,
        milestone_message(owner.profile.display_name, plan),
        plan.id,
    )


# ============================================================================
# PLANS
# ============================================================================

def get_plan(plan_id: int) -> PlanView:
    plan = (
        LearningPlan.objects
        .select_related('owner__profile')
        .prefetch_related('steps')
        .filter(pk=plan_id)
        .first()
    )
    if plan is None:
        raise NotFoundError("Learning plan not found")
    return plan_view(plan)


def list_plans_for_user(user_id: int) -> List[PlanView]:
    get_user(user_id)
    return plans_for_owner(user_id)


def list_my_plans(email: str) -> List[PlanView]:
    return plans_for_owner(resolve_user(email).id)


def create_plan(email: str, data: dict) -> PlanView:
    """
    New plan. Supplied steps keep their id when they carry one, otherwise
    they get a fresh server id.

    Progress starts from the supplied steps (a plan created with 1 of 4
    steps done starts at 25). Creation never notifies.
    """
    user = resolve_user(email)

    with transaction.atomic():
        plan = LearningPlan.objects.create(
            owner=user,
            title=data['title'],
            description=data.get('description') or '',
            skills=normalize_skills(data.get('skill'), data.get('skills')) or [],
            deadline=data.get('deadline'),
        )
        _replace_steps(plan, data.get('steps') or [])
        _recompute(plan)

    logger.info(f"Learning plan {plan.id} created by {user.id}")
    return get_plan(plan.pk)


PLAN_FIELDS = ['title', 'description', 'deadline', 'skills', 'updated_at']


def update_plan(email: str, plan_id: int, data: dict) -> PlanView:
    """
    Replace title/description/deadline; skills when supplied.

    Steps are only touched when a NON-EMPTY list is supplied: an absent or
    empty list means "keep the existing steps". There is no way to clear all
    steps through this path.

    Without steps the stored progress is left alone (an override survives).
    """
    steps = data.get('steps')
    if not steps:
        _, plan = _owned_plan(email, plan_id)
        _apply_plan_fields(plan, data)
        plan.save(update_fields=PLAN_FIELDS)
        return get_plan(plan.pk)

    def mutate(plan):
        _apply_plan_fields(plan, data)
        plan.save(update_fields=PLAN_FIELDS)
        _replace_steps(plan, steps)

    return _step_mutation(email, plan_id, mutate)


def _apply_plan_fields(plan: LearningPlan, data: dict) -> None:
    if 'title' in data and data['title'] is not None:
        plan.title = data['title']
    if 'description' in data:
        plan.description = data['description'] or ''
    if 'deadline' in data:
        plan.deadline = data['deadline']
    skills = normalize_skills(data.get('skill'), data.get('skills'))
    if skills is not None:
        plan.skills = skills


def delete_plan(email: str, plan_id: int) -> None:
    user, plan = _owned_plan(email, plan_id)
    plan.delete()
    logger.info(f"Learning plan {plan_id} deleted by {user.id}")


def set_progress(email: str, plan_id: int, progress: int) -> PlanView:
    """
    Manual override of the derived value.

    Does NOT fire milestone notifications.
    """
    user, plan = _owned_plan(email, plan_id)
    if progress is None or not 0 <= int(progress) <= 100:
        raise ValidationError("Progress must be between 0 and 100")

    plan.progress = int(progress)
    plan.save(update_fields=['progress', 'updated_at'])
    return get_plan(plan.pk)


# ============================================================================
# STEPS
# ============================================================================

def add_step(email: str, plan_id: int, step: dict) -> PlanView:
    """Append a step. New steps always start incomplete."""
    def mutate(plan):
        LearningStep.objects.create(
            plan=plan,
            step_id=generate_step_id(),
            position=plan.steps.count(),
            title=step.get('title') or '',
            description=step.get('description') or '',
            completed=False,
            deadline=step.get('deadline'),
        )

    return _step_mutation(email, plan_id, mutate)


def update_step(email: str, plan_id: int, step_id: str, patch: dict) -> PlanView:
    """
    Partial update: a None/missing title, description or deadline means
    "leave unchanged". `completed` is always applied (missing -> False).
    """
    def mutate(plan):
        target = _find_step(plan, step_id)
        for field in ('title', 'description', 'deadline'):
            if patch.get(field) is not None:
                setattr(target, field, patch[field])
        target.completed = bool(patch.get('completed', False))
        target.save()

    return _step_mutation(email, plan_id, mutate)


def set_step_status(email: str, plan_id: int, step_id: str, completed: bool) -> PlanView:
    def mutate(plan):
        target = _find_step(plan, step_id)
        target.completed = bool(completed)
        target.save(update_fields=['completed'])

    return _step_mutation(email, plan_id, mutate)


def delete_step(email: str, plan_id: int, step_id: str) -> PlanView:
    def mutate(plan):
        _find_step(plan, step_id).delete()
        _renumber(plan)

    return _step_mutation(email, plan_id, mutate)


def reorder_step(email: str, plan_id: int, step_id: str, direction: str) -> PlanView:
    """
    Swap a step with its neighbour.

    First step "up" / last step "down" is a silent no-op: the plan comes
    back unchanged. Progress is not affected by order.
    """
    _, plan = _owned_plan(email, plan_id)

    direction = (direction or '').lower()
    if direction not in DIRECTIONS:
        raise ValidationError("Direction must be 'up' or 'down'")

    with transaction.atomic():
        plan = LearningPlan.objects.select_for_update().get(pk=plan.pk)
        _find_step(plan, step_id)
        steps = list(plan.steps.order_by('position', 'id'))
        index = next(i for i, step in enumerate(steps) if step.step_id == step_id)
        neighbour = index - 1 if direction == 'up' else index + 1

        if 0 <= neighbour < len(steps):
            steps[index], steps[neighbour] = steps[neighbour], steps[index]
            for position, step in enumerate(steps):
                if step.position != position:
                    step.position = position
                    step.save(update_fields=['position'])
            plan.save(update_fields=['updated_at'])

    return get_plan(plan.pk)


# ============================================================================
# LEARNING PROGRESS JOURNAL
# ============================================================================

PROGRESS_ENTRY_FIELDS = (
    'title', 'description', 'progress_type', 'resource_url',
    'start_date', 'completion_date',
)


def _validate_percentage(value) -> int:
    if value is None:
        return 0
    if not 0 <= int(value) <= 100:
        raise ValidationError("Completion percentage must be between 0 and 100")
    return int(value)


def _get_progress_entry(entry_id: int) -> LearningProgress:
    entry = LearningProgress.objects.select_related('owner__profile').filter(pk=entry_id).first()
    if entry is None:
        raise NotFoundError("Learning progress not found")
    return entry


def _owned_progress_entry(email: str, entry_id: int, action: str) -> LearningProgress:
    user = resolve_user(email)
    entry = _get_progress_entry(entry_id)
    if entry.owner_id != user.id:
        raise AuthorizationError(f"You are not authorized to {action} this learning progress")
    return entry


def create_progress_entry(email: str, data: dict) -> ProgressEntryView:
    user = resolve_user(email)
    entry = LearningProgress(
        owner=user,
        skills=normalize_skills(data.get('skill'), data.get('skills')) or [],
        completion_percentage=_validate_percentage(data.get('completion_percentage')),
    )
    for field in PROGRESS_ENTRY_FIELDS:
        if data.get(field) is not None:
            setattr(entry, field, data[field])
    entry.save()
    return progress_entry_view(_get_progress_entry(entry.pk))


def update_progress_entry(email: str, entry_id: int, data: dict) -> ProgressEntryView:
    entry = _owned_progress_entry(email, entry_id, 'update')
    for field in PROGRESS_ENTRY_FIELDS:
        if field in data and data[field] is not None:
            setattr(entry, field, data[field])
    if 'completion_percentage' in data:
        entry.completion_percentage = _validate_percentage(data['completion_percentage'])
    skills = normalize_skills(data.get('skill'), data.get('skills'))
    if skills is not None:
        entry.skills = skills
    entry.save()
    return progress_entry_view(entry)


def delete_progress_entry(email: str, entry_id: int) -> None:
    _owned_progress_entry(email, entry_id, 'delete').delete()


def get_progress_entry(entry_id: int) -> ProgressEntryView:
    return progress_entry_view(_get_progress_entry(entry_id))


def list_progress_entries(user_id: int) -> List[ProgressEntryView]:
    get_user(user_id)
    return progress_entries_for_owner(user_id)


def list_my_progress_entries(email: str) -> List[ProgressEntryView]:
    return progress_entries_for_owner(resolve_user(email).id)


def list_progress_entries_by_skill(skill: str) -> List[ProgressEntryView]:
    return progress_entries_for_skill(skill)
