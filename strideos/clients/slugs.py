"""
Human-readable slugs for tasks, sprints and projects

Slugs are derived from the client's project key and a per-key counter:
    task     KEY-42
    sprint   KEY-S-3
    project  KEY-P-1
Counters live on ProjectKey rows and are incremented under a row lock.
"""
import logging
import re

from django.db import transaction

from strideos.core.exceptions import DomainError
from .models import ProjectKey

logger = logging.getLogger(__name__)

COUNTER_FIELDS = {
    'task': 'last_task_number',
    'sprint': 'last_sprint_number',
    'project': 'last_project_number',
}

TASK_SLUG_RE = re.compile(r'^[A-Z0-9]+-\d+$')


def format_slug(kind, key, number):
    if kind == 'sprint':
        return f"{key}-S-{number}"
    if kind == 'project':
        return f"{key}-P-{number}"
    return f"{key}-{number}"


def default_key_for_name(name):
    """First three letters of a name, uppercased, padded with X"""
    letters = re.sub(r'[^A-Za-z]', '', name or '').upper()
    return letters[:3].ljust(3, 'X')


def next_number(client, kind, user=None):
    """
    Atomically increment and return the next counter value for a client's project key

    Raises DomainError when the client has no project key or its key is inactive.
    """
    if kind not in COUNTER_FIELDS:
        raise ValueError(f"Unknown slug kind: {kind}")
    key = (client.project_key or '').strip().upper()
    if not key:
        raise DomainError('Client does not have a project key. Please update the client first.')

    field = COUNTER_FIELDS[kind]
    with transaction.atomic():
        project_key = ProjectKey.objects.select_for_update().filter(key=key, is_active=True).first()
        if project_key is None:
            if ProjectKey.objects.filter(key=key, is_active=False).exists():
                raise DomainError(f'Project key {key} is inactive')
            project_key = ProjectKey.objects.create(
                key=key,
                client=client,
                description=f"{client.name} project key",
                is_default=True,
                is_active=True,
                created_by=user,
            )
        number = getattr(project_key, field) + 1
        setattr(project_key, field, number)
        project_key.save(update_fields=[field, 'updated_at'])

    logger.debug(f"Allocated {kind} number {number} for key {key}")
    return key, number


def assign_slug(instance, kind, client, user=None):
    """
    Give a task, sprint or project its slug; existing slugs are never changed

    Returns the slug, or None when the client has no project key.
    """
    if instance.slug:
        return instance.slug
    if not (client.project_key or '').strip():
        logger.info(f"Skipping {kind} slug for {instance.pk}: client {client.pk} has no project key")
        return None

    key, number = next_number(client, kind, user=user)
    instance.slug = format_slug(kind, key, number)
    update_fields = ['slug']
    if kind == 'project':
        instance.project_key = key
        update_fields.append('project_key')
    else:
        instance.slug_key = key
        instance.slug_number = number
        update_fields.extend(['slug_key', 'slug_number'])
    instance.save(update_fields=update_fields)
    return instance.slug


def classify_slug(slug):
    """Guess which entity a slug refers to from its shape"""
    if '-S-' in slug:
        return 'sprint'
    if '-P-' in slug:
        return 'project'
    if TASK_SLUG_RE.match(slug):
        return 'task'
    return None


def resolve_slug(raw_slug):
    """
    Find the entity a slug points at

    Returns (kind, instance) or (None, None). When the shape-based guess misses,
    tasks, then projects, then sprints are tried in turn.
    """
    from strideos.projects.models import Project
    from strideos.sprints.models import Sprint
    from strideos.tasks.models import Task

    slug = (raw_slug or '').strip().upper()
    if not slug:
        return None, None

    lookups = [
        ('task', Task),
        ('project', Project),
        ('sprint', Sprint),
    ]
    guessed = classify_slug(slug)
    if guessed:
        lookups.sort(key=lambda pair: pair[0] != guessed)

    for kind, model in lookups:
        instance = model.objects.filter(slug=slug).first()
        if instance is not None:
            return kind, instance
    return None, None
