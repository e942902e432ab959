"""Notification creation and comment mention parsing"""
import logging
import random
import re
import string
import time

from .models import Notification

logger = logging.getLogger(__name__)

MENTION_RE = re.compile(r'@\[[^\]]+\]\(user:([^\)]+)\)')

PREVIEW_LENGTH = 120


def notify(user, type, title, message, priority='medium', task=None, project=None, sprint=None,
           comment=None, entity_type=None, entity_id=None, action_url='', action_text=''):
    """Create a notification for one recipient; returns None when there is no recipient"""
    if user is None:
        return None
    notification = Notification.objects.create(
        user=user,
        type=type,
        title=title,
        message=message,
        priority=priority,
        related_task=task,
        related_project=project,
        related_sprint=sprint,
        related_comment=comment,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        action_url=action_url,
        action_text=action_text,
    )
    logger.debug(f"Notification {type} created for user {user.pk}")
    return notification


def parse_mentions(content):
    """
    Find @[Name](user:<id>) mentions in comment content

    Returns a list of {user_id, position, length} dicts in order of appearance.
    """
    mentions = []
    for match in MENTION_RE.finditer(content or ''):
        mentions.append({
            'user_id': match.group(1),
            'position': match.start(),
            'length': match.end() - match.start(),
        })
    return mentions


def preview(content, limit=PREVIEW_LENGTH):
    content = content or ''
    if len(content) > limit:
        return content[:limit] + '...'
    return content


def generate_thread_id():
    """Public thread id: epoch milliseconds plus a short random suffix"""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=6))
    return f"{int(time.time() * 1000)}-{suffix}"
