"""Department validation and capacity helpers"""
import re

from django.utils import timezone

from strideos.core.exceptions import DomainError

TIME_RE = re.compile(r'^([01]?[0-9]|2[0-3]):[0-5][0-9]$')

VELOCITY_HISTORY_LIMIT = 10


def is_weekday(day):
    return isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6


def validate_department_settings(workstream_count=None, workstream_capacity=None, sprint_duration=None,
                                 workstream_labels=None, working_hours_start=None, working_hours_end=None,
                                 working_days=None):
    """Raise DomainError for the first invalid capacity or working-hours setting"""
    if workstream_count is not None and workstream_count <= 0:
        raise DomainError('Workstream count must be greater than 0')
    if workstream_capacity is not None and workstream_capacity <= 0:
        raise DomainError('Workstream capacity must be greater than 0')
    if sprint_duration is not None and (sprint_duration < 1 or sprint_duration > 4):
        raise DomainError('Sprint duration must be between 1 and 4 weeks')
    if workstream_labels and workstream_count is not None and len(workstream_labels) != workstream_count:
        raise DomainError('Number of workstream labels must match workstream count')
    for value in (working_hours_start, working_hours_end):
        if value and not TIME_RE.match(value):
            raise DomainError('Invalid time format. Use HH:MM format (e.g., "09:00")')
    if working_days and (not isinstance(working_days, list) or not all(is_weekday(day) for day in working_days)):
        raise DomainError('Days of week must be between 0 (Sunday) and 6 (Saturday)')


def department_capacity(department):
    """Capacity and velocity figures for a department"""
    total_capacity = department.workstream_count * department.workstream_capacity
    history = department.velocity_history or []
    if history:
        average_velocity = round(sum(entry.get('completed_points', 0) for entry in history) / len(history))
    else:
        average_velocity = 0
    utilization = round(average_velocity / total_capacity * 100) if total_capacity > 0 else 0
    return {
        'department_id': department.id,
        'total_capacity': total_capacity,
        'workstream_count': department.workstream_count,
        'capacity_per_workstream': department.workstream_capacity,
        'sprint_duration': department.sprint_duration,
        'average_velocity': average_velocity,
        'utilization': utilization,
        'velocity_history': history,
    }


def add_velocity_entry(department, completed_points, sprint_id=None):
    """Append a velocity data point, keeping only the most recent entries"""
    history = list(department.velocity_history or [])
    history.append({
        'sprint_id': sprint_id,
        'completed_points': completed_points,
        'date': timezone.now().isoformat(),
    })
    department.velocity_history = history[-VELOCITY_HISTORY_LIMIT:]
    department.save(update_fields=['velocity_history', 'updated_at'])
    return department.velocity_history
