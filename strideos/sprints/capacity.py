"""Sprint capacity arithmetic shared by the planning and board endpoints"""
import math

from strideos.core.models import Organization
from strideos.tasks.sizing import planned_hours

TARGET_THRESHOLD = 80


def calculate_capacity(department):
    """Hours a department can take on in one sprint"""
    return department.workstream_count * Organization.default_workstream_hours()


def capacity_status(committed_hours, capacity_hours):
    """
    Classify committed work against capacity

    over    committed is above 100% of capacity
    target  80% to 100%
    under   below 80%
    """
    committed = max(0, round(committed_hours or 0))
    capacity = max(0, round(capacity_hours or 0))
    percent = round(committed / capacity * 100) if capacity > 0 else 0
    if percent > 100:
        state = 'over'
    elif percent >= TARGET_THRESHOLD:
        state = 'target'
    else:
        state = 'under'
    return {
        'committed': committed,
        'capacity': capacity,
        'percent': percent,
        'status': state,
        'over_by': max(0, committed - capacity),
    }


def duration_in_weeks(start_date, end_date):
    days = (end_date - start_date).total_seconds() / 86400
    return max(1, math.ceil(days / 7))


def sprint_capacity_hours(sprint):
    return sprint.total_capacity or calculate_capacity(sprint.department)


def committed_hours(tasks):
    """Planned hours of the given tasks, ignoring archived ones"""
    return sum(planned_hours(task) for task in tasks if task.status != 'archived')


def sprint_capacity_status(sprint):
    return capacity_status(committed_hours(sprint.tasks.all()), sprint_capacity_hours(sprint))
