"""T-shirt sizes and free-form size strings to hours"""
import re

SIZE_TO_HOURS = {
    'XS': 4,
    'S': 16,
    'M': 32,
    'L': 48,
    'XL': 64,
}

UNIT_HOURS = {
    'h': 1,
    'd': 8,
    'w': 40,
}

FREE_FORM_RE = re.compile(r'^(\d+)([dwh])$')


def parse_size_hours(size):
    """
    Hours for a size: a T-shirt size (XS..XL) or a free-form value like '3d', '2w', '6h'

    Returns None for unknown sizes.
    """
    if size is None:
        return None
    value = str(size).strip()
    if value.upper() in SIZE_TO_HOURS:
        return SIZE_TO_HOURS[value.upper()]
    match = FREE_FORM_RE.match(value.lower())
    if match:
        return int(match.group(1)) * UNIT_HOURS[match.group(2)]
    return None


def task_hours(task):
    """Best available hour figure: actual, then estimated, then size"""
    if task.actual_hours:
        return task.actual_hours
    if task.estimated_hours:
        return task.estimated_hours
    if task.size_hours:
        return task.size_hours
    return parse_size_hours(task.size) or 0


def planned_hours(task):
    """Hours committed when a task is planned into a sprint"""
    if task.estimated_hours:
        return task.estimated_hours
    if task.size_hours:
        return task.size_hours
    return parse_size_hours(task.size) or 0
