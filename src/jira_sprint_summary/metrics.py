"""Sprint progress and velocity calculations."""

import math
from collections.abc import Collection, Iterable
from datetime import datetime, timedelta, timezone

from jira_sprint_summary.config import DEFAULT_DONE_STATUSES
from jira_sprint_summary.exceptions import DegenerateInputError
from jira_sprint_summary.models import Issue, ProgressSnapshot, Sprint, VelocityProjection

DONE_STATUSES = frozenset(DEFAULT_DONE_STATUSES)

ONE_DAY = timedelta(days=1)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves going up (62.5 -> 63)."""
    return math.floor(value + 0.5)


def aggregate(
    issues: Iterable[Issue],
    done_statuses: Collection[str] = DONE_STATUSES,
) -> tuple[dict[str, int], dict[str, int], ProgressSnapshot]:
    """Count issues by status and type and sum their story points.

    Args:
        issues: Sprint issues
        done_statuses: Status names (exact match) whose points count as completed

    Returns:
        (status_counts, type_counts, progress)
    """
    status_counts: dict[str, int] = {}
    type_counts: dict[str, int] = {}
    completed_points = 0
    total_points = 0

    for issue in issues:
        status_counts[issue.status] = status_counts.get(issue.status, 0) + 1
        type_counts[issue.type] = type_counts.get(issue.type, 0) + 1

        points = issue.story_points or 0
        total_points += points
        if issue.status in done_statuses:
            completed_points += points

    if total_points > 0:
        percent_complete = round_half_up(100 * completed_points / total_points)
    else:
        percent_complete = 0

    progress = ProgressSnapshot(
        completed_points=completed_points,
        total_points=total_points,
        percent_complete=percent_complete,
    )
    return status_counts, type_counts, progress


def _percent_time_elapsed(days_elapsed: int, days_total: int) -> int:
    if days_total <= 0:
        raise DegenerateInputError(f"Sprint window is {days_total} days long")
    return round_half_up(100 * days_elapsed / days_total)


def project(sprint: Sprint, progress: ProgressSnapshot, now: datetime) -> VelocityProjection:
    """Project sprint completion from the points finished so far.

    Velocity is completed points per elapsed day, with at least one day
    elapsed. A sprint whose end is not after its start counts as fully
    elapsed.

    Raises:
        ValueError: If the sprint has no start or end date
    """
    if sprint.start_date is None or sprint.end_date is None:
        raise ValueError(f"Sprint {sprint.id} has no start or end date")

    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    days_total = (sprint.end_date - sprint.start_date) // ONE_DAY
    days_left = max(0, (sprint.end_date - now) // ONE_DAY)
    days_elapsed = days_total - days_left

    try:
        percent_time_elapsed = _percent_time_elapsed(days_elapsed, days_total)
    except DegenerateInputError:
        percent_time_elapsed = 100

    points_per_day = progress.completed_points / max(1, days_elapsed)
    projected_completion = round_half_up(points_per_day * days_total)

    return VelocityProjection(
        days_elapsed=days_elapsed,
        days_total=days_total,
        days_left=days_left,
        percent_time_elapsed=percent_time_elapsed,
        points_per_day=points_per_day,
        projected_completion=projected_completion,
        burndown_delta=progress.percent_complete - percent_time_elapsed,
    )
