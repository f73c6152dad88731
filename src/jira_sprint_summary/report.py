"""Sprint report fetching and serialization."""

import logging
from datetime import datetime, timezone

from jira import JIRAError

from jira_sprint_summary.config import Config, config_exists, load_config
from jira_sprint_summary.exceptions import (
    CollaboratorError,
    ConfigNotFoundError,
    InvalidConfigError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
)
from jira_sprint_summary.jira_client import (
    AuthenticationError,
    JiraClient,
    RateLimitError,
)
from jira_sprint_summary.jira_client import (
    ConnectionError as JiraClientConnectionError,
)
from jira_sprint_summary.metrics import aggregate, project
from jira_sprint_summary.models import (
    Issue,
    ProgressSnapshot,
    Sprint,
    SprintReport,
    UserTasks,
    VelocityProjection,
)
from jira_sprint_summary.resolver import SprintResolver

logger = logging.getLogger(__name__)


def _story_points(value) -> float:
    """Read a story points field value, treating anything non-numeric as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def issue_from_raw(raw: dict, story_points_field: str) -> Issue:
    """Build an Issue from a raw JIRA issue dict."""
    fields = raw.get("fields", {})
    assignee = fields.get("assignee") or {}
    return Issue(
        key=raw["key"],
        status=(fields.get("status") or {}).get("name", ""),
        type=(fields.get("issuetype") or {}).get("name", ""),
        story_points=_story_points(fields.get(story_points_field)),
        summary=fields.get("summary") or "",
        description=fields.get("description"),
        assignee=assignee.get("displayName"),
    )


def _load_config() -> Config:
    if not config_exists():
        raise ConfigNotFoundError(
            "Configuration not found. Create ~/.jira-sprint-summary/config.toml "
            "or set the JIRA_* environment variables."
        )
    try:
        return load_config()
    except ValueError as e:
        raise InvalidConfigError(str(e)) from e


def _fetch_issues(fetch, *args) -> list[dict]:
    """Call a JiraClient search and map its errors onto CollaboratorError."""
    try:
        return fetch(*args)
    except AuthenticationError as e:
        raise JiraAuthError(
            "JIRA authentication failed. Check your credentials in "
            "~/.jira-sprint-summary/config.toml."
        ) from e
    except RateLimitError as e:
        raise JiraRateLimitError(
            "JIRA rate limit exceeded. Please wait a moment and try again."
        ) from e
    except JiraClientConnectionError as e:
        raise JiraConnectionError(str(e)) from e
    except (JIRAError, ValueError) as e:
        raise CollaboratorError(f"Fetching sprint issues failed: {e}") from e


def fetch_sprint_report(
    board_id: int | None = None,
    now: datetime | None = None,
    config: Config | None = None,
) -> SprintReport:
    """Fetch the current sprint of a board and compute its metrics.

    Args:
        board_id: Optional board ID, overriding the configured one
        now: Reference time for the velocity projection (defaults to now, UTC)
        config: Configuration to use instead of loading it

    Raises:
        ConfigNotFoundError: If config file not found
        InvalidConfigError: If config is invalid
        ResolutionError: If no board or sprint can be found
        JiraAuthError: If JIRA authentication fails
        JiraRateLimitError: If rate limited
        JiraConnectionError: If cannot connect
        CollaboratorError: If fetching issues fails otherwise
    """
    if config is None:
        config = _load_config()
    if now is None:
        now = datetime.now(timezone.utc)

    client = JiraClient(config)
    sprint = SprintResolver(client, config).resolve_active_sprint(board_id)

    raw_issues = _fetch_issues(client.search_issues_by_sprint, sprint.id)
    issues = [issue_from_raw(raw, config.story_points_field) for raw in raw_issues]
    logger.info("Sprint %s has %d issues", sprint.id, len(issues))

    status_counts, type_counts, progress = aggregate(issues, config.done_statuses)

    velocity = None
    if sprint.start_date and sprint.end_date:
        velocity = project(sprint, progress, now)
    else:
        logger.info("Sprint %s has no start or end date, skipping velocity", sprint.id)

    return SprintReport(
        sprint=sprint,
        status_counts=status_counts,
        type_counts=type_counts,
        progress=progress,
        velocity=velocity,
        issues=issues,
    )


def fetch_user_tasks(
    user_name: str,
    board_id: int | None = None,
    config: Config | None = None,
) -> UserTasks:
    """Fetch the issues assigned to a user in the current sprint.

    Raises:
        Same as fetch_sprint_report.
    """
    if config is None:
        config = _load_config()

    client = JiraClient(config)
    sprint = SprintResolver(client, config).resolve_active_sprint(board_id)

    raw_issues = _fetch_issues(client.search_user_issues, sprint.id, user_name)
    issues = [issue_from_raw(raw, config.story_points_field) for raw in raw_issues]
    logger.info("Found %d issues for %s in sprint %s", len(issues), user_name, sprint.id)

    return UserTasks(sprint=sprint, user_name=user_name, issues=issues)


def _datetime_str(d: datetime | None) -> str | None:
    return d.isoformat() if d else None


def sprint_to_dict(sprint: Sprint) -> dict:
    return {
        "id": sprint.id,
        "name": sprint.name,
        "goal": sprint.goal,
        "state": sprint.state,
        "start_date": _datetime_str(sprint.start_date),
        "end_date": _datetime_str(sprint.end_date),
    }


def issue_to_dict(issue: Issue) -> dict:
    return {
        "key": issue.key,
        "summary": issue.summary,
        "status": issue.status,
        "type": issue.type,
        "story_points": issue.story_points,
        "assignee": issue.assignee,
        "description": issue.description,
    }


def progress_to_dict(progress: ProgressSnapshot) -> dict:
    return {
        "completed_points": progress.completed_points,
        "total_points": progress.total_points,
        "percent_complete": progress.percent_complete,
    }


def velocity_to_dict(velocity: VelocityProjection | None) -> dict | None:
    if velocity is None:
        return None
    return {
        "days_elapsed": velocity.days_elapsed,
        "days_total": velocity.days_total,
        "days_left": velocity.days_left,
        "percent_time_elapsed": velocity.percent_time_elapsed,
        "points_per_day": round(velocity.points_per_day, 1),
        "projected_completion": velocity.projected_completion,
        "burndown_delta": velocity.burndown_delta,
    }


def sprint_report_to_dict(report: SprintReport, include_issues: bool = True) -> dict:
    """Convert SprintReport to a JSON-serializable dict."""
    result = {
        "sprint": sprint_to_dict(report.sprint),
        "issues": {
            "total": report.issue_count,
            "by_status": dict(report.status_counts),
            "by_type": dict(report.type_counts),
        },
        "progress": progress_to_dict(report.progress),
        "velocity": velocity_to_dict(report.velocity),
    }
    if include_issues:
        result["all_issues"] = [issue_to_dict(i) for i in report.issues]
    return result


def user_tasks_to_dict(tasks: UserTasks) -> dict:
    """Convert UserTasks to a JSON-serializable dict."""
    return {
        "sprint": sprint_to_dict(tasks.sprint),
        "user_name": tasks.user_name,
        "total": len(tasks.issues),
        "tasks": [issue_to_dict(i) for i in tasks.issues],
    }
