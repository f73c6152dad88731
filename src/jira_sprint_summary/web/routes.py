"""HTTP route handlers for Jira Sprint Summary."""

from flask import Blueprint, current_app, jsonify, request

from jira_sprint_summary.config import config_exists, parse_board_id
from jira_sprint_summary.exceptions import (
    CollaboratorError,
    ConfigNotFoundError,
    InvalidConfigError,
    JiraAuthError,
    JiraConnectionError,
    JiraRateLimitError,
    ResolutionError,
    SprintSummaryError,
)
from jira_sprint_summary.jira_client import AuthenticationError, RateLimitError
from jira_sprint_summary.jira_client import ConnectionError as JiraClientConnectionError
from jira_sprint_summary.report import (
    fetch_sprint_report,
    fetch_user_tasks,
    progress_to_dict,
    sprint_report_to_dict,
    sprint_to_dict,
    user_tasks_to_dict,
    velocity_to_dict,
)

bp = Blueprint("main", __name__)


def _resolution_status(e: ResolutionError) -> int:
    """Status for a failed sprint lookup, taken from the JIRA failure behind it."""
    cause = e.__cause__
    if isinstance(cause, (AuthenticationError, JiraAuthError)):
        return 401
    if isinstance(cause, (RateLimitError, JiraRateLimitError)):
        return 429
    if isinstance(cause, (JiraClientConnectionError, JiraConnectionError)):
        return 503
    return 404


def _error_response(e: SprintSummaryError):
    """Map a sprint summary error to a JSON error response."""
    if isinstance(e, ResolutionError):
        board = e.board_id if e.board_id is not None else "(none)"
        return jsonify({
            "error": f"No active sprint found for board {board}: {e}",
            "board_id": e.board_id,
        }), _resolution_status(e)
    if isinstance(e, (ConfigNotFoundError, InvalidConfigError)):
        status = 503
    elif isinstance(e, JiraAuthError):
        status = 401
    elif isinstance(e, JiraRateLimitError):
        status = 429
    elif isinstance(e, JiraConnectionError):
        status = 503
    elif isinstance(e, CollaboratorError):
        status = 502
    else:
        status = 500
    return jsonify({"error": str(e)}), status


def _board_id_arg():
    """Read the optional board_id query argument. Raises ValueError if invalid."""
    return parse_board_id(request.args.get("board_id", "").strip())


@bp.route("/health")
def health():
    """Health check endpoint."""
    if config_exists():
        return jsonify({"status": "ok", "config_loaded": True})
    return jsonify({
        "status": "error",
        "config_loaded": False,
        "message": "Configuration not found",
    }), 503


@bp.route("/api/sprint/summary")
def sprint_summary():
    """Return status, type and points breakdown of the current sprint."""
    try:
        board_id = _board_id_arg()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        report = fetch_sprint_report(board_id)
    except SprintSummaryError as e:
        current_app.logger.warning("Sprint summary failed: %s", e)
        return _error_response(e)

    return jsonify(sprint_report_to_dict(report))


@bp.route("/api/sprint/progress")
def sprint_progress():
    """Return progress and velocity projection of the current sprint."""
    try:
        board_id = _board_id_arg()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        report = fetch_sprint_report(board_id)
    except SprintSummaryError as e:
        current_app.logger.warning("Sprint progress failed: %s", e)
        return _error_response(e)

    return jsonify({
        "sprint": sprint_to_dict(report.sprint),
        "by_status": dict(report.status_counts),
        "progress": progress_to_dict(report.progress),
        "velocity": velocity_to_dict(report.velocity),
    })


@bp.route("/api/sprint/tasks")
def user_tasks():
    """Return the issues assigned to a user in the current sprint."""
    user_name = request.args.get("user", "").strip()
    if not user_name:
        return jsonify({"error": "User name is required."}), 400

    try:
        board_id = _board_id_arg()
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    try:
        tasks = fetch_user_tasks(user_name, board_id)
    except SprintSummaryError as e:
        current_app.logger.warning("User task lookup failed: %s", e)
        return _error_response(e)

    return jsonify(user_tasks_to_dict(tasks))
