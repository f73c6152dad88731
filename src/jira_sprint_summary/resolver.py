"""Resolution of the sprint a report should describe."""

import logging
from datetime import datetime, timezone

from jira_sprint_summary.config import Config
from jira_sprint_summary.exceptions import ResolutionError
from jira_sprint_summary.models import Sprint

logger = logging.getLogger(__name__)


def parse_timestamp(value) -> datetime | None:
    """Parse a JIRA timestamp or date string to an aware datetime.

    Values without an offset are taken as UTC.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value))
    except (ValueError, TypeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def sprint_from_raw(raw: dict) -> Sprint:
    """Build a Sprint from a raw JIRA agile sprint dict."""
    return Sprint(
        id=int(raw["id"]),
        name=raw.get("name", ""),
        state=raw.get("state", ""),
        goal=raw.get("goal") or None,
        start_date=parse_timestamp(raw.get("startDate")),
        end_date=parse_timestamp(raw.get("endDate")),
    )


def most_recent_sprint(sprints: list[Sprint]) -> Sprint:
    """Pick the sprint with the latest start date.

    Undated sprints never outrank a dated one, and ties keep their
    original order.
    """
    dated = sorted(
        (s for s in sprints if s.start_date is not None),
        key=lambda s: s.start_date,
        reverse=True,
    )
    undated = [s for s in sprints if s.start_date is None]
    return (dated + undated)[0]


class SprintResolver:
    """Finds the current sprint of a board, falling back when none is active."""

    def __init__(self, client, config: Config) -> None:
        """Initialize with a board/sprint source and configuration.

        The client needs ``list_boards_for_project(project_key)`` and
        ``list_sprints(board_id, state=None)``, both returning raw dicts.
        """
        self.client = client
        self.config = config

    def resolve_active_sprint(self, board_id: int | None = None) -> Sprint:
        """Return the active sprint, or the most recently started one.

        Args:
            board_id: Board to look at. Defaults to the configured board,
                then to the first board of the configured project.

        Raises:
            ResolutionError: If no board or no sprint can be found, or if
                fetching from JIRA fails
        """
        target_board_id = board_id or self.config.board_id
        if not target_board_id:
            target_board_id = self._discover_board_id()

        logger.info("Looking up active sprint for board %s", target_board_id)
        active = self._list_sprints(target_board_id, state="active")
        if active:
            sprint = active[0]
            logger.info("Active sprint found: %s (ID: %s)", sprint.name, sprint.id)
            return sprint

        logger.info("No active sprint on board %s, using most recent sprint", target_board_id)
        sprints = self._list_sprints(target_board_id)
        if not sprints:
            raise ResolutionError(
                f"no sprints for board {target_board_id}", board_id=target_board_id
            )

        sprint = most_recent_sprint(sprints)
        logger.info("Most recent sprint: %s (ID: %s)", sprint.name, sprint.id)
        return sprint

    def _discover_board_id(self) -> int:
        """Return the first board of the configured project."""
        project_key = self.config.project_key
        logger.info("No board ID given, looking up boards of project %s", project_key)
        try:
            boards = self.client.list_boards_for_project(project_key)
            board_id = int(boards[0]["id"]) if boards else None
        except Exception as e:
            logger.error("Fetching boards of project %s failed: %s", project_key, e)
            raise ResolutionError(
                f"Could not list boards for project {project_key}: {e}"
            ) from e

        if board_id is None:
            raise ResolutionError(f"no board for project {project_key}")
        logger.info("Using board %s", board_id)
        return board_id

    def _list_sprints(self, board_id: int, state: str | None = None) -> list[Sprint]:
        try:
            raw_sprints = self.client.list_sprints(board_id, state=state)
            return [sprint_from_raw(raw) for raw in raw_sprints]
        except Exception as e:
            logger.error("Fetching sprints of board %s failed: %s", board_id, e)
            raise ResolutionError(
                f"Could not fetch sprints for board {board_id}: {e}", board_id=board_id
            ) from e
