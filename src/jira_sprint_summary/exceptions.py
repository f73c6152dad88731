"""Exception hierarchy for Jira Sprint Summary."""


class SprintSummaryError(Exception):
    """Base exception for sprint summary errors."""

    pass


class ConfigNotFoundError(SprintSummaryError):
    """Configuration file not found."""

    pass


class InvalidConfigError(SprintSummaryError):
    """Configuration is invalid."""

    pass


class CollaboratorError(SprintSummaryError):
    """Fetching boards, sprints or issues from JIRA failed."""

    pass


class JiraAuthError(CollaboratorError):
    """JIRA authentication failed."""

    pass


class JiraConnectionError(CollaboratorError):
    """Cannot connect to JIRA server."""

    pass


class JiraRateLimitError(CollaboratorError):
    """JIRA rate limit exceeded."""

    pass


class ResolutionError(SprintSummaryError):
    """No board or sprint could be found to report on."""

    def __init__(self, message: str, board_id: int | None = None) -> None:
        super().__init__(message)
        self.board_id = board_id


class DegenerateInputError(SprintSummaryError):
    """Sprint window has zero or negative length."""

    pass
