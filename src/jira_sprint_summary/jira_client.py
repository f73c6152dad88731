"""JIRA API client with retry logic."""

import logging

from jira import JIRA, JIRAError
from requests.exceptions import RequestException
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from jira_sprint_summary.config import Config

logger = logging.getLogger(__name__)

ISSUE_FIELDS = ["summary", "description", "issuetype", "status", "assignee", "created"]


class RateLimitError(Exception):
    """Raised when JIRA API rate limit is hit."""

    pass


class AuthenticationError(Exception):
    """Raised when JIRA authentication fails."""

    pass


class ConnectionError(Exception):
    """Raised when JIRA server cannot be reached."""

    pass


def _raise_for_jira_error(e: JIRAError) -> None:
    """Translate a JIRAError into a client exception where one applies."""
    if e.status_code == 429:
        raise RateLimitError(
            "Rate limited by JIRA. Retrying with exponential backoff..."
        ) from e
    if e.status_code == 401:
        raise AuthenticationError(
            "Authentication failed. Check your email and API token."
        ) from e


_retry_on_rate_limit = retry(
    retry=retry_if_exception_type(RateLimitError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=4, max=60),
    reraise=True,
)


class JiraClient:
    """Read-only client for boards, sprints and sprint issues."""

    def __init__(self, config: Config) -> None:
        """Initialize JIRA client with configuration."""
        self.config = config
        self._client: JIRA | None = None

    def _get_client(self) -> JIRA:
        """Get or create JIRA client instance."""
        if self._client is None:
            logger.debug("Connecting to JIRA at %s", self.config.jira_url)
            try:
                self._client = JIRA(
                    server=self.config.jira_url,
                    basic_auth=(self.config.jira_email, self.config.jira_api_token),
                    timeout=15,
                )
            except JIRAError as e:
                if e.status_code == 401:
                    raise AuthenticationError(
                        "Authentication failed. Check your email and API token."
                    ) from e
                raise
            except Exception as e:
                error_msg = str(e).lower()
                if "connection" in error_msg or "resolve" in error_msg or "timeout" in error_msg:
                    raise ConnectionError(
                        f"Cannot connect to JIRA server at {self.config.jira_url}. "
                        "Check the URL and your network connection."
                    ) from e
                raise
        return self._client

    @_retry_on_rate_limit
    def list_boards_for_project(self, project_key: str) -> list[dict]:
        """List the agile boards of a project, in the order JIRA returns them.

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            ConnectionError: If the request fails on the network
            JIRAError: For other JIRA API errors
        """
        client = self._get_client()
        try:
            boards = client.boards(projectKeyOrID=project_key, maxResults=False)
        except JIRAError as e:
            _raise_for_jira_error(e)
            raise
        except RequestException as e:
            raise self._connection_error(e) from e
        return [board.raw for board in boards]

    @_retry_on_rate_limit
    def list_sprints(self, board_id: int, state: str | None = None) -> list[dict]:
        """List sprints of a board, optionally filtered by state.

        Args:
            board_id: Agile board ID
            state: Comma-separated sprint states ("active", "closed", "future")

        Returns:
            List of raw sprint dicts
        """
        client = self._get_client()
        try:
            sprints = client.sprints(board_id, maxResults=False, state=state)
        except JIRAError as e:
            _raise_for_jira_error(e)
            raise
        except RequestException as e:
            raise self._connection_error(e) from e
        return [sprint.raw for sprint in sprints]

    def search_issues_by_sprint(self, sprint_id: int) -> list[dict]:
        """Fetch every issue in a sprint, ordered by status then newest first."""
        jql = f"sprint = {sprint_id} ORDER BY status ASC, created DESC"
        return self._search(jql)

    def search_user_issues(self, sprint_id: int, user_name: str) -> list[dict]:
        """Fetch the issues in a sprint whose assignee matches a user name."""
        escaped = user_name.replace("\\", "\\\\").replace('"', '\\"')
        jql = (
            f'sprint = {sprint_id} AND assignee ~ "{escaped}" '
            "ORDER BY status ASC, created DESC"
        )
        return self._search(jql)

    @_retry_on_rate_limit
    def _search(self, jql: str) -> list[dict]:
        """Run a JQL search and return raw issue dicts.

        Raises:
            RateLimitError: If rate limited (will be retried)
            AuthenticationError: If authentication fails
            ValueError: If JIRA rejects the query
            ConnectionError: If the request fails on the network
        """
        client = self._get_client()
        fields = ISSUE_FIELDS + [self.config.story_points_field]
        logger.debug("Searching issues: %s", jql)

        try:
            result = client.enhanced_search_issues(jql, maxResults=0, fields=fields)
        except JIRAError as e:
            _raise_for_jira_error(e)
            if e.status_code == 400:
                raise ValueError(f"Invalid JQL query: {e.text}") from e
            raise
        except RequestException as e:
            raise self._connection_error(e) from e

        return [self._issue_to_dict(issue) for issue in result]

    def _connection_error(self, e: RequestException) -> ConnectionError:
        logger.error("Request to JIRA at %s failed: %s", self.config.jira_url, e)
        return ConnectionError(
            f"Request to JIRA server at {self.config.jira_url} failed: {e}"
        )

    def _issue_to_dict(self, issue) -> dict:
        """Convert JIRA issue object to dictionary."""
        return {
            "key": issue.key,
            "fields": issue.raw.get("fields", {}),
        }
