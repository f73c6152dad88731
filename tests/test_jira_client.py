"""Tests for the JIRA API client wrapper."""

from unittest.mock import MagicMock, patch

import pytest
from jira import JIRAError
from requests.exceptions import ConnectionError as RequestsConnectionError
from requests.exceptions import ReadTimeout

from jira_sprint_summary.config import Config
from jira_sprint_summary.jira_client import (
    AuthenticationError,
    ConnectionError,
    JiraClient,
    RateLimitError,
)


def _make_config():
    return Config(
        jira_url="https://jira.example.com",
        jira_email="user@example.com",
        jira_api_token="token",
        project_key="PROJ",
    )


def _resource(raw):
    resource = MagicMock()
    resource.raw = raw
    return resource


def _issue(key, fields):
    issue = MagicMock()
    issue.key = key
    issue.raw = {"key": key, "fields": fields}
    return issue


@pytest.fixture
def jira():
    with patch("jira_sprint_summary.jira_client.JIRA") as mock_cls:
        yield mock_cls.return_value


@pytest.fixture(autouse=True)
def no_sleep():
    with patch("tenacity.nap.time.sleep"):
        yield


class TestGetClient:
    """Tests for lazy JIRA session creation."""

    def test_creates_client_once(self):
        with patch("jira_sprint_summary.jira_client.JIRA") as mock_cls:
            client = JiraClient(_make_config())
            client.list_sprints(1)
            client.list_sprints(2)

        mock_cls.assert_called_once_with(
            server="https://jira.example.com",
            basic_auth=("user@example.com", "token"),
            timeout=15,
        )

    def test_auth_failure_on_connect(self):
        with patch("jira_sprint_summary.jira_client.JIRA") as mock_cls:
            mock_cls.side_effect = JIRAError(status_code=401)
            with pytest.raises(AuthenticationError):
                JiraClient(_make_config()).list_sprints(1)

    def test_connection_failure_on_connect(self):
        with patch("jira_sprint_summary.jira_client.JIRA") as mock_cls:
            mock_cls.side_effect = OSError("Failed to resolve host")
            with pytest.raises(ConnectionError, match="Cannot connect"):
                JiraClient(_make_config()).list_sprints(1)


class TestListBoards:
    """Tests for list_boards_for_project."""

    def test_returns_raw_boards_in_order(self, jira):
        jira.boards.return_value = [_resource({"id": 4}), _resource({"id": 2})]

        boards = JiraClient(_make_config()).list_boards_for_project("PROJ")

        assert boards == [{"id": 4}, {"id": 2}]
        jira.boards.assert_called_once_with(projectKeyOrID="PROJ", maxResults=False)

    def test_auth_error(self, jira):
        jira.boards.side_effect = JIRAError(status_code=401)
        with pytest.raises(AuthenticationError):
            JiraClient(_make_config()).list_boards_for_project("PROJ")


class TestListSprints:
    """Tests for list_sprints."""

    def test_passes_state_filter(self, jira):
        jira.sprints.return_value = [_resource({"id": 9, "state": "active"})]

        sprints = JiraClient(_make_config()).list_sprints(3, state="active")

        assert sprints == [{"id": 9, "state": "active"}]
        jira.sprints.assert_called_once_with(3, maxResults=False, state="active")

    def test_retries_on_rate_limit(self, jira):
        jira.sprints.side_effect = [
            JIRAError(status_code=429),
            [_resource({"id": 9})],
        ]

        sprints = JiraClient(_make_config()).list_sprints(3)

        assert sprints == [{"id": 9}]
        assert jira.sprints.call_count == 2

    def test_gives_up_after_three_attempts(self, jira):
        jira.sprints.side_effect = JIRAError(status_code=429)

        with pytest.raises(RateLimitError):
            JiraClient(_make_config()).list_sprints(3)
        assert jira.sprints.call_count == 3

    def test_other_errors_propagate(self, jira):
        jira.sprints.side_effect = JIRAError(status_code=404, text="Board not found")
        with pytest.raises(JIRAError):
            JiraClient(_make_config()).list_sprints(3)


class TestSearch:
    """Tests for sprint issue searches."""

    def test_search_issues_by_sprint(self, jira):
        jira.enhanced_search_issues.return_value = [
            _issue("P-1", {"summary": "First", "customfield_10016": 3}),
        ]

        issues = JiraClient(_make_config()).search_issues_by_sprint(42)

        assert issues == [{"key": "P-1", "fields": {"summary": "First", "customfield_10016": 3}}]
        args, kwargs = jira.enhanced_search_issues.call_args
        assert args[0] == "sprint = 42 ORDER BY status ASC, created DESC"
        assert "customfield_10016" in kwargs["fields"]
        assert kwargs["maxResults"] == 0

    def test_search_user_issues_quotes_name(self, jira):
        jira.enhanced_search_issues.return_value = []

        JiraClient(_make_config()).search_user_issues(42, 'Ana "Nina" Silva')

        jql = jira.enhanced_search_issues.call_args[0][0]
        assert jql == (
            'sprint = 42 AND assignee ~ "Ana \\"Nina\\" Silva" '
            "ORDER BY status ASC, created DESC"
        )

    def test_bad_query(self, jira):
        jira.enhanced_search_issues.side_effect = JIRAError(status_code=400, text="bad jql")
        with pytest.raises(ValueError, match="bad jql"):
            JiraClient(_make_config()).search_issues_by_sprint(42)


class TestNetworkErrors:
    """Tests for requests failures after the session exists."""

    def test_sprint_listing_timeout(self, jira):
        jira.sprints.side_effect = ReadTimeout("read timed out")
        with pytest.raises(ConnectionError, match="read timed out"):
            JiraClient(_make_config()).list_sprints(3)
        assert jira.sprints.call_count == 1

    def test_board_listing_connection_failure(self, jira):
        jira.boards.side_effect = RequestsConnectionError("connection reset")
        with pytest.raises(ConnectionError, match="connection reset"):
            JiraClient(_make_config()).list_boards_for_project("PROJ")

    def test_search_timeout(self, jira):
        jira.enhanced_search_issues.side_effect = ReadTimeout("read timed out")
        with pytest.raises(ConnectionError, match="https://jira.example.com"):
            JiraClient(_make_config()).search_issues_by_sprint(42)
