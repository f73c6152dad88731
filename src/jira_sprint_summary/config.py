"""Configuration management for Jira Sprint Summary."""

import os
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

import tomli_w

DEFAULT_STORY_POINTS_FIELD = "customfield_10016"

# Exact, case-sensitive status names that count as finished work.
DEFAULT_DONE_STATUSES = (
    "Done",
    "Closed",
    "Resolved",
    "Completed",
    "Finalizado",
    "Concluído",
)


@dataclass
class Config:
    """Configuration for JIRA connection and sprint reporting."""

    jira_url: str
    jira_email: str
    jira_api_token: str
    project_key: str = ""
    board_id: int | None = None
    story_points_field: str = DEFAULT_STORY_POINTS_FIELD
    done_statuses: tuple[str, ...] = field(default=DEFAULT_DONE_STATUSES)

    def validate(self) -> list[str]:
        """Validate configuration values. Returns list of error messages."""
        errors: list[str] = []

        if not self.jira_url:
            errors.append("JIRA URL is required")
        else:
            parsed = urlparse(self.jira_url)
            if parsed.scheme not in ("http", "https"):
                errors.append("JIRA URL must start with http:// or https://")
            if not parsed.netloc:
                errors.append("JIRA URL must include a domain")

        if not self.jira_email:
            errors.append("JIRA email is required")

        if not self.jira_api_token:
            errors.append("JIRA API token is required")

        if self.board_id is not None and (
            isinstance(self.board_id, bool)
            or not isinstance(self.board_id, int)
            or self.board_id <= 0
        ):
            errors.append("Board ID must be a positive integer")

        if not self.project_key and self.board_id is None:
            errors.append("Either a project key or a board ID is required")

        if not self.story_points_field:
            errors.append("Story points field is required")

        if not self.done_statuses:
            errors.append("At least one done status is required")

        return errors


def get_config_dir() -> Path:
    """Get the configuration directory path."""
    return Path.home() / ".jira-sprint-summary"


def get_config_path() -> Path:
    """Get the configuration file path."""
    return get_config_dir() / "config.toml"


def config_exists(environ: Mapping[str, str] | None = None) -> bool:
    """Check if a configuration file or environment configuration exists."""
    env = os.environ if environ is None else environ
    if env.get("JIRA_URL") or env.get("JIRA_HOST"):
        return True
    return get_config_path().exists()


def parse_board_id(value) -> int | None:
    """Parse a board ID from config, environment or request input.

    Empty values mean "not set". Anything else must be a positive integer.

    Raises:
        ValueError: If the value is not a positive integer
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid board ID: {value!r}")
    try:
        board_id = int(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid board ID: {value!r}") from None
    if board_id <= 0:
        raise ValueError(f"Invalid board ID: {value!r}")
    return board_id


def _apply_env_overrides(values: dict, env: Mapping[str, str]) -> None:
    """Overlay JIRA_* environment variables onto raw config values."""
    if env.get("JIRA_URL"):
        values["jira_url"] = env["JIRA_URL"]
    elif env.get("JIRA_HOST"):
        host = env["JIRA_HOST"]
        values["jira_url"] = host if "://" in host else f"https://{host}"

    email = env.get("JIRA_EMAIL") or env.get("JIRA_USERNAME")
    if email:
        values["jira_email"] = email
    if env.get("JIRA_API_TOKEN"):
        values["jira_api_token"] = env["JIRA_API_TOKEN"]
    if env.get("JIRA_PROJECT_KEY"):
        values["project_key"] = env["JIRA_PROJECT_KEY"]
    if env.get("JIRA_BOARD_ID"):
        values["board_id"] = env["JIRA_BOARD_ID"]


def load_config(environ: Mapping[str, str] | None = None) -> Config:
    """Load configuration from the TOML file, overlaid with environment variables.

    Raises:
        FileNotFoundError: If neither a config file nor environment config exists
        ValueError: If config is invalid
    """
    env = os.environ if environ is None else environ
    config_path = get_config_path()

    if not config_exists(env):
        raise FileNotFoundError(
            f"Configuration not found at {config_path}. "
            "Create ~/.jira-sprint-summary/config.toml or set JIRA_HOST to set up."
        )

    data: dict = {}
    if config_path.exists():
        with open(config_path, "rb") as f:
            data = tomllib.load(f)

    jira_section = data.get("jira", {})
    sprint_section = data.get("sprint", {})

    values = {
        "jira_url": jira_section.get("url", ""),
        "jira_email": jira_section.get("email", ""),
        "jira_api_token": jira_section.get("api_token", ""),
        "project_key": sprint_section.get("project_key", ""),
        "board_id": sprint_section.get("board_id"),
    }
    _apply_env_overrides(values, env)

    values["board_id"] = parse_board_id(values["board_id"])

    config = Config(
        **values,
        story_points_field=sprint_section.get(
            "story_points_field", DEFAULT_STORY_POINTS_FIELD
        ),
        done_statuses=tuple(sprint_section.get("done_statuses", DEFAULT_DONE_STATUSES)),
    )

    errors = config.validate()
    if errors:
        raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

    return config


def save_config(config: Config) -> None:
    """Save configuration to TOML file."""
    config_dir = get_config_dir()
    config_dir.mkdir(parents=True, exist_ok=True)

    config_path = get_config_path()

    data: dict = {
        "jira": {
            "url": config.jira_url,
            "email": config.jira_email,
            "api_token": config.jira_api_token,
        },
    }

    sprint_data: dict = {}
    if config.project_key:
        sprint_data["project_key"] = config.project_key
    if config.board_id is not None:
        sprint_data["board_id"] = config.board_id
    if config.story_points_field != DEFAULT_STORY_POINTS_FIELD:
        sprint_data["story_points_field"] = config.story_points_field
    if tuple(config.done_statuses) != DEFAULT_DONE_STATUSES:
        sprint_data["done_statuses"] = list(config.done_statuses)
    if sprint_data:
        data["sprint"] = sprint_data

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
