"""Data models for Jira Sprint Summary."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class Sprint:
    """A sprint as returned by the JIRA agile API."""

    id: int
    name: str
    state: str  # "active" | "closed" | "future"
    goal: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


@dataclass(frozen=True)
class Issue:
    """The parts of a sprint issue that reporting reads."""

    key: str
    status: str
    type: str
    story_points: float = 0
    summary: str = ""
    description: str | None = None
    assignee: str | None = None


@dataclass(frozen=True)
class ProgressSnapshot:
    """Points-based progress of a sprint."""

    completed_points: float
    total_points: float
    percent_complete: int


@dataclass(frozen=True)
class VelocityProjection:
    """Time-based progress and completion forecast of a sprint."""

    days_elapsed: int
    days_total: int
    days_left: int
    percent_time_elapsed: int
    points_per_day: float
    projected_completion: int
    burndown_delta: int  # positive means ahead of schedule


@dataclass
class SprintReport:
    """Complete result of a sprint summary fetch."""

    sprint: Sprint
    status_counts: dict[str, int]
    type_counts: dict[str, int]
    progress: ProgressSnapshot
    velocity: VelocityProjection | None  # None for sprints without dates
    issues: list[Issue] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return len(self.issues)


@dataclass
class UserTasks:
    """Issues assigned to one user in the resolved sprint."""

    sprint: Sprint
    user_name: str
    issues: list[Issue]
