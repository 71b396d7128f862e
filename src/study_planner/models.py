"""Data classes for the study plan domain model."""
from dataclasses import dataclass, field
from typing import Optional

from study_planner.constants import STATUS_PENDING


@dataclass
class StudyResource:
    id: str
    title: str
    type: str
    domain: str
    duration_minutes: int
    is_primary_material: bool = True
    is_splittable: bool = True
    is_archived: bool = False
    is_optional: bool = False
    sequence_order: Optional[int] = None
    pages: Optional[int] = None
    case_count: Optional[int] = None
    question_count: Optional[int] = None
    chapter_number: Optional[int] = None
    book_source: Optional[str] = None
    video_source: Optional[str] = None
    paired_resource_ids: list[str] = field(default_factory=list)


@dataclass
class ScheduledTask:
    id: str
    resource_id: str
    title: str
    type: str
    original_topic: str
    duration_minutes: int
    status: str = STATUS_PENDING
    order: int = 0
    is_optional: bool = False
    original_resource_id: Optional[str] = None
    is_primary_material: bool = False
    actual_study_time_minutes: int = 0
    pages: Optional[int] = None
    case_count: Optional[int] = None
    question_count: Optional[int] = None
    chapter_number: Optional[int] = None
    book_source: Optional[str] = None
    video_source: Optional[str] = None

    @property
    def source_resource_id(self) -> str:
        """Id of the catalog resource this task was placed from."""
        return self.original_resource_id or self.resource_id


@dataclass
class DailySchedule:
    date: str  # YYYY-MM-DD
    tasks: list[ScheduledTask] = field(default_factory=list)
    total_study_time_minutes: int = 0
    is_rest_day: bool = False
    is_manually_modified: bool = False


@dataclass
class ExceptionDateRule:
    date: str
    day_type: str
    is_rest_day_override: bool = False
    target_minutes: int = 0


@dataclass(frozen=True)
class DayPolicy:
    """Effective rest/capacity for one date after rules are applied."""
    is_rest_day: bool
    target_minutes: int
    day_type: str


@dataclass
class StudyPlan:
    start_date: str
    end_date: str
    schedule: list[DailySchedule] = field(default_factory=list)
    topic_order: list[str] = field(default_factory=list)
    cram_topic_order: list[str] = field(default_factory=list)
    is_cram_mode_active: bool = False
    are_special_topics_interleaved: bool = True
    deadlines: dict[str, str] = field(default_factory=dict)  # topic -> date
    exception_rules: dict[str, ExceptionDateRule] = field(default_factory=dict)
    first_pass_end_date: Optional[str] = None

    def day(self, date: str) -> Optional[DailySchedule]:
        for daily in self.schedule:
            if daily.date == date:
                return daily
        return None

    def contains_date(self, date: str) -> bool:
        return self.start_date <= date <= self.end_date


# Rebalance options: why the solver is being asked to regenerate.

REBALANCE_STANDARD = "standard"
REBALANCE_TOPIC_TIME = "topic-time"
REBALANCE_TOPIC_ORDER = "topic-order"
REBALANCE_DEADLINE = "deadline-change"
REBALANCE_EXCEPTION = "exception-added"
REBALANCE_FULL_RESET = "full-reset"


@dataclass(frozen=True)
class StandardRebalance:
    type: str = REBALANCE_STANDARD


@dataclass(frozen=True)
class TopicTimeRebalance:
    date: str
    topics: tuple[str, ...]
    total_time_minutes: int
    type: str = REBALANCE_TOPIC_TIME


@dataclass(frozen=True)
class TopicOrderRebalance:
    cram: bool = False
    type: str = REBALANCE_TOPIC_ORDER


@dataclass(frozen=True)
class DeadlineRebalance:
    type: str = REBALANCE_DEADLINE


@dataclass(frozen=True)
class ExceptionRebalance:
    date: str
    type: str = REBALANCE_EXCEPTION


@dataclass(frozen=True)
class FullResetRebalance:
    """Regenerate the whole horizon from scratch, dropping manual edits."""
    type: str = REBALANCE_FULL_RESET


RebalanceOptions = (
    StandardRebalance
    | TopicTimeRebalance
    | TopicOrderRebalance
    | DeadlineRebalance
    | ExceptionRebalance
    | FullResetRebalance
)
