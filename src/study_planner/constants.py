"""Planning defaults: day capacities, topic order, solver polling."""

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
TASK_STATUSES = (STATUS_PENDING, STATUS_COMPLETED)

# Daily time budgets (minutes)
WORKDAY_TARGET_MINS_MIN = 180
WORKDAY_TARGET_MINS_MAX = 240
HIGH_CAPACITY_TARGET_MINS_MIN = 360
HIGH_CAPACITY_TARGET_MINS_MAX = 420

MOONLIGHTING_WEEKDAY_TARGET_MINS = 90
MOONLIGHTING_WEEKEND_TARGET_MINS = 210

DAY_TYPE_SPECIFIC_REST = "specific-rest"
DAY_TYPE_EXCEPTION = "exception"
DAY_TYPE_WEEKDAY_MOONLIGHTING = "weekday-moonlighting"
DAY_TYPE_WEEKEND_MOONLIGHTING = "weekend-moonlighting"
DAY_TYPES = (
    DAY_TYPE_SPECIFIC_REST,
    DAY_TYPE_EXCEPTION,
    DAY_TYPE_WEEKDAY_MOONLIGHTING,
    DAY_TYPE_WEEKEND_MOONLIGHTING,
)
# Policy labels for dates with no rule
DAY_TYPE_WORKDAY = "workday"
DAY_TYPE_HIGH_CAPACITY = "high-capacity"

# User-facing exception kinds
EXCEPTION_FREE_DAY = "free-day"
EXCEPTION_KINDS = (EXCEPTION_FREE_DAY, DAY_TYPE_WEEKDAY_MOONLIGHTING, DAY_TYPE_WEEKEND_MOONLIGHTING)

DEFAULT_TOPIC_ORDER = [
    "Physics",
    "Breast Imaging",
    "GI Imaging",
    "GU Imaging",
    "Thoracic Imaging",
    "Cardiac & Vascular",
    "MSK Imaging",
    "Neuroradiology",
    "Pediatric Radiology",
    "Nuclear Medicine",
    "Ultrasound Imaging",
    "IR",
    "NIS",
    "RISC",
]

# Length of the plan created on first run
DEFAULT_PLAN_LENGTH_DAYS = 90

# Solver round trip
SOLVER_POLL_INTERVAL_SECONDS = 2.5
SOLVER_MAX_POLL_ATTEMPTS = 60
SOLVER_HTTP_TIMEOUT_SECONDS = 30.0
