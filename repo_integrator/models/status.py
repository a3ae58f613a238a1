"""Integration lifecycle states and their display mapping.

The backend is the only authority on transitions between states. The client
uses this module to interpret a status for display (progress, label, color)
and to decide whether polling should continue.

``open`` is terminal for polling even though the pull request can still be
merged or closed later. The client accepts that staleness until the caller
explicitly refreshes, instead of polling an open pull request indefinitely.
"""

from enum import Enum
from typing import Iterable, List, Optional

from pydantic import BaseModel


class UnknownStatusError(ValueError):
    """Status string not known to the client."""
    pass


class StatusColor(str, Enum):
    """Display colors for statuses."""
    PRIMARY = "primary"
    SUCCESS = "success"
    DANGER = "danger"
    SECONDARY = "secondary"


class IntegrationStatus(str, Enum):
    """Lifecycle status of a submitted integration job.

    Every member declares its nominal progress, whether polling stops on it,
    whether the integration list treats it as in progress, its labels and its
    color. A new status cannot be declared without all of them.
    """

    #               value           progress  terminal  in_progress  label                   badge           color
    INITIALIZING = ("initializing", 10,       False,    True,        "Initializing",         "Initializing", StatusColor.PRIMARY)
    ANALYZING = ("analyzing",       30,       False,    True,        "Analyzing Repository", "Analyzing",    StatusColor.PRIMARY)
    GENERATING = ("generating",     60,       False,    True,        "Generating Code",      "Generating",   StatusColor.PRIMARY)
    DRAFT = ("draft",               80,       False,    False,       "Creating PR",          "Draft",        StatusColor.PRIMARY)
    UPDATING = ("updating",         None,     False,    False,       "Updating",             "Updating",     StatusColor.PRIMARY)
    OPEN = ("open",                 100,      True,     False,       "PR Open",              "Open",         StatusColor.PRIMARY)
    MERGED = ("merged",             100,      True,     False,       "Merged",               "Merged",       StatusColor.SUCCESS)
    CLOSED = ("closed",             100,      True,     False,       "Closed",               "Closed",       StatusColor.SECONDARY)
    FAILED = ("failed",             None,     True,     False,       "Failed",               "Failed",       StatusColor.DANGER)

    def __new__(
        cls,
        value: str,
        nominal_progress: Optional[int],
        polling_terminal: bool,
        in_progress: bool,
        label: str,
        badge_label: str,
        color: StatusColor,
    ):
        obj = str.__new__(cls, value)
        obj._value_ = value
        obj.nominal_progress = nominal_progress
        obj.polling_terminal = polling_terminal
        obj.in_progress = in_progress
        obj.label = label
        obj.badge_label = badge_label
        obj.color = color
        return obj

    def __str__(self) -> str:
        return self.value


# Statuses at which the progress poller stops
POLLING_TERMINAL_STATUSES = frozenset(s for s in IntegrationStatus if s.polling_terminal)

# Statuses that keep the integration list auto-refreshing
IN_PROGRESS_STATUSES = frozenset(s for s in IntegrationStatus if s.in_progress)


def parse_status(value: str) -> IntegrationStatus:
    """Convert a wire status string into an IntegrationStatus."""
    if isinstance(value, IntegrationStatus):
        return value
    try:
        return IntegrationStatus(value)
    except ValueError:
        raise UnknownStatusError(f"Unknown integration status: {value!r}") from None


def is_polling_terminal(status: IntegrationStatus) -> bool:
    """Whether the progress poller stops once this status is observed."""
    return parse_status(status).polling_terminal


def is_in_progress(status: IntegrationStatus) -> bool:
    """Whether the integration list keeps auto-refreshing for this status."""
    return parse_status(status).in_progress


def progress_for(status: IntegrationStatus, reported: int = 0) -> int:
    """Progress value shown for a status.

    Statuses with a fixed value always map to it. ``updating`` and ``failed``
    have none; for them the backend-reported value is shown, clamped to 0-100.
    """
    status = parse_status(status)
    if status.nominal_progress is not None:
        return status.nominal_progress
    return max(0, min(100, int(reported or 0)))


def status_label(status: IntegrationStatus) -> str:
    return parse_status(status).label


def status_color(status: IntegrationStatus) -> StatusColor:
    return parse_status(status).color


def sort_by_progress(statuses: Iterable[IntegrationStatus]) -> List[IntegrationStatus]:
    """Order statuses by nominal progress for display.

    Statuses without a nominal value sort after those with one.
    """
    return sorted(
        (parse_status(s) for s in statuses),
        key=lambda s: (s.nominal_progress is None, s.nominal_progress or 0),
    )


class StepState(str, Enum):
    """Display state of an integration step."""
    COMPLETE = "complete"
    CURRENT = "current"
    PENDING = "pending"


class IntegrationStep(BaseModel):
    """One row of the integration step checklist."""
    key: IntegrationStatus
    label: str
    progress: int
    state: StepState


INTEGRATION_STEPS = [
    (IntegrationStatus.INITIALIZING, "Initialize integration"),
    (IntegrationStatus.ANALYZING, "Analyze repository structure"),
    (IntegrationStatus.GENERATING, "Generate integration code"),
    (IntegrationStatus.DRAFT, "Create feature branch & PR"),
    (IntegrationStatus.OPEN, "Pull request ready"),
]


def integration_steps(progress: int) -> List[IntegrationStep]:
    """Build the step checklist for a progress value.

    A step is complete once progress reaches its value and current while
    progress sits between the previous step's value and its own.
    """
    steps = []
    previous = 0
    for key, label in INTEGRATION_STEPS:
        step_progress = key.nominal_progress
        if progress >= step_progress:
            state = StepState.COMPLETE
        elif progress >= previous:
            state = StepState.CURRENT
        else:
            state = StepState.PENDING
        steps.append(IntegrationStep(key=key, label=label, progress=step_progress, state=state))
        previous = step_progress
    return steps
