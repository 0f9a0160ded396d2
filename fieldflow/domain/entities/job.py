"""Field job lifecycle: allowed state transitions and emitted events."""

from fieldflow.domain.enums import JobState

TERMINAL_STATES: frozenset[JobState] = frozenset({JobState.PAID, JobState.CANCELLED})

ALLOWED_TRANSITIONS: dict[JobState, frozenset[JobState]] = {
    JobState.DRAFT: frozenset({
        JobState.NEEDS_PERMIT,
        JobState.WAITING_ON_CLIENT,
        JobState.SCHEDULED,
        JobState.CANCELLED,
    }),
    JobState.NEEDS_PERMIT: frozenset({
        JobState.WAITING_ON_CLIENT,
        JobState.SCHEDULED,
        JobState.CANCELLED,
    }),
    JobState.WAITING_ON_CLIENT: frozenset({JobState.SCHEDULED, JobState.CANCELLED}),
    JobState.SCHEDULED: frozenset({
        JobState.IN_PROGRESS,
        JobState.WEATHER_HOLD,
        JobState.CANCELLED,
    }),
    JobState.WEATHER_HOLD: frozenset({JobState.SCHEDULED, JobState.CANCELLED}),
    JobState.IN_PROGRESS: frozenset({
        JobState.COMPLETED,
        JobState.WEATHER_HOLD,
        JobState.CANCELLED,
    }),
    JobState.COMPLETED: frozenset({JobState.INVOICED}),
    JobState.INVOICED: frozenset({JobState.PAID, JobState.COMPLETED}),
    JobState.PAID: frozenset(),
    JobState.CANCELLED: frozenset(),
}

# States whose event name differs from job_<state>.
_STATE_EVENTS: dict[JobState, str] = {
    JobState.SCHEDULED: "job_scheduled",
    JobState.IN_PROGRESS: "job_started",
    JobState.COMPLETED: "job_completed",
    JobState.CANCELLED: "job_cancelled",
}


def can_transition(from_state: JobState, to_state: JobState) -> bool:
    """Return whether from_state -> to_state is in the matrix."""
    return to_state in ALLOWED_TRANSITIONS.get(from_state, frozenset())


def allowed_next_states(state: JobState) -> list[JobState]:
    """Targets reachable from state, in declaration order of JobState."""
    targets = ALLOWED_TRANSITIONS.get(state, frozenset())
    return [s for s in JobState if s in targets]


def event_for_state(state: JobState) -> str:
    """Business event emitted when a job enters state."""
    return _STATE_EVENTS.get(state, f"job_{state.value}")
