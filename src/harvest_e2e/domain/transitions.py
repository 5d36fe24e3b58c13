"""Poll FSM transition table — pure data, no I/O."""

from types import MappingProxyType

from harvest_e2e.domain.enums import JobState, PollOutcome

# Transition table: observed job state -> poller outcome.
# Any state not listed keeps the poller in POLLING.
POLL_TRANSITIONS: MappingProxyType[JobState, PollOutcome] = MappingProxyType(
    {
        JobState.QUEUED: PollOutcome.POLLING,
        JobState.RUNNING: PollOutcome.POLLING,
        JobState.UNKNOWN: PollOutcome.POLLING,
        JobState.FINISHED: PollOutcome.FINISHED,
        JobState.ERROR: PollOutcome.FAILED,
    }
)

TERMINAL_OUTCOMES: frozenset[PollOutcome] = frozenset(
    {PollOutcome.FINISHED, PollOutcome.FAILED, PollOutcome.TIMED_OUT}
)


def next_outcome(state: JobState) -> PollOutcome:
    """Return the poller outcome for an observed job state."""
    return POLL_TRANSITIONS.get(state, PollOutcome.POLLING)


def is_terminal_state(state: JobState) -> bool:
    """Return True if the job state ends polling."""
    return next_outcome(state) in TERMINAL_OUTCOMES
