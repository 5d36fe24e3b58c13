"""Domain enums — job states reported by the service and harness progression."""

from enum import Enum, unique


@unique
class JobState(Enum):
    """Job state tags reported by ``GET /status/{jobId}``.

    ``UNKNOWN`` stands in for any tag the service sends that is not listed here;
    the raw tag is kept on the status snapshot.
    """

    QUEUED = "queued"
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: object) -> "JobState":
        """Map a raw state tag onto a member by exact match, falling back to UNKNOWN."""
        if isinstance(raw, str):
            try:
                member = cls(raw)
            except ValueError:
                return cls.UNKNOWN
            return member
        return cls.UNKNOWN


@unique
class PollOutcome(Enum):
    """States of the status-polling state machine."""

    POLLING = "polling"
    FINISHED = "finished"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@unique
class HarnessStage(Enum):
    """Ordered stages of a single harness run."""

    SUBMIT = "submit"
    POLL = "poll"
    DOWNLOAD = "download"
    VERIFY = "verify"


@unique
class ArtifactType(Enum):
    """Artifact formats the service can render, with their file extension."""

    CSV = "csv"

    @property
    def extension(self) -> str:
        return f".{self.value}"
