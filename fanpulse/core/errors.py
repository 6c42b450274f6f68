"""
Error taxonomy for the ingestion and scoring pipeline.

- TransientNetworkError: timeouts and non-2xx from external endpoints.
  Recorded, never retried inside the pipeline.
- MalformedInputError: unexpected record shape or unparseable body.
  Skipped per record during normalization.
- PersistenceError: a store read/write failed. Propagated to the
  ingestion caller, which marks the ScrapeRun failed.
- ConflictError: a write the store refuses (terminal ScrapeRun status).
"""

from __future__ import annotations


class FanPulseError(Exception):
    """Base class for pipeline errors."""


class TransientNetworkError(FanPulseError):
    """An external endpoint timed out or answered with an error status."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MalformedInputError(FanPulseError):
    """A record or response body did not have the expected shape."""


class PersistenceError(FanPulseError):
    """A store operation failed. The original exception is chained as __cause__."""


class ConflictError(FanPulseError):
    """The store rejected a write that conflicts with existing state."""


class ScrapeRunTransitionError(ConflictError):
    """A ScrapeRun status update would regress or touch a terminal run."""

    def __init__(self, run_id, current: str, requested: str):
        self.run_id = run_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"ScrapeRun {run_id}: cannot move from {current} to {requested}"
        )
