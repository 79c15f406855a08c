"""Liveness queries for in-flight deployment requests."""

from dataclasses import dataclass

from .locks import DeduplicationLock

IN_PROGRESS = "in_progress"
COMPLETED_OR_NOT_FOUND = "completed_or_not_found"


@dataclass(frozen=True)
class RequestStatus:
    request_id: str
    status: str
    active_count: int

    def to_wire(self):
        return {
            "requestId": self.request_id,
            "status": self.status,
            "activeDeployments": self.active_count,
        }


class StatusTracker:

    def __init__(self, lock: DeduplicationLock):
        self._lock = lock

    def status(self, request_id: str) -> RequestStatus:
        # Entries are keyed by fingerprint, so this is a scan of live holders.
        active = self._lock.active_request_ids()
        state = IN_PROGRESS if request_id in active else COMPLETED_OR_NOT_FOUND
        return RequestStatus(request_id=request_id, status=state, active_count=len(active))
