"""
Issue/status correspondence for gateway payment statuses.

Every mapping between the caller's issue id, the gateway status code, its
label and the dispute type to file is read from ISSUE_STATUS_TABLE.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

UNKNOWN_LABEL = "Unknown"
PAID_ACKNOWLEDGED = "50"


@dataclass(frozen=True)
class IssueStatus:
    issue_id: int
    status_code: str
    label: str
    dispute_type: Optional[int] = None
    dispute_label: Optional[str] = None


ISSUE_STATUS_TABLE: Tuple[IssueStatus, ...] = (
    IssueStatus(issue_id=1, status_code=PAID_ACKNOWLEDGED, label="Paid Acknowledged"),
    IssueStatus(
        issue_id=2,
        status_code="30",
        label="Waiting for Acknowledge",
        dispute_type=5,
        dispute_label="Acknowledge",
    ),
    IssueStatus(
        issue_id=3,
        status_code="10",
        label="Pending",
        dispute_type=10,
        dispute_label="Reset",
    ),
)


class IssueStatusMap:
    """Lookups over the issue/status table in every direction."""

    def __init__(self, entries: Tuple[IssueStatus, ...] = ISSUE_STATUS_TABLE):
        self._entries = entries
        self._by_issue: Dict[int, IssueStatus] = {e.issue_id: e for e in entries}
        self._by_status: Dict[str, IssueStatus] = {e.status_code: e for e in entries}
        self._by_dispute_type: Dict[int, IssueStatus] = {
            e.dispute_type: e for e in entries if e.dispute_type is not None
        }

    def status_for(self, issue_id: int) -> Optional[str]:
        entry = self._by_issue.get(issue_id)
        return entry.status_code if entry else None

    def issue_for(self, status_code: Optional[str]) -> Optional[int]:
        entry = self._by_status.get(status_code or "")
        return entry.issue_id if entry else None

    def label_for(self, status_code: Optional[str]) -> str:
        entry = self._by_status.get(status_code or "")
        return entry.label if entry else UNKNOWN_LABEL

    def dispute_type_for(self, status_code: Optional[str]) -> Optional[int]:
        entry = self._by_status.get(status_code or "")
        return entry.dispute_type if entry else None

    def dispute_type_label(self, dispute_type: Optional[int]) -> str:
        """Human label such as "Acknowledge (5)"."""
        entry = self._by_dispute_type.get(dispute_type)
        if entry is None:
            return UNKNOWN_LABEL
        return f"{entry.dispute_label} ({entry.dispute_type})"

    def describe_valid_issues(self) -> str:
        return ", ".join(
            f"{e.issue_id} = {e.label} (status {e.status_code})" for e in self._entries
        )


issue_status_map = IssueStatusMap()
