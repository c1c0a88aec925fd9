"""Tracking timeline derived from a report's status fields.

The timeline is never stored. It is rebuilt from ``status``, ``created_at``,
``updated_at`` and ``resolved_at`` every time a complaint is tracked.

"Under Review" has no backing field: it counts as complete as soon as the
report exists and carries a synthetic date one hour after submission.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from .models import Report

REVIEW_DELAY = timedelta(hours=1)
PENDING_LABEL = "Pending"


@dataclass(frozen=True)
class TimelineStep:
    title: str
    description: str
    is_completed: bool
    date: Optional[datetime] = None

    def as_dict(self) -> dict:
        return {
            "status": self.title,
            "description": self.description,
            "is_completed": self.is_completed,
            "date": self.date.isoformat() if self.date else PENDING_LABEL,
        }


def derive_timeline(report: Report) -> List[TimelineStep]:
    in_progress = report.status in (Report.Status.IN_PROGRESS, Report.Status.RESOLVED)
    resolved = report.status == Report.Status.RESOLVED

    return [
        TimelineStep(
            title="Reported",
            description="Complaint submitted by citizen",
            is_completed=True,
            date=report.created_at,
        ),
        TimelineStep(
            title="Under Review",
            description="Complaint verified by ward officer",
            is_completed=True,
            date=report.created_at + REVIEW_DELAY,
        ),
        TimelineStep(
            title="In Progress",
            description="Repair work has started" if in_progress else "Awaiting assignment",
            is_completed=in_progress,
            date=report.updated_at if in_progress else None,
        ),
        TimelineStep(
            title="Resolved",
            description="Repair work completed" if resolved else "Awaiting completion",
            is_completed=resolved,
            date=report.resolved_at if resolved else None,
        ),
    ]
