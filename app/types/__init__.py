"""Type definitions for database records."""

from app.types.database import (
    ApplicationRecordTD,
    JobOrderRecordTD,
    PooledCandidateRecordTD,
    TimelineEntryRecordTD,
)

__all__ = [
    "ApplicationRecordTD",
    "JobOrderRecordTD",
    "PooledCandidateRecordTD",
    "TimelineEntryRecordTD",
]
