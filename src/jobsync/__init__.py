from jobsync.backoff import ReconnectPolicy
from jobsync.errors import ChannelError, JobDecodeError, JobSyncError, SnapshotFetchError
from jobsync.models import Job, JobStatus, JobType
from jobsync.router import EventRouter, decode_job
from jobsync.store import JobStore, newest_first
from jobsync.stream import ConnectionState, StreamClient
from jobsync.subscription import SubscriptionManager

__all__ = [
    "ChannelError",
    "ConnectionState",
    "EventRouter",
    "Job",
    "JobDecodeError",
    "JobStatus",
    "JobStore",
    "JobSyncError",
    "JobType",
    "ReconnectPolicy",
    "SnapshotFetchError",
    "StreamClient",
    "SubscriptionManager",
    "decode_job",
    "newest_first",
]
