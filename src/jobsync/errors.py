class JobSyncError(RuntimeError):
    pass


class JobDecodeError(JobSyncError, ValueError):
    pass


class SnapshotFetchError(JobSyncError):
    pass


class ChannelError(JobSyncError):
    pass
