from pisync.sources.osipi.osipi_errors import (
    AttributeNotFound,
    FetchFailed,
    InvalidInterval,
    PiSyncError,
    ServerDataError,
)
from pisync.sources.osipi.osipi_splitter import RangeSplitter, fetch
from pisync.sources.osipi.osipi_table import AttributeSeries, SyncedTable

__all__ = [
    "AttributeNotFound",
    "AttributeSeries",
    "FetchFailed",
    "InvalidInterval",
    "PiSyncError",
    "RangeSplitter",
    "ServerDataError",
    "SyncedTable",
    "fetch",
]
