"""Interpolated reads of one or more attributes over arbitrarily long time ranges.

The PI Web API refuses interpolated requests above a maximum number of
intervals ("Parameter 'timeRange / intervals' is greater than the maximum
allowed (150000)"). ``RangeSplitter`` cuts an absolute range into windows of
at most ``max_samples`` intervals, reads every window, and concatenates the
results in chronological order without repeating the boundary timestamp.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple, Union

from pisync.sources.osipi.osipi_errors import FetchFailed
from pisync.sources.osipi.osipi_http import PiWebApiClient
from pisync.sources.osipi.osipi_series import DEFAULT_TIMEZONE, SeriesFetcher
from pisync.sources.osipi.osipi_table import SyncedTable
from pisync.sources.osipi.osipi_utils import (
    Interval,
    format_pi_time,
    is_relative_time,
    parse_absolute_time,
    parse_interval,
    unique_names,
)

logger = logging.getLogger(__name__)

# The documented server limit is 150000, but requests get random internal
# errors well before that.
DEFAULT_MAX_SAMPLES = 50000

Bound = Union[str, datetime]


def plan_windows(
    start: datetime, end: datetime, interval: Interval, max_samples: int
) -> List[Tuple[datetime, datetime]]:
    """Split ``[start, end]`` into windows of at most ``max_samples`` intervals.

    Each full window is ``[s, s + max_samples*d - d]`` and the next one starts
    at ``s + max_samples*d``, so neighbouring windows never share a grid point.
    The last window ends at ``end``.
    """
    if max_samples <= 0:
        raise ValueError(f"max_samples must be positive, got {max_samples}")

    d = interval.duration
    step = d * max_samples
    windows = []
    while (end - start) / d > max_samples:
        split = start + step
        windows.append((start, split - d))
        start = split
    windows.append((start, end))
    return windows


class RangeSplitter:
    """Reads a set of attributes on one time axis, splitting long absolute ranges."""

    def __init__(self, fetcher: SeriesFetcher, max_samples: int = DEFAULT_MAX_SAMPLES) -> None:
        if max_samples <= 0:
            raise ValueError(f"max_samples must be positive, got {max_samples}")
        self._fetcher = fetcher
        self.max_samples = max_samples

    def fetch(
        self,
        attribute_paths: Union[str, Sequence[str]],
        start: Bound = "-1d",
        end: Bound = "*",
        interval: Union[str, Interval] = "1h",
    ) -> SyncedTable:
        """Read ``attribute_paths`` over ``[start, end]`` at ``interval``.

        Relative bounds are passed to the server verbatim in a single request.
        Absolute bounds are split when the range holds more than
        ``max_samples`` intervals.

        Raises:
            InvalidInterval: bad interval string.
            AttributeNotFound, ServerDataError, FetchFailed: from any leaf fetch;
                ``FetchFailed.sub_range`` names the failing window.
        """
        paths = [attribute_paths] if isinstance(attribute_paths, str) else list(attribute_paths)
        if not paths:
            raise ValueError("At least one attribute path is required")
        iv = parse_interval(interval)

        windows = self._windows(start, end, iv)
        if len(windows) > 1:
            logger.info(
                "Splitting %s .. %s at %s into %d requests of at most %d samples",
                _wire(start),
                _wire(end),
                iv,
                len(windows),
                self.max_samples,
            )

        parts = []
        for w_start, w_end in windows:
            logger.debug("Fetching window %s .. %s", _wire(w_start), _wire(w_end))
            try:
                parts.append(self.fetch_window(paths, w_start, w_end, iv))
            except FetchFailed as e:
                if e.sub_range is None:
                    e.sub_range = (_wire(w_start), _wire(w_end))
                raise
        return SyncedTable.concat_all(parts)

    def _windows(self, start: Bound, end: Bound, interval: Interval) -> List[Tuple[Bound, Bound]]:
        if is_relative_time(start) or is_relative_time(end):
            return [(start, end)]

        start_dt = parse_absolute_time(start)
        end_dt = parse_absolute_time(end)
        if start_dt is None or end_dt is None:
            # Not something we can do arithmetic on; let the server interpret it.
            return [(start, end)]
        if (start_dt.tzinfo is None) != (end_dt.tzinfo is None):
            raise ValueError("start and end must both carry a UTC offset or both omit it")

        n_samples = (end_dt - start_dt) / interval.duration
        logger.debug("Estimated %.1f samples for %s .. %s", n_samples, start, end)
        return plan_windows(start_dt, end_dt, interval, self.max_samples)

    def fetch_window(
        self, paths: List[str], start: Bound, end: Bound, interval: Interval
    ) -> SyncedTable:
        """Read one window that is small enough for a single request per attribute.

        With several attributes, the first one's realized first and last
        timestamps define the window for the others, so every series lands on
        the same grid.
        """
        first = self._fetcher.fetch_one(paths[0], start, end, interval)
        if len(paths) == 1:
            return SyncedTable.from_series(first)

        w_start: Bound = first.first if first.first is not None else start
        w_end: Bound = first.last if first.last is not None else end

        series = [first]
        for path in paths[1:]:
            series.append(self._fetcher.fetch_one(path, w_start, w_end, interval))

        for s, name in zip(series, unique_names([s.name for s in series])):
            s.name = name
        return SyncedTable.synchronize(series)


def fetch(
    attribute_paths: Union[str, Sequence[str]],
    start: Bound = "-1d",
    end: Bound = "*",
    interval: Union[str, Interval] = "1h",
    *,
    client: Optional[PiWebApiClient] = None,
    options: Optional[Dict[str, str]] = None,
    max_samples: int = DEFAULT_MAX_SAMPLES,
    timezone: str = DEFAULT_TIMEZONE,
) -> SyncedTable:
    """Get interpolated data for one or more attributes as a :class:`SyncedTable`.

    Example::

        table = fetch(
            [r"\\\\SERVER\\Database\\Element|GridFreq", r"\\\\SERVER\\Database\\Element|InsAcPow"],
            "2023-04-26 06:35",
            "2023-04-26 06:50",
            "1s",
            options={"pi_base_url": "https://pi.example.com/piwebapi", "access_token": "..."},
        )

    Either ``client`` or connection ``options`` must be given.
    """
    if client is None:
        if options is None:
            raise ValueError("fetch requires either a client or connection options")
        client = PiWebApiClient(options)
    splitter = RangeSplitter(SeriesFetcher(client, timezone), max_samples=max_samples)
    return splitter.fetch(attribute_paths, start, end, interval)


def _wire(value: Bound) -> str:
    if isinstance(value, datetime):
        return format_pi_time(value)
    return str(value)
