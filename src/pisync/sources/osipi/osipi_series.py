"""Single attribute reads: attribute lookup, interpolated values, timestamp normalization."""

import logging
import re
from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from pisync.sources.osipi.osipi_errors import AttributeNotFound, FetchFailed, ServerDataError
from pisync.sources.osipi.osipi_http import PiWebApiClient
from pisync.sources.osipi.osipi_table import AttributeSeries
from pisync.sources.osipi.osipi_utils import (
    Interval,
    format_pi_time,
    is_number,
    make_valid_name,
    parse_ts_lenient,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/Stockholm"

# Only timestamp and value are requested, roughly a third of the full payload.
SELECTED_FIELDS = "Items.Timestamp;Items.Value"

_WHOLE_SECOND_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
_FRACTIONAL_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})\.(\d{1,7})Z$")

TimeArg = Union[str, datetime]


class SeriesFetcher:
    """Fetches interpolated values of one attribute and normalizes them.

    Timestamps come back from the server in UTC, in one of several layouts.
    Every timestamp ends up as an aware datetime in ``tz``.
    """

    def __init__(self, client: PiWebApiClient, tz: Union[str, tzinfo] = DEFAULT_TIMEZONE) -> None:
        self._client = client
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz

    def resolve_attribute(self, attribute_path: str) -> Dict[str, str]:
        """Look up display name, default unit and the interpolated data link of an attribute."""
        try:
            meta = self._client.get_json("/attributes", params={"path": attribute_path})
        except FetchFailed as e:
            if e.status_code == 404:
                raise AttributeNotFound(attribute_path, str(e)) from e
            raise

        link = ((meta or {}).get("Links") or {}).get("InterpolatedData")
        if not link:
            raise AttributeNotFound(attribute_path, "response has no InterpolatedData link")

        return {
            "path": attribute_path,
            "name": meta.get("Name") or attribute_path.rsplit("|", 1)[-1],
            "unit": meta.get("DefaultUnitsNameAbbreviation") or "",
            "link": link,
        }

    def fetch_one(
        self,
        attribute_path: str,
        start: TimeArg,
        end: TimeArg,
        interval: Union[str, Interval],
    ) -> AttributeSeries:
        """Fetch one attribute over ``[start, end]`` sampled at ``interval``."""
        attribute = self.resolve_attribute(attribute_path)
        name = make_valid_name(attribute["name"])

        data = self._client.get_json(
            attribute["link"],
            params={
                "startTime": _wire_time(start),
                "endTime": _wire_time(end),
                "interval": str(interval),
                "selectedFields": SELECTED_FIELDS,
            },
        )
        items = _items_or_raise(data, attribute_path)

        kept = [i for i in items if is_number(i.get("Value"))]
        dropped = len(items) - len(kept)
        if dropped:
            logger.warning("%s: dropped %d item(s) without a numeric value", name, dropped)

        timestamps = self.normalize_timestamps([i.get("Timestamp") for i in kept], name)
        pairs = _ascending_unique(zip(timestamps, (float(i["Value"]) for i in kept)), name)

        return AttributeSeries(
            name=name,
            unit=attribute["unit"],
            timestamps=[ts for ts, _ in pairs],
            values=[v for _, v in pairs],
            path=attribute_path,
        )

    def normalize_timestamps(self, raw: List[Any], name: str = "") -> List[datetime]:
        """Parse wire timestamps and convert them to the target timezone.

        Formats are tried in order: whole-second UTC, fractional-second UTC,
        then a slow lenient parser for whatever is left.

        Raises:
            ServerDataError: a timestamp no parser accepts.
        """
        parsed: List[Optional[datetime]] = [_parse_whole_second(v) for v in raw]

        for i, v in enumerate(raw):
            if parsed[i] is None:
                parsed[i] = _parse_fractional(v)

        residual = [i for i, ts in enumerate(parsed) if ts is None]
        if residual:
            logger.info(
                "%s: parsing %d timestamp(s) with the lenient parser, this is slow",
                name or "series",
                len(residual),
            )
            for i in residual:
                parsed[i] = parse_ts_lenient(raw[i])
                if parsed[i] is None:
                    raise ServerDataError(f"Unparseable timestamp {raw[i]!r} in {name or 'series'}")

        return [ts.astimezone(self.tz) for ts in parsed]


def _wire_time(value: TimeArg) -> str:
    if isinstance(value, datetime):
        return format_pi_time(value)
    return str(value)


def _items_or_raise(data: Any, attribute_path: str) -> List[dict]:
    if not isinstance(data, dict):
        raise ServerDataError(f"Unexpected response for {attribute_path}", data)
    if data.get("Errors"):
        raise ServerDataError(f"Server reported errors for {attribute_path}", data["Errors"])

    items = data.get("Items")
    if items is None:
        raise ServerDataError(f"Response for {attribute_path} has no Items", data)
    if isinstance(items, dict):
        # Items.Errors instead of a list of values
        raise ServerDataError(
            f"Server reported errors for {attribute_path}", items.get("Errors", items)
        )

    item_errors = [i["Errors"] for i in items if isinstance(i, dict) and i.get("Errors")]
    if item_errors:
        raise ServerDataError(f"Server reported item errors for {attribute_path}", item_errors)
    return [i for i in items if isinstance(i, dict)]


def _parse_whole_second(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value, _WHOLE_SECOND_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


def _parse_fractional(value: Any) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    m = _FRACTIONAL_RE.match(value)
    if not m:
        return None
    try:
        dt = datetime.strptime(m.group(1), "%Y-%m-%dT%H:%M:%S")
    except ValueError:
        return None
    # 7th digit is 100 ns, below datetime resolution
    micros = int(m.group(2)[:6].ljust(6, "0"))
    return dt.replace(microsecond=micros, tzinfo=timezone.utc)


def _ascending_unique(pairs, name: str = "") -> List[Tuple[datetime, float]]:
    out: List[Tuple[datetime, float]] = []
    conflicts = 0
    for ts, v in sorted(pairs, key=lambda p: p[0]):
        if out and out[-1][0] == ts:
            if out[-1][1] != v:
                conflicts += 1
            continue
        out.append((ts, v))
    if conflicts:
        # sub-microsecond timestamps collapse onto the same datetime
        logger.warning(
            "%s: dropped %d sample(s) sharing a timestamp with a different value",
            name or "series",
            conflicts,
        )
    return out
