# OSIPI interpolated data connector
#
# Implements the LakeflowConnect interface on top of RangeSplitter. It exposes a
# single table, `interpolated`: one row per timestamp, one column per attribute.
#
# Options supported:
# - pi_base_url / pi_web_api_url (required): base URL, e.g. https://<host>/piwebapi
# - access_token / bearer_token: (optional) bearer token
# - username/password: (optional) basic auth
# - allow_anonymous: (optional bool) send no credentials
# - verify_ssl: (optional bool, default true)
# - timeout: (optional int seconds, default 60)
# - max_samples: (optional int, default 50000) intervals per request
# - timezone: (optional, default Europe/Stockholm) timezone of the Time column
# - server_timezone: (optional, default Europe/Stockholm) local zone the PI server
#   applies to naive time strings; used when resuming a naive endTime
# - debug_http: (optional bool) log every request at DEBUG level
#
# Table options (interpolated):
# - attribute_paths (required): csv / semicolon / newline separated, or a JSON list
# - startTime (optional, default -1d)
# - endTime (optional, default *)
# - interval (optional, default 1h)
# - max_samples (optional int) overrides the connection option

from typing import Dict, Iterator, List, Tuple
from zoneinfo import ZoneInfo

from pyspark.sql.types import StructType

from pisync.interface import LakeflowConnect
from pisync.sources.osipi.osipi_http import PiWebApiClient
from pisync.sources.osipi.osipi_schemas import (
    SUPPORTED_TABLES,
    TABLE_INTERPOLATED,
    TABLE_METADATA,
    synced_table_schema,
)
from pisync.sources.osipi.osipi_series import DEFAULT_TIMEZONE, SeriesFetcher
from pisync.sources.osipi.osipi_splitter import DEFAULT_MAX_SAMPLES, RangeSplitter
from pisync.sources.osipi.osipi_utils import (
    as_int,
    format_pi_time,
    is_relative_time,
    make_valid_name,
    parse_absolute_time,
    parse_interval,
    split_list_option,
    unique_names,
)


class OsipiLakeflowConnect(LakeflowConnect):
    """OSI PI connector for interpolated attribute data.

    Reads are append-only: the offset is the last timestamp delivered, and the
    next read continues one interval after it.
    """

    def __init__(self, options: Dict[str, str]) -> None:
        super().__init__(options)
        self._client = PiWebApiClient(options)
        self._fetcher = SeriesFetcher(self._client, options.get("timezone") or DEFAULT_TIMEZONE)
        self.max_samples = as_int(options.get("max_samples"), DEFAULT_MAX_SAMPLES)
        self.server_tz = ZoneInfo(options.get("server_timezone") or DEFAULT_TIMEZONE)

    def list_tables(self) -> List[str]:
        """Return a list of all supported table names."""
        return list(SUPPORTED_TABLES)

    def get_table_schema(self, table_name: str, table_options: Dict[str, str]) -> StructType:
        """Return the schema for a table; one metadata request per attribute."""
        self._validate_table(table_name)
        paths = self._attribute_paths(table_options)
        names = [make_valid_name(self._fetcher.resolve_attribute(p)["name"]) for p in paths]
        return synced_table_schema(unique_names(names))

    def read_table_metadata(self, table_name: str, table_options: Dict[str, str]) -> Dict:
        """Return metadata for a given table."""
        self._validate_table(table_name)
        return dict(TABLE_METADATA[table_name])

    def read_table(
        self, table_name: str, start_offset: dict, table_options: Dict[str, str]
    ) -> Tuple[Iterator[dict], dict]:
        """Read synced rows after ``start_offset``."""
        self._validate_table(table_name)
        paths = self._attribute_paths(table_options)
        start = table_options.get("startTime") or table_options.get("start_time") or "-1d"
        end = table_options.get("endTime") or table_options.get("end_time") or "*"
        interval = parse_interval(table_options.get("interval") or "1h")
        max_samples = as_int(table_options.get("max_samples"), self.max_samples)

        last = None
        if isinstance(start_offset, dict) and start_offset.get("offset"):
            last = parse_absolute_time(start_offset["offset"])
        if last is not None:
            start = last + interval.duration
            if not is_relative_time(end):
                end_dt = parse_absolute_time(end)
                if end_dt is not None:
                    if end_dt.tzinfo is None:
                        # the server reads naive strings in its own local time
                        end_dt = end_dt.replace(tzinfo=self.server_tz)
                    if start > end_dt:
                        return iter(()), start_offset
                    end = end_dt

        splitter = RangeSplitter(self._fetcher, max_samples=max_samples)
        table = splitter.fetch(paths, start, end, interval)
        if not len(table):
            return iter(()), start_offset

        return table.to_records(), {"offset": format_pi_time(table.timestamps[-1])}

    def _attribute_paths(self, table_options: Dict[str, str]) -> List[str]:
        paths = split_list_option(table_options.get("attribute_paths"))
        if not paths:
            raise ValueError("Table option 'attribute_paths' is required")
        return paths

    def _validate_table(self, table_name: str) -> None:
        if table_name not in SUPPORTED_TABLES:
            raise ValueError(
                f"Table '{table_name}' is not supported. "
                f"Available tables: {', '.join(SUPPORTED_TABLES)}"
            )


__all__ = ["OsipiLakeflowConnect", "TABLE_INTERPOLATED"]
