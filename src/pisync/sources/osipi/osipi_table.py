"""In-memory tables produced by the OSI PI source.

``AttributeSeries`` is one attribute's normalized interpolated values.
``SyncedTable`` puts one or more series on a shared timestamp axis; it is
what the public ``fetch`` returns and what the connector turns into records.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

TIME_COLUMN = "Time"


@dataclass
class AttributeSeries:
    """Timestamped numeric values of a single attribute, strictly increasing in time."""

    name: str
    unit: str = ""
    timestamps: List[datetime] = field(default_factory=list)
    values: List[float] = field(default_factory=list)
    path: str = ""

    def __len__(self) -> int:
        return len(self.timestamps)

    @property
    def first(self) -> Optional[datetime]:
        return self.timestamps[0] if self.timestamps else None

    @property
    def last(self) -> Optional[datetime]:
        return self.timestamps[-1] if self.timestamps else None


@dataclass
class SyncedTable:
    """A timestamp axis with one column of values (or None for "no data") per attribute."""

    timestamps: List[datetime] = field(default_factory=list)
    columns: Dict[str, List[Optional[float]]] = field(default_factory=dict)
    units: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.timestamps)

    @property
    def column_names(self) -> List[str]:
        return list(self.columns)

    @classmethod
    def from_series(cls, series: AttributeSeries) -> "SyncedTable":
        return cls(
            timestamps=list(series.timestamps),
            columns={series.name: list(series.values)},
            units={series.name: series.unit},
        )

    @classmethod
    def synchronize(cls, series_list: Sequence[AttributeSeries]) -> "SyncedTable":
        """Merge series on the sorted union of their timestamps.

        Column order follows ``series_list``; an attribute without a sample at a
        given timestamp gets None in that row.
        """
        if len(series_list) == 1:
            return cls.from_series(series_list[0])

        axis = sorted({ts for s in series_list for ts in s.timestamps})
        position = {ts: i for i, ts in enumerate(axis)}

        columns: Dict[str, List[Optional[float]]] = {}
        units: Dict[str, str] = {}
        for s in series_list:
            col: List[Optional[float]] = [None] * len(axis)
            for ts, v in zip(s.timestamps, s.values):
                col[position[ts]] = v
            columns[s.name] = col
            units[s.name] = s.unit
        return cls(timestamps=axis, columns=columns, units=units)

    def concat(self, other: "SyncedTable") -> "SyncedTable":
        """Append a later table, dropping its rows at or before this table's last timestamp.

        Columns are matched by name; a column only present on one side is
        filled with None on the other.
        """
        return SyncedTable.concat_all([self, other])

    @classmethod
    def concat_all(cls, parts: Sequence["SyncedTable"]) -> "SyncedTable":
        """Join chronologically ordered tables in one pass.

        Rows of a part at or before the last timestamp already joined are
        dropped. Lists are extended in place, so the cost is linear in the
        total number of rows.
        """
        timestamps: List[datetime] = []
        columns: Dict[str, List[Optional[float]]] = {}
        units: Dict[str, str] = {}

        for part in parts:
            if not part.timestamps:
                continue
            start = 0
            if timestamps:
                cutoff = timestamps[-1]
                while start < len(part.timestamps) and part.timestamps[start] <= cutoff:
                    start += 1
            n_new = len(part.timestamps) - start

            for name in part.columns:
                if name not in columns:
                    columns[name] = [None] * len(timestamps)
                    units[name] = part.units.get(name, "")
            for name, col in columns.items():
                src = part.columns.get(name)
                if src is None:
                    col.extend([None] * n_new)
                else:
                    col.extend(src[start:])
            timestamps.extend(part.timestamps[start:])

        if not timestamps:
            # keep the column layout of empty parts
            for part in parts:
                for name in part.columns:
                    columns.setdefault(name, [])
                    units.setdefault(name, part.units.get(name, ""))
        return cls(timestamps=timestamps, columns=columns, units=units)

    def column(self, name: str) -> List[Optional[float]]:
        return self.columns[name]

    def to_records(self) -> Iterator[dict]:
        """Yield one dict per row: ``{"Time": datetime, <column>: value or None}``."""
        names = list(self.columns)
        for i, ts in enumerate(self.timestamps):
            row = {TIME_COLUMN: ts}
            for n in names:
                row[n] = self.columns[n][i]
            yield row
