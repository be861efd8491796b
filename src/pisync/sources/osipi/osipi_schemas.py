"""Spark schema and ingestion metadata of the OSI PI interpolated table."""

from typing import List

from pyspark.sql.types import DoubleType, StructField, StructType, TimestampType

from pisync.sources.osipi.osipi_table import TIME_COLUMN

TABLE_INTERPOLATED = "interpolated"

SUPPORTED_TABLES = [TABLE_INTERPOLATED]

TABLE_METADATA = {
    TABLE_INTERPOLATED: {
        "primary_keys": [TIME_COLUMN],
        "cursor_field": TIME_COLUMN,
        "ingestion_type": "append",
    },
}


def synced_table_schema(column_names: List[str]) -> StructType:
    """One non-null timestamp column followed by a nullable double per attribute."""
    fields = [StructField(TIME_COLUMN, TimestampType(), False)]
    fields += [StructField(name, DoubleType(), True) for name in column_names]
    return StructType(fields)
