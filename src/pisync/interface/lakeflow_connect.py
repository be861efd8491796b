from abc import ABC, abstractmethod
from typing import Iterator

from pyspark.sql.types import StructType


class LakeflowConnect(ABC):
    """Base interface of a source connector.

    A connector exposes named tables. For each table it can describe the
    schema and ingestion metadata and read records in offset-delimited batches.
    """

    def __init__(self, options: dict[str, str]) -> None:
        """
        Args:
            options: Connection-level parameters such as the server URL and credentials.
        """
        self.options = options

    @abstractmethod
    def list_tables(self) -> list[str]:
        """Return the names of all tables this connector can read."""

    @abstractmethod
    def get_table_schema(
        self, table_name: str, table_options: dict[str, str]
    ) -> StructType:
        """
        Return the schema of a table.
        Args:
            table_name: The table to describe.
            table_options: Per-table parameters needed to determine the columns.
        Returns:
            A StructType describing one record of the table.
        """

    @abstractmethod
    def read_table_metadata(
        self, table_name: str, table_options: dict[str, str]
    ) -> dict:
        """
        Return ingestion metadata of a table.
        Returns:
            A dictionary with the keys:
                - primary_keys: list of column names identifying a record.
                - cursor_field: column used as incremental cursor.
                - ingestion_type: "snapshot" or "append".
        """

    @abstractmethod
    def read_table(
        self, table_name: str, start_offset: dict, table_options: dict[str, str]
    ) -> tuple[Iterator[dict], dict]:
        """
        Read one batch of records starting after ``start_offset``.

        The caller passes the returned offset back as ``start_offset`` on the
        next call and stops once the returned offset equals the one it sent.
        ``start_offset`` is None on the very first call.

        Returns:
            A two-element tuple of (records, offset).
            records: An iterator of JSON-compatible dicts.
            offset: A dict representing the position after this batch.
        """
