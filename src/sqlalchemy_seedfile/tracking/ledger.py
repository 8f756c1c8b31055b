"""
Ledger recording which seed files have been applied.
"""

import logging
from typing import List, Optional, Tuple

from sqlalchemy import Column, MetaData, String, Table, inspect, insert, select
from sqlalchemy.orm import Session

from sqlalchemy_seedfile.exceptions import MalformedLedger

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "schema_seeds"
DEFAULT_COLUMN = "filename"

TRANSACTIONAL_DDL_DIALECTS = {"postgresql", "sqlite", "mssql"}


def split_table_name(name: str) -> Tuple[Optional[str], str]:
    """Split ``schema.table`` into its parts."""
    if "." in name:
        schema, table = name.split(".", 1)
        return schema, table
    return None, name


class SeedLedger:
    """
    Tracks the seed files applied to a database.

    The ledger is a single-column table holding lower-cased file names. It
    is created on first use; an existing table without the declared column
    is reported, never patched.
    """

    def __init__(
        self,
        session: Session,
        table: str = DEFAULT_TABLE,
        column: str = DEFAULT_COLUMN,
    ):
        """
        Initialize the ledger.

        Args:
            session: SQLAlchemy session
            table: Ledger table name, optionally ``schema.table``
            column: Column holding applied file names
        """
        self.session = session
        self.schema, self.table_name = split_table_name(table)
        self.column = column
        self.table = Table(
            self.table_name,
            MetaData(schema=self.schema),
            Column(column, String(255), primary_key=True),
        )

    @property
    def qualified_name(self) -> str:
        return f"{self.schema}.{self.table_name}" if self.schema else self.table_name

    def supports_transactional_ddl(self) -> bool:
        """Check if the backing database can roll back schema changes."""
        return self.session.get_bind().dialect.name in TRANSACTIONAL_DDL_DIALECTS

    def ensure_schema(self) -> None:
        """Create the ledger table if needed and check its column."""
        connection = self.session.connection()
        inspector = inspect(connection)

        if not inspector.has_table(self.table_name, schema=self.schema):
            self.table.create(bind=connection)
            logger.info(f"Created seed ledger table {self.qualified_name}")
            return

        columns = {column["name"] for column in inspector.get_columns(self.table_name, schema=self.schema)}
        if self.column not in columns:
            raise MalformedLedger(
                f"Seeder table {self.qualified_name} does not contain column {self.column}"
            )

    def select_applied(self) -> List[str]:
        """
        Get the applied file names.

        Returns:
            Lower-cased file names, ordered
        """
        column = self.table.c[self.column]
        rows = self.session.execute(select(column).order_by(column)).scalars().all()
        return [name.lower() for name in rows]

    def insert_applied(self, filename: str) -> None:
        """
        Record a seed file as applied.

        Args:
            filename: File name (stored lower-cased)
        """
        self.session.execute(insert(self.table).values({self.column: filename.lower()}))
        logger.debug(f"Recorded seed {filename.lower()} in {self.qualified_name}")
