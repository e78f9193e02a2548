"""
Append-only warehouse writer for report summaries and breakdowns
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type

from sqlalchemy import desc, insert, inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from core.database import create_session_maker
from core.exceptions import DatabaseError, PartialWriteError
from models.base import Base

logger = logging.getLogger(__name__)


class WarehouseSink:
    """
    Thin table writer over an async SQLAlchemy engine.

    Ensures:
    - Rows are only ever appended; nothing is updated or deleted
    - insert_rows commits each batch on its own, so a failure reports how much landed
    - insert_many writes a whole report run atomically
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_maker: Optional[async_sessionmaker] = None,
        batch_size: int = 500
    ):
        self.engine = engine
        self.session_maker = session_maker or create_session_maker(engine)
        self.batch_size = batch_size

    async def table_exists(self, table_name: str) -> bool:
        try:
            async with self.engine.connect() as conn:
                return await conn.run_sync(
                    lambda sync_conn: inspect(sync_conn).has_table(table_name)
                )
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to check table {table_name}",
                context={"operation": "INSPECT", "table_name": table_name},
                original_exception=e
            )

    async def create_tables(self) -> None:
        """Create every warehouse table that does not exist yet"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            raise DatabaseError(
                "Failed to create warehouse tables",
                context={"operation": "CREATE"},
                original_exception=e
            )
        logger.info(f"Warehouse tables ready: {', '.join(sorted(Base.metadata.tables))}")

    async def insert_rows(self, model: Type[Base], rows: Sequence[Dict[str, Any]]) -> int:
        """
        Append rows to the model's table in batches.

        Returns:
            Number of rows inserted

        Raises:
            PartialWriteError: a batch failed after earlier batches committed
            DatabaseError: the first batch failed (nothing was written)
        """
        if not rows:
            return 0

        table_name = model.__tablename__
        inserted = 0

        for index in range(0, len(rows), self.batch_size):
            batch = list(rows[index:index + self.batch_size])
            try:
                async with self.session_maker() as session:
                    async with session.begin():
                        await session.execute(insert(model), batch)
            except SQLAlchemyError as e:
                context = {
                    "operation": "INSERT",
                    "table_name": table_name,
                    "inserted": inserted,
                    "failed_rows": len(batch),
                    "batch_index": index // self.batch_size,
                }
                if inserted:
                    raise PartialWriteError(
                        f"Partial write to {table_name}: {inserted} of {len(rows)} rows inserted",
                        context=context,
                        original_exception=e
                    )
                raise DatabaseError(
                    f"Failed to insert rows into {table_name}",
                    context=context,
                    original_exception=e
                )
            inserted += len(batch)

        logger.info(f"Inserted {inserted} rows into {table_name}")
        return inserted

    async def insert_many(self, tables: Sequence[Tuple[Type[Base], Sequence[Dict[str, Any]]]]) -> int:
        """
        Append the rows of several tables in one transaction.

        Either every row of every table lands or none does, so a report run
        can be persisted again after a failure without duplicating rows.

        Raises:
            DatabaseError: any insert failed; the whole transaction was rolled back
        """
        counts = {}
        table_name = None
        try:
            async with self.session_maker() as session:
                async with session.begin():
                    for model, rows in tables:
                        table_name = model.__tablename__
                        for index in range(0, len(rows), self.batch_size):
                            await session.execute(insert(model), list(rows[index:index + self.batch_size]))
                        counts[table_name] = len(rows)
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to insert rows into {table_name}, transaction rolled back",
                context={
                    "operation": "INSERT",
                    "table_name": table_name,
                    "inserted": 0,
                    "tables": [model.__tablename__ for model, _ in tables],
                },
                original_exception=e
            )

        for name, count in counts.items():
            logger.info(f"Inserted {count} rows into {name}")
        return sum(counts.values())

    async def query(
        self,
        model: Type[Base],
        key_value: Any,
        limit: Optional[int] = 10
    ) -> List[Dict[str, Any]]:
        """Rows of one report run, newest first, matched on the model's report key column"""
        column = getattr(model, model.report_key_column)
        stmt = select(model).where(column == key_value).order_by(desc(model.created_at))
        if limit:
            stmt = stmt.limit(limit)

        try:
            async with self.session_maker() as session:
                result = await session.execute(stmt)
                records = result.scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseError(
                f"Failed to query {model.__tablename__}",
                context={"operation": "SELECT", "table_name": model.__tablename__},
                original_exception=e
            )

        return [
            {c.key: getattr(record, c.key) for c in inspect(model).column_attrs}
            for record in records
        ]

    async def dispose(self) -> None:
        await self.engine.dispose()
