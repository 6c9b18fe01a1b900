"""
Base repository shared by the swipe, match and message repositories.

Statements run on the caller's session and nothing here commits: services
decide where a transaction ends, which the match engine relies on to commit
the ledger write separately from the match transition.
"""

from __future__ import annotations
from typing import Generic, TypeVar, Type
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
import logging

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BaseRepository(Generic[T]):
    """
    Generic repository bound to one model class.

    Example:
        class MessageRepository(BaseRepository[Message]):
            def __init__(self):
                super().__init__(Message)
    """

    def __init__(self, model: Type[T]):
        self.model = model

    async def create(
        self,
        db: AsyncSession,
        obj_in: dict
    ) -> T:
        """
        Insert a row and return it with server defaults loaded.

        Args:
            db: Active database session
            obj_in: Column values for the new row

        Returns:
            The flushed, refreshed instance (not committed)

        Raises:
            IntegrityError: e.g. a message pointing at an unknown match
        """
        try:
            db_obj = self.model(**obj_in)
            db.add(db_obj)
            await db.flush()
            await db.refresh(db_obj)
            return db_obj
        except IntegrityError as e:
            logger.warning(f"Integrity error inserting {self.model.__name__}: {e}")
            await db.rollback()
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error inserting {self.model.__name__}: {e}")
            await db.rollback()
            raise
