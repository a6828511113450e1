"""
Base repository class for the SQL data access layer.

Repositories keep query logic in one place so ``SqlStore`` only deals with
sessions and record conversion.

Example:
    class MatchRepository(BaseRepository[Match]):
        def find_for_player(self, address: str) -> List[Match]:
            return self.where(or_(Match.player1 == address, Match.player2 == address))
"""
from abc import ABC
from typing import TypeVar, Generic, Type, Optional, List, Any

from sqlalchemy import desc
from sqlalchemy.orm import Query, Session

T = TypeVar("T")


class BaseRepository(Generic[T], ABC):
    """
    Common data access methods over one SQLAlchemy model.

    Attributes:
        model_type: The SQLAlchemy model class this repository manages
        db: The database session
        pk_name: Name of the primary key column
    """

    pk_name = "id"

    def __init__(self, model_type: Type[T], db: Session):
        self.model_type = model_type
        self.db = db

    @property
    def _pk(self):
        return getattr(self.model_type, self.pk_name)

    # ========================================================================
    # CRUD Operations
    # ========================================================================

    def find_by_id(self, id: Any) -> Optional[T]:
        """Find a single record by primary key."""
        return self.db.query(self.model_type).filter(self._pk == id).first()

    def find_all(
        self,
        limit: Optional[int] = None,
        order_by: Optional[str] = None
    ) -> List[T]:
        """
        Find all records.

        Args:
            limit: Maximum number of records to return
            order_by: Column name to order by (prefix with '-' for descending)
        """
        query = self._ordered(self.db.query(self.model_type), order_by)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def create(self, **kwargs) -> T:
        """Create a new record (not yet committed)."""
        instance = self.model_type(**kwargs)
        self.db.add(instance)
        return instance

    def upsert(self, id: Any, **kwargs) -> T:
        """Update the record with this primary key, or create it."""
        instance = self.find_by_id(id)
        if instance is None:
            return self.create(**{self.pk_name: id, **kwargs})
        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)
        return instance

    def update(self, id: Any, **kwargs) -> Optional[T]:
        """Update a record by primary key; None if not found."""
        instance = self.find_by_id(id)
        if instance:
            for key, value in kwargs.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
        return instance

    def delete(self, id: Any) -> bool:
        """Delete a record by primary key; False if not found."""
        instance = self.find_by_id(id)
        if instance:
            self.db.delete(instance)
            return True
        return False

    def exists(self, id: Any) -> bool:
        """Check if a record with given primary key exists."""
        return self.db.query(
            self.db.query(self.model_type).filter(self._pk == id).exists()
        ).scalar()

    # ========================================================================
    # Query Builders
    # ========================================================================

    def where(self, *criterion, order_by: Optional[str] = None, limit: Optional[int] = None) -> List[T]:
        """Filter records using SQLAlchemy expressions."""
        query = self._ordered(self.db.query(self.model_type).filter(*criterion), order_by)
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def _ordered(self, query: Query, order_by: Optional[str]) -> Query:
        if not order_by:
            return query
        if order_by.startswith('-'):
            return query.order_by(desc(getattr(self.model_type, order_by[1:])))
        return query.order_by(getattr(self.model_type, order_by))

    # ========================================================================
    # Save Operations
    # ========================================================================

    def flush(self) -> None:
        """Flush pending changes without committing."""
        self.db.flush()

