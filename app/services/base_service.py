# app/services/base_service.py
"""Base service with common persistence helpers."""
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Type, Any, Dict, Optional, TypeVar, Generic

from ..models.enrollment import Enrollment

# Define generic type
T = TypeVar('T')

class BaseService(Generic[T]):
    def __init__(self, model: Type[T], db: AsyncSession):
        self.model = model
        self.db = db

    async def get(self, id: Any) -> Optional[T]:
        stmt = select(self.model).where(self.model.id == id)
        if hasattr(self.model, 'is_deleted'):
            stmt = stmt.where(self.model.is_deleted == False)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def add(self, obj_in: Dict) -> T:
        """Stage a new row in the current unit of work without committing."""
        obj = self.model(**obj_in)
        self.db.add(obj)
        return obj

    async def lock_enrollment(self, enrollment_id: Any) -> Optional[Enrollment]:
        """Load an enrollment row FOR UPDATE (a no-op on SQLite)."""
        stmt = (
            select(Enrollment)
            .where(Enrollment.id == enrollment_id, Enrollment.is_deleted == False)
            .with_for_update()
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()
