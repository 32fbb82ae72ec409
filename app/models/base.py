from sqlalchemy.orm import as_declarative, declared_attr
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import DateTime, Boolean, Uuid, func
import uuid


@as_declarative()
class Base:
    __abstract__ = True  # Prevents creating a table for the base class

    id: Mapped[uuid.UUID]

    @declared_attr
    def __tablename__(cls) -> str:
        return cls.__name__.lower()

    # Generic UUID type: native on PostgreSQL, CHAR(32) on SQLite
    id = mapped_column(Uuid(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4)
    created_at = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)
    updated_at = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Soft delete flag - indexed for performance
    is_deleted = mapped_column(Boolean, default=False, nullable=False, index=True)
