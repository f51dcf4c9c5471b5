from typing import Generic, Iterator, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models import Base

T = TypeVar("T", bound=Base)


class RecordStore(Generic[T]):
    """
    Ordered key-value view over one table, keyed by record id.

    Every write commits on its own; there is no transaction spanning
    more than one record.
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model

    def get(self, key: str) -> Optional[T]:
        return self.db.get(self.model, key)

    def insert(self, record: T) -> T:
        self.db.add(record)
        self.db.commit()
        return record

    def remove(self, key: str) -> Optional[T]:
        record = self.get(key)
        if record is None:
            return None
        self.db.delete(record)
        self.db.commit()
        return record

    def values(self) -> Iterator[T]:
        return iter(self.db.execute(select(self.model).order_by(self.model.id)).scalars().all())
