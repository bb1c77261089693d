# File: serialtrack/repositories/demo_repository.py

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from serialtrack.db.models.demo import Demo
from serialtrack.repositories.base_repository import BaseRepository


class DemoRepository(BaseRepository[Demo]):
    """Repository for demo loans."""

    def __init__(self, session: Session):
        super().__init__(session, Demo)

    def get_by_demo_number(self, demo_number: str) -> Optional[Demo]:
        stmt = select(Demo).where(Demo.demo_number == demo_number)
        return self.session.execute(stmt).scalar_one_or_none()

    def list_demos(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Demo]:
        stmt = select(Demo)
        if status:
            stmt = stmt.where(Demo.status == status)
        stmt = stmt.order_by(Demo.created_date.desc(), Demo.id.desc())
        if limit:
            stmt = stmt.limit(limit)
        return list(self.session.execute(stmt).scalars().all())
