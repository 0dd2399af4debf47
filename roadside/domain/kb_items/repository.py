"""KB item repository - Database operations for knowledge-base items"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import KbItem
from ...shared.validators import LIKE_ESCAPE, like_pattern

SORT_COLUMNS = {
    "createdAt": KbItem.created_at,
    "updatedAt": KbItem.updated_at,
    "title": KbItem.title,
    "type": KbItem.type,
}


class KbItemRepository:
    """Repository for KB item database operations"""

    @staticmethod
    def list_query(
        db: Session,
        status: Optional[str] = "active",
        item_type: Optional[str] = None,
        organization_id: Optional[int] = None,
        mechanic_id: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ):
        query = db.query(KbItem)
        if status:
            query = query.filter(KbItem.status == status)
        if item_type:
            query = query.filter(KbItem.type == item_type)
        if organization_id is not None:
            query = query.filter(KbItem.organization_id == organization_id)
        if mechanic_id is not None:
            query = query.filter(KbItem.mechanic_id == mechanic_id)
        if search:
            pattern = like_pattern(search)
            query = query.filter(
                or_(*(c.ilike(pattern, escape=LIKE_ESCAPE) for c in (KbItem.title, KbItem.description)))
            )

        column = SORT_COLUMNS.get(sort_by, KbItem.created_at)
        return query.order_by(column.asc() if sort_order == "asc" else column.desc(), KbItem.id.desc())

    @staticmethod
    def get_by_id(db: Session, item_id: int) -> Optional[KbItem]:
        return db.query(KbItem).filter(KbItem.id == item_id).first()

    @staticmethod
    def create(db: Session, **data) -> KbItem:
        item = KbItem(**data)
        db.add(item)
        db.commit()
        db.refresh(item)
        return item

    @staticmethod
    def update(db: Session, item: KbItem, **updates) -> KbItem:
        for key, value in updates.items():
            setattr(item, key, value)
        db.commit()
        db.refresh(item)
        return item
