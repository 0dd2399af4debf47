"""Widget repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import OrganizationWidget


class WidgetRepository:
    """Repository for organization widget database operations"""

    @staticmethod
    def get_by_id(db: Session, widget_id: int) -> Optional[OrganizationWidget]:
        return db.query(OrganizationWidget).filter(OrganizationWidget.id == widget_id).first()

    @staticmethod
    def get_by_organization(db: Session, organization_id: int, active_only: bool = False) -> Optional[OrganizationWidget]:
        query = db.query(OrganizationWidget).filter(OrganizationWidget.organization_id == organization_id)
        if active_only:
            query = query.filter(OrganizationWidget.is_active.is_(True))
        return query.first()

    @staticmethod
    def save(db: Session, widget: OrganizationWidget) -> OrganizationWidget:
        db.add(widget)
        db.commit()
        db.refresh(widget)
        return widget

    @staticmethod
    def delete(db: Session, widget: OrganizationWidget) -> None:
        db.delete(widget)
        db.commit()
