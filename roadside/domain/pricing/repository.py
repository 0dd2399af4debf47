"""Pricing repository - Database operations for priced services"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import Service


class ServiceRepository:
    """Repository for service database operations"""

    @staticmethod
    def accessible_query(db: Session, organization_id: Optional[int]):
        """Organization services plus system services"""
        query = db.query(Service)
        if organization_id is None:
            return query.filter(Service.organization_id.is_(None))
        return query.filter(or_(Service.organization_id == organization_id, Service.organization_id.is_(None)))

    @staticmethod
    def get_by_id(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_accessible_by_ids(db: Session, ids: list[int], organization_id: Optional[int]) -> list[Service]:
        return ServiceRepository.accessible_query(db, organization_id).filter(Service.id.in_(ids)).all()

    @staticmethod
    def save(db: Session, service: Service) -> Service:
        db.add(service)
        db.commit()
        db.refresh(service)
        return service

    @staticmethod
    def delete(db: Session, service: Service) -> None:
        db.delete(service)
        db.commit()
