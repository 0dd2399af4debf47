"""Vehicle classification repository"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import VehicleClassification


class VehicleClassificationRepository:
    """Repository for vehicle classification database operations"""

    @staticmethod
    def get_for_organization(db: Session, organization_id: Optional[int]) -> Optional[VehicleClassification]:
        """Exact row for the organization (None selects the system default)"""
        query = db.query(VehicleClassification)
        if organization_id is None:
            return query.filter(VehicleClassification.organization_id.is_(None)).first()
        return query.filter(VehicleClassification.organization_id == organization_id).first()

    @staticmethod
    def list_all(db: Session) -> list[VehicleClassification]:
        rows = db.query(VehicleClassification).order_by(VehicleClassification.organization_id).all()
        # System default first
        return sorted(rows, key=lambda r: (r.organization_id is not None, r.organization_id or 0))

    @staticmethod
    def save(db: Session, classification: VehicleClassification) -> VehicleClassification:
        db.add(classification)
        db.commit()
        db.refresh(classification)
        return classification

    @staticmethod
    def delete(db: Session, classification: VehicleClassification) -> None:
        db.delete(classification)
        db.commit()
