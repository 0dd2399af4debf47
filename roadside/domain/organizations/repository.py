"""Organization repository - Database operations for organizations and members"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Organization, OrganizationMember, Policy
from ...shared.validators import LIKE_ESCAPE, like_pattern


class OrganizationRepository:
    """Repository for organization database operations"""

    @staticmethod
    def get_by_id(db: Session, organization_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.id == organization_id).first()

    @staticmethod
    def get_by_owner(db: Session, owner_id: int) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.owner_id == owner_id).first()

    @staticmethod
    def list_query(db: Session, status: Optional[str] = None, search: Optional[str] = None):
        query = db.query(Organization)
        if status:
            query = query.filter(Organization.status == status)
        if search:
            query = query.filter(Organization.company_name.ilike(like_pattern(search), escape=LIKE_ESCAPE))
        return query.order_by(Organization.created_at.desc(), Organization.id.desc())

    @staticmethod
    def create(db: Session, **data) -> Organization:
        organization = Organization(**data)
        db.add(organization)
        db.commit()
        db.refresh(organization)
        return organization

    @staticmethod
    def update(db: Session, organization: Organization, **updates) -> Organization:
        for key, value in updates.items():
            if hasattr(organization, key):
                setattr(organization, key, value)
        db.commit()
        db.refresh(organization)
        return organization

    @staticmethod
    def delete(db: Session, organization: Organization) -> None:
        db.delete(organization)
        db.commit()

    @staticmethod
    def get_member(db: Session, organization_id: int, user_id: int) -> Optional[OrganizationMember]:
        return (
            db.query(OrganizationMember)
            .filter(OrganizationMember.organization_id == organization_id, OrganizationMember.user_id == user_id)
            .first()
        )

    @staticmethod
    def add_member(db: Session, **data) -> OrganizationMember:
        member = OrganizationMember(**data)
        db.add(member)
        db.commit()
        db.refresh(member)
        return member

    @staticmethod
    def remove_member(db: Session, member: OrganizationMember) -> None:
        db.delete(member)
        db.commit()

    @staticmethod
    def get_policy_by_number(db: Session, policy_number: str) -> Optional[Policy]:
        return db.query(Policy).filter(func.lower(Policy.policy_number) == policy_number.strip().lower()).first()

    @staticmethod
    def bulk_set_should_upsert(db: Session, organization_ids: list[int], should_upsert: bool) -> tuple[int, int]:
        """Returns (matched_count, modified_count)"""
        organizations = db.query(Organization).filter(Organization.id.in_(organization_ids)).all()
        modified = 0
        for organization in organizations:
            if organization.should_upsert_policies != should_upsert:
                organization.should_upsert_policies = should_upsert
                modified += 1
        db.commit()
        return len(organizations), modified
