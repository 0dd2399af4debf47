"""Policy repository - Database operations for policies"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import Policy
from ...shared.validators import LIKE_ESCAPE, like_pattern


class PolicyRepository:
    """Repository for policy database operations"""

    @staticmethod
    def list_query(db: Session, organization_id: Optional[int] = None, search: Optional[str] = None):
        query = db.query(Policy)
        if organization_id is not None:
            query = query.filter(Policy.organization_id == organization_id)
        if search:
            pattern = like_pattern(search)
            query = query.filter(
                or_(
                    Policy.policy_number.ilike(pattern, escape=LIKE_ESCAPE),
                    Policy.insured_first_name.ilike(pattern, escape=LIKE_ESCAPE),
                    Policy.insured_last_name.ilike(pattern, escape=LIKE_ESCAPE),
                    Policy.address.ilike(pattern, escape=LIKE_ESCAPE),
                )
            )
        return query.order_by(Policy.created_at.desc(), Policy.id.desc())

    @staticmethod
    def get_by_id(db: Session, policy_id: int) -> Optional[Policy]:
        return db.query(Policy).filter(Policy.id == policy_id).first()

    @staticmethod
    def get_by_number(db: Session, policy_number: str, organization_id: Optional[int] = None) -> Optional[Policy]:
        """Case-insensitive exact match on the policy number"""
        query = db.query(Policy).filter(func.lower(Policy.policy_number) == policy_number.strip().lower())
        if organization_id is not None:
            query = query.filter(Policy.organization_id == organization_id)
        return query.first()

    @staticmethod
    def existing_numbers(db: Session, organization_id: int) -> set[str]:
        rows = db.query(Policy.policy_number).filter(Policy.organization_id == organization_id).all()
        return {row[0] for row in rows}

    @staticmethod
    def delete_for_organization(db: Session, organization_id: int) -> int:
        return db.query(Policy).filter(Policy.organization_id == organization_id).delete(synchronize_session=False)

    @staticmethod
    def create(db: Session, **data) -> Policy:
        policy = Policy(**data)
        db.add(policy)
        db.commit()
        db.refresh(policy)
        return policy

    @staticmethod
    def bulk_insert(db: Session, rows: list[dict]) -> None:
        db.bulk_insert_mappings(Policy, rows)

    @staticmethod
    def update(db: Session, policy: Policy, **updates) -> Policy:
        for key, value in updates.items():
            if hasattr(policy, key):
                setattr(policy, key, value)
        db.commit()
        db.refresh(policy)
        return policy

    @staticmethod
    def delete(db: Session, policy: Policy) -> None:
        db.delete(policy)
        db.commit()
