"""Webhook lookups - organizations by number or assistant, call activity records"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import AICallActivity, Organization


class WebhookRepository:
    """Repository for the lookups VAPI callbacks need"""

    @staticmethod
    def get_by_ai_number(db: Session, phone_number: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.ai_phone_number == phone_number).first()

    @staticmethod
    def get_by_marketing_number(db: Session, phone_number: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.marketing_phone_number == phone_number).first()

    @staticmethod
    def get_by_inbound_assistant(db: Session, assistant_id: str) -> Optional[Organization]:
        return db.query(Organization).filter(Organization.inbound_assistant_id == assistant_id).first()

    @staticmethod
    def get_by_marketing_agent(db: Session, kind: str, assistant_id: str) -> Optional[Organization]:
        # marketing_agents is a small JSON map; matched in Python to stay portable across dialects
        candidates = db.query(Organization).filter(Organization.marketing_agents.isnot(None)).all()
        return next((o for o in candidates if (o.marketing_agents or {}).get(kind) == assistant_id), None)

    @staticmethod
    def get_activity(db: Session, call_id: str) -> Optional[AICallActivity]:
        return db.query(AICallActivity).filter(AICallActivity.call_id == call_id).first()

    @staticmethod
    def create_activity(db: Session, **data) -> AICallActivity:
        activity = AICallActivity(**data)
        db.add(activity)
        db.commit()
        db.refresh(activity)
        return activity

    @staticmethod
    def save(db: Session, obj):
        db.add(obj)
        db.commit()
        db.refresh(obj)
        return obj
