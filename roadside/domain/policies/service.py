"""Policy service - Business logic for policy operations"""

import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import Organization, Policy, User
from ...shared.pagination import paginate_query
from ...shared.validators import parse_policy_date
from .repository import PolicyRepository
from .schemas import PolicyCreate, PolicyResponse, PolicyUpdate

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 1000

POLICY_COLUMNS = (
    "policy_number",
    "insured_first_name",
    "insured_last_name",
    "policy_effective_date",
    "policy_expiration_date",
    "risk_address_line_1",
    "risk_address_city",
    "risk_address_state",
    "risk_address_zip_code",
    "agency_name",
)


def build_policy_address(row: dict) -> str:
    parts = (
        row.get("risk_address_line_1"),
        row.get("risk_address_city"),
        row.get("risk_address_state"),
        row.get("risk_address_zip_code"),
    )
    return " ".join(str(p).strip() for p in parts if p and str(p).strip())


def serialize_policy(policy: Policy) -> dict:
    return PolicyResponse.model_validate(policy).model_dump(mode="json")


def policy_validation_result(policy: Optional[Policy], now: Optional[datetime] = None) -> dict:
    """exists / expired / valid, as reported to the voice assistant"""
    if not policy:
        return {"exists": False, "expired": None, "message": "Policy does not exist"}

    expires = parse_policy_date(policy.policy_expiration_date)
    if expires and expires < (now or datetime.utcnow()):
        return {"exists": True, "expired": True, "message": "The policy exists but is expired"}

    return {
        "exists": True,
        "expired": False,
        "policyData": serialize_policy(policy),
        "message": (
            "The policy exists and is still valid. Use this when validating the vehicle color, "
            "make and other details."
        ),
    }


class PolicyService:
    """Service layer for policy business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PolicyRepository()

    def _organization_scope(self, user: User) -> Optional[int]:
        if user.is_admin:
            return None
        org = get_user_organization(self.db, user)
        if not org:
            raise HTTPException(status_code=404, detail="User organization not found")
        return org.id

    def list_policies(self, user: User, page=1, limit=10, search: Optional[str] = None) -> dict:
        query = self.repo.list_query(self.db, self._organization_scope(user), search)
        return paginate_query(query, page, limit, serializer=serialize_policy)

    def get_policy(self, policy_id: int, user: User) -> Policy:
        policy = self.repo.get_by_id(self.db, policy_id)
        organization_id = self._organization_scope(user)
        if not policy or (organization_id is not None and policy.organization_id != organization_id):
            raise HTTPException(status_code=404, detail="Policy not found")
        return policy

    def create_policy(self, data: PolicyCreate, user: User) -> Policy:
        org = get_user_organization(self.db, user)
        if not org:
            raise HTTPException(status_code=404, detail="User organization not found")
        if self.repo.get_by_number(self.db, data.policy_number, org.id):
            raise HTTPException(
                status_code=400,
                detail=f"Policy with number {data.policy_number} already exists in this organization",
            )

        fields = data.model_dump(exclude_none=True)
        fields["address"] = build_policy_address(fields)
        policy = self.repo.create(self.db, organization_id=org.id, **fields)
        logger.info(f"✅ Policy {policy.policy_number} created for organization {org.id}")
        return policy

    def update_policy(self, policy_id: int, data: PolicyUpdate, user: User) -> Policy:
        policy = self.get_policy(policy_id, user)
        updates = data.model_dump(exclude_unset=True)
        merged = {**{c: getattr(policy, c) for c in POLICY_COLUMNS}, **updates}
        updates["address"] = build_policy_address(merged)
        return self.repo.update(self.db, policy, **updates)

    def delete_policy(self, policy_id: int, user: User) -> dict:
        policy = self.get_policy(policy_id, user)
        self.repo.delete(self.db, policy)
        return {"message": "Policy deleted successfully"}

    def validate_policy(self, policy_number: Optional[str]) -> dict:
        if not policy_number or not str(policy_number).strip():
            return {"exists": False, "expired": None, "message": "Policy number is required"}
        return policy_validation_result(self.repo.get_by_number(self.db, str(policy_number)))

    # ------------------------------------------------------------------
    # Bulk upload
    # ------------------------------------------------------------------

    def _policy_row(self, row: dict, organization_id: int) -> dict:
        fields = {c: row.get(c) for c in POLICY_COLUMNS if row.get(c) not in (None, "")}
        fields["policy_number"] = str(row["policy_number"]).strip()
        fields["address"] = build_policy_address(row)
        fields["vehicles"] = row.get("vehicles") or []
        fields["organization_id"] = organization_id
        return fields

    def bulk_upload(self, rows: list[dict], organization_id: int) -> dict:
        """
        Import uploaded policies for an organization.

        With the organization's upsert mode on, its policies are replaced wholesale in
        batches; otherwise each row is inserted unless the number already exists.
        """
        if not rows:
            raise ValueError("No policy data provided")

        organization = self.db.get(Organization, organization_id)
        if not organization:
            raise ValueError("Organization not found")

        started = time.monotonic()
        successful: list[dict] = []
        failed: list[dict] = []

        valid_rows = []
        for row in rows:
            if not row.get("policy_number"):
                failed.append({"policy_number": "unknown", "error": "Policy number is required", "success": False})
                continue
            valid_rows.append(self._policy_row(row, organization_id))

        upsert = bool(organization.should_upsert_policies)
        if upsert:
            deleted = self.repo.delete_for_organization(self.db, organization_id)
            self.db.commit()
            logger.info(f"🔄 Upsert mode: removed {deleted} existing policies for organization {organization_id}")

            for start in range(0, len(valid_rows), UPSERT_BATCH_SIZE):
                batch = valid_rows[start : start + UPSERT_BATCH_SIZE]
                try:
                    self.repo.bulk_insert(self.db, batch)
                    self.db.commit()
                    successful.extend({"policy_number": p["policy_number"], "success": True} for p in batch)
                except SQLAlchemyError as e:
                    self.db.rollback()
                    logger.error(f"❌ Error inserting policy batch at {start}: {str(e)}")
                    failed.extend(
                        {"policy_number": p["policy_number"], "error": "Batch insert failed", "success": False}
                        for p in batch
                    )
        else:
            existing = self.repo.existing_numbers(self.db, organization_id)
            for fields in valid_rows:
                number = fields["policy_number"]
                if number in existing:
                    failed.append(
                        {
                            "policy_number": number,
                            "error": f"Policy with number {number} already exists in this organization",
                            "success": False,
                        }
                    )
                    continue
                policy = self.repo.create(self.db, **fields)
                existing.add(number)
                successful.append({"policy_number": number, "id": policy.id, "success": True})

        total = len(rows)
        summary = {
            "total": total,
            "successful": len(successful),
            "failed": len(failed),
            "successRate": round(len(successful) / total * 100, 2) if total else 0.0,
            "processingTimeMs": int((time.monotonic() - started) * 1000),
            "errors": failed,
        }
        logger.info(
            f"📊 Policy upload for organization {organization_id}: "
            f"{summary['successful']}/{total} succeeded ({'UPSERT' if upsert else 'INDIVIDUAL'})"
        )
        return {
            "message": "Policies bulk upload completed",
            "mode": "upsert" if upsert else "individual",
            "summary": summary,
            "uploaded": successful,
            "count": len(successful),
        }
