"""Organization service - Business logic for organization operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Organization, User
from ...services import vapi_service
from ...services.vapi_service import VapiError
from ...shared.pagination import paginate, paginate_query
from .repository import OrganizationRepository
from .schemas import MemberResponse, OrganizationCreate, OrganizationResponse, OrganizationUpdate

logger = logging.getLogger(__name__)

# Request field -> column
UPDATE_FIELDS = {
    "companyName": "company_name",
    "companyWebsite": "company_website",
    "companyAddress": "company_address",
    "businessEntityType": "business_entity_type",
    "organizationType": "organization_type",
    "urlSlug": "url_slug",
    "contacts": "contacts",
    "permissions": "permissions",
    "inboundAi": "inbound_ai",
    "outboundAi": "outbound_ai",
    "aiPhoneNumber": "ai_phone_number",
    "marketingPhoneNumber": "marketing_phone_number",
}


def serialize_organization(organization: Organization) -> dict:
    return OrganizationResponse.model_validate(organization).model_dump(mode="json")


class OrganizationService:
    """Service layer for organization business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = OrganizationRepository()

    def get_organization(self, organization_id: int) -> Organization:
        organization = self.repo.get_by_id(self.db, organization_id)
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        return organization

    def get_accessible_organization(self, organization_id: int, user: User) -> Organization:
        """Admins, the owner and approved members may read an organization"""
        organization = self.get_organization(organization_id)
        if user.is_admin or organization.owner_id == user.id:
            return organization
        member = self.repo.get_member(self.db, organization_id, user.id)
        if member and member.status == "approved":
            return organization
        raise HTTPException(status_code=403, detail="Access to this organization denied")

    def get_owned_organization(self, organization_id: int, user: User) -> Organization:
        """Admins and the owner may modify an organization"""
        organization = self.get_organization(organization_id)
        if not user.is_admin and organization.owner_id != user.id:
            raise HTTPException(status_code=403, detail="Only the organization owner can do this")
        return organization

    def list_organizations(self, page=1, limit=10, status: Optional[str] = None, search: Optional[str] = None) -> dict:
        query = self.repo.list_query(self.db, status=status, search=search)
        return paginate_query(query, page, limit, serializer=serialize_organization)

    def create_organization(self, data: OrganizationCreate, user: User) -> Organization:
        owner_id = user.id
        if data.clientId is not None and data.clientId != user.id:
            if not user.is_admin:
                raise HTTPException(status_code=403, detail="Only admins can create organizations for other users")
            if not self.db.get(User, data.clientId):
                raise HTTPException(status_code=404, detail="Client not found")
            owner_id = data.clientId

        if self.repo.get_by_owner(self.db, owner_id):
            raise HTTPException(status_code=400, detail="User already has an organization")

        organization = self.repo.create(
            self.db,
            owner_id=owner_id,
            company_name=data.companyName,
            company_website=data.companyWebsite,
            company_address=data.companyAddress,
            business_entity_type=data.businessEntityType,
            organization_type=data.organizationType,
            status="pending",
        )
        logger.info(f"✅ Organization {organization.id} created for owner {owner_id}")
        return organization

    def update_organization(self, organization_id: int, data: OrganizationUpdate, user: User) -> Organization:
        organization = self.get_owned_organization(organization_id, user)
        updates = {
            UPDATE_FIELDS[field]: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if field in UPDATE_FIELDS
        }
        return self.repo.update(self.db, organization, **updates)

    def delete_organization(self, organization_id: int) -> dict:
        organization = self.get_organization(organization_id)
        self.repo.delete(self.db, organization)
        logger.info(f"🗑️ Organization {organization_id} deleted")
        return {"message": "Organization deleted successfully"}

    def get_by_owner(self, user: User) -> Organization:
        organization = self.repo.get_by_owner(self.db, user.id)
        if not organization:
            raise HTTPException(status_code=404, detail="Organization not found")
        return organization

    def get_by_policy_number(self, policy_number: str) -> dict:
        policy = self.repo.get_policy_by_number(self.db, policy_number)
        if not policy:
            raise HTTPException(status_code=404, detail="Policy not found")
        organization = self.get_organization(policy.organization_id)
        return {"organizationId": organization.id, "companyName": organization.company_name}

    # ------------------------------------------------------------------
    # Members
    # ------------------------------------------------------------------

    def list_members(self, organization_id: int, user: User, page=1, per_page=10) -> dict:
        organization = self.get_accessible_organization(organization_id, user)
        members = [MemberResponse.model_validate(m).model_dump(mode="json") for m in organization.members]
        return paginate(members, page, per_page)

    def add_member(self, organization_id: int, member_user_id: int, status: str, user: User) -> Organization:
        organization = self.get_owned_organization(organization_id, user)
        if not self.db.get(User, member_user_id):
            raise HTTPException(status_code=404, detail="User not found")
        if self.repo.get_member(self.db, organization_id, member_user_id):
            raise HTTPException(status_code=400, detail="User is already a member")

        self.repo.add_member(
            self.db,
            organization_id=organization_id,
            user_id=member_user_id,
            status=status,
            added_by_id=user.id,
        )
        self.db.refresh(organization)
        logger.info(f"👥 User {member_user_id} added to organization {organization_id}")
        return organization

    def remove_member(self, organization_id: int, member_user_id: int, user: User) -> Organization:
        organization = self.get_owned_organization(organization_id, user)
        member = self.repo.get_member(self.db, organization_id, member_user_id)
        if not member:
            raise HTTPException(status_code=400, detail="User is not a member of this organization")
        self.repo.remove_member(self.db, member)
        self.db.refresh(organization)
        return organization

    # ------------------------------------------------------------------
    # Verification & AI setup
    # ------------------------------------------------------------------

    async def setup_ai(self, organization: Organization) -> dict:
        """
        Create the inbound and outbound VAPI assistants and record their IDs.

        Each ID is saved as soon as VAPI returns it; assistants already recorded
        are not created again on retry.
        """
        name = organization.company_name or f"Organization {organization.id}"
        try:
            if not organization.inbound_assistant_id:
                inbound = await vapi_service.create_inbound_assistant(name, organization.id)
                organization.inbound_assistant_id = inbound.get("id")
                self.db.commit()
            if not organization.outbound_assistant_id:
                outbound = await vapi_service.create_outbound_assistant(name, organization.id)
                organization.outbound_assistant_id = outbound.get("id")
                self.db.commit()
        except VapiError as e:
            logger.error(f"❌ AI setup failed for organization {organization.id}: {str(e)}")
            organization.ai_setup_status = "failed"
            organization.ai_setup_error = str(e)
            self.db.commit()
            return {"success": False, "error": str(e)}

        organization.inbound_ai = True
        organization.outbound_ai = True
        organization.ai_setup_status = "completed"
        organization.ai_setup_error = None
        self.db.commit()
        logger.info(f"🎉 AI setup completed for organization {organization.id}")
        return {
            "success": True,
            "inboundAssistantId": organization.inbound_assistant_id,
            "outboundAssistantId": organization.outbound_assistant_id,
        }

    async def set_status(self, organization_id: int, status: str) -> dict:
        """Move an organization through pending/verified/denied/deactivated"""
        organization = self.get_organization(organization_id)

        first_verification = (
            status == "verified" and not organization.is_verified and organization.status != "verified"
        )
        organization.status = status
        organization.is_verified = status == "verified"
        self.db.commit()
        logger.info(f"✅ Organization {organization_id} status updated: {status}")

        ai_setup = None
        if first_verification:
            logger.info(f"🚀 Organization {organization_id} verified for the first time, triggering AI setup")
            ai_setup = await self.setup_ai(organization)

        self.db.refresh(organization)
        return {"organization": serialize_organization(organization), "aiSetup": ai_setup}

    async def retry_ai_setup(self, organization_id: int) -> dict:
        organization = self.get_organization(organization_id)
        if not organization.is_verified or organization.status != "verified":
            raise HTTPException(status_code=400, detail="Organization must be verified before setting up AI")

        logger.info(f"🔄 Retrying AI setup for organization {organization_id}")
        ai_setup = await self.setup_ai(organization)
        self.db.refresh(organization)
        return {"organization": serialize_organization(organization), "aiSetup": ai_setup}

    async def set_marketing(self, organization: Organization, enabled: bool) -> Organization:
        """Toggle marketing; the first enable creates the marketing VAPI agents"""
        organization.has_marketing_enabled = enabled
        self.db.commit()

        agents = organization.marketing_agents or {}
        if not enabled or (agents.get("inbound") and agents.get("outbound") and agents.get("web")):
            return organization

        try:
            created = await vapi_service.create_marketing_agents(
                organization.company_name or f"Organization {organization.id}", organization.id
            )
        except VapiError as e:
            logger.error(f"❌ Failed to create marketing agents for organization {organization.id}: {str(e)}")
            raise HTTPException(status_code=502, detail=f"Failed to create marketing agents: {str(e)}") from e

        organization.marketing_agents = {**agents, **created}
        self.db.commit()
        self.db.refresh(organization)
        return organization

    # ------------------------------------------------------------------
    # Policy upsert mode
    # ------------------------------------------------------------------

    def get_should_upsert(self, organization_id: int) -> dict:
        organization = self.get_organization(organization_id)
        return {"organizationId": organization.id, "shouldUpsertPolicies": bool(organization.should_upsert_policies)}

    def set_should_upsert(self, organization_id: int, should_upsert: bool) -> dict:
        organization = self.get_organization(organization_id)
        organization.should_upsert_policies = should_upsert
        self.db.commit()
        logger.info(
            f"📋 Organization {organization_id} upsert mode {'ENABLED' if should_upsert else 'DISABLED'}"
        )
        return {"organizationId": organization.id, "shouldUpsertPolicies": should_upsert}

    def bulk_set_should_upsert(self, organization_ids: list[int], should_upsert: bool) -> dict:
        if not organization_ids:
            raise HTTPException(status_code=400, detail="Organization IDs array is required")
        matched, modified = self.repo.bulk_set_should_upsert(self.db, organization_ids, should_upsert)
        logger.info(f"📋 Bulk updated {modified} organizations - upsert mode {should_upsert}")
        return {"modifiedCount": modified, "matchedCount": matched, "shouldUpsert": should_upsert}
