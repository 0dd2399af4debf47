"""Mechanic service - Business logic for mechanics and service providers"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import get_user_organization
from ...models import Mechanic, Organization, User
from ...services.geocoding_service import build_address, geocode_address
from ...shared.pagination import empty_page, paginate_query
from .repository import SORT_COLUMNS, MechanicRepository
from .schemas import MechanicCreate, MechanicResponse, MechanicUpdate

logger = logging.getLogger(__name__)

# Request field -> column
FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "companyName": "company_name",
    "businessName": "business_name",
    "email": "email",
    "email2": "email_2",
    "mobileNumber": "mobile_number",
    "businessNumber": "business_number",
    "officeNum": "office_num",
    "address": "address",
    "streetAddress": "street_address",
    "city": "city",
    "state": "state",
    "zipcode": "zipcode",
    "country": "country",
    "isPrimary": "is_primary",
    "isAccepted": "is_accepted",
    "services": "services",
    "tags": "tags",
    "specialty": "specialty",
    "providerType": "provider_type",
}

ADDRESS_FIELDS = ("address", "street_address", "city", "state", "zipcode", "country")

# Spreadsheet column -> column, for bulk uploads
UPLOAD_FIELD_MAP = {
    "firstName": "first_name",
    "lastName": "last_name",
    "companyName": "company_name",
    "businessName": "business_name",
    "primaryEmail": "email",
    "secondaryEmail": "email_2",
    "officeNumber": "mobile_number",
    "businessNumber": "business_number",
    "address": "address",
    "streetAddress": "street_address",
    "city": "city",
    "state": "state",
    "zipcode": "zipcode",
    "country": "country",
    "services": "services",
    "tags": "tags",
    "specialty": "specialty",
}


def serialize_mechanic(mechanic: Mechanic) -> dict:
    return MechanicResponse.model_validate(mechanic).model_dump(mode="json")


def mechanic_address(mechanic: Mechanic) -> str:
    return build_address(
        mechanic.street_address or mechanic.address,
        mechanic.city,
        mechanic.state,
        mechanic.country,
        mechanic.zipcode,
    )


class MechanicService:
    """Service layer for mechanic business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = MechanicRepository()

    def list_mechanics(
        self,
        user: User,
        page=1,
        limit=10,
        search: str = "",
        sort_field: str = "createdAt",
        sort: int = -1,
        blacklist: bool = True,
        provider_type: Optional[str] = None,
    ) -> dict:
        """
        Paginated mechanics.

        Admins see everyone. Other users see their organization's mechanics, minus the
        ones their organization blacklisted unless blacklist=False.
        """
        if page < 1 or limit < 1:
            raise HTTPException(status_code=400, detail="Page and limit must be positive integers")
        sort_field = str(sort_field).strip()
        if sort_field not in SORT_COLUMNS:
            raise HTTPException(status_code=400, detail="Invalid sort field")

        organization_id = None
        if not user.is_admin:
            org = get_user_organization(self.db, user)
            if not org:
                return empty_page(page, limit)
            organization_id = org.id

        query = self.repo.list_query(
            self.db,
            organization_id=organization_id,
            exclude_blacklisted=blacklist,
            search=search,
            sort_field=sort_field,
            sort=sort,
            provider_type=provider_type,
        )
        return paginate_query(query, page, limit, serializer=serialize_mechanic)

    def get_mechanic(self, mechanic_id: int, user: Optional[User] = None) -> Mechanic:
        mechanic = self.repo.get_by_id(self.db, mechanic_id)
        if not mechanic:
            raise HTTPException(status_code=404, detail="Mechanic not found")
        if user and not user.is_admin:
            org = get_user_organization(self.db, user)
            if not org or org.id not in mechanic.organization_ids:
                raise HTTPException(status_code=403, detail="Access to this mechanic denied")
        return mechanic

    async def _geocode(self, fields: dict) -> dict:
        address = build_address(
            fields.get("street_address") or fields.get("address"),
            fields.get("city"),
            fields.get("state"),
            fields.get("country"),
            fields.get("zipcode"),
        )
        location = await geocode_address(address) if address else None
        if not location:
            return {}
        return {"latitude": location["latitude"], "longitude": location["longitude"]}

    async def create_mechanic(self, data: MechanicCreate, user: User) -> Mechanic:
        for field, label in (
            ("firstName", "First name"),
            ("lastName", "Last name"),
            ("email", "Email"),
            ("mobileNumber", "Mobile number"),
        ):
            if not getattr(data, field):
                raise HTTPException(status_code=400, detail=f"{label} is required")

        if self.repo.get_by_email(self.db, data.email):
            raise HTTPException(status_code=400, detail="Email already exists")
        if self.repo.get_by_mobile(self.db, data.mobileNumber):
            raise HTTPException(status_code=400, detail="Mobile number already exists")

        fields = {
            FIELD_MAP[key]: value
            for key, value in data.model_dump(exclude_none=True).items()
            if key in FIELD_MAP
        }
        fields.update(await self._geocode(fields))

        org = get_user_organization(self.db, user)
        mechanic = self.repo.create(
            self.db,
            client_ids=[user.id],
            created_by_manual=True,
            is_accepted=user.is_admin,
            organizations=[org] if org else [],
            **fields,
        )
        logger.info(f"✅ Mechanic {mechanic.id} created by user {user.id}")
        return mechanic

    async def update_mechanic(self, mechanic_id: int, data: MechanicUpdate, user: User) -> Mechanic:
        mechanic = self.get_mechanic(mechanic_id, user)
        updates = {
            FIELD_MAP[key]: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if key in FIELD_MAP
        }
        if "is_accepted" in updates and not user.is_admin:
            raise HTTPException(status_code=403, detail="Only admins can accept mechanics")

        mobile = updates.get("mobile_number")
        if mobile and mobile != mechanic.mobile_number:
            existing = self.repo.get_by_mobile(self.db, mobile)
            if existing and existing.id != mechanic.id:
                raise HTTPException(status_code=400, detail="Mobile number already exists")

        if any(f in updates and updates[f] != getattr(mechanic, f) for f in ADDRESS_FIELDS):
            merged = {f: updates.get(f, getattr(mechanic, f)) for f in ADDRESS_FIELDS}
            updates.update(await self._geocode(merged))

        return self.repo.update(self.db, mechanic, **updates)

    def delete_mechanic(self, mechanic_id: int, user: User) -> dict:
        mechanic = self.get_mechanic(mechanic_id, user)
        self.repo.delete(self.db, mechanic)
        logger.info(f"🗑️ Mechanic {mechanic_id} deleted by user {user.id}")
        return {"message": "Mechanic deleted successfully"}

    # ------------------------------------------------------------------
    # Blacklist
    # ------------------------------------------------------------------

    def _require_organization(self, user: User) -> Organization:
        org = get_user_organization(self.db, user)
        if not org:
            raise HTTPException(status_code=400, detail="User must belong to an organization")
        return org

    def blacklist_mechanic(self, mechanic_id: int, user: User, reason: Optional[str] = None) -> dict:
        mechanic = self.get_mechanic(mechanic_id)
        org = self._require_organization(user)
        entry = self.repo.get_blacklist_entry(self.db, mechanic.id, org.id)
        if not entry:
            self.repo.add_blacklist_entry(
                self.db, mechanic_id=mechanic.id, organization_id=org.id, client_id=user.id, reason=reason
            )
            logger.info(f"🚫 Mechanic {mechanic.id} blacklisted by organization {org.id}")
        return {"mechanicId": mechanic.id, "organizationId": org.id, "blacklisted": True}

    def unblacklist_mechanic(self, mechanic_id: int, user: User) -> dict:
        mechanic = self.get_mechanic(mechanic_id)
        org = self._require_organization(user)
        entry = self.repo.get_blacklist_entry(self.db, mechanic.id, org.id)
        if entry:
            self.repo.remove_blacklist_entry(self.db, entry)
        return {"mechanicId": mechanic.id, "organizationId": org.id, "blacklisted": False}

    # ------------------------------------------------------------------
    # Bulk upload
    # ------------------------------------------------------------------

    def bulk_upload(
        self,
        rows: list[dict],
        role: str,
        user_id: int,
        organization_id: int,
        provider_type: str = "mechanic",
    ) -> dict:
        """
        Insert uploaded mechanics, linking already-known ones to the organization instead.

        Rows are de-duplicated by lower(primaryEmail)|officeNumber; existing mechanics are
        matched by email or mobile number.
        """
        if not rows:
            raise ValueError("No mechanic data provided")

        organization = self.db.get(Organization, organization_id)
        if not organization:
            raise ValueError("Organization not found")

        seen = set()
        unique_rows = []
        for row in rows:
            key = f"{(row.get('primaryEmail') or '').lower()}|{row.get('officeNumber') or ''}"
            if key in seen:
                continue
            seen.add(key)
            unique_rows.append(row)

        emails = [r["primaryEmail"] for r in unique_rows if r.get("primaryEmail")]
        phones = [r["officeNumber"] for r in unique_rows if r.get("officeNumber")]
        existing = self.repo.find_existing(self.db, emails, phones)
        by_email = {m.email.lower(): m for m in existing if m.email}
        by_phone = {m.mobile_number: m for m in existing if m.mobile_number}

        inserted = []
        updated = 0
        for row in unique_rows:
            email = row.get("primaryEmail")
            phone = row.get("officeNumber")
            match = (email and by_email.get(email.lower())) or (phone and by_phone.get(phone))
            if match:
                if organization not in match.organizations:
                    match.organizations.append(organization)
                updated += 1
                continue

            fields = {
                column: row[key] for key, column in UPLOAD_FIELD_MAP.items() if row.get(key) not in (None, "")
            }
            inserted.append(
                self.repo.create(
                    self.db,
                    commit=False,
                    client_ids=[user_id],
                    created_by_manual=True,
                    is_accepted=role in ("admin", "super_admin"),
                    provider_type=provider_type,
                    organizations=[organization],
                    **fields,
                )
            )

        self.db.commit()
        for mechanic in inserted:
            self.db.refresh(mechanic)

        message = "Bulk upload completed" if inserted else "Bulk upload completed (all were existing, orgs updated)"
        logger.info(f"✅ {message}: {len(inserted)} inserted, {updated} updated for organization {organization_id}")
        return {
            "message": message,
            "uploaded": [serialize_mechanic(m) for m in inserted],
            "updated": updated,
            "count": len(inserted) + updated,
        }
