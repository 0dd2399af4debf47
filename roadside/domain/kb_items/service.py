"""KB item service - knowledge-base items and their ingestion lifecycle"""

import logging
from typing import Optional

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...config import KB_FILES_BASE_URL
from ...models import KbItem, Mechanic, Organization, User
from ...services import kb_ingestion_service
from ...shared.pagination import paginate_query
from .repository import KbItemRepository
from .schemas import KbItemCreate, KbItemResponse, KbItemUpdate

logger = logging.getLogger(__name__)


def serialize_kb_item(item: KbItem) -> dict:
    return KbItemResponse.model_validate(item).model_dump(mode="json")


def document_url(item: KbItem) -> str:
    """URL the ingestion service fetches: stored file location or the linked page"""
    if item.type == "file":
        return f"{KB_FILES_BASE_URL.rstrip('/')}/{item.key}"
    return item.url or item.key


class KbItemService:
    """Service layer for KB item business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = KbItemRepository()

    async def create_item(self, data: KbItemCreate, user: User) -> KbItem:
        if not data.organization and not data.mechanic:
            raise HTTPException(status_code=400, detail="Either organization or mechanic must be provided")
        if data.organization and data.mechanic:
            raise HTTPException(status_code=400, detail="Cannot have both organization and mechanic")

        if data.organization and not self.db.get(Organization, data.organization):
            raise HTTPException(status_code=404, detail="Organization not found")
        if data.mechanic and not self.db.get(Mechanic, data.mechanic):
            raise HTTPException(status_code=404, detail="Mechanic not found")

        item = self.repo.create(
            self.db,
            type=data.type,
            key=data.key,
            title=data.title,
            url=data.url,
            description=data.description or "",
            tags=data.tags or [],
            organization_id=data.organization,
            mechanic_id=data.mechanic,
            status="pending",
            created_by_id=user.id,
        )

        try:
            response = await kb_ingestion_service.upload_document_url(
                document_url(item), item.id, item.organization_id, item.mechanic_id
            )
            updates = {"status": "active", "error_message": None}
            if isinstance(response, dict) and response.get("document_id"):
                updates["external_document_id"] = str(response["document_id"])
        except httpx.HTTPError as e:
            logger.error(f"❌ KB ingestion failed for item {item.id}: {str(e)}")
            updates = {"status": "failed", "error_message": str(e)}

        return self.repo.update(self.db, item, **updates)

    def list_items(
        self,
        page=1,
        limit=10,
        status: Optional[str] = "active",
        item_type: Optional[str] = None,
        organization_id: Optional[int] = None,
        mechanic_id: Optional[int] = None,
        search: Optional[str] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> dict:
        query = self.repo.list_query(
            self.db, status, item_type, organization_id, mechanic_id, search, sort_by, sort_order
        )
        return paginate_query(query, page, limit, serializer=serialize_kb_item)

    def get_item(self, item_id: int) -> KbItem:
        item = self.repo.get_by_id(self.db, item_id)
        if not item or item.status == "deleted":
            raise HTTPException(status_code=404, detail="KbItem not found")
        return item

    def update_item(self, item_id: int, data: KbItemUpdate) -> KbItem:
        item = self.get_item(item_id)
        return self.repo.update(self.db, item, **data.model_dump(exclude_none=True))

    async def delete_item(self, item_id: int) -> KbItem:
        """Soft delete, then drop the document from the ingestion service"""
        item = self.get_item(item_id)
        item = self.repo.update(self.db, item, status="deleted")
        try:
            await kb_ingestion_service.delete_document(item.id)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Could not remove KB document {item.id} from ingestion service: {str(e)}")
        return item
