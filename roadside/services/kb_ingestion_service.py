"""
Knowledge-base ingestion service client
Pushes KB documents to the vector store service and removes them again
"""

import logging
from typing import Optional

import httpx

from ..config import KB_SERVICE_URL

logger = logging.getLogger(__name__)


async def upload_document_url(
    url: str,
    kb_item_id: int,
    organization_id: Optional[int] = None,
    mechanic_id: Optional[int] = None,
) -> dict:
    """
    Ask the ingestion service to fetch and index a document.

    Raises:
        httpx.HTTPError: On transport errors or a non-2xx answer
    """
    payload = {
        "url": url,
        "metadata": {
            "kb_item_id": kb_item_id,
            "organizationId": organization_id,
            "mechanicId": mechanic_id,
        },
    }
    async with httpx.AsyncClient(timeout=60.0) as client:
        response = await client.post(f"{KB_SERVICE_URL}/api/v1/kb/documents/upload-url", json=payload)
        response.raise_for_status()
        logger.info(f"✅ KB document queued for ingestion: item {kb_item_id}")
        return response.json() if response.content else {}


async def delete_document(kb_item_id: int) -> None:
    async with httpx.AsyncClient(timeout=30.0) as client:
        response = await client.delete(f"{KB_SERVICE_URL}/api/v1/kb/documents/{kb_item_id}")
        response.raise_for_status()
    logger.info(f"🗑️ KB document removed from ingestion service: item {kb_item_id}")
