"""Webhook service - VAPI assistant requests, call activity logging and tool calls"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from ... import config
from ...models import Mechanic, Organization, Policy
from ...services import openai_service
from ...shared.validators import normalize_cell_number
from ..policies.repository import PolicyRepository
from ..policies.service import PolicyService
from ..tickets.schemas import ServiceRequestCreate, TicketCreate
from ..tickets.service import TicketService
from . import responses
from .repository import WebhookRepository

logger = logging.getLogger(__name__)


def _message(event: dict) -> dict:
    return (event or {}).get("message") or {}


def _call_id(event: dict) -> Optional[str]:
    return (_message(event).get("call") or {}).get("id")


def first_tool_call(event: dict) -> tuple[Optional[str], dict]:
    """(toolCallId, arguments) of the first tool call; arguments may arrive JSON encoded"""
    tool_calls = _message(event).get("toolCalls") or []
    if not tool_calls:
        return None, {}
    call = tool_calls[0] or {}
    arguments = (call.get("function") or {}).get("arguments") or {}
    if isinstance(arguments, str):
        try:
            arguments = json.loads(arguments)
        except ValueError:
            arguments = {}
    return call.get("id"), arguments if isinstance(arguments, dict) else {}


def _schedule_time(value: Any) -> Optional[datetime]:
    if not value or value == "immediate":
        return datetime.utcnow()
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return datetime.utcnow()


def ticket_from_tool_call(arguments: dict, customer_phone: str, policy: Optional[Policy], breakdown: list) -> TicketCreate:
    vehicle = policy.vehicles[0] if policy and policy.vehicles and isinstance(policy.vehicles[0], dict) else {}
    insured = policy.insured_name if policy else ""
    tow_destination = arguments.get("tow_destination")
    if isinstance(tow_destination, str):
        tow_destination = {"address": tow_destination}

    notes = arguments.get("notes")
    if arguments.get("policy_number") and not policy:
        notes = f"{notes or ''}\nUnverified policy number: {arguments['policy_number']}".strip()

    return TicketCreate(
        insured_name=arguments.get("customer_name") or insured or "N/A",
        current_cell_number=customer_phone,
        policy_number=policy.policy_number if policy else None,
        policy_expiration_date=policy.policy_expiration_date if policy else None,
        policy_address=policy.address if policy else None,
        agency_name=policy.agency_name if policy else None,
        current_address=arguments.get("current_address") or arguments.get("location"),
        vehicle_make=arguments.get("vehicle_make") or vehicle.get("vehicle_manufacturer") or "N/A",
        vehicle_model=arguments.get("vehicle_model") or vehicle.get("vehicle_model") or "N/A",
        vehicle_color=arguments.get("vehicle_color") or vehicle.get("vehicle_color") or "N/A",
        vehicle_year=arguments.get("vehicle_year") or vehicle.get("vehicle_model_year"),
        vehicle_type=arguments.get("vehicle_type") or "N/A",
        license_plate_no=arguments.get("license_plate") or vehicle.get("licensePlate"),
        breakdown_reason=breakdown,
        breakdown_reason_text=arguments.get("breakdown_reason") or "N/A",
        tow_destination=tow_destination if isinstance(tow_destination, dict) else None,
        scheduled_time=_schedule_time(arguments.get("schedule_time")),
        notes=notes,
    )


class WebhookService:
    """Service layer for VAPI callbacks"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = WebhookRepository()

    def _log_activity(self, call_id: Optional[str], call_type: str, **data) -> None:
        if not call_id:
            logger.warning(f"⚠️ {call_type} call without id, activity not logged")
            return
        self.repo.create_activity(
            self.db, call_id=call_id, call_type=call_type, recorded_time=datetime.utcnow(), **data
        )
        logger.info(f"📞 {call_type} call activity logged for {call_id}")

    # ------------------------------------------------------------------
    # Assistant requests
    # ------------------------------------------------------------------

    def inbound(self, event: dict) -> dict:
        message = _message(event)
        event_type = message.get("type")

        if event_type == "status-update":
            logger.info(f"📞 Inbound status update: {message.get('status')}")
            return responses.status_ok()
        if event_type != "assistant-request":
            logger.error(f"❌ Unsupported inbound message type: {event_type}")
            return responses.error_response("Unsupported message type")

        phone_number = (message.get("phoneNumber") or {}).get("number")
        if not phone_number:
            return responses.error_response("Invalid request parameters")
        if not config.INBOUND_CALLS_ENABLED:
            return responses.unavailable_response()

        organization = self.repo.get_by_ai_number(self.db, phone_number)
        if not organization or not organization.inbound_assistant_id:
            return responses.error_response("No AI config found for this number")
        if not organization.inbound_ai:
            return responses.feature_disabled_response()

        self._log_activity(_call_id(event), "inbound", organization_id=organization.id, number=phone_number)
        return responses.assistant_request_response(organization.inbound_assistant_id, organization)

    def marketing_inbound(self, event: dict) -> dict:
        message = _message(event)
        event_type = message.get("type")

        if event_type == "status-update":
            return responses.status_ok()
        if event_type != "assistant-request":
            logger.error(f"❌ Unsupported marketing message type: {event_type}")
            return responses.error_response("Unsupported message type")

        phone_number = (message.get("phoneNumber") or {}).get("number")
        if not phone_number:
            return responses.error_response("Invalid request parameters")

        organization = self.repo.get_by_marketing_number(self.db, phone_number)
        assistant_id = ((organization.marketing_agents or {}).get("inbound")) if organization else None
        if not organization or not assistant_id:
            return responses.error_response("No AI config found for this number")

        self._log_activity(_call_id(event), "inbound", organization_id=organization.id, number=phone_number)
        return responses.assistant_request_response(assistant_id, organization)

    # ------------------------------------------------------------------
    # Outbound / activity hooks
    # ------------------------------------------------------------------

    def outbound(self, event: dict) -> dict:
        message = _message(event)
        output = (message.get("functionCall") or {}).get("output")

        if isinstance(output, dict) and output.get("ticket_id") and output.get("sp_id"):
            try:
                request = TicketService(self.db).create_service_request(
                    int(output["ticket_id"]),
                    ServiceRequestCreate(
                        mechanic_id=output["sp_id"],
                        services=output.get("services") or [],
                        total_cost=output.get("total_cost"),
                        eta=output.get("eta"),
                        notes=output.get("notes"),
                    ),
                )
            except (HTTPException, ValidationError, ValueError) as e:
                logger.error(f"❌ Could not record mechanic offer: {str(e)}")
                return {"success": False, "message": "Service request not created"}
            return {"success": True, "message": "Service request created", "requestId": request.id}

        if message.get("type") == "status-update":
            logger.info(f"📞 Outbound status update: {message.get('status')}")
            return responses.status_ok()

        logger.error(f"❌ Unsupported outbound message type: {message.get('type')}")
        return responses.error_response("Unsupported message type")

    def marketing_outbound(self, event: dict) -> dict:
        message = _message(event)
        call = message.get("call") or {}
        organization_id = (call.get("metadata") or {}).get("org_id")
        phone_number = (message.get("phoneNumber") or {}).get("number") or (call.get("customer") or {}).get("number")

        self._log_activity(
            call.get("id"),
            "outbound",
            organization_id=int(organization_id) if organization_id else None,
            number=phone_number,
        )
        return {"success": True, "message": "AI call activity created"}

    def marketing_web(self, event: dict) -> dict:
        message = _message(event)
        call_id = _call_id(event)
        if not call_id:
            return {"success": False, "message": "Call id missing"}

        activity = self.repo.get_activity(self.db, call_id)
        created = False
        if activity is None:
            assistant_id = (message.get("assistant") or {}).get("id") or (message.get("call") or {}).get("assistantId")
            organization = self.repo.get_by_marketing_agent(self.db, "web", assistant_id) if assistant_id else None
            activity = self.repo.create_activity(
                self.db,
                call_id=call_id,
                call_type="web-call",
                organization_id=organization.id if organization else None,
                number="web-call",
                recorded_time=datetime.utcnow(),
            )
            created = True

        if message.get("type") == "end-of-call-report":
            analysis = message.get("analysis") or {}
            activity.summary = message.get("summary") or analysis.get("summary")
            activity.structured_data = analysis.get("structuredData")
            activity.transcript = message.get("transcript")
            self.repo.save(self.db, activity)
            logger.info(f"📝 End-of-call report stored for {call_id}")
            return {"success": True, "message": "End-of-call report stored"}

        if not created:
            return {"success": True, "message": "AI call activity already exists"}
        return {"success": True, "message": "AI call activity created"}

    # ------------------------------------------------------------------
    # Tool calls
    # ------------------------------------------------------------------

    async def create_ticket(self, event: dict) -> dict:
        tool_call_id, arguments = first_tool_call(event)
        if tool_call_id is None:
            return responses.tool_result(None, {"success": False, "message": "No tool call in request"})

        call = _message(event).get("call") or {}
        assistant_id = call.get("assistantId")
        if not assistant_id:
            return responses.tool_result(tool_call_id, {"success": False, "message": "Assistant ID not found in request"})

        organization: Optional[Organization] = self.repo.get_by_inbound_assistant(self.db, assistant_id)
        if not organization:
            return responses.tool_result(
                tool_call_id, {"success": False, "message": "Configuration not found for this assistant"}
            )

        policy = None
        if arguments.get("policy_number"):
            policy = PolicyRepository.get_by_number(self.db, str(arguments["policy_number"]))
            if not policy:
                logger.warning(f"⚠️ Policy not found for number: {arguments['policy_number']}")

        breakdown = await openai_service.categorize_breakdown_reason(arguments.get("breakdown_reason"))
        customer_phone = normalize_cell_number(
            (call.get("customer") or {}).get("number") or call.get("customerNumber") or ""
        )

        try:
            data = ticket_from_tool_call(arguments, customer_phone or "N/A", policy, breakdown)
            ticket = await TicketService(self.db).create_ticket(data, organization=organization, assigned_by_ai=True)
        except HTTPException as e:
            logger.error(f"❌ AI ticket creation rejected: {e.detail}")
            return responses.tool_result(tool_call_id, {"success": False, "message": e.detail})
        except ValidationError as e:
            logger.error(f"❌ AI ticket arguments invalid: {str(e)}")
            return responses.tool_result(tool_call_id, {"success": False, "message": "Invalid ticket details"})

        return responses.tool_result(
            tool_call_id,
            {
                "success": True,
                "message": "Ticket created successfully",
                "ticketId": ticket.id,
                "status": ticket.status,
            },
        )

    def validate_policy(self, event: dict) -> dict:
        tool_call_id, arguments = first_tool_call(event)
        return responses.tool_result(tool_call_id, PolicyService(self.db).validate_policy(arguments.get("policy_number")))

    # ------------------------------------------------------------------
    # Web calls
    # ------------------------------------------------------------------

    def web_agent(self, mechanic_id: Optional[int], organization_id: Optional[int], is_org: bool) -> dict:
        if not mechanic_id and not organization_id:
            raise HTTPException(status_code=400, detail="Mechanic ID or Organization ID is required")

        if is_org:
            if not organization_id:
                raise HTTPException(status_code=400, detail="Organization ID is required for organization calls")
            organization = self.db.get(Organization, organization_id)
            if not organization:
                raise HTTPException(status_code=404, detail="Organization not found")
            agent_id = (organization.marketing_agents or {}).get("web")
        else:
            if not mechanic_id:
                raise HTTPException(status_code=400, detail="Mechanic ID is required for mechanic calls")
            mechanic = self.db.get(Mechanic, mechanic_id)
            if not mechanic:
                raise HTTPException(status_code=404, detail="Mechanic not found")
            agent_id = mechanic.web_agent_id

        if not agent_id:
            raise HTTPException(status_code=404, detail="Web agent not found")
        return {"agentId": agent_id, "type": "organization" if is_org else "mechanic"}
