from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

# Roles recognised by the RBAC layer
SUPER_ADMIN = "super_admin"
ADMIN = "admin"
SUB_ADMIN = "sub_admin"
AGENT = "agent"
SUBAGENT = "subagent"
CLIENT = "client"

ADMIN_ROLES = (SUPER_ADMIN, ADMIN)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    auth_sub = Column(String(255), unique=True, index=True, nullable=False)  # JWT "sub" claim
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    phone_number = Column(String(50), nullable=True)
    role = Column(String(50), default=CLIENT, nullable=False)  # super_admin, admin, sub_admin, agent, subagent, client
    # Sub-admins and agents work on behalf of one client account
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owned_organizations = relationship(
        "Organization", back_populates="owner", foreign_keys="Organization.owner_id"
    )

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def full_name(self) -> str:
        return " ".join(p for p in [self.first_name, self.last_name] if p)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    company_name = Column(String(255), nullable=True)
    company_website = Column(String(500), nullable=True)
    company_address = Column(String(500), nullable=True)
    business_entity_type = Column(String(100), nullable=True)
    organization_type = Column(String(50), nullable=True)  # fleet, insurance, owner_operator
    url_slug = Column(String(255), unique=True, nullable=True)
    contacts = Column(JSON, default=list, nullable=True)
    permissions = Column(JSON, default=dict, nullable=True)

    # Verification lifecycle
    status = Column(String(50), default="pending", nullable=False)  # pending, verified, denied, deactivated
    is_verified = Column(Boolean, default=False, nullable=False)

    # Feature flags
    inbound_ai = Column(Boolean, default=False, nullable=False)
    outbound_ai = Column(Boolean, default=False, nullable=False)
    should_upsert_policies = Column(Boolean, default=False, nullable=False)
    has_marketing_enabled = Column(Boolean, default=False, nullable=False)

    # VAPI setup
    inbound_assistant_id = Column(String(255), nullable=True, index=True)
    outbound_assistant_id = Column(String(255), nullable=True)
    ai_phone_number = Column(String(50), nullable=True, index=True)
    marketing_agents = Column(JSON, default=dict, nullable=True)  # inbound, outbound, web assistant ids
    marketing_phone_number = Column(String(50), nullable=True, index=True)
    ai_setup_status = Column(String(50), default="not_started", nullable=False)  # not_started, completed, failed
    ai_setup_error = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="owned_organizations", foreign_keys=[owner_id])
    members = relationship(
        "OrganizationMember", back_populates="organization", cascade="all, delete-orphan"
    )


class OrganizationMember(Base):
    __tablename__ = "organization_members"
    __table_args__ = (UniqueConstraint("organization_id", "user_id", name="uq_org_member"),)

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), default="pending", nullable=False)  # approved, pending, denied
    added_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    joined_at = Column(DateTime, server_default=func.now())

    organization = relationship("Organization", back_populates="members")
    user = relationship("User", foreign_keys=[user_id])


mechanic_organizations = Table(
    "mechanic_organizations",
    Base.metadata,
    Column("mechanic_id", Integer, ForeignKey("mechanics.id", ondelete="CASCADE"), primary_key=True),
    Column(
        "organization_id", Integer, ForeignKey("organizations.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Mechanic(Base):
    __tablename__ = "mechanics"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(255), nullable=True)
    last_name = Column(String(255), nullable=True)
    company_name = Column(String(255), nullable=True)
    business_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    email_2 = Column(String(255), nullable=True)
    mobile_number = Column(String(50), nullable=True, index=True)
    business_number = Column(String(50), nullable=True)
    office_num = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    street_address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    zipcode = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_accepted = Column(Boolean, default=False, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    services = Column(JSON, default=list, nullable=True)
    tags = Column(JSON, default=list, nullable=True)
    specialty = Column(JSON, default=list, nullable=True)
    provider_type = Column(String(50), default="mechanic", nullable=False)  # mechanic, service_provider
    client_ids = Column(JSON, default=list, nullable=True)  # users that created/own this record
    created_by_manual = Column(Boolean, default=False, nullable=False)
    web_agent_id = Column(String(255), nullable=True)  # VAPI web assistant
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organizations = relationship("Organization", secondary=mechanic_organizations)
    blacklist_entries = relationship(
        "MechanicBlacklist", back_populates="mechanic", cascade="all, delete-orphan"
    )

    @property
    def organization_ids(self) -> list[int]:
        return [org.id for org in self.organizations]

    @property
    def display_name(self) -> str:
        return (
            self.company_name
            or self.business_name
            or " ".join(p for p in [self.first_name, self.last_name] if p)
        )


class MechanicBlacklist(Base):
    __tablename__ = "mechanic_blacklist"
    __table_args__ = (UniqueConstraint("mechanic_id", "organization_id", name="uq_mechanic_blacklist"),)

    id = Column(Integer, primary_key=True, index=True)
    mechanic_id = Column(Integer, ForeignKey("mechanics.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    mechanic = relationship("Mechanic", back_populates="blacklist_entries")


class Policy(Base):
    __tablename__ = "policies"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    policy_number = Column(String(100), nullable=False, index=True)
    insured_first_name = Column(String(255), nullable=True)
    insured_last_name = Column(String(255), nullable=True)
    policy_effective_date = Column(String(20), nullable=True)  # MM/DD/YYYY
    policy_expiration_date = Column(String(20), nullable=True)  # MM/DD/YYYY
    risk_address_line_1 = Column(String(500), nullable=True)
    risk_address_city = Column(String(100), nullable=True)
    risk_address_state = Column(String(50), nullable=True)
    risk_address_zip_code = Column(String(20), nullable=True)
    address = Column(String(1000), nullable=True)
    agency_name = Column(String(255), nullable=True)
    vehicles = Column(JSON, default=list, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    @property
    def insured_name(self) -> str:
        return f"{self.insured_first_name or ''} {self.insured_last_name or ''}".strip()


class Ticket(Base):
    __tablename__ = "tickets"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Policy snapshot (copied at creation)
    policy_number = Column(String(100), nullable=True)
    policy_expiration_date = Column(String(50), nullable=True)
    policy_address = Column(String(1000), nullable=True)
    insured_name = Column(String(255), nullable=True)
    agency_name = Column(String(255), nullable=True)

    # Caller / location
    current_address = Column(String(1000), nullable=True)
    coord = Column(JSON, nullable=True)  # {"latitude": ..., "longitude": ...}
    current_cell_number = Column(String(50), nullable=False)
    cell_country_code = Column(JSON, nullable=True)  # {"label", "id", "dialCode"}
    breakdown_address = Column(JSON, nullable=True)
    tow_destination = Column(JSON, nullable=True)

    # Vehicle
    vehicle_type = Column(String(100), nullable=True)
    vehicle_make = Column(String(100), nullable=True)
    vehicle_model = Column(String(100), nullable=True)
    vehicle_color = Column(String(50), nullable=True)
    vehicle_year = Column(String(10), nullable=True)
    license_plate_no = Column(String(50), nullable=True)

    # Job
    status = Column(String(50), default="created", nullable=False, index=True)
    convo_status = Column(String(20), nullable=True)  # read, unread
    breakdown_reason_text = Column(Text, nullable=True)
    breakdown_reason = Column(JSON, default=list, nullable=True)  # [{"label", "key", "idx"}]
    services = Column(JSON, default=list, nullable=True)  # [{"id", "name", "cost"}]
    comments = Column(JSON, default=list, nullable=True)  # [{"text", "updatedAt", "user"}]
    assigned_subcontractor_id = Column(Integer, ForeignKey("mechanics.id", ondelete="SET NULL"), nullable=True)
    scheduled_time = Column(DateTime, nullable=True)
    eta = Column(DateTime, nullable=True)
    estimated_eta = Column(DateTime, nullable=True)
    claim_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    assigned_by_ai = Column(Boolean, default=False, nullable=False)
    is_special = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    organization = relationship("Organization")
    assigned_subcontractor = relationship("Mechanic")
    requests = relationship("ServiceRequest", back_populates="ticket", cascade="all, delete-orphan")


class ServiceRequest(Base):
    """A mechanic's priced offer against a ticket"""

    __tablename__ = "service_requests"

    id = Column(Integer, primary_key=True, index=True)
    ticket_id = Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    mechanic_id = Column(Integer, ForeignKey("mechanics.id", ondelete="CASCADE"), nullable=False)
    services = Column(JSON, default=list, nullable=True)
    total_cost = Column(Float, nullable=True)
    eta = Column(String(100), nullable=True)  # free text, e.g. "45 min" or an ISO date
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="wait", nullable=False)  # agreed, declined, wait
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    ticket = relationship("Ticket", back_populates="requests")
    mechanic = relationship("Mechanic")


class TicketTerms(Base):
    """Custom ticket submission terms, keyed by organization or by client user"""

    __tablename__ = "ticket_terms"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), unique=True, nullable=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class KbItem(Base):
    __tablename__ = "kb_items"

    id = Column(Integer, primary_key=True, index=True)
    type = Column(String(10), nullable=False)  # file, url
    key = Column(String(500), nullable=False)
    title = Column(String(500), nullable=False)
    url = Column(String(2000), nullable=True)
    description = Column(Text, nullable=True)
    tags = Column(JSON, default=list, nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True)
    mechanic_id = Column(Integer, ForeignKey("mechanics.id", ondelete="CASCADE"), nullable=True, index=True)
    status = Column(String(20), default="pending", nullable=False)  # pending, active, failed, deleted
    external_document_id = Column(String(255), nullable=True)
    error_message = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class VehicleClassification(Base):
    """Towing rates - one row per organization, organization_id NULL is the system default"""

    __tablename__ = "vehicle_classifications"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), unique=True, nullable=True)
    return_mileage_threshold = Column(Float, default=0, nullable=False)
    rate_per_mile = Column(Float, default=0, nullable=False)
    states_specific = Column(JSON, default=list, nullable=True)  # [{"state", "returnMileageThreshold", "ratePerMile"}]
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Service(Base):
    """Priced roadside service - organization_id NULL is a system service"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True)
    weight_classification = Column(JSON, default=list, nullable=True)  # [{"type", "price"}]
    states_specific_price = Column(JSON, default=list, nullable=True)  # [{"state", "weight_classification"}]
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class OrganizationWidget(Base):
    __tablename__ = "organization_widgets"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    widget_type = Column(String(20), default="support", nullable=False)  # marketing, support, sales, custom
    config = Column(JSON, default=dict, nullable=True)
    allowed_origins = Column(JSON, default=list, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class AICallActivity(Base):
    """One row per AI call or chat session"""

    __tablename__ = "ai_call_activities"

    id = Column(Integer, primary_key=True, index=True)
    call_id = Column(String(255), nullable=False, index=True)
    call_type = Column(String(20), nullable=False)  # inbound, outbound, web-call, chat
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True)
    mechanic_id = Column(Integer, ForeignKey("mechanics.id", ondelete="SET NULL"), nullable=True)
    number = Column(String(50), nullable=True)
    recorded_time = Column(DateTime, server_default=func.now())
    summary = Column(Text, nullable=True)
    transcript = Column(Text, nullable=True)
    structured_data = Column(JSON, nullable=True)
