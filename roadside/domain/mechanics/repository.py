"""Mechanic repository - Database operations for mechanics and service providers"""

import re
from typing import Optional

from sqlalchemy import String, and_, cast, func, or_
from sqlalchemy.orm import Session

from ...models import Mechanic, MechanicBlacklist, mechanic_organizations
from ...shared.validators import LIKE_ESCAPE, like_pattern

SORT_COLUMNS = {
    "createdAt": Mechanic.created_at,
    "firstName": Mechanic.first_name,
    "email": Mechanic.email,
    "lastName": Mechanic.last_name,
}

SEARCHABLE_COLUMNS = (
    Mechanic.first_name,
    Mechanic.last_name,
    Mechanic.email,
    Mechanic.business_name,
    Mechanic.company_name,
    Mechanic.city,
    Mechanic.state,
    Mechanic.country,
    Mechanic.address,
    Mechanic.mobile_number,
    Mechanic.office_num,
)

PHONE_COLUMNS = (Mechanic.mobile_number, Mechanic.business_number, Mechanic.office_num)


def _digits_only(column):
    """Strip the usual phone separators so numbers compare by digits"""
    for separator in ("-", " ", "(", ")", ".", "+"):
        column = func.replace(column, separator, "")
    return column


def token_condition(token: str):
    """Match one search token against any searchable field, or a phone by its digits"""
    pattern = like_pattern(token)
    conditions = [column.ilike(pattern, escape=LIKE_ESCAPE) for column in SEARCHABLE_COLUMNS]
    conditions.append(cast(Mechanic.tags, String).ilike(pattern, escape=LIKE_ESCAPE))
    conditions.append(cast(Mechanic.specialty, String).ilike(pattern, escape=LIKE_ESCAPE))

    digits = re.sub(r"\D", "", token)
    if digits:
        conditions.extend(_digits_only(column).like(f"%{digits}%") for column in PHONE_COLUMNS)
        if token.isdigit():
            conditions.append(Mechanic.id == int(token))
    return or_(*conditions)


class MechanicRepository:
    """Repository for mechanic database operations"""

    @staticmethod
    def list_query(
        db: Session,
        organization_id: Optional[int] = None,
        exclude_blacklisted: bool = True,
        search: str = "",
        sort_field: str = "createdAt",
        sort: int = -1,
        provider_type: Optional[str] = None,
    ):
        query = db.query(Mechanic)

        if organization_id is not None:
            query = query.join(
                mechanic_organizations, mechanic_organizations.c.mechanic_id == Mechanic.id
            ).filter(mechanic_organizations.c.organization_id == organization_id)
            if exclude_blacklisted:
                blacklisted = db.query(MechanicBlacklist.mechanic_id).filter(
                    MechanicBlacklist.organization_id == organization_id
                )
                query = query.filter(~Mechanic.id.in_(blacklisted))

        if provider_type:
            query = query.filter(Mechanic.provider_type == provider_type)

        tokens = (search or "").split()
        if tokens:
            # Every token must match some field
            query = query.filter(and_(*[token_condition(t) for t in tokens]))

        column = SORT_COLUMNS[sort_field]
        order = column.asc() if sort == 1 else column.desc()
        return query.order_by(order, Mechanic.id.asc() if sort == 1 else Mechanic.id.desc())

    @staticmethod
    def get_by_id(db: Session, mechanic_id: int) -> Optional[Mechanic]:
        return db.query(Mechanic).filter(Mechanic.id == mechanic_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[Mechanic]:
        return db.query(Mechanic).filter(func.lower(Mechanic.email) == email.lower()).first()

    @staticmethod
    def get_by_mobile(db: Session, mobile_number: str) -> Optional[Mechanic]:
        return db.query(Mechanic).filter(Mechanic.mobile_number == mobile_number).first()

    @staticmethod
    def find_existing(db: Session, emails: list[str], phones: list[str]) -> list[Mechanic]:
        conditions = []
        if emails:
            conditions.append(func.lower(Mechanic.email).in_([e.lower() for e in emails]))
        if phones:
            conditions.append(Mechanic.mobile_number.in_(phones))
        if not conditions:
            return []
        return db.query(Mechanic).filter(or_(*conditions)).all()

    @staticmethod
    def create(db: Session, commit: bool = True, **data) -> Mechanic:
        mechanic = Mechanic(**data)
        db.add(mechanic)
        if commit:
            db.commit()
            db.refresh(mechanic)
        return mechanic

    @staticmethod
    def update(db: Session, mechanic: Mechanic, **updates) -> Mechanic:
        for key, value in updates.items():
            if hasattr(mechanic, key):
                setattr(mechanic, key, value)
        db.commit()
        db.refresh(mechanic)
        return mechanic

    @staticmethod
    def delete(db: Session, mechanic: Mechanic) -> None:
        db.delete(mechanic)
        db.commit()

    @staticmethod
    def get_blacklist_entry(db: Session, mechanic_id: int, organization_id: int) -> Optional[MechanicBlacklist]:
        return (
            db.query(MechanicBlacklist)
            .filter(MechanicBlacklist.mechanic_id == mechanic_id, MechanicBlacklist.organization_id == organization_id)
            .first()
        )

    @staticmethod
    def add_blacklist_entry(db: Session, **data) -> MechanicBlacklist:
        entry = MechanicBlacklist(**data)
        db.add(entry)
        db.commit()
        db.refresh(entry)
        return entry

    @staticmethod
    def remove_blacklist_entry(db: Session, entry: MechanicBlacklist) -> None:
        db.delete(entry)
        db.commit()
