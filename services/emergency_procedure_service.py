"""
Emergency procedure service.
"""
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from database.models import EmergencyProcedure, Employee, ProcedureType
from core.errors import NotFoundError
from core.validators import parse_enum, require_text
from core.logger import logger

DEFAULT_PROCEDURES = [
    {
        "procedure_type": ProcedureType.LOCKDOWN,
        "title": "Full Facility Lockdown",
        "description": "Complete lockdown of all prison areas",
        "steps": "\n".join([
            "1. Press red lockdown button",
            "2. Announce lockdown over PA system",
            "3. Secure all cell doors",
            "4. Seal all exits",
            "5. Account for all personnel",
        ]),
    },
    {
        "procedure_type": ProcedureType.FIRE,
        "title": "Fire Emergency Procedure",
        "description": "Response to fire emergencies",
        "steps": "\n".join([
            "1. Activate fire alarm",
            "2. Call fire department",
            "3. Evacuate affected areas",
            "4. Use fire extinguishers if safe",
            "5. Account for all personnel",
        ]),
    },
    {
        "procedure_type": ProcedureType.MEDICAL,
        "title": "Medical Emergency Response",
        "description": "Response to medical emergencies",
        "steps": "\n".join([
            "1. Call medical response team",
            "2. Provide first aid if trained",
            "3. Secure the area",
            "4. Document the incident",
            "5. Notify next of kin if necessary",
        ]),
    },
]


class EmergencyProcedureService:
    """Service for emergency procedures."""

    @staticmethod
    def list_procedures(db: Session) -> List[EmergencyProcedure]:
        return db.query(EmergencyProcedure).order_by(
            EmergencyProcedure.procedure_type, EmergencyProcedure.title
        ).all()

    @staticmethod
    def get_procedure(db: Session, procedure_id: int) -> EmergencyProcedure:
        procedure = db.get(EmergencyProcedure, procedure_id)
        if procedure is None:
            raise NotFoundError("EmergencyProcedure", str(procedure_id))
        return procedure

    @staticmethod
    def get_procedures_by_type(db: Session, procedure_type: Union[str, ProcedureType]) -> List[EmergencyProcedure]:
        procedure_type = parse_enum(ProcedureType, procedure_type, "procedure type")
        return db.query(EmergencyProcedure).filter(
            EmergencyProcedure.procedure_type == procedure_type
        ).order_by(EmergencyProcedure.title).all()

    @staticmethod
    def add_procedure(
        db: Session,
        procedure_type: Union[str, ProcedureType],
        title: str,
        description: str,
        steps: str,
        contact_person: Optional[str] = None,
        contact_phone: Optional[str] = None,
        updated_by: Optional[str] = None
    ) -> EmergencyProcedure:
        if updated_by and db.get(Employee, updated_by) is None:
            raise NotFoundError("Employee", updated_by)
        procedure = EmergencyProcedure(
            procedure_type=parse_enum(ProcedureType, procedure_type, "procedure type"),
            title=require_text(title, "Title", max_length=100),
            description=require_text(description, "Description"),
            steps=require_text(steps, "Steps"),
            contact_person=contact_person,
            contact_phone=contact_phone,
            updated_by=updated_by,
        )
        db.add(procedure)
        db.flush()
        logger.info(f"Added emergency procedure {procedure.procedure_id} ({procedure.title})")
        return procedure

    @staticmethod
    def update_procedure(
        db: Session,
        procedure_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        steps: Optional[str] = None,
        contact_person: Optional[str] = None,
        contact_phone: Optional[str] = None,
        updated_by: Optional[str] = None
    ) -> EmergencyProcedure:
        procedure = EmergencyProcedureService.get_procedure(db, procedure_id)
        if title is not None:
            procedure.title = require_text(title, "Title", max_length=100)
        if description is not None:
            procedure.description = require_text(description, "Description")
        if steps is not None:
            procedure.steps = require_text(steps, "Steps")
        if contact_person is not None:
            procedure.contact_person = contact_person
        if contact_phone is not None:
            procedure.contact_phone = contact_phone
        if updated_by is not None:
            if db.get(Employee, updated_by) is None:
                raise NotFoundError("Employee", updated_by)
            procedure.updated_by = updated_by
        procedure.last_updated = datetime.utcnow()
        db.flush()
        logger.info(f"Updated emergency procedure {procedure_id}")
        return procedure

    @staticmethod
    def seed_default_procedures(db: Session) -> int:
        """
        Insert the standard Lockdown, Fire and Medical procedures when no
        procedure of that type exists yet.

        Returns:
            Number of procedures inserted
        """
        inserted = 0
        for data in DEFAULT_PROCEDURES:
            exists = db.query(EmergencyProcedure.procedure_id).filter(
                EmergencyProcedure.procedure_type == data["procedure_type"]
            ).first()
            if exists is None:
                db.add(EmergencyProcedure(**data))
                inserted += 1
        db.flush()
        if inserted:
            logger.info(f"Seeded {inserted} default emergency procedures")
        return inserted
