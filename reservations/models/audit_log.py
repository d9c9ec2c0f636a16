from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String

from reservations.db import Base


class AuditLog(Base):
    """Append-only history of appointment changes.

    ``appointment_id`` carries no foreign key so entries outlive an
    administrative delete of the appointment.
    """

    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    appointment_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String, nullable=False)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    changed_fields = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
