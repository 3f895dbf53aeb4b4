"""Persistence operations for complaints and administrators."""
from typing import List, Optional

from flask import current_app
from sqlalchemy.exc import IntegrityError

from extensions import db
from models import Admin, Complaint
from utils.errors import Conflict

COMPLAINT_FIELDS = ("location", "name", "phone", "description", "image_path")


class DatabaseStorage:
    """SQLAlchemy-backed store; every write commits its own transaction."""

    def create_complaint(self, fields: dict) -> Complaint:
        complaint = Complaint(**{key: fields.get(key) for key in COMPLAINT_FIELDS})
        db.session.add(complaint)
        db.session.commit()
        return complaint

    def get_all_complaints(self) -> List[Complaint]:
        return Complaint.query.order_by(Complaint.created_at.asc(), Complaint.id.asc()).all()

    def get_complaint(self, complaint_id: int) -> Optional[Complaint]:
        return db.session.get(Complaint, complaint_id)

    def delete_complaint(self, complaint_id: int) -> None:
        Complaint.query.filter_by(id=complaint_id).delete()
        db.session.commit()

    def get_admin_by_email(self, email: str) -> Optional[Admin]:
        return Admin.query.filter_by(email=(email or "").lower().strip()).first()

    def get_admin(self, admin_id: int) -> Optional[Admin]:
        return db.session.get(Admin, admin_id)

    def create_admin(self, email: str, password: str) -> Admin:
        """Hash ``password`` and insert the admin; duplicate emails raise ``Conflict``."""
        admin = Admin(email=email.lower().strip())
        admin.set_password(password)
        db.session.add(admin)
        try:
            db.session.commit()
        except IntegrityError as exc:
            db.session.rollback()
            raise Conflict("Admin already exists") from exc
        return admin


def current_storage() -> DatabaseStorage:
    return current_app.extensions["storage"]
