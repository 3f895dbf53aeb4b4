"""Data models for complaint intake and administrator accounts."""
from datetime import datetime, timezone

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from extensions import db


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def _isoformat(value: datetime | None) -> str | None:
	if value is None:
		return None
	# SQLite hands back naive values; everything is stored as UTC.
	if value.tzinfo is None:
		value = value.replace(tzinfo=timezone.utc)
	return value.isoformat()


class Complaint(db.Model):
	__tablename__ = "complaints"
	# Without AUTOINCREMENT SQLite reuses the highest id after it is deleted.
	__table_args__ = {"sqlite_autoincrement": True}

	id = db.Column(db.Integer, primary_key=True, autoincrement=True)
	location = db.Column(db.String(255), nullable=False)
	name = db.Column(db.String(255), nullable=False)
	phone = db.Column(db.String(20), nullable=False)
	description = db.Column(db.Text, nullable=False)
	image_path = db.Column(db.String(500), nullable=True)
	created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False, index=True)

	def to_dict(self) -> dict:
		return {
			"id": self.id,
			"location": self.location,
			"name": self.name,
			"phone": self.phone,
			"description": self.description,
			"imagePath": self.image_path,
			"createdAt": _isoformat(self.created_at),
		}

	def __repr__(self) -> str:
		return f"<Complaint {self.id} @ {self.location}>"


class Admin(UserMixin, db.Model):
	__tablename__ = "admins"
	__table_args__ = {"sqlite_autoincrement": True}

	id = db.Column(db.Integer, primary_key=True, autoincrement=True)
	email = db.Column(db.String(255), unique=True, nullable=False, index=True)
	password = db.Column(db.String(255), nullable=False)
	created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

	def set_password(self, password: str) -> None:
		self.password = generate_password_hash(password, method="pbkdf2:sha256", salt_length=16)

	def check_password(self, password: str) -> bool:
		return check_password_hash(self.password, password)

	def public_payload(self) -> dict:
		return {"id": self.id, "email": self.email}

	def __repr__(self) -> str:
		return f"<Admin {self.email}>"
