"""Complaint intake and admin resolution endpoints."""
from flask import Blueprint, current_app, jsonify
from flask_wtf import FlaskForm
from flask_wtf.file import FileField
from wtforms import StringField, TextAreaField
from wtforms.validators import DataRequired, Length

from storage import current_storage
from utils.decorators import admin_required
from utils.errors import UploadRejected, ValidationError, form_errors
from utils.image_utils import DEFAULT_MAX_IMAGE_BYTES, has_upload, persist_image, remove_image

complaints_bp = Blueprint("complaints", __name__, url_prefix="/complaints")

# Upper bound of a signed 32-bit INTEGER column.
MAX_COMPLAINT_ID = 2**31 - 1


def _strip(value):
    if value is None:
        return value
    return str(value).strip()


class ComplaintForm(FlaskForm):
    class Meta:
        csrf = False

    location = StringField(
        "Location",
        filters=[_strip],
        validators=[DataRequired("Location is required"), Length(max=255)],
    )
    name = StringField("Name", filters=[_strip], validators=[DataRequired("Name is required"), Length(max=255)])
    phone = StringField(
        "Phone",
        filters=[_strip],
        validators=[
            DataRequired("Valid phone number is required"),
            Length(min=10, max=20, message="Valid phone number is required"),
        ],
    )
    description = TextAreaField(
        "Description",
        filters=[_strip],
        validators=[
            DataRequired("Description is required"),
            Length(min=10, message="Description must be at least 10 characters"),
        ],
    )
    image = FileField("Photo (optional)")


def _upload_settings() -> tuple[str, int, str]:
    config = current_app.config
    return (
        config["UPLOAD_FOLDER"],
        int(config.get("MAX_IMAGE_UPLOAD_BYTES", DEFAULT_MAX_IMAGE_BYTES)),
        config.get("UPLOAD_URL_PREFIX", "/uploads"),
    )


def _parse_complaint_id(raw: str) -> int:
    """Accept plain ASCII digits that fit the integer id column."""
    if not (raw.isascii() and raw.isdigit()):
        raise ValidationError("Invalid complaint ID")
    parsed = int(raw)
    if parsed > MAX_COMPLAINT_ID:
        raise ValidationError("Invalid complaint ID")
    return parsed


@complaints_bp.route("", methods=["POST"])
def submit_complaint():
    form = ComplaintForm()
    if not form.validate():
        current_app.logger.info("complaint_validation_failed", extra={"fields": sorted(form.errors)})
        raise ValidationError(errors=form_errors(form))

    upload_dir, max_bytes, url_prefix = _upload_settings()
    image_path = None
    if has_upload(form.image.data):
        try:
            image_path = persist_image(form.image.data, upload_dir, max_bytes=max_bytes, url_prefix=url_prefix)
        except UploadRejected as exc:
            current_app.logger.warning(
                "complaint_upload_rejected",
                extra={"reason": exc.reason, "mimetype": form.image.data.mimetype},
            )
            raise

    try:
        complaint = current_storage().create_complaint(
            {
                "location": form.location.data,
                "name": form.name.data,
                "phone": form.phone.data,
                "description": form.description.data,
                "image_path": image_path,
            }
        )
    except Exception:
        # The row never landed, so the stored photo would be orphaned.
        if image_path:
            remove_image(image_path, upload_dir)
        raise

    current_app.logger.info(
        "complaint_created",
        extra={"complaint_id": complaint.id, "location": complaint.location, "has_image": bool(image_path)},
    )
    return jsonify(complaint.to_dict()), 201


@complaints_bp.route("", methods=["GET"])
@admin_required
def list_complaints():
    complaints = current_storage().get_all_complaints()
    return jsonify([c.to_dict() for c in complaints])


@complaints_bp.route("/<string:complaint_id>", methods=["DELETE"])
@admin_required
def delete_complaint(complaint_id):
    parsed_id = _parse_complaint_id(complaint_id)

    storage = current_storage()
    complaint = storage.get_complaint(parsed_id)

    # File removal precedes the row delete and is not transactional with it:
    # a crash in between leaves a row whose image path no longer resolves,
    # and a failed unlink leaves an orphaned file behind a deleted row.
    if complaint is not None and complaint.image_path:
        upload_dir = current_app.config["UPLOAD_FOLDER"]
        try:
            remove_image(complaint.image_path, upload_dir)
        except OSError:
            current_app.logger.exception(
                "complaint_image_delete_failed",
                extra={"complaint_id": parsed_id, "image_path": complaint.image_path},
            )

    storage.delete_complaint(parsed_id)
    current_app.logger.info("complaint_deleted", extra={"complaint_id": parsed_id, "existed": complaint is not None})
    return jsonify({"message": "Complaint deleted successfully"})
