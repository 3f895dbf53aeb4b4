"""Admin session and provisioning blueprint."""
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user
from flask_wtf import FlaskForm
from wtforms import PasswordField, StringField
from wtforms.validators import DataRequired, Email, Length

from storage import current_storage
from utils.decorators import admin_required
from utils.errors import Conflict, InvalidCredentials, ValidationError, form_errors
from utils.security import verify_password
from utils.session_store import current_session_store

auth_bp = Blueprint("auth", __name__, url_prefix="/admin")


def _normalize_email(value):
    return value.lower().strip() if isinstance(value, str) else value


class LoginForm(FlaskForm):
    class Meta:
        csrf = False

    # No format check: a malformed address must fail the same way as an unknown one.
    email = StringField("Email", filters=[_normalize_email], validators=[DataRequired()])
    password = PasswordField("Password", validators=[DataRequired()])


class SetupForm(FlaskForm):
    class Meta:
        csrf = False

    email = StringField("Email", filters=[_normalize_email], validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired()])


def _session_cookie_name() -> str:
    return current_app.config.get("ADMIN_SESSION_COOKIE", "admin_session")


def _set_session_cookie(response, token: str) -> None:
    lifetime = current_app.config["ADMIN_SESSION_LIFETIME"]
    response.set_cookie(
        _session_cookie_name(),
        token,
        max_age=int(lifetime.total_seconds()),
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
    )


@auth_bp.route("/login", methods=["POST"])
def login():
    form = LoginForm()
    if not form.validate():
        raise ValidationError("Email and password are required", errors=form_errors(form))

    admin = current_storage().get_admin_by_email(form.email.data)
    if not verify_password(admin, form.password.data):
        current_app.logger.warning(
            "admin_login_failed",
            extra={"ip_address": request.remote_addr, "known_email": admin is not None},
        )
        raise InvalidCredentials()

    store = current_session_store()
    store.destroy(request.cookies.get(_session_cookie_name()))
    token = store.create(admin.id)

    current_app.logger.info("admin_login", extra={"admin_id": admin.id, "ip_address": request.remote_addr})
    response = jsonify({"message": "Login successful", "admin": admin.public_payload()})
    _set_session_cookie(response, token)
    return response


@auth_bp.route("/logout", methods=["POST"])
def logout():
    destroyed = current_session_store().destroy(request.cookies.get(_session_cookie_name()))
    if destroyed:
        current_app.logger.info("admin_logout", extra={"ip_address": request.remote_addr})
    response = jsonify({"message": "Logout successful"})
    response.delete_cookie(_session_cookie_name())
    return response


@auth_bp.route("/me", methods=["GET"])
@admin_required
def me():
    return jsonify({"adminId": current_user.id})


@auth_bp.route("/setup", methods=["POST"])
def setup():
    """Initial provisioning; intentionally reachable without a session."""
    form = SetupForm()
    if not form.validate():
        raise ValidationError("Email and password are required", errors=form_errors(form))

    storage = current_storage()
    if storage.get_admin_by_email(form.email.data) is not None:
        raise Conflict("Admin already exists")

    admin = storage.create_admin(form.email.data, form.password.data)
    current_app.logger.info("admin_created", extra={"admin_id": admin.id, "source": "setup_endpoint"})
    return jsonify({"message": "Admin created successfully", "admin": admin.public_payload()}), 201
