"""Blueprint registration and public file serving."""
from flask import Blueprint, current_app, send_from_directory

from .auth import auth_bp
from .complaints import complaints_bp

main_bp = Blueprint("main", __name__)


@main_bp.route("/uploads/<path:filename>", methods=["GET"])
def uploaded_file(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)


__all__ = ["main_bp", "auth_bp", "complaints_bp"]
