"""
Production Module
Flask Blueprint for production plan scheduling and work queue classification.

The routes are thin JSON wrappers around app.production.scheduling; nothing
here is persisted, callers store the plans they get back.
"""
from flask import Blueprint

production_bp = Blueprint("production", __name__)

from app.production import routes  # noqa: E402,F401
