"""
CORS for the scheduling API.

Origins come from ``CORS_ORIGINS`` (comma separated, ``*`` for any). Only the
``/api/`` routes are exposed cross-origin; health checks stay same-origin.
"""
from flask_cors import CORS

API_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
API_HEADERS = ["Content-Type", "Authorization", "Accept"]


def allowed_origins(value):
    if not value or value.strip() == "*":
        return "*"
    return [origin.strip() for origin in value.split(",") if origin.strip()]


def init_cors(app):
    origins = allowed_origins(app.config.get("CORS_ORIGINS"))
    CORS(app,
         resources={r"/api/*": {"origins": origins}},
         methods=API_METHODS,
         allow_headers=API_HEADERS,
         max_age=app.config.get("CORS_MAX_AGE", 86400))

    app.logger.info("CORS enabled for %s", origins)
