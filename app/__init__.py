from flask import Flask, jsonify
from flask_cors import CORS

from app.logging_config import configure_logging, get_logger

logger = get_logger(__name__)


def create_app(config_overrides=None):
    # Import config after dotenv is loaded
    from app.config import get_config
    from app.production import production_bp
    from app.production.scheduling.service import ProductionScheduleService

    # Get the appropriate config class based on environment
    config_class = get_config()

    app = Flask(__name__)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    configure_logging(log_level=app.config.get("LOG_LEVEL", "INFO"), log_file=app.config.get("LOG_FILE"))
    logger.info(f"Starting application in {config_class.ENV} environment")

    # Get allowed origins from environment variable
    allowed_origins = app.config.get("CORS_ORIGINS", "*")
    if allowed_origins != "*":
        # Parse comma-separated list if provided
        allowed_origins = [origin.strip() for origin in allowed_origins.split(",")]

    CORS(app,
         resources={r"/*": {"origins": allowed_origins}},
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"])

    # Holiday data is loaded once; the service is read-only afterwards
    service = ProductionScheduleService.from_config(app.config)
    app.extensions["production_schedule"] = service
    logger.info(
        "Production scheduling ready",
        calendar=repr(service.calendar),
        timezone=app.config.get("COMPANY_TIMEZONE"),
    )

    app.register_blueprint(production_bp, url_prefix="/production")

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "environment": config_class.ENV,
            "holidays_version": service.calendar.holidays.version,
        }), 200

    return app
