from __future__ import annotations

import logging

from flask import Flask
from flask_cors import CORS

from tipsplit.api.routes import api_bp
from tipsplit.config import Config


def create_app(config_object: object = Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    logging.getLogger(__name__).setLevel(app.config.get("LOG_LEVEL", "INFO"))
    CORS(app)  # ok for MVP; tighten later

    app.register_blueprint(api_bp)
    return app
