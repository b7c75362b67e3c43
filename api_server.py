# api_server.py
"""Main entry point for the journal API."""

import os

from src.api.app import create_app
from src.config import load_settings
from src.log import configure_logging

settings = load_settings()
configure_logging(settings.log_level, settings.log_json)
app = create_app(settings)

if __name__ == "__main__":
    debug_mode = os.getenv("FLASK_DEBUG", "False").lower() == "true"
    port = int(os.getenv("FLASK_PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=debug_mode, use_reloader=debug_mode)
