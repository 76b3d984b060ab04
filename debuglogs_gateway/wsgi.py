"""WSGI entry point, e.g. ``gunicorn debuglogs_gateway.wsgi:app``."""

from debuglogs_gateway.config import load_config
from debuglogs_gateway.gateway import create_app
from debuglogs_gateway.logging_config import setup_logging

config = load_config()
setup_logging(config)
app = create_app(config)
