"""ASGI entrypoint for the field logger API."""

from pic_logger.api.app import create_app
from pic_logger.containers import build_container

app = create_app(build_container())
