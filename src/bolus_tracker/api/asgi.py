"""ASGI entrypoint for the bolus tracker API."""

from bolus_tracker.api.app import create_app
from bolus_tracker.containers import build_container

app = create_app(build_container())
