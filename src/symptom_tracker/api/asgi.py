"""ASGI entrypoint for the symptom tracker API."""

from symptom_tracker.api.app import create_app
from symptom_tracker.containers import build_container

app = create_app(build_container())
