"""ASGI entrypoint for the meal assistant API."""

from meal_assistant.api.app import create_app
from meal_assistant.containers import build_container

app = create_app(build_container())
