"""
ASGI entry point.

Run with:
    JWT_SECRET=... uvicorn task_api.asgi:app --reload

Importing this module builds the application from the environment, so a
missing JWT_SECRET stops the server before it accepts any request.
"""
from .main import create_app

app = create_app()
