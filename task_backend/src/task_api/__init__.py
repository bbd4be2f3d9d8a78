"""
FastAPI Task Manager backend package.

The application is built by ``task_api.main.create_app``; ``task_api.asgi``
exposes a ready-made instance for ASGI servers.
"""
