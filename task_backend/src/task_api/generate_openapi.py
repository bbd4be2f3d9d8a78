"""
Utility script to generate and write the OpenAPI schema for the FastAPI app.

The schema is written to interfaces/openapi.json (relative to the task_backend
directory) so that API clients and documentation tools can consume a stable
schema without running the server.

Usage:
    python -m task_api.generate_openapi

Notes:
- The app is built with a placeholder signing secret; no tokens are issued
  while exporting.
"""
from __future__ import annotations

import json
import os
from typing import Any, Dict, List, Optional

from .main import create_app, openapi_tags
from .settings import Settings

_EXPORT_SECRET = "openapi-export-only"


def _ensure_tags(schema: Dict[str, Any]) -> None:
    """
    Ensure the OpenAPI schema contains every tag from openapi_tags, without
    overriding existing tag definitions.
    """
    existing_tags: List[Dict[str, Any]] = schema.get("tags", []) or []
    existing_names = {t.get("name") for t in existing_tags if isinstance(t, dict)}
    for tag in openapi_tags:
        if tag.get("name") not in existing_names:
            existing_tags.append(tag)
    if existing_tags:
        schema["tags"] = existing_tags


def _default_out_dir() -> str:
    # <task_backend>/interfaces, two levels above this package
    src_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    return os.path.join(os.path.dirname(src_dir), "interfaces")


def build_schema() -> Dict[str, Any]:
    app = create_app(Settings(jwt_secret=_EXPORT_SECRET))
    schema = app.openapi()
    _ensure_tags(schema)
    return schema


# PUBLIC_INTERFACE
def generate_openapi(out_dir: Optional[str] = None) -> str:
    """Generate the OpenAPI schema file and return the written file path."""
    target_dir = out_dir or _default_out_dir()
    os.makedirs(target_dir, exist_ok=True)
    out_path = os.path.join(target_dir, "openapi.json")
    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(build_schema(), f, indent=2, ensure_ascii=False)
    return out_path


def main() -> None:
    out_path = generate_openapi()
    print(f"Wrote OpenAPI schema to: {out_path}")


if __name__ == "__main__":
    main()
