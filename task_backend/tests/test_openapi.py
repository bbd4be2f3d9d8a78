import json

from task_api.generate_openapi import generate_openapi


def test_generate_openapi_writes_schema(tmp_path):
    out_path = generate_openapi(str(tmp_path / "interfaces"))
    with open(out_path, encoding="utf-8") as f:
        schema = json.load(f)

    assert schema["info"]["title"] == "Task Manager Backend"
    assert {t["name"] for t in schema["tags"]} >= {"health", "auth", "users", "tasks"}
    for path in ("/api/auth/register", "/api/auth/login", "/api/users/me", "/api/tasks", "/api/tasks/{task_id}"):
        assert path in schema["paths"]
    assert "password_hash" not in json.dumps(schema["components"]["schemas"]["UserOut"])
