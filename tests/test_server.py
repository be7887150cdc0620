"""HTTP-level tests through FastAPI's TestClient."""
import pytest
from fastapi.testclient import TestClient

from scrambler.entities import SESSION_ID_MAX_LENGTH, User
from scrambler.key_grid import KEY_GRID, find_label

import server
from conftest import KEY_WIDTH, ROW_HEIGHT

HEIGHT = ROW_HEIGHT * len(KEY_GRID)


def _body(row, col, **extra):
    body = {
        "x": col * KEY_WIDTH + KEY_WIDTH / 2,
        "y": row * ROW_HEIGHT + ROW_HEIGHT / 2,
        "width": KEY_WIDTH * 14,
        "height": HEIGHT,
        "keyWidths": [[KEY_WIDTH] * len(r) for r in KEY_GRID],
        "rowOffsets": [0] * len(KEY_GRID),
        "scramble": True,
        "isUppercase": True,
    }
    body.update(extra)
    return body


def _cell_of(layout, glyph):
    for r, row in enumerate(layout):
        for c, value in enumerate(row):
            if value == glyph:
                return r, c
    raise KeyError(glyph)


@pytest.fixture
def client(sql_store, credentials):
    app = server.create_app(
        session_store=sql_store,
        credentials=credentials,
        enable_admin_routes=True,
        cookie_secure=False,
    )
    with TestClient(app) as c:
        yield c


def _type(client, layout, text, field):
    data = None
    for ch in text:
        r, c = _cell_of(layout, ch)
        res = client.post("/api/keyboard/input", json=_body(r, c, targetField=field))
        assert res.status_code == 200
        data = res.json()
        layout = data["layout"]
    return layout, data


def test_layout_sets_session_cookie(client):
    res = client.get("/api/keyboard/layout", params={"scramble": "false", "isUppercase": "true"})

    assert res.status_code == 200
    assert "sessionId" in res.cookies
    layout = res.json()["layout"]
    assert layout[0][1:11] == list("1234567890")
    assert layout[1][1:11] == list("QWERTYUIOP")


def test_overlong_cookie_gets_a_fresh_session_id(client, sql_store):
    client.cookies.set("sessionId", "x" * 200)

    res = client.get("/api/keyboard/layout")

    assert res.status_code == 200
    fresh = res.cookies["sessionId"]
    assert fresh != "x" * 200
    assert len(fresh) <= SESSION_ID_MAX_LENGTH
    assert sql_store.get_or_create(fresh).layout == tuple(tuple(row) for row in res.json()["layout"])


def test_typing_username_and_password_then_signup_and_login(client):
    layout = client.get("/api/keyboard/layout", params={"scramble": "true"}).json()["layout"]

    layout, data = _type(client, layout, "ALICE", "username")
    assert data["value"] == "ALICE"
    assert data["count"] == 5

    layout, data = _type(client, layout, "S3CRET", "password")
    assert data["count"] == 6
    assert "value" not in data

    res = client.post("/api/auth", json={"isSignup": True})
    assert res.status_code == 200
    assert res.json()["message"] == "Account created successfully!"

    layout, _ = _type(client, layout, "ALICE", "username")
    layout, _ = _type(client, layout, "S3CRET", "password")
    res = client.post("/api/auth", json={"isSignup": False})
    assert res.status_code == 200
    assert res.json() == {"success": True, "outcome": "authenticated", "message": "Welcome back!"}

    users = client.get("/api/admin/users").json()
    assert users == [{"username": "ALICE"}]


def test_secret_never_in_input_response(client):
    layout = client.get("/api/keyboard/layout", params={"scramble": "true"}).json()["layout"]
    r, c = _cell_of(layout, "Z")

    res = client.post("/api/keyboard/input", json=_body(r, c, targetField="secret"))

    assert res.status_code == 200
    data = res.json()
    assert data["count"] == 1
    assert "value" not in data


def test_enter_key_is_noop(client):
    client.get("/api/keyboard/layout")
    r, c = find_label("Enter")

    res = client.post("/api/keyboard/input", json=_body(r, c))

    assert res.status_code == 200
    assert res.json() == {"success": True, "outcome": "resolved", "key": "Enter"}


def test_invalid_row_and_column(client):
    res = client.post("/api/keyboard/input", json=_body(0, 0, y=HEIGHT + 10))
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid row"

    res = client.post("/api/keyboard/input", json=_body(4, 0, x=KEY_WIDTH * 13))
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid column"


def test_huge_y_over_tiny_height_is_invalid_row(client):
    res = client.post("/api/keyboard/input", json=_body(0, 1, y=1e300, height=1e-300))
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid row"


def test_malformed_geometry(client):
    res = client.post("/api/keyboard/input", json=_body(0, 1, keyWidths=[[]] * len(KEY_GRID)))
    assert res.status_code == 422
    assert res.json()["outcome"] == "malformed_geometry"


def test_unknown_target_field_rejected(client):
    res = client.post("/api/keyboard/input", json=_body(0, 1, targetField="email"))
    assert res.status_code == 422


def test_clear_twice_and_backspace(client):
    layout = client.get("/api/keyboard/layout", params={"scramble": "true"}).json()["layout"]
    _type(client, layout, "AB", "username")

    res = client.post("/api/keyboard/backspace", json={"targetField": "username"})
    assert res.json() == {"success": True, "count": 1, "value": "A"}

    for _ in range(2):
        res = client.post("/api/keyboard/clear", json={"targetField": "username"})
        assert res.status_code == 200
        assert res.json() == {"success": True}

    res = client.post("/api/keyboard/backspace", json={"targetField": "username"})
    assert res.json() == {"success": True, "count": 0, "value": ""}


def test_active_field_switch(client):
    layout = client.get("/api/keyboard/layout", params={"scramble": "true"}).json()["layout"]

    res = client.post("/api/keyboard/field", json={"field": "password"})
    assert res.json() == {"success": True, "activeField": "secret"}

    r, c = _cell_of(layout, "Q")
    data = client.post("/api/keyboard/input", json=_body(r, c)).json()
    assert data["count"] == 1
    assert "value" not in data


def test_auth_without_buffers(client):
    res = client.post("/api/auth", json={"isSignup": False})
    assert res.status_code == 400
    assert res.json()["outcome"] == "missing_credentials"


def test_login_unknown_user_is_401(client):
    layout = client.get("/api/keyboard/layout", params={"scramble": "true"}).json()["layout"]
    layout, _ = _type(client, layout, "BOB", "username")
    _type(client, layout, "X", "password")

    res = client.post("/api/auth", json={"isSignup": False})
    assert res.status_code == 401
    assert res.json()["message"] == "Invalid credentials"


def test_admin_route_disabled_by_default(sql_store, credentials):
    app = server.create_app(session_store=sql_store, credentials=credentials, enable_admin_routes=False)
    with TestClient(app) as c:
        assert c.get("/api/admin/users").status_code == 404


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}


def test_credential_store_failure_is_500(client, engine):
    layout = client.get("/api/keyboard/layout", params={"scramble": "true"}).json()["layout"]
    layout, _ = _type(client, layout, "ALICE", "username")
    _type(client, layout, "X", "password")
    User.__table__.drop(engine)

    res = client.post("/api/auth", json={"isSignup": False})
    assert res.status_code == 500
    assert res.json() == {"success": False, "error": "Store unavailable"}

    # the buffers survived the failed attempt
    res = client.post("/api/keyboard/backspace", json={"targetField": "username"})
    assert res.json()["value"] == "ALIC"
