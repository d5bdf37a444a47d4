import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from identity import issue_token
from main import app, get_uploader
from models import MoneyLog


@pytest.fixture
def api(uploader):
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_uploader] = lambda: uploader
    try:
        yield TestClient(app), uploader, TestingSession
    finally:
        app.dependency_overrides.clear()


def auth(user_id: int) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_token(user_id)}"}


def test_requests_without_valid_token_are_unauthorized(api) -> None:
    client, _, _ = api

    assert client.put("/api/budget", json={"amount": 100}).status_code == 401
    bad = client.put(
        "/api/budget", json={"amount": 100}, headers={"Authorization": "Bearer nope"}
    )
    assert bad.status_code == 401
    assert client.get("/api/budget", headers=auth(1)).status_code == 404


def test_monthly_summary_flow(api) -> None:
    client, _, _ = api
    headers = auth(1)

    missing = client.get("/api/entries", params={"month": "2024-03"}, headers=headers)
    assert missing.status_code == 404

    first = client.put("/api/budget", json={"amount": 100}, headers=headers).json()
    second = client.put("/api/budget", json={"amount": 400}, headers=headers).json()
    assert first["id"] == second["id"]

    for type_, cost, day in [
        ("REVENUE", 1000, "2024-03-01"),
        ("EXPENDITURE", 300, "2024-03-10"),
        ("EXPENDITURE", 200, "2024-03-20"),
    ]:
        resp = client.post(
            "/api/entries",
            json={
                "type": type_,
                "content": "entry",
                "cost": cost,
                "date": day,
                "category_name": "General",
                "payment_method": "CARD",
            },
            headers=headers,
        )
        assert resp.status_code == 201

    resp = client.get(
        "/api/entries",
        params={"month": "2024-03", "page": 1, "limit": 2},
        headers=headers,
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["revenue_total"] == 1000
    assert body["expenditure_total"] == 500
    assert body["remaining_budget"] == -100
    assert body["entries"]["total"] == 3
    assert body["entries"]["has_more"] is True
    assert [item["date"] for item in body["entries"]["items"]] == [
        "2024-03-20",
        "2024-03-10",
    ]

    bad_month = client.get("/api/entries", params={"month": "2024-13"}, headers=headers)
    assert bad_month.status_code == 400


def test_expenditure_ratio_validation(api) -> None:
    client, _, _ = api
    headers = auth(1)

    bad = client.put(
        "/api/expenditure-ratio", json={"fixed": 60, "variable": 60}, headers=headers
    )
    assert bad.status_code == 400
    assert client.get("/api/expenditure-ratio", headers=headers).status_code == 404

    ok = client.put(
        "/api/expenditure-ratio", json={"fixed": 60, "variable": 40}, headers=headers
    )
    assert ok.status_code == 200
    stored = client.get("/api/expenditure-ratio", headers=headers).json()
    assert (stored["fixed"], stored["variable"]) == (60, 40)


def test_category_endpoints_are_scoped_to_the_caller(api) -> None:
    client, _, _ = api

    created = client.post(
        "/api/categories",
        json={"type": "EXPENDITURE", "name": "Food"},
        headers=auth(2),
    )
    assert created.status_code == 201
    category_id = created.json()["id"]

    resp = client.delete(f"/api/categories/{category_id}", headers=auth(1))
    assert resp.status_code == 404
    names = client.get(
        "/api/categories", params={"type": "EXPENDITURE"}, headers=auth(2)
    ).json()["names"]
    assert names == ["Food"]

    resp = client.delete(f"/api/categories/{category_id}", headers=auth(2))
    assert resp.status_code == 204


def test_goal_endpoints(api) -> None:
    client, _, _ = api
    headers = auth(1)

    first = client.put(
        "/api/goals", json={"content": "Save", "date": "2024-03-01"}, headers=headers
    ).json()
    again = client.put(
        "/api/goals", json={"content": "Save more", "date": "2024-03-01"}, headers=headers
    ).json()
    assert first["id"] == again["id"]

    goal = client.get("/api/goals/2024-03-01", headers=headers).json()
    assert goal["content"] == "Save more"
    listed = client.get("/api/goals", params={"month": "2024-03"}, headers=headers).json()
    assert [g["content"] for g in listed["items"]] == ["Save more"]
    assert client.get("/api/goals/2024-03-02", headers=headers).status_code == 404


def test_money_log_upload(api) -> None:
    client, uploader, _ = api
    headers = auth(1)

    resp = client.post(
        "/api/money-logs",
        data={"date": "2024-03-05", "content": "Lunch receipts"},
        files=[
            ("images", ("a.jpg", b"aaa", "image/jpeg")),
            ("images", ("b.jpg", b"bbb", "image/jpeg")),
        ],
        headers=headers,
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["image_urls"] == [
        "https://cdn.example.test/moneyLog/001-a.jpg",
        "https://cdn.example.test/moneyLog/002-b.jpg",
    ]
    fetched = client.get(f"/api/money-logs/{body['id']}", headers=headers).json()
    assert fetched["image_urls"] == body["image_urls"]
    assert client.get(f"/api/money-logs/{body['id']}", headers=auth(2)).status_code == 404


def test_money_log_upload_failure_is_bad_gateway(api) -> None:
    client, uploader, TestingSession = api
    uploader.fail_on = "b.jpg"

    resp = client.post(
        "/api/money-logs",
        data={"date": "2024-03-05", "content": "Lunch receipts"},
        files=[
            ("images", ("a.jpg", b"aaa", "image/jpeg")),
            ("images", ("b.jpg", b"bbb", "image/jpeg")),
        ],
        headers=auth(1),
    )

    assert resp.status_code == 502
    with TestingSession() as db:
        assert db.scalars(select(MoneyLog)).all() == []
