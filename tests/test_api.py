from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app
from services import seed_default_categories


@pytest.fixture
def client():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    TestingSession = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    with TestingSession() as session:
        seed_default_categories(session)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _login(client: TestClient, username: str = "alice") -> None:
    resp = client.post(
        "/api/auth/register",
        json={
            "username": username,
            "password": "s3cret",
            "fullName": "Alice Example",
            "phoneNumber": "555-0100",
        },
    )
    assert resp.status_code == 201
    resp = client.post(
        "/api/auth/login", json={"username": username, "password": "s3cret"}
    )
    assert resp.status_code == 200


def test_routes_require_session(client: TestClient) -> None:
    resp = client.get("/api/transactions")

    assert resp.status_code == 401
    assert resp.json() == {"message": "Authentication required"}


def test_register_login_logout(client: TestClient) -> None:
    resp = client.post(
        "/api/auth/register",
        json={
            "username": "alice",
            "password": "s3cret",
            "fullName": "Alice Example",
            "phoneNumber": "555-0100",
        },
    )
    assert resp.status_code == 201
    assert resp.json()["message"] == "User registered successfully"
    assert isinstance(resp.json()["userId"], int)

    resp = client.post(
        "/api/auth/register",
        json={
            "username": "alice",
            "password": "x",
            "fullName": "Other",
            "phoneNumber": "1",
        },
    )
    assert resp.status_code == 409

    resp = client.post("/api/auth/login", json={"username": "alice", "password": "no"})
    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid credentials"}

    resp = client.post(
        "/api/auth/login", json={"username": "alice", "password": "s3cret"}
    )
    assert resp.status_code == 200
    assert client.get("/api/categories").status_code == 200

    assert client.post("/api/auth/logout").status_code == 200
    assert client.get("/api/categories").status_code == 401


def test_transactions_and_monthly_report(client: TestClient) -> None:
    _login(client)

    resp = client.post(
        "/api/transactions",
        json={"amount": "5000", "date": "2024-01-05", "category": "Salary"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["amount"] == "5000.00"
    assert body["type"] == "income"
    assert body["description"] is None

    resp = client.post(
        "/api/transactions",
        json={
            "amount": 1200,
            "date": "2024-01-06",
            "category": "Rent",
            "description": "January rent",
        },
    )
    assert resp.status_code == 201
    rent_id = resp.json()["id"]

    resp = client.get("/api/reports/monthly/2024/1")
    assert resp.status_code == 200
    assert resp.json() == {
        "month": 1,
        "year": 2024,
        "totalIncome": {"Salary": "5000.00"},
        "totalExpenses": {"Rent": "1200.00"},
        "netSavings": "3800.00",
    }

    resp = client.get("/api/reports/yearly/2024")
    assert resp.json()["netSavings"] == "3800.00"

    resp = client.put(f"/api/transactions/{rent_id}", json={"amount": "1300"})
    assert resp.status_code == 200
    assert resp.json()["amount"] == "1300.00"
    assert resp.json()["date"] == "2024-01-06"

    resp = client.get(
        "/api/transactions",
        params={"startDate": "2024-01-06", "category": "Rent"},
    )
    assert [t["id"] for t in resp.json()["transactions"]] == [rent_id]

    assert client.delete(f"/api/transactions/{rent_id}").status_code == 200
    assert client.delete(f"/api/transactions/{rent_id}").status_code == 404


@pytest.mark.parametrize("month", ["13", "0", "-1"])
def test_invalid_month_is_bad_request(client: TestClient, month: str) -> None:
    _login(client)

    resp = client.get(f"/api/reports/monthly/2024/{month}")

    assert resp.status_code == 400
    assert "Invalid month" in resp.json()["message"]


def test_transaction_errors_map_to_bad_request(client: TestClient) -> None:
    _login(client)
    tomorrow = (date.today() + timedelta(days=2)).isoformat()

    resp = client.post(
        "/api/transactions",
        json={"amount": "10", "date": tomorrow, "category": "Food"},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Transaction date cannot be in the future"

    resp = client.post(
        "/api/transactions",
        json={"amount": "10", "date": "2024-01-01", "category": "Nope"},
    )
    assert resp.status_code == 400

    resp = client.post("/api/transactions", json={"date": "2024-01-01"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation failed"
    assert "amount" in resp.json()


def test_category_rules_over_http(client: TestClient) -> None:
    _login(client)

    resp = client.post("/api/categories", json={"name": "Salary", "type": "INCOME"})
    assert resp.status_code == 409

    resp = client.post("/api/categories", json={"name": "Gym", "type": "EXPENSE"})
    assert resp.status_code == 201
    assert resp.json() == {"name": "Gym", "type": "expense", "custom": True}

    names = {c["name"] for c in client.get("/api/categories").json()["categories"]}
    assert {"Salary", "Food", "Gym"} <= names

    assert client.delete("/api/categories/Salary").status_code == 403

    client.post(
        "/api/transactions",
        json={"amount": "30", "date": "2024-01-01", "category": "Gym"},
    )
    resp = client.delete("/api/categories/Gym")
    assert resp.status_code == 400
    assert "in use" in resp.json()["message"]

    assert client.delete("/api/categories/Unknown").status_code == 404


def test_goal_lifecycle(client: TestClient) -> None:
    _login(client)
    target = (date.today() + timedelta(days=365)).isoformat()

    resp = client.post(
        "/api/goals",
        json={"goalName": "Emergency fund", "targetAmount": "10000", "targetDate": target},
    )
    assert resp.status_code == 201
    goal = resp.json()
    assert goal["goalName"] == "Emergency fund"
    assert goal["targetAmount"] == "10000.00"
    assert goal["currentProgress"] == "0.00"
    assert goal["remainingAmount"] == "10000.00"
    assert goal["progressPercentage"] == 0.0

    resp = client.put(f"/api/goals/{goal['id']}", json={"targetAmount": "0"})
    assert resp.status_code == 400

    resp = client.put(f"/api/goals/{goal['id']}", json={"targetAmount": "12000"})
    assert resp.status_code == 200
    assert resp.json()["targetAmount"] == "12000.00"

    assert len(client.get("/api/goals").json()["goals"]) == 1
    assert client.delete(f"/api/goals/{goal['id']}").status_code == 200
    assert client.get(f"/api/goals/{goal['id']}").status_code == 404


def test_oversized_amounts_and_blank_names_are_bad_requests(
    client: TestClient,
) -> None:
    _login(client)
    target = (date.today() + timedelta(days=365)).isoformat()

    resp = client.post(
        "/api/transactions",
        json={"amount": "1e20", "date": "2024-01-01", "category": "Food"},
    )
    assert resp.status_code == 400
    assert "cannot exceed" in resp.json()["message"]

    resp = client.post("/api/categories", json={"name": "   ", "type": "expense"})
    assert resp.status_code == 400
    assert resp.json()["message"] == "Category name cannot be empty"

    resp = client.post(
        "/api/goals",
        json={"goalName": "   ", "targetAmount": "100", "targetDate": target},
    )
    assert resp.status_code == 400
    assert resp.json()["message"] == "Goal name cannot be empty"
