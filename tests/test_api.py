from fastapi.testclient import TestClient

from database import build_engine, init_db, make_session_factory
from main import app, get_db


def make_client() -> TestClient:
    engine = build_engine("sqlite:///:memory:")
    init_db(engine)
    SessionLocal = make_session_factory(engine)

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


def seed(client: TestClient) -> None:
    for payload in (
        {"type": "income", "amount": "1000", "category": "Salary", "date": "2024-01-05"},
        {"type": "expense", "amount": "200", "category": "Food", "date": "2024-01-10"},
        {"type": "expense", "amount": "300", "category": "Food", "date": "2024-01-15"},
    ):
        assert client.post("/api/transactions", json=payload).status_code == 201


def test_health() -> None:
    resp = make_client().get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_transaction_endpoints() -> None:
    client = make_client()
    resp = client.post(
        "/api/transactions",
        json={
            "type": "expense",
            "amount": "42.10",
            "category": "Food",
            "description": "Groceries",
            "date": "2024-01-10",
        },
    )
    assert resp.status_code == 201
    txn_id = resp.json()["id"]

    assert client.get(f"/api/transactions/{txn_id}").json()["category"] == "Food"

    resp = client.put(
        f"/api/transactions/{txn_id}",
        json={
            "type": "expense",
            "amount": "50",
            "category": "Transport",
            "date": "2024-01-11",
            "recurring": True,
            "frequency": "weekly",
        },
    )
    assert resp.status_code == 200
    assert resp.json()["frequency"] == "weekly"
    assert len(client.get("/api/recurring").json()) == 1

    assert client.delete(f"/api/transactions/{txn_id}").status_code == 204
    assert client.get(f"/api/transactions/{txn_id}").status_code == 404
    assert client.delete(f"/api/transactions/{txn_id}").status_code == 404


def test_transaction_validation() -> None:
    client = make_client()
    negative = {"type": "expense", "amount": "-5", "category": "Food", "date": "2024-01-01"}
    assert client.post("/api/transactions", json=negative).status_code == 422

    stray_frequency = {
        "type": "expense",
        "amount": "5",
        "category": "Food",
        "date": "2024-01-01",
        "frequency": "monthly",
    }
    assert client.post("/api/transactions", json=stray_frequency).status_code == 422


def test_list_transactions_for_period() -> None:
    client = make_client()
    seed(client)
    resp = client.get(
        "/api/transactions",
        params={"period": "custom", "start": "2024-01-10", "end": "2024-01-31"},
    )
    assert [row["amount"] for row in resp.json()] == [300.0, 200.0]


def test_dashboard_for_custom_range() -> None:
    client = make_client()
    seed(client)
    resp = client.get(
        "/api/dashboard",
        params={"period": "custom", "start": "2024-01-01", "end": "2024-01-31"},
    )
    assert resp.status_code == 200
    stats = resp.json()["stats"]
    assert stats["total_income"] == 1000
    assert stats["total_expenses"] == 500
    assert stats["top_category"] == "Food"
    assert stats["avg_daily_spending"] == 250
    assert stats["transaction_count"] == 3


def test_dashboard_rejects_incomplete_custom_range() -> None:
    client = make_client()
    resp = client.get("/api/dashboard", params={"period": "custom", "start": "2024-01-01"})
    assert resp.status_code == 400


def test_cash_flow_months_are_clamped() -> None:
    client = make_client()
    seed(client)
    assert len(client.get("/api/cash-flow", params={"months": "30"}).json()) == 24
    assert len(client.get("/api/cash-flow", params={"months": "0"}).json()) == 1
    assert len(client.get("/api/cash-flow", params={"months": "abc"}).json()) == 6

    [point] = client.get("/api/cash-flow", params={"months": "1"}).json()
    assert set(point) == {"month", "label", "income", "expenses", "net"}
    assert point["net"] == point["income"] - point["expenses"]


def test_spending_endpoint() -> None:
    client = make_client()
    seed(client)
    resp = client.get(
        "/api/spending",
        params={"period": "custom", "start": "2024-01-01", "end": "2024-01-31"},
    )
    assert resp.json() == [
        {"category": "Food", "amount": 500.0, "color": "hsl(var(--chart-1))"}
    ]


def test_subscription_and_budget_endpoints() -> None:
    client = make_client()
    resp = client.post(
        "/api/subscriptions",
        json={
            "name": "Music",
            "category": "Entertainment",
            "cost": "9.99",
            "next_billing_date": "2024-02-01",
        },
    )
    assert resp.status_code == 201
    sub_id = resp.json()["id"]
    used = client.post(f"/api/subscriptions/{sub_id}/used")
    assert used.status_code == 200
    assert used.json()["last_used"] is not None
    assert client.post("/api/subscriptions/missing/used").status_code == 404

    resp = client.post("/api/budgets", json={"category": "Food", "limit": "250"})
    assert resp.status_code == 201
    [progress] = client.get("/api/budgets").json()
    assert progress["budget"]["category"] == "Food"
    assert progress["status"] == "on_track"
    assert progress["color"] == "green"


def test_report_workbook_and_csv() -> None:
    client = make_client()
    seed(client)
    options = {"start": "2024-01-01", "end": "2024-01-31"}

    book = client.post("/api/reports/workbook", json=options).json()
    assert [sheet["name"] for sheet in book["sheets"]] == [
        "Summary",
        "Transactions",
        "Income Analysis",
        "Expense Analysis",
        "Subscriptions",
        "Budget Report",
    ]

    resp = client.post("/api/reports/sheets/Expense%20Analysis.csv", json=options)
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/csv")
    assert "Expense_Analysis.csv" in resp.headers["content-disposition"]
    assert "Food,500.00,100.0%,2,250.00,No budget" in resp.text

    missing = client.post("/api/reports/sheets/Charts.csv", json=options)
    assert missing.status_code == 404


def test_report_rejects_inverted_range() -> None:
    client = make_client()
    resp = client.post(
        "/api/reports/workbook", json={"start": "2024-02-01", "end": "2024-01-01"}
    )
    assert resp.status_code == 422


def test_export_data_and_account_delete() -> None:
    client = make_client()
    seed(client)

    resp = client.get("/api/export-data")
    assert resp.status_code == 200
    assert "finflow-data-export-" in resp.headers["content-disposition"]
    assert resp.json()["export_format_version"] == "1.0"
    assert len(resp.json()["transactions"]) == 3

    assert client.delete("/api/account").status_code == 400
    resp = client.delete("/api/account", params={"confirm": "DELETE"})
    assert resp.json()["deleted"]["transactions"] == 3
    assert client.get("/api/transactions").json() == []


def test_report_workbook_number_cells_are_json_numbers() -> None:
    client = make_client()
    seed(client)
    book = client.post(
        "/api/reports/workbook", json={"start": "2024-01-01", "end": "2024-01-31"}
    ).json()

    summary = book["sheets"][0]
    total_income = next(
        row for row in summary["rows"] if row and row[0]["value"] == "Total Income"
    )
    assert total_income[1]["value"] == 1000.0

    number_cells = [
        cell
        for sheet in book["sheets"]
        for row in sheet["rows"]
        for cell in row
        if cell["type"] == "number"
    ]
    assert number_cells
    assert all(isinstance(cell["value"], (int, float)) for cell in number_cells)
