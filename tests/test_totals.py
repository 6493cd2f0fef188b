# tests/test_totals.py
from remodel.services.totals import percentage_used

from conftest import API


def _seed(client, headers):
    client.post(f"{API}/save-room/kitchen", json={"roomData": {"name": "Kitchen", "items": [
        {"description": "Sink", "category": "Products", "quantity": 1,
         "budgetRate": 200, "actualRate": 250, "status": "Completed"},
        {"description": "Tiles", "category": "Materials", "quantity": 10,
         "budgetRate": 30, "status": "Completed"},
        {"description": "Paint", "category": "Materials", "quantity": 2,
         "budgetRate": 25, "actualRate": 20, "status": "Ordered"},
    ]}}, headers=headers)
    client.post(f"{API}/save-expenses", json={"expenses": [
        {"id": "n1", "description": "Notary", "category": "Legal", "amount": 100, "status": "Completed"},
        {"id": "n2", "description": "Permit", "category": "Legal", "amount": 70, "status": "Pending"},
    ]}, headers=headers)


def test_totals(client, admin_headers):
    _seed(client, admin_headers)
    r = client.get(f"{API}/totals")
    assert r.status_code == 200
    totals = r.json()["totals"]
    # budget: 200 + 300 + 50
    assert totals["totalBudget"] == 550
    # spent: 250 (actual) + 300 (budget fallback) + 100 (completed expense)
    assert totals["totalExpenses"] == 650
    assert totals["remaining"] == -100
    assert totals["percentageUsed"] == round(650 / 550 * 100, 2)
    assert totals["totalRooms"] == 1
    assert totals["totalItems"] == 3
    assert totals["completedItems"] == 2


def test_totals_empty_project(client):
    totals = client.get(f"{API}/totals").json()["totals"]
    assert totals["totalBudget"] == 0
    assert totals["totalExpenses"] == 0
    assert totals["percentageUsed"] == 0


def test_percentage_used_without_budget():
    assert percentage_used(10.0, 0.0) == 0.0
    assert percentage_used(25.0, 100.0) == 25.0


def test_all_categories(client, admin_headers):
    _seed(client, admin_headers)
    r = client.get(f"{API}/get-all-categories")
    assert r.status_code == 200
    assert r.json()["categories"] == [
        {"category": "Legal", "count": 2, "total": 170},
        {"category": "Materials", "count": 2, "total": 340},
        {"category": "Products", "count": 1, "total": 250},
    ]
