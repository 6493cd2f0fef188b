# tests/test_timeline.py
from sqlmodel import Session

from remodel.models import TIMELINE_ID, Timeline
from remodel.schemas import Phase
from remodel.services import timeline as timeline_store
from remodel.services.timeline import current_phase, overall_progress

from conftest import API


def _phase(pid, order, status="Not Started", **extra):
    phase = {"id": pid, "title": f"Phase {pid}", "order": order, "status": status}
    phase.update(extra)
    return phase


def _save(client, headers, phases):
    return client.post(f"{API}/timeline", json={"timeline": {"phases": phases}}, headers=headers)


def _get(client):
    r = client.get(f"{API}/timeline")
    assert r.status_code == 200
    return r.json()["timeline"]


def test_empty_timeline_created_on_read(client):
    assert _get(client) == {"phases": [], "overall_progress": 0, "current_phase": None}


def test_subtask_toggle_completes_phase(client, admin_headers):
    subtasks = [
        {"id": "s1", "title": "Remove tiles", "completed": True},
        {"id": "s2", "title": "Haul debris", "completed": False},
    ]
    assert _save(client, admin_headers, [_phase("p1", 1, "In Progress", subtasks=subtasks)]).status_code == 200
    assert _get(client)["phases"][0]["status"] == "In Progress"

    subtasks[1]["completed"] = True
    _save(client, admin_headers, [_phase("p1", 1, "In Progress", subtasks=subtasks)])
    timeline = _get(client)
    assert timeline["phases"][0]["status"] == "Completed"
    assert timeline["overall_progress"] == 100
    assert timeline["current_phase"] is None


def test_unchecking_subtask_does_not_regress(client, admin_headers):
    subtasks = [{"id": "s1", "title": "Only step", "completed": True}]
    _save(client, admin_headers, [_phase("p1", 1, "Completed", subtasks=subtasks)])
    subtasks[0]["completed"] = False
    _save(client, admin_headers, [_phase("p1", 1, "Completed", subtasks=subtasks)])
    assert _get(client)["phases"][0]["status"] == "Completed"


def test_untouched_subtasks_do_not_force_status(client, admin_headers):
    subtasks = [{"id": "s1", "title": "Done already", "completed": True}]
    _save(client, admin_headers, [_phase("p1", 1, "In Progress", subtasks=subtasks)])
    # first save counts as a toggle (new subtask compared against incomplete)
    assert _get(client)["phases"][0]["status"] == "Completed"

    # explicit status change with no subtask change sticks
    _save(client, admin_headers, [_phase("p1", 1, "Blocked", subtasks=subtasks)])
    assert _get(client)["phases"][0]["status"] == "Blocked"


def test_toggle_endpoint(client, admin_headers):
    subtasks = [
        {"id": "s1", "title": "Measure", "completed": True},
        {"id": "s2", "title": "Order", "completed": False},
    ]
    _save(client, admin_headers, [_phase("p1", 1, "In Progress", subtasks=subtasks)])
    r = client.post(f"{API}/timeline/phase/p1/subtasks/s2/toggle", headers=admin_headers)
    assert r.status_code == 200
    assert r.json()["phase"]["status"] == "Completed"

    r = client.post(f"{API}/timeline/phase/p1/subtasks/nope/toggle", headers=admin_headers)
    assert r.status_code == 404


def test_phases_sorted_by_order(client, admin_headers):
    _save(client, admin_headers, [
        _phase("c", 30, "Completed"),
        _phase("a", 10, "Completed"),
        _phase("b", 20, "In Progress"),
    ])
    timeline = _get(client)
    assert [p["id"] for p in timeline["phases"]] == ["a", "b", "c"]
    assert timeline["overall_progress"] == 67
    assert timeline["current_phase"]["id"] == "b"


def test_delete_phase_keeps_order_gaps(client, admin_headers):
    _save(client, admin_headers, [_phase("a", 1), _phase("b", 2), _phase("c", 3)])
    r = client.delete(f"{API}/timeline/phase/b", headers=admin_headers)
    assert r.status_code == 200
    phases = _get(client)["phases"]
    assert [(p["id"], p["order"]) for p in phases] == [("a", 1), ("c", 3)]
    assert client.delete(f"{API}/timeline/phase/b", headers=admin_headers).status_code == 404


def test_duplicate_ids_and_orders_rejected(client, admin_headers):
    r = _save(client, admin_headers, [_phase("a", 1), _phase("a", 2)])
    assert r.status_code == 400
    assert r.json()["field"] == "phases[1].id"

    r = _save(client, admin_headers, [_phase("a", 1), _phase("b", 1)])
    assert r.status_code == 400
    assert r.json()["field"] == "phases[1].order"
    assert _get(client)["phases"] == []


def test_dates_must_be_ordered(client, admin_headers):
    r = _save(client, admin_headers, [
        _phase("a", 1, startDate="2025-05-10", endDate="2025-05-01"),
    ])
    assert r.status_code == 400
    assert r.json()["field"] == "phases[0].endDate"


def test_duplicate_subtask_ids_rejected(client, admin_headers):
    subtasks = [{"id": "s", "title": "One"}, {"id": "s", "title": "Two"}]
    r = _save(client, admin_headers, [_phase("a", 1, subtasks=subtasks)])
    assert r.status_code == 400
    assert r.json()["field"] == "phases[0].subtasks[1].id"


def test_nested_records_round_trip(client, admin_headers):
    phase = _phase(
        "a", 1, "In Progress",
        startDate="2025-05-01", endDate="2025-05-20",
        learnings=[{"id": "l1", "content": "Order tiles early", "category": "tip"}],
        references=[{"id": "r1", "type": "link", "name": "Supplier", "url": "https://tiles.example"}],
        relatedRooms=["kitchen"],
    )
    assert _save(client, admin_headers, [phase]).status_code == 200
    stored = _get(client)["phases"][0]
    assert stored["learnings"][0]["category"] == "tip"
    assert stored["references"][0]["type"] == "link"
    assert stored["relatedRooms"] == ["kitchen"]
    assert stored["startDate"].startswith("2025-05-01")


def test_bad_learning_category_rejected(client, admin_headers):
    phase = _phase("a", 1, learnings=[{"content": "x", "category": "rant"}])
    assert _save(client, admin_headers, [phase]).status_code == 400


def test_timeline_writes_need_admin(client, user_headers):
    assert _save(client, user_headers, []).status_code == 403
    assert client.delete(f"{API}/timeline/phase/x").status_code == 401


def test_progress_and_current_phase_helpers():
    assert overall_progress([]) == 0
    phases = [
        Phase(id="a", title="A", order=1, status="Completed"),
        Phase(id="b", title="B", order=2, status="Not Started"),
        Phase(id="c", title="C", order=3, status="Blocked"),
    ]
    assert overall_progress(phases) == 33
    assert current_phase(phases).id == "b"
    assert current_phase(phases[:1]) is None


def test_first_read_tolerates_concurrent_initialization(session, test_engine, monkeypatch):
    # another worker creates the row between our lookup and our insert
    real_get = session.get
    calls = []

    def racing_get(model, ident, **kw):
        calls.append(ident)
        if len(calls) == 1:
            with Session(test_engine) as other:
                other.add(Timeline(id=TIMELINE_ID, phases=[_phase("p1", 1)]))
                other.commit()
            return None
        return real_get(model, ident, **kw)

    monkeypatch.setattr(session, "get", racing_get)
    phases = timeline_store.load_phases(session)
    assert [p.id for p in phases] == ["p1"]
    assert len(calls) == 2
