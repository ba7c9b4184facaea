import logging

import pytest
from flask import Flask

from tipsplit import create_app
from tipsplit.api.routes import api_bp


@pytest.fixture()
def app():
    app = Flask(__name__)
    app.register_blueprint(api_bp)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


def test_health(client):
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json() == {"status": "ok"}


def test_create_app_reads_config():
    class TestConfig:
        TESTING = True
        MAX_PARTICIPANTS = 6
        DEFAULT_TIP_PERCENT = 18
        LOG_LEVEL = "WARNING"

    app = create_app(TestConfig)
    r = app.test_client().get("/api/tip-presets")

    assert r.status_code == 200
    assert r.get_json() == {
        "presets": [0, 5, 10, 15, 20, 25, 30, 40],
        "default_tip_percent": 18,
        "max_participants": 6,
    }
    assert logging.getLogger("tipsplit").level == logging.WARNING


def test_simple_split(client):
    r = client.post("/api/split/simple", json={"bill": 100, "tip_percent": 20, "participant_count": 4})
    assert r.status_code == 200
    assert r.get_json() == {
        "tip_amount": 20,
        "total_bill": 120,
        "per_person": 30,
        "formatted": {"tip_amount": "$20.00", "total_bill": "$120.00", "per_person": "$30.00"},
    }


def test_simple_split_accepts_decimal_strings(client):
    r = client.post("/api/split/simple", json={"bill": "10.50", "tip_percent": "15", "participant_count": 1})
    assert r.status_code == 200
    body = r.get_json()
    assert (body["tip_amount"], body["total_bill"], body["per_person"]) == (1.58, 12.08, 12.08)


def test_simple_split_clamps_out_of_range_numbers(client):
    r = client.post("/api/split/simple", json={"bill": -100, "tip_percent": -20, "participant_count": 0})
    assert r.status_code == 200
    assert r.get_json()["formatted"] == {"tip_amount": "$0.00", "total_bill": "$0.00", "per_person": "$0.00"}


def test_simple_split_uses_default_tip(client):
    r = client.post("/api/split/simple", json={"bill": 100})
    assert r.status_code == 200
    assert r.get_json()["tip_amount"] == 15


def test_simple_split_rejects_garbage_text(client):
    r = client.post("/api/split/simple", json={"bill": "ten dollars"})
    assert r.status_code == 400
    assert r.get_json()["error"]["code"] == "bad_request"
    assert "bill" in r.get_json()["error"]["message"]


def test_simple_split_requires_json(client):
    r = client.post("/api/split/simple", data="nope", content_type="text/plain")
    assert r.status_code == 400


def test_itemized_split(client):
    payload = {
        "tip_percent": 10,
        "participant_count": 2,
        "items": [
            {"id": "steak", "name": "Steak", "price": 30, "assigned_to": [1]},
            {"id": "fries", "name": "Fries", "price": 20, "assigned_to": [1, 2]},
        ],
    }

    r = client.post("/api/split/itemized", json=payload)

    assert r.status_code == 200
    body = r.get_json()
    assert body["subtotal"] == 50
    assert body["tip_amount"] == 5
    assert body["total_bill"] == 55
    assert body["formatted"]["total_bill"] == "$55.00"
    assert [(p["person_index"], p["base_amount"], p["item_ids"]) for p in body["results"]] == [
        (1, 40, ["steak", "fries"]),
        (2, 10, ["fries"]),
    ]
    assert body["results"][0]["formatted_total"] == "$44.00"
    assert body["results"][1]["label"] == "Person 2"


def test_itemized_split_generates_missing_item_ids(client):
    payload = {"participant_count": 1, "tip_percent": 0, "items": [{"name": "Tea", "price": 2, "assigned_to": [1]}]}
    r = client.post("/api/split/itemized", json=payload)
    assert r.status_code == 200
    assert r.get_json()["results"][0]["item_ids"] == ["i0"]


@pytest.mark.parametrize(
    "item,fragment",
    [
        ({"name": "", "price": 2, "assigned_to": [1]}, "name"),
        ({"name": "Tea", "price": -2, "assigned_to": [1]}, "price"),
        ({"name": "Tea", "price": 2}, "assigned_to"),
        ({"name": "Tea", "price": 2, "assigned_to": ["1"]}, "participant index"),
    ],
)
def test_itemized_split_validates_items(client, item, fragment):
    r = client.post("/api/split/itemized", json={"participant_count": 2, "items": [item]})
    assert r.status_code == 400
    assert fragment in r.get_json()["error"]["message"]


def test_itemized_split_rejects_participant_count_over_limit(client):
    r = client.post("/api/split/itemized", json={"participant_count": 21, "items": []})
    assert r.status_code == 400
    assert "participant_count" in r.get_json()["error"]["message"]


def test_itemized_split_requires_fields(client):
    r = client.post("/api/split/itemized", json={"items": []})
    assert r.status_code == 400
    assert r.get_json()["error"]["message"] == "Missing field: participant_count"


def test_roster_apply_delete_participant_reindexes(client):
    payload = {
        "participant_count": 3,
        "names": {"1": "Ana", "2": "Ben", "3": "Cleo"},
        "tip_percent": 10,
        "items": [
            {"id": "wine", "name": "Wine", "price": 30, "assigned_to": [2, 3]},
            {"id": "soup", "name": "Soup", "price": 8, "assigned_to": [2]},
        ],
        "operations": [{"op": "delete_participant", "index": 2}],
    }

    r = client.post("/api/roster/apply", json=payload)

    assert r.status_code == 200
    body = r.get_json()
    assert body["operations"] == [{"op": "delete_participant", "applied": True, "reason": None}]
    assert body["state"] == {
        "participant_count": 2,
        "names": {"1": "Ana", "2": "Cleo"},
        "items": [
            {"id": "wine", "name": "Wine", "price": 30, "assigned_to": [2]},
            {"id": "soup", "name": "Soup", "price": 8, "assigned_to": []},
        ],
    }
    assert body["unassigned_item_ids"] == ["soup"]
    assert [p["label"] for p in body["participants"]] == ["Ana", "Cleo"]
    assert body["split"]["subtotal"] == 38
    assert body["split"]["results"][1]["base_amount"] == 30
    assert body["per_person_rounded"] == {"1": 0, "2": 33}


def test_roster_apply_reports_rejections_and_item_ids(client):
    payload = {
        "participant_count": 1,
        "operations": [
            {"op": "add_item", "name": "Tea", "price": 0, "assigned_to": [1]},
            {"op": "add_item", "name": "Cake", "price": 6.5, "assigned_to": [1]},
            {"op": "delete_participant", "index": 1},
            {"op": "rename_participant", "index": 1, "name": "Solo"},
            {"op": "clear_items"},
        ],
    }

    r = client.post("/api/roster/apply", json=payload)

    assert r.status_code == 200
    ops = r.get_json()["operations"]
    assert [o["applied"] for o in ops] == [False, True, False, True, True]
    assert ops[0]["reason"] == "item price must be a finite number > 0"
    assert len(ops[1]["item_id"]) == 32
    assert r.get_json()["state"] == {"participant_count": 1, "names": {"1": "Solo"}, "items": []}


def test_roster_apply_rejects_unknown_operation(client):
    r = client.post("/api/roster/apply", json={"participant_count": 1, "operations": [{"op": "undo"}]})
    assert r.status_code == 400
    assert "unknown 'op'" in r.get_json()["error"]["message"]


def test_roster_apply_rejects_operation_missing_fields(client):
    r = client.post("/api/roster/apply", json={"participant_count": 2, "operations": [{"op": "rename_participant", "index": 1}]})
    assert r.status_code == 400
    assert "name" in r.get_json()["error"]["message"]


def test_roster_apply_rejects_inconsistent_snapshot(client):
    payload = {
        "participant_count": 1,
        "items": [{"id": "a", "name": "Tea", "price": 2, "assigned_to": [2]}],
    }
    r = client.post("/api/roster/apply", json=payload)
    assert r.status_code == 400
    assert "unknown participant" in r.get_json()["error"]["message"]


def test_roster_apply_non_list_assignment_is_rejected_per_operation(client):
    payload = {
        "participant_count": 2,
        "operations": [{"op": "add_item", "name": "Tea", "price": 2, "assigned_to": 1}],
    }
    r = client.post("/api/roster/apply", json=payload)
    assert r.status_code == 200
    assert r.get_json()["operations"][0]["applied"] is False


def test_simple_split_rejects_bill_over_safety_limit(client):
    r = client.post("/api/split/simple", json={"bill": 1e30, "tip_percent": 15, "participant_count": 1})
    assert r.status_code == 400
    assert "safety limit" in r.get_json()["error"]["message"]


def test_simple_split_rejects_int_too_large_for_float(client):
    r = client.post("/api/split/simple", json={"bill": 10**400, "participant_count": 1})
    assert r.status_code == 400
    assert "finite" in r.get_json()["error"]["message"]


@pytest.mark.parametrize("price", [10**400, 1e30])
def test_itemized_split_rejects_oversized_prices(client, price):
    payload = {"participant_count": 1, "items": [{"name": "Yacht", "price": price, "assigned_to": [1]}]}
    r = client.post("/api/split/itemized", json=payload)
    assert r.status_code == 400
    assert "price" in r.get_json()["error"]["message"]


def test_roster_apply_rejects_zero_price_snapshot_item(client):
    payload = {
        "participant_count": 2,
        "items": [{"id": "a", "name": "Tea", "price": 0, "assigned_to": [1]}],
    }
    r = client.post("/api/roster/apply", json=payload)
    assert r.status_code == 400
    assert "price > 0" in r.get_json()["error"]["message"]


def test_roster_apply_reports_oversized_price_as_rejected(client):
    payload = {
        "participant_count": 1,
        "operations": [{"op": "add_item", "name": "Yacht", "price": 10**400, "assigned_to": [1]}],
    }
    r = client.post("/api/roster/apply", json=payload)
    assert r.status_code == 200
    assert r.get_json()["operations"][0]["applied"] is False
