"""
Tests: HTTP API (blueprints).

Covers:
    1. Status codes: 201 create, 400 malformed, 404 missing, 409 duplicate, 422 rule
    2. Grid, launch status, delivery and daily-task endpoints end to end
    3. Jobs and health endpoints
    4. Werkzeug HTTP errors pass through the catch-all handler
"""

import pytest

from tracker.services.platform_catalog import get_catalog


def _create_project(client, **overrides):
    payload = {"title": "감금연휴", "status": "live", **overrides}
    res = client.post("/api/v1/projects", json=payload)
    assert res.status_code == 201
    return res.get_json()


def _entry_id(client, category="domestic-live", title="감금연휴"):
    res = client.get(f"/api/v1/distribution/entries?category={category}")
    return next(e["id"] for e in res.get_json()["items"] if e["title"] == title)


class TestProjectsApi:
    def test_create_and_get(self, client):
        body = _create_project(client)
        assert body["episode_count"] == 10
        assert len(body["processes"]) == 5
        res = client.get(f"/api/v1/projects/{body['id']}")
        assert res.status_code == 200
        assert res.get_json()["title"] == "감금연휴"

    def test_create_requires_title(self, client):
        assert client.post("/api/v1/projects", json={}).status_code == 400

    def test_create_invalid_type(self, client):
        res = client.post("/api/v1/projects", json={"title": "x", "type": "novel"})
        assert res.status_code == 422
        assert "error" in res.get_json()

    def test_missing_project(self, client):
        assert client.get("/api/v1/projects/nope").status_code == 404

    def test_templates(self, client):
        body = client.get("/api/v1/projects/templates").get_json()
        assert body["general"][0]["name"] == "1_줄거리"
        assert len(body["adult/cope-inter"]) == 8

    def test_delete(self, client):
        body = _create_project(client)
        assert client.delete(f"/api/v1/projects/{body['id']}").status_code == 204
        assert client.get(f"/api/v1/projects/{body['id']}").status_code == 404


class TestGridApi:
    def test_cell_edits(self, client):
        pid = _create_project(client)["id"]
        base = f"/api/v1/projects/{pid}/cells/1/1"
        assert client.post(f"{base}/toggle").get_json()["status"] == "done"
        assert client.post(f"{base}/cycle").get_json()["status"] == "final"
        body = client.put(f"{base}/text", json={"text": "수정"}).get_json()
        assert (body["status"], body["text"]) == ("final", "수정")
        assert client.get(base).get_json()["episode_complete"] is False

    def test_set_cell_validation(self, client):
        pid = _create_project(client)["id"]
        assert client.put(f"/api/v1/projects/{pid}/cells/1/1", json={}).status_code == 400
        res = client.put(f"/api/v1/projects/{pid}/cells/1/1", json={"status": "maybe"})
        assert res.status_code == 422
        res = client.put(f"/api/v1/projects/{pid}/cells/1/99", json={"status": "done"})
        assert res.status_code == 422

    def test_episode_complete(self, client):
        pid = _create_project(client)["id"]
        res = client.put(f"/api/v1/projects/{pid}/episodes/2/complete", json={"checked": True})
        assert res.get_json()["completed_episodes"] == [2]

    def test_episode_add_remove_floor(self, client):
        pid = _create_project(client, episode_count=1)["id"]
        assert client.post(f"/api/v1/projects/{pid}/episodes").get_json()["episode_count"] == 2
        body = client.delete(f"/api/v1/projects/{pid}/episodes").get_json()
        assert (body["removed_episode"], body["episode_count"]) == (2, 1)
        assert client.delete(f"/api/v1/projects/{pid}/episodes").status_code == 422

    def test_hide_episodes(self, client):
        pid = _create_project(client)["id"]
        res = client.post(f"/api/v1/projects/{pid}/hidden-episodes", json={"start": 3, "end": 4})
        assert res.get_json()["hidden_episodes"] == [3, 4]
        bad = client.post(f"/api/v1/projects/{pid}/hidden-episodes", json={"start": "a", "end": 4})
        assert bad.status_code == 400
        res = client.delete(f"/api/v1/projects/{pid}/hidden-episodes")
        assert res.get_json()["hidden_episodes"] == []

    def test_processes(self, client):
        pid = _create_project(client)["id"]
        res = client.post(f"/api/v1/projects/{pid}/processes", json={"name": "6_보정"})
        assert (res.status_code, res.get_json()["id"]) == (201, 6)
        assert client.post(f"/api/v1/projects/{pid}/processes", json={}).status_code == 400
        res = client.delete(f"/api/v1/projects/{pid}/processes/6")
        assert [p["id"] for p in res.get_json()["processes"]] == [1, 2, 3, 4, 5]


class TestDistributionApi:
    def test_add_title_and_conflict(self, client):
        payload = {"title": "T1", "category": "domestic-live", "delivery_day": "monday"}
        res = client.post("/api/v1/distribution/entries", json=payload)
        assert res.status_code == 201
        assert len(res.get_json()["items"]) == 2
        assert client.post("/api/v1/distribution/entries", json=payload).status_code == 409

    def test_status_flow(self, client):
        _create_project(client)
        entry_id = _entry_id(client)
        res = client.put(f"/api/v1/distribution/entries/{entry_id}/statuses/toomics",
                         json={"status": "launched"})
        assert res.status_code == 200
        assert res.get_json()["statuses"] == {"toomics": "launched"}

        res = client.post(f"/api/v1/distribution/entries/{entry_id}/statuses/toomics/click")
        assert res.get_json()["status"] == "none"
        res = client.post(f"/api/v1/distribution/entries/{entry_id}/statuses/lezhin/cycle")
        assert res.get_json()["status"] == "pending"

        row = client.get(f"/api/v1/distribution/entries/{entry_id}").get_json()
        assert row["statuses"] == {"lezhin": "pending"}

    def test_status_errors(self, client):
        _create_project(client)
        entry_id = _entry_id(client)
        url = f"/api/v1/distribution/entries/{entry_id}/statuses/toomics"
        assert client.put(url, json={}).status_code == 400
        assert client.put(url, json={"status": "live"}).status_code == 422
        assert client.put("/api/v1/distribution/entries/nope/statuses/toomics",
                          json={"status": "launched"}).status_code == 404

    def test_reconcile_snapshot(self, client):
        _create_project(client)
        entry_id = _entry_id(client)
        client.put(f"/api/v1/distribution/entries/{entry_id}/statuses/lezhin",
                   json={"status": "pending"})
        res = client.post(f"/api/v1/distribution/entries/{entry_id}/reconcile",
                          json={"screen": {"toomics": "launched"}})
        assert res.get_json()["statuses"] == {"toomics": "launched"}
        res = client.post(f"/api/v1/distribution/entries/{entry_id}/reconcile",
                          json={"screen": ["toomics"]})
        assert res.status_code == 400

    def test_category_views(self, client):
        _create_project(client)
        res = client.get("/api/v1/distribution/categories/overseas-live",
                         query_string={"sort_by": "title", "search": "감금"})
        body = res.get_json()
        assert [r["title"] for r in body["items"]] == ["감금연휴"]
        assert client.get("/api/v1/distribution/categories/domestic-live?sort_by=x").status_code == 422
        stats = client.get("/api/v1/distribution/categories/domestic-live/stats/toomics").get_json()
        assert stats["total"] == 1
        cats = client.get("/api/v1/distribution/categories").get_json()["items"]
        assert len(cats) == 4

    def test_platform_catalog(self, client):
        res = client.post("/api/v1/distribution/platforms",
                          json={"region": "overseas", "id": "webtoon-th", "name": "웹툰 (TH)"})
        assert res.status_code == 201
        assert get_catalog().is_configured("webtoon-th", "overseas-live")
        res = client.put("/api/v1/distribution/platforms/webtoon-th", json={"name": "웹툰 태국"})
        assert res.get_json()["name"] == "웹툰 태국"
        assert client.delete("/api/v1/distribution/platforms/webtoon-th").status_code == 204
        assert client.delete("/api/v1/distribution/platforms/webtoon-th").status_code == 404


class TestDeliveryApi:
    def test_launch_then_deliver(self, client):
        client.post("/api/v1/distribution/entries",
                    json={"title": "감금연휴", "category": "domestic-live", "delivery_day": "monday"})
        entry_id = _entry_id(client)
        client.put(f"/api/v1/distribution/entries/{entry_id}/statuses/toomics",
                   json={"status": "launched"})

        rows = client.get("/api/v1/delivery?weekday=monday").get_json()["items"]
        assert rows[0]["platforms"][0]["platform_id"] == "toomics"
        assert rows[0]["platforms"][0]["count"] == 0

        res = client.put("/api/v1/delivery/records/감금연휴/toomics/1", json={"delivered": True})
        assert res.get_json()["count"] == 1
        res = client.post("/api/v1/delivery/records/감금연휴/toomics/1/toggle")
        assert res.get_json()["count"] == 0

    def test_schedules(self, client):
        res = client.put("/api/v1/delivery/schedules/감금연휴/1", json={"kind": "open", "date": "2026-03-02"})
        assert res.get_json()["open"] == {"1": "2026-03-02"}
        assert client.put("/api/v1/delivery/schedules/감금연휴/1", json={}).status_code == 400
        res = client.put("/api/v1/delivery/records/감금연휴/toomics/1/schedule", json={"date": "bad"})
        assert res.status_code == 422

    def test_weekday_validation(self, client):
        assert client.get("/api/v1/delivery?weekday=funday").status_code == 422


class TestDailyTaskApi:
    def test_assign_and_toggle(self, client):
        pid = _create_project(client)["id"]
        worker = client.post("/api/v1/workers", json={"name": "김작가", "team": "0팀"}).get_json()
        res = client.post("/api/v1/daily-tasks/assigned", json={
            "worker_id": worker["id"], "project_id": pid, "process_id": 1, "episodes": [1, 2],
        })
        assert res.status_code == 201
        tasks = res.get_json()["items"]
        assert tasks[0]["task"] == "감금연휴 - 1_줄거리 1화"

        client.post(f"/api/v1/daily-tasks/{tasks[0]['id']}/toggle")
        cell = client.get(f"/api/v1/projects/{pid}/cells/1/1").get_json()
        assert cell["status"] == "done"

        overview = client.get("/api/v1/daily-tasks/overview").get_json()["items"]
        assert overview[0]["completed_count"] == 1

    def test_bad_requests(self, client):
        assert client.post("/api/v1/daily-tasks/assigned", json={}).status_code == 400
        assert client.post("/api/v1/daily-tasks/custom", json={"worker_id": "nobody", "task": "x"}) \
            .status_code == 404
        assert client.delete("/api/v1/daily-tasks/nope").status_code == 404


class TestWorkersApi:
    def test_crud(self, client):
        res = client.post("/api/v1/workers", json={"name": "박채색"})
        assert res.status_code == 201
        worker_id = res.get_json()["id"]
        assert client.put(f"/api/v1/workers/{worker_id}", json={"team": "9팀"}).status_code == 422
        assert client.get(f"/api/v1/workers/{worker_id}/assignments").get_json()["items"] == []
        assert client.delete(f"/api/v1/workers/{worker_id}").get_json()["projects_unassigned"] == 0


class TestJobsAndHealthApi:
    def test_run_jobs(self, client):
        assert client.post("/api/v1/jobs/legacy_status_sync/run").get_json()["status"] == "success"
        assert client.post("/api/v1/jobs/nope/run").status_code == 404
        res = client.put("/api/v1/jobs/title_group_backfill/toggle", json={"enabled": False})
        assert res.get_json()["is_enabled"] is False
        assert client.put("/api/v1/jobs/title_group_backfill/toggle", json={}).status_code == 400
        names = {j["job_name"] for j in client.get("/api/v1/jobs").get_json()["items"]}
        assert {"legacy_status_sync", "title_group_backfill"} <= names

    def test_legacy_queue_endpoints(self, client):
        assert client.get("/api/v1/jobs/legacy-sync/stats").get_json() == \
            {"pending": 0, "done": 0, "failed": 0}
        assert client.get("/api/v1/jobs/legacy-sync/tasks").get_json()["total"] == 0
        assert client.post("/api/v1/jobs/legacy-sync/retry").get_json()["requeued"] == 0

    @pytest.mark.parametrize("path", ["/api/v1/health/ready", "/api/v1/health/live"])
    def test_health(self, client, path):
        assert client.get(path).status_code == 200

    def test_unknown_route(self, client):
        res = client.get("/api/v1/nowhere")
        assert res.status_code == 404
        assert "error" in res.get_json()


class TestErrorHandlers:
    @pytest.fixture()
    def bare_client(self):
        from flask import Blueprint, Flask, abort

        from tracker.blueprints import register_error_handlers

        bp = Blueprint("errors", __name__)
        register_error_handlers(bp)

        @bp.route("/forbidden")
        def forbidden():
            abort(403)

        @bp.route("/broken")
        def broken():
            raise RuntimeError("boom")

        app = Flask(__name__)
        app.register_blueprint(bp)
        return app.test_client()

    def test_http_errors_keep_their_status(self, bare_client):
        assert bare_client.get("/forbidden").status_code == 403

    def test_unexpected_errors_become_500(self, bare_client):
        res = bare_client.get("/broken")
        assert res.status_code == 500
        assert res.get_json() == {"error": "Internal server error"}
