"""Quest API 엔드포인트 테스트"""

from fastapi.testclient import TestClient

OWNER = {"X-User-Id": "owner"}
USER = {"X-User-Id": "u1"}


def _make_quest(client: TestClient, task_count: int = 3, required: int = 2) -> dict:
    badge_id = client.post("/badges", json={"title": "Finisher"}, headers=OWNER).json()[
        "badge_id"
    ]
    task_ids = [
        client.post("/tasks", json={"title": f"Task {i}"}, headers=OWNER).json()["task_id"]
        for i in range(task_count)
    ]
    response = client.post(
        "/quests",
        json={
            "title": "Onboarding",
            "description": "First week",
            "badge_id": badge_id,
            "task_ids": task_ids,
            "required_tasks_count": required,
        },
        headers=OWNER,
    )
    assert response.status_code == 201
    return {"quest": response.json(), "task_ids": task_ids, "badge_id": badge_id}


class TestQuestCrud:
    def test_create_and_detail(self, client):
        made = _make_quest(client)
        quest_id = made["quest"]["quest_id"]

        response = client.get(f"/quests/{quest_id}", headers=USER)
        assert response.status_code == 200
        data = response.json()
        assert data["state"] == "not_started"
        assert [t["task_id"] for t in data["tasks"]] == made["task_ids"]
        assert [t["order_position"] for t in data["tasks"]] == [0, 1, 2]
        assert data["badge"]["badge_id"] == made["badge_id"]
        assert data["progress"] is None
        assert data["user_has_badge"] is False

    def test_create_invalid_required_count(self, client):
        task_id = client.post("/tasks", json={"title": "Only"}, headers=OWNER).json()[
            "task_id"
        ]
        response = client.post(
            "/quests",
            json={"title": "Q", "task_ids": [task_id], "required_tasks_count": 2},
            headers=OWNER,
        )
        assert response.status_code == 422
        assert "cannot be greater" in response.json()["detail"]

    def test_create_without_tasks(self, client):
        response = client.post("/quests", json={"title": "Empty"}, headers=OWNER)
        assert response.status_code == 422

    def test_detail_missing(self, client):
        assert client.get("/quests/quest_missing", headers=USER).status_code == 404

    def test_list_and_search(self, client):
        made = _make_quest(client)
        client.post(f"/quests/{made['quest']['quest_id']}/start", headers=USER)

        listed = client.get("/quests", headers=USER).json()
        assert len(listed) == 1
        assert listed[0]["task_count"] == 3
        assert listed[0]["badge_title"] == "Finisher"
        assert listed[0]["progress"]["state"] == "in_progress"

        assert client.get("/quests", params={"q": "first week"}, headers=USER).json()
        assert client.get("/quests", params={"q": "zzz"}, headers=USER).json() == []
        assert client.get("/quests", params={"completed": "true"}, headers=USER).json() == []
        assert (
            client.get("/quests", params={"created_by_me": "true"}, headers=USER).json()
            == []
        )

    def test_update_by_other_forbidden(self, client):
        made = _make_quest(client)
        response = client.put(
            f"/quests/{made['quest']['quest_id']}",
            json={"title": "Mine", "task_ids": made["task_ids"], "required_tasks_count": 1},
            headers=USER,
        )
        assert response.status_code == 403

    def test_delete(self, client):
        made = _make_quest(client)
        quest_id = made["quest"]["quest_id"]
        assert client.delete(f"/quests/{quest_id}", headers=USER).status_code == 403
        assert client.delete(f"/quests/{quest_id}", headers=OWNER).status_code == 204
        assert client.get(f"/quests/{quest_id}", headers=OWNER).status_code == 404


class TestQuestProgress:
    def test_full_flow(self, client):
        made = _make_quest(client)
        quest_id = made["quest"]["quest_id"]
        t1, t2, t3 = made["task_ids"]

        started = client.post(f"/quests/{quest_id}/start", headers=USER)
        assert started.status_code == 201
        assert started.json()["progress_percentage"] == 0

        again = client.post(f"/quests/{quest_id}/start", headers=USER)
        assert again.status_code == 409

        first = client.post(f"/quests/{quest_id}/tasks/{t1}/complete", headers=USER).json()
        assert first["progress"]["progress_percentage"] == 50
        assert first["badge_awarded"] is None

        second = client.post(f"/quests/{quest_id}/tasks/{t2}/complete", headers=USER).json()
        assert second["newly_completed"] is True
        assert second["progress"]["state"] == "completed"
        assert second["badge_awarded"]["quest_id"] == quest_id

        third = client.post(f"/quests/{quest_id}/tasks/{t3}/complete", headers=USER).json()
        assert third["changed"] is False
        assert third["progress"]["completed_tasks"] == [t1, t2]

        earned = client.get("/users/u1/badges").json()
        assert len(earned) == 1

        progress = client.get(f"/quests/{quest_id}/progress", headers=USER).json()
        assert progress["state"] == "completed"
        assert progress["progress"]["progress_percentage"] == 100

    def test_complete_before_start(self, client):
        made = _make_quest(client)
        quest_id = made["quest"]["quest_id"]
        response = client.post(
            f"/quests/{quest_id}/tasks/{made['task_ids'][0]}/complete", headers=USER
        )
        assert response.status_code == 404

    def test_progress_not_started(self, client):
        made = _make_quest(client)
        response = client.get(f"/quests/{made['quest']['quest_id']}/progress", headers=USER)
        assert response.status_code == 200
        assert response.json() == {
            "quest_id": made["quest"]["quest_id"],
            "state": "not_started",
            "progress": None,
        }

    def test_edit_resets_progress(self, client):
        made = _make_quest(client, required=3)
        quest_id = made["quest"]["quest_id"]
        t1 = made["task_ids"][0]
        client.post(f"/quests/{quest_id}/start", headers=USER)
        client.post(f"/quests/{quest_id}/tasks/{t1}/complete", headers=USER)

        new_ids = [
            client.post("/tasks", json={"title": f"New {i}"}, headers=OWNER).json()["task_id"]
            for i in range(2)
        ]
        response = client.put(
            f"/quests/{quest_id}",
            json={"title": "Onboarding v2", "task_ids": new_ids, "required_tasks_count": 1},
            headers=OWNER,
        )
        assert response.status_code == 200

        progress = client.get(f"/quests/{quest_id}/progress", headers=USER).json()
        assert progress["progress"]["progress_percentage"] == 0
        assert progress["state"] == "in_progress"
