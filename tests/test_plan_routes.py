"""
HTTP contract of the /api/plans endpoints: envelope, auth, status codes.
"""

from app.api.routes import plan_routes
from app.services import reminder_service

from conftest import set_plan_xp


def add_payload(target_id="amazon", milestones=None, difficulty="medium"):
    return {
        "targetId": target_id,
        "targetName": target_id.title(),
        "trackType": "placement",
        "difficulty": difficulty,
        "milestones": milestones if milestones is not None else [
            {"week": 1, "title": "Arrays", "tasks": ["Two pointers", "Sliding window", "Prefix sums", "Kadane"],
             "resources": ["LeetCode"], "targetSkills": ["DSA"], "xp": 100},
        ],
    }


def create_plan(client, headers, **kwargs):
    resp = client.post("/api/plans/add", json=add_payload(**kwargs), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["planId"]


class TestPlanFlow:
    def test_add_list_detail_complete_delete(self, client, student):
        headers = student["headers"]
        plan_id = create_plan(client, headers)

        listed = client.get("/api/plans/list", headers=headers).json()
        assert listed["success"] is True
        assert [p["id"] for p in listed["data"]] == [plan_id]
        assert listed["data"][0]["track_type"] == "placement"

        detail = client.get(f"/api/plans/{plan_id}", headers=headers).json()["data"]
        assert set(detail) == {"plan", "tasks", "rewards", "radarData"}
        assert len(detail["tasks"]) == 2
        task_id = detail["tasks"][0]["id"]

        done = client.post("/api/plans/complete-task", json={"taskId": task_id, "planId": plan_id}, headers=headers)
        assert done.status_code == 200
        body = done.json()
        assert body["success"] is True
        assert body["data"]["newRewards"] == []
        assert body["data"]["xpEarned"] == 100
        assert body["data"]["alreadyCompleted"] is False
        assert body["data"]["plan"]["total_xp"] == 100
        assert body["data"]["plan"]["progress"] == 50
        assert body["data"]["plan"]["current_streak"] == 1

        detail = client.get(f"/api/plans/{plan_id}", headers=headers).json()["data"]
        assert detail["tasks"][0]["is_completed"] is True
        assert detail["radarData"] == [{"skill": "DSA", "completion_rate": 50, "completed": 1, "total": 2}]

        deleted = client.delete(f"/api/plans/{plan_id}", headers=headers)
        assert deleted.json() == {"message": "Plan deleted successfully", "success": True}
        assert client.get("/api/plans/list", headers=headers).json()["data"] == []

    def test_add_same_target_twice(self, client, student):
        plan_id = create_plan(client, student["headers"])
        resp = client.post("/api/plans/add", json=add_payload(), headers=student["headers"])
        assert resp.json()["data"] == {"planId": plan_id, "alreadyExists": True}
        assert resp.json()["message"] == "Plan already exists"

    def test_complete_twice_is_idempotent(self, client, student):
        headers = student["headers"]
        plan_id = create_plan(client, headers)
        task_id = client.get(f"/api/plans/{plan_id}", headers=headers).json()["data"]["tasks"][0]["id"]
        set_plan_xp(plan_id, 400)

        first = client.post("/api/plans/complete-task", json={"taskId": task_id, "planId": plan_id}, headers=headers)
        assert [r["badge_name"] for r in first.json()["data"]["newRewards"]] == ["Beginner Achiever"]

        second = client.post("/api/plans/complete-task", json={"taskId": task_id, "planId": plan_id}, headers=headers)
        assert second.status_code == 200
        data = second.json()["data"]
        assert data["alreadyCompleted"] is True
        assert data["newRewards"] == []
        assert data["plan"]["total_xp"] == 500

        rewards = client.get(f"/api/plans/{plan_id}", headers=headers).json()["data"]["rewards"]
        assert [r["xp_threshold"] for r in rewards] == [500]


class TestErrors:
    def test_missing_token(self, client):
        resp = client.get("/api/plans/list")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Invalid or expired token"}

    def test_bad_token(self, client):
        resp = client.get("/api/plans/list", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_non_student_role(self, client, make_student):
        admin = make_student("admin@example.com", "Admin", role="admin")
        resp = client.get("/api/plans/list", headers=admin["headers"])
        assert resp.status_code == 403
        assert resp.json()["success"] is False

    def test_unknown_plan(self, client, student):
        resp = client.get("/api/plans/4242", headers=student["headers"])
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Plan not found"}

    def test_invalid_plan_id(self, client, student):
        resp = client.get("/api/plans/abc", headers=student["headers"])
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_foreign_plan(self, client, make_student):
        owner = make_student("owner@example.com", "Owner")
        other = make_student("other@example.com", "Other")
        plan_id = create_plan(client, owner["headers"])

        assert client.get(f"/api/plans/{plan_id}", headers=other["headers"]).status_code == 403
        assert client.delete(f"/api/plans/{plan_id}", headers=other["headers"]).status_code == 403
        assert client.get(f"/api/plans/{plan_id}", headers=owner["headers"]).status_code == 200

    def test_complete_requires_ids(self, client, student):
        resp = client.post("/api/plans/complete-task", json={"taskId": 1}, headers=student["headers"])
        assert resp.status_code == 400
        assert "planId" in resp.json()["error"]

    def test_add_requires_milestones(self, client, student):
        resp = client.post("/api/plans/add", json=add_payload(milestones=[]), headers=student["headers"])
        assert resp.status_code == 400

    def test_add_with_only_empty_tasks(self, client, student):
        payload = add_payload(milestones=[{"week": 1, "title": "Empty", "tasks": []}])
        resp = client.post("/api/plans/add", json=payload, headers=student["headers"])
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Milestones contain no tasks"}

    def test_add_rejects_unknown_track(self, client, student):
        payload = add_payload()
        payload["trackType"] = "startup"
        resp = client.post("/api/plans/add", json=payload, headers=student["headers"])
        assert resp.status_code == 400


class TestExtras:
    def test_generate_falls_back_without_ai(self, client, student):
        payload = {
            "trackType": "higher-studies",
            "targetId": "gate-cse",
            "targetName": "GATE CSE",
            "requiredSkills": ["DSA", "OS"],
            "studentSkills": {"DSA": 4, "OS": 1},
            "semester": 6,
            "timeRemainingWeeks": 4,
        }
        resp = client.post("/api/plans/generate", json=payload, headers=student["headers"])
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["isFallback"] is True
        assert data["targetId"] == "gate-cse"
        assert data["totalWeeks"] == 4
        assert len(data["milestones"]) == 4
        assert data["milestones"][0]["targetSkills"] == ["OS"]
        assert data["skillGaps"][0] == {"skill": "DSA", "current": 4, "required": 5}

        # the draft can be added as-is
        add = {
            "targetId": data["targetId"], "targetName": data["targetName"],
            "trackType": data["trackType"], "milestones": data["milestones"],
        }
        assert client.post("/api/plans/add", json=add, headers=student["headers"]).status_code == 201

    def test_adjust_difficulty(self, client, student):
        plan_id = create_plan(client, student["headers"], difficulty="hard")
        resp = client.post(f"/api/plans/{plan_id}/adjust-difficulty", headers=student["headers"])
        assert resp.status_code == 200
        assert resp.json()["data"] == {"difficulty": "easy"}

    def test_leaderboard(self, client, make_student):
        a = make_student("a@example.com", "Asha")
        b = make_student("b@example.com", "Bala")
        set_plan_xp(create_plan(client, a["headers"]), 250)
        set_plan_xp(create_plan(client, b["headers"]), 700)

        data = client.get("/api/plans/leaderboard", headers=a["headers"]).json()["data"]
        assert [e["name"] for e in data["leaderboard"]] == ["Bala", "Asha"]
        assert data["currentUser"] == {"student_id": a["student_id"], "name": "Asha", "total_xp": 250, "rank": 2}

    def test_task_reminder_cron(self, client, student, monkeypatch):
        sent = []
        monkeypatch.setattr(reminder_service, "send_email", lambda to, subject, body: sent.append((to, subject)))
        create_plan(client, student["headers"])

        resp = client.post("/api/plans/cron/task-reminder")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"sent": 1, "failed": 0, "total": 1}
        assert sent == [("asha@example.com", "1 Task Pending Today - Don't Break Your Streak!")]

    def test_task_reminder_cron_secret(self, client, monkeypatch):
        monkeypatch.setattr(plan_routes.settings, "cron_secret", "s3cret")
        assert client.post("/api/plans/cron/task-reminder").status_code == 401
        ok = client.post("/api/plans/cron/task-reminder", headers={"Authorization": "Bearer s3cret"})
        assert ok.status_code == 200
        assert ok.json()["data"]["total"] == 0
