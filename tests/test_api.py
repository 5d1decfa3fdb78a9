"""
API integration tests: AI routes, usage limits, messages and tasks.
"""

from datetime import datetime, timedelta

import pytest

from app.database import AIUsage, Link, Message, Task
from app.usage import AIFeature, count_usage_today, day_bucket, track_usage
from notes_engine.ai import AIServiceError

SHOPPING_LIST = {"ops": [
    {"insert": "Shopping List:", "attributes": {"bold": True}},
    {"insert": "\n"},
    {"insert": "Buy milk", "attributes": {"list": "bullet"}},
    {"insert": "\n", "attributes": {"list": "bullet"}},
    {"insert": "get eggs", "attributes": {"list": "bullet"}},
    {"insert": "\n", "attributes": {"list": "bullet"}},
]}


class TestAuth:

    def test_missing_user_header(self, client):
        response = client.post("/api/ai/enhance", json={"content": "hello"})
        assert response.status_code == 401

    def test_health_is_public(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}


class TestEnhanceEndpoint:

    def test_plain(self, client, auth_headers, fake_ai):
        fake_ai._rewrite = lambda text: "I have a cat."
        response = client.post("/api/ai/enhance", json={"content": "i has a cat"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"enhanced": "I have a cat.", "original": "i has a cat", "format": "plain"}

    def test_delta_list(self, client, auth_headers, fake_ai):
        fake_ai._rewrite = lambda text: "Shopping List:\nBuy Milk\nGet Eggs\n"
        response = client.post(
            "/api/ai/enhance",
            json={"content": SHOPPING_LIST, "format": "delta"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        ops = response.json()["enhanced"]["ops"]
        assert ops == [
            {"insert": "Shopping List:", "attributes": {"bold": True}},
            {"insert": "\n"},
            {"insert": "Buy Milk"},
            {"insert": "\n", "attributes": {"list": "bullet"}},
            {"insert": "Get Eggs"},
            {"insert": "\n", "attributes": {"list": "bullet"}},
        ]

    def test_validation_errors_are_400(self, client, auth_headers, fake_ai):
        for body in (
            {"content": ""},
            {"content": {"noOps": "..."}, "format": "delta"},
            {"content": {"ops": [{"insert": "\n", "attributes": {"list": "bullet"}}]}, "format": "delta"},
        ):
            response = client.post("/api/ai/enhance", json=body, headers=auth_headers)
            assert response.status_code == 400, body
        assert fake_ai.rewrite_calls == []

    def test_rewrite_failure_is_502(self, client, auth_headers, fake_ai, db):
        def fail(text):
            raise AIServiceError("quota")

        fake_ai._rewrite = fail
        response = client.post("/api/ai/enhance", json={"content": "hello"}, headers=auth_headers)
        assert response.status_code == 502
        assert db.query(AIUsage).filter_by(successful=False).count() == 1

    def test_daily_limit(self, client, auth_headers):
        for _ in range(3):
            assert client.post("/api/ai/enhance", json={"content": "hi"}, headers=auth_headers).status_code == 200

        response = client.post("/api/ai/enhance", json={"content": "hi"}, headers=auth_headers)
        assert response.status_code == 429
        assert response.json()["detail"]["error"] == "Rate limit exceeded"

        other = client.post("/api/ai/enhance", json={"content": "hi"}, headers={"X-User-Id": "user-2"})
        assert other.status_code == 200


class TestUsage:

    def test_day_bucket(self):
        start, end = day_bucket(datetime(2024, 5, 1, 23, 59))
        assert start == datetime(2024, 5, 1)
        assert end == datetime(2024, 5, 2)

    def test_counts_only_today(self, db):
        track_usage(db, "u", AIFeature.ENHANCE)
        track_usage(db, "u", AIFeature.TRANSCRIBE)
        db.add(AIUsage(user_id="u", feature="enhance", used_at=datetime.utcnow() - timedelta(days=2)))
        db.commit()
        assert count_usage_today(db, "u", AIFeature.ENHANCE) == 1


class TestTaskEndpoints:

    def test_extract_tasks_stores_on_message(self, client, auth_headers, fake_ai, db):
        created = client.post("/api/messages", json={"text_content": "email Bob"}, headers=auth_headers).json()
        fake_ai.json_responses = [{"tasks": [{"title": "Email Bob", "type": "email", "people": ["Bob"]}]}]

        response = client.post(
            "/api/ai/extract-tasks",
            json={"content": "email Bob", "message_id": created["id"]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["tasks"] == [
            {"title": "Email Bob", "type": "email", "details": None, "people": ["Bob"]}
        ]
        assert db.query(Task).filter(Task.message_id == created["id"]).count() == 1
        assert db.get(Message, created["id"]).tasks_extracted is True

    def test_extract_tasks_unknown_message(self, client, auth_headers):
        response = client.post(
            "/api/ai/extract-tasks", json={"content": "x", "message_id": 999}, headers=auth_headers
        )
        assert response.status_code == 404

    def test_convert_to_todo_delta(self, client, auth_headers, fake_ai):
        fake_ai.json_responses = [{"tasks": ["Buy milk"], "regular_text": ""}]
        response = client.post(
            "/api/ai/convert-to-todo",
            json={"content": {"ops": [{"insert": "buy milk\n"}]}, "format": "delta"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {
            "tasks": {"ops": [{"insert": "Buy milk"}, {"insert": "\n", "attributes": {"list": "unchecked"}}]},
            "regular_text": {"ops": []},
            "format": "delta",
        }

    def test_convert_to_todo_empty(self, client, auth_headers):
        response = client.post("/api/ai/convert-to-todo", json={"content": " "}, headers=auth_headers)
        assert response.status_code == 400


class TestParserEndpoints:

    def test_parse_datetime(self, client, auth_headers, fake_ai):
        fake_ai.json_responses = [{"parsed": True, "iso": "2024-05-03T15:00:00Z"}]
        response = client.post(
            "/api/ai/parse-datetime",
            json={"text": "Friday 3pm", "reference_time": "2024-04-29T09:00:00Z"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["original_text"] == "Friday 3pm"

    def test_parse_datetime_not_parsed(self, client, auth_headers, fake_ai):
        fake_ai.json_responses = [{"parsed": False}]
        response = client.post("/api/ai/parse-datetime", json={"text": "blue"}, headers=auth_headers)
        assert response.status_code == 422

    def test_parse_datetime_bad_input(self, client, auth_headers):
        assert client.post("/api/ai/parse-datetime", json={"text": ""}, headers=auth_headers).status_code == 400
        response = client.post(
            "/api/ai/parse-datetime", json={"text": "today", "reference_time": "yesterday"}, headers=auth_headers
        )
        assert response.status_code == 400

    def test_extract_attendees(self, client, auth_headers, fake_ai):
        fake_ai.json_responses = [{"attendees": [{"name": "Ann"}], "explanation": "Ann"}]
        response = client.post("/api/ai/extract-attendees", json={"text": "meet Ann"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["count"] == 1

    def test_extract_attendees_none_found(self, client, auth_headers, fake_ai):
        fake_ai.json_responses = [{"attendees": []}]
        response = client.post("/api/ai/extract-attendees", json={"text": "hello"}, headers=auth_headers)
        assert response.status_code == 422


class TestTranscribeEndpoint:

    def test_transcribe(self, client, auth_headers, fake_ai, test_config):
        response = client.post(
            "/api/ai/transcribe",
            files={"file": ("memo.m4a", b"fake audio", "audio/mp4")},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json() == {"transcription": "Call the dentist tomorrow"}
        assert len(fake_ai.transcribed) == 1
        assert list(test_config.upload_dir.iterdir()) == []

    def test_rejects_unknown_extension(self, client, auth_headers):
        response = client.post(
            "/api/ai/transcribe",
            files={"file": ("notes.txt", b"text", "text/plain")},
            headers=auth_headers,
        )
        assert response.status_code == 400

    def test_voice_to_todo(self, client, auth_headers, fake_ai):
        fake_ai.json_responses = [{"tasks": ["Call the dentist"], "regular_text": ""}]
        response = client.post(
            "/api/ai/convert-to-todo/voice",
            files={"file": ("memo.webm", b"fake audio", "audio/webm")},
            data={"format": "plain"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["tasks"] == ["Call the dentist"]


class TestMessages:

    def test_create_from_text(self, client, auth_headers, db):
        response = client.post(
            "/api/messages", json={"text_content": "read example.com today"}, headers=auth_headers
        )
        assert response.status_code == 200
        body = response.json()
        assert body["links"] == ["example.com"]
        assert body["delta_content"] == {"ops": [
            {"insert": "read "},
            {"insert": "example.com", "attributes": {"link": "example.com"}},
            {"insert": " today"},
        ]}
        assert db.query(Link).count() == 1

    def test_create_from_delta(self, client, auth_headers):
        delta = {"ops": [{"insert": "docs", "attributes": {"link": "https://docs.example.com"}}, {"insert": "\n"}]}
        body = client.post("/api/messages", json={"delta_content": delta}, headers=auth_headers).json()
        assert body["text_content"] == "https://docs.example.com\n"
        assert body["links"] == ["https://docs.example.com"]

    def test_create_invalid_delta(self, client, auth_headers):
        response = client.post("/api/messages", json={"delta_content": {"ops": []}}, headers=auth_headers)
        assert response.status_code == 400

    def test_create_empty(self, client, auth_headers):
        assert client.post("/api/messages", json={}, headers=auth_headers).status_code == 400

    def test_list_and_search_own_messages(self, client, auth_headers):
        client.post("/api/messages", json={"text_content": "groceries list"}, headers=auth_headers)
        client.post("/api/messages", json={"text_content": "meeting notes"}, headers=auth_headers)
        client.post("/api/messages", json={"text_content": "other user"}, headers={"X-User-Id": "user-2"})

        everything = client.get("/api/messages", headers=auth_headers).json()
        assert [m["text_content"] for m in everything] == ["meeting notes", "groceries list"]

        found = client.get("/api/messages", params={"q": "grocer"}, headers=auth_headers).json()
        assert [m["text_content"] for m in found] == ["groceries list"]

    def test_update_recomputes_links(self, client, auth_headers, db):
        created = client.post("/api/messages", json={"text_content": "see a.com"}, headers=auth_headers).json()

        response = client.patch(
            f"/api/messages/{created['id']}", json={"text_content": "see b.org and c.net"}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["links"] == ["b.org", "c.net"]
        assert sorted(link.url for link in db.query(Link).all()) == ["b.org", "c.net"]

    def test_delete(self, client, auth_headers, db):
        created = client.post("/api/messages", json={"text_content": "bye x.io"}, headers=auth_headers).json()

        assert client.delete(f"/api/messages/{created['id']}", headers=auth_headers).json() == {"success": True}
        assert db.query(Message).count() == 0
        assert db.query(Link).count() == 0

    def test_other_users_message_not_found(self, client, auth_headers):
        created = client.post("/api/messages", json={"text_content": "mine"}, headers=auth_headers).json()
        response = client.delete(f"/api/messages/{created['id']}", headers={"X-User-Id": "user-2"})
        assert response.status_code == 404

    @pytest.mark.parametrize("q, expected", [
        ("100%", ["100% done"]),
        ("a_b", ["a_b"]),
    ])
    def test_search_matches_wildcards_literally(self, client, auth_headers, q, expected):
        for text in ["100% done", "1000 done", "a_b", "axb"]:
            client.post("/api/messages", json={"text_content": text}, headers=auth_headers)

        found = client.get("/api/messages", params={"q": q}, headers=auth_headers).json()
        assert [m["text_content"] for m in found] == expected


class TestTaskRoutes:

    def _seed(self, db):
        mine = Message(user_id="user-1", text_content="plans")
        theirs = Message(user_id="user-2", text_content="theirs")
        db.add_all([mine, theirs])
        db.flush()
        now = datetime.utcnow()
        db.add_all([
            Task(user_id="user-1", message_id=mine.id, title="Old", created_at=now - timedelta(hours=2)),
            Task(user_id="user-1", message_id=mine.id, title="New", created_at=now, completed=True),
            Task(user_id="user-1", message_id=None, title="Loose", created_at=now - timedelta(hours=1)),
            Task(user_id="user-2", message_id=theirs.id, title="Not mine", created_at=now),
        ])
        db.commit()
        return mine

    def test_lists_extracted_tasks(self, client, auth_headers, fake_ai):
        created = client.post("/api/messages", json={"text_content": "email Bob"}, headers=auth_headers).json()
        fake_ai.json_responses = [{"tasks": [{"title": "Email Bob", "type": "email", "people": ["Bob"]}]}]
        client.post("/api/ai/extract-tasks", json={"content": "email Bob", "message_id": created["id"]}, headers=auth_headers)

        tasks = client.get("/api/tasks", headers=auth_headers).json()["tasks"]

        assert len(tasks) == 1
        assert tasks[0]["title"] == "Email Bob"
        assert tasks[0]["type"] == "email"
        assert tasks[0]["people"] == ["Bob"]
        assert tasks[0]["message_id"] == created["id"]
        assert tasks[0]["completed"] is False

    def test_scoped_to_caller_newest_first(self, client, auth_headers, db):
        self._seed(db)
        tasks = client.get("/api/tasks", headers=auth_headers).json()["tasks"]
        assert [t["title"] for t in tasks] == ["New", "Loose", "Old"]

    def test_filters(self, client, auth_headers, db):
        mine = self._seed(db)

        by_message = client.get("/api/tasks", params={"message_id": mine.id}, headers=auth_headers).json()
        assert [t["title"] for t in by_message["tasks"]] == ["New", "Old"]

        open_tasks = client.get("/api/tasks", params={"completed": "false"}, headers=auth_headers).json()
        assert [t["title"] for t in open_tasks["tasks"]] == ["Loose", "Old"]

    def test_requires_caller(self, client):
        assert client.get("/api/tasks").status_code == 401

    def test_mark_completed(self, client, auth_headers, db):
        self._seed(db)
        task = db.query(Task).filter(Task.title == "Old").one()

        response = client.patch(f"/api/tasks/{task.id}", json={"completed": True}, headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["completed"] is True
        db.refresh(task)
        assert task.completed is True

    def test_cannot_update_other_users_task(self, client, auth_headers, db):
        self._seed(db)
        task = db.query(Task).filter(Task.title == "Not mine").one()
        response = client.patch(f"/api/tasks/{task.id}", json={"completed": True}, headers=auth_headers)
        assert response.status_code == 404
