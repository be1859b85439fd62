import httpx
from sqlalchemy import text

from prep_panel.services import content as content_svc
from prep_panel.settings.config import settings

from conftest import content_payload
from test_documents import RESUME


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


async def test_requests_without_token_are_rejected(engine):
    from prep_panel.main import app

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as anon:
        r = await anon.post("/api/topics/defaults")
    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Not authenticated"}


async def test_create_defaults_endpoint(client):
    r = await client.post("/api/topics/defaults")
    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    assert body["topicsCreated"] == 4
    assert len(body["topics"]) == 4

    again = (await client.post("/api/topics/defaults")).json()
    assert again["topicsCreated"] == 0
    assert again["message"] == "Topics already exist"


async def test_generate_endpoint_returns_new_version(client, topic, model):
    model.reply(content_payload("Kafka"))
    r = await client.post(f"/api/topics/{topic.id}/generate", json={"topicTitle": "Apache Kafka", "sourceNotes": ""})
    body = r.json()
    assert r.status_code == 200
    assert body["success"] is True
    assert body["version"]["topic_id"] == topic.id
    assert body["version"]["cross_questions"][0]["question"] == "Why Kafka?"
    assert "Source content is limited" in model.requests[0]["messages"][-1]["content"]
    assert body["version"]["source_notes"] == "Generate content for this interview preparation topic."

    current = (await client.get(f"/api/topics/{topic.id}/content")).json()
    assert current["version"]["id"] == body["version"]["id"]


async def test_generate_endpoint_reports_upstream_status(client, topic, model):
    for _ in range(settings.LLM_MAX_RETRIES + 1):
        model.reply(None, status=429)
    r = await client.post(f"/api/topics/{topic.id}/generate", json={})
    assert r.status_code == 502
    assert r.json() == {"success": False, "error": "OpenAI API error: 429", "upstreamStatus": 429}

    versions = (await client.get(f"/api/topics/{topic.id}/versions")).json()
    assert versions["versions"] == []
    assert versions["currentVersionId"] is None


async def test_generate_endpoint_unknown_topic(client, model):
    r = await client.post("/api/topics/9999/generate", json={})
    assert r.status_code == 404
    assert r.json()["success"] is False


async def test_custom_topic_endpoint(client, model):
    model.reply(content_payload("Data Mesh"))
    r = await client.post("/api/topics/custom", json={"title": "Data Mesh", "category": "Architecture"})
    body = r.json()
    assert r.status_code == 200
    assert body["topic"]["slug"] == "data-mesh"
    assert body["topic"]["has_content"] is True
    assert body["version"]["source_notes"] == "Custom topic for interview preparation"

    dup = await client.post("/api/topics/custom", json={"title": "data mesh", "category": "Architecture"})
    assert dup.status_code == 409
    assert dup.json()["success"] is False


async def test_custom_topic_validation_error_is_400(client):
    r = await client.post("/api/topics/custom", json={"category": "Technical"})
    assert r.status_code == 400
    assert r.json()["success"] is False
    assert "title" in r.json()["error"]


async def test_analyze_documents_with_content(client, model):
    model.reply({"topics": [{"title": "Kafka Streams", "category": "Technical"}, {"title": "Team Leadership"}]})
    model.default = lambda body: content_payload()

    r = await client.post("/api/topics/analyze-documents", json={"content": RESUME})
    body = r.json()
    assert r.status_code == 200
    assert body["topicsCreated"] == 2
    assert [t["slug"] for t in body["topics"]] == ["kafka-streams", "team-leadership"]
    assert body["failed"] == []
    assert body["sessionId"] is None

    listed = (await client.get("/api/topics")).json()["topics"]
    assert all(t["has_content"] for t in listed)


async def test_analyze_documents_from_session(client, model):
    session = (await client.post("/api/document-sessions", json={"name": "Acme"})).json()["session"]
    doc = await client.post(
        "/api/documents",
        json={"name": "cv.pdf", "type": "resume", "contentText": RESUME, "sessionId": session["id"]},
    )
    assert doc.json()["isValid"] is True

    model.reply({"topics": [{"title": "Streaming Pipelines"}]})
    model.reply(content_payload())
    r = await client.post("/api/topics/analyze-documents", json={"sessionId": session["id"]})
    body = r.json()
    assert body["sessionId"] == session["id"]
    assert body["topicsCreated"] == 1
    assert "=== RESUME: cv.pdf ===" in model.requests[0]["messages"][-1]["content"]


async def test_analyze_documents_needs_input(client):
    r = await client.post("/api/topics/analyze-documents", json={})
    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Provide document content or a sessionId"}


async def test_analyze_documents_parse_failure(client, model):
    model.reply("no json here")
    r = await client.post("/api/topics/analyze-documents", json={"content": RESUME})
    assert r.status_code == 502
    assert r.json()["success"] is False


async def test_manual_edit_and_restore(client, topic, model):
    model.reply(content_payload("Kafka"))
    generated = (await client.post(f"/api/topics/{topic.id}/generate", json={"sourceNotes": "kafka notes"})).json()

    edited = (
        await client.post(
            f"/api/topics/{topic.id}/versions",
            json={"bullets": ["Tuned consumers"], "script": "My take.", "crossQuestions": []},
        )
    ).json()
    assert edited["version"]["source_notes"] == "kafka notes"
    assert len(edited["version"]["cross_questions"]) == 4
    assert edited["version"]["meta"] == {"edited": True}

    history = (await client.get(f"/api/topics/{topic.id}/versions")).json()
    assert [v["id"] for v in history["versions"]] == [edited["version"]["id"], generated["version"]["id"]]
    assert history["currentVersionId"] == edited["version"]["id"]

    r = await client.put(f"/api/topics/{topic.id}/current", json={"versionId": generated["version"]["id"]})
    assert r.status_code == 200
    current = (await client.get(f"/api/topics/{topic.id}/content")).json()
    assert current["version"]["id"] == generated["version"]["id"]

    missing = await client.put(f"/api/topics/{topic.id}/current", json={"versionId": 424242})
    assert missing.status_code == 404


async def test_topics_of_other_users_are_invisible(client, db, other_user):
    from prep_panel.models import Topic

    theirs = Topic(user_id=other_user.id, title="Secret", slug="secret")
    db.add(theirs)
    await db.commit()

    assert (await client.get("/api/topics")).json()["topics"] == []
    assert (await client.get(f"/api/topics/{theirs.id}/content")).status_code == 404


async def test_document_endpoints(client):
    created = (await client.post("/api/documents", json={"name": "note.txt", "type": "supporting_document"})).json()
    assert created["isValid"] is False
    assert created["validationError"] == "Document content is empty"

    docs = (await client.get("/api/documents")).json()["documents"]
    assert [d["name"] for d in docs] == ["note.txt"]

    r = await client.delete(f"/api/documents/{created['document']['id']}")
    assert r.json() == {"success": True, "message": "Document deleted"}
    assert (await client.get("/api/documents")).json()["documents"] == []

    bad = await client.post("/api/documents", json={"name": "x", "type": "spreadsheet"})
    assert bad.status_code == 400


async def test_generate_endpoint_reports_failed_save(client, topic, model, monkeypatch):
    topic_id = topic.id
    monkeypatch.setattr(
        content_svc, "_upsert_pointer", lambda *args: text("INSERT INTO no_such_table VALUES (1)")
    )
    model.reply(content_payload("Kafka"))

    r = await client.post(f"/api/topics/{topic_id}/generate", json={"sourceNotes": "kafka notes"})
    assert r.status_code == 500
    assert r.json() == {"success": False, "error": f"Failed to save content for topic {topic_id}"}

    monkeypatch.undo()
    versions = (await client.get(f"/api/topics/{topic_id}/versions")).json()
    assert versions["versions"] == []
    assert versions["currentVersionId"] is None
