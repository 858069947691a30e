import io
import json
import uuid

from fastapi import UploadFile
from sqlalchemy import func, select

from app.api.v1.proposals import _read_upload
from app.core.config import Settings, get_settings
from app.models.proposal import Proposal


def _events(body: str):
    return [
        json.loads(line[len("data: "):])
        for line in body.splitlines()
        if line.startswith("data: ")
    ]


def _project(client, name="Invoices"):
    r = client.post("/api/projects", json={"name": name, "schema": {"date": "string"}})
    assert r.status_code == 201, r.text
    return r.json()["project"]["id"]


def _stream_upload(client, project_id, filename="invoice.pdf", content=b"%PDF-1.4 test"):
    return client.post(
        "/api/proposals/upload",
        files={"file": (filename, content, "application/pdf")},
        data={"projectId": project_id},
    )


# ---------------- streaming relay ----------------


def test_end_to_end_project_then_streamed_upload(client, s3, gateway_stub):
    pid = _project(client)

    r = _stream_upload(client, pid)
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/event-stream")

    events = _events(r.text)
    types = [e["type"] for e in events]
    assert types == ["uploading", "uploaded", "processing", "processing"]
    assert events[0]["progress"] == 0
    assert events[1]["progress"] == 100
    assert events[-1]["taskId"] == "task-123"

    # one object under unprocessed/<project>/<ts>_<name>
    assert len(s3.calls) == 1
    key = s3.calls[0]["Key"]
    assert key.startswith(f"unprocessed/{pid}/")
    assert key.endswith("_invoice.pdf")
    assert s3.calls[0]["Metadata"]["originalName"] == "invoice.pdf"

    sent = json.loads(gateway_stub.requests[-1].content)
    assert sent == {
        "input": {
            "project_id": pid,
            "s3_file_path": f"s3://test-bucket/{key}",
            "filename": "invoice.pdf",
        }
    }


def test_stream_rejects_disallowed_extension_before_storage(client, s3, gateway_stub):
    pid = _project(client)

    r = _stream_upload(client, pid, filename="payload.exe")
    assert r.status_code == 200

    events = _events(r.text)
    assert [e["type"] for e in events] == ["uploading", "error"]
    assert "Invalid file type" in events[-1]["message"]
    assert s3.calls == []
    assert gateway_stub.requests == []


def test_stream_reports_storage_failure_as_error_event(client, s3, gateway_stub):
    s3.fail = True
    r = _stream_upload(client, str(uuid.uuid4()))

    events = _events(r.text)
    assert [e["type"] for e in events] == ["uploading", "error"]
    assert "AccessDenied" in events[-1]["message"]
    assert gateway_stub.requests == []


def test_stream_reports_processor_failure_after_upload(client, gateway_stub):
    gateway_stub.fail = True
    r = _stream_upload(client, str(uuid.uuid4()), filename="notes.txt", content=b"hello")

    types = [e["type"] for e in _events(r.text)]
    assert types == ["uploading", "uploaded", "processing", "error"]


def test_stream_does_not_create_proposal_rows(client, db):
    _stream_upload(client, _project(client))
    assert db.execute(select(func.count()).select_from(Proposal)).scalar_one() == 0


def test_stream_requires_file_and_project_id(client, s3):
    r = client.post("/api/proposals/upload", data={"projectId": "p1"})
    assert r.status_code == 400

    r2 = client.post(
        "/api/proposals/upload",
        files={"file": ("a.pdf", b"x", "application/pdf")},
    )
    assert r2.status_code == 400
    assert s3.calls == []


# ---------------- non-streaming upload ----------------


def test_create_proposal_uploads_and_starts_processing(client, s3, gateway_stub):
    pid = _project(client)

    r = client.post(
        "/api/proposals",
        files={"file": ("Q3 report.docx", b"docx-bytes", "application/octet-stream")},
        data={"project_id": pid},
    )
    assert r.status_code == 201, r.text
    proposal = r.json()["proposal"]

    assert proposal["project_id"] == pid
    assert proposal["filename"] == "Q3 report.docx"
    assert proposal["status"] == "processing"
    assert proposal["processing_task_id"] == "task-123"
    assert proposal["file_size"] == len(b"docx-bytes")
    assert proposal["processed_files"] == {}
    assert proposal["original_file_key"] == (
        f"projects/{pid}/proposals/{proposal['id']}/original/Q3_report.docx"
    )

    assert s3.calls[0]["Key"] == proposal["original_file_key"]
    process_call = gateway_stub.requests[-1]
    assert process_call.url.path == "/process"
    assert process_call.url.params["project_id"] == pid


def test_create_proposal_stays_uploaded_when_gateway_fails(client, db, gateway_stub):
    pid = _project(client)
    gateway_stub.fail = True

    r = client.post(
        "/api/proposals",
        files={"file": ("a.pdf", b"pdf", "application/pdf")},
        data={"project_id": pid},
    )
    assert r.status_code == 201
    proposal = r.json()["proposal"]
    assert proposal["status"] == "uploaded"
    assert proposal["processing_task_id"] is None

    row = db.execute(select(Proposal)).scalar_one()
    assert row.status == "uploaded"


def test_create_proposal_for_missing_project_is_404(client, s3):
    r = client.post(
        "/api/proposals",
        files={"file": ("a.pdf", b"pdf", "application/pdf")},
        data={"project_id": str(uuid.uuid4())},
    )
    assert r.status_code == 404
    assert s3.calls == []


def test_create_proposal_validates_file(client, s3):
    pid = _project(client)
    r = client.post(
        "/api/proposals",
        files={"file": ("image.png", b"png", "image/png")},
        data={"project_id": pid},
    )
    assert r.status_code == 400
    assert s3.calls == []


def test_create_proposal_requires_file_and_project(client):
    assert client.post("/api/proposals", data={"project_id": str(uuid.uuid4())}).status_code == 400


def test_create_proposal_storage_failure_is_500(client, s3):
    pid = _project(client)
    s3.fail = True
    r = client.post(
        "/api/proposals",
        files={"file": ("a.pdf", b"pdf", "application/pdf")},
        data={"project_id": pid},
    )
    assert r.status_code == 500


def test_list_proposals_filters_by_project(client):
    p1 = _project(client, "One")
    p2 = _project(client, "Two")
    for pid, name in ((p1, "a.pdf"), (p1, "b.pdf"), (p2, "c.pdf")):
        client.post(
            "/api/proposals",
            files={"file": (name, b"pdf", "application/pdf")},
            data={"project_id": pid},
        )

    all_rows = client.get("/api/proposals").json()["proposals"]
    assert len(all_rows) == 3

    only_p1 = client.get("/api/proposals", params={"project_id": p1}).json()["proposals"]
    assert [p["filename"] for p in only_p1] == ["b.pdf", "a.pdf"]


def test_project_count_reflects_uploaded_proposals(client):
    pid = _project(client)
    client.post(
        "/api/proposals",
        files={"file": ("a.pdf", b"pdf", "application/pdf")},
        data={"project_id": pid},
    )
    assert client.get(f"/api/projects/{pid}").json()["project"]["proposal_count"] == 1


# ---------------- size limit and ids ----------------


def _small_limit(app, limit=16):
    app.dependency_overrides[get_settings] = lambda: Settings(
        database_url="sqlite://", max_upload_bytes=limit
    )


def test_oversized_upload_is_rejected_on_both_paths(app, client, s3, gateway_stub):
    pid = _project(client)
    _small_limit(app)
    big = b"x" * 64

    r = client.post(
        "/api/proposals",
        files={"file": ("big.pdf", big, "application/pdf")},
        data={"project_id": pid},
    )
    assert r.status_code == 400
    assert r.json()["detail"].startswith("File too large")

    events = _events(_stream_upload(client, pid, filename="big.pdf", content=big).text)
    assert [e["type"] for e in events] == ["uploading", "error"]
    assert events[-1]["message"].startswith("File too large")

    assert s3.calls == []
    assert gateway_stub.requests == []


def test_upload_at_the_limit_is_accepted(app, client, s3):
    pid = _project(client)
    _small_limit(app)

    r = client.post(
        "/api/proposals",
        files={"file": ("ok.pdf", b"x" * 16, "application/pdf")},
        data={"project_id": pid},
    )
    assert r.status_code == 201
    assert r.json()["proposal"]["file_size"] == 16


def test_read_upload_stops_one_byte_past_the_limit():
    upload = UploadFile(file=io.BytesIO(b"y" * 1000), filename="big.pdf")
    assert _read_upload(upload, 10) == b"y" * 11


def test_stream_rejects_malformed_project_id_before_storage(client, s3):
    r = _stream_upload(client, "../x")
    assert r.status_code == 400
    assert r.json()["detail"] == "projectId must be UUID."
    assert s3.calls == []
