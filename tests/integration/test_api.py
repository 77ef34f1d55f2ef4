"""Integration tests for API endpoints."""

from __future__ import annotations

import asyncio
import base64
import io

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from roomcheck.dependencies import get_backend_dep, get_store, get_variant_dep
from roomcheck.errors import BackendUnavailable
from roomcheck.main import app
from roomcheck.services.backend import MockBackend
from roomcheck.services.variants import CHECK_IN, CHECK_OUT
from roomcheck.services.workspace_store import WorkspaceStore


class _SlowSubmitBackend(MockBackend):
    async def submit(self, payload):
        await asyncio.sleep(0.2)
        return await super().submit(payload)


class _FlakySubmitBackend(MockBackend):
    """Fails the first submission, then behaves."""

    def __init__(self, variant):
        super().__init__(variant)
        self.failures = 1

    async def submit(self, payload):
        if self.failures:
            self.failures -= 1
            raise BackendUnavailable("connection reset by peer")
        return await super().submit(payload)


@pytest_asyncio.fixture
async def make_client():
    """Build a test client bound to a fresh store and the given variant/backend."""
    clients = []

    async def _make(variant=CHECK_IN, backend=None):
        backend = backend or MockBackend(variant)
        store = WorkspaceStore()
        app.dependency_overrides[get_variant_dep] = lambda: variant
        app.dependency_overrides[get_backend_dep] = lambda: backend
        app.dependency_overrides[get_store] = lambda: store
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test", follow_redirects=True)
        clients.append(ac)
        return ac, backend

    yield _make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(make_client):
    ac, _ = await make_client()
    return ac


async def _open(client, flow_id="Ue905-B503"):
    r = await client.post("/api/workspaces", json={"flow_id": flow_id})
    assert r.status_code == 201
    return r.json()


async def _mark_all(client, ws, status="ok", skip=()):
    for area in ws["form"]["areas"]:
        if area["area_id"] in skip:
            continue
        r = await client.put(f"/api/workspaces/{ws['id']}/areas/{area['area_id']}/status", json={"status": status})
        assert r.status_code == 200


def _photo(width=2000, height=1000) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color=(120, 90, 60)).save(buf, "JPEG")
    return buf.getvalue()


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


@pytest.mark.asyncio
async def test_check_in_end_to_end(make_client, signature):
    client, backend = await make_client()
    ws = await _open(client)
    assert ws["phase"] == "resolved"
    assert ws["view"] == "inspection_form"
    assert ws["session"]["room_id"] == "B503"
    assert len(ws["form"]["areas"]) == 9
    assert all(a["status"] == "pending" for a in ws["form"]["areas"])
    assert ws["form"]["completed_count"] == 0

    await _mark_all(client, ws)
    r = await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})
    assert r.json()["form"]["has_signature"] is True
    assert r.json()["form"]["progress_percent"] == 100

    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    assert r.status_code == 200
    body = r.json()
    assert body["ok"] is True
    assert body["room_id"] == "B503"
    assert body["pdf_url"]

    r = await client.get(f"/api/workspaces/{ws['id']}")
    assert r.json()["phase"] == "submitted"
    assert r.json()["result"]["pdf_url"] == body["pdf_url"]

    sent = backend.submissions[0]
    assert sent["fields"]["roomId"] == "B503"
    assert sent["fields"]["inspector"] == "Tenant"
    assert set(sent["metaByArea"]) == {a["area_id"] for a in ws["form"]["areas"]}


@pytest.mark.asyncio
async def test_no_edits_after_submission(client, signature):
    ws = await _open(client)
    await _mark_all(client, ws)
    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})
    await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})

    r = await client.put(f"/api/workspaces/{ws['id']}/areas/DOOR/status", json={"status": "problem"})
    assert r.status_code == 409
    r = await client.post(f"/api/workspaces/{ws['id']}/reset")
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_already_completed_flow(make_client):
    client, _ = await make_client(backend=MockBackend(CHECK_IN, statuses={"A101": "completed"}))
    ws = await _open(client, "A101")
    assert ws["phase"] == "error"
    assert ws["error"]["reason"] == "already_completed"
    assert ws["form"] is None

    r = await client.post(f"/api/workspaces/{ws['id']}/reset")
    assert r.json()["phase"] == "manual_entry"
    assert r.json()["error"] is None


@pytest.mark.asyncio
async def test_manual_entry_then_resolve(client):
    r = await client.post("/api/workspaces", json={})
    ws = r.json()
    assert ws["phase"] == "manual_entry"
    assert ws["form"] is None

    r = await client.post(f"/api/workspaces/{ws['id']}/resolve", json={"flow_id": "C210"})
    assert r.json()["phase"] == "resolved"
    assert r.json()["session"]["room_id"] == "C210"

    r = await client.post(f"/api/workspaces/{ws['id']}/resolve", json={"flow_id": ""})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_entry_link_redirects_to_workspace(client):
    r = await client.get("/inspect", params={"flowId": "Ue905-B503"})
    assert r.status_code == 200
    assert r.json()["phase"] == "resolved"
    assert r.json()["flow_id"] == "Ue905-B503"

    r = await client.get("/inspect")
    assert r.json()["phase"] == "manual_entry"


@pytest.mark.asyncio
async def test_submit_with_pending_areas(client, signature):
    ws = await _open(client)
    await _mark_all(client, ws, skip=("BED", "AC"))
    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})

    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    assert r.status_code == 422
    body = r.json()
    assert body["kind"] == "incomplete_areas"
    assert body["offending"] == ["Bed and mattress", "Air conditioner"]

    r = await client.get(f"/api/workspaces/{ws['id']}")
    assert r.json()["phase"] == "resolved"
    assert r.json()["form"]["completed_count"] == 7


@pytest.mark.asyncio
async def test_validate_reports_next_blocker(make_client, signature):
    client, backend = await make_client()
    ws = await _open(client)
    await _mark_all(client, ws)

    r = await client.post(f"/api/workspaces/{ws['id']}/validate", json={"confirmed": True})
    assert r.json() == {"ready": False, "kind": "missing_signature",
                        "message": "Please sign before submitting.", "offending": []}

    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})
    r = await client.post(f"/api/workspaces/{ws['id']}/validate", json={"confirmed": False})
    assert r.json()["kind"] == "confirmation_required"

    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={})
    assert r.status_code == 422
    assert backend.submissions == []

    r = await client.post(f"/api/workspaces/{ws['id']}/validate", json={"confirmed": True})
    assert r.json()["ready"] is True


@pytest.mark.asyncio
async def test_upload_and_remove_attachment(client):
    ws = await _open(client)
    url = f"/api/workspaces/{ws['id']}/areas/AC/attachments"

    r = await client.post(url, files={"file": ("ac.jpg", _photo(), "image/jpeg")})
    assert r.status_code == 201
    att = r.json()["attachments"][0]
    assert att["name"] == "ac.jpg"
    assert att["mime_type"] == "image/jpeg"
    preview = att["preview_data"]
    assert preview.startswith("data:image/jpeg;base64,")
    img = Image.open(io.BytesIO(base64.standard_b64decode(preview.split(",", 1)[1])))
    assert img.width == 1024

    r = await client.post(url, files={"file": ("ac.jpg", _photo(), "image/jpeg")})
    assert [a["name"] for a in r.json()["attachments"]] == ["ac.jpg", "ac (2).jpg"]

    r = await client.delete(f"{url}/ac.jpg")
    assert r.status_code == 200
    assert [a["name"] for a in r.json()["attachments"]] == ["ac (2).jpg"]

    r = await client.delete(f"{url}/missing.jpg")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_bad_upload_leaves_area_unchanged(client):
    ws = await _open(client)
    r = await client.post(
        f"/api/workspaces/{ws['id']}/areas/DOOR/attachments",
        files={"file": ("notes.txt", b"not an image", "text/plain")},
    )
    assert r.status_code == 400
    assert r.json()["error"] == "AttachmentError"
    assert r.json()["filename"] == "notes.txt"

    r = await client.get(f"/api/workspaces/{ws['id']}")
    door = next(a for a in r.json()["form"]["areas"] if a["area_id"] == "DOOR")
    assert door["attachments"] == []


@pytest.mark.asyncio
async def test_previews_only_on_request(client):
    ws = await _open(client)
    await client.post(
        f"/api/workspaces/{ws['id']}/areas/BED/attachments",
        files={"file": ("bed.jpg", _photo(400, 300), "image/jpeg")},
    )
    r = await client.get(f"/api/workspaces/{ws['id']}")
    bed = next(a for a in r.json()["form"]["areas"] if a["area_id"] == "BED")
    assert bed["attachments"][0]["preview_data"] is None

    r = await client.get(f"/api/workspaces/{ws['id']}", params={"include_previews": True})
    bed = next(a for a in r.json()["form"]["areas"] if a["area_id"] == "BED")
    assert bed["attachments"][0]["preview_data"].startswith("data:image/jpeg")


@pytest.mark.asyncio
async def test_unknown_workspace_and_area(client):
    r = await client.get("/api/workspaces/does-not-exist")
    assert r.status_code == 404

    ws = await _open(client)
    r = await client.put(f"/api/workspaces/{ws['id']}/areas/GARAGE/status", json={"status": "ok"})
    assert r.status_code == 404
    r = await client.put(f"/api/workspaces/{ws['id']}/areas/DOOR/status", json={"status": "broken"})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_details_and_note(make_client, signature):
    client, backend = await make_client()
    ws = await _open(client)
    await _mark_all(client, ws)
    r = await client.put(f"/api/workspaces/{ws['id']}/areas/WARDROBE/note", json={"note": "Hinge loose"})
    assert r.json()["note"] == "Hinge loose"
    r = await client.put(f"/api/workspaces/{ws['id']}/details",
                         json={"inspector_name": "Sam", "global_note": "Keys returned"})
    assert r.json()["form"]["inspector_name"] == "Sam"

    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})
    await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    sent = backend.submissions[0]
    assert sent["fields"]["inspector"] == "Sam"
    assert sent["fields"]["globalNotes"] == "Keys returned"
    assert sent["metaByArea"]["WARDROBE"] == {"status": "ok", "note": "Hinge loose"}


@pytest.mark.asyncio
async def test_submission_failure_keeps_form(make_client, signature):
    client, backend = await make_client(backend=_FlakySubmitBackend(CHECK_IN))
    ws = await _open(client)
    await _mark_all(client, ws)
    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})

    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    assert r.status_code == 502
    assert r.json()["reason"] == "network"
    assert r.json()["retryable"] is True

    r = await client.get(f"/api/workspaces/{ws['id']}")
    assert r.json()["phase"] == "resolved"
    assert r.json()["form"]["completed_count"] == 9
    assert r.json()["form"]["has_signature"] is True

    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    assert r.status_code == 200
    assert len(backend.submissions) == 1


@pytest.mark.asyncio
async def test_check_out_flow(make_client, signature):
    client, backend = await make_client(CHECK_OUT)
    ws = await _open(client, "B503")
    assert ws["variant"] == "check_out"
    assert ws["view"] == "flow_summary"
    flow = ws["flow"]
    assert [t["type_label"] for t in flow["tasks"]] == ["ROOM", "FRIDGE", "PARKING"]
    assert flow["due_label"] == "D-minus-3"
    assert flow["progress_percent"] == 0

    r = await client.post(f"/api/workspaces/{ws['id']}/tasks/B503-fridge/open")
    assert r.status_code == 501
    assert r.json()["detail"] == "FRIDGE is not yet available."
    r = await client.post(f"/api/workspaces/{ws['id']}/tasks/nope/open")
    assert r.status_code == 404

    r = await client.post(f"/api/workspaces/{ws['id']}/tasks/B503-room/open")
    assert r.status_code == 200
    assert r.json() == {"view": "inspection_form", "flow_id": "B503", "task_id": "B503-room"}

    await _mark_all(client, ws, skip=("AC",))
    await client.put(f"/api/workspaces/{ws['id']}/areas/AC/status", json={"status": "problem"})
    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})

    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    assert r.status_code == 422
    assert r.json()["kind"] == "missing_evidence"
    assert r.json()["offending"] == ["Air conditioner"]

    await client.put(f"/api/workspaces/{ws['id']}/areas/AC/note", json={"note": "Dripping"})
    await client.post(
        f"/api/workspaces/{ws['id']}/areas/AC/attachments",
        files={"file": ("ac.jpg", _photo(), "image/jpeg")},
    )
    r = await client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    assert r.status_code == 200

    sent = backend.submissions[0]
    assert "fields" not in sent
    assert sent["roomId"] == "B503"
    assert sent["metaByArea"]["AC"] == {"status": "problem", "note": "Dripping"}
    assert [f["area"] for f in sent["files"]] == ["AC"]

    # the completed flow can no longer be opened
    ws2 = await _open(client, "B503")
    assert ws2["phase"] == "error"
    assert ws2["error"]["reason"] == "already_completed"


@pytest.mark.asyncio
async def test_flows_inbox(make_client):
    client, _ = await make_client(CHECK_OUT)
    r = await client.get("/api/flows")
    assert r.status_code == 200
    flows = {f["flow_id"]: f for f in r.json()}
    assert flows["A101"]["due_label"] == "overdue by 2 days"
    assert flows["A101"]["overdue"] is True
    assert flows["A101"]["progress_percent"] == 33
    assert flows["C210"]["due_label"] == "-"
    assert flows["B503"]["due_label"] == "D-minus-3"

    r = await client.get("/api/flows/A101")
    assert r.json()["tasks"][1]["tone"] == "done"


@pytest.mark.asyncio
async def test_flows_inbox_unavailable(make_client):
    class _Down(MockBackend):
        async def list_tasks(self):
            raise BackendUnavailable("down")

    client, _ = await make_client(CHECK_OUT, _Down(CHECK_OUT))
    r = await client.get("/api/flows")
    assert r.status_code == 502


@pytest.mark.asyncio
async def test_discard_workspace(client):
    ws = await _open(client)
    r = await client.delete(f"/api/workspaces/{ws['id']}")
    assert r.json() == {"deleted": ws["id"]}
    r = await client.get(f"/api/workspaces/{ws['id']}")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_resolve_and_reset_blocked_during_submission(make_client, signature):
    client, backend = await make_client(backend=_SlowSubmitBackend(CHECK_IN))
    ws = await _open(client, "B503")
    await _mark_all(client, ws)
    await client.put(f"/api/workspaces/{ws['id']}/signature", json={"image": signature})

    submitting = asyncio.create_task(
        client.post(f"/api/workspaces/{ws['id']}/submit", json={"confirmed": True})
    )
    await asyncio.sleep(0.05)
    r = await client.post(f"/api/workspaces/{ws['id']}/resolve", json={"flow_id": "C210"})
    assert r.status_code == 409
    r = await client.post(f"/api/workspaces/{ws['id']}/reset")
    assert r.status_code == 409

    r = await submitting
    assert r.status_code == 200
    assert r.json()["room_id"] == "B503"

    r = await client.get(f"/api/workspaces/{ws['id']}")
    body = r.json()
    assert body["phase"] == "submitted"
    assert body["session"]["room_id"] == "B503"
    assert body["result"]["room_id"] == "B503"
    assert len(backend.submissions) == 1
