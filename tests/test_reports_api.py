"""Report API tests."""

from httpx import AsyncClient

from assurance.db.models import Case, Report
from assurance.services import report_file_service

REPORT_BODY = {
    "title": "Rapport incendie",
    "beneficiary": "Jean Dupont",
    "beneficiaries": '["Jean Dupont"]',
    "insured": "Marie Curie",
    "insureds": '["Marie Curie"]',
    "initiator": "Agence Sud",
    "subscriber": "Paul Martin",
    "case_id": "AUTO-REF-1",
}


async def test_create_report_auto_creates_case(csrf_client: AsyncClient, db):
    response = await csrf_client.post("/reports", params={"actor": "alice"}, json=REPORT_BODY)

    assert response.status_code == 201
    assert response.json()["created_by"] == "alice"
    assert response.json()["status"] == "DISPONIBLE"
    case = db.query(Case).one()
    assert case.reference == "AUTO-REF-1"


async def test_missing_field_is_reported(csrf_client: AsyncClient, db):
    response = await csrf_client.post(
        "/reports", params={"actor": "alice"}, json={**REPORT_BODY, "subscriber": ""}
    )

    assert response.status_code == 400
    assert response.json()["detail"] == {
        "field": "subscriber",
        "message": "Le souscripteur est obligatoire",
    }


async def test_created_by_in_body_is_used_without_actor(csrf_client: AsyncClient, db):
    response = await csrf_client.post("/reports", json={**REPORT_BODY, "created_by": "bob"})

    assert response.json()["created_by"] == "bob"
    assert (await csrf_client.get("/reports/owner/bob/ids")).json() == [response.json()["id"]]


async def test_create_with_file_and_download(csrf_client: AsyncClient, db, directory):
    response = await csrf_client.post(
        "/reports/with-file",
        data=REPORT_BODY,
        files={"file": ("constat.pdf", b"%PDF-1.4 contenu", "application/pdf")},
    )
    assert response.status_code == 201
    report_id = response.json()["id"]
    assert response.json()["created_by"] is None

    files = (await csrf_client.get(f"/reports/{report_id}/files")).json()
    assert [f["file_name"] for f in files] == ["constat.pdf"]

    download = await csrf_client.get(f"/reports/{report_id}/files/{files[0]['id']}")
    assert download.status_code == 200
    assert download.content == b"%PDF-1.4 contenu"
    assert 'filename="constat.pdf"' in download.headers["content-disposition"]

    feed = (await csrf_client.get("/notifications/user/alice")).json()
    assert "le système" in feed[0]["message"]


async def test_create_with_file_accepts_no_file(csrf_client: AsyncClient, db):
    response = await csrf_client.post("/reports/with-file", data=REPORT_BODY)

    assert response.status_code == 201
    assert (await csrf_client.get(f"/reports/{response.json()['id']}/files")).json() == []


async def test_create_with_file_validates_fields(csrf_client: AsyncClient, db):
    response = await csrf_client.post("/reports/with-file", data={**REPORT_BODY, "title": ""})

    assert response.status_code == 400
    assert response.json()["detail"]["field"] == "title"


async def test_update_and_delete_report(csrf_client: AsyncClient, db):
    report_id = (await csrf_client.post("/reports", params={"actor": "alice"}, json=REPORT_BODY)).json()["id"]

    forbidden = await csrf_client.put(f"/reports/{report_id}", params={"actor": "bob"}, json={"title": "X"})
    assert forbidden.status_code == 403

    blank = await csrf_client.put(f"/reports/{report_id}", params={"actor": "alice"}, json={"title": " "})
    assert blank.status_code == 400

    updated = await csrf_client.put(
        f"/reports/{report_id}", params={"actor": "alice"}, json={"status": "ARCHIVE"}
    )
    assert updated.json()["status"] == "ARCHIVE"

    perms = await csrf_client.get(f"/reports/{report_id}/permissions", params={"actor": "bob"})
    assert perms.json() == {"can_edit": False, "can_delete": False}

    deleted = await csrf_client.delete(f"/reports/{report_id}", params={"actor": "alice"})
    assert deleted.json() == {"success": True}
    assert (await csrf_client.get(f"/reports/{report_id}")).status_code == 404


async def test_upload_to_existing_report(csrf_client: AsyncClient, db):
    report_id = (await csrf_client.post("/reports", params={"actor": "alice"}, json=REPORT_BODY)).json()["id"]

    response = await csrf_client.post(
        f"/reports/{report_id}/files",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 201
    assert response.json()["file_size"] == 5

    empty = await csrf_client.post(
        f"/reports/{report_id}/files",
        files={"file": ("empty.txt", b"", "text/plain")},
    )
    assert empty.status_code == 400

    missing = await csrf_client.post("/reports/999/files", files={"file": ("a.txt", b"a", "text/plain")})
    assert missing.status_code == 404


async def test_download_unknown_file_is_404(client: AsyncClient, db):
    response = await client.get("/reports/1/files/1")
    assert response.status_code == 404


async def test_create_with_file_survives_storage_failure(csrf_client: AsyncClient, db, monkeypatch):
    def broken_store(storage_key, file):
        raise OSError("bucket unreachable")

    monkeypatch.setattr(report_file_service, "store_file", broken_store)

    response = await csrf_client.post(
        "/reports/with-file",
        data=REPORT_BODY,
        files={"file": ("constat.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 201
    report_id = response.json()["id"]
    assert db.query(Report).filter(Report.id == report_id).count() == 1
    assert (await csrf_client.get(f"/reports/{report_id}/files")).json() == []
