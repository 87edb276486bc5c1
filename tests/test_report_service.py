import io
import json
import os

import pytest

from assurance.core.config import settings
from assurance.db.enums import AuditEventType, NotificationType
from assurance.db.models import AuditEvent, Case, Notification, Report, ReportFile
from assurance.schemas.case import CaseCreate
from assurance.schemas.report import ReportCreate, ReportUpdate
from assurance.services import case_service, report_file_service, report_service


def _report_data(**overrides) -> ReportCreate:
    data = {
        "title": "Rapport sinistre",
        "beneficiary": "Jean Dupont",
        "beneficiaries": '["Jean Dupont"]',
        "insured": "Marie Curie",
        "insureds": '["Marie Curie"]',
        "initiator": "Agence Nord",
        "subscriber": "Paul Martin",
        "case_id": "REF-NEW-01",
    }
    data.update(overrides)
    return ReportCreate(**data)


def _audit_types(db):
    return [e.type for e in db.query(AuditEvent).order_by(AuditEvent.id).all()]


# =============================================================================
# Validation
# =============================================================================

@pytest.mark.parametrize(
    "field",
    ["title", "beneficiaries", "insureds", "initiator", "subscriber", "case_id"],
)
def test_missing_required_field_is_named(db, field):
    with pytest.raises(report_service.ReportValidationError) as exc_info:
        report_service.create_report(db, _report_data(**{field: "   "}), "alice")

    assert exc_info.value.field == field
    assert db.query(Report).count() == 0
    assert db.query(Case).count() == 0


def test_first_missing_field_wins(db):
    with pytest.raises(report_service.ReportValidationError) as exc_info:
        report_service.validate_required_fields(_report_data(title=None, initiator=None))
    assert exc_info.value.field == "title"
    assert str(exc_info.value) == "Le titre du rapport est obligatoire"


# =============================================================================
# Case correspondence
# =============================================================================

def test_unknown_reference_auto_creates_one_case(db, directory):
    report = report_service.create_report(db, _report_data(), "alice")

    cases = db.query(Case).all()
    assert len(cases) == 1
    case = cases[0]
    assert case.reference == "REF-NEW-01"
    assert case.created_by == "alice"
    assert json.loads(case.data_json) == {
        "beneficiaire_nom": "Jean Dupont",
        "assure_nom": "Marie Curie",
        "souscripteur_nom": "Paul Martin",
        "initiateur": "Agence Nord",
        "titre_rapport": "Rapport sinistre",
    }
    assert report.case_id == "REF-NEW-01"
    assert _audit_types(db) == [AuditEventType.CASE_CREATED.value, AuditEventType.REPORT_CREATED.value]
    # auto-created cases are not broadcast
    assert db.query(Notification).filter(Notification.type == NotificationType.CASE_CREATED.value).count() == 0


def test_known_reference_is_reused(db):
    report_service.create_report(db, _report_data(), "alice")
    report_service.create_report(db, _report_data(title="Second"), "bob")

    assert db.query(Case).count() == 1


def test_numeric_case_id_looks_up_by_id(db):
    case = case_service.create_case(db, "alice", CaseCreate(reference="EXIST"))

    resolved = report_service.resolve_case_correspondence(db, _report_data(case_id=str(case.id)))
    assert resolved.id == case.id

    missing = report_service.resolve_case_correspondence(db, _report_data(case_id="9999"))
    assert missing is None
    assert db.query(Case).count() == 1


def test_auto_created_case_owner_falls_back_to_system(db):
    report_service.resolve_case_correspondence(db, _report_data(case_id="ORPHAN"))

    assert case_service.get_case_by_reference(db, "ORPHAN").created_by == settings.SYSTEM_ACTOR


def test_field_correspondence_is_advisory(db):
    payload = json.dumps({"beneficiaire_nom": "jean dupont", "assure_nom": "Someone Else"})

    unmatched = report_service.check_field_correspondence(_report_data(), payload)

    assert unmatched == ["insured", "subscriber"]


# =============================================================================
# Create
# =============================================================================

def test_create_report_broadcasts_to_active_users(db, directory):
    report = report_service.create_report(db, _report_data(), "bob")

    assert report.created_by == "bob"
    notifications = (
        db.query(Notification)
        .filter(Notification.type == NotificationType.REPORT_CREATED.value)
        .order_by(Notification.user_id)
        .all()
    )
    assert [n.user_id for n in notifications] == ["alice", "bob", "carol"]
    assert notifications[0].title == "📄 Nouveau rapport créé"
    assert "bob" in notifications[0].message
    assert notifications[0].url == "/rapports"


def test_create_with_file_is_attributed_to_system(db, directory):
    report = report_service.create_report_with_file(db, _report_data(), has_file=False)

    event = db.query(AuditEvent).filter(AuditEvent.type == AuditEventType.REPORT_CREATED.value).one()
    assert event.actor == settings.SYSTEM_ACTOR
    notification = db.query(Notification).filter(Notification.user_id == "alice").one()
    assert "le système" in notification.message
    assert report.id is not None


# =============================================================================
# Update / Delete
# =============================================================================

def test_update_requires_creator_and_keeps_title(db):
    report = report_service.create_report(db, _report_data(), "alice")

    with pytest.raises(report_service.ReportPermissionError):
        report_service.update_report(db, report.id, "bob", ReportUpdate(title="Hijack"))
    with pytest.raises(report_service.ReportValidationError):
        report_service.update_report(db, report.id, "alice", ReportUpdate(title="  "))

    updated = report_service.update_report(db, report.id, "alice", ReportUpdate(subscriber="Nouveau"))
    assert updated.subscriber == "Nouveau"
    assert updated.title == "Rapport sinistre"


def test_update_and_delete_audit_as_created_by_default(db):
    report = report_service.create_report(db, _report_data(), "alice")
    report_service.update_report(db, report.id, "alice", ReportUpdate(title="Nouveau titre"))
    report_service.delete_report(db, report.id, "alice")

    assert _audit_types(db) == ["CASE_CREATED"] + ["REPORT_CREATED"] * 3


def test_distinct_report_events_setting(db, monkeypatch):
    monkeypatch.setattr(settings, "AUDIT_DISTINCT_REPORT_EVENTS", True)
    report = report_service.create_report(db, _report_data(), "alice")
    report_service.update_report(db, report.id, "alice", ReportUpdate(title="Nouveau titre"))
    report_service.delete_report(db, report.id, "alice")

    assert _audit_types(db) == ["CASE_CREATED", "REPORT_CREATED", "REPORT_UPDATED", "REPORT_DELETED"]


def test_delete_removes_files(db, local_storage):
    report = report_service.create_report(db, _report_data(), "alice")
    stored = report_file_service.upload_report_file(
        db, report.id, "constat.pdf", "application/pdf", io.BytesIO(b"%PDF-1.4"), 8
    )
    content_path = os.path.join(local_storage, stored.storage_key)
    assert os.path.exists(content_path)

    report_service.delete_report(db, report.id, "alice")

    assert report_service.get_report(db, report.id) is None
    assert db.query(ReportFile).count() == 0
    assert not os.path.exists(content_path)


def test_delete_continues_when_file_cleanup_fails(db, monkeypatch):
    report = report_service.create_report(db, _report_data(), "alice")
    report_file_service.upload_report_file(db, report.id, "a.txt", "text/plain", io.BytesIO(b"abc"), 3)

    monkeypatch.setattr(
        report_file_service,
        "delete_report_files",
        lambda db, report_id: (0, "OperationalError: storage offline"),
    )

    report_service.delete_report(db, report.id, "alice")

    assert report_service.get_report(db, report.id) is None


def test_delete_continues_when_stored_content_cannot_be_removed(db, monkeypatch):
    report = report_service.create_report(db, _report_data(), "alice")
    report_file_service.upload_report_file(db, report.id, "a.txt", "text/plain", io.BytesIO(b"abc"), 3)

    def broken_delete(storage_key):
        raise OSError("read-only file system")

    monkeypatch.setattr(report_file_service, "delete_file", broken_delete)

    report_service.delete_report(db, report.id, "alice")

    assert report_service.get_report(db, report.id) is None
    assert db.query(ReportFile).count() == 0


def test_delete_requires_creator(db):
    report = report_service.create_report(db, _report_data(), "alice")

    with pytest.raises(report_service.ReportPermissionError):
        report_service.delete_report(db, report.id, "bob")
    with pytest.raises(report_service.ReportNotFoundError):
        report_service.delete_report(db, 9999, "alice")
    assert report_service.can_edit(db, report.id, "alice") is True
    assert report_service.can_delete(db, report.id, "bob") is False


# =============================================================================
# Files & dashboard reads
# =============================================================================

def test_file_validation(db):
    assert report_file_service.validate_file("a.pdf", 10) == (True, None)
    assert report_file_service.validate_file("", 10)[0] is False
    assert report_file_service.validate_file("a.pdf", 0)[0] is False
    assert report_file_service.validate_file("a.pdf", settings.MAX_REPORT_FILE_BYTES + 1)[0] is False

    with pytest.raises(report_file_service.ReportFileError):
        report_file_service.upload_report_file(db, 1, "a.pdf", None, io.BytesIO(b""), 0)


def test_counts_by_creator(db):
    report_service.create_report(db, _report_data(), "alice")
    report_service.create_report(db, _report_data(title="2"), "alice")
    report_service.create_report(db, _report_data(title="3"), "bob")

    assert report_service.count_by_creator(db) == [("alice", 2), ("bob", 1)]
    assert report_service.list_report_ids_by_owner(db, "bob") == [3]
    assert len(report_service.recent_reports(db, limit=2)) == 2


# =============================================================================
# case_id parsing
# =============================================================================

@pytest.mark.parametrize(
    "raw, expected",
    [
        ("12", 12),
        ("+7", 7),
        ("-3", -3),
        ("2147483647", 2147483647),
        ("2147483648", None),
        ("99999999999999999999", None),
        ("1_2", None),
        ("١٢", None),
        ("12a", None),
    ],
)
def test_parse_case_id(raw, expected):
    assert report_service.parse_case_id(raw) == expected


def test_out_of_range_digits_are_a_reference(db):
    report = report_service.create_report(db, _report_data(case_id="99999999999999999999"), "alice")

    case = case_service.get_case_by_reference(db, "99999999999999999999")
    assert case is not None
    assert case.created_by == "alice"
    assert report.case_id == "99999999999999999999"


def test_underscore_digits_are_a_reference(db):
    existing = case_service.create_case(db, "alice", CaseCreate(reference="X"))
    assert existing.id == 1

    report_service.create_report(db, _report_data(case_id="1_1"), "alice")

    assert sorted(c.reference for c in db.query(Case).all()) == ["1_1", "X"]


def test_attach_file_failure_keeps_report(db, monkeypatch):
    report = report_service.create_report(db, _report_data(), "alice")

    def broken_store(storage_key, file):
        raise OSError("disk full")

    monkeypatch.setattr(report_file_service, "store_file", broken_store)

    stored, error = report_file_service.attach_report_file(
        db, report.id, "a.txt", "text/plain", io.BytesIO(b"abc"), 3
    )

    assert stored is None
    assert error.startswith("OSError")
    assert report_service.get_report(db, report.id) is not None
    assert db.query(ReportFile).count() == 0


def test_padded_actor_is_the_same_creator(db):
    report = report_service.create_report(db, _report_data(), " alice ")

    assert report.created_by == "alice"
    assert report_service.can_edit(db, report.id, "alice ") is True
    updated = report_service.update_report(db, report.id, " alice", ReportUpdate(subscriber="Autre"))
    assert updated.subscriber == "Autre"
    report_service.delete_report(db, report.id, "alice ")
    assert report_service.get_report(db, report.id) is None
