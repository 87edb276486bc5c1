from datetime import timedelta

from click.testing import CliRunner

from assurance.cli import cli
from assurance.db.base import utcnow
from assurance.db.enums import NotificationType
from assurance.db.models import Case, Notification, User
from assurance.services import notification_service


def test_create_user(db):
    runner = CliRunner()

    result = runner.invoke(cli, ["create-user", "--username", "alice", "--role", "ADMIN", "--logged-in"])

    assert result.exit_code == 0
    assert "Created user: alice (ADMIN)" in result.output
    user = db.query(User).filter(User.username == "alice").one()
    assert user.last_login_at is not None


def test_create_user_twice(db):
    runner = CliRunner()
    runner.invoke(cli, ["create-user", "--username", "bob"])

    result = runner.invoke(cli, ["create-user", "--username", "bob"])

    assert "already exists" in result.output
    assert db.query(User).count() == 1


def test_purge_notifications(db):
    old = notification_service.create_notification(db, "alice", NotificationType.SYSTEM, "old")
    old.created_at = utcnow() - timedelta(days=60)
    db.commit()

    result = CliRunner().invoke(cli, ["purge-notifications"])

    assert result.exit_code == 0
    assert "Purged 1 notifications" in result.output
    db.expire_all()
    assert db.query(Notification).count() == 0


def test_cleanup_duplicates(db):
    for ref in ("A1", "A2"):
        db.add(Case(reference=ref, type="ENQUETE", data_json="same", created_by="alice"))
    db.commit()

    result = CliRunner().invoke(cli, ["cleanup-duplicates"])

    assert "Removed 1 duplicate cases" in result.output


def test_run_jobs_with_empty_queue(db):
    result = CliRunner().invoke(cli, ["run-jobs", "--limit", "5"])

    assert result.exit_code == 0
    assert "Jobs completed: 0, failed: 0" in result.output
