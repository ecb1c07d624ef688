from datetime import date, datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from src.vaxtrack.config import settings
from src.vaxtrack.domain.models.appointment import Appointment, AppointmentStatus
from src.vaxtrack.domain.models.child import Gender
from src.vaxtrack.domain.models.clinic import Clinic, GeoPoint
from src.vaxtrack.domain.models.notification import NotificationType
from src.vaxtrack.domain.models.user import NotificationPreferences
from src.vaxtrack.domain.models.vaccination import Vaccination, VaccinationStatus
from src.vaxtrack.infra.db.registry import repositories
from src.vaxtrack.services.children.service import child_service
from src.vaxtrack.services.reminders.scanner import ReminderScanner
from src.vaxtrack.services.reminders.scheduler import ReminderScheduler, next_run_after, seconds_until_next_run
from src.vaxtrack.services.reminders.tasks import celery_app, crontab_from_expression, scan_reminders
from src.vaxtrack.services.users.service import user_service

NOW = datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def family():
    parent = user_service.sync_profile(subject="parent-1", email="parent@example.com", first_name="Ada")
    parent = user_service.update_profile(
        parent.id,
        phone="+15550100",
        preferences=NotificationPreferences(email=True, sms=True, push=True),
    )
    child = child_service.create_child(
        parent.id, {"name": "Mia", "date_of_birth": date(2024, 1, 15), "gender": Gender.FEMALE}
    )
    return parent, child


def _vaccination(child, when, status=VaccinationStatus.SCHEDULED):
    vaccination = Vaccination(
        id=uuid4(),
        child_id=child.id,
        vaccine_name="MMR",
        vaccine_date=when,
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )
    repositories.vaccinations.save(vaccination)
    return vaccination


def _appointment(parent, child, when, status=AppointmentStatus.CONFIRMED):
    clinic = Clinic(
        id=uuid4(),
        name="Sunrise Clinic",
        location=GeoPoint(longitude=36.8, latitude=-1.3),
        created_at=NOW,
        updated_at=NOW,
    )
    repositories.clinics.save(clinic)
    appointment = Appointment(
        id=uuid4(),
        parent_id=parent.id,
        child_id=child.id,
        clinic_id=clinic.id,
        appointment_date=when,
        appointment_time="10:30",
        status=status,
        created_at=NOW,
        updated_at=NOW,
    )
    repositories.appointments.save(appointment)
    return appointment


def _reminders(parent, type_):
    return repositories.notifications.list_by_type_since(parent.id, type_, NOW - timedelta(days=365))


def test_vaccination_in_window_gets_one_reminder_on_every_channel(family, email_sender, sms_sender):
    parent, child = family
    vaccination = _vaccination(child, NOW + timedelta(days=2))
    _vaccination(child, NOW + timedelta(days=5))
    _vaccination(child, NOW + timedelta(days=1), status=VaccinationStatus.COMPLETED)

    result = ReminderScanner(lookahead_days=3).run(NOW)

    assert result.vaccination_reminders == 1
    reminders = _reminders(parent, NotificationType.VACCINATION_REMINDER)
    assert len(reminders) == 1
    reminder = reminders[0]
    assert reminder.title == "Upcoming Vaccination"
    assert reminder.message == "Mia has MMR scheduled"
    assert reminder.priority.value == "high"
    assert reminder.data == {"vaccination_id": str(vaccination.id), "child_id": str(child.id)}
    assert reminder.channels.email.sent is True
    assert reminder.channels.sms.sent is True

    assert [subject for _, subject, _ in email_sender.sent] == ["Vaccination Reminder for Mia"]
    assert sms_sender.sent == [
        ("+15550100", "VaxTrack Reminder: Mia has MMR vaccination scheduled on 2025-03-12. Don't forget!")
    ]


def test_vaccination_is_reminded_again_on_next_pass(family):
    parent, child = family
    _vaccination(child, NOW + timedelta(days=2))
    scanner = ReminderScanner(lookahead_days=3)

    scanner.run(NOW)
    scanner.run(NOW + timedelta(days=1))

    assert len(_reminders(parent, NotificationType.VACCINATION_REMINDER)) == 2


def test_vaccination_dedupe_skips_recent_reminder(family):
    parent, child = family
    _vaccination(child, NOW + timedelta(days=2))
    scanner = ReminderScanner(lookahead_days=3, dedupe_vaccinations=True)

    first = scanner.run(NOW)
    second = scanner.run(NOW + timedelta(days=1))

    assert first.vaccination_reminders == 1
    assert second.vaccination_reminders == 0
    assert second.skipped == 1
    assert len(_reminders(parent, NotificationType.VACCINATION_REMINDER)) == 1


def test_appointment_reminder_is_sent_once(family, email_sender):
    parent, child = family
    appointment = _appointment(parent, child, NOW + timedelta(days=1))
    scanner = ReminderScanner(lookahead_days=3)

    first = scanner.run(NOW)
    second = scanner.run(NOW + timedelta(hours=12))

    assert first.appointment_reminders == 1
    assert second.appointment_reminders == 0
    reminders = _reminders(parent, NotificationType.APPOINTMENT_REMINDER)
    assert len(reminders) == 1
    assert reminders[0].title == "Upcoming Appointment"
    assert reminders[0].message == "Appointment for Mia"
    assert repositories.appointments.get(appointment.id).reminder.sent is True
    assert "Upcoming Appointment for Mia" in [subject for _, subject, _ in email_sender.sent]


def test_unconfirmed_appointments_are_not_reminded(family):
    parent, child = family
    _appointment(parent, child, NOW + timedelta(days=1), status=AppointmentStatus.PENDING)

    result = ReminderScanner(lookahead_days=3).run(NOW)

    assert result.appointment_reminders == 0
    assert _reminders(parent, NotificationType.APPOINTMENT_REMINDER) == []


def test_channel_failure_keeps_record_and_continues(family, email_sender, sms_sender):
    parent, child = family
    _vaccination(child, NOW + timedelta(days=1))
    _vaccination(child, NOW + timedelta(days=2))
    email_sender.fail = True

    result = ReminderScanner(lookahead_days=3).run(NOW)

    assert result.vaccination_reminders == 2
    assert result.failed == 0
    reminders = _reminders(parent, NotificationType.VACCINATION_REMINDER)
    assert len(reminders) == 2
    assert all(r.channels.email.sent is False for r in reminders)
    assert all(r.channels.sms.sent is True for r in reminders)
    assert len(sms_sender.sent) == 2


def test_orphaned_vaccination_is_skipped(family):
    parent, child = family
    child_service.delete_child(child.id, parent.id)
    _vaccination(child, NOW + timedelta(days=1))

    result = ReminderScanner(lookahead_days=3).run(NOW)

    assert result.vaccination_reminders == 0
    assert result.skipped == 1


def test_seconds_until_next_run():
    daily = "0 9 * * *"
    assert seconds_until_next_run(datetime(2025, 3, 10, 8, 0, tzinfo=timezone.utc), daily) == 3600
    # Exactly at the trigger time the next run is tomorrow.
    assert seconds_until_next_run(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc), daily) == 86400
    assert seconds_until_next_run(datetime(2025, 3, 10, 23, 30, tzinfo=timezone.utc), daily) == 9.5 * 3600


def test_next_run_follows_weekday_fields():
    # 2025-03-10 is a Monday; "mondays only" skips to the following week.
    nxt = next_run_after(datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc), "0 9 * * 1")
    assert nxt == datetime(2025, 3, 17, 9, 0, tzinfo=timezone.utc)


def test_scheduler_rejects_invalid_cron():
    with pytest.raises(ValueError):
        ReminderScheduler(ReminderScanner(lookahead_days=3), cron_expression="every morning")


async def test_scheduler_run_once_uses_clock(family):
    parent, child = family
    _vaccination(child, NOW + timedelta(days=1))
    scheduler = ReminderScheduler(ReminderScanner(lookahead_days=3), cron_expression="0 9 * * *", clock=lambda: NOW)

    result = await scheduler.run_once()

    assert result.vaccination_reminders == 1
    assert scheduler.last_result is result
    assert scheduler.seconds_until_next_run() == 86400


async def test_scheduler_start_and_stop():
    scheduler = ReminderScheduler(ReminderScanner(lookahead_days=3), cron_expression="0 9 * * *")
    assert scheduler.running is False

    scheduler.start()
    assert scheduler.running is True
    await scheduler.stop()
    assert scheduler.running is False


def test_beat_schedule_runs_daily_scan():
    entry = celery_app.conf.beat_schedule["daily-reminder-scan"]

    assert entry["task"] == "reminders.scan"
    assert entry["schedule"] == crontab_from_expression(settings.reminder_cron)


def test_crontab_from_expression_maps_fields():
    schedule = crontab_from_expression("30 6 * * 1")

    assert schedule.minute == {30}
    assert schedule.hour == {6}
    assert schedule.day_of_week == {1}


def test_crontab_from_expression_rejects_short_expression():
    with pytest.raises(ValueError):
        crontab_from_expression("0 9 *")


def test_scan_task_runs_scanner(family):
    parent, child = family
    _vaccination(child, datetime.now(timezone.utc) + timedelta(days=1))

    result = scan_reminders.apply().get()

    assert result["vaccination_reminders"] == 1
    assert result["failed"] == 0


async def _vaccination_via_api(client, auth_headers, make_user, make_child, days_ahead=2):
    parent = await make_user("parent-1")
    child = await make_child("parent-1")
    when = datetime.now(timezone.utc) + timedelta(days=days_ahead)
    resp = await client.post(
        "/api/v1/vaccinations/",
        json={"child_id": child["id"], "vaccine_name": "MMR", "vaccine_date": when.isoformat()},
        headers=auth_headers("parent-1"),
    )
    assert resp.status_code == 201, resp.text
    return parent, resp.json()


def _scan_reminders_for(parent_id, since):
    notices = repositories.notifications.list_by_type_since(
        UUID(parent_id), NotificationType.VACCINATION_REMINDER, since
    )
    return [n for n in notices if n.title == "Upcoming Vaccination"]


@pytest.mark.parametrize("dedupe", [False, True])
async def test_vaccination_booked_through_api_gets_first_reminder(
    dedupe, client, auth_headers, make_user, make_child
):
    parent, vaccination = await _vaccination_via_api(client, auth_headers, make_user, make_child)
    now = datetime.now(timezone.utc)

    result = ReminderScanner(lookahead_days=3, dedupe_vaccinations=dedupe).run(now)

    assert result.vaccination_reminders == 1
    assert result.skipped == 0
    reminders = _scan_reminders_for(parent["id"], now - timedelta(days=1))
    assert len(reminders) == 1
    assert reminders[0].data["vaccination_id"] == vaccination["id"]


async def test_dedupe_skips_second_pass_for_vaccination_booked_through_api(
    client, auth_headers, make_user, make_child
):
    parent, _ = await _vaccination_via_api(client, auth_headers, make_user, make_child)
    now = datetime.now(timezone.utc)
    scanner = ReminderScanner(lookahead_days=3, dedupe_vaccinations=True)

    first = scanner.run(now)
    second = scanner.run(now + timedelta(hours=12))

    assert first.vaccination_reminders == 1
    assert second.vaccination_reminders == 0
    assert second.skipped == 1
    assert len(_scan_reminders_for(parent["id"], now - timedelta(days=1))) == 1
