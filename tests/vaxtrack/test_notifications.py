from datetime import datetime, timedelta, timezone
from uuid import uuid4

from fastapi import status

from src.vaxtrack.domain.models.notification import NotificationPriority, NotificationType
from src.vaxtrack.domain.models.user import NotificationPreferences
from src.vaxtrack.infra.db.registry import repositories
from src.vaxtrack.services.notifications.dispatcher import EmailContent, NotificationDispatcher
from src.vaxtrack.services.notifications.service import notification_service
from src.vaxtrack.services.users.service import user_service


def _parent(**prefs):
    user = user_service.sync_profile(subject="parent-1", email="parent@example.com", first_name="Ada")
    return user_service.update_profile(
        user.id,
        phone="+15550100",
        preferences=NotificationPreferences(**prefs),
    )


def test_dispatcher_respects_channel_preferences(email_sender, sms_sender):
    user = _parent(email=False, sms=True)
    dispatcher = NotificationDispatcher(email_sender=email_sender, sms_sender=sms_sender, ttl_days=0)

    notification = dispatcher.notify(
        user.id,
        NotificationType.SYSTEM,
        "Welcome",
        "Thanks for joining",
        email=EmailContent(subject="Welcome", html="<p>hi</p>"),
    )

    assert email_sender.sent == []
    assert sms_sender.sent == [("+15550100", "VaxTrack: Welcome. Thanks for joining")]
    stored = repositories.notifications.get(notification.id)
    assert stored.channels.sms.sent is True
    assert stored.channels.sms.sent_at is not None
    assert stored.channels.email.sent is False
    assert stored.expires_at is None


def test_dispatcher_records_even_when_every_channel_fails(email_sender, sms_sender):
    user = _parent(email=True, sms=True)
    email_sender.fail = True
    sms_sender.fail = True
    dispatcher = NotificationDispatcher(email_sender=email_sender, sms_sender=sms_sender)

    notification = dispatcher.notify(user.id, NotificationType.SYSTEM, "Title", "Body")

    stored = repositories.notifications.get(notification.id)
    assert stored is not None
    assert stored.channels.email.sent is False
    assert stored.channels.sms.sent is False


def test_dispatcher_stores_for_unknown_user_without_delivery(email_sender, sms_sender):
    dispatcher = NotificationDispatcher(email_sender=email_sender, sms_sender=sms_sender)
    notification = dispatcher.notify(uuid4(), NotificationType.SYSTEM, "Title", "Body")

    assert repositories.notifications.get(notification.id) is not None
    assert email_sender.sent == []


def test_in_app_only_notifications_skip_channels(email_sender, sms_sender):
    user = _parent(email=True, sms=True)
    dispatcher = NotificationDispatcher(email_sender=email_sender, sms_sender=sms_sender)

    dispatcher.notify(user.id, NotificationType.MESSAGE_RECEIVED, "New Message", "Hi", external=False)

    assert email_sender.sent == []
    assert sms_sender.sent == []


def test_expired_notifications_are_hidden_and_purged(email_sender, sms_sender):
    user = _parent()
    dispatcher = NotificationDispatcher(email_sender=email_sender, sms_sender=sms_sender, ttl_days=30)
    notification = dispatcher.notify(
        user.id, NotificationType.SYSTEM, "Title", "Body", priority=NotificationPriority.LOW
    )
    assert notification.expires_at - notification.created_at == timedelta(days=30)

    later = datetime.now(timezone.utc) + timedelta(days=31)
    assert repositories.notifications.list_for_user(user.id, now=later) == []
    assert notification_service.purge_expired(later) == 1
    assert repositories.notifications.get(notification.id) is None


async def test_notification_endpoints(client, auth_headers, make_user, make_child):
    await make_user("parent-1")
    await make_user("parent-2")
    headers = auth_headers("parent-1")
    child = await make_child("parent-1")
    for name in ("BCG", "MMR", "Polio"):
        await client.post(
            "/api/v1/vaccinations/",
            json={"child_id": child["id"], "vaccine_name": name, "vaccine_date": "2030-01-01T09:00:00Z"},
            headers=headers,
        )

    listing = (await client.get("/api/v1/notifications/", headers=headers)).json()
    assert listing["unread_count"] == 3
    by_vaccine = {n["message"].split()[0]: n for n in listing["notifications"]}
    first, second, third = by_vaccine["Polio"], by_vaccine["MMR"], by_vaccine["BCG"]

    resp = await client.put(f"/api/v1/notifications/{first['id']}/read", headers=headers)
    assert resp.status_code == status.HTTP_200_OK
    assert resp.json()["is_read"] is True

    unread = (await client.get("/api/v1/notifications/", params={"unread": "true"}, headers=headers)).json()
    assert {n["id"] for n in unread["notifications"]} == {second["id"], third["id"]}
    assert unread["unread_count"] == 2

    # Another user's notification looks missing.
    resp = await client.put(f"/api/v1/notifications/{second['id']}/read", headers=auth_headers("parent-2"))
    assert resp.status_code == status.HTTP_404_NOT_FOUND
    resp = await client.delete(f"/api/v1/notifications/{second['id']}", headers=auth_headers("parent-2"))
    assert resp.status_code == status.HTTP_404_NOT_FOUND

    resp = await client.put("/api/v1/notifications/read-all", headers=headers)
    assert resp.json()["updated"] == 2

    resp = await client.delete(f"/api/v1/notifications/{third['id']}", headers=headers)
    assert resp.status_code == status.HTTP_200_OK
    listing = (await client.get("/api/v1/notifications/", headers=headers)).json()
    assert listing["unread_count"] == 0
    assert len(listing["notifications"]) == 2
