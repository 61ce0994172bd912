import pytest
from django.urls import reverse
from rest_framework.test import APIClient

from main.models import User
from main.services.notification_service import NotificationService
from main.services.role_service import RoleService

pytestmark = pytest.mark.django_db


@pytest.fixture
def api(accountant):
    client = APIClient()
    client.force_authenticate(user=accountant)
    return client


def test_me_returns_role(api, accountant):
    response = api.get(reverse("main:me"))

    assert response.status_code == 200
    assert response.json()["data"]["role"] == User.Role.ACCOUNTANT
    assert response.json()["data"]["username"] == accountant.username


def test_roles_include_user_counts(api, make_user):
    make_user(User.Role.CEO)

    body = api.get(reverse("main:role-list")).json()["data"]

    counts = {role["code"]: role["user_count"] for role in body["roles"]}
    assert body["count"] == len(User.Role.values)
    assert counts[User.Role.ACCOUNTANT] == 1
    assert counts[User.Role.CEO] == 1
    assert counts[User.Role.MANAGER] == 0


def test_role_detail_is_case_insensitive(api):
    response = api.get(reverse("main:role-detail", args=["accountant"]))

    assert response.status_code == 200
    assert "generate_invoices" in response.json()["data"]["duties"]
    assert api.get(reverse("main:role-detail", args=["pilot"])).status_code == 404


def test_every_role_is_described():
    assert set(RoleService.ROLES) == set(User.Role.values)


def test_notifications_endpoints(api, accountant):
    NotificationService.notify_role(User.Role.ACCOUNTANT, "Invoice INVOICE-1 has been approved")

    body = api.get(reverse("main:notification-list")).json()["data"]
    assert body["unread_count"] == 1
    notification_id = body["notifications"][0]["id"]

    response = api.post(reverse("main:notification-read", args=[notification_id]))
    assert response.status_code == 200

    body = api.get(reverse("main:notification-list"), {"unread": "true"}).json()["data"]
    assert body["notifications"] == []
    assert api.post(reverse("main:notification-read", args=[999999])).status_code == 404
