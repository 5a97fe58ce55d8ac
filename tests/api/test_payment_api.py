import json
from decimal import Decimal

import pytest

from packages.models import Package, Payment
from packages.services import record_payment


def _unwrap_results(payload):
    if isinstance(payload, dict) and "results" in payload:
        return payload["results"]
    return payload


def _pay(package, actor, amount):
    return record_payment(
        package_id=package.pk,
        organization_id=package.organization_id,
        actor=actor,
        amount=Decimal(amount),
    ).payment


def _post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def _patch_json(client, url, payload):
    return client.patch(url, data=json.dumps(payload), content_type="application/json")


@pytest.mark.django_db
def test_record_payment_returns_payment_and_summary(client, admin_user, package):
    client.force_login(admin_user)

    response = _post_json(client, f"/api/v1/packages/{package.pk}/payments/", {"amount": "500.00", "method": "CB"})

    assert response.status_code == 201
    body = response.json()
    assert body["payment"]["method"] == "CARD"
    assert body["payment"]["created_by"] == str(admin_user.pk)
    assert body["summary"]["unlocked_sessions"] == 5
    assert body["summary"]["remaining_balance"] == "500.00"
    assert body["summary"]["can_log_session"] is True


@pytest.mark.django_db
def test_record_payment_over_balance_is_400(client, admin_user, package):
    _pay(package, admin_user, "900")
    client.force_login(admin_user)

    response = _post_json(client, f"/api/v1/packages/{package.pk}/payments/", {"amount": "200.00"})

    assert response.status_code == 400
    assert response.json()["code"] == "balance_exceeded"


@pytest.mark.django_db
def test_record_payment_unknown_method_is_400(client, admin_user, package):
    client.force_login(admin_user)

    response = _post_json(client, f"/api/v1/packages/{package.pk}/payments/", {"amount": "10.00", "method": "CHEQUE"})

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_method"


@pytest.mark.django_db
def test_trainer_cannot_record_payment(client, trainer, package):
    client.force_login(trainer)

    response = _post_json(client, f"/api/v1/packages/{package.pk}/payments/", {"amount": "100.00"})

    assert response.status_code == 403
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_client_lists_payments_of_own_package(client, admin_user, client_user, package):
    _pay(package, admin_user, "100")
    client.force_login(client_user)

    response = client.get(f"/api/v1/packages/{package.pk}/payments/")

    assert response.status_code == 200
    assert len(_unwrap_results(response.json())) == 1


@pytest.mark.django_db
def test_client_cannot_read_someone_elses_package(client, admin_user, client_user, organization):
    from accounts.models import User

    other_client = User.objects.create_user(
        email="other@test.com",
        password="testpass123",
        first_name="Other",
        last_name="Client",
        role=User.Role.CLIENT,
        organization=organization,
    )
    foreign = Package.objects.create(
        organization=organization,
        client=other_client,
        name="Forfait autre",
        total_value=Decimal("500"),
        total_sessions=5,
    )
    client.force_login(client_user)

    assert client.get(f"/api/v1/packages/{foreign.pk}/summary/").status_code == 403
    assert client.get(f"/api/v1/packages/{foreign.pk}/preview/", {"amount": "100"}).status_code == 403
    assert client.get(f"/api/v1/packages/{foreign.pk}/").status_code == 404


@pytest.mark.django_db
def test_summary_endpoint(client, admin_user, package, log_sessions):
    _pay(package, admin_user, "450")
    log_sessions(package, 2)
    client.force_login(admin_user)

    response = client.get(f"/api/v1/packages/{package.pk}/summary/")

    assert response.status_code == 200
    body = response.json()
    assert body["unlocked_sessions"] == 4
    assert body["used_sessions"] == 2
    assert body["available_sessions"] == 2
    assert body["payment_progress"] == "45.00"
    assert body["is_fully_paid"] is False


@pytest.mark.django_db
def test_summary_of_other_organization_is_403(client, other_admin, package):
    client.force_login(other_admin)
    assert client.get(f"/api/v1/packages/{package.pk}/summary/").status_code == 403


@pytest.mark.django_db
def test_preview_endpoint(client, admin_user, package):
    _pay(package, admin_user, "450")
    client.force_login(admin_user)

    response = client.get(f"/api/v1/packages/{package.pk}/preview/", {"amount": "150"})

    assert response.status_code == 200
    assert response.json() == {"sessions_unlocked": 2}
    assert client.get(f"/api/v1/packages/{package.pk}/preview/").status_code == 400


@pytest.mark.django_db
@pytest.mark.parametrize("amount", ["NaN", "Infinity"])
def test_preview_rejects_non_finite_amount(client, admin_user, package, amount):
    client.force_login(admin_user)

    response = client.get(f"/api/v1/packages/{package.pk}/preview/", {"amount": amount})

    assert response.status_code == 400
    assert response.json()["code"] == "validation_error"


@pytest.mark.django_db
def test_patch_payment_partial_update(client, admin_user, package):
    payment = _pay(package, admin_user, "300")
    client.force_login(admin_user)

    response = _patch_json(client, f"/api/v1/payments/{payment.pk}/", {"notes": "solde janvier"})

    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.notes == "solde janvier"
    assert payment.amount == Decimal("300.00")


@pytest.mark.django_db
def test_patch_payment_that_would_lock_used_sessions_is_409(client, admin_user, package, log_sessions):
    payment = _pay(package, admin_user, "500")
    log_sessions(package, 5)
    client.force_login(admin_user)

    response = _patch_json(client, f"/api/v1/payments/{payment.pk}/", {"amount": "400.00"})

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "would_lock_used_sessions"
    assert body["used_sessions"] == 5
    assert body["unlocked_sessions"] == 4


@pytest.mark.django_db
def test_delete_payment(client, admin_user, package, log_sessions):
    payment = _pay(package, admin_user, "500")
    client.force_login(admin_user)

    log_sessions(package, 1)
    assert client.delete(f"/api/v1/payments/{payment.pk}/").status_code == 409

    package.sessions.update(cancelled=True)
    response = client.delete(f"/api/v1/payments/{payment.pk}/")
    assert response.status_code == 200
    assert response.json()["total_paid"] == "0.00"
    assert not Payment.objects.filter(pk=payment.pk).exists()


@pytest.mark.django_db
def test_payment_list_is_scoped_to_organization(client, admin_user, other_admin, package):
    payment = _pay(package, admin_user, "100")
    client.force_login(other_admin)

    assert _unwrap_results(client.get("/api/v1/payments/").json()) == []
    assert client.get(f"/api/v1/payments/{payment.pk}/").status_code == 404


@pytest.mark.django_db
def test_trainer_cannot_delete_payment(client, admin_user, trainer, package):
    payment = _pay(package, admin_user, "100")
    client.force_login(trainer)

    assert client.delete(f"/api/v1/payments/{payment.pk}/").status_code == 403


@pytest.mark.django_db
def test_anonymous_is_rejected(client, package):
    assert client.get(f"/api/v1/packages/{package.pk}/summary/").status_code in (401, 403)
