import logging
import uuid
from datetime import date
from decimal import Decimal

import pytest

from core.exceptions import (
    BalanceExceeded,
    DuplicateAttribution,
    Forbidden,
    InvalidMethod,
    NotFound,
    ValidationError,
    WouldLockUsedSessions,
)
from packages.models import Payment
from packages.services import (
    delete_payment,
    get_package_summary,
    normalize_payment_method,
    preview_payment,
    record_payment,
    update_payment,
)


def _pay(package, actor, amount, **kwargs):
    return record_payment(
        package_id=package.pk,
        organization_id=package.organization_id,
        actor=actor,
        amount=Decimal(amount),
        **kwargs,
    )


# ---------------------------------------------------------------------------
# record_payment
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_record_payment_unlocks_proportional_sessions(package, admin_user):
    outcome = _pay(package, admin_user, "500")

    assert outcome.payment.amount == Decimal("500.00")
    assert outcome.payment.created_by == admin_user
    assert outcome.payment.method == Payment.Method.CARD
    assert outcome.summary.unlocked_sessions == 5
    assert outcome.summary.remaining_balance == Decimal("500.00")


@pytest.mark.django_db
def test_record_payment_one_cent_over_threshold_unlocks_nothing_more(package, manager_user):
    outcome = _pay(package, manager_user, "501")
    assert outcome.summary.unlocked_sessions == 5


@pytest.mark.django_db
def test_record_payment_rejects_amount_above_remaining_balance(package, admin_user):
    _pay(package, admin_user, "900")

    with pytest.raises(BalanceExceeded):
        _pay(package, admin_user, "100.02")

    assert Payment.objects.filter(package=package).count() == 1


@pytest.mark.django_db
def test_record_payment_accepts_rounding_tolerance(package, admin_user):
    _pay(package, admin_user, "900")
    outcome = _pay(package, admin_user, "100.01")

    assert outcome.summary.unlocked_sessions == 10
    assert outcome.summary.is_fully_paid is True
    assert outcome.summary.remaining_balance == Decimal("0.00")


@pytest.mark.django_db
@pytest.mark.parametrize("amount", ["0", "-10"])
def test_record_payment_rejects_non_positive_amount(package, admin_user, amount):
    with pytest.raises(ValidationError):
        _pay(package, admin_user, amount)


@pytest.mark.django_db
def test_record_payment_normalizes_method_alias(package, admin_user):
    outcome = _pay(package, admin_user, "100", method="virement")
    assert outcome.payment.method == Payment.Method.BANK_TRANSFER


@pytest.mark.django_db
def test_record_payment_rejects_unknown_method(package, admin_user):
    with pytest.raises(InvalidMethod):
        _pay(package, admin_user, "100", method="CHEQUE")
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_record_payment_stores_payment_date_and_attribution(package, admin_user, trainer, manager_user):
    outcome = _pay(
        package,
        admin_user,
        "100",
        payment_date=date(2024, 3, 15),
        sales_attributed_to=trainer.pk,
        sales_attributed_to_2=manager_user,
    )
    outcome.payment.refresh_from_db()
    assert outcome.payment.payment_date == date(2024, 3, 15)
    assert outcome.payment.sales_attributed_to == trainer
    assert outcome.payment.sales_attributed_to_2 == manager_user


@pytest.mark.django_db
def test_record_payment_rejects_same_person_twice(package, admin_user, trainer):
    with pytest.raises(DuplicateAttribution):
        _pay(package, admin_user, "100", sales_attributed_to=trainer.pk, sales_attributed_to_2=trainer.pk)


@pytest.mark.django_db
def test_record_payment_rejects_attribution_outside_organization(package, admin_user, other_admin):
    with pytest.raises(ValidationError):
        _pay(package, admin_user, "100", sales_attributed_to=other_admin.pk)


@pytest.mark.django_db
@pytest.mark.parametrize("actor_fixture", ["trainer", "client_user"])
def test_record_payment_requires_finance_role(request, package, actor_fixture):
    actor = request.getfixturevalue(actor_fixture)
    with pytest.raises(Forbidden):
        _pay(package, actor, "100")


@pytest.mark.django_db
def test_club_manager_may_record_payments(package, club_manager):
    assert _pay(package, club_manager, "100").summary.unlocked_sessions == 1


@pytest.mark.django_db
def test_record_payment_rejects_other_organization(package, other_admin):
    with pytest.raises(Forbidden):
        record_payment(
            package_id=package.pk,
            organization_id=other_admin.organization_id,
            actor=other_admin,
            amount=Decimal("100"),
        )


@pytest.mark.django_db
def test_record_payment_rejects_actor_from_another_organization(package, other_admin):
    with pytest.raises(Forbidden):
        record_payment(
            package_id=package.pk,
            organization_id=package.organization_id,
            actor=other_admin,
            amount=Decimal("100"),
        )
    assert not Payment.objects.exists()


@pytest.mark.django_db
def test_update_and_delete_reject_actor_from_another_organization(package, admin_user, other_admin):
    payment = _pay(package, admin_user, "100").payment

    with pytest.raises(Forbidden):
        update_payment(
            payment_id=payment.pk,
            organization_id=package.organization_id,
            actor=other_admin,
            amount=Decimal("50"),
        )
    with pytest.raises(Forbidden):
        delete_payment(payment_id=payment.pk, organization_id=package.organization_id, actor=other_admin)

    payment.refresh_from_db()
    assert payment.amount == Decimal("100.00")


@pytest.mark.django_db
def test_record_payment_unknown_package(organization, admin_user):
    with pytest.raises(NotFound):
        record_payment(
            package_id=uuid.uuid4(),
            organization_id=organization.pk,
            actor=admin_user,
            amount=Decimal("100"),
        )


@pytest.mark.django_db
def test_record_payment_logs_the_mutation(package, admin_user, caplog):
    with caplog.at_level(logging.INFO, logger="coaching"):
        outcome = _pay(package, admin_user, "100")
    assert any(
        "Payment recorded" in record.getMessage() and str(outcome.payment.pk) in record.getMessage()
        for record in caplog.records
    )


# ---------------------------------------------------------------------------
# update_payment
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_update_payment_only_changes_supplied_fields(package, admin_user):
    payment = _pay(package, admin_user, "300", notes="acompte").payment

    outcome = update_payment(
        payment_id=payment.pk,
        organization_id=package.organization_id,
        actor=admin_user,
        notes="acompte janvier",
    )

    payment.refresh_from_db()
    assert payment.notes == "acompte janvier"
    assert payment.amount == Decimal("300.00")
    assert payment.method == Payment.Method.CARD
    assert outcome.summary.unlocked_sessions == 3


@pytest.mark.django_db
def test_update_payment_amount_recomputes_summary(package, admin_user):
    payment = _pay(package, admin_user, "300").payment

    outcome = update_payment(
        payment_id=payment.pk,
        organization_id=package.organization_id,
        actor=admin_user,
        amount=Decimal("700"),
    )

    assert outcome.payment.amount == Decimal("700.00")
    assert outcome.summary.unlocked_sessions == 7


@pytest.mark.django_db
def test_update_payment_rejects_total_above_package_value(package, admin_user):
    _pay(package, admin_user, "600")
    payment = _pay(package, admin_user, "300").payment

    with pytest.raises(BalanceExceeded):
        update_payment(
            payment_id=payment.pk,
            organization_id=package.organization_id,
            actor=admin_user,
            amount=Decimal("401"),
        )
    payment.refresh_from_db()
    assert payment.amount == Decimal("300.00")


@pytest.mark.django_db
def test_update_payment_rejects_reduction_below_used_sessions(package, admin_user, log_sessions):
    _pay(package, admin_user, "300")
    payment = _pay(package, admin_user, "200").payment
    log_sessions(package, 5)

    with pytest.raises(WouldLockUsedSessions) as excinfo:
        update_payment(
            payment_id=payment.pk,
            organization_id=package.organization_id,
            actor=admin_user,
            amount=Decimal("199"),
        )

    assert excinfo.value.used_sessions == 5
    assert excinfo.value.unlocked_sessions == 4
    payment.refresh_from_db()
    assert payment.amount == Decimal("200.00")


@pytest.mark.django_db
def test_update_payment_reduction_to_exact_coverage_is_allowed(package, admin_user, log_sessions):
    payment = _pay(package, admin_user, "800").payment
    log_sessions(package, 5)

    outcome = update_payment(
        payment_id=payment.pk,
        organization_id=package.organization_id,
        actor=admin_user,
        amount=Decimal("500"),
    )
    assert outcome.summary.unlocked_sessions == 5
    assert outcome.summary.available_sessions == 0


@pytest.mark.django_db
def test_update_payment_clears_attribution(package, admin_user, trainer):
    payment = _pay(package, admin_user, "100", sales_attributed_to=trainer.pk).payment

    outcome = update_payment(
        payment_id=payment.pk,
        organization_id=package.organization_id,
        actor=admin_user,
        sales_attributed_to=None,
    )
    assert outcome.payment.sales_attributed_to is None


@pytest.mark.django_db
def test_update_payment_duplicate_attribution_against_stored_value(package, admin_user, trainer):
    payment = _pay(package, admin_user, "100", sales_attributed_to=trainer.pk).payment

    with pytest.raises(DuplicateAttribution):
        update_payment(
            payment_id=payment.pk,
            organization_id=package.organization_id,
            actor=admin_user,
            sales_attributed_to_2=trainer.pk,
        )


@pytest.mark.django_db
def test_update_payment_from_other_organization_is_forbidden(package, admin_user, other_admin):
    payment = _pay(package, admin_user, "100").payment

    with pytest.raises(Forbidden):
        update_payment(
            payment_id=payment.pk,
            organization_id=other_admin.organization_id,
            actor=other_admin,
            amount=Decimal("50"),
        )


@pytest.mark.django_db
def test_update_unknown_payment(organization, admin_user):
    with pytest.raises(NotFound):
        update_payment(
            payment_id=uuid.uuid4(),
            organization_id=organization.pk,
            actor=admin_user,
            notes="x",
        )


# ---------------------------------------------------------------------------
# delete_payment
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_delete_payment_rejected_when_sessions_already_used(package, admin_user, log_sessions):
    payment = _pay(package, admin_user, "500").payment
    log_sessions(package, 5)

    with pytest.raises(WouldLockUsedSessions) as excinfo:
        delete_payment(
            payment_id=payment.pk,
            organization_id=package.organization_id,
            actor=admin_user,
        )

    assert excinfo.value.used_sessions == 5
    assert excinfo.value.unlocked_sessions == 0
    assert Payment.objects.filter(pk=payment.pk).exists()


@pytest.mark.django_db
def test_delete_payment_ignores_cancelled_sessions(package, admin_user, log_sessions):
    payment = _pay(package, admin_user, "500").payment
    log_sessions(package, 5, cancelled=True)

    summary = delete_payment(
        payment_id=payment.pk,
        organization_id=package.organization_id,
        actor=admin_user,
    )

    assert not Payment.objects.filter(pk=payment.pk).exists()
    assert summary.total_paid == Decimal("0.00")
    assert summary.unlocked_sessions == 0
    assert summary.used_sessions == 0


@pytest.mark.django_db
def test_delete_payment_keeps_remaining_coverage(package, admin_user, log_sessions):
    _pay(package, admin_user, "300")
    extra = _pay(package, admin_user, "200").payment
    log_sessions(package, 3)

    summary = delete_payment(
        payment_id=extra.pk,
        organization_id=package.organization_id,
        actor=admin_user,
    )
    assert summary.unlocked_sessions == 3
    assert summary.payment_count == 1


@pytest.mark.django_db
def test_delete_payment_requires_finance_role(package, admin_user, trainer):
    payment = _pay(package, admin_user, "100").payment

    with pytest.raises(Forbidden):
        delete_payment(
            payment_id=payment.pk,
            organization_id=package.organization_id,
            actor=trainer,
        )


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------

@pytest.mark.django_db
def test_get_package_summary_is_read_only(package, admin_user, log_sessions):
    _pay(package, admin_user, "450")
    log_sessions(package, 2)

    first = get_package_summary(package_id=package.pk, organization_id=package.organization_id)
    second = get_package_summary(package_id=package.pk, organization_id=package.organization_id)

    assert first == second
    assert first.unlocked_sessions == 4
    assert first.used_sessions == 2
    assert first.available_sessions == 2
    assert Payment.objects.filter(package=package).count() == 1


@pytest.mark.django_db
def test_get_package_summary_other_organization(package, other_organization):
    with pytest.raises(Forbidden):
        get_package_summary(package_id=package.pk, organization_id=other_organization.pk)


@pytest.mark.django_db
def test_preview_payment(package, admin_user):
    _pay(package, admin_user, "450")
    assert preview_payment(package_id=package.pk, organization_id=package.organization_id, amount="50") == 1
    assert preview_payment(package_id=package.pk, organization_id=package.organization_id, amount="49.99") == 0


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("CARD", Payment.Method.CARD),
        ("cb", Payment.Method.CARD),
        ("carte bancaire", Payment.Method.CARD),
        ("bank-transfer", Payment.Method.BANK_TRANSFER),
        ("Autre", Payment.Method.OTHER),
    ],
)
def test_normalize_payment_method(raw, expected):
    assert normalize_payment_method(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "bitcoin", 3])
def test_normalize_payment_method_rejects(raw):
    with pytest.raises(InvalidMethod):
        normalize_payment_method(raw)


@pytest.mark.django_db
@pytest.mark.parametrize("amount", ["NaN", "Infinity", "-Infinity", "sNaN", "1E+50"])
def test_unusable_amounts_are_rejected(package, admin_user, amount):
    with pytest.raises(ValidationError):
        preview_payment(package_id=package.pk, organization_id=package.organization_id, amount=amount)
    with pytest.raises(ValidationError):
        _pay(package, admin_user, amount)
    assert not Payment.objects.exists()
