"""Business logic / service functions for package payments.

Every payment mutation runs in one transaction that locks the package row
with ``select_for_update()`` before reading the payment total and the
used-session count, so a concurrent payment edit and a concurrent session
log cannot jointly break the rule that a client never consumes more
sessions than they have paid for.
"""
import logging
from decimal import InvalidOperation
from typing import NamedTuple, Optional

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import DecimalField, Sum
from django.db.models.functions import Coalesce

from core.exceptions import (
    BalanceExceeded,
    DuplicateAttribution,
    Forbidden,
    InvalidMethod,
    NotFound,
    ValidationError,
    WouldLockUsedSessions,
)
from core.money import ZERO, exceeds, quantize, to_decimal

from .ledger import (
    PaymentSummary,
    build_summary,
    calculate_unlocked_sessions,
    sessions_unlocked_by_payment,
)
from .models import Package, Payment
from .usage import default_usage

logger = logging.getLogger("coaching")

# Marks a keyword argument the caller did not supply (``None`` is a real value).
UNSET = object()


class PaymentOutcome(NamedTuple):
    payment: Optional[Payment]
    summary: PaymentSummary


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_payment_method(value) -> str:
    """Normalize a payment method to its canonical ``Payment.Method`` code."""
    raw = (value or "").strip() if isinstance(value, str) else ""
    if not raw:
        raise InvalidMethod(f"Mode de paiement invalide : {value!r}.")

    normalized = raw.upper().replace("-", "_").replace(" ", "_")
    if normalized in Payment.Method.values:
        return normalized

    alias_map = {
        "CB": Payment.Method.CARD,
        "CARTE": Payment.Method.CARD,
        "CARTE_BANCAIRE": Payment.Method.CARD,
        "VIREMENT": Payment.Method.BANK_TRANSFER,
        "VIREMENT_BANCAIRE": Payment.Method.BANK_TRANSFER,
        "TRANSFER": Payment.Method.BANK_TRANSFER,
        "AUTRE": Payment.Method.OTHER,
    }
    if normalized in alias_map:
        return alias_map[normalized]
    raise InvalidMethod(f"Mode de paiement invalide : {value!r}.")


def _ensure_finance_role(actor, organization_id):
    if actor is None or not getattr(actor, "can_manage_finances", False):
        raise Forbidden("Seuls les administrateurs et responsables peuvent gerer les paiements.")
    if str(actor.organization_id) != str(organization_id):
        raise Forbidden("Vous ne pouvez pas gerer les paiements d'une autre organisation.")


def _positive_amount(amount):
    try:
        value = quantize(amount)
    except (ValueError, InvalidOperation) as exc:
        raise ValidationError(f"Montant invalide : {amount!r}.") from exc
    if value <= 0:
        raise ValidationError("Le montant du paiement doit etre positif.")
    return value


def _load_package(package_id, organization_id, *, lock=False) -> Package:
    queryset = Package.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        package = queryset.get(pk=package_id)
    except (Package.DoesNotExist, DjangoValidationError):
        raise NotFound("Forfait introuvable.")
    if str(package.organization_id) != str(organization_id):
        raise Forbidden("Ce forfait appartient a une autre organisation.")
    return package


def _load_payment_locked(payment_id, organization_id):
    """Lock the owning package, then the payment itself."""
    try:
        package_id = Payment.objects.values_list("package_id", flat=True).get(pk=payment_id)
    except (Payment.DoesNotExist, DjangoValidationError):
        raise NotFound("Paiement introuvable.")
    package = _load_package(package_id, organization_id, lock=True)
    payment = Payment.objects.select_for_update().get(pk=payment_id)
    return package, payment


def _paid_total(package, exclude=None):
    queryset = Payment.objects.filter(package=package)
    if exclude is not None:
        queryset = queryset.exclude(pk=exclude.pk)
    return queryset.aggregate(
        total=Coalesce(
            Sum("amount"),
            ZERO,
            output_field=DecimalField(max_digits=18, decimal_places=2),
        )
    )["total"]


def _resolve_attribution(value, organization_id):
    """Return the attributed ``User`` (or ``None``), checking organization membership."""
    if value is None or value == "":
        return None
    from accounts.models import User

    user_id = getattr(value, "pk", value)
    try:
        user = User.objects.get(pk=user_id)
    except (User.DoesNotExist, DjangoValidationError):
        raise ValidationError("Utilisateur d'attribution introuvable.")
    if str(user.organization_id) != str(organization_id):
        raise ValidationError("La vente ne peut etre attribuee qu'a un membre de l'organisation.")
    return user


def _check_distinct(first, second):
    if first is not None and second is not None and first.pk == second.pk:
        raise DuplicateAttribution()


def _summarize(package, usage) -> PaymentSummary:
    amounts = list(Payment.objects.filter(package=package).values_list("amount", flat=True))
    return build_summary(
        package_id=package.pk,
        total_value=package.total_value,
        total_sessions=package.total_sessions,
        amounts=amounts,
        used_sessions=usage.get_used_session_count(package.pk),
    )


def _guard_used_sessions(package, new_total, usage):
    new_unlocked = calculate_unlocked_sessions(new_total, package.total_value, package.total_sessions)
    used = usage.get_used_session_count(package.pk)
    if used > new_unlocked:
        raise WouldLockUsedSessions(used_sessions=used, unlocked_sessions=new_unlocked)


# ---------------------------------------------------------------------------
# get_package_summary
# ---------------------------------------------------------------------------

def get_package(*, package_id, organization_id) -> Package:
    """Package owned by ``organization_id`` (``NotFound`` / ``Forbidden`` otherwise)."""
    return _load_package(package_id, organization_id)


def get_package_summary(*, package_id, organization_id, usage=None) -> PaymentSummary:
    """Return the entitlement summary of a package. Read only."""
    usage = usage or default_usage()
    package = _load_package(package_id, organization_id)
    return _summarize(package, usage)


def preview_payment(*, package_id, organization_id, amount) -> int:
    """How many additional sessions a payment of ``amount`` would unlock."""
    package = _load_package(package_id, organization_id)
    return sessions_unlocked_by_payment(
        _paid_total(package),
        _positive_amount(amount),
        package.total_value,
        package.total_sessions,
    )


# ---------------------------------------------------------------------------
# record_payment
# ---------------------------------------------------------------------------

@transaction.atomic
def record_payment(
    *,
    package_id,
    organization_id,
    actor,
    amount,
    method=Payment.Method.CARD,
    payment_date=None,
    notes="",
    sales_attributed_to=None,
    sales_attributed_to_2=None,
    usage=None,
) -> PaymentOutcome:
    """Record a payment against a package.

    Parameters
    ----------
    package_id : UUID or str
        The package being paid.
    organization_id : UUID or str
        Organization of the caller; must own the package.
    actor : User
        The ADMIN / PT_MANAGER / CLUB_MANAGER recording the payment.
    amount : Decimal
        Strictly positive and at most the remaining balance (+0.01).
    sales_attributed_to, sales_attributed_to_2 : User or id, optional
        Up to two distinct members credited with the sale.

    Returns
    -------
    PaymentOutcome
        The new payment and the package summary after it.
    """
    usage = usage or default_usage()
    _ensure_finance_role(actor, organization_id)
    amount = _positive_amount(amount)
    method = normalize_payment_method(method)

    package = _load_package(package_id, organization_id, lock=True)

    first = _resolve_attribution(sales_attributed_to, organization_id)
    second = _resolve_attribution(sales_attributed_to_2, organization_id)
    _check_distinct(first, second)

    paid = _paid_total(package)
    remaining = to_decimal(package.total_value) - paid
    if exceeds(paid + amount, package.total_value):
        raise BalanceExceeded(
            f"Le montant ({amount}) depasse le solde restant du forfait ({max(ZERO, remaining)})."
        )

    fields = {}
    if payment_date is not None:
        fields["payment_date"] = payment_date
    payment = Payment.objects.create(
        package=package,
        amount=amount,
        method=method,
        notes=notes or "",
        sales_attributed_to=first,
        sales_attributed_to_2=second,
        created_by=actor,
        **fields,
    )
    logger.info(
        "Payment recorded package=%s payment=%s amount=%s method=%s",
        package.pk,
        payment.pk,
        amount,
        method,
    )
    return PaymentOutcome(payment, _summarize(package, usage))


# ---------------------------------------------------------------------------
# update_payment
# ---------------------------------------------------------------------------

@transaction.atomic
def update_payment(
    *,
    payment_id,
    organization_id,
    actor,
    amount=UNSET,
    payment_date=UNSET,
    method=UNSET,
    notes=UNSET,
    sales_attributed_to=UNSET,
    sales_attributed_to_2=UNSET,
    usage=None,
) -> PaymentOutcome:
    """Partially update a payment; only supplied fields change.

    A new amount is checked against the other payments of the package
    (``BalanceExceeded``) and against the sessions already used
    (``WouldLockUsedSessions``). Attributions may be cleared with ``None``.
    """
    usage = usage or default_usage()
    _ensure_finance_role(actor, organization_id)
    package, payment = _load_payment_locked(payment_id, organization_id)
    update_fields = []

    if amount is not UNSET:
        amount = _positive_amount(amount)
        other_total = _paid_total(package, exclude=payment)
        if exceeds(other_total + amount, package.total_value):
            raise BalanceExceeded(
                f"Le total des paiements ({other_total + amount}) depasserait "
                f"la valeur du forfait ({package.total_value})."
            )
        _guard_used_sessions(package, other_total + amount, usage)
        payment.amount = amount
        update_fields.append("amount")

    if method is not UNSET:
        payment.method = normalize_payment_method(method)
        update_fields.append("method")

    if payment_date is not UNSET:
        if payment_date is None:
            raise ValidationError("La date du paiement est obligatoire.")
        payment.payment_date = payment_date
        update_fields.append("payment_date")

    if notes is not UNSET:
        payment.notes = notes or ""
        update_fields.append("notes")

    first = payment.sales_attributed_to
    second = payment.sales_attributed_to_2
    if sales_attributed_to is not UNSET:
        first = _resolve_attribution(sales_attributed_to, organization_id)
        update_fields.append("sales_attributed_to")
    if sales_attributed_to_2 is not UNSET:
        second = _resolve_attribution(sales_attributed_to_2, organization_id)
        update_fields.append("sales_attributed_to_2")
    _check_distinct(first, second)
    payment.sales_attributed_to = first
    payment.sales_attributed_to_2 = second

    if update_fields:
        payment.save(update_fields=update_fields + ["updated_at"])
        logger.info(
            "Payment updated package=%s payment=%s fields=%s",
            package.pk,
            payment.pk,
            ",".join(update_fields),
        )
    return PaymentOutcome(payment, _summarize(package, usage))


# ---------------------------------------------------------------------------
# delete_payment
# ---------------------------------------------------------------------------

@transaction.atomic
def delete_payment(*, payment_id, organization_id, actor, usage=None) -> PaymentSummary:
    """Delete a payment unless that would lock sessions the client already used."""
    usage = usage or default_usage()
    _ensure_finance_role(actor, organization_id)
    package, payment = _load_payment_locked(payment_id, organization_id)

    _guard_used_sessions(package, _paid_total(package, exclude=payment), usage)

    amount = payment.amount
    deleted_pk = payment.pk
    payment.delete()
    logger.info(
        "Payment deleted package=%s payment=%s amount=%s",
        package.pk,
        deleted_pk,
        amount,
    )
    return _summarize(package, usage)
