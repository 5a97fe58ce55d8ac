"""ViewSets and API views for the coaching finance API v1."""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from commissions.models import CommissionCalculation
from commissions.profiles import get_effective_commission_config, set_commission_config
from commissions.services import calculate_trainer_commission, get_trainer
from core.exceptions import DomainError, Forbidden, NotFound
from packages import services as payment_services
from packages.models import Package, Payment

from .exceptions import domain_error_response
from .pagination import FinancePagination
from .permissions import BelongsToOrganization, IsFinanceManager, IsFinanceManagerOrReadOnly
from .serializers import (
    CommissionCalculateSerializer,
    CommissionCalculationSerializer,
    CommissionConfigSerializer,
    PackageSerializer,
    PaymentSerializer,
    PaymentSummarySerializer,
    PaymentWriteSerializer,
)


def _summary_response(summary, http_status=status.HTTP_200_OK):
    return Response(PaymentSummarySerializer(summary.as_dict()).data, status=http_status)


def _check_client_scope(user, package_id):
    """Clients only see their own packages."""
    if user.role != user.Role.CLIENT:
        return
    try:
        owned = Package.objects.filter(pk=package_id, client=user).exists()
    except DjangoValidationError:
        raise NotFound("Forfait introuvable.")
    if not owned:
        raise Forbidden("Vous n'avez pas acces a ce forfait.")


# ---------------------------------------------------------------------------
# Packages
# ---------------------------------------------------------------------------

class PackageViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Packages of the caller's organization.

    - ``summary``: payment-to-entitlement state of the package.
    - ``payments``: list (GET) or record (POST) payments.
    - ``preview``: sessions a prospective payment would unlock.
    """

    serializer_class = PackageSerializer
    queryset = Package.objects.select_related('client', 'trainer')
    filterset_fields = ['client', 'trainer', 'active']
    search_fields = ['name', 'client__email', 'client__last_name']
    ordering_fields = ['created_at', 'total_value']
    pagination_class = FinancePagination

    def get_permissions(self):
        if self.action == 'payments':
            return [IsFinanceManagerOrReadOnly()]
        return [BelongsToOrganization()]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset().filter(organization_id=user.organization_id)
        if user.role == user.Role.CLIENT:
            qs = qs.filter(client=user)
        return qs

    @action(detail=True, methods=['get'])
    def summary(self, request, pk=None):
        try:
            _check_client_scope(request.user, pk)
            summary = payment_services.get_package_summary(
                package_id=pk,
                organization_id=request.user.organization_id,
            )
        except DomainError as e:
            return domain_error_response(e)
        return _summary_response(summary)

    @action(detail=True, methods=['get'])
    def preview(self, request, pk=None):
        try:
            _check_client_scope(request.user, pk)
            unlocked = payment_services.preview_payment(
                package_id=pk,
                organization_id=request.user.organization_id,
                amount=request.query_params.get('amount'),
            )
        except DomainError as e:
            return domain_error_response(e)
        return Response({'sessions_unlocked': unlocked})

    @action(detail=True, methods=['get', 'post'])
    def payments(self, request, pk=None):
        if request.method == 'GET':
            try:
                _check_client_scope(request.user, pk)
                payment_services.get_package(
                    package_id=pk,
                    organization_id=request.user.organization_id,
                )
            except DomainError as e:
                return domain_error_response(e)
            qs = Payment.objects.filter(package_id=pk).select_related('created_by')
            page = self.paginate_queryset(qs)
            if page is not None:
                return self.get_paginated_response(PaymentSerializer(page, many=True).data)
            return Response(PaymentSerializer(qs, many=True).data)

        serializer = PaymentWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            outcome = payment_services.record_payment(
                package_id=pk,
                organization_id=request.user.organization_id,
                actor=request.user,
                amount=data['amount'],
                method=data.get('method') or Payment.Method.CARD,
                payment_date=data.get('payment_date'),
                notes=data.get('notes', ''),
                sales_attributed_to=data.get('sales_attributed_to'),
                sales_attributed_to_2=data.get('sales_attributed_to_2'),
            )
        except DomainError as e:
            return domain_error_response(e)

        return Response(
            {
                'payment': PaymentSerializer(outcome.payment).data,
                'summary': PaymentSummarySerializer(outcome.summary.as_dict()).data,
            },
            status=status.HTTP_201_CREATED,
        )


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------

class PaymentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Payments of the caller's organization.

    Updates are always partial. Update and delete delegate to
    ``packages.services`` which re-checks balance and used sessions under a
    lock on the package.
    """

    serializer_class = PaymentSerializer
    queryset = Payment.objects.select_related('package', 'created_by')
    filterset_fields = ['package', 'method', 'sales_attributed_to']
    ordering_fields = ['payment_date', 'amount', 'created_at']
    pagination_class = FinancePagination
    http_method_names = ['get', 'patch', 'put', 'delete', 'head', 'options']

    def get_permissions(self):
        if self.action in ('list', 'retrieve'):
            return [IsFinanceManagerOrReadOnly()]
        return [IsFinanceManager()]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset().filter(package__organization_id=user.organization_id)
        if user.role == user.Role.CLIENT:
            qs = qs.filter(package__client=user)
        return qs

    def update(self, request, *args, **kwargs):
        serializer = PaymentWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        try:
            outcome = payment_services.update_payment(
                payment_id=kwargs['pk'],
                organization_id=request.user.organization_id,
                actor=request.user,
                **serializer.validated_data,
            )
        except DomainError as e:
            return domain_error_response(e)
        return Response(
            {
                'payment': PaymentSerializer(outcome.payment).data,
                'summary': PaymentSummarySerializer(outcome.summary.as_dict()).data,
            }
        )

    def destroy(self, request, *args, **kwargs):
        try:
            summary = payment_services.delete_payment(
                payment_id=kwargs['pk'],
                organization_id=request.user.organization_id,
                actor=request.user,
            )
        except DomainError as e:
            return domain_error_response(e)
        return _summary_response(summary)


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

class CommissionConfigView(APIView):
    """GET the effective commission configuration; PUT replaces it."""

    def get_permissions(self):
        if self.request.method == 'GET':
            return [BelongsToOrganization()]
        return [IsFinanceManager()]

    def get(self, request):
        try:
            data = get_effective_commission_config(request.user.organization_id)
        except DomainError as e:
            return domain_error_response(e)
        return Response(data)

    def put(self, request):
        serializer = CommissionConfigSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            set_commission_config(
                organization_id=request.user.organization_id,
                actor=request.user,
                method=data['method'],
                tiers=[dict(t) for t in data.get('tiers') or []],
                flat_fee=data.get('flat_fee'),
                flat_percentage=data.get('flat_percentage'),
            )
        except DomainError as e:
            return domain_error_response(e)
        return Response(get_effective_commission_config(request.user.organization_id))


class CommissionCalculateView(APIView):
    """Compute (and store) a trainer's commission for a period."""

    permission_classes = [IsFinanceManager]

    def post(self, request):
        serializer = CommissionCalculateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            trainer = get_trainer(data['trainer'], request.user.organization_id)
            calculation = calculate_trainer_commission(
                trainer=trainer,
                period_start=data['period_start'],
                period_end=data['period_end'],
            )
        except DomainError as e:
            return domain_error_response(e)
        return Response(CommissionCalculationSerializer(calculation).data, status=status.HTTP_201_CREATED)


class CommissionCalculationViewSet(viewsets.ReadOnlyModelViewSet):
    """Stored commission calculations. Trainers only see their own."""

    serializer_class = CommissionCalculationSerializer
    queryset = CommissionCalculation.objects.select_related('trainer', 'profile')
    filterset_fields = ['trainer', 'period_start', 'period_end', 'method']
    ordering_fields = ['period_end', 'commission_amount']
    pagination_class = FinancePagination
    permission_classes = [BelongsToOrganization]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset().filter(trainer__organization_id=user.organization_id)
        if not user.can_manage_finances:
            qs = qs.filter(trainer=user)
        return qs
