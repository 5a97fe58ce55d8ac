"""Serializers for the coaching finance API v1."""
from rest_framework import serializers

from commissions.models import CommissionCalculation
from packages.models import Package, Payment


# ---------------------------------------------------------------------------
# Packages & payments
# ---------------------------------------------------------------------------

class PackageSerializer(serializers.ModelSerializer):
    """Read serializer for Package model."""

    client_name = serializers.SerializerMethodField()
    effective_session_value = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Package
        fields = [
            'id', 'name', 'client', 'client_name', 'trainer',
            'total_value', 'total_sessions', 'session_value',
            'effective_session_value', 'active', 'created_at',
        ]

    def get_client_name(self, obj) -> str:
        return obj.client.get_full_name() or obj.client.email


class PaymentSerializer(serializers.ModelSerializer):
    """Read serializer for Payment model."""

    method_display = serializers.CharField(source='get_method_display', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'id', 'package', 'amount', 'payment_date', 'method', 'method_display',
            'sales_attributed_to', 'sales_attributed_to_2', 'notes',
            'created_by', 'created_at', 'updated_at',
        ]


class PaymentWriteSerializer(serializers.Serializer):
    """Input for recording or (partially) updating a payment.

    The method is accepted as free text: aliases are normalized and
    unknown values rejected by the service layer.
    """

    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    method = serializers.CharField(required=False, max_length=30)
    payment_date = serializers.DateField(required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    sales_attributed_to = serializers.UUIDField(required=False, allow_null=True)
    sales_attributed_to_2 = serializers.UUIDField(required=False, allow_null=True)


class PaymentSummarySerializer(serializers.Serializer):
    package_id = serializers.CharField()
    total_value = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_sessions = serializers.IntegerField()
    total_paid = serializers.DecimalField(max_digits=14, decimal_places=2)
    remaining_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    unlocked_sessions = serializers.IntegerField()
    used_sessions = serializers.IntegerField()
    available_sessions = serializers.IntegerField()
    payment_count = serializers.IntegerField()
    is_fully_paid = serializers.BooleanField()
    payment_progress = serializers.DecimalField(max_digits=5, decimal_places=2)
    can_log_session = serializers.BooleanField()


# ---------------------------------------------------------------------------
# Commissions
# ---------------------------------------------------------------------------

class CommissionTierInputSerializer(serializers.Serializer):
    min = serializers.IntegerField(min_value=0)
    max = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    type = serializers.ChoiceField(choices=['percentage', 'flat'], default='percentage')
    percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    flat_fee = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)


class CommissionConfigSerializer(serializers.Serializer):
    method = serializers.ChoiceField(choices=['FLAT_FEE', 'PERCENTAGE', 'PROGRESSIVE', 'GRADUATED'])
    flat_fee = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    flat_percentage = serializers.DecimalField(max_digits=5, decimal_places=2, required=False, allow_null=True)
    tiers = CommissionTierInputSerializer(many=True, required=False)

    def validate(self, attrs):
        if attrs['method'] in ('PROGRESSIVE', 'GRADUATED') and not attrs.get('tiers'):
            raise serializers.ValidationError({'tiers': 'Au moins un palier est requis.'})
        return attrs


class CommissionCalculateSerializer(serializers.Serializer):
    trainer = serializers.UUIDField()
    period_start = serializers.DateField()
    period_end = serializers.DateField()

    def validate(self, attrs):
        if attrs['period_end'] < attrs['period_start']:
            raise serializers.ValidationError('La fin de periode precede son debut.')
        return attrs


class CommissionCalculationSerializer(serializers.ModelSerializer):
    trainer_name = serializers.SerializerMethodField()

    class Meta:
        model = CommissionCalculation
        fields = [
            'id', 'trainer', 'trainer_name', 'profile', 'period_start', 'period_end',
            'session_count', 'session_value', 'method', 'tier_reached',
            'commission_amount', 'calculation_snapshot', 'updated_at',
        ]

    def get_trainer_name(self, obj) -> str:
        return obj.trainer.get_full_name() or obj.trainer.email
