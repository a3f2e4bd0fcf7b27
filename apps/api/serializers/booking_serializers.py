# apps/api/serializers/booking_serializers.py
"""
Booking Serializers
"""

from rest_framework import serializers

from apps.core.models import Booking, FlightType


class FlightTypeSerializer(serializers.ModelSerializer):
    instruction_type_display = serializers.CharField(
        source='get_instruction_type_display',
        read_only=True
    )

    class Meta:
        model = FlightType
        fields = [
            'id', 'name', 'code', 'description',
            'instruction_type', 'instruction_type_display', 'is_active',
            'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class BookingSerializer(serializers.ModelSerializer):
    """Base booking serializer."""

    status_display = serializers.CharField(source='get_status_display', read_only=True)
    booking_type_display = serializers.CharField(source='get_booking_type_display', read_only=True)
    flight_type_detail = FlightTypeSerializer(source='flight_type', read_only=True)

    class Meta:
        model = Booking
        fields = [
            'id', 'aircraft_id', 'user_id', 'instructor_id',
            'flight_type', 'flight_type_detail',
            'start_time', 'end_time',
            'status', 'status_display',
            'booking_type', 'booking_type_display',
            'purpose', 'remarks',
            'briefing_completed',
            'checked_out_aircraft_id', 'checked_out_instructor_id', 'checked_out_at',
            'hobbs_start', 'tach_start', 'fuel_on_board', 'eta', 'route', 'passengers',
            'authorization_override', 'authorization_override_by',
            'authorization_override_at', 'authorization_override_reason',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'status',
            'checked_out_aircraft_id', 'checked_out_instructor_id', 'checked_out_at',
            'authorization_override', 'authorization_override_by',
            'authorization_override_at', 'authorization_override_reason',
            'created_at', 'updated_at',
        ]

    def validate(self, attrs):
        start = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end = attrs.get('end_time', getattr(self.instance, 'end_time', None))
        if start and end and end <= start:
            raise serializers.ValidationError({'end_time': 'End time must be after start time'})
        return attrs


class BookingOverrideSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class BookingCheckOutSerializer(serializers.Serializer):
    checked_out_aircraft_id = serializers.UUIDField(required=False)
    checked_out_instructor_id = serializers.UUIDField(required=False, allow_null=True)
    hobbs_start = serializers.DecimalField(max_digits=8, decimal_places=1, required=False, allow_null=True)
    tach_start = serializers.DecimalField(max_digits=8, decimal_places=1, required=False, allow_null=True)
    fuel_on_board = serializers.DecimalField(max_digits=6, decimal_places=1, required=False, allow_null=True)
    eta = serializers.DateTimeField(required=False, allow_null=True)
    route = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    passengers = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    briefing_completed = serializers.BooleanField(required=False)


class AuthorizationStatusSerializer(serializers.Serializer):
    booking_id = serializers.UUIDField()
    requires_authorization = serializers.BooleanField()
    authorization_id = serializers.UUIDField(allow_null=True)
    authorization_status = serializers.CharField(allow_null=True)
    authorization_override = serializers.BooleanField()
    authorization_override_by = serializers.UUIDField(allow_null=True)
    authorization_override_at = serializers.DateTimeField(allow_null=True)
    authorization_override_reason = serializers.CharField(allow_null=True)
    can_check_out = serializers.BooleanField()
