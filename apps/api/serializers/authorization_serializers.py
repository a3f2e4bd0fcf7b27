# apps/api/serializers/authorization_serializers.py
"""
Flight Authorization Serializers
"""

from rest_framework import serializers

from apps.core.models import FlightAuthorization
from apps.core.models.flight_authorization import INSTRUCTOR_ONLY_FIELDS


class FlightAuthorizationSerializer(serializers.ModelSerializer):
    """
    Flight authorization.

    Instructor notes, limitations and the signature image are removed for
    students and members.
    """

    status_display = serializers.CharField(source='get_status_display', read_only=True)
    booking_id = serializers.UUIDField(read_only=True)
    flight_type_id = serializers.UUIDField(read_only=True, allow_null=True)
    is_editable = serializers.BooleanField(read_only=True)

    class Meta:
        model = FlightAuthorization
        fields = [
            'id', 'booking_id', 'student_id', 'aircraft_id', 'flight_type_id', 'flight_date',
            'status', 'status_display', 'is_editable',
            'purpose_of_flight', 'passenger_names', 'runway_in_use',
            'fuel_level_liters', 'oil_level_quarts',
            'notams_reviewed', 'weather_briefing_complete', 'payment_method',
            'authorizing_instructor_id', 'approving_instructor_id',
            'student_signature_data', 'student_signed_at',
            'instructor_notes', 'instructor_limitations',
            'submitted_at', 'approved_at', 'rejected_at', 'rejection_reason',
            'cancelled_at', 'last_autosaved_at',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get('request')
        user = getattr(request, 'user', None)
        if user is None or not getattr(user, 'is_staff_member', False):
            for field in INSTRUCTOR_ONLY_FIELDS:
                data.pop(field, None)
        return data


class FlightAuthorizationListSerializer(FlightAuthorizationSerializer):

    class Meta(FlightAuthorizationSerializer.Meta):
        fields = [
            'id', 'booking_id', 'student_id', 'aircraft_id', 'flight_date',
            'status', 'status_display', 'purpose_of_flight',
            'submitted_at', 'approved_at', 'rejected_at',
            'created_at',
        ]
        read_only_fields = fields


class FlightAuthorizationCreateSerializer(serializers.Serializer):
    """Booking to authorize; any form fields present are saved as the first draft."""

    booking_id = serializers.UUIDField(error_messages={'invalid': 'Invalid booking ID'})


class FlightAuthorizationApproveSerializer(serializers.Serializer):
    approval_notes = serializers.CharField(required=False, allow_blank=True)
    instructor_limitations = serializers.CharField(required=False, allow_blank=True)


class FlightAuthorizationRejectSerializer(serializers.Serializer):
    rejection_reason = serializers.CharField(required=False, allow_blank=True, default='')
