# apps/core/validators.py
"""
Flight Authorization Validation

Two schemas over the same fields: a strict one that a submission must
pass, and a loose one for saving drafts where every field is optional.
"""

from typing import Any, Dict, List

from rest_framework import serializers

from apps.core.models.flight_authorization import PurposeOfFlight, PaymentMethod

MAX_PASSENGERS = 3

AUTHORIZATION_FORM_FIELDS = (
    'purpose_of_flight',
    'passenger_names',
    'runway_in_use',
    'fuel_level_liters',
    'oil_level_quarts',
    'notams_reviewed',
    'weather_briefing_complete',
    'payment_method',
    'authorizing_instructor_id',
    'student_signature_data',
    'instructor_notes',
    'instructor_limitations',
)


def _required(message: str, **extra) -> Dict[str, str]:
    messages = {'required': message, 'null': message}
    messages.update(extra)
    return messages


class FlightAuthorizationSubmitSchema(serializers.Serializer):
    """Everything a flight authorization needs before it goes to an instructor."""

    purpose_of_flight = serializers.ChoiceField(
        choices=PurposeOfFlight.choices,
        error_messages=_required(
            'Purpose of flight is required',
            invalid_choice='Please select a valid purpose of flight',
        )
    )
    passenger_names = serializers.ListField(
        child=serializers.CharField(
            error_messages={'blank': 'Passenger name cannot be empty'}
        ),
        max_length=MAX_PASSENGERS,
        required=False,
        default=list,
        error_messages={'max_length': 'Maximum 3 passengers allowed'}
    )
    runway_in_use = serializers.CharField(
        max_length=10,
        error_messages=_required(
            'Runway information is required',
            blank='Runway information cannot be empty',
            max_length='Runway information too long',
        )
    )
    fuel_level_liters = serializers.DecimalField(
        max_digits=7,
        decimal_places=2,
        min_value=0,
        error_messages=_required(
            'Fuel level is required',
            invalid='Fuel level must be a number',
            min_value='Fuel level cannot be negative',
        )
    )
    oil_level_quarts = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        error_messages=_required(
            'Oil level is required',
            invalid='Oil level must be a number',
            min_value='Oil level cannot be negative',
        )
    )
    notams_reviewed = serializers.BooleanField(
        error_messages=_required('NOTAMs review confirmation is required')
    )
    weather_briefing_complete = serializers.BooleanField(
        error_messages=_required('Weather briefing confirmation is required')
    )
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices,
        error_messages=_required(
            'Payment method is required',
            invalid_choice='Please select a valid payment method',
        )
    )
    authorizing_instructor_id = serializers.UUIDField(
        error_messages=_required(
            'Authorizing instructor must be selected',
            invalid='Authorizing instructor must be selected',
        )
    )
    student_signature_data = serializers.CharField(
        error_messages=_required(
            'Student signature is required',
            blank='Student signature is required',
        )
    )
    instructor_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    instructor_limitations = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def validate_notams_reviewed(self, value):
        if value is not True:
            raise serializers.ValidationError('NOTAMs must be reviewed before flight authorization')
        return value

    def validate_weather_briefing_complete(self, value):
        if value is not True:
            raise serializers.ValidationError(
                'Weather briefing must be completed before flight authorization'
            )
        return value


class FlightAuthorizationDraftSchema(serializers.Serializer):
    """Loose checks for drafts: any field may be missing, present ones must have the right type."""

    purpose_of_flight = serializers.ChoiceField(
        choices=PurposeOfFlight.choices, required=False, allow_null=True
    )
    passenger_names = serializers.ListField(
        child=serializers.CharField(allow_blank=True), required=False
    )
    runway_in_use = serializers.CharField(
        max_length=10, required=False, allow_blank=True, allow_null=True,
        error_messages={'max_length': 'Runway information too long'}
    )
    fuel_level_liters = serializers.DecimalField(
        max_digits=7, decimal_places=2, min_value=0, required=False, allow_null=True,
        error_messages={'min_value': 'Fuel level cannot be negative'}
    )
    oil_level_quarts = serializers.DecimalField(
        max_digits=5, decimal_places=2, min_value=0, required=False, allow_null=True,
        error_messages={'min_value': 'Oil level cannot be negative'}
    )
    notams_reviewed = serializers.BooleanField(required=False)
    weather_briefing_complete = serializers.BooleanField(required=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, required=False, allow_null=True
    )
    authorizing_instructor_id = serializers.UUIDField(required=False, allow_null=True)
    student_signature_data = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    instructor_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    instructor_limitations = serializers.CharField(required=False, allow_blank=True, allow_null=True)


def flatten_errors(errors: Any, prefix: str = '') -> List[Dict[str, str]]:
    """
    Turn DRF's nested error structure into a flat list.

    {'runway_in_use': ['Runway information is required']} becomes
    [{'field': 'runway_in_use', 'message': 'Runway information is required'}].
    Errors on list members are reported against the list field.
    """
    flat = []
    if isinstance(errors, dict):
        for field, value in errors.items():
            if isinstance(field, int):
                name = prefix
            else:
                name = f"{prefix}.{field}" if prefix else str(field)
            flat.extend(flatten_errors(value, name))
    elif isinstance(errors, (list, tuple)):
        for value in errors:
            flat.extend(flatten_errors(value, prefix))
    else:
        flat.append({'field': prefix or 'non_field_errors', 'message': str(errors)})
    return flat


def validate_for_submission(data: Dict[str, Any]):
    """Return (validated_data, errors). errors is empty when the data passes."""
    schema = FlightAuthorizationSubmitSchema(data=data)
    if schema.is_valid():
        return schema.validated_data, []
    return None, flatten_errors(schema.errors)


def validate_draft(data: Dict[str, Any], partial: bool = True):
    """Return (validated_data, errors) under the draft rules."""
    unknown = set(data) - set(AUTHORIZATION_FORM_FIELDS)
    schema = FlightAuthorizationDraftSchema(
        data={k: v for k, v in data.items() if k not in unknown},
        partial=partial
    )
    if schema.is_valid():
        return schema.validated_data, []
    return None, flatten_errors(schema.errors)
