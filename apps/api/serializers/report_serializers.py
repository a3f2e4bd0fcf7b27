# apps/api/serializers/report_serializers.py
"""
Report Serializers
"""

from rest_framework import serializers

from apps.core.services.report_service import REPORT_COLUMNS


class ReportExportQuerySerializer(serializers.Serializer):
    report = serializers.ChoiceField(
        choices=list(REPORT_COLUMNS.keys()),
        error_messages={'invalid_choice': 'Unknown report type: {input}'}
    )
    start_date = serializers.DateField(required=False)
    end_date = serializers.DateField(required=False)

    def validate(self, attrs):
        start = attrs.get('start_date')
        end = attrs.get('end_date')
        if start and end and start > end:
            raise serializers.ValidationError({'start_date': 'Start date must be on or before end date'})
        return attrs
