# apps/api/serializers/observation_serializers.py
"""
Observation Serializers
"""

from rest_framework import serializers

from apps.core.models import Observation


class ObservationSerializer(serializers.ModelSerializer):
    stage_display = serializers.CharField(source='get_stage_display', read_only=True)
    priority_display = serializers.CharField(source='get_priority_display', read_only=True)

    class Meta:
        model = Observation
        fields = [
            'id', 'aircraft_id', 'name', 'description',
            'stage', 'stage_display', 'priority', 'priority_display',
            'reported_by', 'assigned_to', 'reported_date',
            'resolved_at', 'closed_by', 'resolution_comments', 'notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'reported_by', 'resolved_at', 'closed_by', 'resolution_comments',
            'created_at', 'updated_at',
        ]


class ObservationCloseSerializer(serializers.Serializer):
    resolution_comments = serializers.CharField(required=False, allow_blank=True, default='')
