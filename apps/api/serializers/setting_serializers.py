# apps/api/serializers/setting_serializers.py
"""
Setting Serializers
"""

from rest_framework import serializers

from apps.core.models import Setting, SettingCategory, SettingDataType


class SettingSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)

    class Meta:
        model = Setting
        fields = [
            'id', 'category', 'category_display', 'setting_key', 'setting_value',
            'data_type', 'description', 'is_public', 'is_required',
            'created_by', 'updated_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SettingWriteSerializer(serializers.Serializer):
    category = serializers.ChoiceField(choices=SettingCategory.choices)
    setting_key = serializers.RegexField(
        r'^[a-z][a-z0-9_]*$',
        max_length=100,
        error_messages={'invalid': 'Setting key must be lowercase letters, digits and underscores'}
    )
    setting_value = serializers.JSONField(allow_null=True)
    data_type = serializers.ChoiceField(choices=SettingDataType.choices, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    is_public = serializers.BooleanField(required=False)
