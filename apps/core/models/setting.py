# apps/core/models/setting.py
"""
Setting Model

Organization-wide configuration stored as typed JSON values.
"""

from django.db import models

from shared.common.mixins import BaseModel


class SettingCategory(models.TextChoices):
    """Setting category choices."""
    GENERAL = 'general', 'General'
    SYSTEM = 'system', 'System'
    INVOICING = 'invoicing', 'Invoicing'
    NOTIFICATIONS = 'notifications', 'Notifications'
    BOOKINGS = 'bookings', 'Bookings'
    TRAINING = 'training', 'Training'
    MAINTENANCE = 'maintenance', 'Maintenance'
    SECURITY = 'security', 'Security'
    MEMBERSHIPS = 'memberships', 'Memberships'


class SettingDataType(models.TextChoices):
    """Declared type of a setting value."""
    STRING = 'string', 'String'
    NUMBER = 'number', 'Number'
    BOOLEAN = 'boolean', 'Boolean'
    OBJECT = 'object', 'Object'
    ARRAY = 'array', 'Array'


class Setting(BaseModel):
    """
    A single configuration value, addressed by (category, setting_key).

    Values are stored as JSON so numbers, booleans and lists keep their
    type. Non-public settings are only visible to administrators.
    """

    category = models.CharField(
        max_length=30,
        choices=SettingCategory.choices,
        db_index=True
    )
    setting_key = models.CharField(max_length=100)
    setting_value = models.JSONField(null=True, blank=True)
    data_type = models.CharField(
        max_length=20,
        choices=SettingDataType.choices,
        default=SettingDataType.STRING
    )
    description = models.TextField(blank=True, null=True)
    is_public = models.BooleanField(default=False)
    is_required = models.BooleanField(default=False)

    created_by = models.UUIDField(blank=True, null=True)
    updated_by = models.UUIDField(blank=True, null=True)

    class Meta:
        db_table = 'settings'
        ordering = ['category', 'setting_key']
        constraints = [
            models.UniqueConstraint(
                fields=['category', 'setting_key'],
                name='unique_setting_per_category'
            ),
        ]

    def __str__(self):
        return f"{self.category}.{self.setting_key}"

    def value_matches_type(self) -> bool:
        """Check that setting_value agrees with the declared data_type."""
        value = self.setting_value
        if value is None:
            return not self.is_required
        checks = {
            SettingDataType.STRING: lambda v: isinstance(v, str),
            SettingDataType.NUMBER: lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
            SettingDataType.BOOLEAN: lambda v: isinstance(v, bool),
            SettingDataType.OBJECT: lambda v: isinstance(v, dict),
            SettingDataType.ARRAY: lambda v: isinstance(v, list),
        }
        check = checks.get(self.data_type)
        return check(value) if check else True
