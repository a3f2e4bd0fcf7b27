# apps/core/services/settings_service.py
"""
Settings Service

Read and write runtime settings stored in the Setting model.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from django.conf import settings as django_settings
from django.core.cache import cache
from django.db import transaction

from apps.core.models import Setting, SettingCategory, SettingDataType
from . import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _infer_data_type(value: Any) -> str:
    if isinstance(value, bool):
        return SettingDataType.BOOLEAN
    if isinstance(value, (int, float)):
        return SettingDataType.NUMBER
    if isinstance(value, dict):
        return SettingDataType.OBJECT
    if isinstance(value, list):
        return SettingDataType.ARRAY
    return SettingDataType.STRING


class SettingsService:
    """
    Service for organization settings.

    Values are cached per (category, key). Other services take an instance
    of this class so tests can pass one in.
    """

    CACHE_PREFIX = 'setting'

    def __init__(self, cache_timeout: int = None):
        if cache_timeout is None:
            cache_timeout = django_settings.FLIGHTDESK.get('SETTINGS_CACHE_TIMEOUT', 300)
        self.cache_timeout = cache_timeout

    def _cache_key(self, category: str, key: str) -> str:
        return f"{self.CACHE_PREFIX}:{category}:{key}"

    def get_setting_value(self, category: str, key: str, default: Any = None) -> Any:
        """
        Get a setting value, or default when the setting does not exist.

        A stored null is returned as default too.
        """
        cache_key = self._cache_key(category, key)
        cached = cache.get(cache_key)

        if cached is None:
            setting = Setting.objects.filter(
                category=category,
                setting_key=key
            ).only('setting_value').first()
            cached = {
                'exists': setting is not None,
                'value': setting.setting_value if setting else None,
            }
            cache.set(cache_key, cached, self.cache_timeout)

        if not cached['exists'] or cached['value'] is None:
            return default
        return cached['value']

    def get_bool(self, category: str, key: str, default: bool = False) -> bool:
        value = self.get_setting_value(category, key, default)
        if isinstance(value, str):
            return value.strip().lower() in ('true', '1', 'yes', 'on')
        return bool(value)

    def get_setting(self, category: str, key: str) -> Setting:
        try:
            return Setting.objects.get(category=category, setting_key=key)
        except Setting.DoesNotExist:
            raise NotFoundError(f"Setting {category}.{key} not found")

    def get_category(self, category: str, include_private: bool = False) -> List[Setting]:
        queryset = Setting.objects.filter(category=category)
        if not include_private:
            queryset = queryset.filter(is_public=True)
        return list(queryset)

    def get_category_values(self, category: str, include_private: bool = False) -> Dict[str, Any]:
        return {
            setting.setting_key: setting.setting_value
            for setting in self.get_category(category, include_private)
        }

    @transaction.atomic
    def set_setting(
        self,
        category: str,
        key: str,
        value: Any,
        user_id: uuid.UUID = None,
        data_type: str = None,
        description: Optional[str] = None,
        is_public: Optional[bool] = None,
    ) -> Setting:
        """Create or update a setting and drop its cached value."""
        if category not in SettingCategory.values:
            raise ValidationError(
                f"Invalid category: {category}",
                errors=[{'field': 'category', 'message': 'Invalid setting category'}]
            )

        setting, created = Setting.objects.get_or_create(
            category=category,
            setting_key=key,
            defaults={
                'setting_value': value,
                'data_type': data_type or _infer_data_type(value),
                'created_by': user_id,
            }
        )

        setting.setting_value = value
        if data_type:
            setting.data_type = data_type
        if description is not None:
            setting.description = description
        if is_public is not None:
            setting.is_public = is_public
        setting.updated_by = user_id

        if not setting.value_matches_type():
            raise ValidationError(
                f"Value does not match data type {setting.data_type}",
                errors=[{'field': 'setting_value', 'message': f"Expected a {setting.data_type} value"}]
            )

        setting.save()
        self.invalidate(category, key)

        logger.info(
            f"Setting {'created' if created else 'updated'}: {category}.{key}",
            extra={'category': category, 'setting_key': key, 'user_id': str(user_id) if user_id else None}
        )

        return setting

    @transaction.atomic
    def delete_setting(self, category: str, key: str) -> None:
        setting = self.get_setting(category, key)
        if setting.is_required:
            raise ValidationError(
                f"Setting {category}.{key} is required and cannot be deleted",
                errors=[{'field': 'setting_key', 'message': 'Required settings cannot be deleted'}]
            )
        setting.delete()
        self.invalidate(category, key)

        logger.info(f"Setting deleted: {category}.{key}")

    def invalidate(self, category: str, key: str) -> None:
        cache.delete(self._cache_key(category, key))
