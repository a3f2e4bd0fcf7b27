# apps/api/views/setting_views.py
"""
Setting API Views

Organization settings, addressed by id or by category and key.
"""

import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.models import Setting, SettingCategory
from apps.core.services import SettingsService, NotFoundError
from apps.api.serializers import SettingSerializer, SettingWriteSerializer
from shared.common.permissions import IsAdminOrReadOnly
from .base import ServiceExceptionMixin
from .filters import SettingFilter

logger = logging.getLogger(__name__)

UUID_REGEX = r'[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}'


class SettingViewSet(ServiceExceptionMixin, viewsets.ReadOnlyModelViewSet):
    """
    Settings.

    Admins read and write everything; other users only read public
    settings.
    """

    queryset = Setting.objects.all()
    serializer_class = SettingSerializer
    permission_classes = [IsAdminOrReadOnly]
    filterset_class = SettingFilter
    ordering = ['category', 'setting_key']
    lookup_value_regex = UUID_REGEX

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.settings_service = SettingsService()

    def get_queryset(self):
        queryset = super().get_queryset()
        if not getattr(self.request.user, 'is_admin', False):
            queryset = queryset.filter(is_public=True)
        return queryset

    def create(self, request, *args, **kwargs):
        """Create or update a setting by category and key."""
        serializer = SettingWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        setting = self.settings_service.set_setting(
            data['category'],
            data['setting_key'],
            data['setting_value'],
            user_id=request.user.id,
            data_type=data.get('data_type'),
            description=data.get('description'),
            is_public=data.get('is_public'),
        )
        return Response(SettingSerializer(setting).data, status=status.HTTP_201_CREATED)

    def _check_category(self, category: str) -> None:
        if category not in SettingCategory.values:
            raise NotFoundError(f"Unknown setting category: {category}")

    @action(detail=False, methods=['get'], url_path=r'(?P<category>[a-z_]+)')
    def by_category(self, request, category=None):
        self._check_category(category)
        values = self.settings_service.get_category_values(
            category,
            include_private=getattr(request.user, 'is_admin', False)
        )
        return Response({'category': category, 'settings': values})

    @action(
        detail=False,
        methods=['get', 'put', 'delete'],
        url_path=r'(?P<category>[a-z_]+)/(?P<key>[a-z][a-z0-9_]*)'
    )
    def by_key(self, request, category=None, key=None):
        self._check_category(category)

        if request.method == 'GET':
            setting = self.settings_service.get_setting(category, key)
            if not setting.is_public and not getattr(request.user, 'is_admin', False):
                raise NotFoundError(f"Setting {category}.{key} not found")
            return Response(SettingSerializer(setting).data)

        if request.method == 'DELETE':
            self.settings_service.delete_setting(category, key)
            return Response(status=status.HTTP_204_NO_CONTENT)

        serializer = SettingWriteSerializer(data={
            'category': category,
            'setting_key': key,
            **request.data,
        })
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        setting = self.settings_service.set_setting(
            category,
            key,
            data['setting_value'],
            user_id=request.user.id,
            data_type=data.get('data_type'),
            description=data.get('description'),
            is_public=data.get('is_public'),
        )
        return Response(SettingSerializer(setting).data)
