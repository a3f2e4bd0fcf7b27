# apps/api/views/report_views.py
"""
Report API Views

CSV export of operational data.
"""

import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework.views import APIView

from apps.core.services import ReportService
from apps.api.serializers import ReportExportQuerySerializer
from shared.common.permissions import IsInstructor
from .base import ServiceExceptionMixin

logger = logging.getLogger(__name__)


class ReportExportView(ServiceExceptionMixin, APIView):
    """
    Download a report as CSV.

    Query params: report (required), start_date, end_date.
    """

    permission_classes = [IsInstructor]

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.report_service = ReportService()

    def get(self, request):
        serializer = ReportExportQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        content = self.report_service.export_csv(
            params['report'],
            start_date=params.get('start_date'),
            end_date=params.get('end_date'),
        )
        filename = self.report_service.get_filename(params['report'], timezone.localdate())

        response = HttpResponse(content, content_type='text/csv')
        response['Content-Disposition'] = f'attachment; filename="{filename}"'
        return response
