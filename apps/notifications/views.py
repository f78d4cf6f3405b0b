"""API views for notifications."""

from __future__ import annotations

from django.db.models import Count  # type: ignore
from django.utils import timezone  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .models import Notification
from .serializers import NotificationSerializer

TRUTHY = {'1', 'true', 'yes'}


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """List, read and dismiss the authenticated user's notifications."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]
    lookup_value_regex = r'\d+'

    def get_queryset(self):  # type: ignore
        qs = Notification.objects.live().filter(user=self.request.user)
        if self.action != 'list':
            return qs

        params = self.request.query_params
        if params.get('unread_only', '').lower() in TRUTHY:
            qs = qs.filter(is_read=False)
        if params.get('category'):
            qs = qs.filter(category=params['category'])
        if params.get('priority'):
            qs = qs.filter(priority=params['priority'])
        return qs

    def list(self, request, *args, **kwargs):  # type: ignore
        response = super().list(request, *args, **kwargs)
        unread = Notification.objects.live().filter(user=request.user, is_read=False)
        by_category = {
            row['category']: row['count']
            for row in unread.order_by().values('category').annotate(count=Count('id'))
        }
        response.data['counts'] = {'unread': unread.count(), 'by_category': by_category}
        return response

    @action(detail=True, methods=['post'])
    def mark_read(self, request, pk=None):  # type: ignore
        notification = self.get_object()
        notification.mark_read()
        return Response(NotificationSerializer(notification).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=['post'])
    def mark_all_read(self, request):  # type: ignore
        updated = Notification.objects.filter(user=request.user, is_read=False).update(
            is_read=True,
            read_at=timezone.now(),
        )
        return Response({'updated': updated}, status=status.HTTP_200_OK)
