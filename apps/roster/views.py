import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema

from apps.integrations.exceptions import DirectoryFetchFailed

from .serializers import RosterSyncSerializer, ReconciliationReportSerializer
from .services import RosterApplyFailed, reconcile

logger = logging.getLogger(__name__)


@extend_schema(
    request=RosterSyncSerializer,
    responses={200: ReconciliationReportSerializer},
    description="Reconcile accounts with the Slack member directory.",
    tags=['roster'],
)
@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sync_roster(request):
    """Run roster reconciliation and return its report."""
    serializer = RosterSyncSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        report = reconcile(dry_run=serializer.validated_data['dry_run'])
    except DirectoryFetchFailed as e:
        logger.error('Roster sync aborted: %s', e)
        return Response({'error': str(e)}, status=status.HTTP_502_BAD_GATEWAY)
    except RosterApplyFailed as e:
        return Response(
            {'error': str(e), 'report': e.report.as_dict()},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )

    return Response(report.as_dict())
