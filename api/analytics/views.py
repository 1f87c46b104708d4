from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from accounts.permissions import HasOrganization
from . import services


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def analytics_summary(request):
    return Response(services.summary(request.org))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def analytics_funders(request):
    return Response(services.funder_success(request.org))


@api_view(['GET'])
@permission_classes([IsAuthenticated, HasOrganization])
def dashboard(request):
    return Response(services.dashboard(request.org))
