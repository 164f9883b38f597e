# pos/views/health.py

from drf_spectacular.utils import extend_schema
from rest_framework.permissions import IsAuthenticated
from rest_framework.views import APIView

from permissions.roles import CAP_POS_OPERATE, effective_capabilities_for
from pos.views.helpers import ok


class POSHealthCheckView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = None

    @extend_schema(responses={200: dict}, description="POS module health check")
    def get(self, request):
        return ok(
            {
                "status": "ok",
                "module": "pos",
                "user": request.user.email,
                "role": request.user.role,
                "can_operate": CAP_POS_OPERATE in effective_capabilities_for(request.user),
            }
        )
