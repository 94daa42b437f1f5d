from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from common.permissions import is_super_admin

from .serializers import SessionUserSerializer


class CheckSuperAdminView(APIView):
    """
    GET /api/v1/identity/check-superadmin/
    Anonymous callers simply get false.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        return Response({"is_super_admin": is_super_admin(request.user)})


class SessionView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(SessionUserSerializer(request.user).data)
