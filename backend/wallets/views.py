from django.conf import settings

from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Wallet, WalletTransaction
from .serializers import WalletSerializer, WalletTransactionSerializer


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def wallet_balance(request):
    wallet, _ = Wallet.objects.get_or_create(user=request.user)
    data = WalletSerializer(wallet).data
    data["currency"] = settings.CURRENCY
    return Response(data)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def wallet_transactions(request):
    txs = WalletTransaction.objects.filter(user=request.user).order_by("-created_at", "-id")[:100]
    return Response(WalletTransactionSerializer(txs, many=True).data)
