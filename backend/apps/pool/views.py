import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.decorators import api_view
from rest_framework.response import Response

from backend.apps.pool.exceptions import (
    AssetNotFound,
    LedgerError,
    PoolNotFound,
    StakeNotFound,
)
from backend.apps.pool.serializers import (
    ClaimRequestSerializer,
    LaunchPoolSerializer,
    StakeRequestSerializer,
    UnstakeRequestSerializer,
    UserStakeSerializer,
)
from backend.apps.pool.services.ledger import LedgerEngine

logger = logging.getLogger(__name__)

NOT_FOUND_ERRORS = (PoolNotFound, StakeNotFound, AssetNotFound)


def get_ledger_engine() -> LedgerEngine:
    return LedgerEngine()


def respond_with_success(data, message="success"):
    return Response({"success": True, "message": message, "data": data}, status=status.HTTP_200_OK)


def respond_with_error(status_code, error, code=None):
    body = {"success": False, "error": error}
    if code:
        body["code"] = code
    return Response(body, status=status_code)


def _validation_message(errors) -> str:
    field, messages = next(iter(errors.items()))
    return f"{field}: {messages[0]}"


def _ledger_error_response(exc: LedgerError):
    status_code = (
        status.HTTP_404_NOT_FOUND
        if isinstance(exc, NOT_FOUND_ERRORS)
        else status.HTTP_400_BAD_REQUEST
    )
    return respond_with_error(status_code, str(exc), exc.code)


def _run(tag, operation):
    """Run a ledger call and turn its failures into the error envelope."""
    try:
        return operation(), None
    except LedgerError as e:
        return None, _ledger_error_response(e)
    except DatabaseError as e:
        logger.error(f"[{tag}] Storage failure: {e}", exc_info=True)
        return None, respond_with_error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "storage error", "storage_error"
        )


@api_view(["POST"])
def stake(request):
    serializer = StakeRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return respond_with_error(status.HTTP_400_BAD_REQUEST, _validation_message(serializer.errors))
    req = serializer.validated_data

    record, error = _run(
        "Stake",
        lambda: get_ledger_engine().stake(req["user_id"], req["pool_id"], req["asset_id"], req["amount"]),
    )
    if error:
        return error
    return respond_with_success({"message": "stake successful", "tx_id": record.tx_id})


@api_view(["POST"])
def unstake(request):
    serializer = UnstakeRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return respond_with_error(status.HTTP_400_BAD_REQUEST, _validation_message(serializer.errors))
    req = serializer.validated_data

    record, error = _run(
        "Unstake",
        lambda: get_ledger_engine().unstake(req["user_id"], req["pool_id"], req["amount"]),
    )
    if error:
        return error
    return respond_with_success({"message": "unstake successful", "tx_id": record.tx_id})


@api_view(["POST"])
def claim_reward(request):
    serializer = ClaimRequestSerializer(data=request.data)
    if not serializer.is_valid():
        return respond_with_error(status.HTTP_400_BAD_REQUEST, _validation_message(serializer.errors))
    req = serializer.validated_data

    record, error = _run(
        "Claim",
        lambda: get_ledger_engine().claim_reward(req["user_id"], req["pool_id"]),
    )
    if error:
        return error
    return respond_with_success(
        {"message": "reward claimed successfully", "tx_id": record.tx_id, "amount": str(record.amount)}
    )


@api_view(["GET"])
def user_stakes(request):
    try:
        user_id = int(request.query_params.get("user_id"))
    except (TypeError, ValueError):
        return respond_with_error(status.HTTP_400_BAD_REQUEST, "user_id is required")

    engine = get_ledger_engine()
    stakes, error = _run("Stakes", lambda: engine.get_user_stakes(user_id))
    if error:
        return error
    context = {"now": engine.now()}
    return respond_with_success({"stakes": UserStakeSerializer(stakes, many=True, context=context).data})


@api_view(["GET"])
def pool_info(request):
    try:
        pool_id = int(request.query_params.get("pool_id"))
    except (TypeError, ValueError):
        return respond_with_error(status.HTTP_400_BAD_REQUEST, "pool_id is required")

    engine = get_ledger_engine()
    pool, error = _run("PoolInfo", lambda: engine.get_pool_info(pool_id))
    if error:
        return error
    context = {"now": engine.now()}
    return respond_with_success({"pool": LaunchPoolSerializer(pool, context=context).data})
