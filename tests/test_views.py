from datetime import timedelta
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from backend.apps.pool import views
from backend.apps.pool.models import UserStake
from backend.apps.pool.services.ledger import LedgerEngine
from tests.conftest import holding

pytestmark = pytest.mark.django_db


@pytest.fixture
def api(clock, monkeypatch):
    monkeypatch.setattr(views, "get_ledger_engine", lambda: LedgerEngine(now=clock))
    return APIClient()


def post(api, path, payload):
    return api.post(f"/api/v1/pool/{path}", payload, format="json")


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_stake_endpoint(api, user, pool, funded, stake_asset):
    response = post(api, "stake", {"user_id": user.pk, "pool_id": pool.pk, "asset_id": stake_asset.pk, "amount": "250"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "success"
    assert body["data"]["message"] == "stake successful"
    assert body["data"]["tx_id"].startswith("tx_")
    assert UserStake.objects.get(user=user, pool=pool).amount == Decimal("250")


@pytest.mark.parametrize(
    "payload",
    [
        {"pool_id": 1, "asset_id": 1, "amount": "1"},
        {"user_id": 1, "pool_id": 1, "asset_id": 1, "amount": "0"},
        {"user_id": 1, "pool_id": 1, "asset_id": 1, "amount": "-3"},
        {"user_id": 1, "pool_id": 1, "asset_id": 1, "amount": "lots"},
    ],
)
def test_stake_endpoint_validates_request(api, payload):
    response = post(api, "stake", payload)
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]


def test_stake_endpoint_maps_ledger_errors(api, user, pool, funded, stake_asset):
    response = post(api, "stake", {"user_id": user.pk, "pool_id": pool.pk, "asset_id": stake_asset.pk, "amount": "9999"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "insufficient_balance"
    assert "insufficient balance" in body["error"]

    response = post(api, "stake", {"user_id": user.pk, "pool_id": 777, "asset_id": stake_asset.pk, "amount": "1"})
    assert response.status_code == 404
    assert response.json()["code"] == "pool_not_found"


def test_unstake_and_claim_endpoints(api, clock, user, pool, funded, stake_asset):
    post(api, "stake", {"user_id": user.pk, "pool_id": pool.pk, "asset_id": stake_asset.pk, "amount": "1000"})

    response = post(api, "claim", {"user_id": user.pk, "pool_id": pool.pk})
    assert response.status_code == 400
    assert response.json()["code"] == "no_reward_to_claim"

    clock.advance(days=73)
    response = post(api, "claim", {"user_id": user.pk, "pool_id": pool.pk})
    assert response.status_code == 200
    assert Decimal(response.json()["data"]["amount"]) == Decimal("20")

    response = post(api, "unstake", {"user_id": user.pk, "pool_id": pool.pk, "amount": "1000"})
    assert response.status_code == 200
    assert response.json()["data"]["message"] == "unstake successful"
    assert holding(user, "USDT").balance == Decimal("5000")

    response = post(api, "unstake", {"user_id": user.pk, "pool_id": pool.pk, "amount": "1"})
    assert response.status_code == 404
    assert response.json()["code"] == "stake_not_found"


def test_stakes_endpoint_includes_pool(api, clock, user, pool, funded, stake_asset):
    post(api, "stake", {"user_id": user.pk, "pool_id": pool.pk, "asset_id": stake_asset.pk, "amount": "1000"})
    clock.advance(days=365)

    response = api.get("/api/v1/pool/stakes", {"user_id": user.pk})

    assert response.status_code == 200
    stakes = response.json()["data"]["stakes"]
    assert len(stakes) == 1
    assert Decimal(stakes[0]["amount"]) == Decimal("1000")
    assert Decimal(stakes[0]["pending_reward"]) == Decimal("100")
    assert stakes[0]["pool"]["name"] == "LPT Launch"
    assert stakes[0]["pool"]["status"] == "active"


def test_stakes_endpoint_requires_user_id(api):
    response = api.get("/api/v1/pool/stakes")
    assert response.status_code == 400
    assert response.json()["error"] == "user_id is required"


def test_pool_info_endpoint(api, clock, pool):
    response = api.get("/api/v1/pool/info", {"pool_id": pool.pk})
    assert response.status_code == 200
    data = response.json()["data"]["pool"]
    assert data["stake_asset"] == "USDT"
    assert data["reward_asset"] == "LPT"
    assert Decimal(data["apy"]) == Decimal("0.10")
    assert Decimal(data["total_staked"]) == Decimal("0")

    clock.current = pool.end_time + timedelta(days=1)
    assert api.get("/api/v1/pool/info", {"pool_id": pool.pk}).json()["data"]["pool"]["status"] == "closed"


def test_pool_info_endpoint_errors(api):
    assert api.get("/api/v1/pool/info").status_code == 400
    response = api.get("/api/v1/pool/info", {"pool_id": 12345})
    assert response.status_code == 404
    assert response.json()["success"] is False
