"""
Ride endpoint tests: completion, cancellation and statistics over HTTP.
"""

import uuid
import pytest


@pytest.mark.asyncio
async def test_complete_ride_by_account_id(client, driver, driver_headers):
    account, ledger = driver

    response = await client.patch(
        f"/v1/rides/{account.id}/complete-ride",
        json={"rideEarnings": 150},
        headers=driver_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Trip completed successfully! Earnings updated."
    data = body["data"]
    assert data["completedRides"] == 1
    assert data["totalRides"] == 1
    assert data["totalTrips"] == 1
    assert data["totalEarnings"] == 150
    assert data["rideEarnings"] == 150
    assert data["previousTotal"] == 0


@pytest.mark.asyncio
async def test_account_id_and_ledger_id_hit_the_same_ledger(client, driver, driver_headers):
    account, ledger = driver

    await client.patch(f"/v1/rides/{account.id}/complete-ride", json={"rideEarnings": 100}, headers=driver_headers)
    await client.patch(f"/v1/rides/{ledger.id}/complete-ride", json={"rideEarnings": 60}, headers=driver_headers)

    stats = await client.get(f"/v1/rides/{ledger.id}/stats", headers=driver_headers)
    data = stats.json()["data"]
    assert data["completedRides"] == 2
    assert data["totalEarnings"] == 160
    assert data["driverId"] == ledger.id
    assert data["accountId"] == account.id


@pytest.mark.asyncio
async def test_complete_ride_with_matching_trip_data(client, driver, driver_headers):
    _, ledger = driver

    response = await client.patch(
        f"/v1/rides/{ledger.id}/complete-ride",
        json={
            "rideEarnings": 195,
            "tripData": {"distance": 5, "duration": 65, "totalFare": 195, "waitingCharge": 120}
        },
        headers=driver_headers
    )
    assert response.status_code == 200

    mismatch = await client.patch(
        f"/v1/rides/{ledger.id}/complete-ride",
        json={"rideEarnings": 195, "tripData": {"distance": 5, "duration": 65, "totalFare": 200}},
        headers=driver_headers
    )
    assert mismatch.status_code == 400


@pytest.mark.asyncio
@pytest.mark.parametrize("earnings", [-5, 0, 100000, "lots"])
async def test_complete_ride_rejects_bad_earnings(client, driver, driver_headers, earnings):
    _, ledger = driver

    response = await client.patch(
        f"/v1/rides/{ledger.id}/complete-ride",
        json={"rideEarnings": earnings},
        headers=driver_headers
    )

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"]

    stats = await client.get(f"/v1/rides/{ledger.id}/stats", headers=driver_headers)
    assert stats.json()["data"]["totalRides"] == 0


@pytest.mark.asyncio
async def test_cancel_ride(client, driver, driver_headers):
    _, ledger = driver

    response = await client.patch(f"/v1/rides/{ledger.id}/cancel-ride", headers=driver_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["cancelledRides"] == 1
    assert data["totalRides"] == 1


@pytest.mark.asyncio
async def test_stats_for_new_driver(client, driver, driver_headers):
    _, ledger = driver

    response = await client.get(f"/v1/rides/{ledger.id}/stats", headers=driver_headers)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["successRate"] == 0
    assert data["averageEarnings"] == 0
    assert data["totalRides"] == 0


@pytest.mark.asyncio
async def test_stats_after_mixed_outcomes(client, driver, driver_headers):
    _, ledger = driver
    for earnings in (100, 50):
        await client.patch(f"/v1/rides/{ledger.id}/complete-ride", json={"rideEarnings": earnings}, headers=driver_headers)
    await client.patch(f"/v1/rides/{ledger.id}/cancel-ride", headers=driver_headers)

    data = (await client.get(f"/v1/rides/{ledger.id}/stats", headers=driver_headers)).json()["data"]

    assert data["totalRides"] == data["completedRides"] + data["cancelledRides"] == 3
    assert data["successRate"] == 67
    assert data["averageEarnings"] == 75.0


@pytest.mark.asyncio
async def test_unknown_driver_is_404(client, driver_headers):
    response = await client.patch(f"/v1/rides/{uuid.uuid4()}/cancel-ride", headers=driver_headers)

    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_id", ["undefined", "null", "not-a-uuid"])
async def test_malformed_driver_id_is_400(client, driver_headers, bad_id):
    response = await client.get(f"/v1/rides/{bad_id}/stats", headers=driver_headers)

    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_ride_endpoints_require_token(client, driver):
    _, ledger = driver

    response = await client.patch(f"/v1/rides/{ledger.id}/cancel-ride")
    assert response.status_code in (401, 403)

    bad_token = await client.patch(
        f"/v1/rides/{ledger.id}/cancel-ride",
        headers={"Authorization": "Bearer not.a.token"}
    )
    assert bad_token.status_code == 401
