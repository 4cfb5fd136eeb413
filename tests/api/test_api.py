"""HTTP API tests.

Each test talks to the ASGI app in-process through httpx against a fresh
SQLite database.
"""

import pytest

from tourney.models import TournamentStatus

API = "/api/v1"


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get(f"{API}/wallet")

        assert response.status_code == 401
        body = response.json()
        assert body["error"]["code"] == "AUTH_REQUIRED"
        assert body["traceId"] == response.headers["X-Request-ID"]

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get(
            f"{API}/wallet", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_admin_route_needs_admin(self, client, auth_headers):
        response = await client.get(f"{API}/admin/settings", headers=auth_headers("player"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_allow_listed_admin(self, client, auth_headers, save_app_settings):
        await save_app_settings(admin_uids=["boss"])

        response = await client.get(f"{API}/admin/settings", headers=auth_headers("boss"))

        assert response.status_code == 200
        assert response.json()["adminUids"] == ["boss"]

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, client, auth_headers):
        response = await client.get(
            f"{API}/tournaments",
            headers={**auth_headers("player"), "X-Request-ID": "req-123"},
        )

        assert response.headers["X-Request-ID"] == "req-123"


class TestUsers:
    @pytest.mark.asyncio
    async def test_register_and_profile(self, client, auth_headers):
        headers = auth_headers("uid-1")

        created = await client.post(
            f"{API}/users/register",
            json={"email": "ace@example.com"},
            headers=headers,
        )
        me = await client.get(f"{API}/users/me", headers=headers)
        wallet = await client.get(f"{API}/wallet", headers=headers)

        assert created.status_code == 201
        assert created.json()["username"] == "ace"
        assert len(created.json()["referralCode"]) == 6
        assert me.json()["id"] == "uid-1"
        assert wallet.json() == {"deposit": 0, "winning": 0, "bonus": 0, "total": 0}

    @pytest.mark.asyncio
    async def test_register_twice(self, client, auth_headers):
        headers = auth_headers("uid-1")
        await client.post(f"{API}/users/register", json={"email": "a@example.com"}, headers=headers)

        response = await client.post(
            f"{API}/users/register", json={"email": "b@example.com"}, headers=headers
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_STATE"

    @pytest.mark.asyncio
    async def test_register_rejects_bad_email(self, client, auth_headers):
        response = await client.post(
            f"{API}/users/register", json={"email": "nope"}, headers=auth_headers("uid-1")
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_link_referral_once(self, client, auth_headers, create_user):
        await create_user(referral_code="FRIEND")
        user_id = await create_user()
        headers = auth_headers(user_id)

        first = await client.post(f"{API}/users/me/referral", json={"code": "FRIEND"}, headers=headers)
        second = await client.post(
            f"{API}/users/me/referral", json={"code": "FRIEND"}, headers=headers
        )

        assert first.status_code == 200
        assert first.json()["referredBy"] is not None
        assert second.status_code == 409

    @pytest.mark.asyncio
    async def test_unregistered_profile(self, client, auth_headers):
        response = await client.get(f"{API}/users/me", headers=auth_headers("ghost"))

        assert response.status_code == 404
        assert response.json()["error"]["details"] == {"kind": "user", "id": "ghost"}


class TestJoin:
    @pytest.mark.asyncio
    async def test_join_flow(self, client, auth_headers, create_user, create_tournament):
        user_id = await create_user(deposit=50, winning=30)
        tournament_id = await create_tournament(entry_fee=60, max_players=2)
        headers = auth_headers(user_id)

        joined = await client.post(f"{API}/tournaments/{tournament_id}/join", headers=headers)
        wallet = await client.get(f"{API}/wallet", headers=headers)
        tournament = await client.get(f"{API}/tournaments/{tournament_id}", headers=headers)
        history = await client.get(f"{API}/wallet/transactions", headers=headers)
        mine = await client.get(f"{API}/tournaments/joined", headers=headers)

        assert joined.status_code == 201
        assert joined.json()["paid"] == {"deposit": 30, "winning": 30, "bonus": 0}
        assert joined.json()["amountPaid"] == 60
        assert wallet.json() == {"deposit": 20, "winning": 0, "bonus": 0, "total": 20}
        assert tournament.json()["currentPlayers"] == 1
        assert tournament.json()["spotsLeft"] == 1
        [entry] = history.json()
        assert entry["type"] == "tournament_join"
        assert entry["status"] == "completed"
        assert entry["tournamentId"] == tournament_id
        assert [t["id"] for t in mine.json()] == [tournament_id]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("setup", "status_code", "code"),
        [
            ({"entry_fee": 500}, 400, "INSUFFICIENT_FUNDS"),
            ({"max_players": 1, "current_players": 1}, 409, "TOURNAMENT_FULL"),
            ({"status": TournamentStatus.FINISHED}, 409, "TOURNAMENT_NOT_JOINABLE"),
        ],
    )
    async def test_join_errors(
        self, client, auth_headers, create_user, create_tournament, setup, status_code, code
    ):
        user_id = await create_user(deposit=100)
        tournament_id = await create_tournament(**setup)

        response = await client.post(
            f"{API}/tournaments/{tournament_id}/join", headers=auth_headers(user_id)
        )

        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code

    @pytest.mark.asyncio
    async def test_join_twice(self, client, auth_headers, create_user, create_tournament):
        user_id = await create_user(deposit=100)
        tournament_id = await create_tournament(entry_fee=10)
        url = f"{API}/tournaments/{tournament_id}/join"

        await client.post(url, headers=auth_headers(user_id))
        response = await client.post(url, headers=auth_headers(user_id))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_JOINED"

    @pytest.mark.asyncio
    async def test_unknown_tournament(self, client, auth_headers, create_user):
        user_id = await create_user()

        response = await client.post(
            f"{API}/tournaments/missing/join", headers=auth_headers(user_id)
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_by_status(self, client, auth_headers, create_tournament):
        upcoming = await create_tournament(name="Open")
        await create_tournament(name="Done", status=TournamentStatus.FINISHED)

        response = await client.get(
            f"{API}/tournaments", params={"status": "upcoming"}, headers=auth_headers("p")
        )

        assert [t["id"] for t in response.json()] == [upcoming]


class TestWalletRequests:
    @pytest.mark.asyncio
    async def test_withdrawal_rejected_by_admin_refunds(
        self, client, auth_headers, create_user
    ):
        user_id = await create_user(winning=100)
        headers = auth_headers(user_id)
        admin = auth_headers("admin-1", admin=True)

        requested = await client.post(
            f"{API}/wallet/withdrawals", json={"amount": 70}, headers=headers
        )
        tx_id = requested.json()["id"]
        during = await client.get(f"{API}/wallet", headers=headers)
        rejected = await client.post(f"{API}/admin/transactions/{tx_id}/reject", headers=admin)
        again = await client.post(f"{API}/admin/transactions/{tx_id}/reject", headers=admin)
        after = await client.get(f"{API}/wallet", headers=headers)

        assert requested.status_code == 201
        assert requested.json()["status"] == "pending"
        assert during.json()["winning"] == 30
        assert rejected.status_code == 200
        assert rejected.json()["status"] == "rejected"
        assert rejected.json()["processedAt"] is not None
        assert again.status_code == 409
        assert after.json()["winning"] == 100

    @pytest.mark.asyncio
    async def test_deposit_approved(self, client, auth_headers, create_user):
        user_id = await create_user()
        headers = auth_headers(user_id)
        admin = auth_headers("admin-1", admin=True)

        requested = await client.post(f"{API}/wallet/deposits", json={"amount": 250}, headers=headers)
        pending = await client.get(
            f"{API}/admin/transactions", params={"status": "pending"}, headers=admin
        )
        approved = await client.post(
            f"{API}/admin/transactions/{requested.json()['id']}/approve", headers=admin
        )
        wallet = await client.get(f"{API}/wallet", headers=headers)

        assert [t["id"] for t in pending.json()] == [requested.json()["id"]]
        assert approved.json()["status"] == "completed"
        assert wallet.json()["deposit"] == 250

    @pytest.mark.asyncio
    async def test_withdrawal_disabled(self, client, auth_headers, create_user, save_app_settings):
        await save_app_settings(withdrawal_enabled=False)
        user_id = await create_user(winning=100)

        response = await client.post(
            f"{API}/wallet/withdrawals", json={"amount": 10}, headers=auth_headers(user_id)
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FEATURE_DISABLED"

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, client, auth_headers, create_user):
        user_id = await create_user()

        response = await client.post(
            f"{API}/wallet/deposits", json={"amount": 0}, headers=auth_headers(user_id)
        )

        assert response.status_code == 422


class TestAdmin:
    @pytest.mark.asyncio
    async def test_tournament_lifecycle(self, client, auth_headers):
        admin = auth_headers("admin-1", admin=True)

        created = await client.post(
            f"{API}/admin/tournaments",
            json={
                "name": "Spring Open",
                "entry_fee": 25,
                "max_players": 16,
                "join_fee_priority": ["bonus", "winning", "deposit"],
            },
            headers=admin,
        )
        tournament_id = created.json()["id"]
        started = await client.post(
            f"{API}/admin/tournaments/{tournament_id}/status",
            json={"status": "ongoing"},
            headers=admin,
        )
        reopened = await client.post(
            f"{API}/admin/tournaments/{tournament_id}/status",
            json={"status": "upcoming"},
            headers=admin,
        )
        copied = await client.post(f"{API}/admin/tournaments/{tournament_id}/copy", headers=admin)

        assert created.status_code == 201
        assert created.json()["status"] == "upcoming"
        assert created.json()["joinFeePriority"] == ["bonus", "winning", "deposit"]
        assert started.json()["status"] == "ongoing"
        assert reopened.status_code == 409
        assert reopened.json()["error"]["code"] == "INVALID_STATE"
        assert copied.status_code == 201
        assert copied.json()["name"] == "Spring Open (Copy)"
        assert copied.json()["status"] == "upcoming"
        assert copied.json()["currentPlayers"] == 0

    @pytest.mark.asyncio
    async def test_create_rejects_bad_priority(self, client, auth_headers):
        response = await client.post(
            f"{API}/admin/tournaments",
            json={"name": "x", "max_players": 4, "join_fee_priority": ["bonus", "bonus"]},
            headers=auth_headers("admin-1", admin=True),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_participants_and_prize(
        self, client, auth_headers, create_user, create_tournament
    ):
        admin = auth_headers("admin-1", admin=True)
        user_id = await create_user(bonus=10)
        tournament_id = await create_tournament(entry_fee=10)
        await client.post(f"{API}/tournaments/{tournament_id}/join", headers=auth_headers(user_id))

        participants = await client.get(
            f"{API}/admin/tournaments/{tournament_id}/participants", headers=admin
        )
        prize = await client.post(
            f"{API}/admin/prizes",
            json={"user_id": user_id, "amount": 300, "tournament_id": tournament_id},
            headers=admin,
        )
        wallet = await client.get(f"{API}/wallet", headers=auth_headers(user_id))

        [participant] = participants.json()
        assert participant["userId"] == user_id
        assert participant["paid"]["bonus"] == 10
        assert prize.status_code == 201
        assert prize.json()["type"] == "tournament_win"
        assert wallet.json() == {"deposit": 0, "winning": 300, "bonus": 0, "total": 300}

    @pytest.mark.asyncio
    async def test_update_settings(self, client, auth_headers):
        admin = auth_headers("admin-1", admin=True)

        updated = await client.put(
            f"{API}/admin/settings",
            json={"deposit_enabled": False, "default_join_fee_priority": ["deposit", "bonus", "winning"]},
            headers=admin,
        )
        fetched = await client.get(f"{API}/admin/settings", headers=admin)

        assert updated.status_code == 200
        assert fetched.json()["depositEnabled"] is False
        assert fetched.json()["withdrawalEnabled"] is True
        assert fetched.json()["defaultJoinFeePriority"] == ["deposit", "bonus", "winning"]


    @pytest.mark.asyncio
    async def test_delete_tournament(self, client, auth_headers, create_user, create_tournament):
        admin = auth_headers("admin-1", admin=True)
        empty = await create_tournament(name="Empty")
        paid = await create_tournament(name="Paid", entry_fee=10)
        user_id = await create_user(deposit=10)
        await client.post(f"{API}/tournaments/{paid}/join", headers=auth_headers(user_id))

        deleted = await client.delete(f"{API}/admin/tournaments/{empty}", headers=admin)
        gone = await client.get(f"{API}/tournaments/{empty}", headers=admin)
        refused = await client.delete(f"{API}/admin/tournaments/{paid}", headers=admin)
        forbidden = await client.delete(
            f"{API}/admin/tournaments/{paid}", headers=auth_headers(user_id)
        )

        assert deleted.status_code == 204
        assert deleted.content == b""
        assert gone.status_code == 404
        assert refused.status_code == 409
        assert refused.json()["error"]["details"]["paidEntrants"] == 1
        assert forbidden.status_code == 403

    @pytest.mark.asyncio
    async def test_list_users(self, client, auth_headers, create_user):
        admin = auth_headers("admin-1", admin=True)
        for name in ("alice", "bob", "malia"):
            await create_user(name)

        everyone = await client.get(f"{API}/admin/users", headers=admin)
        matching = await client.get(f"{API}/admin/users", params={"search": "Ali"}, headers=admin)
        paged = await client.get(
            f"{API}/admin/users", params={"limit": 1, "offset": 2}, headers=admin
        )

        assert [u["id"] for u in everyone.json()] == ["malia", "bob", "alice"]
        assert [u["username"] for u in matching.json()] == ["malia", "alice"]
        assert [u["id"] for u in paged.json()] == ["alice"]
        assert everyone.json()[0]["email"] == "malia@example.com"

    @pytest.mark.asyncio
    async def test_error_envelope_documented(self, client):
        schema = (await client.get("/openapi.json")).json()

        join = schema["paths"][f"{API}/tournaments/{{tournament_id}}/join"]["post"]
        ref = join["responses"]["409"]["content"]["application/json"]["schema"]["$ref"]
        assert ref.endswith("/ErrorResponse")
        envelope = schema["components"]["schemas"]["ErrorResponse"]["properties"]
        assert set(envelope) == {"error", "traceId"}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["services"]["database"] == "healthy"
