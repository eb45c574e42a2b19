"""
Tests for the Attestation Service HTTP API.
"""

from typing import Any

import pytest
from httpx import AsyncClient

from credlink.errors import DegenerateInputWarning
from tests.conftest import IDENTITY_HASH, SUBJECT


async def bind(client: AsyncClient, headers: dict[str, str], subject: str = SUBJECT) -> Any:
    return await client.post(
        "/api/v1/identity/bind",
        json={"subject": subject, "identity_hash": IDENTITY_HASH},
        headers=headers,
    )


async def wallet_age_proof(
    client: AsyncClient,
    wallet_age_days: int = 400,
    threshold: int = 30,
    subject: str = SUBJECT,
) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/proofs/wallet-age",
        json={"subject": subject, "wallet_age_days": wallet_age_days, "threshold": threshold},
    )
    assert response.status_code == 200
    return response.json()


def attestation_body(proof: dict[str, Any]) -> dict[str, Any]:
    return {key: proof[key] for key in ("predicate_kind", "subject", "a", "b", "c", "public_signals")}


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "attestation"
        assert data["components"]["proving_backend"]["mode"] == "mock"
        assert data["components"]["profile_store"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_root(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "CredLink Attestation Service"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get("/health", headers={"x-request-id": "req-42"})

        assert response.headers["x-request-id"] == "req-42"


class TestIdentity:
    """Tests for identity binding endpoints."""

    @pytest.mark.asyncio
    async def test_bind(
        self, attestation_client: AsyncClient, admin_headers: dict[str, str]
    ) -> None:
        response = await bind(attestation_client, admin_headers, SUBJECT.upper().replace("0X", "0x"))

        assert response.status_code == 201
        data = response.json()
        assert data["subject"] == SUBJECT
        assert data["score"] == 0
        assert data["tier_name"] == "Bronze"
        assert data["collateral_ratio_bps"] == 15000
        assert data["badge"] is None

        status = await attestation_client.get(f"/api/v1/identity/{SUBJECT}/verified")
        assert status.json() == {"subject": SUBJECT, "verified": True}

    @pytest.mark.asyncio
    async def test_rebind_conflict(
        self, attestation_client: AsyncClient, admin_headers: dict[str, str]
    ) -> None:
        await bind(attestation_client, admin_headers)

        response = await bind(attestation_client, admin_headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "already_bound"

    @pytest.mark.asyncio
    async def test_bind_without_token(self, attestation_client: AsyncClient) -> None:
        response = await bind(attestation_client, {})

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_bind_with_wrong_role(
        self, attestation_client: AsyncClient, verifier_headers: dict[str, str]
    ) -> None:
        response = await bind(attestation_client, verifier_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"subject": SUBJECT, "identity_hash": "   "},
            {"subject": "   ", "identity_hash": IDENTITY_HASH},
        ],
    )
    async def test_bind_blank_input(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        body: dict[str, str],
    ) -> None:
        response = await attestation_client.post(
            "/api/v1/identity/bind", json=body, headers=admin_headers
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "invalid_input"

    @pytest.mark.asyncio
    async def test_unbound_subject_not_verified(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get(f"/api/v1/identity/{SUBJECT}/verified")

        assert response.json()["verified"] is False


class TestProofs:
    """Tests for proof generation and stateless verification."""

    @pytest.mark.asyncio
    async def test_generate_wallet_age_proof(self, attestation_client: AsyncClient) -> None:
        proof = await wallet_age_proof(attestation_client)

        assert proof["valid"] is True
        assert proof["predicate_kind"] == "wallet_age"
        assert len(proof["a"]) == 2
        assert len(proof["public_signals"]) == 4
        assert proof["public_signals"][0] == 30

    @pytest.mark.asyncio
    async def test_generate_false_verdict(self, attestation_client: AsyncClient) -> None:
        proof = await wallet_age_proof(attestation_client, wallet_age_days=10)

        assert proof["valid"] is False
        assert proof["public_signals"][2] == 0

    @pytest.mark.asyncio
    async def test_generate_repayment_proof(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.post(
            "/api/v1/proofs/repayment",
            json={"subject": SUBJECT, "total_loans": 0, "repaid_loans": 0, "min_repayment_rate": 80},
        )

        assert response.status_code == 200
        assert response.json()["valid"] is True
        assert response.json()["degenerate"] is True

    @pytest.mark.asyncio
    async def test_unsatisfiable_witness(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.post(
            "/api/v1/proofs/default-ratio",
            json={"subject": SUBJECT, "total_loans": 2, "defaulted_loans": 5, "max_default_rate": 20},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "constraint_unsatisfiable"

    @pytest.mark.asyncio
    async def test_out_of_range_input(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.post(
            "/api/v1/proofs/wallet-age",
            json={"subject": SUBJECT, "wallet_age_days": 2**32, "threshold": 30},
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "range_error"

    @pytest.mark.asyncio
    async def test_verify_proof(self, attestation_client: AsyncClient) -> None:
        proof = await wallet_age_proof(attestation_client)

        response = await attestation_client.post(
            "/api/v1/proofs/verify", json=attestation_body(proof)
        )

        assert response.status_code == 200
        data = response.json()
        assert data["proof_verified"] is True
        assert data["valid"] is True
        assert data["nullifier"] == str(proof["public_signals"][1])
        assert len(data["calldata"]["proof"]) == 8

    @pytest.mark.asyncio
    async def test_verify_forged_verdict(self, attestation_client: AsyncClient) -> None:
        proof = await wallet_age_proof(attestation_client, wallet_age_days=10)
        body = attestation_body(proof)
        body["public_signals"][2] = 1

        response = await attestation_client.post("/api/v1/proofs/verify", json=body)

        assert response.status_code == 200
        assert response.json()["proof_verified"] is False
        assert response.json()["calldata"] is None

    @pytest.mark.asyncio
    async def test_verify_malformed_signals(self, attestation_client: AsyncClient) -> None:
        proof = await wallet_age_proof(attestation_client)
        body = attestation_body(proof)
        body["public_signals"] = body["public_signals"][:2]

        response = await attestation_client.post("/api/v1/proofs/verify", json=body)

        assert response.status_code == 400
        assert response.json()["error_code"] == "malformed_proof"


class TestAttestations:
    """Tests for the attestation flow."""

    @pytest.mark.asyncio
    async def test_attest_and_replay(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        verifier_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)
        body = attestation_body(await wallet_age_proof(attestation_client))

        response = await attestation_client.post(
            "/api/v1/attestations", json=body, headers=verifier_headers
        )

        assert response.status_code == 200
        data = response.json()
        assert data["previous_score"] == 0
        assert data["new_score"] == 25
        assert data["profile"]["badge"] == "Bronze"
        assert data["event"]["reason"] == "attestation"

        replay = await attestation_client.post(
            "/api/v1/attestations", json=body, headers=verifier_headers
        )

        assert replay.status_code == 409
        assert replay.json()["error_code"] == "replayed_proof"

        profile = await attestation_client.get(f"/api/v1/profiles/{SUBJECT}")
        assert profile.json()["score"] == 25

    @pytest.mark.asyncio
    async def test_attest_unbound_subject(
        self, attestation_client: AsyncClient, verifier_headers: dict[str, str]
    ) -> None:
        body = attestation_body(await wallet_age_proof(attestation_client))

        response = await attestation_client.post(
            "/api/v1/attestations", json=body, headers=verifier_headers
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "not_bound"

    @pytest.mark.asyncio
    async def test_attest_false_verdict(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        verifier_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)
        body = attestation_body(await wallet_age_proof(attestation_client, wallet_age_days=10))

        response = await attestation_client.post(
            "/api/v1/attestations", json=body, headers=verifier_headers
        )

        assert response.status_code == 422
        assert response.json()["error_code"] == "invalid_proof"

    @pytest.mark.asyncio
    async def test_attest_malformed(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        verifier_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)
        body = attestation_body(await wallet_age_proof(attestation_client))
        body["public_signals"] = [30, 1, 7, 0]

        response = await attestation_client.post(
            "/api/v1/attestations", json=body, headers=verifier_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_attest_zero_loan_repayment(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        verifier_headers: dict[str, str],
        lending_pool_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)
        await attestation_client.post(f"/api/v1/loans/{SUBJECT}/open", headers=lending_pool_headers)
        proof = await attestation_client.post(
            "/api/v1/proofs/repayment",
            json={"subject": SUBJECT, "total_loans": 0, "repaid_loans": 0, "min_repayment_rate": 80},
        )

        with pytest.warns(DegenerateInputWarning):
            response = await attestation_client.post(
                "/api/v1/attestations",
                json=attestation_body(proof.json()),
                headers=verifier_headers,
            )

        assert response.status_code == 200
        data = response.json()
        assert data["degenerate"] is True
        assert data["new_score"] == 0
        assert data["event"]["reason"] == "degenerate_attestation"

    @pytest.mark.asyncio
    async def test_attest_requires_verifier(
        self,
        attestation_client: AsyncClient,
        lending_pool_headers: dict[str, str],
    ) -> None:
        body = attestation_body(await wallet_age_proof(attestation_client))

        response = await attestation_client.post(
            "/api/v1/attestations", json=body, headers=lending_pool_headers
        )

        assert response.status_code == 403


class TestLoansAndProfiles:
    """Tests for lending pool hooks and profile queries."""

    @pytest.mark.asyncio
    async def test_loan_lifecycle(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        lending_pool_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)

        opened = await attestation_client.post(
            f"/api/v1/loans/{SUBJECT}/open", headers=lending_pool_headers
        )
        repaid = await attestation_client.post(
            f"/api/v1/loans/{SUBJECT}/repay", headers=lending_pool_headers
        )

        assert opened.status_code == 200
        assert opened.json()["profile"]["total_loans"] == 1
        assert repaid.json()["new_score"] == 50

        profile = await attestation_client.get(f"/api/v1/profiles/{SUBJECT}")
        assert profile.status_code == 200
        assert set(profile.json()) == {
            "score",
            "tier",
            "collateralRatio",
            "totalLoans",
            "repaidLoans",
            "lastUpdated",
        }
        assert profile.json()["repaidLoans"] == 1

    @pytest.mark.asyncio
    async def test_settle_without_loan(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        lending_pool_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)

        response = await attestation_client.post(
            f"/api/v1/loans/{SUBJECT}/liquidate", headers=lending_pool_headers
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "loan_accounting_error"

    @pytest.mark.asyncio
    async def test_loan_hooks_require_lending_pool(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
    ) -> None:
        response = await attestation_client.post(
            f"/api/v1/loans/{SUBJECT}/open", headers=admin_headers
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_profile_not_bound(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get(f"/api/v1/profiles/{SUBJECT}")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_tier_and_collateral(
        self, attestation_client: AsyncClient, admin_headers: dict[str, str]
    ) -> None:
        await bind(attestation_client, admin_headers)

        tier = await attestation_client.get(f"/api/v1/profiles/{SUBJECT}/tier")
        collateral = await attestation_client.get(
            f"/api/v1/profiles/{SUBJECT}/collateral", params={"amount": "10"}
        )

        assert tier.json()["collateral_ratio_bps"] == 15000
        assert collateral.json()["collateral"] == "15"

    @pytest.mark.asyncio
    async def test_collateral_by_tier(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get(
            "/api/v1/collateral", params={"tier": 1, "amount": "10"}
        )

        assert response.status_code == 200
        assert response.json()["collateral"] == "13.5"
        assert response.json()["tier_name"] == "Silver"

    @pytest.mark.asyncio
    async def test_collateral_unknown_tier(self, attestation_client: AsyncClient) -> None:
        response = await attestation_client.get(
            "/api/v1/collateral", params={"tier": 4, "amount": "10"}
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_history_chain(
        self,
        attestation_client: AsyncClient,
        admin_headers: dict[str, str],
        lending_pool_headers: dict[str, str],
    ) -> None:
        await bind(attestation_client, admin_headers)
        await attestation_client.post(f"/api/v1/loans/{SUBJECT}/open", headers=lending_pool_headers)

        response = await attestation_client.get(f"/api/v1/profiles/{SUBJECT}/history")

        data = response.json()
        assert data["chain_valid"] is True
        assert [e["reason"] for e in data["events"]] == ["loan_recorded", "identity_bound"]
