"""
Test Configuration
==================

Pytest fixtures for CredLink tests.
"""

import os
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment
os.environ["ENVIRONMENT"] = "testing"
os.environ["ZK_BACKEND"] = "mock"

from credlink.auth import Role, issue_capability  # noqa: E402
from credlink.ledger import InMemoryProfileStore  # noqa: E402
from credlink.models.profile import CreditProfile  # noqa: E402
from credlink.scoring import AttestationGateway, ScoringEngine, ScoringPolicy  # noqa: E402
from credlink.zk import CreditProver, CreditVerifier, MockProvingBackend  # noqa: E402


SUBJECT = "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
IDENTITY_HASH = "0x" + "ab" * 32


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Use asyncio backend for async tests."""
    return "asyncio"


# =============================================================================
# ZK
# =============================================================================


@pytest.fixture
def backend() -> MockProvingBackend:
    return MockProvingBackend(secret="test-mock-secret")


@pytest.fixture
def prover(backend: MockProvingBackend) -> CreditProver:
    return CreditProver(backend=backend)


@pytest.fixture
def verifier(backend: MockProvingBackend) -> CreditVerifier:
    return CreditVerifier(backend=backend)


# =============================================================================
# Capabilities
# =============================================================================


@pytest.fixture
def admin_token() -> str:
    return issue_capability("test-admin", [Role.ADMIN])


@pytest.fixture
def verifier_token() -> str:
    return issue_capability("test-verifier", [Role.VERIFIER])


@pytest.fixture
def lending_pool_token() -> str:
    return issue_capability("test-lending-pool", [Role.LENDING_POOL])


# =============================================================================
# Scoring
# =============================================================================


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock that advances one second per reading."""
    state = {"now": datetime(2025, 1, 1, tzinfo=UTC)}

    def tick() -> datetime:
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return tick


@pytest.fixture
def store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def policy() -> ScoringPolicy:
    return ScoringPolicy()


@pytest.fixture
def engine(
    store: InMemoryProfileStore,
    policy: ScoringPolicy,
    clock: Callable[[], datetime],
) -> ScoringEngine:
    return ScoringEngine(store=store, policy=policy, clock=clock)


@pytest.fixture
def gateway(
    engine: ScoringEngine,
    verifier: CreditVerifier,
    verifier_token: str,
) -> AttestationGateway:
    return AttestationGateway(engine, verifier_token, verifier)


@pytest_asyncio.fixture
async def bound_profile(engine: ScoringEngine, admin_token: str) -> CreditProfile:
    """SUBJECT bound to IDENTITY_HASH at the initial score."""
    return await engine.bind_identity(admin_token, SUBJECT, IDENTITY_HASH)


# =============================================================================
# Service
# =============================================================================


@pytest_asyncio.fixture
async def attestation_client() -> AsyncGenerator[AsyncClient, None]:
    """Create test client for the Attestation Service with fresh state."""
    from credlink.ledger import reset_profile_store
    from credlink.zk import reset_proving_backend
    from services.attestation.dependencies import reset_dependencies
    from services.attestation.main import app

    reset_proving_backend()
    reset_profile_store()
    reset_dependencies()

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    reset_dependencies()
    reset_profile_store()
    reset_proving_backend()


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(admin_token: str) -> dict[str, str]:
    return _bearer(admin_token)


@pytest.fixture
def verifier_headers(verifier_token: str) -> dict[str, str]:
    return _bearer(verifier_token)


@pytest.fixture
def lending_pool_headers(lending_pool_token: str) -> dict[str, str]:
    return _bearer(lending_pool_token)
