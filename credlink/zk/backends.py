"""
Proving Backends
================

Abstraction over the zero-knowledge proving system.

Supports:
- Mock (development/testing): in-process, keyed-hash proof points
- snarkjs: Groth16 via ``npx snarkjs`` on compiled circuits

The backends only produce and check proofs. What is proved is decided by
the reference circuits in ``credlink.zk.circuits``.

Version: 0.1.0
"""

import asyncio
import hashlib
import hmac
import json
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from pydantic import BaseModel

from credlink.config import ProvingBackendMode, settings
from credlink.logging import get_logger
from credlink.zk.models import BN254_FIELD_ORDER, PublicSignals, ZKProof


logger = get_logger(__name__)


class VerificationKey(BaseModel):
    """Identifies the key a proof is checked against."""

    circuit_name: str
    protocol: str
    key_id: str
    path: str | None = None


class ProvingBackend(ABC):
    """Abstract proving backend."""

    @property
    @abstractmethod
    def mode(self) -> ProvingBackendMode:
        """Backend mode."""
        ...

    @abstractmethod
    def verification_key(self, circuit_name: str) -> VerificationKey:
        """Verification key for a circuit."""
        ...

    @abstractmethod
    async def prove(
        self,
        circuit_name: str,
        circuit_input: dict[str, int],
        expected: PublicSignals,
        binding: str,
    ) -> tuple[ZKProof, PublicSignals, int]:
        """
        Produce a proof.

        Args:
            circuit_name: Compiled circuit to prove against
            circuit_input: Private and public signal assignment
            expected: Public signals the reference circuit computed
            binding: Subject hash the proof is bound to

        Returns:
            Tuple of (proof, public_signals, proving_time_ms)
        """
        ...

    @abstractmethod
    async def verify(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals,
        binding: str,
    ) -> bool:
        """Check a proof against the circuit's verification key."""
        ...


# =============================================================================
# Mock backend
# =============================================================================


class MockProvingBackend(ProvingBackend):
    """
    In-process mock backend.

    Proof points are HMAC-SHA256 values over the circuit name, the
    positional public signals and the subject binding, keyed per circuit.
    Tampering with any public signal or the subject invalidates the proof.
    Not zero-knowledge and not a substitute for a real proving system.
    """

    def __init__(self, secret: str | None = None) -> None:
        self._secret = (secret or settings.zk.mock_secret.get_secret_value()).encode()
        logger.debug("mock_proving_backend_initialized")

    @property
    def mode(self) -> ProvingBackendMode:
        return ProvingBackendMode.MOCK

    def _circuit_key(self, circuit_name: str) -> bytes:
        return hmac.new(self._secret, circuit_name.encode(), hashlib.sha256).digest()

    def verification_key(self, circuit_name: str) -> VerificationKey:
        key = self._circuit_key(circuit_name)
        return VerificationKey(
            circuit_name=circuit_name,
            protocol="mock-hmac-sha256",
            key_id=hashlib.sha256(key).hexdigest()[:16],
        )

    def _points(
        self,
        circuit_name: str,
        public_signals: PublicSignals,
        binding: str,
    ) -> list[str]:
        key = self._circuit_key(circuit_name)
        transcript = f"{binding}|{','.join(public_signals.to_strings())}"
        points = []
        for i in range(8):
            digest = hmac.new(key, f"{i}|{transcript}".encode(), hashlib.sha256).digest()
            points.append(str(int.from_bytes(digest, "big") % BN254_FIELD_ORDER))
        return points

    async def prove(
        self,
        circuit_name: str,
        circuit_input: dict[str, int],
        expected: PublicSignals,
        binding: str,
    ) -> tuple[ZKProof, PublicSignals, int]:
        start_time = time.perf_counter()
        p = self._points(circuit_name, expected, binding)
        proof = ZKProof(
            pi_a=[p[0], p[1], "1"],
            pi_b=[[p[2], p[3]], [p[4], p[5]], ["1", "0"]],
            pi_c=[p[6], p[7], "1"],
            protocol="groth16",
        )
        proving_time_ms = int((time.perf_counter() - start_time) * 1000)

        logger.debug("mock_proof_generated", circuit=circuit_name)

        return proof, expected, proving_time_ms

    async def verify(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals,
        binding: str,
    ) -> bool:
        p = self._points(circuit_name, public_signals, binding)
        expected = [p[0], p[1], p[2], p[3], p[4], p[5], p[6], p[7]]
        actual = [str(v) for v in proof.to_calldata()]
        return hmac.compare_digest(",".join(expected), ",".join(actual))


# =============================================================================
# snarkjs backend
# =============================================================================


class SnarkjsBackend(ProvingBackend):
    """
    Groth16 backend driving snarkjs through subprocess.

    Expects ``<build_dir>/<circuit>/<circuit>_js/<circuit>.wasm``,
    ``proving_key.zkey`` and ``verification_key.json`` per circuit. The
    compiled circuits emit ``[threshold, nullifier, valid, degenerate]`` and
    take the nullifier as an input. The nullifier folds in the subject hash
    and ``CreditVerifier`` re-derives it before calling ``verify``, so the
    Groth16 public inputs carry the subject binding even though snarkjs
    itself never sees ``binding``.
    """

    def __init__(self, build_dir: str | Path | None = None) -> None:
        self.build_dir = Path(build_dir) if build_dir else settings.circuit_build_dir
        self._validate_setup()

    @property
    def mode(self) -> ProvingBackendMode:
        return ProvingBackendMode.SNARKJS

    def _validate_setup(self) -> None:
        """Validate that required circuit files exist."""
        if not self.build_dir.exists():
            logger.warning(
                "zk_circuit_build_dir_not_found",
                path=str(self.build_dir),
            )

    def verification_key(self, circuit_name: str) -> VerificationKey:
        vkey_path = self.build_dir / circuit_name / "verification_key.json"
        if not vkey_path.exists():
            raise FileNotFoundError(f"Verification key not found: {vkey_path}")
        return VerificationKey(
            circuit_name=circuit_name,
            protocol="groth16",
            key_id=hashlib.sha256(vkey_path.read_bytes()).hexdigest()[:16],
            path=str(vkey_path),
        )

    async def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        return await asyncio.to_thread(
            subprocess.run,
            ["npx", "snarkjs", "groth16", *args],
            capture_output=True,
            text=True,
            cwd=self.build_dir.parent,
        )

    async def prove(
        self,
        circuit_name: str,
        circuit_input: dict[str, int],
        expected: PublicSignals,
        binding: str,
    ) -> tuple[ZKProof, PublicSignals, int]:
        circuit_dir = self.build_dir / circuit_name
        wasm_path = circuit_dir / f"{circuit_name}_js" / f"{circuit_name}.wasm"
        zkey_path = circuit_dir / "proving_key.zkey"

        if not wasm_path.exists():
            raise FileNotFoundError(f"Circuit WASM not found: {wasm_path}")
        if not zkey_path.exists():
            raise FileNotFoundError(f"Proving key not found: {zkey_path}")

        input_data: dict[str, Any] = {
            **{k: str(v) for k, v in circuit_input.items()},
            "nullifier": str(expected.nullifier),
        }

        # Per-call scratch dir so concurrent proofs never share files
        with tempfile.TemporaryDirectory(prefix=f"{circuit_name}-") as scratch:
            scratch_dir = Path(scratch)
            input_file = scratch_dir / "input.json"
            proof_file = scratch_dir / "proof.json"
            public_file = scratch_dir / "public.json"
            input_file.write_text(json.dumps(input_data))

            start_time = time.perf_counter()
            result = await self._run(
                [
                    "fullprove",
                    str(input_file),
                    str(wasm_path),
                    str(zkey_path),
                    str(proof_file),
                    str(public_file),
                ]
            )
            proving_time_ms = int((time.perf_counter() - start_time) * 1000)

            if result.returncode != 0:
                logger.error(
                    "snarkjs_proof_generation_failed",
                    stderr=result.stderr,
                    circuit=circuit_name,
                )
                raise RuntimeError(f"Proof generation failed: {result.stderr}")

            proof_json = json.loads(proof_file.read_text())
            public_signals = PublicSignals.from_positional(json.loads(public_file.read_text()))

        logger.info(
            "zk_proof_generated",
            circuit=circuit_name,
            proving_time_ms=proving_time_ms,
        )

        return ZKProof(**proof_json), public_signals, proving_time_ms

    async def verify(
        self,
        circuit_name: str,
        proof: ZKProof,
        public_signals: PublicSignals,
        binding: str,
    ) -> bool:
        vkey = self.verification_key(circuit_name)

        with tempfile.TemporaryDirectory(prefix=f"{circuit_name}-verify-") as scratch:
            scratch_dir = Path(scratch)
            proof_file = scratch_dir / "proof.json"
            public_file = scratch_dir / "public.json"
            proof_file.write_text(json.dumps(proof.model_dump()))
            public_file.write_text(json.dumps(public_signals.to_strings()))

            result = await self._run(
                ["verify", str(vkey.path), str(public_file), str(proof_file)]
            )

        return result.returncode == 0 and "OK" in result.stdout


# =============================================================================
# Global backend instance
# =============================================================================

_backend: ProvingBackend | None = None


def get_proving_backend() -> ProvingBackend:
    """
    Get the configured proving backend instance.

    Returns:
        ProvingBackend instance based on settings
    """
    global _backend

    if _backend is None:
        mode = settings.zk.backend

        if mode == ProvingBackendMode.MOCK:
            _backend = MockProvingBackend()
        elif mode == ProvingBackendMode.SNARKJS:
            _backend = SnarkjsBackend()
        else:
            raise ValueError(f"Unknown proving backend: {mode}")

        logger.info("proving_backend_initialized", mode=mode.value)

    return _backend


def set_proving_backend(backend: ProvingBackend) -> None:
    """Set a custom proving backend."""
    global _backend
    _backend = backend
    logger.info("proving_backend_set", mode=backend.mode.value)


def reset_proving_backend() -> None:
    """Reset the backend to be re-initialized."""
    global _backend
    _backend = None
