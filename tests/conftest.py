"""Shared fixtures: real P-256 signing keys, a controllable clock and API payload builders."""

from typing import Any, Dict, Optional

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from xcode_cloud_mcp.auth import AuthManager
from xcode_cloud_mcp.config import Credentials


class FakeClock:
    """Callable clock whose time only moves when a test says so."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def ec_private_key() -> ec.EllipticCurvePrivateKey:
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def private_key_pem(ec_private_key) -> str:
    return ec_private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def credentials(private_key_pem) -> Credentials:
    return Credentials(key_id="KEY123ABC", issuer_id="issuer-uuid", private_key=private_key_pem)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def auth(credentials, clock) -> AuthManager:
    return AuthManager(credentials, clock=clock)


def make_build_run(
    build_run_id: str = "run-1",
    progress: str = "PENDING",
    completion: Optional[str] = None,
    **attributes: Any,
) -> Dict[str, Any]:
    return {
        "type": "ciBuildRuns",
        "id": build_run_id,
        "attributes": {
            "number": 7,
            "executionProgress": progress,
            "completionStatus": completion,
            **attributes,
        },
    }


def make_artifact(artifact_id: str, file_type: str, file_name: str = "file") -> Dict[str, Any]:
    return {
        "type": "ciArtifacts",
        "id": artifact_id,
        "attributes": {
            "fileType": file_type,
            "fileName": file_name,
            "fileSize": 1024,
            "downloadUrl": f"https://download.test/{artifact_id}",
        },
    }
