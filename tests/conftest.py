import json
from typing import Any, Dict, Optional

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec, rsa

import storehook.dispatch as dispatch_module
from storehook.keys import KeyResolver
from storehook.verification import SignatureVerifier


class SigningKey:
    """Private key plus the public JWK a platform would publish for it."""

    def __init__(self, kid: str, algorithm: str = "ES256") -> None:
        self.kid = kid
        self.algorithm = algorithm
        if algorithm == "ES256":
            self.private_key = ec.generate_private_key(ec.SECP256R1())
            public_jwk = jwt.algorithms.ECAlgorithm.to_jwk(self.private_key.public_key())
        else:
            self.private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
            public_jwk = jwt.algorithms.RSAAlgorithm.to_jwk(self.private_key.public_key())
        self.jwk: Dict[str, Any] = json.loads(public_jwk)
        self.jwk["kid"] = kid
        self.jwk["use"] = "sig"
        self.jwk["alg"] = algorithm

    def sign(self, claims: Dict[str, Any], kid: Optional[str] = None) -> str:
        return jwt.encode(
            claims,
            self.private_key,
            algorithm=self.algorithm,
            headers={"kid": kid or self.kid},
        )


class FakeKeySetFetcher:
    """Serves JWKS documents in order and counts fetches.

    An exception in the sequence is raised instead of returned. The last
    entry is repeated once the sequence is exhausted.
    """

    def __init__(self, *documents: Any) -> None:
        self.documents = list(documents)
        self.calls = 0

    def __call__(self) -> Dict[str, Any]:
        document = self.documents[min(self.calls, len(self.documents) - 1)]
        self.calls += 1
        if isinstance(document, Exception):
            raise document
        return document


def jwks(*keys: SigningKey) -> Dict[str, Any]:
    return {"keys": [key.jwk for key in keys]}


@pytest.fixture(scope="session")
def signing_key() -> SigningKey:
    return SigningKey("key-1")


@pytest.fixture(scope="session")
def rotated_key() -> SigningKey:
    return SigningKey("key-2", algorithm="RS256")


@pytest.fixture(scope="session")
def forger_key() -> SigningKey:
    return SigningKey("key-1")


@pytest.fixture
def make_fetcher():
    return FakeKeySetFetcher


@pytest.fixture
def make_jwks():
    return jwks


@pytest.fixture
def verifier(signing_key):
    resolver = KeyResolver(FakeKeySetFetcher(jwks(signing_key)), retry_backoff=0, name="apple")
    return SignatureVerifier(resolver)


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("STOREHOOK_CONFIG", str(tmp_path / "missing.yaml"))
    monkeypatch.delenv("STOREHOOK_APPLE_JWKS_URL", raising=False)
    monkeypatch.delenv("STOREHOOK_VERIFY_SIGNATURES", raising=False)
    monkeypatch.delenv("STOREHOOK_SINK", raising=False)
    monkeypatch.setattr(dispatch_module, "_dispatcher_instance", None)
