"""JWS signature verification for signed notification envelopes."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import jwt

from .decoding import decode_envelope
from .errors import (
    ExpiredOrMalformed,
    InvalidSignature,
    KeyLookupError,
    MissingKeyId,
    VerificationFailed,
)
from .keys import KeyResolver
from .models import VerifiedClaims

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHMS = ("ES256", "RS256")


class SignatureVerifier:
    """Validates envelopes against keys served by a :class:`KeyResolver`.

    Passing ``enabled=False`` keeps decoding but skips the cryptographic check.
    It exists for local testing and is never the default.
    """

    def __init__(
        self,
        resolver: KeyResolver,
        algorithms: Sequence[str] = DEFAULT_ALGORITHMS,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        leeway: int = 0,
        enabled: bool = True,
    ) -> None:
        self.resolver = resolver
        self.algorithms: List[str] = list(algorithms)
        self.audience = audience
        self.issuer = issuer
        self.leeway = leeway
        self.enabled = enabled
        if not enabled:
            logger.warning(
                f"Signature verification disabled for {resolver.name}; "
                "claims will be accepted unverified"
            )

    def verify(self, envelope: str) -> VerifiedClaims:
        """Return the trusted claims carried by ``envelope``.

        Raises:
            MalformedEnvelope: The envelope does not have three decodable segments.
            MalformedJson: The header or body is not a JSON object.
            MissingKeyId: The header has no ``kid``.
            VerificationFailed: The key could not be resolved.
            InvalidSignature: The signature does not match the resolved key.
            ExpiredOrMalformed: The token is expired or otherwise invalid.
        """
        decoded = decode_envelope(envelope)
        if not self.enabled:
            return decoded.claims

        key_id = decoded.key_id
        if key_id is None:
            raise MissingKeyId("Envelope header has no key id")

        try:
            signing_key = self.resolver.resolve(key_id)
        except KeyLookupError as exc:
            raise VerificationFailed(f"[{exc.code}] {exc}") from exc

        algorithm = signing_key.algorithm_name
        if algorithm not in self.algorithms:
            raise ExpiredOrMalformed(f"Key {key_id} uses disallowed algorithm {algorithm}")

        try:
            claims = jwt.decode(
                envelope,
                signing_key.key,
                algorithms=[algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={
                    "verify_aud": self.audience is not None,
                    "verify_iss": self.issuer is not None,
                },
            )
        except jwt.InvalidSignatureError as exc:
            raise InvalidSignature(f"Signature mismatch for key {key_id}") from exc
        except jwt.InvalidTokenError as exc:
            raise ExpiredOrMalformed(str(exc)) from exc

        logger.debug(f"Verified envelope signed with key {key_id}")
        return claims
