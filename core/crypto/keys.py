"""RSA signing key management."""

import base64
import hashlib
from pathlib import Path
from typing import Any

from authlib.jose import JsonWebKey, jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from core.consts import JWT_ALG
from core.errors import KeyLoadError


def _b64url_encode_no_pad(b: bytes) -> str:
    return base64.urlsafe_b64encode(b).decode("utf-8").rstrip("=")


def compute_kid(public_key: rsa.RSAPublicKey) -> str:
    """Key id derived from the SHA-256 of the DER SubjectPublicKeyInfo."""
    der = public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return _b64url_encode_no_pad(hashlib.sha256(der).digest())


def load_private_key_pem(pem: bytes) -> rsa.RSAPrivateKey:
    """Parse a PKCS#1 or PKCS#8 PEM; reject anything that is not RSA."""
    try:
        key = serialization.load_pem_private_key(pem, password=None)
    except (ValueError, TypeError) as ex:
        raise KeyLoadError(f"failed to parse private key: {ex}") from ex
    if not isinstance(key, rsa.RSAPrivateKey):
        raise KeyLoadError("private key must be RSA")
    return key


class KeyManager:
    """Holds the single RSA signing key of the authorization server."""

    def __init__(self, private_key: rsa.RSAPrivateKey) -> None:
        """Constructor."""
        self._private_key = private_key
        self._public_key = private_key.public_key()
        self._kid = compute_kid(self._public_key)
        pkcs8 = private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
        self._signing_key = JsonWebKey.import_key(pkcs8, {"kty": "RSA"})

    @classmethod
    def from_pem(cls, pem: str | bytes) -> "KeyManager":
        """Build from PEM text; literal backslash-n sequences are unescaped."""
        if isinstance(pem, str):
            pem = pem.replace("\\n", "\n").encode("utf-8")
        return cls(load_private_key_pem(pem))

    @classmethod
    def from_path(cls, path: str) -> "KeyManager":
        """Build from a PEM file on disk."""
        try:
            data = Path(path).read_bytes()
        except OSError as ex:
            raise KeyLoadError(f"failed to read private key file {path}: {ex}") from ex
        return cls.from_pem(data)

    @classmethod
    def from_settings(cls, settings) -> "KeyManager":
        """Inline PEM wins over a file path; neither is fatal."""
        if settings.PRIVATE_KEY_PEM:
            return cls.from_pem(settings.PRIVATE_KEY_PEM)
        if settings.PRIVATE_KEY_PATH:
            return cls.from_path(settings.PRIVATE_KEY_PATH)
        raise KeyLoadError(
            "missing signing key: set OAUTH_PRIVATE_KEY_PEM or OAUTH_PRIVATE_KEY_PATH"
        )

    @property
    def kid(self) -> str:
        """Content-derived key id."""
        return self._kid

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        """Public half of the signing key."""
        return self._public_key

    def public_jwk(self) -> dict[str, Any]:
        """Public JWK with kid, use and alg."""
        numbers = self._public_key.public_numbers()
        n = numbers.n.to_bytes((numbers.n.bit_length() + 7) // 8, "big")
        e = numbers.e.to_bytes((numbers.e.bit_length() + 7) // 8, "big")
        return {
            "kty": "RSA",
            "use": "sig",
            "kid": self._kid,
            "alg": JWT_ALG,
            "n": _b64url_encode_no_pad(n),
            "e": _b64url_encode_no_pad(e),
        }

    def jwks(self) -> dict[str, list[dict[str, Any]]]:
        """JWKS document holding the single public key."""
        return {"keys": [self.public_jwk()]}

    def sign_jwt(self, claims: dict[str, Any]) -> str:
        """Sign claims as a compact RS256 JWS."""
        header = {"alg": JWT_ALG, "kid": self._kid, "typ": "JWT"}
        return jwt.encode(header, claims, self._signing_key).decode()
