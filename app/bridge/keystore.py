"""
app/bridge/keystore.py

Purpose: Secure key storage for biometric-gated signing keys

- KeyGenParameterSpec mirrors the platform key generation options
- SoftwareKeyStore keeps EC private keys in process and never exports them
- Keys that require user authentication only sign after a biometric
  ceremony has authorized the specific Signature object
- Enrollment changes permanently invalidate enrollment-bound keys
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from app.core.logging import get_logger
from utils.constants import KEY_CURVE

logger = get_logger(__name__)

PURPOSE_SIGN = "sign"
PURPOSE_VERIFY = "verify"

DIGEST_SHA256 = "SHA-256"
DIGEST_SHA512 = "SHA-512"

_CURVES = {
    "secp256r1": ec.SECP256R1,
}

_DIGESTS = {
    "SHA256withECDSA": (DIGEST_SHA256, hashes.SHA256),
    "SHA512withECDSA": (DIGEST_SHA512, hashes.SHA512),
}


class KeyStoreError(Exception):
    """Base keystore failure."""
    pass


class UserNotAuthenticatedError(KeyStoreError):
    """Signing attempted without a fresh biometric authorization."""
    pass


class KeyPermanentlyInvalidatedError(KeyStoreError):
    """Key was invalidated by a biometric enrollment change."""
    pass


@dataclass(frozen=True)
class KeyGenParameterSpec:
    alias: str
    purposes: Tuple[str, ...] = (PURPOSE_SIGN, PURPOSE_VERIFY)
    curve: str = KEY_CURVE
    digests: Tuple[str, ...] = (DIGEST_SHA256, DIGEST_SHA512)
    user_authentication_required: bool = True
    # 0 means every use needs its own authentication
    user_authentication_validity_seconds: int = 0
    invalidated_by_biometric_enrollment: bool = True


@dataclass
class _KeyEntry:
    spec: KeyGenParameterSpec
    private_key: ec.EllipticCurvePrivateKey
    invalidated: bool = False


@dataclass(eq=False)
class PrivateKeyHandle:
    """
    Opaque reference to a keystore entry. Holds no key material.
    """
    alias: str
    _store: "SoftwareKeyStore" = field(repr=False)


class Signature:
    """
    Signature object bound to one private key, in the style of
    java.security.Signature: init_sign, update, sign.

    When the key requires user authentication, sign() only succeeds after
    the biometric prompt authorized this object, and the authorization is
    consumed by that single signature.
    """

    def __init__(self, algorithm: str = "SHA256withECDSA"):
        if algorithm not in _DIGESTS:
            raise KeyStoreError(f"Unsupported signature algorithm: {algorithm}")
        self.algorithm = algorithm
        self._handle: Optional[PrivateKeyHandle] = None
        self._buffer = bytearray()
        self._authorized = False

    @property
    def alias(self) -> Optional[str]:
        return self._handle.alias if self._handle else None

    def init_sign(self, handle: PrivateKeyHandle):
        entry = handle._store._entry(handle.alias)
        digest_name, _ = _DIGESTS[self.algorithm]
        if digest_name not in entry.spec.digests:
            raise KeyStoreError(f"Digest {digest_name} not authorized for key {handle.alias}")
        if PURPOSE_SIGN not in entry.spec.purposes:
            raise KeyStoreError(f"Key {handle.alias} is not a signing key")
        self._handle = handle
        self._buffer = bytearray()
        self._authorized = False

    def authorize(self):
        """Grants one signing operation; called by the biometric prompt."""
        if self._handle is None:
            raise KeyStoreError("Signature not initialized")
        self._authorized = True

    def update(self, data: bytes):
        if self._handle is None:
            raise KeyStoreError("Signature not initialized")
        self._buffer.extend(data)

    def sign(self) -> bytes:
        """
        Returns a DER-encoded ECDSA signature over the buffered data.

        Raises:
            UserNotAuthenticatedError: key needs authentication and this
                object was not authorized
            KeyPermanentlyInvalidatedError: enrollment changed since init
        """
        if self._handle is None:
            raise KeyStoreError("Signature not initialized")

        entry = self._handle._store._entry(self._handle.alias)
        if entry.spec.user_authentication_required and not self._authorized:
            raise UserNotAuthenticatedError("User not authenticated")

        _, hash_cls = _DIGESTS[self.algorithm]
        try:
            return entry.private_key.sign(bytes(self._buffer), ec.ECDSA(hash_cls()))
        finally:
            self._buffer = bytearray()
            self._authorized = False


class SoftwareKeyStore:
    """
    In-process keystore with the platform keystore's contract.

    Hardware-backed stores implement the same methods; the bridge only
    depends on this interface.
    """

    def __init__(self):
        self._entries: Dict[str, _KeyEntry] = {}

    def generate_key_pair(self, spec: KeyGenParameterSpec) -> bytes:
        """
        Generates and stores a key pair under spec.alias.

        Returns:
            Public key as X.509 SubjectPublicKeyInfo DER bytes
        """
        curve_cls = _CURVES.get(spec.curve)
        if curve_cls is None:
            raise KeyStoreError(f"Unsupported curve: {spec.curve}")
        if spec.alias in self._entries:
            raise KeyStoreError(f"Alias already exists: {spec.alias}")

        private_key = ec.generate_private_key(curve_cls())
        self._entries[spec.alias] = _KeyEntry(spec=spec, private_key=private_key)
        logger.debug(f"Generated {spec.curve} key pair for alias {spec.alias}")

        return self.get_public_key(spec.alias)

    def contains_alias(self, alias: str) -> bool:
        return alias in self._entries

    def get_public_key(self, alias: str) -> bytes:
        entry = self._entries.get(alias)
        if entry is None:
            raise KeyStoreError(f"No key for alias {alias}")
        return entry.private_key.public_key().public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def get_key(self, alias: str) -> Optional[PrivateKeyHandle]:
        """Returns a handle for the private key, or None if absent."""
        if alias not in self._entries:
            return None
        return PrivateKeyHandle(alias=alias, _store=self)

    def delete_entry(self, alias: str) -> bool:
        return self._entries.pop(alias, None) is not None

    def on_biometric_enrollment_changed(self) -> int:
        """
        Marks every enrollment-bound key permanently invalid.

        Returns:
            Number of keys invalidated
        """
        count = 0
        for alias, entry in self._entries.items():
            if entry.spec.invalidated_by_biometric_enrollment and not entry.invalidated:
                entry.invalidated = True
                count += 1
                logger.info(f"Key {alias} invalidated by biometric enrollment change")
        return count

    def _entry(self, alias: str) -> _KeyEntry:
        entry = self._entries.get(alias)
        if entry is None:
            raise KeyStoreError(f"No key for alias {alias}")
        if entry.invalidated:
            raise KeyPermanentlyInvalidatedError(f"Key {alias} permanently invalidated")
        return entry
