"""
app/bridge/key_service.py

Purpose: Biometric key operations behind the platform channel

- Create a biometric-gated secp256r1 signing key per device registration
- Sign a base64 challenge after a fresh biometric ceremony
- Delete a device key
- Open the biometric enrollment settings (best effort)
"""

import base64
import binascii
import uuid
from typing import Dict, Optional

from app.bridge.biometric import BiometricAuthError, BiometricPrompt, CryptoObject, PromptInfo
from app.bridge.keystore import (
    KeyGenParameterSpec,
    KeyPermanentlyInvalidatedError,
    Signature,
    SoftwareKeyStore,
)
from app.bridge.settings_launcher import ActivityLauncher, open_biometric_settings
from app.bridge.states import SigningSession, SigningState
from app.core.exceptions import (
    ArgumentError,
    BiometricError,
    KeyCreationError,
    KeyNotFoundError,
    SigningError,
)
from app.core.logging import get_logger, LogContext
from utils.constants import (
    KEY_ALIAS_PREFIX,
    SIGNATURE_ALGORITHM,
    PROMPT_TITLE,
    PROMPT_SUBTITLE,
    PROMPT_NEGATIVE_BUTTON,
)

logger = get_logger(__name__)


def key_alias_for(device_id: str) -> str:
    return f"{KEY_ALIAS_PREFIX}{device_id}"


def b64encode(data: bytes) -> str:
    """Standard alphabet, no line wrapping."""
    return base64.b64encode(data).decode("ascii")


class BiometricKeyService:
    """
    Drives the keystore and the biometric prompt on behalf of the app.
    """

    def __init__(
        self,
        keystore: SoftwareKeyStore,
        prompt: BiometricPrompt,
        launcher: Optional[ActivityLauncher] = None,
        sdk_int: int = 34,
    ):
        self.keystore = keystore
        self.prompt = prompt
        self.launcher = launcher
        self.sdk_int = sdk_int
        self.prompt_info = PromptInfo(
            title=PROMPT_TITLE,
            subtitle=PROMPT_SUBTITLE,
            negative_button_text=PROMPT_NEGATIVE_BUTTON,
        )

    def create_biometric_key_for_user(self) -> Dict[str, str]:
        """
        Generates a new device id and a biometric-gated key for it.

        Returns:
            {"deviceId", "publicKey" (base64 SPKI DER), "keyAlias"}

        Raises:
            KeyCreationError: any keystore failure
        """
        device_id = str(uuid.uuid4())
        alias = key_alias_for(device_id)

        spec = KeyGenParameterSpec(
            alias=alias,
            user_authentication_required=True,
            user_authentication_validity_seconds=0,
            invalidated_by_biometric_enrollment=True,
        )

        with LogContext(device_id=device_id):
            try:
                public_key = self.keystore.generate_key_pair(spec)
            except Exception as e:
                logger.error(f"Key creation failed: {e}")
                raise KeyCreationError(str(e)) from e

            logger.info("Biometric key created")

        return {
            "deviceId": device_id,
            "publicKey": b64encode(public_key),
            "keyAlias": alias,
        }

    async def sign_challenge(self, device_id: Optional[str], challenge: Optional[str]) -> Dict[str, str]:
        """
        Signs the decoded challenge with the device key after a biometric
        ceremony. No retry: a failed or cancelled ceremony is reported once.

        Raises:
            ArgumentError: deviceId/challenge missing, or challenge not base64
            KeyNotFoundError: no usable key for the device
            BiometricError: ceremony error or cancellation
            SigningError: failure after successful authentication
        """
        if not device_id or not challenge:
            raise ArgumentError("deviceId or challenge missing")

        try:
            challenge_bytes = base64.b64decode(challenge, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ArgumentError("challenge is not valid base64") from e

        alias = key_alias_for(device_id)
        session = SigningSession(alias)

        with LogContext(device_id=device_id):
            handle = self.keystore.get_key(alias)
            if handle is None:
                session.transition(SigningState.FAILED)
                raise KeyNotFoundError(f"No key for alias {alias}")

            signature = Signature(SIGNATURE_ALGORITHM)
            try:
                signature.init_sign(handle)
            except KeyPermanentlyInvalidatedError as e:
                session.transition(SigningState.FAILED)
                raise KeyNotFoundError(f"Key for alias {alias} was invalidated by a biometric enrollment change") from e
            except Exception as e:
                session.transition(SigningState.FAILED)
                raise SigningError(str(e)) from e

            session.transition(SigningState.AWAITING_BIOMETRIC)
            try:
                result = await self.prompt.authenticate(self.prompt_info, CryptoObject(signature))
            except BiometricAuthError as e:
                session.transition(SigningState.CANCELLED if e.cancelled else SigningState.FAILED)
                logger.info(f"Biometric ceremony ended: {session.state.value} ({e.code})")
                raise BiometricError(e.code, e.message) from e

            try:
                bound = result.crypto_object.signature if result.crypto_object else None
                if bound is None:
                    raise SigningError("Authentication result carries no signature")
                bound.update(challenge_bytes)
                signature_bytes = bound.sign()
            except SigningError:
                session.transition(SigningState.FAILED)
                raise
            except Exception as e:
                session.transition(SigningState.FAILED)
                logger.error(f"Signing failed after authentication: {e}")
                raise SigningError(str(e)) from e

            session.transition(SigningState.SIGNED)
            logger.info("Challenge signed")

        return {"signature": b64encode(signature_bytes)}

    def delete_biometric_key(self, device_id: Optional[str]) -> Dict[str, bool]:
        if not device_id:
            raise ArgumentError("deviceId missing")
        deleted = self.keystore.delete_entry(key_alias_for(device_id))
        with LogContext(device_id=device_id):
            logger.info(f"Biometric key delete requested (deleted={deleted})")
        return {"deleted": deleted}

    def open_biometric_settings(self) -> None:
        if self.launcher is None:
            logger.warning("No activity launcher configured; cannot open settings")
            return None
        open_biometric_settings(self.launcher, self.sdk_int)
        return None
