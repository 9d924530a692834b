"""
app/bridge/biometric.py

Purpose: Biometric prompt adapter

- PromptInfo / CryptoObject / AuthenticationResult value types
- Turns the platform's callback-style ceremony into an awaitable
- A successful ceremony authorizes the bound Signature for one use
- Errors and cancellations surface as BiometricAuthError(code, message)
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Optional

from app.bridge.keystore import Signature
from app.core.logging import get_logger

logger = get_logger(__name__)

# Platform error codes (BiometricPrompt.ERROR_*)
ERROR_HW_UNAVAILABLE = 1
ERROR_UNABLE_TO_PROCESS = 2
ERROR_TIMEOUT = 3
ERROR_NO_SPACE = 4
ERROR_CANCELED = 5
ERROR_LOCKOUT = 7
ERROR_VENDOR = 8
ERROR_LOCKOUT_PERMANENT = 9
ERROR_USER_CANCELED = 10
ERROR_NO_BIOMETRICS = 11
ERROR_HW_NOT_PRESENT = 12
ERROR_NEGATIVE_BUTTON = 13
ERROR_NO_DEVICE_CREDENTIAL = 14

CANCELLATION_CODES = frozenset({ERROR_CANCELED, ERROR_USER_CANCELED, ERROR_NEGATIVE_BUTTON})


class BiometricAuthError(Exception):
    """Terminal ceremony error reported by the platform."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    @property
    def cancelled(self) -> bool:
        return self.code in CANCELLATION_CODES


@dataclass(frozen=True)
class PromptInfo:
    title: str
    subtitle: Optional[str] = None
    negative_button_text: str = "Cancel"


@dataclass(frozen=True)
class CryptoObject:
    signature: Signature


@dataclass(frozen=True)
class AuthenticationResult:
    crypto_object: Optional[CryptoObject] = None


class AuthenticationCallback:
    """
    Receives platform callbacks, possibly from another thread, and settles
    the awaiting future exactly once.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, future: asyncio.Future, crypto_object: CryptoObject):
        self._loop = loop
        self._future = future
        self._crypto_object = crypto_object

    def on_authentication_succeeded(self):
        def settle():
            if self._future.done():
                return
            self._crypto_object.signature.authorize()
            self._future.set_result(AuthenticationResult(crypto_object=self._crypto_object))

        self._loop.call_soon_threadsafe(settle)

    def on_authentication_error(self, error_code: int, error_message: str):
        def settle():
            if self._future.done():
                return
            self._future.set_exception(BiometricAuthError(error_code, str(error_message)))

        self._loop.call_soon_threadsafe(settle)

    def on_authentication_failed(self):
        # Not terminal: the prompt stays up for another attempt
        logger.debug("Biometric attempt not recognized")


Presenter = Callable[[PromptInfo, CryptoObject, AuthenticationCallback], None]


class BiometricPrompt:
    """
    Awaitable biometric ceremony.

    The presenter shows the platform prompt and later invokes one of the
    callback's terminal methods. Cancelling the awaiting task (e.g. the
    caller timed out) abandons the ceremony; late callbacks are ignored.
    """

    def __init__(self, presenter: Presenter):
        self._presenter = presenter

    async def authenticate(self, prompt_info: PromptInfo, crypto_object: CryptoObject) -> AuthenticationResult:
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        callback = AuthenticationCallback(loop, future, crypto_object)

        self._presenter(prompt_info, crypto_object, callback)

        return await future
