"""
app/bridge/dispatcher.py

Purpose: Platform-channel method dispatcher

- Receives method calls from the app front-end on com.example.app/biometric
- Routes them to BiometricKeyService
- Wraps every outcome in a channel envelope:
  {"success": result} | {"error": {code, message, details}} | {"notImplemented": true}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from app.bridge.key_service import BiometricKeyService
from app.core.exceptions import AlventuraError
from app.core.logging import get_logger
from utils.constants import (
    BIOMETRIC_CHANNEL,
    METHOD_CREATE_KEY,
    METHOD_SIGN_CHALLENGE,
    METHOD_OPEN_SETTINGS,
    METHOD_DELETE_KEY,
)

logger = get_logger(__name__)


@dataclass
class MethodCall:
    method: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    def argument(self, key: str) -> Optional[Any]:
        return (self.arguments or {}).get(key)


def success(result: Any) -> Dict[str, Any]:
    return {"success": result}


def error(code: str, message: Optional[str], details: Any = None) -> Dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def not_implemented() -> Dict[str, Any]:
    return {"notImplemented": True}


class BiometricChannel:
    """
    Method-call handler for the biometric channel.
    """

    name = BIOMETRIC_CHANNEL

    def __init__(self, service: BiometricKeyService):
        self.service = service

    async def handle(self, call: MethodCall) -> Dict[str, Any]:
        logger.debug(f"Channel call: {call.method}")

        try:
            if call.method == METHOD_CREATE_KEY:
                return success(self.service.create_biometric_key_for_user())

            elif call.method == METHOD_SIGN_CHALLENGE:
                result = await self.service.sign_challenge(
                    call.argument("deviceId"),
                    call.argument("challenge"),
                )
                return success(result)

            elif call.method == METHOD_OPEN_SETTINGS:
                self.service.open_biometric_settings()
                return success(None)

            elif call.method == METHOD_DELETE_KEY:
                return success(self.service.delete_biometric_key(call.argument("deviceId")))

            else:
                logger.warning(f"Unknown channel method: {call.method}")
                return not_implemented()

        except AlventuraError as e:
            logger.info(f"Channel call {call.method} failed: {e.code}")
            return error(e.code, e.message, e.details)
