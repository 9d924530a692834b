"""
app/bridge/settings_launcher.py

Purpose: Biometric settings navigation

- Ordered fallbacks: biometric enrollment, security settings, general settings
- Every launch failure is swallowed; the user simply stays where they are
"""

from typing import Callable, List, Optional

from app.core.logging import get_logger
from utils.constants import (
    ACTION_BIOMETRIC_ENROLL,
    ACTION_FINGERPRINT_ENROLL,
    ACTION_SECURITY_SETTINGS,
    ACTION_SETTINGS,
    SDK_P,
    SDK_R,
)

logger = get_logger(__name__)

# Starts a settings screen by intent action; raises if it cannot be resolved
ActivityLauncher = Callable[[str], None]


def settings_fallbacks(sdk_int: int) -> List[str]:
    """
    Settings screens to try, best first, for a given platform API level.
    """
    actions = []
    if sdk_int >= SDK_R:
        actions.append(ACTION_BIOMETRIC_ENROLL)
    if sdk_int >= SDK_P:
        actions.append(ACTION_FINGERPRINT_ENROLL)
    actions.extend([ACTION_SECURITY_SETTINGS, ACTION_SETTINGS])
    return actions


def open_biometric_settings(launcher: ActivityLauncher, sdk_int: int) -> Optional[str]:
    """
    Launches the first settings screen that opens.

    Returns:
        The action that launched, or None if all of them failed
    """
    for action in settings_fallbacks(sdk_int):
        try:
            launcher(action)
            logger.debug(f"Opened settings screen {action}")
            return action
        except Exception as e:
            logger.debug(f"Settings screen {action} unavailable: {e}")

    logger.warning("No settings screen could be opened")
    return None
