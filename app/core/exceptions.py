from typing import Optional, Any

class AlventuraError(Exception):
    """
    Base exception for the Alventura backend.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ArgumentError(AlventuraError):
    """
    Raised when caller input is missing or malformed.
    """
    def __init__(self, message: str = "Invalid argument", details: Optional[Any] = None):
        super().__init__(message, code="ARG_ERR", status_code=400, details=details)

class AuthError(AlventuraError):
    """
    Raised when a bearer token or hook secret is missing or invalid.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTH_ERROR", status_code=401, details=details)

class WebhookSignatureError(AuthError):
    """
    Raised when a Stripe webhook cannot be verified.
    """
    def __init__(self, message: str = "Webhook signature verification failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "WEBHOOK_SIGNATURE_ERROR"
        self.status_code = 400

class UpstreamError(AlventuraError):
    """
    Raised when Stripe or the database fails.
    """
    def __init__(self, message: str = "Upstream service error", details: Optional[Any] = None):
        super().__init__(message, code="UPSTREAM_ERROR", status_code=500, details=details)


# Biometric bridge errors. These cross the platform channel as {code, message}.

class BridgeError(AlventuraError):
    """
    Base exception for biometric bridge failures.
    """
    def __init__(self, message: str, code: str, details: Optional[Any] = None):
        super().__init__(message, code=code, status_code=500, details=details)

class KeyCreationError(BridgeError):
    def __init__(self, message: str = "Key creation failed", details: Optional[Any] = None):
        super().__init__(message, code="ERR_CREATE_KEY", details=details)

class KeyNotFoundError(BridgeError):
    def __init__(self, message: str = "No key for alias", details: Optional[Any] = None):
        super().__init__(message, code="NO_KEY", details=details)

class BiometricError(BridgeError):
    """
    Raised when the biometric ceremony ends in an error or cancellation.
    """
    def __init__(self, error_code: int, error_message: str, details: Optional[Any] = None):
        super().__init__(f"{error_code}: {error_message}", code="BIO_ERROR", details=details)
        self.error_code = error_code
        self.error_message = error_message

class SigningError(BridgeError):
    def __init__(self, message: str = "Signing failed", details: Optional[Any] = None):
        super().__init__(message, code="SIGN_ERR", details=details)
