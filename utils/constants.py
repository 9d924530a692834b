"""
utils/constants.py

Purpose: Centralized static values

- Document collection names
- Stripe event types and payment record types
- Biometric bridge method names, key alias prefix and settings actions

(Prevents hardcoding across the codebase)
"""

# ============================================================
# COLLECTIONS
# ============================================================

USERS_COLLECTION = "users"
# users/{uid}/payments/{id}, flattened; _id is "<uid>:<stripeId>"
USER_PAYMENTS_COLLECTION = "user_payments"
PAYMENTS_COLLECTION = "payments"
INVOICES_COLLECTION = "invoices"

# ============================================================
# PAYMENTS
# ============================================================

FIREBASE_UID_METADATA_KEY = "firebaseUid"

RECORD_TYPE_PAYMENT_INTENT = "payment_intent"
RECORD_TYPE_INVOICE = "invoice"

EVENT_PAYMENT_INTENT_SUCCEEDED = "payment_intent.succeeded"
EVENT_INVOICE_PAID = "invoice.paid"

STATUS_SUCCEEDED = "succeeded"
STATUS_PAID = "paid"

STRIPE_SIGNATURE_HEADER = "stripe-signature"
DUMMY_STRIPE_SECRET = "sk_test_dummy"

# ============================================================
# BIOMETRIC BRIDGE
# ============================================================

BIOMETRIC_CHANNEL = "com.example.app/biometric"

METHOD_CREATE_KEY = "createBiometricKeyForUser"
METHOD_SIGN_CHALLENGE = "signChallenge"
METHOD_OPEN_SETTINGS = "openBiometricSettings"
METHOD_DELETE_KEY = "deleteBiometricKey"

KEY_ALIAS_PREFIX = "biokey_"
KEY_CURVE = "secp256r1"
SIGNATURE_ALGORITHM = "SHA256withECDSA"

PROMPT_TITLE = "Confirm biometrics"
PROMPT_SUBTITLE = "Authenticate to sign challenge"
PROMPT_NEGATIVE_BUTTON = "Cancel"

ACTION_BIOMETRIC_ENROLL = "android.settings.BIOMETRIC_ENROLL"
ACTION_FINGERPRINT_ENROLL = "android.settings.FINGERPRINT_ENROLL"
ACTION_SECURITY_SETTINGS = "android.settings.SECURITY_SETTINGS"
ACTION_SETTINGS = "android.settings.SETTINGS"

# Android API levels
SDK_P = 28
SDK_R = 30
