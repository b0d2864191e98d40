import os
import sys

from dotenv import load_dotenv

from enums.currency import Currency
from enums.runtime_environment import RuntimeEnvironment

# Load .env but don't override existing environment variables
# This allows test runs to set RUNTIME_ENVIRONMENT=TEST before import
load_dotenv(".env", override=False)


def _exit_with_config_error(name: str, reason: Exception | str, expected: str) -> None:
    print(f"\n ERROR: Invalid {name} configuration\n", file=sys.stderr)
    print(f"Reason: {reason}", file=sys.stderr)
    print(f"Expected: {expected}", file=sys.stderr)
    print(f"Current value: {os.environ.get(name, '(not set)')}\n", file=sys.stderr)
    sys.exit(1)


def _int_setting(name: str, default: int, minimum: int = 0) -> int:
    try:
        value = int(os.environ.get(name, str(default)))
        if value < minimum:
            raise ValueError(f"{name} must be >= {minimum} (got: {value})")
        return value
    except ValueError as e:
        _exit_with_config_error(name, e, f"Integer >= {minimum}")


# Parse RUNTIME_ENVIRONMENT with clear error message on misconfiguration
try:
    RUNTIME_ENVIRONMENT = RuntimeEnvironment(os.environ.get("RUNTIME_ENVIRONMENT", RuntimeEnvironment.DEV.value))
except ValueError as e:
    _exit_with_config_error(
        "RUNTIME_ENVIRONMENT", e, ", ".join(env.value for env in RuntimeEnvironment)
    )

WEBAPP_HOST = os.environ.get("WEBAPP_HOST", "0.0.0.0")
WEBAPP_PORT = _int_setting("WEBAPP_PORT", 8000, minimum=1)

# Public URL of this service, used for gateway return URLs and the webhook notification URL
PUBLIC_BASE_URL = os.environ.get("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
WEBHOOK_PATH = os.environ.get("WEBHOOK_PATH", "/webhooks/payments")

# Browser origins allowed to call the API (comma separated, empty = CORS disabled)
CORS_ALLOWED_ORIGINS = [origin.strip() for origin in os.environ.get("CORS_ALLOWED_ORIGINS", "").split(",")
                        if origin.strip()]

# Database
DB_URL = os.environ.get("DB_URL", "sqlite+aiosqlite:///data/storefront.db")
DB_BUSY_TIMEOUT_SECONDS = _int_setting("DB_BUSY_TIMEOUT_SECONDS", 15, minimum=1)

# Parse CURRENCY with error handling
try:
    CURRENCY = Currency(os.environ.get("CURRENCY", Currency.ARS.value))
except ValueError as e:
    _exit_with_config_error("CURRENCY", e, ", ".join(c.value for c in Currency))

# Admin authorization
# Identity is supplied by the upstream identity provider; these ids carry the admin capability
try:
    _admin_ids_str = os.environ.get("ADMIN_USER_IDS", "")
    ADMIN_USER_IDS = [admin_id.strip() for admin_id in _admin_ids_str.split(",") if admin_id.strip()]
except AttributeError as e:
    _exit_with_config_error("ADMIN_USER_IDS", e, "Comma-separated list of user ids")

# Payment gateway (Mercado Pago compatible REST API)
PAYMENT_GATEWAY_API_URL = os.environ.get("PAYMENT_GATEWAY_API_URL", "https://api.mercadopago.com").rstrip("/")
PAYMENT_GATEWAY_ACCESS_TOKEN = os.environ.get("PAYMENT_GATEWAY_ACCESS_TOKEN", "")
PAYMENT_GATEWAY_TIMEOUT_SECONDS = _int_setting("PAYMENT_GATEWAY_TIMEOUT_SECONDS", 10, minimum=1)
PAYMENT_WEBHOOK_SECRET = os.environ.get("PAYMENT_WEBHOOK_SECRET", "")  # Empty = signature check disabled
PAYMENT_STATEMENT_DESCRIPTOR = os.environ.get("PAYMENT_STATEMENT_DESCRIPTOR", "STOREFRONT")

# Shipping rates in minor currency units
SHIPPING_COST_NEAR = _int_setting("SHIPPING_COST_NEAR", 50000)
SHIPPING_COST_FAR = _int_setting("SHIPPING_COST_FAR", 100000)
SHIPPING_COST_PER_EXTRA_KG = _int_setting("SHIPPING_COST_PER_EXTRA_KG", 20000)
SHIPPING_WEIGHT_THRESHOLD_GRAMS = _int_setting("SHIPPING_WEIGHT_THRESHOLD_GRAMS", 1000)

# Order confirmation email (Brevo transactional email API)
EMAIL_API_URL = os.environ.get("EMAIL_API_URL", "https://api.brevo.com/v3/smtp/email")
EMAIL_API_KEY = os.environ.get("EMAIL_API_KEY", "")
EMAIL_FROM_ADDRESS = os.environ.get("EMAIL_FROM_ADDRESS", "orders@example.com")
EMAIL_FROM_NAME = os.environ.get("EMAIL_FROM_NAME", "Storefront")
EMAIL_TIMEOUT_SECONDS = _int_setting("EMAIL_TIMEOUT_SECONDS", 10, minimum=1)
NOTIFICATION_QUEUE_SIZE = _int_setting("NOTIFICATION_QUEUE_SIZE", 1000, minimum=1)

# Transactions
TRANSACTION_MAX_RETRIES = _int_setting("TRANSACTION_MAX_RETRIES", 3)

# Order listing
ORDER_PAGE_SIZE_DEFAULT = _int_setting("ORDER_PAGE_SIZE_DEFAULT", 20, minimum=1)
ORDER_PAGE_SIZE_MAX = _int_setting("ORDER_PAGE_SIZE_MAX", 100, minimum=1)

# Logging Configuration
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")  # DEBUG, INFO, WARNING, ERROR, CRITICAL
LOG_MASK_SECRETS = os.environ.get("LOG_MASK_SECRETS", "true") == "true"  # Mask sensitive data in logs

# Log Retention: Environment-specific defaults
# Dev keeps logs longer for debugging, prod saves disk space
if RUNTIME_ENVIRONMENT == RuntimeEnvironment.DEV:
    LOG_RETENTION_DAYS = _int_setting("LOG_RETENTION_DAYS", 30)
else:
    LOG_RETENTION_DAYS = _int_setting("LOG_RETENTION_DAYS", 5)
