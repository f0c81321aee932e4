"""
Centralized constants for the push pipeline (Encapsulate What Changes).

Gateway limits and error codes live here instead of scattered literals in the transport.
Tunables (retries, backoff, deadlines) come from Settings so each environment can differ.
"""

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

# Expo accepts at most 100 messages per request
GATEWAY_BATCH_LIMIT = 100

# Ticket statuses and the detail codes the gateway can report
TICKET_OK = "ok"
TICKET_ERROR = "error"
DEVICE_NOT_REGISTERED = "DeviceNotRegistered"
INVALID_CREDENTIALS = "InvalidCredentials"
MESSAGE_TOO_BIG = "MessageTooBig"
MESSAGE_RATE_EXCEEDED = "MessageRateExceeded"

# Only this code retires a token; everything else is left for ops inspection
PERMANENT_TOKEN_ERRORS = frozenset({DEVICE_NOT_REGISTERED})

MISSING_TICKET_MESSAGE = "Missing ticket in gateway response"
UNKNOWN_ERROR_MESSAGE = "Unknown error after retries"

# Log only a prefix of push tokens
TOKEN_LOG_PREFIX = 20
