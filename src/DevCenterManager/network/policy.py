# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.network.policy",
#   "purpose": "HTTP policy constants and defaults.",
#   "sections": []
# }
# === /NAVMAP ===

"""HTTP policy constants and defaults.

Retry budgets, delays, and endpoint templates used by the token provider, the
resilient invoker, and the polling loop.  :mod:`DevCenterManager.settings`
exposes the tunable subset; these values are its defaults.
"""

# ============================================================================
# Retry Budget
# ============================================================================

#: Attempts per invocation, including the first one
MAX_RETRIES = 10

#: Fixed pause after a timeout that the caller did not request
TIMEOUT_RETRY_DELAY = 2.0

#: Bounds of the uniform random pause after a 500 or 502 response
SERVER_ERROR_BACKOFF = (1.0, 10.0)

#: Status codes retried with the random server backoff
SERVER_ERROR_STATUSES = frozenset({500, 502})

#: HTTP verbs the invoker implements
SUPPORTED_METHODS = frozenset({"GET", "POST"})


# ============================================================================
# Polling
# ============================================================================

#: Pause between status fetches while waiting for a terminal state
POLL_INTERVAL = 5.0

#: Pause after a 429 response before the next status fetch
RATE_LIMIT_DELAY = 5.0


# ============================================================================
# Timeouts
# ============================================================================

#: Default overall per-request timeout (seconds)
HTTP_TIMEOUT = 300.0

#: Connection establishment timeout
HTTP_CONNECT_TIMEOUT = 30.0


# ============================================================================
# Identity
# ============================================================================

#: Token endpoint template; ``authority`` and ``tenant_id`` are substituted
TOKEN_URL_TEMPLATE = "{authority}/{tenant_id}/oauth2/token"

#: Resource the client-credential grant is issued for
TOKEN_RESOURCE = "https://manage.devcenter.microsoft.com"


# ============================================================================
# Blob Storage
# ============================================================================

#: Block size for blob uploads and streamed downloads
BLOB_BLOCK_SIZE = 256 * 1024

#: Storage service version sent with block blob requests
BLOB_API_VERSION = "2019-12-12"
