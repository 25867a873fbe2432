# Overview: Request decorators for API routes (tenant context, caller-side retry).

from functools import wraps

from flask import current_app, g, jsonify, request

from .errors import NotFound
from .services import tenant_service
from .services.concurrency import run_with_retry


TENANT_HEADER = "X-Tenant-Id"
USER_HEADER = "X-User-Id"


def _header_int(name: str):
    raw = request.headers.get(name)
    if raw is None or not raw.strip().isdigit():
        return None
    return int(raw)


def require_tenant(f):
    """
    Establish tenant context from the authenticating gateway's headers.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.tenant_id: tenant every service call is scoped to - REQUIRED
    - g.user_id: acting user for ledger attribution (may be None)

    SECURITY: This service does not authenticate. The gateway in front of it
    verifies the caller and injects X-Tenant-Id / X-User-Id; requests without
    a valid, active tenant get 401.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        tenant_id = _header_int(TENANT_HEADER)
        if tenant_id is None:
            return jsonify({"error": "Tenant context required", "code": "tenant_required"}), 401

        try:
            tenant_service.get_active_tenant(tenant_id)
        except NotFound:
            return jsonify({"error": "Unknown or inactive tenant", "code": "tenant_required"}), 401

        g.tenant_id = tenant_id
        g.user_id = _header_int(USER_HEADER)
        return f(*args, **kwargs)

    return decorated_function


def with_retry(func):
    """Run a mutating service call with the app's retry policy."""
    return run_with_retry(
        func,
        attempts=current_app.config.get("LEDGER_RETRY_ATTEMPTS", 3),
        backoff_base=current_app.config.get("LEDGER_RETRY_BASE_DELAY", 0.05),
    )
