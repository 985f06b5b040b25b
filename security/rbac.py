import hmac
from functools import wraps
from flask import current_app, g, jsonify, request

ADMIN_HEADER = "X-Admin-Code"

def is_admin_request() -> bool:
    code = current_app.config.get("ADMIN_ACCESS_CODE")
    if not code:
        # no code configured: the admin view is open to any logged-in player
        return getattr(g, "player", None) is not None
    supplied = request.headers.get(ADMIN_HEADER) or ""
    return hmac.compare_digest(supplied, code)

def require_admin(fn):
    """
    Usage: @require_admin (after @login_required)
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "player", None) is None:
            return jsonify(error="Authentication required"), 401
        if not is_admin_request():
            return jsonify(error="Forbidden"), 403
        return fn(*args, **kwargs)
    return wrapper
