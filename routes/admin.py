from flask import Blueprint, jsonify, g, request

from models.audit_log import AuditLog
from security.rbac import require_admin
from services import availability
from services.store import ReservationStore
from utils.audit import log_event
from utils.auth_context import login_required
from utils.serializers import reservation_to_dict

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.get("/reservations")
@login_required
@require_admin
def all_reservations():
    day = None
    date_str = request.args.get("date")
    if date_str:
        day = availability.parse_day(date_str)
        if day is None:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    rows = ReservationStore().list_reservations(day=day)
    log_event("ADMIN_DASHBOARD_VIEW", player=g.player)
    return jsonify(
        reservations=[reservation_to_dict(r) for r in rows],
        stats=availability.summarize(rows),
    ), 200


@admin_bp.delete("/reservations/<reservation_id>")
@login_required
@require_admin
def delete_any_reservation(reservation_id: str):
    ReservationStore().delete_reservation(reservation_id, player=g.player, force=True)
    return jsonify(message="Booking deleted by admin"), 200


@admin_bp.get("/audit-logs")
@login_required
@require_admin
def list_audit_logs():
    limit = request.args.get("limit", type=int) or 200
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    q = AuditLog.query
    if action:
        q = q.filter(AuditLog.action == action)

    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(limit).all()
    return jsonify([
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat() if r.timestamp else None,
            "actor_name": r.actor_name,
            "actor_level": r.actor_level,
            "action": r.action,
            "entity": r.entity,
            "entity_id": r.entity_id,
            "ip": r.ip,
            "metadata": r.metadata_json,
        }
        for r in rows
    ]), 200
