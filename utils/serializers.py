from services import availability


def participant_to_dict(p) -> dict:
    return {
        "id": p.id,
        "reservation_id": p.reservation_id,
        "player_name": p.player_name,
        "player_level": p.player_level,
        "joined_at": p.joined_at.isoformat() if p.joined_at else None,
    }


def reservation_to_dict(r, player=None) -> dict:
    out = {
        "id": r.id,
        "created_by_name": r.created_by_name,
        "created_by_level": r.created_by_level,
        "date": r.date.isoformat(),
        "start_time": r.start_time,
        "duration": r.duration,
        "session_type": r.session_type,
        "max_players": r.max_players,
        "created_at": r.created_at.isoformat() if r.created_at else None,
        "participants": [participant_to_dict(p) for p in r.participants],
        "occupancy": availability.occupancy(r),
        "spots_left": availability.spots_left(r),
        "is_full": availability.is_full(r),
    }
    if player is not None:
        member = availability.is_member(r, player)
        out["can_join"] = r.session_type == "open" and not member and not availability.is_full(r)
        out["can_leave"] = availability.is_participant(r, player)
        out["can_delete"] = availability.is_creator(r, player)
    return out
