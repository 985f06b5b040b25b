from functools import wraps
from flask import g, jsonify
from security.session import get_session_from_request
from services.identity import Player

def load_current_player():
    sess = get_session_from_request()
    if not sess:
        g.player = None
        g.session = None
        return
    g.session = sess
    g.player = Player(sess.player_name, sess.player_level)

def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "player", None) is None:
            return jsonify(error="Authentication required"), 401
        return fn(*args, **kwargs)
    return wrapper
