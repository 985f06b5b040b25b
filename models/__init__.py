from .db import db
from .reservation import Reservation
from .participant import Participant
from .session import PlayerSession
from .conversation import Conversation
from .audit_log import AuditLog
from .ip_rate_limit import IpRateLimit
