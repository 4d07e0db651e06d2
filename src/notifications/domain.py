"""Notifications bounded context — multi-channel fan-out for plant operations.

Turns a single send request (recipients by id or role, one or more
channels) into one persisted Notification per eligible (recipient, channel)
pair, delivers each through its channel, and tracks the delivery lifecycle
through read, acknowledgement, retry and expiry. Also owns per-user
preferences (opt-in, quiet hours, unsubscribe links) and tenant templates.
"""

import structlog
from protean.domain import Domain

notifications = Domain(name="notifications")

logger = structlog.get_logger(__name__)
