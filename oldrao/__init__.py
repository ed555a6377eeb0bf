"""
                Old Rao Restaurant Ordering System

Menu, cart checkout, orders, table reservations and contact messages,
with an admin dashboard that follows order activity live over
server-sent events.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
