"""
Coordinator constants.
"""

from __future__ import annotations

# Timeout for backend HTTP calls (seconds)
DEFAULT_TIMEOUT = 30.0

# BIP44 gap limit: stop scanning a chain after this many consecutive unused addresses
DEFAULT_GAP_LIMIT = 20

# How often an activity stream polls the backend for a new tip (seconds)
DEFAULT_POLL_INTERVAL = 10.0

# Reason attached to a discovery cancelled through its disposer
INTERRUPTED_BY_USER = "Interrupted by user"

# External (receive) and internal (change) BIP44 chains
EXTERNAL_CHAIN = 0
CHANGE_CHAIN = 1

# Hardened derivation offset
HARDENED_OFFSET = 0x80000000
