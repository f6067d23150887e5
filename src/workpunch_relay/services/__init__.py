"""Business services for the Workpunch relay.

The clock synchronization pipeline is built from four parts:

- :mod:`.locks` - per-subject advisory locks
- :mod:`.time_normalizer` - timestamp validation and canonicalization
- :mod:`.reconciler` - the create / patch / reject decision
- :mod:`.salesforce` - the Salesforce REST gateway
"""

from .clock_sync import ClockSyncRequest, ClockSyncService, SyncResult, SyncStatus
from .locks import LockManager, get_lock_manager

__all__ = [
    "ClockSyncRequest",
    "ClockSyncService",
    "LockManager",
    "SyncResult",
    "SyncStatus",
    "get_lock_manager",
]
