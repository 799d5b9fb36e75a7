"""
Store adapters and the reconcile service.
"""

from expiry_reconciler.services.firebase_service import FirebaseService
from expiry_reconciler.services.redis_key_source import RedisKeySource
from expiry_reconciler.services.reconcile_service import ReconcileService, run_reconcile
