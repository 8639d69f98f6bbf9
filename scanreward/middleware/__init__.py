"""
Middleware package for ScanReward.
"""
from .client_auth import require_client, get_client_id_from_request
