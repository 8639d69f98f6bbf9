"""
Gunicorn configuration for ScanReward.
"""
import os

bind = f"0.0.0.0:{os.getenv('PORT', '8080')}"

# Scans hold a row lock for the length of one transaction, sync workers suffice
workers = int(os.getenv('GUNICORN_WORKERS', '2'))
worker_class = 'sync'

# Above TRANSACTION_TIMEOUT_SECONDS so the database gives up first
timeout = int(os.getenv('TRANSACTION_TIMEOUT_SECONDS', '60')) + 30
keepalive = 5

accesslog = '-'
errorlog = '-'
loglevel = os.getenv('LOG_LEVEL', 'info')
capture_output = True

proc_name = 'scanreward'
preload_app = True
graceful_timeout = 30


def on_starting(server):
    print("[Gunicorn] Starting ScanReward server...")


def on_exit(server):
    print("[Gunicorn] ScanReward server shutting down...")
