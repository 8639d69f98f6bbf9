"""
ScanReward loyalty engine entry point.
"""
import os
import sys
import traceback

print("[ScanReward] ========================================")
print("[ScanReward] Starting ScanReward v1.0.0")
print("[ScanReward] ========================================")

config_name = os.getenv('FLASK_ENV', 'production')
print(f"[ScanReward] Config: {config_name}")
print(f"[ScanReward] DATABASE_URL: {'set' if os.getenv('DATABASE_URL') else 'NOT SET'}")
print(f"[ScanReward] Push gateway: {'set' if os.getenv('PUSH_GATEWAY_URL') else 'NOT SET'}")

try:
    from scanreward import create_app
    app = create_app(config_name)
    print(f"[ScanReward] App created, {len(list(app.url_map.iter_rules()))} routes")
except Exception as e:
    print(f"[ScanReward] FATAL ERROR during app creation: {e}")
    traceback.print_exc()
    sys.exit(1)

if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=os.getenv('FLASK_ENV') == 'development'
    )
