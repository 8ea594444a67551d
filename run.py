#!/usr/bin/env python3
"""
Secure Ledger Entry Point

Starts the FastAPI server with settings taken from SECURE_LEDGER_* environment
variables (or .env).
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from secure_ledger.api import run_server
from secure_ledger.config import get_config
from secure_ledger.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    setup_logging(level=config.log_level, fmt=config.log_format, log_file=config.log_file)

    print("🔐 Starting Secure Ledger...")
    print("🔑 Wire fields: RSA, stored accounts: AES-256-GCM")
    print("📒 Double-entry, idempotent ledger writes")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=False  # Set to True for development
        )
    except KeyboardInterrupt:
        print("\n👋 Shutting down Secure Ledger...")
    except Exception as e:
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
