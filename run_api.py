#!/usr/bin/env python3
"""
Startup script for the Funnel Audit API server.
"""

import os
import sys
from pathlib import Path

# Add src to Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

import uvicorn
from api.main import create_app

if __name__ == "__main__":
    # Set environment variables
    os.environ.setdefault("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:3001")

    # Create app
    app = create_app()

    # Run server
    print("Starting Funnel Audit API server...")
    print("API Documentation: http://localhost:8000/docs")
    print("Start a run: POST http://localhost:8000/api/run/start {\"store_url\": \"https://...\"}")
    print("=" * 50)

    uvicorn.run(
        app,
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        log_level="info"
    )
