#!/usr/bin/env python3
"""
AI Attribution API Startup Script

Starts the FastAPI server with auto-reload for local development.
"""

import sys
from pathlib import Path

import uvicorn


def main():
    """Start the AI attribution API server."""
    print("Starting AI Attribution API...")
    print("   Swagger UI:  http://localhost:8000/docs")
    print("   Dashboard:   http://localhost:8000/dashboard?range=30d")
    print("")

    if not Path(".env").exists():
        print("WARNING: No .env file found. Set at least:")
        print("   DATABASE_URL=sqlite:///./attribution.db")
        print("")

    try:
        uvicorn.run(
            "ai_attribution.main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            reload_dirs=["ai_attribution"],
            log_level="info",
        )
    except KeyboardInterrupt:
        print("\nShutting down AI Attribution API...")
    except Exception as e:
        print(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
