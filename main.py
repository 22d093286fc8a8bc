#!/usr/bin/env python3
"""Main entry point for the Debate Arena server."""

import logging
import os
import sys

from config.settings import get_default_config


def setup_logging(level: str = "INFO"):
    """Configure logging for the web server."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )

    # Suppress noisy third-party loggers
    logging.getLogger("openai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def print_usage():
    """Print usage information for local development."""
    print("Debate Arena")
    print("=" * 40)
    print("Web Server (API + WebSocket):")
    print("   python main.py --web")
    print()
    print("Configuration is read from debate_config.json (created on first run).")
    print()


def start_web_server():
    """Start the FastAPI web server."""
    config = get_default_config()
    setup_logging(config.system.log_level)

    import uvicorn

    from web.api import create_app
    from web.debate_manager import DebateManager

    app = create_app(DebateManager.from_config(config))
    port = int(os.environ.get("PORT", 8000))

    print("Starting Debate Arena Web Server...")
    print(f"API Documentation: http://localhost:{port}/docs")
    print(f"WebSocket: ws://localhost:{port}/v1/ws/debate/{{id}}")

    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info", access_log=True)


def main():
    """Main entry point."""
    # Check for production environment (Railway, Docker, Heroku, etc.)
    is_production = any([
        "PORT" in os.environ,
        "DYNO" in os.environ,  # Heroku
        os.environ.get("ENVIRONMENT") == "production",
    ])

    if is_production or "--web" in sys.argv:
        start_web_server()
    else:
        print_usage()


if __name__ == "__main__":
    main()
