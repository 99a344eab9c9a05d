"""
Lifelog Server Entry Point

Usage:
    python -m lifelog.server
    python -m lifelog.server --host 0.0.0.0 --port 8080
    python -m lifelog.server --init-db
"""

import argparse
import asyncio
import sys


def main():
    """Entry point for the Lifelog server."""
    from lifelog.core.config import get_settings
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Lifelog Server")
    parser.add_argument(
        "--host",
        default=settings.host,
        help=f"Server host (default: {settings.host})"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help=f"Server port (default: {settings.port})"
    )
    parser.add_argument(
        "--init-db",
        action="store_true",
        help="Create the event tables before starting"
    )

    args = parser.parse_args()

    if args.init_db:
        print("Initializing database schema...")
        from lifelog.database.schema import initialize_db
        try:
            asyncio.run(initialize_db(settings.conn_string, settings.schema_name))
            print("Database initialized successfully")
        except Exception as e:
            print(f"Database initialization failed: {e}", file=sys.stderr)
            sys.exit(1)

    print(f"Starting Lifelog server on {args.host}:{args.port}...")

    try:
        import uvicorn
        from lifelog.server.app import create_app

        app = create_app()
        uvicorn.run(app, host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nServer stopped by user")
        sys.exit(0)


if __name__ == "__main__":
    main()
