#!/usr/bin/env python3
"""
Script to run the Book Review API server.
"""

import uvicorn

from api.config import config


def main():
    """Run the API server."""
    print("Starting Book Review API Server")
    print(f"Host: {config.host}")
    print(f"Port: {config.port}")
    print(f"Environment: {config.environment}")
    print(f"Database: {config.mongodb_database}")
    print("=" * 50)

    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=config.debug
    )


if __name__ == "__main__":
    main()
