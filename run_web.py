#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Quick start script for the directory web API
"""
import os
import socket

from app import create_app


def choose_port(preferred: int = 5001, attempts: int = 20) -> int:
    """Return a free TCP port on localhost, preferring `preferred`."""
    for offset in range(attempts):
        port = preferred + offset
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            try:
                s.bind(("127.0.0.1", port))
                return port
            except OSError:
                continue
    return preferred


def main():
    """Run the web application"""
    print("=" * 60)
    print("MCF DIRECTORY MAP - WEB API")
    print("=" * 60)

    flask_app = create_app()
    try:
        preferred = int(os.getenv('PORT') or '5001')
    except ValueError:
        preferred = 5001
    port = choose_port(preferred)

    print(f"\nServer starting on http://localhost:{port}")
    print("Press Ctrl+C to stop the server")
    print("-" * 60)
    flask_app.run(host='127.0.0.1', port=port, debug=False, use_reloader=False)


if __name__ == "__main__":
    main()
