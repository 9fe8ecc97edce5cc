#!/usr/bin/env python3
"""Serve the VANTA backend with Waitress.

Usage:
  python scripts/run_production_server.py

HOST, PORT and MAX_WORKERS come from the environment (or .env).
"""
import sys
from pathlib import Path

# Ensure project root is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from waitress import serve
import app as application_module
from vanta.config.settings import settings


def main():
    serve(
        application_module.app,
        host=settings.HOST,
        port=settings.PORT,
        threads=max(4, settings.MAX_WORKERS),
    )


if __name__ == '__main__':
    main()
