#!/usr/bin/env python3
"""Convenience runner for the Strava tile explorer.

Usage:
    python run.py stats
    python run.py ingest --gpx-dir gpx
"""
import sys

from strava_tiles.main import main

if __name__ == "__main__":
    sys.exit(main())
