#!/usr/bin/env python3
"""
Context Monitor - Main Entry Point

Streaming activity detection from motion sensors: classifies idle,
walking, lifting, operating machinery and driving, and derives the UI mode
the interface should switch to.
"""

import sys
from pathlib import Path

# Add the context_monitor package to the Python path
sys.path.insert(0, str(Path(__file__).parent))

from context_monitor.cli import cli

if __name__ == '__main__':
    try:
        cli()
    except KeyboardInterrupt:
        print("\nProgram interrupted by user")
        sys.exit(0)
