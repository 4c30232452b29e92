#!/usr/bin/env python3
"""
FixtureTap - Canned response server

This is a convenience wrapper that calls the modular implementation.
The actual implementation is in src/fixturetap/cli.py

Usage:
    python fixturetap-server.py serve server.yaml --service myapp.fixtures:SERVICE

For more information, see README.md
"""

import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent / 'src'))

from fixturetap.cli import main

if __name__ == '__main__':
    main()
