"""Launcher for the development server.

Runs the startup flow without installing the package:

    python start.py [APP_DIR] [--verbose]
"""

import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from cli.main import run


if __name__ == '__main__':
    run()
