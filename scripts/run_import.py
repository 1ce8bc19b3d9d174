"""
Script to import a range of GitHub Archive hours into Sky
"""

import sys
import os

# Add current directory to path to allow imports from core, ingestion, etc.
sys.path.append(os.getcwd())

from ingestion.cli import main


if __name__ == "__main__":
    sys.exit(main())
