"""
Script to run every enabled report once (same as the ``report-etl`` command)
"""

import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from ingestion.runner import main


if __name__ == "__main__":
    sys.exit(main())
