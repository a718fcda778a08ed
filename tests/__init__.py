"""
Test suite for the print production pipeline.

This package contains unit tests and pipeline tests for crop geometry,
placement, DPI analysis, upscaling, print masters and final renders.
"""

import sys
from pathlib import Path

# Add the project root to the Python path for imports
project_dir = Path(__file__).parent.parent
if str(project_dir) not in sys.path:
    sys.path.insert(0, str(project_dir))
