"""
Vercel serverless entry point
Vercel's Python runtime serves the ASGI `app` exported here
"""

import sys
from pathlib import Path

# Add project root to Python path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.main import app

__all__ = ["app"]
