"""
Quantum Dashboard: HTTP API

Run with:  python app.py
      or:  uvicorn app:app --port 3001
"""

import logging
import sys
from pathlib import Path

import uvicorn

sys.path.insert(0, str(Path(__file__).resolve().parent))

from quantum_dashboard.api import create_app
from quantum_dashboard.config import get_settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)

settings = get_settings()
app = create_app(settings)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
