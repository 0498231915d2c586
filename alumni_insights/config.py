import os
from pathlib import Path

# Root of the project (repo root)
PROJECT_ROOT = Path(__file__).resolve().parents[1]

# Directory holding the CSV tables (override with ALUMNI_DATA_DIR)
DATA_DIR = Path(os.environ.get("ALUMNI_DATA_DIR", str(PROJECT_ROOT / "data")))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# Default number of employers returned by the health ranking
HEALTH_TOP_N = int(os.environ.get("HEALTH_TOP_N", "10"))

API_HOST = os.environ.get("API_HOST", "0.0.0.0")
API_PORT = int(os.environ.get("API_PORT", "8000"))
