from __future__ import annotations

import os
import sys
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

# Background workers stay off under test; no network for embeddings.
os.environ.setdefault("EMBEDDING_QUEUE_ENABLED", "false")
os.environ.setdefault("ESCALATION_SWEEP_ENABLED", "false")
os.environ.setdefault("EMBEDDING_API_KEY", "")
