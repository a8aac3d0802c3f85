from __future__ import annotations

import os

os.environ.setdefault("DASHBOARD_API_BASE_URL", "http://localhost:3000/api")
