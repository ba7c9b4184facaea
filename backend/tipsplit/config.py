from __future__ import annotations

import os


class Config:
    MAX_PARTICIPANTS = int(os.getenv("TIPSPLIT_MAX_PARTICIPANTS", "20"))
    DEFAULT_TIP_PERCENT = float(os.getenv("TIPSPLIT_DEFAULT_TIP_PERCENT", "15"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
