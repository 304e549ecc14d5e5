import json
import time
from typing import Optional

from .settings import Settings


def build_session(result, settings: Settings) -> dict:
    """
    Collects what a front end needs to restore a deobfuscation session:
    both code versions, the statistics and the settings in force.
    """
    return {
        "original_code": result.original_code,
        "deobfuscated_code": result.deobfuscated_code,
        "statistics": result.statistics.to_dict(),
        "settings": settings.to_dict(),
    }


def dump_session(result, settings: Settings) -> str:
    return json.dumps(build_session(result, settings), indent=2)


def session_filename(now: Optional[float] = None) -> str:
    now = time.time() if now is None else now
    return f"moonsec_session_{int(now * 1000)}.json"
