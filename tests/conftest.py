"""Test configuration ensuring the project root is importable."""

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent

root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from moonsec_deobf import MoonsecDeobfuscator, Settings  # noqa: E402


@pytest.fixture
def deobfuscator():
    return MoonsecDeobfuscator(Settings())


def junk_script(count: int, tail: str = 'print("ok")') -> str:
    lines = [f"local junk{index} = function() end;" for index in range(count)]
    return "\n".join(lines + [tail])
