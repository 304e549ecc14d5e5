"""
Heuristic Lua deobfuscator.
Undoes base64/loadstring wrapping, literal concatenation, hex escapes and junk
statements, re-indents the result, and scores how obfuscated a script looks.
"""

from .decoders import decode_base64, decode_hex_escape, try_decode_base64
from .patterns import CATALOG, PatternGroup
from .settings import Settings
from .analyzer import AnalysisReport, analyze, calculate_complexity
from .batch import BatchItem, BatchResult
from .deobfuscator import (
    __version__,
    DeobfuscationResult,
    Layer,
    MoonsecDeobfuscator,
    Statistics,
)

__all__ = [
    'MoonsecDeobfuscator',
    'Settings',
    'DeobfuscationResult',
    'Statistics',
    'Layer',
    'AnalysisReport',
    'BatchItem',
    'BatchResult',
    'PatternGroup',
    'CATALOG',
    'analyze',
    'calculate_complexity',
    'decode_base64',
    'decode_hex_escape',
    'try_decode_base64',
    '__version__',
]
