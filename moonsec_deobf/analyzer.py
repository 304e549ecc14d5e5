import re
from dataclasses import dataclass, field, asdict
from typing import List

from .patterns import BASE64, LOADSTRING, HEX_STRINGS, JUNK_CODE, count_matches

# A handful of junk matches is ordinary code; more than this reads as injected junk.
JUNK_MATCH_THRESHOLD = 3
CONCAT_FRAGMENT_THRESHOLD = 10

_COMPLEXITY_WEIGHTS = (
    (re.compile(r'loadstring', re.IGNORECASE), 2.0),
    (re.compile(r'frombase64', re.IGNORECASE), 1.5),
    (re.compile(r'function', re.IGNORECASE), 0.5),
    (re.compile(r'local', re.IGNORECASE), 0.2),
)


@dataclass
class AnalysisReport:
    length: int
    lines: int
    has_loadstring: bool = False
    has_base64: bool = False
    has_hex: bool = False
    has_concatenation: bool = False
    has_junk_code: bool = False
    obfuscation_level: str = "low"
    patterns_found: List[str] = field(default_factory=list)
    estimated_time: str = "instant"
    complexity: str = "low"

    def to_dict(self) -> dict:
        return asdict(self)


def calculate_complexity(code: str) -> str:
    """
    Weighted count of concatenation fragments, loadstring/frombase64 calls,
    functions and locals, bucketed into low/medium/high/very-high.
    """
    score = len(code.split('..')) * 0.1
    for pattern, weight in _COMPLEXITY_WEIGHTS:
        score += count_matches(pattern, code) * weight

    if score > 10:
        return "very-high"
    if score > 5:
        return "high"
    if score > 2:
        return "medium"
    return "low"


def analyze(code: str) -> AnalysisReport:
    """
    Scores how obfuscated a piece of Lua looks without rewriting it.
    Each call works only on its argument, so identical input gives an identical report.
    """
    report = AnalysisReport(length=len(code), lines=len(code.split('\n')))

    report.has_loadstring = LOADSTRING.any_match(code)
    report.has_base64 = BASE64.any_match(code)
    report.has_hex = HEX_STRINGS.any_match(code)
    report.has_concatenation = '..' in code
    report.has_junk_code = any(count > JUNK_MATCH_THRESHOLD for count in JUNK_CODE.counts(code))

    for count in BASE64.counts(code):
        if count:
            report.patterns_found.append(f"{BASE64.label}: {count}")

    score = 0
    if report.has_loadstring:
        score += 2
    if report.has_base64:
        score += 2
    if report.has_hex:
        score += 1
    if report.has_concatenation and len(code.split('..')) > CONCAT_FRAGMENT_THRESHOLD:
        score += 1
    if report.has_junk_code:
        score += 2

    if score >= 5:
        report.obfuscation_level, report.estimated_time = "high", "moderate"
    elif score >= 2:
        report.obfuscation_level, report.estimated_time = "medium", "fast"
    else:
        report.obfuscation_level, report.estimated_time = "low", "instant"

    report.complexity = calculate_complexity(code)
    return report
