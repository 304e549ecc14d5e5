import re
import time
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Iterable, List, NamedTuple, Optional

from . import passes
from .analyzer import AnalysisReport, analyze
from .batch import BatchItem, BatchResult, batch_process
from .patterns import CHAR_CODES
from .settings import Settings

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

# Markers of MoonSec V3's VM loader; the regex passes cannot see through it.
_MOONSEC_BANNER = re.compile(r'This file was protected with MoonSec V3', re.IGNORECASE)
_MOONSEC_VM_WRAPPER = re.compile(r'return\s*\(function\s*\(t,.*?\)', re.DOTALL)


class Layer(NamedTuple):
    name: str
    count: int


@dataclass
class Statistics:
    processing_time_ms: float = 0.0
    layers_removed: int = 0
    strings_decoded: int = 0
    layers: List[Layer] = field(default_factory=list)
    original_length: int = 0
    final_length: int = 0
    reduction_percent: float = 0.0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["layers"] = [layer._asdict() for layer in self.layers]
        return data


@dataclass
class DeobfuscationResult:
    success: bool
    deobfuscated_code: str
    original_code: str
    statistics: Statistics
    warnings: List[str] = field(default_factory=list)
    metadata: dict = field(default_factory=dict)
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "deobfuscated_code": self.deobfuscated_code,
            "original_code": self.original_code,
            "statistics": self.statistics.to_dict(),
            "warnings": list(self.warnings),
            "metadata": dict(self.metadata),
            "error": self.error,
        }


def _reduction_percent(original_length: int, final_length: int) -> float:
    if not original_length:
        return 0.0
    return round((original_length - final_length) / original_length * 100, 2)


def _collect_warnings(original: str, result: str) -> List[str]:
    warnings = []
    if _MOONSEC_BANNER.search(original) or _MOONSEC_VM_WRAPPER.search(original):
        warnings.append("MoonSec V3 VM loader detected; only surface string obfuscation was removed.")
    remaining = CHAR_CODES.total(result)
    if remaining:
        warnings.append(f"{remaining} string.char call(s) or numeric code table(s) left encoded.")
    return warnings


class MoonsecDeobfuscator:
    """
    Runs the seven rewrite passes over one piece of Lua source.
    Each instance owns its Settings; callers sharing an instance across
    threads must serialise configure() themselves.
    """

    version = __version__

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings if settings is not None else Settings()

    def configure(self, **options) -> Settings:
        """Merges options (auto_format, remove_junk, ...) into the current settings."""
        return self.settings.update(**options)

    def deobfuscate(self, code: str) -> DeobfuscationResult:
        """
        Deobfuscates a Lua source string.
        Any fault inside the pipeline is reported as a failed result that hands
        back the untouched input; a partly rewritten text is never returned.
        """
        if not isinstance(code, str):
            raise TypeError(f"Expected Lua source as str, got {type(code).__name__}")

        start_time = time.perf_counter()
        stats = Statistics(original_length=len(code))

        try:
            result = self._run_passes(code, stats)
        except Exception as e:
            logger.exception("Deobfuscation pipeline failed")
            stats.processing_time_ms = (time.perf_counter() - start_time) * 1000
            stats.layers_removed = len(stats.layers)
            return DeobfuscationResult(
                success=False,
                deobfuscated_code=code,
                original_code=code,
                statistics=stats,
                error=str(e) or type(e).__name__,
            )

        stats.processing_time_ms = (time.perf_counter() - start_time) * 1000
        stats.layers_removed = len(stats.layers)
        stats.final_length = len(result)
        stats.reduction_percent = _reduction_percent(len(code), len(result))

        return DeobfuscationResult(
            success=True,
            deobfuscated_code=result,
            original_code=code,
            statistics=stats,
            warnings=_collect_warnings(code, result),
            metadata={
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "version": self.version,
            },
        )

    def _run_passes(self, code: str, stats: Statistics) -> str:
        settings = self.settings

        if settings.remove_junk:
            code = self._apply(passes.strip_comments_and_whitespace, "Comments/Whitespace", code, stats)

        decoded = passes.decode_base64_calls(code)
        if decoded.modified:
            code = self._record(decoded, "Base64 Decoding", stats)
            stats.strings_decoded += decoded.count

        code = self._apply(passes.fold_concatenation, "String Concatenation", code, stats)
        code = self._apply(passes.unwrap_loadstring, "Loadstring Extraction", code, stats)
        code = self._apply(passes.decode_hex_strings, "Hex Decoding", code, stats)

        if settings.remove_junk:
            code = self._apply(passes.remove_junk_code, "Junk Code Removal", code, stats)

        if settings.auto_format:
            code = self._apply(passes.beautify, "Code Formatting", code, stats)

        return code

    def _apply(self, rewrite, name: str, code: str, stats: Statistics) -> str:
        outcome = rewrite(code)
        if not outcome.modified:
            return code
        return self._record(outcome, name, stats)

    @staticmethod
    def _record(outcome: passes.PassResult, name: str, stats: Statistics) -> str:
        stats.layers.append(Layer(name, outcome.count))
        logger.debug("%s: %d rewrite(s)", name, outcome.count)
        return outcome.code

    def analyze(self, code: str) -> AnalysisReport:
        return analyze(code)

    def batch_process(self, items: Iterable[BatchItem]) -> BatchResult:
        return batch_process(self, items)
