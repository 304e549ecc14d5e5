import os
from dataclasses import dataclass, asdict, fields
from typing import Mapping, Optional

ENV_PREFIX = "MOONSEC_"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class Settings:
    """
    Options read by the deobfuscator on every call.
    remove_junk gates comment stripping and junk removal, auto_format gates the
    final re-indent. extract_strings, highlight_syntax and aggressive_mode are
    carried for front ends and do not change the rewrite passes.
    """
    auto_format: bool = True
    extract_strings: bool = True
    remove_junk: bool = True
    highlight_syntax: bool = True
    aggressive_mode: bool = False

    @classmethod
    def option_names(cls) -> tuple:
        return tuple(field.name for field in fields(cls))

    def update(self, **options) -> "Settings":
        """Merges the given options in place; options not named keep their value."""
        unknown = set(options) - set(self.option_names())
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(sorted(unknown))}")
        for name, value in options.items():
            if isinstance(value, str):
                value = parse_bool(value, name)
            elif not isinstance(value, bool):
                raise ValueError(f"{name} must be a bool, got {value!r}")
            setattr(self, name, value)
        return self

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Builds settings from MOONSEC_<OPTION> variables (e.g. MOONSEC_REMOVE_JUNK=false).
        Unset variables keep the defaults.
        """
        environ = os.environ if environ is None else environ
        settings = cls()
        overrides = {}
        for name in cls.option_names():
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None:
                overrides[name] = parse_bool(raw, ENV_PREFIX + name.upper())
        return settings.update(**overrides)


def parse_bool(raw: str, source: str = "value") -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{source} must be one of {sorted(_TRUE_VALUES | _FALSE_VALUES)}, got {raw!r}")
