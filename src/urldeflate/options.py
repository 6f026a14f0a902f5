"""Compression options (v1) for urldeflate.

Options can be passed to the library as a DeflateOptions object, or to the
CLI as JSON (inline or '@file.json').

The JSON form stays strict:
  - explicit schema id
  - unknown keys are rejected
  - types are checked (bool is not accepted where an int is expected)
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from urldeflate.engine.block_encoder import DEFAULT_BLOCK_SIZE, STRATEGIES

OPTIONS_ID_V1 = "urldeflate.options.v1"

DEFAULT_LEVEL = 6
MAX_BLOCK_SIZE = 1_048_576

# level -> (max_chain, lazy); level 0 disables matching altogether
LEVELS: dict[int, tuple[int, bool]] = {
    0: (0, False),
    1: (4, False),
    2: (8, False),
    3: (16, False),
    4: (16, True),
    5: (32, True),
    6: (32, True),
    7: (64, True),
    8: (128, True),
    9: (256, True),
}


class OptionsError(ValueError):
    pass


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


@dataclass(frozen=True)
class DeflateOptions:
    """How compress() turns bytes into blocks.

    ``max_chain`` and ``lazy`` override the level table when set.
    """

    level: int = DEFAULT_LEVEL
    strategy: str = "auto"
    block_size: int = DEFAULT_BLOCK_SIZE
    max_chain: int | None = None
    lazy: bool | None = None

    def __post_init__(self) -> None:
        if not _is_int(self.level) or self.level not in LEVELS:
            raise OptionsError(f"options: 'level' deve essere 0..9, got {self.level!r}")
        if self.strategy not in STRATEGIES:
            raise OptionsError(
                f"options: 'strategy' non supportata: {self.strategy!r} "
                f"(attese: {', '.join(STRATEGIES)})"
            )
        if not _is_int(self.block_size) or not (1 <= self.block_size <= MAX_BLOCK_SIZE):
            raise OptionsError(
                f"options: 'block_size' deve essere 1..{MAX_BLOCK_SIZE}, got {self.block_size!r}"
            )
        if self.max_chain is not None and (not _is_int(self.max_chain) or self.max_chain < 1):
            raise OptionsError(f"options: 'max_chain' deve essere >= 1, got {self.max_chain!r}")
        if self.lazy is not None and not isinstance(self.lazy, bool):
            raise OptionsError("options: campo 'lazy' deve essere booleano")

    @property
    def matching(self) -> bool:
        return self.level > 0

    def match_params(self) -> tuple[int, bool]:
        """Effective (max_chain, lazy) after overrides."""
        chain, lazy = LEVELS[self.level]
        if self.max_chain is not None:
            chain = self.max_chain
        if self.lazy is not None:
            lazy = self.lazy
        return chain, lazy

    def effective_strategy(self) -> str:
        # literals only: under auto, level 0 always means stored output
        if self.level == 0 and self.strategy == "auto":
            return "stored"
        return self.strategy

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "spec": OPTIONS_ID_V1,
            "level": self.level,
            "strategy": self.strategy,
            "block_size": self.block_size,
        }
        if self.max_chain is not None:
            out["max_chain"] = self.max_chain
        if self.lazy is not None:
            out["lazy"] = self.lazy
        return out


def _load_json_arg(options_arg: str) -> dict[str, Any]:
    s = options_arg.strip()
    if not s:
        raise OptionsError("options: argomento vuoto")

    if s.startswith("@"):
        p = Path(s[1:]).expanduser()
        if not p.is_file():
            raise OptionsError(f"options: file non trovato: {p}")
        raw = p.read_text(encoding="utf-8")
        where = f"in {p}"
    else:
        raw = s
        where = "inline"

    try:
        obj = json.loads(raw)
    except json.JSONDecodeError as e:
        raise OptionsError(f"options: JSON {where} non valido: {e}") from e
    if not isinstance(obj, dict):
        raise OptionsError(f"options: il JSON {where} deve essere un oggetto")
    return obj


def _optional_int(obj: dict[str, Any], key: str) -> int | None:
    if key not in obj or obj[key] is None:
        return None
    v = obj[key]
    if not _is_int(v):
        raise OptionsError(f"options: campo '{key}' deve essere intero")
    return v


def load_options(options_arg: str) -> DeflateOptions:
    """Load and validate compression options.

    options_arg:
      - '@file.json'
      - inline JSON object
    """
    obj = _load_json_arg(options_arg)

    allowed = {"spec", "level", "strategy", "block_size", "max_chain", "lazy"}
    extra = sorted(set(obj.keys()) - allowed)
    if extra:
        raise OptionsError(f"options: chiavi non supportate: {', '.join(extra)}")

    spec_id = obj.get("spec")
    if spec_id != OPTIONS_ID_V1:
        raise OptionsError(
            f"options: spec non supportata: {spec_id!r} (attesa {OPTIONS_ID_V1!r})"
        )

    level = _optional_int(obj, "level")
    block_size = _optional_int(obj, "block_size")
    max_chain = _optional_int(obj, "max_chain")

    strategy = obj.get("strategy", "auto")
    if not isinstance(strategy, str):
        raise OptionsError("options: campo 'strategy' deve essere stringa")

    lazy = obj.get("lazy")
    if lazy is not None and not isinstance(lazy, bool):
        raise OptionsError("options: campo 'lazy' deve essere booleano")

    return DeflateOptions(
        level=DEFAULT_LEVEL if level is None else level,
        strategy=strategy.strip(),
        block_size=DEFAULT_BLOCK_SIZE if block_size is None else block_size,
        max_chain=max_chain,
        lazy=lazy,
    )
