from __future__ import annotations

import re
from typing import Iterable, List


SEPARATORS = re.compile(r"[,;\s]+")


class InputError(ValueError):
    pass


def normalize_symbols(raw: Iterable[str]) -> List[str]:
    symbols: List[str] = []
    seen = set()
    for chunk in raw:
        if not chunk:
            continue
        for token in SEPARATORS.split(chunk):
            symbol = token.strip().upper()
            if not symbol or symbol in seen:
                continue
            seen.add(symbol)
            symbols.append(symbol)
    if not symbols:
        raise InputError("no ticker symbols recognised in input")
    return symbols
