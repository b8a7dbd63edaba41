from pathlib import Path
from typing import List, Optional, Tuple

Pair = Tuple[str, str]

NAME_SEPARATOR = "."


def _parse_line(line: str, line_num: int) -> Tuple[Optional[Pair], Optional[str]]:
    parts = [p.strip() for p in line.split(",")]

    if len(parts) != 2:
        return None, f'Line {line_num}: Invalid format. Use "name1.eth, name2.eth"'

    a, b = parts
    if not a or not b:
        return None, f"Line {line_num}: Both ENS names are required"

    if a.lower() == b.lower():
        return None, f'Line {line_num}: Cannot connect "{a}" to itself'

    if NAME_SEPARATOR not in a or NAME_SEPARATOR not in b:
        return None, f"Line {line_num}: Invalid ENS format (must include domain like .eth)"

    return (a, b), None


def validate_pair_line(line: str, line_num: int = 1) -> List[str]:
    """
    Returns the validation errors for one "a.eth, b.eth" line.
    Empty list means valid; blank lines are valid and produce no pair.
    """
    if not line.strip():
        return []
    _, error = _parse_line(line.strip(), line_num)
    return [error] if error else []


def parse_pairs(text: str) -> Tuple[List[Pair], List[str]]:
    """
    Parse one pair per line into (pairs, diagnostics).

    Blank lines are skipped but still counted for line numbers. A bad line
    only excludes itself; pairs and diagnostics keep input order.
    """
    pairs: List[Pair] = []
    diagnostics: List[str] = []

    if not text or not text.strip():
        return pairs, diagnostics

    for line_num, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line:
            continue
        pair, error = _parse_line(line, line_num)
        if error:
            diagnostics.append(error)
        else:
            pairs.append(pair)

    return pairs, diagnostics


def parse_pairs_file(path: Path) -> Tuple[List[Pair], List[str]]:
    with path.open("r", encoding="utf-8") as f:
        return parse_pairs(f.read())
