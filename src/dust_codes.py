# ABOUTME: Dust and sand phenomenon codes and the classifier built on them.
# ABOUTME: Decides whether a METAR wxcodes string reports dust/sand and which code dominates.

import re

DUST_CODES = ("DU", "SA", "BLSA", "BLDU", "SS", "DS", "PO")

# Priority order used to pick a single phenomenon per observation; severe codes first.
PHENOMENA = ("DS", "SS", "BLDU", "BLSA", "DU", "SA", "PO")

PHENOMENA_LABELS = {
    "DU": "DU (Dust)",
    "SA": "SA (Sand)",
    "BLDU": "BLDU (Blowing Dust)",
    "BLSA": "BLSA (Blowing Sand)",
    "SS": "SS (Sandstorm)",
    "DS": "DS (Duststorm)",
    "PO": "PO (Dust Whirls)",
}

SEVERE_CODES = frozenset({"DS", "SS"})

DUST_PATTERN = re.compile(r"(?:^|\s)[+-]?(DU|SA|BLSA|BLDU|SS|DS|PO)(?=\s|$)", re.IGNORECASE)


def classify(wxcodes: str | None) -> bool:
    """Return True if the wxcodes string contains at least one dust/sand token."""
    if not wxcodes:
        return False
    return DUST_PATTERN.search(wxcodes) is not None


def codes_in(wxcodes: str | None) -> list[str]:
    """List every dust/sand code token in a wxcodes string, in order, intensity prefix stripped.

    A report of "BLDU +SS" yields ["BLDU", "SS"]. Repeated tokens are repeated in the output.
    """
    if not wxcodes:
        return []
    codes = []
    for token in wxcodes.split():
        code = token.upper()
        if code[:1] in ("+", "-"):
            code = code[1:]
        if code in DUST_CODES:
            codes.append(code)
    return codes


def detect_phenomenon(wxcodes: str | None) -> str | None:
    """Pick the single primary phenomenon for a report, testing codes in priority order."""
    present = set(codes_in(wxcodes))
    for code in PHENOMENA:
        if code in present:
            return code
    return None
