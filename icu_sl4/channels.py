"""
ICU SL4 Dual-Channel Signal Extraction

Two independently written implementations of one contract, Input -> Assessment.
They deliberately share no detection code: channel A scans normalized text
with compiled regular expressions, channel B walks a stem table with plain
substring search. A supervising comparator (consensus.py) requires them to
agree before anything is released.

Detection contract:
- hypoxemia: spo2_pct < 90, or a hypoxemia synonym in the text
- severe_hypoxemia: spo2_pct <= 85. The boundary is inclusive: an input of
  spo2_pct 85, hr_bpm 125 must come out CRITICAL with a zero-margin
  certificate against 85, which a strict "< 85" would not give
- tachycardia: hr_bpm > 100, or a tachycardia synonym in the text
- diaphoresis: a sweating/diaphoresis synonym in the text

Text matching is case- and accent-insensitive: both channels drop every
combining mark (Unicode category M*) after compatibility decomposition.
Missing measurements never trigger a signal and are never an error.
"""

import re
import unicodedata
from functools import lru_cache
from typing import Callable, FrozenSet, Optional, Set, Tuple

from .models import Action, Assessment, Input, Severity


HYPOXEMIA = "hypoxemia"
SEVERE_HYPOXEMIA = "severe_hypoxemia"
TACHYCARDIA = "tachycardia"
DIAPHORESIS = "diaphoresis"

PROTOCOL_HYPOXEMIA_ACUTE = "hypoxemia_acute"

Channel = Callable[[Input], Assessment]


# ============================================================
# Channel A
# ============================================================

@lru_cache(maxsize=None)
def _channel_a_patterns() -> Tuple[Tuple[str, re.Pattern], ...]:
    """Compiled once on first use; read-only afterwards."""
    return (
        (HYPOXEMIA, re.compile(r"hipoxemi|hypox")),
        (TACHYCARDIA, re.compile(r"taqui|tachy")),
        (DIAPHORESIS, re.compile(r"sudorese|diaphores")),
    )


def _fold_text_a(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    stripped = "".join(ch for ch in decomposed if not unicodedata.category(ch).startswith("M"))
    return stripped.casefold()


def channel_a(input: Input) -> Assessment:
    """Channel A: regex scan over accent-folded text."""
    signals: Set[str] = set()
    folded = _fold_text_a(input.text)
    text_hits = {name for name, pattern in _channel_a_patterns() if pattern.search(folded)}

    spo2 = input.measured.get("spo2_pct")
    hr = input.measured.get("hr_bpm")

    if HYPOXEMIA in text_hits or (spo2 is not None and spo2 < 90.0):
        signals.add(HYPOXEMIA)
    # Inclusive: spo2 85 with hr 125 is the reference CRITICAL case
    if spo2 is not None and spo2 <= 85.0:
        signals.add(SEVERE_HYPOXEMIA)
    if TACHYCARDIA in text_hits or (hr is not None and hr > 100.0):
        signals.add(TACHYCARDIA)
    if DIAPHORESIS in text_hits:
        signals.add(DIAPHORESIS)

    actions = []
    if HYPOXEMIA in signals:
        actions.append(Action(name="increase_O2_100", max_delay_s=0))
        actions.append(Action(name="call_attending", max_delay_s=30))
        if SEVERE_HYPOXEMIA in signals:
            actions.append(Action(name="prepare_intubation_kit", max_delay_s=60))
    actions.sort(key=lambda a: a.name)

    if SEVERE_HYPOXEMIA in signals:
        severity = Severity.CRITICAL
    elif HYPOXEMIA in signals or TACHYCARDIA in signals:
        severity = Severity.URGENT
    else:
        severity = Severity.ROUTINE

    return Assessment(
        severity=severity,
        signals=sorted(signals),
        protocols=[PROTOCOL_HYPOXEMIA_ACUTE] if severity != Severity.ROUTINE else [],
        actions=actions,
    )


# ============================================================
# Channel B
# ============================================================

@lru_cache(maxsize=None)
def _channel_b_tables() -> Tuple[Tuple[Tuple[str, FrozenSet[str]], ...], Tuple[Tuple[str, str, str, float], ...]]:
    """
    Stem table and threshold table for channel B.

    Threshold rows are (signal, feature, relation, threshold).
    """
    stems = (
        (HYPOXEMIA, frozenset({"hipoxemi", "hypox"})),
        (TACHYCARDIA, frozenset({"taqui", "tachy"})),
        (DIAPHORESIS, frozenset({"sudorese", "diaphores"})),
    )
    thresholds = (
        (HYPOXEMIA, "spo2_pct", "<", 90.0),
        # <= not <: spo2 85 is the reference CRITICAL case
        (SEVERE_HYPOXEMIA, "spo2_pct", "<=", 85.0),
        (TACHYCARDIA, "hr_bpm", ">", 100.0),
    )
    return stems, thresholds


def _fold_text_b(text: str) -> str:
    out = []
    for ch in unicodedata.normalize("NFKD", text.lower()):
        if unicodedata.category(ch)[0] == "M":
            continue
        out.append(ch)
    return unicodedata.normalize("NFC", "".join(out)).casefold()


def _crosses(value: Optional[float], relation: str, threshold: float) -> bool:
    if value is None:
        return False
    if relation == "<":
        return value < threshold
    if relation == "<=":
        return value <= threshold
    return value > threshold


_RESPONSE_BY_SIGNAL = (
    (HYPOXEMIA, (("call_attending", 30), ("increase_O2_100", 0))),
    (SEVERE_HYPOXEMIA, (("prepare_intubation_kit", 60),)),
)


def channel_b(input: Input) -> Assessment:
    """Channel B: stem table lookup plus threshold table."""
    stems, thresholds = _channel_b_tables()
    text = _fold_text_b(input.text)

    found = []
    for signal, feature, relation, threshold in thresholds:
        if _crosses(input.measured.get(feature), relation, threshold):
            found.append(signal)
    for signal, words in stems:
        if any(word in text for word in words):
            found.append(signal)
    s = frozenset(found)

    a = []
    if HYPOXEMIA in s:
        for signal, responses in _RESPONSE_BY_SIGNAL:
            if signal in s:
                a.extend(Action(name=n, max_delay_s=d) for n, d in responses)
    a = sorted(a, key=lambda x: x.name)

    sev = Severity.ROUTINE
    if HYPOXEMIA in s or TACHYCARDIA in s:
        sev = Severity.URGENT
    if SEVERE_HYPOXEMIA in s:
        sev = Severity.CRITICAL

    protocols = []
    if sev is not Severity.ROUTINE:
        protocols.append(PROTOCOL_HYPOXEMIA_ACUTE)

    return Assessment(severity=sev, signals=sorted(s), protocols=protocols, actions=a)
