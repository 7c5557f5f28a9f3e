"""
ICU SL4 Frontier Analysis

For each monitored measurement, the minimal perturbation that would flip its
threshold classification. Purely explanatory; never used for control flow.
"""

from typing import List

from .models import FrontierCert, Input


SPO2_HYPOXEMIA_THRESHOLD = 90.0
SPO2_SEVERE_THRESHOLD = 85.0
HR_TACHYCARDIA_THRESHOLD = 100.0


def frontier_certificates(input: Input) -> List[FrontierCert]:
    """
    Compute frontier certificates for the hypoxemia protocol.

    - spo2_pct: always against 90 (<); against 85 (<) only when at or below 85
    - hr_bpm: against 100 (>)

    Absent measurements produce no certificate.
    """
    out: List[FrontierCert] = []

    spo2 = input.measured.get("spo2_pct")
    if spo2 is not None:
        out.append(FrontierCert(
            feature="spo2_pct",
            threshold=SPO2_HYPOXEMIA_THRESHOLD,
            relation="<",
            margin_to_flip=abs(spo2 - SPO2_HYPOXEMIA_THRESHOLD),
        ))
        # Inclusive, matching the severe_hypoxemia signal
        if spo2 <= SPO2_SEVERE_THRESHOLD:
            out.append(FrontierCert(
                feature="spo2_pct",
                threshold=SPO2_SEVERE_THRESHOLD,
                relation="<",
                margin_to_flip=SPO2_SEVERE_THRESHOLD - spo2,
            ))

    hr = input.measured.get("hr_bpm")
    if hr is not None:
        out.append(FrontierCert(
            feature="hr_bpm",
            threshold=HR_TACHYCARDIA_THRESHOLD,
            relation=">",
            margin_to_flip=abs(hr - HR_TACHYCARDIA_THRESHOLD),
        ))

    return out
