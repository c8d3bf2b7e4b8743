"""Evidence capture -- screenshots and console logs gathered during a run."""

from src.evidence.capture import EvidenceCapture, is_blank_frame

__all__ = [
    "EvidenceCapture",
    "is_blank_frame",
]
