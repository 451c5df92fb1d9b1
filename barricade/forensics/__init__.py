"""Forensic inspection module for Barricade."""

from .deep_scanner import DeepScanner, ForensicReport, shannon_entropy

__all__ = [
    "DeepScanner",
    "ForensicReport",
    "shannon_entropy",
]
