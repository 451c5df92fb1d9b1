"""Scanning module for walking monitored sectors."""

from .scanner import DirectoryScanner

__all__ = [
    "DirectoryScanner",
]
