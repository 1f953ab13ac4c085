"""
Campaign Builder
================

Client-side engine for assembling multi-phase campaign workflows:
ordered phases, ordered activities within each phase, and the conditional
lock/unlock rules attached to both.
"""

__version__ = "0.1.0"
