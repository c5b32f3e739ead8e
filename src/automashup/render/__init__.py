"""
Render Module: Offline DSP mixing and WAVE encoding.

- Explicit per-track pipeline of pure buffer stages (no node graph)
- Additive, time-aligned summation into a master bus
- Master compressor, limiter and fixed makeup gain
- Canonical 16-bit PCM WAVE output
"""

__all__ = ["stages", "render", "wav"]
