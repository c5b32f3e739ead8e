"""
Analysis Module: Estimate tempo, beat peaks and energy per decoded track.

- Low-pass filter isolates kick/bass energy
- Peak picker finds beats at least 0.3 s apart
- Interval histogram yields BPM with octave correction
- Energy and centroid are cheap time-domain proxies
"""

__all__ = ["filters", "peaks", "bpm", "track"]
