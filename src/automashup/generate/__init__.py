"""
Mix Generation Module: Order analyzed tracks and plan the crossfade timeline.

- Ascending energy order (build-up arc)
- Shared target tempo (mean BPM)
- Fixed 30 s segments, 8 s transitions, 2 s edge fades
"""

__all__ = ["schedule"]
