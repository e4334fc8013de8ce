"""
This module defines :class:`Annotation`, one timestamped event marker of an
EDF+ recording.
"""

from __future__ import annotations

# descriptions longer than this are truncated when they are encoded
MAX_DESCRIPTION_LENGTH = 40


class Annotation:
    """
    An event marker with an optional duration.

    Parameters
    ----------
    onset: float
        Time of the event in seconds, relative to the start time of the file header
    duration: float | None, default: None
        Duration in seconds, None for an instant event
    description: str, default: ""
        Free text, truncated to MAX_DESCRIPTION_LENGTH characters when written

    Annotations sort by onset.
    """

    def __init__(self, onset: float, duration: float | None = None, description: str = ""):
        self.onset = float(onset)
        self.duration = None if duration is None else float(duration)
        self.description = description

    @property
    def is_instant(self) -> bool:
        return self.duration is None

    def truncated(self):
        """Return the annotation as it is stored, with the description cut to MAX_DESCRIPTION_LENGTH"""
        return Annotation(self.onset, self.duration, self.description[:MAX_DESCRIPTION_LENGTH])

    def __lt__(self, other):
        return self.onset < other.onset

    def __eq__(self, other):
        if not isinstance(other, Annotation):
            return NotImplemented
        return (self.onset, self.duration, self.description) == (other.onset, other.duration, other.description)

    def __repr__(self):
        return f"Annotation(onset={self.onset!r}, duration={self.duration!r}, description={self.description!r})"
