"""Client-side trim range selection over a video's playback clock.

Only markers are recorded; the uploaded file is always the full, untrimmed
original.
"""

from typing import Optional

from reelhome.utils.formatting import format_clock


class TrimSelector:
    """In/out markers plus loop-within-range playback.

    Ordering policy: once metadata has loaded, markers are clamped so that
    ``start <= end`` always holds. Marking a start after the current end pulls the start back to the
    end; marking an end before the current start pushes the end up to the
    start.
    """

    def __init__(self):
        self.duration = 0.0
        self.position = 0.0
        self.start = 0.0
        self.end = 0.0
        self.is_playing = False

    def load_metadata(self, duration: float) -> None:
        """Metadata arrived: the out point defaults to the full duration."""
        self.duration = max(duration, 0.0)
        self.start = 0.0
        self.end = self.duration
        self.position = 0.0

    def seek(self, seconds: float) -> float:
        self.position = self._clamp(seconds)
        return self.position

    def mark_start(self) -> float:
        self.start = min(self.position, self.end) if self.duration > 0 else self.position
        return self.start

    def mark_end(self) -> float:
        self.end = max(self.position, self.start)
        return self.end

    def play(self) -> float:
        """Start playback, jumping to the in point when positioned before it."""
        if self.position < self.start:
            self.position = self.start
        self.is_playing = True
        return self.position

    def pause(self) -> None:
        self.is_playing = False

    def on_time_update(self, seconds: float) -> Optional[float]:
        """Playback clock tick.

        Returns the position to seek the media element to when the tick
        reached the out point, otherwise None.
        """
        self.position = self._clamp(seconds)
        if self.end > 0 and self.position >= self.end:
            self.position = self.start
            return self.start
        return None

    @property
    def selected_length(self) -> float:
        return max(self.end - self.start, 0.0)

    def labels(self) -> dict[str, str]:
        return {
            "position": format_clock(self.position),
            "start": format_clock(self.start),
            "end": format_clock(self.end),
            "duration": format_clock(self.duration),
        }

    def _clamp(self, seconds: float) -> float:
        seconds = max(seconds, 0.0)
        if self.duration > 0:
            seconds = min(seconds, self.duration)
        return seconds
