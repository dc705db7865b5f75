from __future__ import annotations

from typing import Protocol


class MediaElement(Protocol):
    paused: bool
    muted: bool
    current_time: float
    duration: float
    is_fullscreen: bool

    def play(self) -> None: ...
    def pause(self) -> None: ...
    def request_fullscreen(self) -> None: ...
    def exit_fullscreen(self) -> None: ...


def format_time(seconds: float | None) -> str:
    if not seconds or seconds != seconds or seconds < 0:  # None, NaN, negative
        seconds = 0
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"


class Transport:
    """User controls. Each one delegates straight to the media element."""

    def __init__(self, element: MediaElement):
        self.element = element

    def toggle_play(self) -> None:
        if self.element.paused:
            self.element.play()
        else:
            self.element.pause()

    def toggle_mute(self) -> bool:
        self.element.muted = not self.element.muted
        return self.element.muted

    def seek(self, pointer_x: float, track_left: float, track_width: float) -> None:
        # The element clamps out-of-range positions itself.
        if track_width <= 0:
            return
        pos = (pointer_x - track_left) / track_width
        self.element.current_time = pos * (self.element.duration or 0.0)

    def restart(self) -> None:
        self.element.current_time = 0.0
        self.element.play()

    def toggle_fullscreen(self) -> None:
        if self.element.is_fullscreen:
            self.element.exit_fullscreen()
        else:
            self.element.request_fullscreen()

    def progress_percent(self) -> float:
        if not self.element.duration:
            return 0.0
        return self.element.current_time / self.element.duration * 100.0
