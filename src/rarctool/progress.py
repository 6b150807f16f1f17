"""Progress reporting for the LZ encoders.

An encoder calls ``on_progress(phase, message, percent)`` each time the
integer percentage of consumed input changes:

* ``phase`` names the codec (``"yaz0"`` or ``"yay0"``);
* ``message`` is ``"<consumed>/<total> bytes"``;
* ``percent`` never decreases, and the last call reports 100.
"""

from collections.abc import Callable

ProgressCallback = Callable[[str, str, int], None]


def noop_progress(phase: str, message: str, percent: int) -> None:
    """Default callback for encoders run without a listener."""
