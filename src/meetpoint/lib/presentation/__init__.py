"""Presentation library: the event contract between the core and a renderer.

Public API:
    - PresentationPort: Renderer protocol
    - EntriesChanged / AggregateChanged / ResolutionError: View-model events
    - NullPresenter / LoggingPresenter: Built-in renderers
    - safe_notify: Failure-isolating dispatch
"""

from meetpoint.lib.presentation.events import (
    AggregateChanged,
    EntriesChanged,
    PresentationEvent,
    ResolutionError,
)
from meetpoint.lib.presentation.port import LoggingPresenter, NullPresenter, PresentationPort, safe_notify

__all__ = [
    "AggregateChanged",
    "EntriesChanged",
    "LoggingPresenter",
    "NullPresenter",
    "PresentationEvent",
    "PresentationPort",
    "ResolutionError",
    "safe_notify",
]
