from __future__ import annotations


class RadioError(Exception):
    """Base class for everything the radio core raises."""


class NotReady(RadioError):
    """Filter graph or analysis tap requested before a media source exists."""


class StartFailed(RadioError):
    """The media subsystem refused to begin playback."""


class TransientStall(RadioError):
    """Media subsystem reported a stall; recovers on its own."""
