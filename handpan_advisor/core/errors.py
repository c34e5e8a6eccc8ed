"""Exception types raised by Handpan Advisor."""


class HandpanAdvisorError(Exception):
    """Base class for all library errors."""


class InvalidNoteError(HandpanAdvisorError, ValueError):
    """A note name could not be decoded into a pitch class and octave."""


class MidiLoadError(HandpanAdvisorError):
    """Raw MIDI data could not be turned into tracks."""


class ScaleLibraryError(HandpanAdvisorError):
    """A scale catalogue is malformed."""
