"""Exceptions raised by scoremidi."""


class ConversionError(Exception):
    """A score could not be converted; no events are returned."""


class InstrumentUnavailableError(ConversionError):
    """The requested instrument cannot be loaded from the instrument bank."""


class InvalidEventError(ConversionError):
    """The sound encoding produced (or refused to produce) an invalid MIDI message."""


class ScoreFormatError(ValueError):
    """A score document does not describe a valid score."""
