class ProposalError(Exception):
    """Base exception for the proposal widget."""

    pass


class StateValidationError(ProposalError):
    """Raised when the persisted widget state is invalid or corrupted."""

    pass


class StorageUnavailableError(ProposalError):
    """Raised when the key-value store cannot be read or written."""

    pass


class PlaybackRejectedError(ProposalError):
    """Raised by an audio port when the platform refuses to start playback (no user gesture yet)."""

    pass
