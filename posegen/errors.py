"""Exception taxonomy shared by the service, pipelines and HTTP layer."""


class PosegenError(Exception):
    """Base class for all posegen errors."""


class NotFoundError(PosegenError):
    """Referenced episode, pose, storyboard or task does not exist."""


class InvalidStateError(PosegenError):
    """A precondition on the referenced record is not met."""


class UpstreamError(PosegenError):
    """The text or image generation collaborator failed."""


class AIParseError(PosegenError):
    """AI output could not be interpreted as the expected JSON shape.

    ``raw`` keeps the offending text for diagnostics.
    """

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class GenerationTimeoutError(PosegenError):
    """Polling ceiling reached before the generation record became terminal."""


class DuplicatePoseError(PosegenError):
    """A pose with the same name already exists for the drama."""
