"""Custom exception hierarchy for neuralgraph."""


class NeuralGraphError(Exception):
    """Base for all neuralgraph errors."""


class NotFoundError(NeuralGraphError):
    """No node, edge or evolution event with the given ID exists."""


class InvalidStateError(NeuralGraphError):
    """Transition not allowed from the entity's current state."""


class UpstreamUnavailableError(NeuralGraphError):
    """The graph store or the task classifier could not be reached."""


class TaskValidationError(NeuralGraphError):
    """Malformed task request or argument."""
