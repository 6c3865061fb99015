"""Exception types raised by the PyBEFW model layer."""


class ConfigurationError(ValueError):
    """Incompatible or invalid combination of model components.

    Raised while parameters are being assembled, never during integration.
    """


class ConsistencyError(AssertionError):
    """Two compact-evaluator fragments disagree on a shared data key.

    This signals a bug in how the model terms were composed, not a user error.
    """
