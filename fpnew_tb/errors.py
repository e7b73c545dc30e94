class FpnewTbError(Exception):
    """Base class for every fatal stimuli-generation error."""


class InvalidFormat(FpnewTbError, ValueError):
    pass


class InvalidOperation(FpnewTbError, ValueError):
    pass


class IOFailure(FpnewTbError, OSError):
    pass
