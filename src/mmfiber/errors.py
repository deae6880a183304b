"""Exceptions raised by the fiber source sampler."""


class FiberSourceError(Exception):
    """Base class for errors raised by this package."""


class SamplingExhaustedError(FiberSourceError):
    """The rejection loop hit its iteration cap without accepting a point.

    The host adapter maps this to the reserved failure return code instead
    of letting a pathological parameter set spin forever.
    """

    def __init__(self, iterations, params):
        self.iterations = iterations
        self.params = params
        super().__init__(
            f"no sample accepted after {iterations} rejection iterations "
            f"(omega={params.omega}, alpha={params.alpha}, "
            f"rejection_factor={params.rejection_factor})"
        )
