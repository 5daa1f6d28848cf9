"""
Exception hierarchy for the ddp_linreg pipeline.

Each failure kind the pipeline can report across the process boundary has its
own type, so the request boundary (see ``ddp_linreg.pipeline.run_request``) can
turn it into an explicit result instead of aborting the caller.
"""


class PipelineError(Exception):
    """Base exception for all pipeline failures."""

    status = "error"


class ProtocolError(PipelineError, ValueError):
    """Raised when a token from the sample channel cannot be parsed or is missing."""

    status = "protocol_error"


class PreconditionError(PipelineError, RuntimeError):
    """Raised when an operation is invoked in a state it cannot handle."""

    status = "precondition_violation"


class ModelLookupError(PipelineError, KeyError):
    """Raised when a model or dataset name is not known to this worker."""

    status = "lookup_failure"

    def __str__(self):
        # KeyError quotes its argument, keep the plain message
        return Exception.__str__(self)
