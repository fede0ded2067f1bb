"""Exception types raised by splicelens.

Only caller errors are raised. Events without annotated context, transcripts
without an ORF and isoforms without a counterpart are expected outcomes and
show up as missing values in result tables instead.
"""


class SplicelensError(Exception):
    """Base class for splicelens errors."""

    pass


class InputContractError(SplicelensError, ValueError):
    """Raised when an input table or record violates its contract."""

    pass


class AnnotationError(InputContractError):
    """Raised when a reference annotation has wrong feature types or columns."""

    pass


class EventTableError(InputContractError):
    """Raised when an event table is missing required columns."""

    pass


class EmptyInputError(SplicelensError, ValueError):
    """Raised when an operation needs more records than it was given."""

    pass
