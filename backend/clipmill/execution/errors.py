"""
Execution-specific errors.

All errors are non-fatal to the batch.
They indicate failure for a specific task; sibling tasks keep running.
"""


class ExecutionError(Exception):
    """
    Base exception for execution failures.

    All execution errors inherit from this.
    """

    pass


class QueueShutdownError(ExecutionError):
    """
    Raised into a pending job handle when its queue shuts down.

    Jobs already running when the queue shuts down are unaffected.
    """

    def __init__(self):
        super().__init__("Job queue shut down before the job started")


class OutputCommitError(ExecutionError):
    """
    Rendered output could not be moved into the output directory.

    Raised when:
    - Temp output file is missing after a successful engine run
    - Rename/copy into the output directory fails
    """

    pass
