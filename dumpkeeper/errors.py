"""
Error types shared by every stage of a backup run.
"""


class BackupError(Exception):
    """
    Raised when a stage fails and the whole run must stop.

    The exception text is what goes to the error log. ``notice`` is the body
    emailed to the operator, and ``notify`` decides whether an email is sent
    at all.
    """

    notify = True

    def __init__(self, message: str, notice: str = None):
        super().__init__(message)
        self.notice = notice if notice is not None else message
