# core/exceptions.py

"""
Errors raised by the compression pipeline
"""


class CompressionError(Exception):
    """Remote compression call failed (non-success response, network error, missing fields)"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CredentialError(Exception):
    """No usable credential, or an attempt to override a locked one"""


class InvalidTransitionError(Exception):
    """A job was asked to move between states that are not connected"""

    def __init__(self, job_id: str, current: str, action: str):
        super().__init__(f"Job {job_id} cannot {action} from state '{current}'")
        self.job_id = job_id
        self.current = current
        self.action = action
