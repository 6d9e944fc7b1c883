"""Errors raised by Cloud Provisioning Client implementations."""

from typing import Optional


class CloudCallError(RuntimeError):
    """A single control-plane call failed.

    ``status`` holds the HTTP status (API backend) or the process return code
    (gcloud backend) when one is known.
    """

    def __init__(self, operation: str, detail: str, status: Optional[int] = None) -> None:
        super().__init__(f"{operation} failed: {detail}")
        self.operation = operation
        self.detail = detail
        self.status = status
