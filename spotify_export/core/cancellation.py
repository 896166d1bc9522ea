"""
Cooperative cancellation for the export pipeline.
"""


class ExportCancelled(Exception):
    """Unwinds the pipeline once a stop request has been observed."""


class CancellationToken:
    """
    A flag polled by the pipeline before each remote call and after each
    processed item. Setting it never interrupts a request already in flight;
    the request's result is discarded when it returns.
    """

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise ExportCancelled()
