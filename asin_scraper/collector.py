from .models import ExtractionResult


class ResultCollector:
    """
    Holds one ExtractionResult per settled task, in completion order.

    The collection is only handed out after `close()`, which the orchestrator
    calls once the scheduler reports that every task is terminal.
    """

    def __init__(self):
        self._results: list[ExtractionResult] = []
        self._closed = False

    def add(self, result: ExtractionResult) -> None:
        if self._closed:
            raise RuntimeError("collector is closed")
        self._results.append(result)

    def close(self) -> None:
        self._closed = True

    def results(self) -> list[ExtractionResult]:
        if not self._closed:
            raise RuntimeError("results are only available after the run completes")
        return list(self._results)

    def __len__(self) -> int:
        return len(self._results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self._results if r.ok)

    @property
    def failed(self) -> int:
        return len(self._results) - self.succeeded
