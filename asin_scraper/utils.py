from .models import ExtractionResult


def failed_result(identifier: str, url: str, error: str, attempts: int) -> ExtractionResult:
    """
    Convenience factory for an ExtractionResult representing a task whose
    attempts were all used up. Every extracted field stays None so the rest
    of the pipeline can treat it like any other row.
    """
    return ExtractionResult(
        identifier=identifier,
        url=url,
        error_message=error,
        attempts=attempts,
    )


def describe_error(exc: BaseException) -> str:
    """Message stored in `error_message`; falls back to the exception type name."""
    message = str(exc).strip()
    return message or type(exc).__name__
