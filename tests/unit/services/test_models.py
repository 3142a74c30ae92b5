"""Unit tests for service data models."""

from siteqa.services.models import AskResponse, ErrorKind, IngestResult


def test_error_kind_values() -> None:
    assert ErrorKind.INVALID_INPUT.value == "invalid_input"
    assert ErrorKind.SCRAPING_FAILED.value == "scraping_failed"
    assert ErrorKind.SERVICE_DEGRADED.value == "service_degraded"
    assert ErrorKind.SERVICE_ERROR.value == "service_error"


def test_ingest_result_defaults() -> None:
    result = IngestResult(namespace="ns", success=True)

    assert result.pages_crawled == 0
    assert result.chunks_stored == 0
    assert result.truncated is False
    assert result.skipped is False
    assert result.error is None


def test_success_response_shape() -> None:
    response = AskResponse(success=True, answer="Yes.", metadata={"cached": False})

    assert response.to_dict() == {
        "success": True,
        "answer": "Yes.",
        "metadata": {"cached": False},
    }


def test_failure_response_shape() -> None:
    response = AskResponse.failure(ErrorKind.SCRAPING_FAILED, "Could not scrape")

    assert response.to_dict() == {
        "success": False,
        "error": "scraping_failed",
        "message": "Could not scrape",
    }


def test_from_dict_restores_response() -> None:
    data = {"success": False, "error": "service_degraded", "message": "busy"}

    response = AskResponse.from_dict(data)

    assert response.error is ErrorKind.SERVICE_DEGRADED
    assert response.to_dict() == data
