# src/error_shield/tests/test_core/test_masking.py
import json
from datetime import datetime
from decimal import Decimal

import pytest

from error_shield.core.diagnostics import DiagnosticLogger
from error_shield.core.masking import ErrorMasker, MaskingOutcome
from error_shield.exceptions.base import (
    MASKED_ERROR_MESSAGE,
    ConflictError,
    ForbiddenError,
    HttpError,
    NotFoundError,
    ServiceUnavailableError,
    UnprocessableEntityError,
)
from error_shield.exceptions.classifier import ErrorDisposition

MASKED_BODY = {"statusCode": 500, "message": MASKED_ERROR_MESSAGE, "error": "Internal Server Error"}


@pytest.fixture
def masker(sink) -> ErrorMasker:
    return ErrorMasker(DiagnosticLogger(sink))


def test_mask_replaces_status_and_body(masker, sink):
    err = ConflictError("User already exists", details={"databaseConstraint": "unique_email_constraint"})

    outcome = masker.handle(err)

    assert outcome.disposition is ErrorDisposition.MASK
    assert outcome.status_code == 500
    assert outcome.body == MASKED_BODY
    # operators still get the original
    assert sink.last.status_code == 409
    assert sink.last.body == err.to_payload()


def test_passthrough_forwards_original_body(masker, sink):
    err = ForbiddenError("You do not have permission")

    outcome = masker.handle(err)

    assert outcome.disposition is ErrorDisposition.PASSTHROUGH
    assert outcome.status_code == 403
    assert outcome.body == err.to_payload()
    assert len(sink.records) == 1


def test_server_error_passes_through(masker):
    outcome = masker.handle(ServiceUnavailableError("maintenance window"))
    assert outcome.status_code == 503
    assert outcome.body["message"] == "maintenance window"


def test_opaque_failure_has_no_response(masker, sink):
    outcome = masker.handle(RuntimeError("boom"))

    assert outcome.rethrow
    assert outcome.body is None
    assert sink.last.error_message == "boom"
    with pytest.raises(ValueError):
        outcome.to_response()


def test_every_path_logs_exactly_once(masker, sink):
    errors = [ConflictError("a"), ForbiddenError("b"), ServiceUnavailableError("c"), KeyError("d")]
    for err in errors:
        masker.handle(err)
    assert [r.status_code for r in sink.records] == [409, 403, 503, None]


def test_logging_happens_before_classification(sink, monkeypatch):
    from error_shield.core import masking

    seen_at_classification = []

    def spy_classify(failure):
        seen_at_classification.append(len(sink.records))
        return ErrorDisposition.MASK

    monkeypatch.setattr(masking, "classify", spy_classify)
    ErrorMasker(DiagnosticLogger(sink)).handle(ConflictError("x"))

    assert seen_at_classification == [1]


def test_classifier_failures_are_not_caught(sink, monkeypatch):
    from error_shield.core import masking

    def broken_classify(failure):
        raise LookupError("classifier bug")

    monkeypatch.setattr(masking, "classify", broken_classify)
    with pytest.raises(LookupError, match="classifier bug"):
        ErrorMasker(DiagnosticLogger(sink)).handle(ConflictError("x"))
    # the original was still recorded
    assert sink.last.status_code == 409


def test_sink_failure_does_not_change_the_decision(broken_sink):
    outcome = ErrorMasker(DiagnosticLogger(broken_sink)).handle(ConflictError("x"))
    assert outcome.body == MASKED_BODY


def test_strip_passthrough_details(sink):
    err = HttpError("gateway timeout", status_code=504, details={"upstream": "10.0.0.7:5432"})

    default = ErrorMasker(DiagnosticLogger(sink)).handle(err)
    hardened = ErrorMasker(DiagnosticLogger(sink), strip_passthrough_details=True).handle(err)

    assert default.body["details"] == {"upstream": "10.0.0.7:5432"}
    assert "details" not in hardened.body
    # the diagnostic record is never stripped
    assert sink.last.body["details"] == {"upstream": "10.0.0.7:5432"}


def test_masked_body_is_identical_regardless_of_cause(masker):
    first = masker.handle(ConflictError("dup", details={"existingEmail": "user@example.com"}))
    second = masker.handle(UnprocessableEntityError("rule", details={"age": 17, "requiredAge": 18}))
    assert first.to_response().body == second.to_response().body


def test_masking_is_total_redaction(masker, faker):
    for _ in range(25):
        message = faker.sentence()
        details = {
            "email": faker.email(),
            "constraint": f"uq_{faker.word()}_{faker.word()}",
            "rule": faker.paragraph(),
            "threshold": faker.pyint(min_value=1000, max_value=99999),
        }
        status = faker.random_element([400, 402, 405, 409, 410, 413, 418, 422, 429, 451])

        outcome = masker.handle(HttpError(message, status_code=status, details=details))

        rendered = json.dumps(outcome.body, ensure_ascii=False)
        assert outcome.body == MASKED_BODY
        assert message not in rendered
        for value in details.values():
            assert str(value) not in rendered


def test_outcome_response_renders_json():
    from error_shield.core.diagnostics import DiagnosticRecord
    from error_shield.exceptions.classifier import capture_failure

    err = ForbiddenError("no")
    outcome = MaskingOutcome(
        disposition=ErrorDisposition.PASSTHROUGH,
        record=DiagnosticRecord.from_failure(capture_failure(err)),
        status_code=403,
        body=err.to_payload(),
    )
    response = outcome.to_response()
    assert response.status_code == 403
    assert json.loads(response.body) == err.to_payload()


def test_passthrough_response_encodes_rich_details(masker):
    err = NotFoundError("gone", details={"deleted_at": datetime(2026, 1, 1), "price": Decimal("1.5")})

    response = masker.handle(err).to_response()

    assert response.status_code == 404
    assert json.loads(response.body)["details"] == {"deleted_at": "2026-01-01T00:00:00", "price": 1.5}
