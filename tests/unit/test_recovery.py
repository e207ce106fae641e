# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from orchestrator.enums.failure import (
    FailureCategory,
    FailureKind,
    default_failure_for,
    timeout_failure_for,
)
from orchestrator.enums.service import Service
from orchestrator.phases import (
    Capturing,
    Enhanced,
    Enhancing,
    Idle,
    Transcribed,
    Transcribing,
)
from orchestrator.recovery import expected_category, resume_phase


CAPTURE_KINDS = [k for k in FailureKind if k.category is FailureCategory.CAPTURE_ERROR]
TRANSCRIPTION_KINDS = [k for k in FailureKind if k.category is FailureCategory.TRANSCRIPTION_ERROR]
ENHANCEMENT_KINDS = [k for k in FailureKind if k.category is FailureCategory.ENHANCEMENT_ERROR]


def test_every_kind_has_a_category() -> None:
    assert len(CAPTURE_KINDS) + len(TRANSCRIPTION_KINDS) + len(ENHANCEMENT_KINDS) == len(FailureKind)


@pytest.mark.parametrize("failure", CAPTURE_KINDS)
def test_capture_failure_resumes_idle(failure: FailureKind) -> None:
    failing = Capturing(run_id=3, fallback=Transcribed(text="prior"))
    assert resume_phase(failing, failure) == Idle()


@pytest.mark.parametrize("failure", TRANSCRIPTION_KINDS)
def test_transcription_failure_without_prior_text_resumes_idle(failure: FailureKind) -> None:
    assert resume_phase(Transcribing(run_id=1), failure) == Idle()


def test_transcription_failure_restores_prior_transcription() -> None:
    failing = Transcribing(run_id=2, fallback=Transcribed(text="X"))
    assert resume_phase(failing, FailureKind.TRANSCRIPTION_FAILED) == Transcribed(text="X")


def test_transcription_failure_restores_prior_enhancement() -> None:
    failing = Transcribing(run_id=2, fallback=Enhanced(text="X."))
    assert resume_phase(failing, FailureKind.TRANSCRIPTION_TIMEOUT) == Enhanced(text="X.")


@pytest.mark.parametrize("failure", ENHANCEMENT_KINDS)
def test_enhancement_failure_keeps_base_text(failure: FailureKind) -> None:
    failing = Enhancing(base_text="X", run_id=1)
    assert resume_phase(failing, failure) == Transcribed(text="X")


def test_mismatched_failure_is_a_programming_error() -> None:
    with pytest.raises(ValueError):
        resume_phase(Enhancing(base_text="X", run_id=1), FailureKind.CAPTURE_NO_AUDIO)


@pytest.mark.parametrize("phase", [Idle(), Transcribed(text="x"), Enhanced(text="x")])
def test_stable_phases_cannot_fail(phase) -> None:
    with pytest.raises(ValueError):
        expected_category(phase)


def test_service_defaults_and_timeouts() -> None:
    assert default_failure_for(Service.CAPTURE) is FailureKind.CAPTURE_START_FAILED
    assert default_failure_for(Service.TRANSCRIPTION) is FailureKind.TRANSCRIPTION_FAILED
    assert default_failure_for(Service.ENHANCEMENT) is FailureKind.ENHANCEMENT_FAILED
    assert timeout_failure_for(Service.CAPTURE) is FailureKind.CAPTURE_TIMEOUT
    assert timeout_failure_for(Service.TRANSCRIPTION) is FailureKind.TRANSCRIPTION_TIMEOUT
    assert timeout_failure_for(Service.ENHANCEMENT) is FailureKind.ENHANCEMENT_TIMEOUT
