"""Tests for the result envelope."""

from dataclasses import dataclass
from typing import Any

import pytest

from record_ai.common.envelope import ResultEnvelope
from record_ai.common.errors import ErrorKind, ProviderFailure


@dataclass
class _Outcome:
    artifact: Any = None
    failure: ProviderFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class TestResultEnvelope:
    """Envelope construction and serialization."""

    @pytest.mark.unit
    def test_ok_shape(self):
        envelope = ResultEnvelope[str].ok("좋은 공연이었어요", "STT 변환이 완료되었습니다.")

        assert envelope.model_dump() == {
            "success": True,
            "data": "좋은 공연이었어요",
            "message": "STT 변환이 완료되었습니다.",
        }

    @pytest.mark.unit
    def test_fail_has_null_data(self):
        envelope = ResultEnvelope[str].fail("STT 변환 실패: boom")

        assert envelope.model_dump() == {
            "success": False,
            "data": None,
            "message": "STT 변환 실패: boom",
        }

    @pytest.mark.unit
    def test_from_successful_outcome(self):
        envelope = ResultEnvelope[str].from_outcome(
            _Outcome(artifact="http://x"),
            success_message="이미지 생성이 완료되었습니다.",
            failure_prefix="이미지 생성 실패",
        )

        assert envelope.success is True
        assert envelope.data == "http://x"
        assert envelope.message == "이미지 생성이 완료되었습니다."

    @pytest.mark.unit
    @pytest.mark.parametrize("kind", list(ErrorKind))
    def test_every_failure_kind_collapses_to_same_shape(self, kind):
        outcome = _Outcome(failure=ProviderFailure(kind=kind, detail=f"{kind.value} detail"))

        envelope = ResultEnvelope[str].from_outcome(
            outcome, success_message="done", failure_prefix="후기 요약 실패"
        )

        assert envelope.success is False
        assert envelope.data is None
        assert envelope.message == f"후기 요약 실패: {kind.value} detail"

    @pytest.mark.unit
    def test_json_keeps_korean_text(self):
        envelope = ResultEnvelope[str].ok("좋아요", "완료")

        assert "좋아요" in envelope.model_dump_json()
