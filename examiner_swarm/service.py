"""
Grading endpoint handler.

Maps a raw request payload and an authenticated caller context to an HTTP
style response. Framework adapters only need to translate ApiResponse into
their own response type.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, NamedTuple, Protocol

from pydantic import ValidationError

from examiner_swarm.errors import (
    AdmissionError,
    GradingError,
    RequestValidationError,
    SubjectAccessError,
)
from examiner_swarm.grading import GradingOrchestrator
from examiner_swarm.logging import get_logger
from examiner_swarm.models import GradeContext, GradeRequest, GradingResult, Subject

logger = get_logger(__name__)

ESSAYS_TABLE = "essays"
MAX_HISTORY_LIMIT = 100


class ApiResponse(NamedTuple):
    """Status code, JSON body and extra headers."""

    status: int
    body: dict[str, Any]
    headers: dict[str, str]


class ResultStore(Protocol):
    """Persistence for graded essays."""

    async def insert(self, table: str, record: dict[str, Any]) -> str | None:
        """Store a record and return its id."""
        ...

    async def select(
        self,
        table: str,
        user_id: str,
        subject: Subject | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Records for a user, newest first."""
        ...


class InMemoryResultStore:
    """ResultStore kept in process memory; for tests and local runs."""

    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}

    async def insert(self, table: str, record: dict[str, Any]) -> str | None:
        row = {
            **record,
            "id": uuid.uuid4().hex,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }
        self.tables.setdefault(table, []).append(row)
        return row["id"]

    async def select(
        self,
        table: str,
        user_id: str,
        subject: Subject | None = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        rows = [
            row
            for row in self.tables.get(table, [])
            if row.get("user_id") == user_id
            and (subject is None or row.get("subject") == subject.value)
        ]
        rows.sort(key=lambda row: row["created_at"], reverse=True)
        return rows[:limit]


class GradingService:
    """
    Request handler in front of the orchestrator.

    Order of checks: payload validation, subject access, configuration,
    rate limit. Only then is the swarm dispatched.
    """

    def __init__(self, orchestrator: GradingOrchestrator, store: ResultStore | None = None):
        self._orchestrator = orchestrator
        self._store = store

    async def handle(self, payload: Mapping[str, Any], context: GradeContext) -> ApiResponse:
        """
        Grade one essay.

        Args:
            payload: Raw request body (camelCase or snake_case keys).
            context: Authenticated caller.

        Returns:
            200 with the grading result, or an error response.
        """
        try:
            request = self._validate(payload)
            self._check_subject(request.subject, context)
            decision = self._orchestrator.admit(context.user_id, context.tier)
            result = await self._orchestrator.execute(request)
        except AdmissionError as e:
            return self._error(
                e,
                headers={
                    "Retry-After": str(e.retry_after),
                    "X-RateLimit-Remaining": "0",
                },
                retryAfter=e.retry_after,
            )
        except GradingError as e:
            return self._error(e)
        except Exception:
            logger.exception("grade_request_failed", user_id=context.user_id)
            return ApiResponse(
                status=500,
                body={"error": "Internal server error", "code": "INTERNAL_ERROR"},
                headers={},
            )

        saved_id = None
        if request.save_to_history:
            saved_id = await self._save(request, result, context)

        return ApiResponse(
            status=200,
            body=self._success_body(result, saved_id),
            headers={"X-RateLimit-Remaining": str(decision.remaining)},
        )

    async def history(
        self,
        context: GradeContext,
        subject: Subject | str | None = None,
        limit: int = 20,
    ) -> ApiResponse:
        """List the caller's saved essays, newest first."""
        try:
            if subject is not None:
                subject = self._parse_subject(subject)
                self._check_subject(subject, context)
        except GradingError as e:
            return self._error(e)

        limit = min(max(limit, 1), MAX_HISTORY_LIMIT)
        essays: list[dict[str, Any]] = []
        if self._store is not None:
            try:
                essays = await self._store.select(
                    ESSAYS_TABLE, user_id=context.user_id, subject=subject, limit=limit
                )
            except Exception:
                logger.exception("history_fetch_failed", user_id=context.user_id)
                return ApiResponse(
                    status=500,
                    body={"error": "Failed to fetch essays", "code": "FETCH_ERROR"},
                    headers={},
                )

        return ApiResponse(
            status=200,
            body={
                "essays": essays,
                "total": len(essays),
                "subject": subject.value if subject else None,
                "subjects": [s.value for s in context.allowed_subjects],
            },
            headers={},
        )

    @staticmethod
    def _validate(payload: Mapping[str, Any]) -> GradeRequest:
        try:
            return GradeRequest.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(
                "Invalid request",
                details=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e

    @staticmethod
    def _parse_subject(value: Subject | str) -> Subject:
        try:
            return Subject(value)
        except ValueError as e:
            raise RequestValidationError(f"Unknown subject: {value}") from e

    @staticmethod
    def _check_subject(subject: Subject, context: GradeContext) -> None:
        if subject not in context.allowed_subjects:
            raise SubjectAccessError(
                f"Access denied to subject: {subject.value}",
                details={"userSubjects": [s.value for s in context.allowed_subjects]},
            )

    async def _save(
        self, request: GradeRequest, result: GradingResult, context: GradeContext
    ) -> str | None:
        """Persist a result; failures are logged and never fail the request."""
        if self._store is None:
            return None

        examiners = [
            r.model_dump(mode="json", by_alias=True, exclude_none=True)
            for r in result.examiner_results
        ]
        record = {
            "user_id": context.user_id,
            "subject": request.subject.value,
            "question": request.question,
            "content": request.essay,
            "question_type": result.question_type.value,
            "unit": result.unit.value,
            "overall_score": result.overall_score,
            "grade": result.grade,
            "feedback": [
                {
                    "examiner": r.examiner_name,
                    "score": r.score,
                    "maxScore": r.max_score,
                    "feedback": r.feedback,
                }
                for r in result.examiner_results
            ],
            "summary": result.summary,
            "improvements": list(result.improvements),
            "word_count": result.word_count,
            "confidence": result.confidence,
            "examiner_scores": examiners,
        }

        try:
            return await self._store.insert(ESSAYS_TABLE, record)
        except Exception as e:
            logger.warning(
                "essay_save_failed",
                user_id=context.user_id,
                request_id=result.request_id,
                error=repr(e),
            )
            return None

    @staticmethod
    def _success_body(result: GradingResult, saved_id: str | None) -> dict[str, Any]:
        return {
            "overallScore": result.overall_score,
            "grade": result.grade,
            "examiners": [
                r.model_dump(mode="json", by_alias=True) for r in result.examiner_results
            ],
            "summary": result.summary,
            "improvements": list(result.improvements),
            "keyStrengths": list(result.key_strengths),
            "confidence": result.confidence,
            "wordCount": result.word_count,
            "timeEstimate": result.time_estimate,
            "questionType": result.question_type.value,
            "unit": result.unit.value,
            "subject": result.subject.value,
            "diagramFeedback": result.diagram_feedback,
            "savedEssayId": saved_id,
        }

    @staticmethod
    def _error(
        error: GradingError, headers: dict[str, str] | None = None, **extra: Any
    ) -> ApiResponse:
        body: dict[str, Any] = {"error": str(error), "code": error.code}
        if error.details is not None:
            body["details"] = error.details
        body.update(extra)
        if error.status >= 500:
            logger.error("grade_request_rejected", code=error.code, error=str(error))
        else:
            logger.info("grade_request_rejected", code=error.code, error=str(error))
        return ApiResponse(status=error.status, body=body, headers=headers or {})
