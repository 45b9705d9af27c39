"""
Public evidence submission gate.

Every submission runs the same ordered guards; the first rejection ends the
request. All coordination state (challenges, bans, rate window, dedup) lives in
the database, so any number of instances can serve the endpoint.

    validate_shape -> resolve_address -> redeem -> check_ban -> check_rate
    -> check_duplicate -> insert
"""
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable
from fastapi import Request
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import Settings
from app.models.evidence import Evidence
from app.services import challenge as challenge_service
from app.services.challenge import IssuedChallenge
from app.services import dedup
from app.services import reputation
from app.services.evidence import insert_evidence

logger = logging.getLogger(__name__)


# ─── Errors ──────────────────────────────────────────────────────────────────

class EvidenceError(Exception):
    error_code = "EVIDENCE_ERROR"
    status_code = 400

    def __init__(self, message: str, error_code: str | None = None, status_code: int | None = None):
        self.message = message
        if error_code is not None:
            self.error_code = error_code
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_detail(self) -> dict:
        return {"error_code": self.error_code, "message": self.message}


class ValidationError(EvidenceError):
    error_code = "VALIDATION_FAILED"
    status_code = 400


class VerificationError(ValidationError):
    """Challenge failed; carries the replacement challenge the client must answer next."""
    error_code = "CHALLENGE_FAILED"

    def __init__(self, message: str, challenge: IssuedChallenge | None = None):
        super().__init__(message)
        self.challenge = challenge

    def to_detail(self) -> dict:
        detail = super().to_detail()
        if self.challenge is not None:
            detail["challenge"] = {"id": self.challenge.id, "question": self.challenge.question}
        return detail


class AuthorizationError(EvidenceError):
    error_code = "ADDRESS_BLOCKED"
    status_code = 403


class RateLimitError(EvidenceError):
    error_code = "RATE_LIMITED"
    status_code = 429


class ConflictError(EvidenceError):
    error_code = "DUPLICATE_SUBMISSION"
    status_code = 409


class DependencyError(EvidenceError):
    error_code = "STORE_UNAVAILABLE"
    status_code = 500


class SubmissionsDisabledError(EvidenceError):
    error_code = "SUBMISSIONS_DISABLED"
    status_code = 503


# ─── Request model / config ──────────────────────────────────────────────────

class EvidenceSubmission(BaseModel):
    # Fields stay untyped: validate_shape coerces them so a malformed body answers 400, not 422
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: Any = None
    description: Any = None
    name: Any = None
    email: Any = None
    challenge_id: Any = None
    challenge_answer: Any = None

    @classmethod
    def from_body(cls, body) -> "EvidenceSubmission":
        return cls.model_validate(body if isinstance(body, dict) else {})


@dataclass(frozen=True)
class PipelineConfig:
    submissions_enabled: bool = True
    rate_limit_window_seconds: int = 60
    challenge_ttl_seconds: int = 2 * 60 * 60
    challenge_operand_min: int = 2
    challenge_operand_max: int = 9
    challenge_subtraction_probability: float = 0.4

    @classmethod
    def from_settings(cls, settings: Settings) -> "PipelineConfig":
        return cls(
            submissions_enabled=settings.evidence_submissions_enabled,
            rate_limit_window_seconds=settings.evidence_rate_limit_window_seconds,
            challenge_ttl_seconds=settings.challenge_ttl_seconds,
            challenge_operand_min=settings.challenge_operand_min,
            challenge_operand_max=settings.challenge_operand_max,
            challenge_subtraction_probability=settings.challenge_subtraction_probability,
        )


# ─── Guards ──────────────────────────────────────────────────────────────────

@dataclass
class SubmissionContext:
    db: AsyncSession
    request: Request
    payload: EvidenceSubmission
    config: PipelineConfig
    rng: random.Random | None = None
    title: str = ""
    description: str = ""
    name: str | None = None
    email: str | None = None
    ip_address: str | None = None


@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class Reject:
    error: EvidenceError


GuardResult = Ok | Reject
Guard = Callable[[SubmissionContext], Awaitable[GuardResult]]

OK = Ok()


def _clean(value) -> str:
    return value.strip() if isinstance(value, str) else ""


async def validate_shape(ctx: SubmissionContext) -> GuardResult:
    ctx.title = _clean(ctx.payload.title)
    ctx.description = _clean(ctx.payload.description)
    ctx.name = _clean(ctx.payload.name) or None
    ctx.email = _clean(ctx.payload.email) or None

    if not ctx.title or not ctx.description:
        return Reject(ValidationError("Title and description are required."))
    return OK


async def resolve_address(ctx: SubmissionContext) -> GuardResult:
    ctx.ip_address = reputation.resolve_client_address(ctx.request)
    if not ctx.ip_address:
        return Reject(
            ValidationError(
                "Unable to verify submission origin. Please try again later.",
                error_code="ORIGIN_UNVERIFIABLE",
            )
        )
    return OK


async def redeem(ctx: SubmissionContext) -> GuardResult:
    redeemed = await challenge_service.redeem_challenge(
        ctx.db,
        ctx.payload.challenge_id if isinstance(ctx.payload.challenge_id, str) else None,
        ctx.payload.challenge_answer,
        ttl_seconds=ctx.config.challenge_ttl_seconds,
    )
    if redeemed:
        return OK

    fresh = await challenge_service.issue_challenge(
        ctx.db,
        ttl_seconds=ctx.config.challenge_ttl_seconds,
        rng=ctx.rng,
        operand_min=ctx.config.challenge_operand_min,
        operand_max=ctx.config.challenge_operand_max,
        subtraction_probability=ctx.config.challenge_subtraction_probability,
    )
    return Reject(
        VerificationError(
            "Verification answer is incorrect or expired. Please answer the new question.",
            challenge=fresh,
        )
    )


async def check_ban(ctx: SubmissionContext) -> GuardResult:
    if await reputation.is_banned(ctx.db, ctx.ip_address):
        logger.warning(f"Rejected submission from banned address {ctx.ip_address}")
        return Reject(AuthorizationError("Submissions from this address are blocked."))
    return OK


async def check_rate(ctx: SubmissionContext) -> GuardResult:
    if await reputation.has_recent_submission(
        ctx.db, ctx.ip_address, window_seconds=ctx.config.rate_limit_window_seconds
    ):
        return Reject(RateLimitError("Please wait at least one minute before submitting again."))
    return OK


async def check_duplicate(ctx: SubmissionContext) -> GuardResult:
    if await dedup.is_duplicate(ctx.db, ctx.title, ctx.description):
        return Reject(ConflictError("An identical piece of evidence has already been submitted."))
    return OK


GUARDS: tuple[tuple[str, Guard], ...] = (
    ("validate_shape", validate_shape),
    ("resolve_address", resolve_address),
    ("redeem", redeem),
    ("check_ban", check_ban),
    ("check_rate", check_rate),
    ("check_duplicate", check_duplicate),
)


# ─── Orchestrator ────────────────────────────────────────────────────────────

class SubmissionPipeline:
    def __init__(
        self,
        config: PipelineConfig,
        guards: tuple[tuple[str, Guard], ...] = GUARDS,
        rng: random.Random | None = None,
    ):
        self.config = config
        self.guards = guards
        self.rng = rng

    async def run_guards(self, ctx: SubmissionContext) -> GuardResult:
        for name, guard in self.guards:
            try:
                result = await guard(ctx)
            except SQLAlchemyError as e:
                logger.error(f"Guard {name} failed on store access: {e}")
                await ctx.db.rollback()
                return Reject(DependencyError("Unable to validate submission. Please try again later."))

            if isinstance(result, Reject):
                logger.info(
                    f"Submission rejected at {name}: {result.error.error_code} (ip={ctx.ip_address})"
                )
                return result
        return OK

    async def submit(
        self, db: AsyncSession, request: Request, payload: EvidenceSubmission
    ) -> Evidence:
        """
        Run every guard in order, then insert the record.
        Raises the first rejection as an EvidenceError.
        """
        if not self.config.submissions_enabled:
            raise SubmissionsDisabledError("Evidence submissions are temporarily disabled.")

        ctx = SubmissionContext(
            db=db, request=request, payload=payload, config=self.config, rng=self.rng
        )
        result = await self.run_guards(ctx)
        if isinstance(result, Reject):
            raise result.error

        try:
            return await insert_evidence(
                db,
                title=ctx.title,
                description=ctx.description,
                name=ctx.name,
                email=ctx.email,
                ip_address=ctx.ip_address,
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to create evidence: {e}", exc_info=True)
            await db.rollback()
            raise DependencyError("Failed to create evidence.")
