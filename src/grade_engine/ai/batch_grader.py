"""
Batch AI grading of free-text answers.

All free-text answers of one submission go out in a single call. Whatever
the model returns, every result handed back is bounded by the item's max
points, and any failure of the service (transport, auth, timeout,
unreadable output) turns into deterministic fallback scores instead of an
error, so grading never blocks on an unreachable service.

Usage:
    client = AIGradingClient(provider, timeout=30)
    results = await client.grade_batch(context, items)
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from loguru import logger

from grade_engine.ai.base_provider import BaseProvider
from grade_engine.ai.provider_factory import create_ai_provider
from grade_engine.ai.response_parser import parse_batch_response
from grade_engine.config.settings import Settings, get_settings
from grade_engine.config.constants import (
    DEFAULT_AI_TIMEOUT,
    FALLBACK_FEEDBACK,
    FALLBACK_SCORE_RATIO,
    SCORE_DECIMALS,
)
from grade_engine.core.exceptions import (
    GradingServiceUnavailable,
    ProviderError,
    ValidationError,
)
from grade_engine.core.models import GradeComponent, GradeSource, utc_now
from grade_engine.prompts.batch import BATCH_GRADING_SYSTEM_PROMPT, build_batch_grading_prompt


@dataclass(frozen=True)
class GradingContext:
    """Assignment-level context shared by every item of a batch."""
    assignment_title: str
    reference_content: str = ""


@dataclass(frozen=True)
class GradingItem:
    """One free-text answer to grade."""
    question_id: str
    question_text: str
    student_answer: str
    max_points: float
    question_type: str
    reference_answer: Optional[str] = None


@dataclass(frozen=True)
class GradingResult:
    """Bounded result for one item."""
    question_id: str
    score: float
    feedback: str
    is_fallback: bool = False
    clamped: bool = False

    def to_component(self, graded_at: Optional[datetime] = None) -> GradeComponent:
        return GradeComponent(
            question_id=self.question_id,
            source=GradeSource.AI,
            score=self.score,
            feedback=self.feedback,
            graded_at=graded_at or utc_now(),
            provisional=self.is_fallback,
        )


class AIGradingClient:
    """
    Grade a batch of free-text answers with one provider call.

    The client holds no grading state; calling grade_batch twice with the
    same items is safe.
    """

    def __init__(
        self,
        provider: Optional[BaseProvider],
        timeout: float = DEFAULT_AI_TIMEOUT,
        fallback_ratio: float = FALLBACK_SCORE_RATIO
    ):
        """
        Args:
            provider: Text-completion backend, or None when none is configured
                (every batch then gets fallback scores)
            timeout: Upper bound in seconds for the whole provider call
            fallback_ratio: Share of max points awarded when the service fails
        """
        self.provider = provider
        self.timeout = timeout
        self.fallback_ratio = fallback_ratio

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> 'AIGradingClient':
        """Build a client for the configured provider, timeout and fallback ratio."""
        settings = settings or get_settings()
        return cls(
            create_ai_provider(settings=settings),
            timeout=settings.ai_timeout_seconds,
            fallback_ratio=settings.fallback_score_ratio,
        )

    async def grade_batch(
        self,
        context: GradingContext,
        items: Sequence[GradingItem]
    ) -> List[GradingResult]:
        """
        Grade all items in a single call.

        Args:
            context: Assignment title and reference content
            items: Non-empty list of answers, each with max_points > 0

        Returns:
            One GradingResult per item, in input order

        Raises:
            ValidationError: If items is empty or a max_points is not positive
            asyncio.CancelledError: If the caller cancels; nothing is returned
        """
        items = list(items)
        self._check_preconditions(items)
        start_time = time.time()

        try:
            raw_response = await self._call_provider(context, items)
            entries = parse_batch_response(raw_response, len(items))
        except (GradingServiceUnavailable, ProviderError) as e:
            logger.warning(
                f"Batch grading unavailable for {len(items)} items after "
                f"{(time.time() - start_time) * 1000:.0f}ms: {e}. Applying fallback scores"
            )
            return [self._fallback(item) for item in items]

        results = []
        for item, entry in zip(items, entries):
            if entry is None:
                logger.warning(f"No usable result for {item.question_id} in batch response; applying fallback score")
                results.append(self._fallback(item))
            else:
                results.append(self._bounded(item, entry["score"], entry["feedback"]))

        logger.info(
            f"Batch graded {len(items)} items in {(time.time() - start_time) * 1000:.0f}ms "
            f"({sum(r.is_fallback for r in results)} fallback)"
        )
        return results

    def _check_preconditions(self, items: List[GradingItem]) -> None:
        if not items:
            raise ValidationError("grade_batch needs at least one item")
        invalid = [item.question_id for item in items if not item.max_points > 0]
        if invalid:
            raise ValidationError(
                f"max_points must be positive for: {', '.join(invalid)}",
                {"question_ids": invalid}
            )

    async def _call_provider(self, context: GradingContext, items: List[GradingItem]) -> str:
        """
        Run the blocking provider call off the event loop under the timeout.

        Raises:
            GradingServiceUnavailable: No provider, timeout, or any provider/transport error
        """
        if self.provider is None:
            raise GradingServiceUnavailable("No AI provider configured")

        prompt = build_batch_grading_prompt(context, items)

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    self.provider.call_text,
                    prompt,
                    BATCH_GRADING_SYSTEM_PROMPT,
                    "json"
                ),
                timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise GradingServiceUnavailable(
                f"{self.provider.name} did not answer within {self.timeout}s"
            ) from e
        except ProviderError as e:
            raise GradingServiceUnavailable(str(e)) from e
        except Exception as e:
            # SDK transport/auth errors that escaped translation
            raise GradingServiceUnavailable(
                f"{self.provider.name} call failed: {type(e).__name__}: {e}"
            ) from e

    def _bounded(self, item: GradingItem, score: float, feedback: str) -> GradingResult:
        bounded = min(max(score, 0.0), item.max_points)
        clamped = bounded != score
        if clamped:
            logger.warning(
                f"AI score for {item.question_id} out of range: {score} clamped to {bounded} "
                f"(max {item.max_points})"
            )
        return GradingResult(
            question_id=item.question_id,
            score=round(bounded, SCORE_DECIMALS),
            feedback=feedback,
            clamped=clamped,
        )

    def _fallback(self, item: GradingItem) -> GradingResult:
        return GradingResult(
            question_id=item.question_id,
            score=round(item.max_points * self.fallback_ratio, SCORE_DECIMALS),
            feedback=FALLBACK_FEEDBACK,
            is_fallback=True,
        )
