"""
Grading workflow orchestration.

GradingWorkflow is the single owner of a submission's grade state. Every
read-modify-write of a submission runs under a per-submission lock, so
auto-grading, the AI batch and teacher overrides on one submission are
serialized, while independent submissions proceed concurrently.
"""

import asyncio
import math
import weakref
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple

from loguru import logger

from grade_engine.ai.batch_grader import AIGradingClient, GradingContext, GradingItem
from grade_engine.config.constants import (
    PENDING_REVIEW_MESSAGE,
    ROSTER_LABEL_GRADED,
    ROSTER_LABEL_LATE,
    ROSTER_LABEL_SUBMITTED,
)
from grade_engine.core.exceptions import (
    AssignmentNotFoundError,
    NotReadyError,
    SubmissionNotFoundError,
    ValidationError,
)
from grade_engine.core.models import (
    Assignment,
    ChoiceQuestion,
    GradeComponent,
    GradeSource,
    GradeView,
    QuestionGrade,
    RosterEntry,
    StudentGradeView,
    Submission,
    SubmissionStatus,
    SubmittedAnswer,
    generate_id,
    utc_now,
)
from grade_engine.core.workflow_state import (
    ensure_mutable,
    status_after_ai_grade,
    status_after_auto_grade,
    status_after_manual_grade,
    with_status,
)
from grade_engine.grading.auto_grader import score_choice
from grade_engine.grading.reconciler import compute_total, reconcile
from grade_engine.storage.submission_store import SubmissionStore
from grade_engine.utils.fingerprint import compute_answers_fingerprint


class _SubmissionLock:
    """A submission's lock and the number of tasks holding or awaiting it."""

    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class GradingWorkflow:
    """
    Submission lifecycle controller.

    States:
        submitted -> auto-graded -> (ai-graded | needs-manual-review) -> published

    Usage:
        workflow = GradingWorkflow(store, AIGradingClient.from_settings())
        submission = await workflow.intake(assignment, "student-1", answers)
        await workflow.auto_grade(submission.id)
        await workflow.ai_grade_if_enabled(submission.id)
        await workflow.publish(submission.id)
    """

    def __init__(
        self,
        store: SubmissionStore,
        ai_client: Optional[AIGradingClient] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        """
        Args:
            store: Submission store
            ai_client: Batch grading client (default: no provider, fallback only)
            clock: Returns the current UTC time
        """
        self.store = store
        self.ai_client = ai_client or AIGradingClient(provider=None)
        self._clock = clock
        # Locks are bound to the event loop that first contends them. An entry
        # lives only while some task holds or waits for its lock.
        self._locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Dict[str, _SubmissionLock]]" = (
            weakref.WeakKeyDictionary()
        )

    @asynccontextmanager
    async def _locked(self, submission_id: str) -> AsyncIterator[None]:
        """Serialize work on one submission; the entry is dropped when idle."""
        locks = self._locks.setdefault(asyncio.get_running_loop(), {})
        entry = locks.get(submission_id)
        if entry is None:
            entry = locks[submission_id] = _SubmissionLock()

        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del locks[submission_id]

    # ==================== INTAKE ====================

    def register_assignment(self, assignment: Assignment) -> Assignment:
        """
        Store an assignment definition.

        Questions are frozen once a student has submitted against the
        assignment; title, deadline, reference content and the AI switch
        can still change.

        Raises:
            ValidationError: Changed questions on an assignment with submissions
        """
        try:
            stored = self.store.load_assignment(assignment.id)
        except AssignmentNotFoundError:
            stored = None

        if stored == assignment:
            return stored

        if (
            stored is not None
            and stored.questions != assignment.questions
            and self.store.list_submissions(assignment.id)
        ):
            raise ValidationError(
                f"Assignment {assignment.id} already has submissions; its questions cannot change",
                {'assignment_id': assignment.id}
            )

        self.store.save_assignment(assignment)
        if stored is not None:
            logger.info(f"Assignment {assignment.id} updated")
        return assignment

    async def intake(
        self,
        assignment: Assignment,
        student_id: str,
        answers: Sequence[SubmittedAnswer],
        submission_id: Optional[str] = None
    ) -> Submission:
        """
        Validate answers and persist a new submission in `submitted`.

        A retried intake (same submission_id, same answers) returns the
        stored submission unchanged.

        Raises:
            ValidationError: Duplicate, unknown or mismatched answers, a
                reused submission_id with different content, or changed
                questions on an assignment that already has submissions
        """
        answers = tuple(answers)
        if not student_id or not student_id.strip():
            raise ValidationError("student_id is required")
        self._validate_answers(assignment, answers)
        assignment = self.register_assignment(assignment)

        fingerprint = compute_answers_fingerprint(answers)
        submission_id = submission_id or generate_id()

        async with self._locked(submission_id):
            existing = self._find(submission_id)
            if existing is not None:
                if (
                    existing.assignment_id == assignment.id
                    and existing.student_id == student_id
                    and existing.answers_fingerprint == fingerprint
                ):
                    logger.bind(submission_id=submission_id).info("Retried intake, returning stored submission")
                    return existing
                raise ValidationError(
                    f"Submission {submission_id} already exists with different content",
                    {'submission_id': submission_id}
                )

            submission = Submission(
                id=submission_id,
                assignment_id=assignment.id,
                student_id=student_id,
                answers=answers,
                submitted_at=self._clock(),
                max_score=assignment.max_score,
                answers_fingerprint=fingerprint,
            )
            if assignment.deadline is not None and submission.submitted_at > assignment.deadline:
                submission = submission.model_copy(update={"is_late": True})

            self.store.save(submission)

        logger.bind(submission_id=submission.id).info(
            f"Submission received from {student_id} for {assignment.id} "
            f"({len(answers)} answers{', late' if submission.is_late else ''})"
        )
        return submission

    def _validate_answers(self, assignment: Assignment, answers: Tuple[SubmittedAnswer, ...]) -> None:
        seen = set()
        for answer in answers:
            if answer.question_id in seen:
                raise ValidationError(
                    f"More than one answer for question {answer.question_id}",
                    {'question_id': answer.question_id}
                )
            seen.add(answer.question_id)

            question = assignment.question(answer.question_id)
            if question is None:
                raise ValidationError(
                    f"Answer references unknown question {answer.question_id}",
                    {'question_id': answer.question_id, 'assignment_id': assignment.id}
                )

            if isinstance(question, ChoiceQuestion):
                if answer.text is not None:
                    raise ValidationError(
                        f"Choice question {question.id} expects selected_option_index, got text",
                        {'question_id': question.id}
                    )
                index = answer.selected_option_index
                if index is not None and not 0 <= index < len(question.options):
                    raise ValidationError(
                        f"Option index {index} out of range for question {question.id} "
                        f"({len(question.options)} options)",
                        {'question_id': question.id, 'selected_option_index': index}
                    )
            elif answer.selected_option_index is not None:
                raise ValidationError(
                    f"{question.type} question {question.id} expects text, got selected_option_index",
                    {'question_id': question.id}
                )

    # ==================== GRADING ====================

    async def auto_grade(self, submission_id: str) -> Submission:
        """
        Score every choice question and move `submitted` to `auto-graded`.

        A missing answer scores 0. Re-running leaves the submission unchanged.

        Raises:
            AlreadyPublishedError: If the submission is published
        """
        async with self._locked(submission_id):
            submission, assignment = self._load(submission_id)
            ensure_mutable(submission)

            updated = self._apply_auto_grade(submission, assignment)
            self._save_if_changed(submission, updated)
            return updated

    def _apply_auto_grade(self, submission: Submission, assignment: Assignment) -> Submission:
        now = self._clock()
        components = [
            score_choice(question, submission.answer_for(question.id), graded_at=now)
            for question in assignment.choice_questions
        ]
        updated = reconcile(submission, components, assignment)
        return self._transition(updated, status_after_auto_grade(updated.status))

    async def ai_grade_if_enabled(self, submission_id: str) -> Submission:
        """
        Grade pending free-text answers with one AI batch call.

        Pending means a non-blank answer whose question has no component or
        only a provisional (fallback) one; manual grades are never re-sent.
        Auto-grading runs first if the submission is still `submitted`.

        If the call is cancelled the stored submission is left untouched.

        Raises:
            AlreadyPublishedError: If the submission is published
        """
        async with self._locked(submission_id):
            submission, assignment = self._load(submission_id)
            ensure_mutable(submission)

            working = submission
            if working.status == SubmissionStatus.SUBMITTED:
                working = self._apply_auto_grade(working, assignment)

            ai_ran = False
            fallback_used = False
            items = self._pending_free_text(working, assignment) if assignment.auto_ai_grading_enabled else []

            if items:
                context = GradingContext(
                    assignment_title=assignment.title,
                    reference_content=assignment.reference_content,
                )
                results = await self.ai_client.grade_batch(context, items)

                now = self._clock()
                working = reconcile(working, [r.to_component(now) for r in results], assignment)
                ai_ran = True
                fallback_used = any(r.is_fallback for r in results)
                if fallback_used:
                    logger.bind(submission_id=submission_id).warning(
                        f"Fallback scores applied to {sum(r.is_fallback for r in results)} of {len(results)} answers"
                    )

            target = status_after_ai_grade(
                working.status,
                working.missing_question_ids(assignment),
                fallback_used=fallback_used,
                ai_ran=ai_ran,
            )
            updated = self._transition(working, target)
            self._save_if_changed(submission, updated)
            return updated

    def _pending_free_text(self, submission: Submission, assignment: Assignment) -> List[GradingItem]:
        items = []
        for question in assignment.free_text_questions:
            answer = submission.answer_for(question.id)
            if answer is None or not answer.has_text:
                continue
            current = submission.grade_components.get(question.id)
            if current is not None and not current.provisional:
                continue
            items.append(GradingItem(
                question_id=question.id,
                question_text=question.text,
                student_answer=answer.text,
                max_points=question.points,
                question_type=question.type,
                reference_answer=question.reference_answer,
            ))
        return items

    async def apply_manual_grade(
        self,
        submission_id: str,
        question_id: str,
        score: float,
        feedback: Optional[str] = None
    ) -> Submission:
        """
        Record a teacher's grade for one question.

        A manual grade always wins over auto and AI grades.

        Raises:
            ValidationError: Unknown question or score outside [0, points]
            AlreadyPublishedError: If the submission is published
        """
        async with self._locked(submission_id):
            submission, assignment = self._load(submission_id)
            ensure_mutable(submission)

            question = assignment.question(question_id)
            if question is None:
                raise ValidationError(
                    f"Unknown question {question_id} for assignment {assignment.id}",
                    {'question_id': question_id}
                )
            if (
                isinstance(score, bool)
                or not isinstance(score, (int, float))
                or not math.isfinite(score)
                or not 0 <= score <= question.points
            ):
                raise ValidationError(
                    "out-of-range score",
                    {'question_id': question_id, 'score': score, 'max_points': question.points}
                )

            component = GradeComponent(
                question_id=question_id,
                source=GradeSource.MANUAL,
                score=float(score),
                feedback=feedback,
                graded_at=self._clock(),
            )
            updated = reconcile(submission, [component], assignment)
            updated = self._transition(
                updated,
                status_after_manual_grade(updated.status, updated.missing_question_ids(assignment))
            )
            self._save_if_changed(submission, updated)

        logger.bind(submission_id=submission_id).info(
            f"Manual grade for {question_id}: {score}/{question.points}"
        )
        return updated

    # ==================== PUBLISH ====================

    async def publish(self, submission_id: str) -> Submission:
        """
        Freeze the total and make the grade visible to the student.

        Raises:
            NotReadyError: If any question has no grade component
            AlreadyPublishedError: If the submission is already published
        """
        async with self._locked(submission_id):
            submission, assignment = self._load(submission_id)
            ensure_mutable(submission)

            ready = submission
            if ready.status == SubmissionStatus.SUBMITTED:
                ready = self._apply_auto_grade(ready, assignment)

            missing = ready.missing_question_ids(assignment)
            if missing:
                raise NotReadyError(submission_id, missing)

            published = self._transition(ready, SubmissionStatus.PUBLISHED).model_copy(update={
                "total_score": compute_total(ready.grade_components, assignment),
                "published_at": self._clock(),
            })
            self.store.save(published)

        logger.bind(submission_id=submission_id).info(
            f"Published: {published.total_score}/{published.max_score}"
        )
        return published

    # ==================== VIEWS ====================

    async def get_grade(self, submission_id: str) -> GradeView:
        """Teacher view: current total and the source of every per-question score."""
        submission, assignment = self._load(submission_id)

        per_question = {}
        for question in assignment.questions:
            component = submission.grade_components.get(question.id)
            per_question[question.id] = QuestionGrade(
                question_id=question.id,
                max_points=question.points,
                score=component.score if component else None,
                source=component.source if component else None,
                feedback=component.feedback if component else None,
                graded_at=component.graded_at if component else None,
                provisional=component.provisional if component else False,
            )

        return GradeView(
            submission_id=submission.id,
            status=submission.status,
            total_score=submission.total_score,
            max_score=assignment.max_score,
            percentage=submission.percentage,
            per_question=per_question,
            published_at=submission.published_at,
            is_late=submission.is_late,
        )

    async def get_student_view(self, submission_id: str) -> StudentGradeView:
        """Student view: a pending message until published, then the final grade."""
        submission, _ = self._load(submission_id)

        if not submission.is_published:
            return StudentGradeView(
                submission_id=submission.id,
                published=False,
                message=PENDING_REVIEW_MESSAGE,
            )

        return StudentGradeView(
            submission_id=submission.id,
            published=True,
            total_score=submission.total_score,
            max_score=submission.max_score,
            percentage=submission.percentage,
            feedback={
                qid: component.feedback
                for qid, component in submission.grade_components.items()
                if component.feedback
            },
            published_at=submission.published_at,
        )

    async def list_roster(self, assignment_id: str) -> List[RosterEntry]:
        """
        Teacher's list of submissions for an assignment.

        Labels: Graded once published, Late if submitted after the
        deadline, Submitted otherwise.
        """
        self.store.load_assignment(assignment_id)

        roster = []
        for submission in self.store.list_submissions(assignment_id):
            if submission.is_published:
                label = ROSTER_LABEL_GRADED
            elif submission.is_late:
                label = ROSTER_LABEL_LATE
            else:
                label = ROSTER_LABEL_SUBMITTED

            roster.append(RosterEntry(
                submission_id=submission.id,
                student_id=submission.student_id,
                status=submission.status,
                label=label,
                submitted_at=submission.submitted_at,
                is_late=submission.is_late,
                percentage=submission.percentage if submission.is_published else None,
            ))
        return roster

    # ==================== HELPERS ====================

    def _load(self, submission_id: str) -> Tuple[Submission, Assignment]:
        submission = self.store.load(submission_id)
        return submission, self.store.load_assignment(submission.assignment_id)

    def _find(self, submission_id: str) -> Optional[Submission]:
        try:
            return self.store.load(submission_id)
        except SubmissionNotFoundError:
            return None

    def _transition(self, submission: Submission, target: SubmissionStatus) -> Submission:
        updated = with_status(submission, target)
        if updated.status != submission.status:
            logger.bind(submission_id=submission.id).info(
                f"Status {submission.status.value} -> {updated.status.value}"
            )
        return updated

    def _save_if_changed(self, before: Submission, after: Submission) -> None:
        if after != before:
            self.store.save(after)
