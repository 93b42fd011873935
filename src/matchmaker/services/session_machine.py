"""
Session state machine.

Owns one session's state and is the only code that mutates it. Every action
goes through the same three steps:

1. Validate: the action must be legal for the current phase (ACTION_PHASES)
   and its preconditions must hold. Nothing is mutated on rejection.
2. Call out: transcription, generation stages, embedding and search run
   against the current state without touching it.
3. Commit: phase, counters, summary, matches, notes and assistant turns are
   written only after every external call succeeded.

The one exception is the user's own new turn, which is appended before the
stage calls because it is part of what the stages are asked about. It stays
in the log even when a later call fails.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional

import structlog

from matchmaker.core.config import MatchmakerConfig
from matchmaker.core.exceptions import (
    IllegalActionError,
    MissingInputError,
    UnsupportedActionError,
)
from matchmaker.domain.models.conversation import NO_CONVERSATION, Role, Turn, Via
from matchmaker.domain.models.session import (
    PresentedMatch,
    Session,
    SessionPhase,
    SessionSnapshot,
    StageMetadata,
)
from matchmaker.llm.prompts.interview import CLARIFY_INSTRUCTION, OPENING_INSTRUCTION
from matchmaker.services.registry import MatchmakerServices
from matchmaker.services.turn_pipeline.stages import (
    CoachFeedbackInput,
    InterviewInput,
    ProfileWrapupInput,
    SummarizeInput,
)

log = structlog.get_logger(__name__)


class Action(str, Enum):
    """Actions a client can request."""

    INIT = "init"
    SEND_MESSAGE = "send_message"
    CONFIRM_SUMMARY = "confirm_summary"
    REQUEST_MORE_QUESTIONS = "request_more_questions"
    REQUEST_NEW_MATCH = "request_new_match"
    SUBMIT_FEEDBACK = "submit_feedback"
    ACCEPT_MATCH = "accept_match"
    LEAVE = "leave"


_ALL_PHASES = frozenset(SessionPhase)

# Single transition table, consulted before every mutation.
ACTION_PHASES: Dict[Action, FrozenSet[SessionPhase]] = {
    Action.INIT: _ALL_PHASES,
    Action.SEND_MESSAGE: frozenset(
        {SessionPhase.COLLECTING, SessionPhase.AWAITING_CONFIRMATION}
    ),
    Action.CONFIRM_SUMMARY: frozenset({SessionPhase.AWAITING_CONFIRMATION}),
    Action.REQUEST_MORE_QUESTIONS: frozenset(
        {SessionPhase.COLLECTING, SessionPhase.AWAITING_CONFIRMATION}
    ),
    Action.REQUEST_NEW_MATCH: frozenset({SessionPhase.FEEDBACK}),
    Action.SUBMIT_FEEDBACK: frozenset({SessionPhase.FEEDBACK}),
    Action.ACCEPT_MATCH: frozenset({SessionPhase.FEEDBACK}),
    Action.LEAVE: frozenset({SessionPhase.AWAITING_CONFIRMATION, SessionPhase.FEEDBACK}),
}

FEEDBACK_NOTED_REPLY = "Noted! I will store that feedback for future matches."
ACCEPT_REPLY = (
    "Amazing! I will mark this match as accepted. When you are ready, tap "
    '"Exit Partner Search" to see your psychology snapshot.'
)
LEAVE_REPLY = (
    "All done! I captured your psychology profile for the exit page. "
    "Thanks for hanging out with me today."
)
NO_NEW_CANDIDATE_REPLY = (
    "No new matches cleared the similarity threshold. "
    "Try revising the filters or gathering more details."
)


def parse_action(value: Optional[str]) -> Action:
    """Map a wire action name to Action; missing means send_message.

    Raises:
        UnsupportedActionError: Unknown action name
    """
    if value is None:
        return Action.SEND_MESSAGE
    try:
        return Action(value)
    except ValueError:
        raise UnsupportedActionError(f'Unsupported action "{value}".') from None


@dataclass
class ActionCommand:
    """Typed request produced by the boundary adapter."""

    action: Action = Action.SEND_MESSAGE
    message: Optional[str] = None
    feedback: Optional[str] = None
    filters: Optional[Dict[str, Any]] = None
    audio: Optional[bytes] = None
    audio_filename: str = "audio.webm"
    audio_content_type: Optional[str] = None


class SessionStateMachine:
    """Drives one session through its phases.

    Callers must hold the session's lock (see SessionStore) while calling
    handle().
    """

    def __init__(
        self,
        session: Session,
        services: MatchmakerServices,
        config: Optional[MatchmakerConfig] = None,
    ):
        self.session = session
        self.services = services
        self.config = config or services.config
        self._handlers: Dict[Action, Callable[[ActionCommand], Awaitable[SessionSnapshot]]] = {
            Action.INIT: self._init,
            Action.SEND_MESSAGE: self._send_message,
            Action.CONFIRM_SUMMARY: self._confirm_summary,
            Action.REQUEST_MORE_QUESTIONS: self._request_more_questions,
            Action.REQUEST_NEW_MATCH: self._request_new_match,
            Action.SUBMIT_FEEDBACK: self._submit_feedback,
            Action.ACCEPT_MATCH: self._accept_match,
            Action.LEAVE: self._leave,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def handle(self, command: ActionCommand) -> SessionSnapshot:
        """
        Apply one action and return the render-ready snapshot.

        Raises:
            IllegalActionError: Action not legal for the phase or a
                precondition is missing
            MissingInputError: Required message or feedback is empty
            StageError: An external call failed (state not committed)
            ConfigurationError: A required client is not configured
        """
        self._check_phase(command.action)
        self._check_preconditions(command)

        phase_before = self.session.phase
        self.session.merge_filters(command.filters)

        snapshot = await self._handlers[command.action](command)

        log.info(
            "action_completed",
            action=command.action.value,
            phase_before=phase_before.value,
            phase_after=self.session.phase.value,
            turn_count=self.session.turn_count,
        )
        return snapshot

    def _check_phase(self, action: Action) -> None:
        phase = self.session.phase
        if phase not in ACTION_PHASES[action]:
            log.warning("illegal_action", action=action.value, phase=phase.value)
            raise IllegalActionError(
                f'The action "{action.value}" is not allowed while the session is '
                f"{phase.value.replace('_', ' ')}.",
                action=action.value,
                phase=phase.value,
            )

    def _check_preconditions(self, command: ActionCommand) -> None:
        session = self.session
        action = command.action

        def illegal(message: str) -> IllegalActionError:
            return IllegalActionError(message, action=action.value, phase=session.phase.value)

        if action == Action.SEND_MESSAGE:
            if not (command.message or "").strip() and not command.audio:
                raise MissingInputError("Please provide a message or audio snippet to send.")
        elif action == Action.SUBMIT_FEEDBACK:
            if not (command.feedback or "").strip():
                raise MissingInputError("Feedback text is required.")
        elif action == Action.CONFIRM_SUMMARY:
            if session.preference_summary is None:
                raise illegal("No summary is available to confirm yet.")
        elif action == Action.REQUEST_NEW_MATCH:
            if session.preference_summary is None:
                raise illegal("We need a confirmed summary before searching again.")
        elif action == Action.ACCEPT_MATCH:
            if session.current_match is None:
                raise illegal("There is no active match to accept.")
        elif action == Action.LEAVE:
            if session.preference_summary is None:
                raise illegal(
                    "We need at least one summary before producing the psychology profile."
                )
            if session.psychology_profile is not None:
                raise illegal("The psychology profile has already been produced.")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @property
    def soft_cap_turns(self) -> int:
        return self.config.session.soft_cap_turns

    @property
    def history_window(self) -> int:
        return self.config.session.history_window

    def _append(self, role: Role, content: str, via: Via = Via.TEXT) -> Turn:
        turn = Turn(role=role, content=content, via=via)
        self.session.log.append(turn)
        return turn

    def _record_stats(self, *metadata: Optional[StageMetadata]) -> Dict[str, StageMetadata]:
        stats = {}
        for m in metadata:
            if m is not None:
                self.session.stage_stats[m.stage] = m
                stats[m.stage] = m
        return stats

    def _transition(self, phase: SessionPhase) -> None:
        if phase != self.session.phase:
            log.info(
                "phase_transition",
                from_phase=self.session.phase.value,
                to_phase=phase.value,
            )
        self.session.phase = phase

    def snapshot(
        self,
        agent_reply: Optional[str] = None,
        transcript: Optional[str] = None,
        stats: Optional[Dict[str, StageMetadata]] = None,
        show_match: bool = True,
    ) -> SessionSnapshot:
        """Build the view returned to the client after an action."""
        session = self.session
        soft_cap = session.soft_cap_reached(self.soft_cap_turns)
        return SessionSnapshot(
            session_id=session.id,
            phase=session.phase,
            agent_reply=agent_reply,
            summary=session.preference_summary,
            match=session.current_match if show_match else None,
            profile_summary=session.psychology_profile,
            transcript=transcript,
            turn_count=session.turn_count,
            soft_cap=soft_cap,
            nudge=soft_cap and session.phase != SessionPhase.ENDED,
            filters=dict(session.filters),
            stats=stats or None,
        )

    # ------------------------------------------------------------------
    # Action handlers
    # ------------------------------------------------------------------

    async def _init(self, command: ActionCommand) -> SessionSnapshot:
        if self.session.log:
            return self.snapshot()

        pipeline = self.services.pipeline
        result = await pipeline.run(
            pipeline.interview,
            InterviewInput(
                conversation_history=NO_CONVERSATION,
                latest_user_message=OPENING_INSTRUCTION,
                filters=self.session.filters,
            ),
        )

        self._append(Role.ASSISTANT, result.output.reply)
        self.session.ready_for_summary = result.output.ready_for_summary
        stats = self._record_stats(result.metadata)
        return self.snapshot(agent_reply=result.output.reply, stats=stats)

    async def _send_message(self, command: ActionCommand) -> SessionSnapshot:
        session = self.session
        text = (command.message or "").strip()

        transcript: Optional[str] = None
        via = Via.TEXT
        if not text:
            transcript = await self.services.transcriber.transcribe(
                command.audio,
                filename=command.audio_filename,
                content_type=command.audio_content_type,
            )
            text = transcript
            via = Via.VOICE

        user_turn = self._append(Role.USER, text, via=via)

        turn_count = session.turn_count + 1
        soft_cap = turn_count >= self.soft_cap_turns

        pipeline = self.services.pipeline
        interview = await pipeline.run(
            pipeline.interview,
            InterviewInput(
                conversation_history=session.log.render(self.history_window),
                latest_user_message=text,
                filters=session.filters,
                soft_cap_reached=soft_cap,
            ),
        )
        reply_turn = Turn(role=Role.ASSISTANT, content=interview.output.reply)

        summary_result = None
        if interview.output.ready_for_summary:
            summary_result = await pipeline.run(
                pipeline.summarize,
                SummarizeInput(
                    conversation_history=session.log.extended([reply_turn]).render(
                        self.history_window
                    ),
                    filters=session.filters,
                ),
            )

        # Commit
        session.log.append(reply_turn)
        session.turn_count = turn_count
        session.interview_turn_count += 1
        session.ready_for_summary = interview.output.ready_for_summary
        if summary_result is not None:
            session.preference_summary = summary_result.output.to_preference_summary()
            self._transition(SessionPhase.AWAITING_CONFIRMATION)
        else:
            # revising from awaiting_confirmation drops the pending summary
            session.preference_summary = None
            self._transition(SessionPhase.COLLECTING)
        stats = self._record_stats(
            interview.metadata, summary_result.metadata if summary_result else None
        )

        log.debug("user_turn_committed", turn_id=user_turn.id, via=via.value)
        return self.snapshot(
            agent_reply=interview.output.reply, transcript=transcript, stats=stats
        )

    async def _confirm_summary(self, command: ActionCommand) -> SessionSnapshot:
        return await self._run_matching(no_candidate_reply=None)

    async def _request_new_match(self, command: ActionCommand) -> SessionSnapshot:
        return await self._run_matching(no_candidate_reply=NO_NEW_CANDIDATE_REPLY)

    async def _run_matching(self, no_candidate_reply: Optional[str]) -> SessionSnapshot:
        session = self.session
        phase_before = session.phase
        iteration = session.match_iteration + 1

        self._transition(SessionPhase.MATCHING)
        try:
            outcome = await self.services.matching.find_match(
                summary=session.preference_summary,
                filters=session.filters,
                feedback_notes=list(session.feedback_notes),
                iteration=iteration,
            )
        except Exception:
            self._transition(phase_before)
            raise

        if not outcome.found:
            reply = no_candidate_reply or outcome.reply
            self._append(Role.ASSISTANT, reply)
            self._transition(SessionPhase.FEEDBACK)
            return self.snapshot(agent_reply=reply, show_match=False)

        session.match_history.append(outcome.match)
        session.current_match = outcome.match
        session.match_iteration = iteration
        self._append(Role.ASSISTANT, outcome.reply)
        self._transition(SessionPhase.FEEDBACK)
        stats = self._record_stats(outcome.metadata)
        return self.snapshot(agent_reply=outcome.reply, stats=stats)

    async def _request_more_questions(self, command: ActionCommand) -> SessionSnapshot:
        session = self.session
        pipeline = self.services.pipeline
        result = await pipeline.run(
            pipeline.interview,
            InterviewInput(
                conversation_history=session.log.render(self.history_window),
                latest_user_message=CLARIFY_INSTRUCTION,
                filters=session.filters,
                soft_cap_reached=session.soft_cap_reached(self.soft_cap_turns),
            ),
        )

        session.preference_summary = None
        session.ready_for_summary = False
        self._transition(SessionPhase.COLLECTING)
        self._append(Role.ASSISTANT, result.output.reply)
        stats = self._record_stats(result.metadata)
        return self.snapshot(agent_reply=result.output.reply, stats=stats)

    async def _submit_feedback(self, command: ActionCommand) -> SessionSnapshot:
        session = self.session
        feedback = (command.feedback or "").strip()

        self._append(Role.USER, feedback)

        if session.current_match is None:
            session.feedback_notes.append(feedback)
            return self.snapshot(agent_reply=FEEDBACK_NOTED_REPLY)

        pipeline = self.services.pipeline
        result = await pipeline.run(
            pipeline.coach_feedback,
            CoachFeedbackInput(feedback=feedback, narrative=session.current_match.narrative),
        )

        reply = result.output.reply
        session.feedback_notes.append(feedback)
        self._append(Role.ASSISTANT, reply)
        stats = self._record_stats(result.metadata)
        return self.snapshot(agent_reply=reply, stats=stats)

    async def _accept_match(self, command: ActionCommand) -> SessionSnapshot:
        session = self.session
        accepted: PresentedMatch = session.current_match.model_copy(update={"accepted": True})
        session.match_history[-1] = accepted
        session.current_match = accepted
        session.accepted_match_id = accepted.id
        self._append(Role.ASSISTANT, ACCEPT_REPLY)
        log.info("match_accepted", match_id=accepted.id)
        return self.snapshot(agent_reply=ACCEPT_REPLY)

    async def _leave(self, command: ActionCommand) -> SessionSnapshot:
        session = self.session
        pipeline = self.services.pipeline
        result = await pipeline.run(
            pipeline.profile_wrapup,
            ProfileWrapupInput(
                conversation_history=session.log.render(self.history_window),
                summary=session.preference_summary,
                matches=[m.narrative for m in session.match_history],
                feedback_notes=list(session.feedback_notes),
            ),
        )

        session.psychology_profile = result.output.to_profile()
        self._transition(SessionPhase.ENDED)
        self._append(Role.ASSISTANT, LEAVE_REPLY)
        stats = self._record_stats(result.metadata)
        return self.snapshot(agent_reply=LEAVE_REPLY, stats=stats)
