#!/usr/bin/env python3
"""
Turn Manager - the speak -> cooldown -> listen -> process cycle.

Owns the single TurnState. Every asynchronous callback (speech finished or failed,
recognition result, recognition error, cooldown timer) is posted onto the
scheduler and re-checks the current state and session id before acting, so a
late callback from a cancelled or interrupted phase is dropped instead of
being attributed to whatever turn happens to be running now.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from wordbreak.commands import CommandParser
from wordbreak.errors import TurnAlreadyResolvedError
from wordbreak.event_bus import EventBus, EventType
from wordbreak.models import InputSpec, ParsedCommand, VoiceRecognitionResult
from wordbreak.scheduler import Scheduler, TimerHandle
from wordbreak.state_machine import TurnState, can_transition
from wordbreak.stt.base import SpeechInputProvider
from wordbreak.tts.base import SpeechOutputProvider
from wordbreak.utils import wb_log

ResultHandler = Callable[[ParsedCommand], None]
ErrorHandler = Callable[[Exception], None]

DEFAULT_COOLDOWN = 0.3


@dataclass
class PendingTurn:
    """Continuation registered by begin_turn. Resolves exactly once: with a parsed reply or a failure."""
    turn_id: int
    spec: InputSpec
    listen_after_speech: bool
    on_result: Optional[ResultHandler] = None
    on_error: Optional[ErrorHandler] = None
    resolved: bool = False

    def _mark_resolved(self):
        if self.resolved:
            raise TurnAlreadyResolvedError(f"Turn {self.turn_id} already resolved")
        self.resolved = True

    def resolve(self, parsed: ParsedCommand):
        self._mark_resolved()
        if self.on_result is not None:
            self.on_result(parsed)

    def fail(self, error: Exception):
        self._mark_resolved()
        if self.on_error is not None:
            self.on_error(error)


class TurnManager:
    """Sequences speech output and speech input for one turn at a time."""

    def __init__(
        self,
        speech_output: SpeechOutputProvider,
        speech_input: SpeechInputProvider,
        scheduler: Scheduler,
        command_parser: Optional[CommandParser] = None,
        event_bus: Optional[EventBus] = None,
        cooldown_delay: float = DEFAULT_COOLDOWN,
    ):
        self.speech_output = speech_output
        self.speech_input = speech_input
        self.scheduler = scheduler
        self.command_parser = command_parser or CommandParser()
        self.events = event_bus or EventBus()
        self.cooldown_delay = cooldown_delay

        self._state = TurnState.IDLE
        self._pending: Optional[PendingTurn] = None
        self._last_turn: Optional[PendingTurn] = None
        self._last_spoken_text: Optional[str] = None
        self._cooldown_timer: Optional[TimerHandle] = None
        self._turn_counter = 0
        # Bumped on every speak/listen start and on every abort; callbacks carry the id they were issued with
        self._session_id = 0

    # ------------------------------------------------------------------
    # Read-only view for presentation
    # ------------------------------------------------------------------

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def last_spoken_text(self) -> Optional[str]:
        return self._last_spoken_text

    @property
    def current_spec(self) -> Optional[InputSpec]:
        return self._pending.spec if self._pending else None

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def begin_turn(
        self,
        text: str,
        spec: InputSpec,
        listen_after_speech: bool = True,
        on_result: Optional[ResultHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> bool:
        """Speak ``text`` and, if requested, listen for a reply interpreted with ``spec``.

        Only allowed from IDLE; otherwise nothing changes and False is returned.
        ``on_result`` runs after the manager is back in IDLE, so it may begin the next turn.
        """
        if self._state is not TurnState.IDLE:
            wb_log("TURN", f"Cannot begin turn - not idle (current: {self._state.value})", level="WARNING")
            self.events.publish(EventType.TURN_REJECTED, {'state': self._state, 'text': text}, source='turn_manager')
            return False

        self._turn_counter += 1
        pending = PendingTurn(
            turn_id=self._turn_counter,
            spec=spec,
            listen_after_speech=listen_after_speech,
            on_result=on_result,
            on_error=on_error,
        )
        self._pending = pending
        self._last_turn = pending
        self._last_spoken_text = text

        wb_log("TURN", f"Turn {pending.turn_id} begins (listen={listen_after_speech})")
        self.events.publish(EventType.TURN_STARTED, {'turn_id': pending.turn_id, 'text': text}, source='turn_manager')
        self._speak(text, listen_after_speech)
        return True

    def cancel_turn(self):
        """Hard abort from any state: stop both providers, drop timers and the pending turn."""
        wb_log("TURN", f"Turn cancelled (state: {self._state.value})")
        self._invalidate_callbacks()
        self.speech_output.stop()
        self.speech_input.stop_listening()
        self._set_state(TurnState.IDLE)
        self._clear_turn()
        self.events.publish(EventType.TURN_CANCELLED, {}, source='turn_manager')

    def handle_barge_in(self) -> bool:
        """User started talking over the prompt: stop speaking and listen early with the pending spec."""
        if self._state is not TurnState.SPEAKING:
            wb_log("TURN", f"Barge-in ignored (state: {self._state.value})", level="DEBUG")
            return False
        if self._pending is not None and not self._pending.listen_after_speech:
            wb_log("TURN", "Barge-in ignored - turn does not listen", level="DEBUG")
            return False

        wb_log("TURN", "Speech interrupted, resuming listen...")
        self._invalidate_callbacks()
        self.speech_output.stop()
        self.events.publish(EventType.BARGE_IN, {'turn_id': self._pending.turn_id if self._pending else None},
                            source='turn_manager')
        self._schedule_listening()
        return True

    def repeat_last_utterance(
        self,
        on_result: Optional[ResultHandler] = None,
        on_error: Optional[ErrorHandler] = None,
    ) -> bool:
        """Re-speak the last prompt, then listen again with the same spec.

        From LISTENING the in-flight turn continues. From IDLE the last turn's
        spec is reused; its callbacks are reused unless new ones are given.
        """
        if self._last_spoken_text is None:
            wb_log("TURN", "No previous utterance to repeat", level="WARNING")
            return False
        if self._state not in (TurnState.IDLE, TurnState.LISTENING):
            wb_log("TURN", f"Cannot repeat - currently {self._state.value}", level="WARNING")
            return False

        if self._state is TurnState.LISTENING:
            self.speech_input.stop_listening()
            pending = self._pending
            if on_result is not None:
                pending.on_result = on_result
            if on_error is not None:
                pending.on_error = on_error
        else:
            template = self._last_turn
            self._turn_counter += 1
            pending = PendingTurn(
                turn_id=self._turn_counter,
                spec=template.spec,
                listen_after_speech=True,
                on_result=on_result or template.on_result,
                on_error=on_error or template.on_error,
            )
            self._pending = pending
            self._last_turn = pending

        wb_log("TURN", f"Repeating last utterance (turn {pending.turn_id})")
        self._speak(self._last_spoken_text, listen_after_speech=True)
        return True

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def _speak(self, text: str, listen_after_speech: bool):
        self._set_state(TurnState.SPEAKING)
        speech_id = self._next_session()
        self.events.publish(EventType.SPEECH_STARTED, {'text': text}, source='turn_manager')
        self.speech_output.speak(
            text,
            lambda: self.scheduler.call_soon(self._on_speech_finished, speech_id, listen_after_speech),
            lambda error: self.scheduler.call_soon(self._on_speech_error, error, speech_id),
        )

    def _on_speech_finished(self, speech_id: int, listen_after_speech: bool):
        if self._state is not TurnState.SPEAKING or speech_id != self._session_id:
            self._drop_ghost("speech-finished")
            return

        self.events.publish(EventType.SPEECH_FINISHED, self._speech_payload(listen_after_speech), source='turn_manager')
        if listen_after_speech:
            self._schedule_listening()
        else:
            self._set_state(TurnState.IDLE)
            self._clear_turn()

    def _on_speech_error(self, error: Exception, speech_id: int):
        if self._state is not TurnState.SPEAKING or speech_id != self._session_id:
            self._drop_ghost("speech-error")
            return

        wb_log("TURN", f"Speech output failed: {error}", level="WARNING")
        self._invalidate_callbacks()
        pending = self._pending
        self.events.publish(
            EventType.SPEECH_FAILED,
            {**self._speech_payload(pending.listen_after_speech if pending else False), 'error': str(error)},
            source='turn_manager',
        )
        self._set_state(TurnState.IDLE)
        self._clear_turn()
        if pending is not None:
            pending.fail(error)

    def _speech_payload(self, listen_after_speech: bool) -> dict:
        return {
            'turn_id': self._pending.turn_id if self._pending else None,
            'listen_after_speech': listen_after_speech,
        }

    def _schedule_listening(self):
        self._cancel_cooldown()
        self._cooldown_timer = self.scheduler.call_later(self.cooldown_delay, self._start_listening)

    def _start_listening(self):
        self._cooldown_timer = None
        if self._state is not TurnState.SPEAKING:
            self._drop_ghost("cooldown")
            return

        pending = self._pending
        if pending is None:
            wb_log("TURN", "No input spec - cannot listen", level="WARNING")
            self._set_state(TurnState.IDLE)
            return

        self._set_state(TurnState.LISTENING)
        listen_id = self._next_session()
        self.speech_input.start_listening(
            lambda result: self.scheduler.call_soon(self._on_recognition_result, result, listen_id),
            lambda error: self.scheduler.call_soon(self._on_recognition_error, error, listen_id),
        )

    def _on_recognition_result(self, result: VoiceRecognitionResult, listen_id: int):
        if not result.is_final:
            # Partials only feed the provider's silence policy
            if listen_id != self._session_id:
                return
            self.events.publish(EventType.RECOGNITION_PARTIAL, {'text': result.text}, source='turn_manager')
            return
        if self._state is not TurnState.LISTENING or listen_id != self._session_id:
            self._drop_ghost("recognition-result")
            return

        wb_log("TURN", f"Final recognition: {result.text}")
        self._set_state(TurnState.PROCESSING)
        self.speech_input.stop_listening()

        pending = self._pending
        parsed = self.command_parser.parse(result.text, pending.spec)
        self.events.publish(EventType.RECOGNITION_FINAL, {'raw': result.text, 'normalized': parsed.normalized_input},
                            source='turn_manager')

        # Back to IDLE before delivering, so the handler can begin the next turn
        self._clear_turn()
        self._set_state(TurnState.IDLE)
        pending.resolve(parsed)

    def _on_recognition_error(self, error: Exception, listen_id: int):
        if self._state not in (TurnState.LISTENING, TurnState.PROCESSING) or listen_id != self._session_id:
            self._drop_ghost("recognition-error")
            return

        wb_log("TURN", f"Recognition error: {error}", level="WARNING")
        self.speech_input.stop_listening()
        pending = self._pending
        self._set_state(TurnState.IDLE)
        self._clear_turn()
        self.events.publish(EventType.RECOGNITION_ERROR, {'error': str(error)}, source='turn_manager')
        if pending is not None:
            pending.fail(error)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _set_state(self, new_state: TurnState):
        old_state = self._state
        if old_state is new_state:
            return
        if not can_transition(old_state, new_state):
            raise RuntimeError(f"Illegal turn transition {old_state.value} → {new_state.value}")
        self._state = new_state
        wb_log("STATE", f"{old_state.value} → {new_state.value}")
        self.events.publish(
            EventType.TURN_STATE_CHANGED,
            {'old_state': old_state, 'new_state': new_state},
            source='turn_manager',
        )

    def _next_session(self) -> int:
        self._session_id += 1
        return self._session_id

    def _invalidate_callbacks(self):
        self._cancel_cooldown()
        self._session_id += 1

    def _cancel_cooldown(self):
        if self._cooldown_timer is not None:
            self._cooldown_timer.cancel()
            self._cooldown_timer = None

    def _clear_turn(self):
        self._pending = None

    def _drop_ghost(self, kind: str):
        wb_log("TURN", f"Ignoring ghost {kind} callback (state: {self._state.value})", level="WARNING")
        self.events.publish(EventType.GHOST_CALLBACK_DROPPED, {'kind': kind, 'state': self._state},
                            source='turn_manager')
