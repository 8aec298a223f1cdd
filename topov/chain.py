"""Chained dialogs: steps whose content depends on data fetched from the peer.

The machine is a pure ``transition(spec, state, event)`` returning the next
state plus a tuple of effects; ``DialogSequencer`` owns the current state and
performs the effects through its collaborators.

Every state carries ``seq``, the last request sequence number issued by this
sequencer. A response is accepted only while awaiting data and only when it
correlates with that number (or, for peers that do not echo ``seq``, with the
subject id of the pending request). Anything else is stale and discarded.

States also carry ``stale``: subjects of earlier requests whose replies are
still outstanding. A reply without ``seq`` for one of those subjects is taken
to be the oldest outstanding reply and drains one entry instead of advancing
the current instance.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from typing import Protocol, Union

from .events import EventName, InboundMessage, OutboundMessage
from .models import Cardinality, ChainContext, FieldValue, PortOption, SelectionContext
from .transport import Handler, Transport

log = logging.getLogger(__name__)

Options = tuple[PortOption, ...]


# ── Step and chain definitions ───────────────────────────────────────


@dataclass(frozen=True)
class Selector:
    field: str
    label: str
    prompt: str = "Select…"
    required: bool = False


@dataclass(frozen=True)
class Checkbox:
    field: str
    label: str


@dataclass(frozen=True)
class DialogStep:
    title: str
    content: Callable[[ChainContext, Options], list[str]]
    confirm: str = "OK"
    cancel: str | None = "Cancel"
    selector: Selector | None = None
    checkboxes: tuple[Checkbox, ...] = ()
    # Builds the request whose reply this step needs before it can be shown.
    fetch: Callable[[ChainContext, int], OutboundMessage] | None = None

    @property
    def defaults(self) -> dict[str, FieldValue]:
        """Values the step's controls are reset to whenever it is built."""
        values: dict[str, FieldValue] = {}
        if self.selector is not None:
            values[self.selector.field] = None
        for box in self.checkboxes:
            values[box.field] = False
        return values


def _no_seed(_selection: SelectionContext) -> ChainContext:
    return ChainContext()


def _no_absorb(context: ChainContext, _message: InboundMessage) -> tuple[ChainContext, Options]:
    return context, ()


def _no_apply(_context: ChainContext) -> OutboundMessage | None:
    return None


def _no_flash(_context: ChainContext) -> str:
    return ""


@dataclass(frozen=True)
class ChainSpec:
    name: str
    steps: tuple[DialogStep, ...]
    # None: available regardless of selection.
    gate: frozenset[Cardinality] | None = None
    seed: Callable[[SelectionContext], ChainContext] = _no_seed
    response: EventName | None = None
    absorb: Callable[[ChainContext, InboundMessage], tuple[ChainContext, Options]] = _no_absorb
    apply: Callable[[ChainContext], OutboundMessage | None] = _no_apply
    done: Callable[[ChainContext], str] = _no_flash

    def allows(self, selection: SelectionContext) -> bool:
        return self.gate is None or selection.cardinality in self.gate


# ── States ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Idle:
    seq: int = 0
    stale: tuple[str, ...] = ()


@dataclass(frozen=True)
class AwaitingGate:
    seq: int
    selection: SelectionContext
    stale: tuple[str, ...] = ()


@dataclass(frozen=True)
class StepPresented:
    seq: int
    step: int
    context: ChainContext
    options: Options = ()
    stale: tuple[str, ...] = ()


@dataclass(frozen=True)
class AwaitingRemoteData:
    seq: int
    step: int
    context: ChainContext
    subject: str
    stale: tuple[str, ...] = ()


ChainState = Union[Idle, AwaitingGate, StepPresented, AwaitingRemoteData]


# ── Events ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Trigger:
    selection: SelectionContext


@dataclass(frozen=True)
class Advance:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class SetField:
    name: str
    value: FieldValue


@dataclass(frozen=True)
class Response:
    message: InboundMessage


@dataclass(frozen=True)
class Expire:
    seq: int


ChainEvent = Union[Trigger, Advance, Cancel, SetField, Response, Expire]


# ── Effects ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PresentStep:
    index: int
    step: DialogStep
    context: ChainContext
    options: Options


@dataclass(frozen=True)
class CloseDialog:
    pass


@dataclass(frozen=True)
class SendRequest:
    message: OutboundMessage
    seq: int


@dataclass(frozen=True)
class SendApply:
    message: OutboundMessage


@dataclass(frozen=True)
class ArmTimer:
    seq: int


@dataclass(frozen=True)
class Flash:
    text: str


@dataclass(frozen=True)
class Discard:
    reason: str


@dataclass(frozen=True)
class Note:
    text: str


Effect = Union[PresentStep, CloseDialog, SendRequest, SendApply, ArmTimer, Flash, Discard, Note]


@dataclass(frozen=True)
class Transition:
    state: ChainState
    effects: tuple[Effect, ...] = ()


# ── Transition function ──────────────────────────────────────────────


def _enter_step(
    spec: ChainSpec,
    seq: int,
    index: int,
    context: ChainContext,
    stale: tuple[str, ...] = (),
) -> Transition:
    step = spec.steps[index]
    if step.fetch is not None:
        next_seq = seq + 1
        request = step.fetch(context, next_seq)
        subject = str(getattr(request, "id", "") or "")
        return Transition(
            AwaitingRemoteData(
                seq=next_seq, step=index, context=context, subject=subject, stale=stale,
            ),
            (SendRequest(request, next_seq), ArmTimer(next_seq)),
        )
    context = context.with_values(**step.defaults)
    return Transition(
        StepPresented(seq=seq, step=index, context=context, stale=stale),
        (PresentStep(index, step, context, ()),),
    )


def _orphaned(state: ChainState) -> tuple[str, ...]:
    """``stale`` plus the pending subject, for a state being abandoned."""
    if isinstance(state, AwaitingRemoteData):
        return state.stale + (state.subject,)
    return state.stale


def _drain(state: ChainState, subject: str) -> ChainState:
    """Drop the oldest outstanding request for ``subject``, if any."""
    if subject not in state.stale:
        return state
    index = state.stale.index(subject)
    return replace(state, stale=state.stale[:index] + state.stale[index + 1:])


def _correlates(state: AwaitingRemoteData, message: InboundMessage) -> bool:
    seq = getattr(message, "seq", None)
    if seq is not None:
        return seq == state.seq
    subject = str(getattr(message, "id", "") or "")
    return subject == state.subject and subject not in state.stale


def _trigger(spec: ChainSpec, state: ChainState, selection: SelectionContext) -> Transition:
    stale = _orphaned(state)
    gate = AwaitingGate(seq=state.seq, selection=selection, stale=stale)
    if not spec.allows(gate.selection):
        rejected: tuple[Effect, ...] = (
            Note(f"{spec.name}: gate rejects {selection.cardinality.value} selection"),
        )
        if isinstance(state, StepPresented):
            rejected = (CloseDialog(),) + rejected
        return Transition(Idle(seq=state.seq, stale=stale), rejected)
    closing: tuple[Effect, ...] = ()
    if isinstance(state, StepPresented):
        closing = (CloseDialog(),)
    elif isinstance(state, AwaitingRemoteData):
        closing = (Note(f"{spec.name}: superseding pending request #{state.seq}"),)
    entered = _enter_step(spec, gate.seq, 0, spec.seed(gate.selection), gate.stale)
    return Transition(entered.state, closing + entered.effects)


def _advance(spec: ChainSpec, state: StepPresented) -> Transition:
    step = spec.steps[state.step]
    selector = step.selector
    if selector is not None and selector.required and state.context.get(selector.field) is None:
        return Transition(state, (Flash(f"Select a {selector.label.lower()}"),))

    if state.step + 1 < len(spec.steps):
        entered = _enter_step(spec, state.seq, state.step + 1, state.context, state.stale)
        return Transition(entered.state, (CloseDialog(),) + entered.effects)

    effects: list[Effect] = [CloseDialog()]
    message = spec.apply(state.context)
    if message is not None:
        effects.append(SendApply(message))
    text = spec.done(state.context)
    if text:
        effects.append(Flash(text))
    return Transition(Idle(seq=state.seq, stale=state.stale), tuple(effects))


def transition(spec: ChainSpec, state: ChainState, event: ChainEvent) -> Transition:
    """Return the state and effects that follow ``event`` in ``state``."""
    if isinstance(event, Trigger):
        return _trigger(spec, state, event.selection)

    if isinstance(event, Advance):
        if isinstance(state, StepPresented):
            return _advance(spec, state)
        return Transition(state, (Note(f"{spec.name}: advance ignored"),))

    if isinstance(event, Cancel):
        if isinstance(state, StepPresented):
            return Transition(Idle(seq=state.seq, stale=state.stale), (CloseDialog(),))
        if isinstance(state, AwaitingGate):
            return Transition(Idle(seq=state.seq, stale=state.stale))
        if isinstance(state, AwaitingRemoteData):
            return Transition(state, (
                Note(f"{spec.name}: request #{state.seq} cannot be abandoned"),
            ))
        return Transition(state)

    if isinstance(event, SetField):
        if not isinstance(state, StepPresented):
            return Transition(state)
        if event.name not in spec.steps[state.step].defaults:
            return Transition(state, (Note(f"{spec.name}: step has no field {event.name!r}"),))
        context = state.context.with_values(**{event.name: event.value})
        return Transition(replace(state, context=context))

    if isinstance(event, Response):
        subject = str(getattr(event.message, "id", "") or "")
        if not isinstance(state, AwaitingRemoteData):
            return Transition(
                _drain(state, subject),
                (Discard(f"{spec.name}: no request pending"),),
            )
        if not _correlates(state, event.message):
            return Transition(
                _drain(state, subject),
                (Discard(f"{spec.name}: reply does not match request #{state.seq}"),),
            )
        context, options = spec.absorb(state.context, event.message)
        step = spec.steps[state.step]
        context = context.with_values(**step.defaults)
        return Transition(
            StepPresented(state.seq, state.step, context, options, stale=state.stale),
            (PresentStep(state.step, step, context, options),),
        )

    if isinstance(event, Expire):
        if isinstance(state, AwaitingRemoteData) and state.seq == event.seq:
            return Transition(
                Idle(seq=state.seq, stale=_orphaned(state)),
                (Flash("No response from peer"),),
            )
        return Transition(state)

    raise TypeError(f"unhandled chain event {event!r}")


# ── Driver ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DialogButton:
    label: str
    callback: Callable[[], None]
    advances: bool = False


@dataclass(frozen=True)
class PresentedStep:
    """Everything a presenter needs to show one step."""
    title: str
    lines: list[str]
    buttons: tuple[DialogButton, ...]
    on_change: Callable[[str, FieldValue], None]
    on_escape: Callable[[], None]
    selector: Selector | None = None
    options: Options = ()
    checkboxes: tuple[Checkbox, ...] = ()
    values: Mapping[str, FieldValue] = field(default_factory=dict)
    # Name of the chain that presented this step.
    owner: str = ""


class Presenter(Protocol):
    def present(self, step: PresentedStep) -> None: ...

    def close(self, owner: str) -> None: ...


Timers = Callable[[float, Callable[[], None]], object]


class DialogSequencer:
    """Drives one chain type; one instance per overlay activation."""

    def __init__(
        self,
        spec: ChainSpec,
        transport: Transport,
        presenter: Presenter,
        *,
        flash: Callable[[str], None] | None = None,
        timers: Timers | None = None,
        request_timeout: float = 0.0,
    ) -> None:
        self.spec = spec
        self._transport = transport
        self._presenter = presenter
        self._flash = flash or (lambda _msg: None)
        self._timers = timers
        self._request_timeout = request_timeout
        self._state: ChainState = Idle()
        # Bumped on every presented step so buttons of a replaced dialog go inert.
        self._epoch = 0
        self._closed = False

    @property
    def state(self) -> ChainState:
        return self._state

    @property
    def context(self) -> ChainContext | None:
        if isinstance(self._state, (StepPresented, AwaitingRemoteData)):
            return self._state.context
        return None

    @property
    def busy(self) -> bool:
        return isinstance(self._state, AwaitingRemoteData)

    @property
    def handlers(self) -> dict[EventName, Handler]:
        if self.spec.response is None:
            return {}
        return {self.spec.response: self.handle_response}

    def trigger(self, selection: SelectionContext) -> bool:
        """Start a new chain instance; False when the gate rejects it."""
        log.debug("%s invoked with selection %s", self.spec.name, list(selection.ids))
        self._dispatch(Trigger(selection))
        return self.spec.allows(selection)

    def advance(self) -> None:
        self._dispatch(Advance())

    def cancel(self) -> None:
        self._dispatch(Cancel())

    def set_field(self, name: str, value: FieldValue) -> None:
        self._dispatch(SetField(name, value))

    def handle_response(self, message: InboundMessage) -> None:
        self._dispatch(Response(message))

    def expire(self, seq: int) -> None:
        self._dispatch(Expire(seq))

    def close(self) -> None:
        """Shut the sequencer down; later events, timers included, are ignored."""
        if self._closed:
            return
        if isinstance(self._state, StepPresented):
            self._presenter.close(self.spec.name)
        self._closed = True
        self._epoch += 1
        self._state = Idle(seq=self._state.seq, stale=self._state.stale)
        log.debug("%s: closed", self.spec.name)

    def _dispatch(self, event: ChainEvent) -> None:
        if self._closed:
            log.debug("%s: closed, ignoring %s", self.spec.name, type(event).__name__)
            return
        result = transition(self.spec, self._state, event)
        self._state = result.state
        for effect in result.effects:
            self._perform(effect)

    def _perform(self, effect: Effect) -> None:
        if isinstance(effect, PresentStep):
            self._epoch += 1
            self._presenter.present(self._presented(effect, self._epoch))
        elif isinstance(effect, CloseDialog):
            self._presenter.close(self.spec.name)
        elif isinstance(effect, SendRequest):
            log.debug("%s: request #%d %s", self.spec.name, effect.seq, effect.message)
            self._transport.send(effect.message)
        elif isinstance(effect, SendApply):
            log.info("%s: apply %s", self.spec.name, effect.message)
            self._transport.send(effect.message)
        elif isinstance(effect, ArmTimer):
            if self._timers is not None and self._request_timeout > 0:
                seq = effect.seq
                self._timers(self._request_timeout, lambda: self.expire(seq))
        elif isinstance(effect, Flash):
            self._flash(effect.text)
        elif isinstance(effect, Discard):
            log.info(effect.reason)
        elif isinstance(effect, Note):
            log.debug(effect.text)

    def _guarded(self, epoch: int, action: Callable[[], None]) -> Callable[[], None]:
        def run() -> None:
            if epoch != self._epoch or not isinstance(self._state, StepPresented):
                log.debug("%s: ignoring action from a closed dialog", self.spec.name)
                return
            action()
        return run

    def _presented(self, effect: PresentStep, epoch: int) -> PresentedStep:
        step = effect.step
        buttons = []
        if step.cancel:
            buttons.append(DialogButton(step.cancel, self._guarded(epoch, self.cancel)))
        buttons.append(DialogButton(step.confirm, self._guarded(epoch, self.advance), advances=True))

        def on_change(name: str, value: FieldValue) -> None:
            if epoch == self._epoch:
                self.set_field(name, value)

        return PresentedStep(
            title=step.title,
            lines=step.content(effect.context, effect.options),
            buttons=tuple(buttons),
            on_change=on_change,
            on_escape=self._guarded(epoch, self.cancel),
            selector=step.selector,
            options=effect.options,
            checkboxes=step.checkboxes,
            values=effect.context.snapshot(),
            owner=self.spec.name,
        )
