"""Registration events and the execution state they build.

Primitives exposed to a script never touch the execution state directly:
each call is translated into a typed `Event` and handed to a
`Dispatcher`, which owns the `ExecutionState` of the current run and
appends to it.
"""

from collections.abc import Callable
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import Field, ValidationError, model_validator

from loco_runner.errors import DispatchError
from loco_runner.models import SchemaModel

if TYPE_CHECKING:
    from typing import Self

logger = getLogger(__name__)

#: A test body or hook: a zero-argument callable returning a value
#: or an awaitable of a value.
type Body = Callable[[], Any]

#: Separator between describe group names and the test title.
NAME_SEPARATOR = ' > '


class EventType(StrEnum):
    """Kinds of registration events."""

    ADD_TEST = 'add_test'
    BEFORE_ALL = 'before_all'
    BEFORE_EACH = 'before_each'
    AFTER_EACH = 'after_each'
    AFTER_ALL = 'after_all'
    START_DESCRIBE = 'start_describe'
    FINISH_DESCRIBE = 'finish_describe'


HOOK_EVENTS = frozenset({
    EventType.BEFORE_ALL,
    EventType.BEFORE_EACH,
    EventType.AFTER_EACH,
    EventType.AFTER_ALL,
})


class Event(SchemaModel):
    """A single registration issued by a script primitive."""

    type: EventType
    name: str | None = None
    body: Body | None = None

    @model_validator(mode='after')
    def check_payload(self) -> 'Self':
        """Require the payload each event type needs."""
        if self.type in (EventType.ADD_TEST, EventType.START_DESCRIBE) and not self.name:
            raise ValueError(f'{self.type} event requires a name')

        if (self.type == EventType.ADD_TEST or self.type in HOOK_EVENTS) and self.body is None:
            raise ValueError(f'{self.type} event requires a callable body')

        return self


class TestCase(SchemaModel):
    """A registered test, immutable once created."""

    __test__ = False

    title: str
    body: Body
    groups: tuple[str, ...] = ()

    @property
    def name(self) -> str:
        """Full name including enclosing describe groups."""
        return NAME_SEPARATOR.join((*self.groups, self.title))


class HookSet(SchemaModel):
    """Lifecycle hooks in declaration order."""

    before_all: list[Body] = Field(default_factory=list)
    before_each: list[Body] = Field(default_factory=list)
    after_each: list[Body] = Field(default_factory=list)
    after_all: list[Body] = Field(default_factory=list)


class ExecutionState(SchemaModel):
    """Registrations collected from one script run."""

    test_cases: list[TestCase] = Field(default_factory=list)
    hooks: HookSet = Field(default_factory=HookSet)
    groups: list[str] = Field(default_factory=list)


class Dispatcher:
    """Single entry point mutating the execution state.

    The dispatcher is passed explicitly to the sandbox builder; no
    registration reaches a global store.
    """

    def __init__(self) -> None:
        """Initialize the dispatcher with an empty state."""
        self.state = ExecutionState()
        self.closed = False

    def reset_state(self) -> ExecutionState:
        """Replace the execution state with an empty one.

        Must be called before each script execution so registrations
        never leak between runs.

        Returns:
            The fresh execution state.
        """
        self.state = ExecutionState()
        self.closed = False

        return self.state

    def close(self) -> None:
        """Stop accepting registrations.

        Called once the script body has finished executing, so that
        tests and hooks running later can not extend the plan.
        """
        self.closed = True

    def emit(self, type_: EventType | str, **fields: Any) -> None:  # noqa: ANN401
        """Build and dispatch an event.

        Args:
            type_: Event type or its string value.
            **fields: Event payload.

        Raises:
            DispatchError: If the event is unknown or malformed.
        """
        try:
            event = Event.model_validate({'type': type_, **fields})

        except ValidationError as base:
            messages = '; '.join(
                item['msg'] for item in base.errors(include_url=False, include_input=False)
            )
            raise DispatchError(f'Invalid {type_!s} event: {messages}') from base

        self.dispatch(event)

    def dispatch(self, event: Event) -> None:
        """Apply an event to the execution state.

        Every event appends; duplicates are kept and all of them run.

        Args:
            event: Registration event.

        Raises:
            DispatchError: If the event type is not handled or the
                dispatcher is closed.
        """
        if self.closed:
            raise DispatchError(f'Can not register {event.type!s} event while tests are running')

        hooks = self.state.hooks

        match event.type:
            case EventType.ADD_TEST:
                case = TestCase(
                    title=event.name,
                    body=event.body,
                    groups=tuple(self.state.groups),
                )
                logger.debug('Register test %r', case.name)
                self.state.test_cases.append(case)

            case EventType.BEFORE_ALL:
                hooks.before_all.append(event.body)

            case EventType.BEFORE_EACH:
                hooks.before_each.append(event.body)

            case EventType.AFTER_EACH:
                hooks.after_each.append(event.body)

            case EventType.AFTER_ALL:
                hooks.after_all.append(event.body)

            case EventType.START_DESCRIBE:
                self.state.groups.append(event.name)

            case EventType.FINISH_DESCRIBE:
                if not self.state.groups:
                    raise DispatchError('No describe group to finish')
                self.state.groups.pop()

            case _:
                raise DispatchError(f'Unknown event type {event.type!r}')
