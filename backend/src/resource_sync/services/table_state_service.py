"""Pure transition function for the resource table state machine."""

import logging

from resource_sync.models.table_state import EventType, TableEvent, TableState, TableStatus

logger = logging.getLogger(__name__)


def transition(state: TableState, event: TableEvent) -> TableState:
    """Return the state reached from ``state`` on ``event``.

    Loads that start or finish while a mutation is running update the page
    on display but leave the machine in ``MUTATING``; the mutation outcome
    decides the next settled state.
    """
    mutating = state.status == TableStatus.MUTATING

    if event.type == EventType.LOAD_STARTED:
        if mutating:
            return state
        return TableState(status=TableStatus.LOADING, result=state.result)

    if event.type == EventType.LOAD_SUCCEEDED:
        if mutating:
            return state.model_copy(update={"result": event.result})
        return TableState(status=TableStatus.READY, result=event.result)

    if event.type == EventType.LOAD_FAILED:
        if mutating:
            return state.model_copy(update={"load_error": event.error})
        # previous page stays on display next to the error
        return TableState(status=TableStatus.ERROR, result=state.result, error=event.error)

    if event.type == EventType.MUTATION_STARTED:
        return TableState(
            status=TableStatus.MUTATING,
            result=state.result,
            operation=event.operation,
            load_error=state.load_error if mutating else None,
        )

    if event.type == EventType.MUTATION_SUCCEEDED:
        result = event.result if event.result is not None else state.result
        if mutating and state.load_error is not None:
            return TableState(status=TableStatus.ERROR, result=result, error=state.load_error)
        return TableState(status=TableStatus.READY, result=result)

    if event.type == EventType.MUTATION_FAILED:
        result = event.result if event.result is not None else state.result
        return TableState(status=TableStatus.ERROR, result=result, error=event.error)

    raise ValueError(f"Unknown table event: {event.type}")
