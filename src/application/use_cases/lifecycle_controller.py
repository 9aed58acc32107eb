"""Lifecycle controller use case.

The controller is the only component that appends to the history ledger or
changes a service instance's current state. Every transition:
1. checks the (state, action) pair against the transition table
2. checks the acting role against the rule's allow-list
3. conditionally updates current_state (optimistic concurrency) and appends
   the history entry in one unit of work
"""

import logging
from collections.abc import Awaitable, Callable
from uuid import UUID

from src.application.dtos.lifecycle_dto import TransitionResult
from src.domain.entities.service_instance import (
    HistoryEntry,
    LifecycleAction,
    LifecycleState,
    Role,
    ServiceInstance,
)
from src.domain.exceptions import (
    ConcurrencyConflictError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
    UnauthorizedTransitionError,
)
from src.domain.repositories.unit_of_work import LifecycleUnitOfWork
from src.domain.services.transition_table import (
    DEFAULT_TRANSITION_TABLE,
    TransitionRule,
    TransitionTable,
)
from src.infrastructure.observability.metrics import (
    record_instance_provisioned,
    record_lifecycle_transition,
)

logger = logging.getLogger(__name__)

UnitOfWorkFactory = Callable[[], LifecycleUnitOfWork]
TransitionListener = Callable[[TransitionResult, TransitionRule], Awaitable[None]]

PROVISIONING_ROLES = frozenset({Role.ADMIN, Role.STAFF, Role.CLIENT, Role.SYSTEM})


class LifecycleController:
    """Execute immediate lifecycle transitions."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        transition_table: TransitionTable = DEFAULT_TRANSITION_TABLE,
        listeners: list[TransitionListener] | None = None,
    ):
        """Initialize the controller.

        Args:
            uow_factory: Callable returning a fresh unit of work per call
            transition_table: Transition rules to enforce
            listeners: Callbacks run after a transition commits (e.g.
                notifications). Their failures are logged, never raised.
        """
        self.uow_factory = uow_factory
        self.transition_table = transition_table
        self.listeners = list(listeners or [])

    async def provision_instance(
        self,
        client_id: str,
        service_id: str,
        acting_user_id: str,
        acting_role: Role,
        initial_state: LifecycleState = LifecycleState.REQUESTED,
    ) -> ServiceInstance:
        """Create a service instance for a client.

        Provisioning is not a transition and writes no history entry.

        Raises:
            UnauthorizedTransitionError: If the role may not provision in
                initial_state
        """
        initial_state = LifecycleState(initial_state)
        if acting_role not in PROVISIONING_ROLES or (
            acting_role == Role.CLIENT and initial_state != LifecycleState.REQUESTED
        ):
            raise UnauthorizedTransitionError(initial_state, "PROVISION", acting_role)

        instance = ServiceInstance(
            client_id=client_id,
            service_id=service_id,
            current_state=initial_state,
            created_by=acting_user_id,
        )
        async with self.uow_factory() as uow:
            created = await uow.instances.create(instance)
            await uow.commit()

        logger.info(
            f"Provisioned service instance {created.id} for client {client_id} "
            f"(service={service_id}, state={initial_state.value}) by {acting_user_id}"
        )
        self._record_metric(record_instance_provisioned, initial_state.value)
        return created

    async def get_instance(self, service_instance_id: UUID) -> ServiceInstance:
        """Get a service instance.

        Raises:
            NotFoundError: If the instance does not exist
        """
        async with self.uow_factory() as uow:
            instance = await uow.instances.get_by_id(service_instance_id)
        if instance is None:
            raise NotFoundError("ServiceInstance", service_instance_id)
        return instance

    async def perform_transition(
        self,
        service_instance_id: UUID,
        expected_current_state: LifecycleState,
        action: LifecycleAction,
        acting_user_id: str,
        acting_role: Role,
        comments: str | None = None,
    ) -> TransitionResult:
        """Execute a transition in its own unit of work.

        Args:
            service_instance_id: Instance to transition
            expected_current_state: State the caller read earlier
            action: Action to perform
            acting_user_id: User performing the action
            acting_role: Role the user acts under
            comments: Optional comments stored on the history entry

        Returns:
            TransitionResult with the new state and the created history entry

        Raises:
            InvalidTransitionError: If action is not defined from expected_current_state
            UnauthorizedTransitionError: If acting_role may not perform action
            ConcurrencyConflictError: If the instance left expected_current_state
            NotFoundError: If the instance does not exist
            PersistenceFailureError: If the store fails
        """
        async with self.uow_factory() as uow:
            result, rule = await self.apply_transition(
                uow,
                service_instance_id=service_instance_id,
                expected_current_state=expected_current_state,
                action=action,
                acting_user_id=acting_user_id,
                acting_role=acting_role,
                comments=comments,
            )
            await uow.commit()

        await self.after_commit(result, rule)
        return result

    async def apply_transition(
        self,
        uow: LifecycleUnitOfWork,
        service_instance_id: UUID,
        expected_current_state: LifecycleState,
        action: LifecycleAction,
        acting_user_id: str,
        acting_role: Role,
        comments: str | None = None,
    ) -> tuple[TransitionResult, TransitionRule]:
        """Stage a transition inside a caller-owned unit of work.

        Nothing is durable until the caller commits uow. Used directly by
        callers that must commit further writes atomically with the
        transition (event completion); everyone else calls
        perform_transition.

        Returns:
            Tuple of (TransitionResult, the TransitionRule that was applied)
        """
        try:
            rule = self._authorize(expected_current_state, action, acting_role)
        except LifecycleError as e:
            logger.warning(
                f"Rejected transition on {service_instance_id}: {e}",
                extra={"service_instance_id": str(service_instance_id)},
            )
            self._record_metric(
                record_lifecycle_transition, _action_label(action), type(e).__name__
            )
            raise

        updated = await uow.instances.compare_and_set_state(
            service_instance_id, rule.from_state, rule.to_state
        )
        if updated is None:
            current = await uow.instances.get_by_id(service_instance_id)
            if current is None:
                raise NotFoundError("ServiceInstance", service_instance_id)
            logger.warning(
                f"Concurrency conflict on {service_instance_id}: expected "
                f"{rule.from_state.value}, found {current.current_state.value}"
            )
            self._record_metric(record_lifecycle_transition, rule.action.value, "conflict")
            raise ConcurrencyConflictError(
                service_instance_id, rule.from_state, current.current_state
            )

        entry = await uow.history.append(
            HistoryEntry(
                service_instance_id=service_instance_id,
                resulting_state=rule.to_state,
                action=rule.action,
                performed_by=acting_user_id,
                performed_by_role=Role(acting_role),
                comments=comments,
                previous_state=rule.from_state,
                instance_version=updated.version,
            )
        )

        result = TransitionResult(
            instance=updated,
            previous_state=rule.from_state,
            new_state=rule.to_state,
            action=rule.action,
            history_entry=entry,
        )
        return result, rule

    async def after_commit(self, result: TransitionResult, rule: TransitionRule) -> None:
        """Log, count, and notify listeners about a committed transition.

        Failures here never undo the committed transition.
        """
        logger.info(
            f"Service instance {result.instance.id} moved "
            f"{result.previous_state.value} -> {result.new_state.value} "
            f"via {result.action.value} by {result.history_entry.performed_by} "
            f"({result.history_entry.performed_by_role.value})"
        )
        self._record_metric(record_lifecycle_transition, result.action.value, "committed")

        for listener in self.listeners:
            try:
                await listener(result, rule)
            except Exception as e:
                logger.error(
                    f"Transition listener failed for {result.instance.id}: {e}",
                    exc_info=True,
                )

    def _authorize(self, state, action, role) -> TransitionRule:
        """Resolve the rule for (state, action) and check the role may use it."""
        rule = self.transition_table.rule_for(state, action)
        if rule is None:
            raise InvalidTransitionError(state, action)
        if rule.action not in self.transition_table.valid_next_actions(rule.from_state, role):
            raise UnauthorizedTransitionError(rule.from_state, rule.action, role)
        return rule

    @staticmethod
    def _record_metric(record, *labels) -> None:
        try:
            record(*labels)
        except Exception as e:
            logger.warning(f"Failed to record lifecycle metric: {e}")


def _action_label(action) -> str:
    """Metric label for an action, bounded to the known action names."""
    try:
        return LifecycleAction(action).value
    except ValueError:
        return "unknown"
