"""Lifecycle transition table.

Static mapping of (state, action) -> next state, plus the roles allowed to
perform each action. All lookups are pure and never raise for unknown
inputs: an unknown state, action, or role simply has no transitions, so
callers can always render "no actions available".
"""

from dataclasses import dataclass, field

from src.domain.entities.service_instance import LifecycleAction, LifecycleState, Role

S = LifecycleState
A = LifecycleAction
R = Role


@dataclass(frozen=True)
class TransitionRule:
    """One legal transition and who may trigger it.

    Attributes:
        from_state: State the action applies to
        action: The action
        to_state: State the instance moves into
        roles: Roles allowed to perform the action from from_state
        notify_roles: Roles a downstream notifier should inform
    """

    from_state: LifecycleState
    action: LifecycleAction
    to_state: LifecycleState
    roles: frozenset[Role]
    notify_roles: frozenset[Role] = field(default_factory=frozenset)


def _rule(from_state, action, to_state, roles, notify=()) -> TransitionRule:
    return TransitionRule(from_state, action, to_state, frozenset(roles), frozenset(notify))


TRANSITION_RULES: tuple[TransitionRule, ...] = (
    # Request flow
    _rule(S.REQUESTED, A.APPROVE, S.ONBOARDING, {R.ADMIN}, {R.CLIENT}),
    _rule(S.REQUESTED, A.REJECT, S.REJECTED, {R.ADMIN}, {R.CLIENT}),
    _rule(S.REQUESTED, A.REQUEST_INFO, S.PENDING_INFO, {R.ADMIN, R.STAFF}, {R.CLIENT}),
    _rule(S.PENDING_INFO, A.PROVIDE_INFO, S.REQUESTED, {R.CLIENT}, {R.ADMIN}),
    # Onboarding
    _rule(S.ONBOARDING, A.APPROVE, S.ACTIVE, {R.ADMIN, R.STAFF}, {R.CLIENT}),
    _rule(S.ONBOARDING, A.ACTIVATE, S.ACTIVE, {R.ADMIN, R.SYSTEM}, {R.CLIENT}),
    _rule(S.ONBOARDING, A.TERMINATE, S.TERMINATED, {R.ADMIN}, {R.CLIENT}),
    # Active operation
    _rule(S.ACTIVE, A.START_MAINTENANCE, S.MAINTENANCE, {R.ADMIN, R.STAFF}, {R.CLIENT}),
    _rule(S.MAINTENANCE, A.COMPLETE_MAINTENANCE, S.ACTIVE, {R.ADMIN, R.STAFF}, {R.CLIENT}),
    # Renewal
    _rule(S.ACTIVE, A.NOTIFY_RENEWAL, S.RENEWAL_DUE, {R.ADMIN, R.SYSTEM}, {R.CLIENT, R.ADMIN}),
    _rule(S.ACTIVE, A.REQUEST_RENEWAL, S.RENEWAL_DUE, {R.CLIENT}, {R.ADMIN}),
    _rule(S.ACTIVE, A.RENEW, S.ACTIVE, {R.ADMIN, R.STAFF, R.SYSTEM}, {R.CLIENT}),
    _rule(S.RENEWAL_DUE, A.RENEW, S.ACTIVE, {R.ADMIN, R.STAFF, R.SYSTEM}, {R.CLIENT}),
    # Suspension and termination
    _rule(S.ACTIVE, A.SUSPEND, S.SUSPENDED, {R.ADMIN}, {R.CLIENT}),
    _rule(S.RENEWAL_DUE, A.SUSPEND, S.SUSPENDED, {R.ADMIN, R.SYSTEM}, {R.CLIENT}),
    _rule(S.SUSPENDED, A.REINSTATE, S.ACTIVE, {R.ADMIN}, {R.CLIENT}),
    _rule(S.ACTIVE, A.TERMINATE, S.TERMINATED, {R.ADMIN}, {R.CLIENT}),
    _rule(S.RENEWAL_DUE, A.TERMINATE, S.TERMINATED, {R.ADMIN, R.SYSTEM}, {R.CLIENT, R.ADMIN}),
    _rule(S.SUSPENDED, A.TERMINATE, S.TERMINATED, {R.ADMIN, R.SYSTEM}, {R.CLIENT, R.ADMIN}),
    # Archiving
    _rule(S.TERMINATED, A.ARCHIVE, S.ARCHIVED, {R.ADMIN}),
    _rule(S.REJECTED, A.ARCHIVE, S.ARCHIVED, {R.ADMIN}),
)


def _index(rules: tuple[TransitionRule, ...]) -> dict[tuple[LifecycleState, LifecycleAction], TransitionRule]:
    """Index rules by (from_state, action), rejecting malformed tables."""
    indexed: dict[tuple[LifecycleState, LifecycleAction], TransitionRule] = {}
    for rule in rules:
        key = (rule.from_state, rule.action)
        if key in indexed:
            raise ValueError(
                f"Duplicate transition rule for {rule.from_state.value} + {rule.action.value}"
            )
        if not rule.roles:
            raise ValueError(
                f"Transition rule {rule.from_state.value} + {rule.action.value} has no roles"
            )
        indexed[key] = rule
    return indexed


def _coerce(enum_cls, value):
    """Return value as a member of enum_cls, or None if it is not one."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return None


class TransitionTable:
    """Pure lookups over the lifecycle transition rules.

    The table is the single source of "is this transition legal": next_state
    ignores roles, valid_next_actions narrows the legal actions to the ones
    the role may perform.
    """

    def __init__(self, rules: tuple[TransitionRule, ...] = TRANSITION_RULES):
        """Build the lookup index.

        Args:
            rules: Transition rules to serve

        Raises:
            ValueError: If rules contain a duplicate (state, action) pair
                or a rule without roles
        """
        self._rules = _index(rules)

    @property
    def rules(self) -> list[TransitionRule]:
        """All rules, in table order."""
        return list(self._rules.values())

    def rule_for(self, state, action) -> TransitionRule | None:
        """Get the rule for (state, action), or None if the pair is undefined."""
        state = _coerce(LifecycleState, state)
        action = _coerce(LifecycleAction, action)
        if state is None or action is None:
            return None
        return self._rules.get((state, action))

    def next_state(self, state, action) -> LifecycleState | None:
        """Get the state that action leads to from state.

        Args:
            state: Current state (enum member or its string value)
            action: Action to apply (enum member or its string value)

        Returns:
            The resulting state, or None if the transition is not defined
        """
        rule = self.rule_for(state, action)
        return rule.to_state if rule else None

    def structural_actions(self, state) -> frozenset[LifecycleAction]:
        """Get every action legal from state, regardless of role."""
        state = _coerce(LifecycleState, state)
        if state is None:
            return frozenset()
        return frozenset(action for (from_state, action) in self._rules if from_state == state)

    def valid_next_actions(self, state, role) -> frozenset[LifecycleAction]:
        """Get the actions role may perform from state.

        Always a subset of structural_actions(state). Unknown states and
        roles yield an empty set.

        Args:
            state: Current state (enum member or its string value)
            role: Acting role (enum member or its string value)

        Returns:
            Set of permitted actions
        """
        state = _coerce(LifecycleState, state)
        role = _coerce(Role, role)
        if state is None or role is None:
            return frozenset()
        return frozenset(
            rule.action
            for rule in self._rules.values()
            if rule.from_state == state and role in rule.roles
        )

    def is_terminal(self, state) -> bool:
        """True if no action is legal from state."""
        return not self.structural_actions(state)


DEFAULT_TRANSITION_TABLE = TransitionTable()
