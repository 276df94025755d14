"""Customer status transition rules.

``VALID_TRANSITIONS`` is the single edge table. Both the mutation path in
``CustomerService.transition_status`` and the read-side queries consult it
through the functions below.
"""

from crm.persistence.models.customer import CustomerStatus

_S = CustomerStatus

VALID_TRANSITIONS: dict[CustomerStatus, frozenset[CustomerStatus]] = {
    _S.NEW: frozenset(
        {_S.NOTIFIED, _S.ABORTED, _S.SUBMITTED, _S.CERTIFIED, _S.CERTIFIED_ELSEWHERE}
    ),
    _S.NOTIFIED: frozenset({_S.ABORTED, _S.SUBMITTED, _S.CERTIFIED, _S.CERTIFIED_ELSEWHERE}),
    _S.ABORTED: frozenset({_S.NOTIFIED, _S.SUBMITTED, _S.CERTIFIED, _S.CERTIFIED_ELSEWHERE}),
    _S.SUBMITTED: frozenset({_S.NOTIFIED, _S.ABORTED, _S.CERTIFIED, _S.CERTIFIED_ELSEWHERE}),
    _S.CERTIFIED: frozenset({_S.NOTIFIED, _S.ABORTED, _S.SUBMITTED, _S.CERTIFIED_ELSEWHERE}),
    _S.CERTIFIED_ELSEWHERE: frozenset(),
}


def valid_transitions(status) -> frozenset[CustomerStatus]:
    """Return the statuses reachable from ``status`` in one step.

    Accepts a CustomerStatus or its name. Unknown or missing input yields
    an empty set.
    """
    parsed = CustomerStatus.parse(status)
    if parsed is None:
        return frozenset()
    return frozenset(VALID_TRANSITIONS.get(parsed, frozenset()))


def is_valid_transition(from_status, to_status) -> bool:
    """True if ``from_status -> to_status`` is an edge."""
    target = CustomerStatus.parse(to_status)
    if target is None:
        return False
    return target in valid_transitions(from_status)


def is_terminal(status) -> bool:
    """True if a known status has no outgoing edges."""
    parsed = CustomerStatus.parse(status)
    return parsed is not None and not VALID_TRANSITIONS[parsed]


def transition_error_message(from_status, to_status) -> str:
    """Explain why ``from_status -> to_status`` is refused."""
    source = CustomerStatus.parse(from_status)
    target = CustomerStatus.parse(to_status)

    if source is None:
        return f"Unknown current status: {from_status!r}"
    if target is None:
        return f"Unknown target status: {to_status!r}"
    if source == target:
        return f"Customer is already in status {source.display_name}"
    if target == CustomerStatus.NEW:
        return "Customers cannot return to status New"
    if is_terminal(source):
        return f"Status {source.display_name} is final; no further changes are allowed"

    options = ", ".join(sorted(s.display_name for s in valid_transitions(source)))
    return (
        f"Cannot change status from {source.display_name} to {target.display_name}. "
        f"Valid options: {options}"
    )
