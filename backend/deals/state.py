"""
Deal status machine.

Every status change on a Transaction goes through ``transition`` while the
row is locked, so concurrent accept/counter/cancel requests serialise and
the loser sees a rejected transition instead of overwriting the winner.
"""


class DealError(Exception):
    """A deal operation that cannot proceed; carries the HTTP status to report"""
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class DealPermissionError(DealError):
    status_code = 403


class InvalidTransition(DealError):
    status_code = 409


TRANSITIONS = {
    'pending_customer_view': {'pending_customer_view', 'offer_made', 'accepted', 'cancelled'},
    'offer_made': {'negotiating', 'accepted', 'cancelled'},
    'negotiating': {'negotiating', 'accepted', 'cancelled'},
    'accepted': {'in_escrow', 'cancelled'},
    'in_escrow': {'in_transit', 'completed'},
    'in_transit': {'completed'},
    'completed': set(),
    'cancelled': set(),
}

# Statuses that keep the vehicle reserved
OPEN_STATUSES = ('pending_customer_view', 'offer_made', 'negotiating', 'accepted', 'in_escrow', 'in_transit')
NEGOTIABLE_STATUSES = ('offer_made', 'negotiating')
ACTIVE_STATUSES = ('offer_made', 'negotiating', 'accepted')


def can_transition(current, target):
    return target in TRANSITIONS.get(current, set())


def assert_transition(current, target):
    if not can_transition(current, target):
        raise InvalidTransition(f"Cannot move deal from {current} to {target}")


def transition(deal, target):
    """Move ``deal`` to ``target`` or raise InvalidTransition. Does not save."""
    assert_transition(deal.status, target)
    deal.status = target
    return deal
