"""Authorization predicates, one per protected operation"""

from labflow.errors import Forbidden
from labflow.models.home_visit import HomeVisit
from labflow.models.order import Order
from labflow.models.user import Capability, User


def require_capability(user: User, capability: Capability) -> None:
    if not user.can(capability):
        raise Forbidden(capability=capability.value)


def can_view_order(user: User, order: Order) -> bool:
    return order.user_id == user.id or user.can(Capability.VIEW_ALL_ORDERS)


def can_pay_for_order(user: User, order: Order) -> bool:
    return order.user_id == user.id


def can_advance_visit(user: User, visit: HomeVisit) -> bool:
    """Administrators, or the agent currently assigned to the visit"""
    if user.can(Capability.UPDATE_ANY_VISIT):
        return True
    return user.can(Capability.COLLECT_SAMPLES) and visit.agent_id == user.id
