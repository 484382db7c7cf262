"""
Scheduling configuration module.

This module defines the fixed parameters of the stage scheduling engine.
"""

from typing import Dict, Tuple


class SchedulingConfig:
    """
    Configuration for scheduling calculations.

    Durations are expressed in working days of effort, with an eighth of a
    day as the smallest unit a stage can be planned in.
    """

    # Smallest plannable effort (one eighth of a working day)
    MIN_DURATION_DAYS: float = 0.125

    # Largest plannable effort (about ten years)
    MAX_DURATION_DAYS: float = 3650.0

    # Used when a stage arrives without any duration at all
    DEFAULT_DURATION_DAYS: float = 1.0

    # Decimal places kept on the running carry to absorb float drift
    CARRY_PRECISION: int = 6

    # Stage status labels → canonical status value
    # Maps canonical names and the labels stored by the order screens
    STATUS_ALIASES: Dict[str, str] = {
        # Pending
        'Pending': 'Pending',
        'Pendente': 'Pending',

        # In progress
        'InProgress': 'InProgress',
        'In Progress': 'InProgress',
        'Em Andamento': 'InProgress',
        'em_andamento': 'InProgress',

        # Completed
        'Completed': 'Completed',
        'Concluído': 'Completed',
        'Concluido': 'Completed',
        'concluida': 'Completed',
    }

    # Order statuses whose items never produce tasks
    CLOSED_ORDER_STATUSES: Tuple[str, ...] = (
        'Concluído',
        'Concluido',
        'Completed',
        'Cancelado',
        'Cancelled',
        'Canceled',
    )

    # Delivery-date priority thresholds (calendar days until delivery)
    PRIORITY_HIGH_DAYS: int = 3
    PRIORITY_MEDIUM_DAYS: int = 7

    @classmethod
    def get_status_value(cls, status) -> str:
        """
        Resolve a stage status label to its canonical value.

        Args:
            status: Status label (e.g., 'Pendente', 'In Progress', 'Completed')

        Returns:
            str: 'Pending', 'InProgress' or 'Completed'

        Note:
            Returns 'Pending' for empty or unknown labels.
        """
        if not status:
            return 'Pending'

        normalized = str(status).strip()

        # Try exact match first
        if normalized in cls.STATUS_ALIASES:
            return cls.STATUS_ALIASES[normalized]

        # Try case-insensitive match
        normalized_lower = normalized.lower()
        for key, value in cls.STATUS_ALIASES.items():
            if key.lower() == normalized_lower:
                return value

        return 'Pending'

    @classmethod
    def is_closed_order(cls, status) -> bool:
        """Whether an order status means the order no longer has open work."""
        if not status:
            return False
        normalized_lower = str(status).strip().lower()
        return any(s.lower() == normalized_lower for s in cls.CLOSED_ORDER_STATUSES)
