"""
Domain Events - Typed notifications of engine state changes.

Every mutation in the engine publishes one event. Read paths that need to
react (logging, e-mail notifications, caches) subscribe to the event type
instead of the writer knowing about them.

Events are delivered through Django signals once the surrounding database
transaction commits, so a rolled-back write never announces anything.

Usage:
    from core.events import AssignmentChanged, publish, subscribe

    publish(AssignmentChanged(assignment_id=1, task_id=2, team_member_id=3, change='created'))

    @subscribe(AssignmentChanged)
    def on_assignment_changed(sender, event, **kwargs):
        ...
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple, Type

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)


# =============================================================================
# EVENT TYPES
# =============================================================================

@dataclass(frozen=True)
class DomainEvent:
    """Base class for all domain events."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class TaskUpdated(DomainEvent):
    task_id: int
    status: str
    changed_fields: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AssignmentChanged(DomainEvent):
    CREATED = 'created'
    UPDATED = 'updated'
    COMPLETED = 'completed'
    REOPENED = 'reopened'
    REMOVED = 'removed'

    assignment_id: int
    task_id: int
    team_member_id: int
    change: str


@dataclass(frozen=True)
class ProposalApprovalsChanged(DomainEvent):
    proposal_id: int
    approved_count: int
    total_count: int
    display_status: str


@dataclass(frozen=True)
class ProposalConverted(DomainEvent):
    proposal_id: int
    project_id: int
    task_ids: Tuple[int, ...] = ()


# =============================================================================
# BUS
# =============================================================================

_signals: Dict[Type[DomainEvent], Signal] = {}


def signal_for(event_type: Type[DomainEvent]) -> Signal:
    """Return the signal carrying events of the given type."""
    if event_type not in _signals:
        _signals[event_type] = Signal()
    return _signals[event_type]


def subscribe(event_type: Type[DomainEvent], **kwargs):
    """Decorator connecting a receiver to an event type."""
    def _decorator(func):
        signal_for(event_type).connect(func, sender=event_type, **kwargs)
        return func
    return _decorator


def _dispatch(event: DomainEvent) -> None:
    signal_for(type(event)).send(sender=type(event), event=event)


def publish(event: DomainEvent) -> None:
    """Deliver the event after the current transaction commits."""
    logger.debug(f"Publishing {event.name}: {event}")
    transaction.on_commit(lambda: _dispatch(event))
