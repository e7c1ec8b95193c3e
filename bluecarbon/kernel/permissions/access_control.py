"""
Access control evaluator.

A pure decision function over (caller, resource owner, resource status,
operation). It has no database or transport dependency, so it is called
directly by the lifecycle manager and unit-tested without requests.

Rules are evaluated in order and the first matching rule decides:

1. administrator: any read; administrator-permitted transitions and
   attachments under their state preconditions
2. owner: read always; edit and submit only while draft; owner attachments
   inside their window
3. reviewer: read submitted/under_review/verified/rejected; review
   transitions and reviewer attachments under their preconditions
4. consumer: read verified/tokenized through the public projection
5. anyone else: deny
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from bluecarbon.kernel.models.principal import Principal, Role
from bluecarbon.kernel.models.resource import PUBLIC_STATUSES, ContentKind, ResourceStatus
from bluecarbon.kernel.permissions.matrix import (
    ATTACHMENT_WINDOWS,
    REVIEWER_READABLE,
    TRANSITIONS,
    LifecycleEvent,
)


class Action(str, Enum):
    READ = "read"
    EDIT = "edit"
    TRANSITION = "transition"
    ATTACH = "attach"


class Projection(str, Enum):
    """Which view of a resource a permitted read gets."""
    FULL = "full"
    PUBLIC = "public"


@dataclass(frozen=True)
class Caller:
    """Who is acting. ``principal_id`` is None for automated triggers."""

    principal_id: Optional[uuid.UUID]
    role: Role

    @classmethod
    def from_principal(cls, principal: Principal) -> "Caller":
        return cls(principal_id=principal.id, role=principal.role)

    @classmethod
    def system(cls) -> "Caller":
        """An automated trigger acting with administrator privilege."""
        return cls(principal_id=None, role=Role.ADMINISTRATOR)


@dataclass(frozen=True)
class Operation:
    action: Action
    event: Optional[LifecycleEvent] = None
    kind: Optional[ContentKind] = None

    @classmethod
    def read(cls) -> "Operation":
        return cls(Action.READ)

    @classmethod
    def edit(cls) -> "Operation":
        return cls(Action.EDIT)

    @classmethod
    def transition(cls, event: LifecycleEvent) -> "Operation":
        return cls(Action.TRANSITION, event=event)

    @classmethod
    def attach(cls, kind: ContentKind) -> "Operation":
        return cls(Action.ATTACH, kind=kind)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    rule: str
    projection: Optional[Projection] = None

    def __bool__(self) -> bool:
        return self.allowed


def _allow(rule: str, projection: Optional[Projection] = None) -> Decision:
    return Decision(True, rule, projection)


def _deny(rule: str) -> Decision:
    return Decision(False, rule)


def _transition_allowed(event: LifecycleEvent, status: ResourceStatus, role: Role, is_owner: bool) -> bool:
    rule = TRANSITIONS[event]
    if rule.source != status:
        return False
    return role in rule.roles or (rule.owner and is_owner)


def _attach_allowed(kind: ContentKind, status: ResourceStatus, role: Role, is_owner: bool) -> bool:
    window = ATTACHMENT_WINDOWS[kind]
    if status not in window.statuses:
        return False
    return role in window.roles or (window.owner and is_owner)


def evaluate(
    caller: Caller,
    owner_id: uuid.UUID,
    status: ResourceStatus,
    operation: Operation,
) -> Decision:
    """Decide whether ``caller`` may perform ``operation`` on a resource."""
    status = ResourceStatus(status)
    action = operation.action
    is_owner = caller.principal_id is not None and caller.principal_id == owner_id

    # 1. Administrator precedence
    if caller.role == Role.ADMINISTRATOR:
        rule = "administrator"
        if action == Action.READ:
            return _allow(rule, Projection.FULL)
        if action == Action.TRANSITION:
            allowed = _transition_allowed(operation.event, status, caller.role, is_owner=False)
            return _allow(rule) if allowed else _deny(rule)
        if action == Action.ATTACH:
            allowed = _attach_allowed(operation.kind, status, caller.role, is_owner=False)
            return _allow(rule) if allowed else _deny(rule)
        return _deny(rule)

    # 2. Ownership
    if is_owner:
        rule = "owner"
        if action == Action.READ:
            return _allow(rule, Projection.FULL)
        if action == Action.EDIT:
            return _allow(rule) if status == ResourceStatus.DRAFT else _deny(rule)
        if action == Action.TRANSITION:
            allowed = (
                operation.event == LifecycleEvent.SUBMIT
                and _transition_allowed(operation.event, status, caller.role, is_owner=True)
            )
            return _allow(rule) if allowed else _deny(rule)
        if action == Action.ATTACH:
            allowed = _attach_allowed(operation.kind, status, caller.role, is_owner=True)
            return _allow(rule) if allowed else _deny(rule)
        return _deny(rule)

    # 3. Reviewer
    if caller.role == Role.REVIEWER:
        rule = "reviewer"
        if action == Action.READ:
            return _allow(rule, Projection.FULL) if status in REVIEWER_READABLE else _deny(rule)
        if action == Action.TRANSITION:
            allowed = _transition_allowed(operation.event, status, caller.role, is_owner=False)
            return _allow(rule) if allowed else _deny(rule)
        if action == Action.ATTACH:
            allowed = _attach_allowed(operation.kind, status, caller.role, is_owner=False)
            return _allow(rule) if allowed else _deny(rule)
        return _deny(rule)

    # 4. Consumer
    if caller.role == Role.CONSUMER:
        rule = "consumer"
        if action == Action.READ and status in PUBLIC_STATUSES:
            return _allow(rule, Projection.PUBLIC)
        return _deny(rule)

    # 5. Default deny
    return _deny("default")


def can_read(caller: Caller, owner_id: uuid.UUID, status: ResourceStatus) -> bool:
    """Convenience wrapper for read checks."""
    return evaluate(caller, owner_id, status, Operation.read()).allowed
