# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Event infrastructure module for the G4A School Portal.

Components:
- EventBus: In-process pub/sub routed on TenantEventType
- TenantEventType / SetupStage: Closed sets of event kinds and stages
- EventRegistry: Event id prefixes and terminal kinds

Quick Start:
    from g4a_portal.infrastructure.events import get_event_bus, TenantEventType

    event_bus = get_event_bus()
    event_bus.subscribe(TenantEventType.TENANT_CREATED, my_handler)
    await event_bus.publish(event)
"""

from g4a_portal.infrastructure.events.bus import (
    DEFAULT_MAX_LISTENERS,
    BusEvent,
    EventBus,
    EventHandler,
    get_event_bus,
    reset_event_bus,
)
from g4a_portal.infrastructure.events.types import (
    EventRegistry,
    SetupStage,
    TenantEventType,
)

__all__ = [
    # Event Bus
    "EventBus",
    "BusEvent",
    "EventHandler",
    "DEFAULT_MAX_LISTENERS",
    "get_event_bus",
    "reset_event_bus",
    # Event Types
    "TenantEventType",
    "SetupStage",
    "EventRegistry",
]
