"""
Event bus for economy domain events.

Exports EventBus plus the payload and callback type aliases.
"""

from pet_economy.core.event.bus import CallbackType, EventBus, EventPayload, matches

__all__ = ["EventBus", "EventPayload", "CallbackType", "matches"]
