"""
Capacity ledger.

Pure arithmetic over a tournament's capacity counters.  A tournament has
a total cap (``max_capacity``) and a public cap, which is the total minus
the slots reserved for admins to hand out.  Public self-service
admissions are measured against the public cap; admin admissions may use
the reserved slots and are measured against the total cap.

The confirmed count handed to these functions must be read under the
tournament row lock whenever the result drives an admission decision.
"""
from __future__ import annotations

from dataclasses import dataclass

CONFIRMED = "confirmed"
WAITLISTED = "waitlisted"


@dataclass(frozen=True)
class CapacitySnapshot:
    max_capacity: int | None
    reserved_slots: int
    confirmed_count: int

    @property
    def unlimited(self) -> bool:
        return self.max_capacity is None

    @property
    def public_capacity(self) -> int | None:
        if self.max_capacity is None:
            return None
        return max(0, self.max_capacity - (self.reserved_slots or 0))

    @property
    def capacity_remaining(self) -> int | None:
        if self.max_capacity is None:
            return None
        return max(0, self.max_capacity - self.confirmed_count)

    @property
    def public_capacity_remaining(self) -> int | None:
        if self.public_capacity is None:
            return None
        return max(0, self.public_capacity - self.confirmed_count)

    @property
    def at_capacity(self) -> bool:
        if self.max_capacity is None:
            return False
        return self.confirmed_count >= self.max_capacity

    @property
    def public_at_capacity(self) -> bool:
        if self.max_capacity is None:
            return False
        return self.confirmed_count >= self.public_capacity

    def as_dict(self) -> dict:
        return {
            "max_capacity": self.max_capacity,
            "reserved_slots": self.reserved_slots,
            "public_capacity": self.public_capacity,
            "confirmed_count": self.confirmed_count,
            "capacity_remaining": self.capacity_remaining,
            "public_capacity_remaining": self.public_capacity_remaining,
            "at_capacity": self.at_capacity,
            "public_at_capacity": self.public_at_capacity,
        }


def admission_status_for(snapshot: CapacitySnapshot, use_reserved_slots: bool = False) -> str:
    """Return ``confirmed`` if one more registrant fits, else ``waitlisted``."""
    full = snapshot.at_capacity if use_reserved_slots else snapshot.public_at_capacity
    return WAITLISTED if full else CONFIRMED


def can_promote(snapshot: CapacitySnapshot) -> bool:
    """Admins promote waitlisted registrants against the total cap."""
    return not snapshot.at_capacity
